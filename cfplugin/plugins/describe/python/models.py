"""
cf-plugin describe plugin

Responses of the Cloud Controller v2 API.
Resources are decoded into typed values when they are read, a missing key or
a value of the wrong type is reported as ResponseSchemaError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from cfplugin.types import PluginFailure


class ResponseDecodeError(PluginFailure):
	pass


class ResponseSchemaError(ResponseDecodeError):
	pass


class ApiError(ResponseDecodeError):
	pass


def _get_str(mapping: dict[str, Any], key: str, resource_type: str) -> str:
	if key not in mapping:
		raise ResponseSchemaError(f"unexpected {resource_type} resource", f"missing key {key!r}")
	value = mapping[key]
	if not isinstance(value, str):
		raise ResponseSchemaError(f"unexpected {resource_type} resource", f"{key!r} is {type(value).__name__}, expected str")
	return value


@dataclass
class Resource:
	metadata: dict[str, Any] = field(default_factory=dict)
	entity: dict[str, Any] = field(default_factory=dict)

	@classmethod
	def from_dict(cls, data: Any) -> Resource:
		if not isinstance(data, dict):
			raise ResponseDecodeError("could not unmarshal response", f"resource is {type(data).__name__}, expected object")
		resource = cls()
		for key in ("metadata", "entity"):
			value = data.get(key)
			if value is None:
				continue
			if not isinstance(value, dict):
				raise ResponseDecodeError("could not unmarshal response", f"resource {key} is {type(value).__name__}, expected object")
			setattr(resource, key, value)
		return resource


@dataclass
class CurlResponse:
	total_results: int = 0
	resources: list[Resource] = field(default_factory=list)

	@classmethod
	def from_json(cls, data: str | bytes, endpoint: str = "") -> CurlResponse:
		try:
			body = orjson.loads(data)
		except orjson.JSONDecodeError as err:
			raise ResponseDecodeError("could not unmarshal response", err) from err
		if not isinstance(body, dict):
			raise ResponseDecodeError("could not unmarshal response", f"expected an object from {endpoint!r}, got {type(body).__name__}")

		if "error_code" in body:
			raise ApiError(
				f"request to {endpoint!r} failed",
				f"{body.get('error_code')}: {body.get('description') or 'no description'}",
			)

		total_results = body.get("total_results") or 0
		if not isinstance(total_results, int) or isinstance(total_results, bool):
			raise ResponseDecodeError("could not unmarshal response", f"total_results is {type(total_results).__name__}, expected int")
		resources = body.get("resources") or []
		if not isinstance(resources, list):
			raise ResponseDecodeError("could not unmarshal response", f"resources is {type(resources).__name__}, expected array")
		return cls(total_results=total_results, resources=[Resource.from_dict(resource) for resource in resources])


@dataclass(frozen=True)
class ServiceBroker:
	guid: str
	name: str = ""

	@classmethod
	def from_resource(cls, resource: Resource) -> ServiceBroker:
		name = resource.entity.get("name")
		return cls(guid=_get_str(resource.metadata, "guid", "service broker"), name=name if isinstance(name, str) else "")


@dataclass(frozen=True)
class ServicePlan:
	name: str
	service_instances_url: str

	@classmethod
	def from_resource(cls, resource: Resource) -> ServicePlan:
		return cls(
			name=_get_str(resource.entity, "name", "service plan"),
			service_instances_url=_get_str(resource.entity, "service_instances_url", "service plan"),
		)


@dataclass(frozen=True)
class ServiceInstance:
	guid: str
	name: str
	space_guid: str

	@classmethod
	def from_resource(cls, resource: Resource) -> ServiceInstance:
		return cls(
			guid=_get_str(resource.metadata, "guid", "service instance"),
			name=_get_str(resource.entity, "name", "service instance"),
			space_guid=_get_str(resource.entity, "space_guid", "service instance"),
		)


@dataclass(frozen=True)
class Organization:
	name: str

	@classmethod
	def from_resource(cls, resource: Resource) -> Organization:
		return cls(name=_get_str(resource.entity, "name", "organization"))
