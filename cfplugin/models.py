# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

models supplied by the host to plugins
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


def _get_str(resource: Any, section: str, key: str) -> str:
	values = resource.get(section) if isinstance(resource, dict) else None
	value = values.get(key) if isinstance(values, dict) else None
	if not isinstance(value, str):
		raise ValueError(f"resource has no {section}.{key}")
	return value


@dataclass(frozen=True)
class Space:
	guid: str = ""
	name: str = ""

	@classmethod
	def from_resource(cls, resource: dict[str, Any]) -> Space:
		return cls(guid=_get_str(resource, "metadata", "guid"), name=_get_str(resource, "entity", "name"))


@dataclass(frozen=True)
class Org:
	guid: str = ""
	name: str = ""

	@classmethod
	def from_resource(cls, resource: dict[str, Any]) -> Org:
		return cls(guid=_get_str(resource, "metadata", "guid"), name=_get_str(resource, "entity", "name"))


def find_space(spaces: list[Space], space_guid: str) -> Space:
	for space in spaces:
		if space.guid == space_guid:
			return space
	return Space()
