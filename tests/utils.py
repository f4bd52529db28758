"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

Test utilities
"""

import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Sequence
from unittest.mock import patch

import orjson
from click.testing import CliRunner  # type: ignore[import]

import cfplugin
from cfplugin.__main__ import main
from cfplugin.config import config
from cfplugin.connection import CliConnection
from cfplugin.models import Org, Space
from cfplugin.types import CliCommandError

runner = CliRunner()

PLUGIN_DIR = Path(cfplugin.__file__).resolve().parent / "plugins" / "describe"
BROKER = "my-broker"
INSTANCES_URL = "/v2/service_plans/p1/service_instances"


def run_cli(args: Sequence[str], stdin: list[str] | None = None) -> tuple[int, str]:
	result = runner.invoke(main, args, obj={}, catch_exceptions=False, input="\n".join(stdin or []))
	return (result.exit_code, result.stdout)


def envelope(*resources: dict[str, Any]) -> dict[str, Any]:
	return {"total_results": len(resources), "total_pages": 1, "prev_url": None, "next_url": None, "resources": list(resources)}


def resource(guid: str, **entity: Any) -> dict[str, Any]:
	return {"metadata": {"guid": guid, "url": f"/v2/things/{guid}"}, "entity": entity}


def broker_responses() -> dict[str, Any]:
	"""
	One broker with plan "gold" holding instance "db1" in space "dev" (s1) of org "acme".
	"""
	return {
		f"/v2/service_brokers?q=name:{BROKER}": envelope(resource("b1", name=BROKER)),
		"/v2/service_plans?q=service_broker_guid:b1": envelope(resource("p1", name="gold", service_instances_url=INSTANCES_URL)),
		INSTANCES_URL: envelope(resource("i1", name="db1", space_guid="s1")),
		"/v2/organizations?q=space_guid:s1": envelope(resource("o1", name="acme")),
	}


class FakeConnection(CliConnection):
	"""
	Serves canned control plane responses and records every call.
	"""

	def __init__(self, responses: dict[str, Any] | None = None, spaces: list[Space] | None = None, user: str = "admin") -> None:
		self.responses = responses or {}
		self.spaces = spaces or []
		self.user = user
		self.calls: list[tuple[str, ...]] = []

	def cli_command_without_terminal_output(self, *args: str) -> list[str]:
		self.calls.append(args)
		if args[0] != "curl":
			raise CliCommandError(f"unexpected command {args}")
		response = self.responses[args[1]]
		if isinstance(response, str):
			return response.splitlines()
		# Multiple lines, like the output of cf curl
		return orjson.dumps(response, option=orjson.OPT_INDENT_2).decode("utf-8").splitlines()

	def get_spaces(self) -> list[Space]:
		self.calls.append(("get_spaces",))
		return list(self.spaces)

	def get_orgs(self) -> list[Org]:
		self.calls.append(("get_orgs",))
		return []

	def username(self) -> str:
		return self.user

	def api_endpoint(self) -> str:
		return "https://api.example.com"


@contextmanager
def fake_connection(connection: FakeConnection) -> Generator[FakeConnection, None, None]:
	with patch("cfplugin.plugin.get_cli_connection", return_value=connection):
		yield connection


@contextmanager
def temp_context() -> Generator[Path, None, None]:
	values = config.get_values()
	try:
		with tempfile.TemporaryDirectory(ignore_cleanup_errors=True) as tempdir:
			tempdir_path = Path(tempdir)
			config.color = False
			config.user_lib_dir = tempdir_path
			config.plugin_user_dir = tempdir_path / "user_plugins"
			config.config_file_user = tempdir_path / "cf-plugin.yaml"
			yield tempdir_path
	finally:
		config.set_values(values)
