"""
cf-plugin describe plugin

Summarizes the plans and service instances of a service broker.
"""

from io import StringIO
from pathlib import Path
from typing import Sequence
from urllib.parse import quote_plus

import rich_click as click  # type: ignore[import]
from opsicommon.logging import get_logger  # type: ignore[import]

from cfplugin.config import config
from cfplugin.connection import CliConnection
from cfplugin.io import write_output_raw
from cfplugin.models import Space, find_space
from cfplugin.plugin import CFPlugin, PluginCommand, PluginMetadata, Usage, VersionType
from cfplugin.types import PluginFailure, PluginWarning

from .models import CurlResponse, Organization, ResponseSchemaError, ServiceBroker, ServiceInstance, ServicePlan

__version__ = "1.0.0"  # Use this field to track the current version number
__description__ = "Show information about brokers or service instances"

VERSION = VersionType(major=1, minor=0, build=0)
MIN_CLI_VERSION = VersionType(major=6, minor=7, build=0)
USAGE = "cf describe [-b broker-name] [-s service-instance-name]"
OPTIONS = {
	"-b": "The name of the broker",
	"-s": "The name of the service instance",
	"-show-guids": "If set, will display the service instances guid",
}

logger = get_logger("cfplugin")


class FlagParseError(PluginFailure):
	pass


VALUE_FLAGS = ("b", "s")
BOOL_FLAGS = ("show-guids",)
TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")


def normalize_flags(args: Sequence[str]) -> list[str]:
	"""
	Rewrite flags as the cf client writes them into the form the click parser reads.

	-flag and --flag are the same flag, -flag=value is split into two arguments
	and boolean flags take an optional =true or =false.
	Flags end at "--" or at the first argument that is not a flag.
	"""
	result: list[str] = []
	index = 0
	while index < len(args):
		arg = args[index]
		if arg == "--" or len(arg) < 2 or not arg.startswith("-"):
			result.extend(args[index:])
			break
		name, has_value, value = (arg[2:] if arg.startswith("--") else arg[1:]).partition("=")
		if not name or name[0] in "-=":
			raise FlagParseError("cannot parse flags", f"bad flag syntax: {arg}")
		if name in ("h", "help"):
			result.append("--help")
		elif name in BOOL_FLAGS:
			if has_value and value not in TRUE_VALUES + FALSE_VALUES:
				raise FlagParseError("cannot parse flags", f"invalid boolean value {value!r} for -{name}")
			result.append(f"--no-{name}" if has_value and value in FALSE_VALUES else f"-{name}")
		elif name in VALUE_FLAGS:
			if not has_value:
				index += 1
				if index >= len(args):
					raise FlagParseError("cannot parse flags", f"flag needs an argument: -{name}")
				value = args[index]
			result.extend([f"-{name}", value])
		else:
			raise FlagParseError("cannot parse flags", f"flag provided but not defined: -{name}")
		index += 1
	return result


# Parses the flags only, DescribePlugin.run does the work.
# Like the flag parsing of the cf client, parsing stops at the first argument that is not a flag.
@click.command(
	name="describe",
	short_help=__description__,
	context_settings={"allow_extra_args": True, "allow_interspersed_args": False},
)
@click.option("-b", "broker_name", type=str, default="", metavar="BROKER_NAME", help=OPTIONS["-b"])
@click.option("-s", "service_name", type=str, default="", metavar="SERVICE_INSTANCE_NAME", help=OPTIONS["-s"])
@click.option("-show-guids/--no-show-guids", "show_guids", is_flag=True, default=False, help=OPTIONS["-show-guids"])
def cli(broker_name: str, service_name: str, show_guids: bool) -> None:  # The docstring is used in cf-plugin describe --help
	"""
	Show information about brokers or service instances.

	cf describe [-b broker-name] [-s service-instance-name]
	"""


class DescribePlugin(CFPlugin):
	cli = cli

	def __init__(self, path: Path) -> None:
		super().__init__(path)
		self.connection: CliConnection | None = None
		self.broker_name = ""
		self.service_name = ""
		self.show_guids = False

	def get_metadata(self) -> PluginMetadata:
		return PluginMetadata(
			name="describe",
			version=VERSION,
			min_cli_version=MIN_CLI_VERSION,
			commands=[
				PluginCommand(
					name="describe",
					help_text=__description__,
					usage_details=Usage(usage=USAGE, options=dict(OPTIONS)),
				)
			],
		)

	def parse_flags(self, args: Sequence[str]) -> None:
		try:
			with self.cli.make_context(args[0], normalize_flags(args[1:])) as ctx:
				params = ctx.params
		except click.ClickException as err:
			raise FlagParseError("cannot parse flags", err.format_message()) from err

		self.broker_name = params["broker_name"] or ""
		self.service_name = params["service_name"] or ""
		self.show_guids = bool(params["show_guids"])
		logger.debug("Parsed flags: broker=%r, service=%r, show_guids=%r", self.broker_name, self.service_name, self.show_guids)

	def run(self, connection: CliConnection, args: Sequence[str]) -> None:
		self.connection = connection
		if not args or args[0] != "describe":
			logger.debug("Ignoring call with args %s", args)
			return

		self.parse_flags(args)

		if self.broker_name:
			self.describe_broker()

		if self.service_name:
			self.describe_service()

	def describe_broker(self) -> None:
		brokers = self.curl(f"/v2/service_brokers?q=name:{quote_plus(self.broker_name)}")
		if brokers.total_results == 0 or not brokers.resources:
			raise PluginWarning(f"{self.broker_name} not found")
		if brokers.total_results > 1:
			logger.warning("Found %d brokers named %r, describing the first one", brokers.total_results, self.broker_name)
		broker = ServiceBroker.from_resource(brokers.resources[0])
		logger.info("Describing broker %r (%s)", broker.name or self.broker_name, broker.guid)

		report = StringIO()
		if config.header:
			report.write(f"Describing broker {self.broker_name} as visible by {self._connection.username()}\n\n")

		# TODO: pagination, only the first page of plans and instances is consulted
		plans = self.curl(f"/v2/service_plans?q=service_broker_guid:{broker.guid}")
		if plans.total_results == 0:
			raise PluginWarning(f"{self.broker_name} has no plans")

		spaces = self._connection.get_spaces()
		orgs = self.get_orgs(spaces)

		for plan in [ServicePlan.from_resource(resource) for resource in plans.resources]:
			instances = self.curl(plan.service_instances_url)
			if instances.total_results == 0:
				logger.debug("Plan %r has no instances", plan.name)
				continue
			report.write(f"Plan {plan.name}:\n")
			for instance in [ServiceInstance.from_resource(resource) for resource in instances.resources]:
				space = find_space(spaces, instance.space_guid)
				report.write("  ")
				if self.show_guids:
					report.write(f"Guid: {instance.guid} - ")
				report.write(f"Name: {instance.name} - Org: {orgs.get(space.guid, '')} - Space: {space.name}\n")

		write_output_raw(report.getvalue())

	def get_orgs(self, spaces: list[Space]) -> dict[str, str]:
		"""
		Map each space guid to the name of the organization owning it.
		"""
		orgs: dict[str, str] = {}
		for space in spaces:
			if space.guid in orgs:
				continue
			response = self.curl(f"/v2/organizations?q=space_guid:{space.guid}")
			if not response.resources:
				raise ResponseSchemaError("unexpected organizations response", f"no organization found for space {space.guid}")
			orgs[space.guid] = Organization.from_resource(response.resources[0]).name
		return orgs

	def describe_service(self) -> None:
		# Describing a single service instance is not implemented
		logger.debug("Nothing to describe for service instance %r", self.service_name)

	def curl(self, endpoint: str) -> CurlResponse:
		logger.debug("curl %s", endpoint)
		lines = self._connection.cli_command_without_terminal_output("curl", endpoint)
		return CurlResponse.from_json("".join(lines), endpoint)

	@property
	def _connection(self) -> CliConnection:
		if self.connection is None:
			raise RuntimeError("Plugin is not running, no connection available")
		return self.connection
