# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

Main command
"""

import sys
from typing import Any, Sequence

from click.exceptions import Abort, ClickException  # type: ignore[import]
from click.shell_completion import CompletionItem  # type: ignore[import]
from opsicommon.logging import get_logger  # type: ignore[import]
from opsicommon.utils import patch_popen  # type: ignore[import]

from cfplugin import __version__, prepare_cli_paths
from cfplugin.config import config
from cfplugin.io import write_message
from cfplugin.plugin import PluginClickCommand, plugin_manager
from cfplugin.types import COMPLETION_MODE, CFPluginRuntimeError, PluginWarning
from cfplugin.types import LogLevel as TypeLogLevel

if not COMPLETION_MODE:
	import rich_click as click  # type: ignore[import,no-redef]
else:
	# Loads faster
	import click  # type: ignore[import,no-redef]

if not COMPLETION_MODE:
	click.rich_click.USE_RICH_MARKUP = True
	click.rich_click.MAX_WIDTH = 140
	click.rich_click.STYLE_USAGE = "bold cyan3"
	click.rich_click.STYLE_OPTION = "bold cyan"
	click.rich_click.STYLE_SWITCH = "bold light_sea_green"
	click.rich_click.STYLE_METAVAR = "cyan3"

	click.rich_click.OPTION_GROUPS = {"cf-plugin": []}
	for group, items in config.get_items_by_group().items():
		if not group:
			continue
		options = [f"--{item.name.replace('_', '-')}" for item in items if item.description]
		if group == "General":
			options.extend(["--help", "--version"])
		if options:
			click.rich_click.OPTION_GROUPS["cf-plugin"].append({"name": f"{group} options", "options": options})

	patch_popen()

logger = get_logger("cfplugin")


class CFPluginCLI(click.Group):  # type: ignore
	def main(
		self,
		args: Sequence[str] | None = None,
		prog_name: str | None = None,
		complete_var: str | None = None,
		standalone_mode: bool = False,
		**extra: Any,
	) -> Any:
		try:
			return super().main(args, prog_name, complete_var, standalone_mode, **extra)
		except Abort:
			sys.stderr.write("Aborted.\n")
			sys.exit(1)
		except PluginWarning as warning:
			logger.notice("%s", warning)
			write_message(str(warning), style="yellow")
			sys.exit(0)
		except CFPluginRuntimeError as error:
			logger.error(error, exc_info=False)  # Avoid gigantic traceback here
			write_message(f"FAILED: {error}", style="bold red")
			sys.exit(1)
		except Exception as err:  # pylint: disable=broad-except
			logger.error(err, exc_info=True)
			if not isinstance(err, ClickException):
				err = ClickException(str(err))
			err.show()
			sys.exit(err.exit_code)

	def format_help(self, ctx: click.Context, formatter: click.HelpFormatter) -> None:
		# Config files are only read while processing the config file options,
		# which click skips when it shows help for a missing command
		config.read_config_files()
		return super().format_help(ctx, formatter)

	def list_commands(self, ctx: click.Context) -> list[str]:
		logger.debug("list_commands")
		return sorted(plugin_manager.get_commands())

	def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
		logger.debug("get_command %r", cmd_name)
		try:
			plugin, command = plugin_manager.find_command(cmd_name)
		except LookupError as error:
			logger.debug(error)
			return None
		return PluginClickCommand(plugin, command)


class LogLevel(click.ParamType):
	name = "log_level"

	def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> TypeLogLevel:
		try:
			return TypeLogLevel(value)
		except ValueError as err:
			self.fail(str(err), param, ctx)

	def shell_complete(self, ctx: click.Context, param: click.Parameter, incomplete: str) -> list[CompletionItem]:
		completion_items = []
		try:
			completion_items = [CompletionItem(min(9, max(0, int(incomplete))))]
		except ValueError:
			for name in TypeLogLevel.possible_values:
				if name.startswith(incomplete.lower()):
					completion_items.append(CompletionItem(name))
		return completion_items


@click.command(cls=CFPluginCLI, name="cf-plugin")
@click.version_option(f"{__version__}", message="cf-plugin version %(version)s")
@config.get_click_option("config_file_system", is_eager=True, expose_value=False)
@config.get_click_option("config_file_user", is_eager=True, expose_value=False)
@config.get_click_option("log_file")
@config.get_click_option("log_level_file", type=LogLevel())
@config.get_click_option("log_level_stderr", short_option="-l", type=LogLevel())
@config.get_click_option("color", long_option="--color/--no-color", is_eager=True)
@config.get_click_option("output_file")
@config.get_click_option("header", long_option="--header/--no-header")
@config.get_click_option("cf_binary")
@config.get_click_option("cf_home")
def main(*args: str, **kwargs: str) -> None:
	"""
	Cloud Foundry CLI plugin host\n
	Plugins are dynamically loaded from the plugin directories
	"""
	logger.debug("Main called")
	prepare_cli_paths()


if __name__ == "__main__":
	main()  # pylint: disable=no-value-for-parameter
