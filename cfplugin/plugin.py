# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

plugin handling
"""

from __future__ import annotations

import importlib
import importlib.util
import os
import sys
from dataclasses import dataclass, field
from importlib.abc import MetaPathFinder
from importlib.machinery import ModuleSpec
from pathlib import Path
from types import ModuleType
from typing import Any, Sequence

from click import Command, Context  # type: ignore[import]
from opsicommon.logging import get_logger  # type: ignore[import]
from opsicommon.utils import Singleton  # type: ignore[import]

from cfplugin.config import config
from cfplugin.connection import CliConnection, get_cli_connection
from cfplugin.types import COMPLETION_MODE

logger = get_logger("cfplugin")

ADDON_MODULE_PREFIX = "cfplugin.addon"


@dataclass(frozen=True)
class VersionType:
	major: int = 0
	minor: int = 0
	build: int = 0

	def __str__(self) -> str:
		return f"{self.major}.{self.minor}.{self.build}"


@dataclass
class Usage:
	usage: str = ""
	options: dict[str, str] = field(default_factory=dict)


@dataclass
class PluginCommand:
	name: str
	help_text: str = ""
	alias: str = ""
	usage_details: Usage = field(default_factory=Usage)


@dataclass
class PluginMetadata:
	name: str
	version: VersionType = field(default_factory=VersionType)
	min_cli_version: VersionType = field(default_factory=VersionType)
	commands: list[PluginCommand] = field(default_factory=list)


class CFPlugin:
	"""
	Base class of all plugins.
	A plugin module defines exactly one subclass.
	"""

	def __init__(self, path: Path) -> None:
		self.path = path

	def on_load(self) -> None:
		"""Called after loading the plugin"""
		return

	def get_metadata(self) -> PluginMetadata:
		raise NotImplementedError(f"{self.__class__.__name__} does not provide metadata")

	def run(self, connection: CliConnection, args: Sequence[str]) -> None:
		raise NotImplementedError(f"{self.__class__.__name__} does not implement run")

	@property
	def commands(self) -> list[str]:
		names = []
		for command in self.get_metadata().commands:
			names.append(command.name)
			if command.alias:
				names.append(command.alias)
		return names

	def __str__(self) -> str:
		metadata = self.get_metadata()
		return f"{metadata.name}_{metadata.version}"


class PluginImporter(MetaPathFinder):
	"""
	Imports plugin directories under a name derived from their path,
	so plugins with the same directory name do not collide.
	"""

	@classmethod
	def find_spec(cls, fullname: str, path: Sequence[str] | None = None, target: ModuleType | None = None) -> ModuleSpec | None:
		if not fullname.startswith(ADDON_MODULE_PREFIX) or "." in fullname[len(ADDON_MODULE_PREFIX) :]:
			return None
		plugin_path = bytes.fromhex(fullname.split("_", 1)[1]).decode("utf-8")
		init_path = os.path.join(plugin_path, "python", "__init__.py")
		logger.debug("Searching spec for %s", init_path)
		if not os.path.exists(init_path):
			return None
		return importlib.util.spec_from_file_location(fullname, init_path)


sys.meta_path.append(PluginImporter)  # type: ignore[arg-type]


class PluginManager(metaclass=Singleton):
	def __init__(self) -> None:
		self._plugins: dict[str, CFPlugin] = {}

	@classmethod
	def module_name(cls, plugin_path: Path) -> str:
		return f"{ADDON_MODULE_PREFIX}_{str(plugin_path).encode('utf-8').hex()}"

	@property
	def plugin_dirs(self) -> list[Path]:
		return [path for path in (config.plugin_bundle_dir, config.plugin_user_dir) if path]

	@property
	def plugins(self) -> list[str]:
		plugin_ids: list[str] = []
		for plugin_base_dir in self.plugin_dirs:
			if not plugin_base_dir.exists():
				logger.debug("Plugin dir '%s' not found", plugin_base_dir)
				continue
			logger.debug("Checking plugins from dir '%s'", plugin_base_dir)
			for plugin_dir in sorted(plugin_base_dir.iterdir()):
				if (plugin_dir / "python" / "__init__.py").exists() and plugin_dir.name not in plugin_ids:
					plugin_ids.append(plugin_dir.name)
		return plugin_ids

	def get_plugin_dir(self, name: str) -> Path:
		for plugin_base_dir in self.plugin_dirs:
			if (plugin_base_dir / name / "python" / "__init__.py").exists():
				logger.debug("Found plugin %s at %s", name, plugin_base_dir / name)
				return plugin_base_dir / name
		raise FileNotFoundError(f"Did not find plugin '{name}'.")

	def load_plugin_module(self, plugin_dir: Path) -> ModuleType:
		module_name = self.module_name(plugin_dir)
		if module_name in sys.modules:
			return sys.modules[module_name]
		logger.debug("Importing plugin module from '%s'", plugin_dir)
		return importlib.import_module(module_name)

	def load_plugin(self, name: str) -> CFPlugin:
		if name in self._plugins:
			return self._plugins[name]
		plugin_dir = self.get_plugin_dir(name)
		module = self.load_plugin_module(plugin_dir)
		for cls in module.__dict__.values():
			if isinstance(cls, type) and issubclass(cls, CFPlugin) and cls is not CFPlugin:
				plugin = cls(plugin_dir)
				logger.info("Loaded plugin %r (%s)", plugin_dir.name, plugin)
				if not COMPLETION_MODE:
					plugin.on_load()
				# Only one class per module
				self._plugins[name] = plugin
				return plugin
		raise RuntimeError(f"Failed to load plugin '{name}'.")

	def get_commands(self) -> dict[str, tuple[CFPlugin, PluginCommand]]:
		commands: dict[str, tuple[CFPlugin, PluginCommand]] = {}
		for name in self.plugins:
			plugin = self.load_plugin(name)
			for command in plugin.get_metadata().commands:
				if command.name in commands:
					logger.warning("Command %r of plugin %r is already provided by %s", command.name, name, commands[command.name][0])
					continue
				commands[command.name] = (plugin, command)
		return commands

	def find_command(self, cmd_name: str) -> tuple[CFPlugin, PluginCommand]:
		for plugin, command in self.get_commands().values():
			if cmd_name in (command.name, command.alias):
				return plugin, command
		raise LookupError(f"Invalid command {cmd_name!r}")


plugin_manager = PluginManager()


class PluginClickCommand(Command):
	"""
	Hands every argument after the command name to the plugin unparsed.
	"""

	def __init__(self, plugin: CFPlugin, command: PluginCommand) -> None:
		super().__init__(
			name=command.name,
			short_help=command.help_text,
			help=command.usage_details.usage,
			add_help_option=False,
			context_settings={"ignore_unknown_options": True},
		)
		self.plugin = plugin
		self.command = command

	def parse_args(self, ctx: Context, args: list[str]) -> list[str]:
		ctx.args = list(args)
		return ctx.args

	def invoke(self, ctx: Context) -> Any:
		args = [self.command.name, *ctx.args]
		logger.info("Running plugin %s with args %s", self.plugin, args)
		return self.plugin.run(get_cli_connection(), args)
