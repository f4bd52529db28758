# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

general configuration
"""

import os
import platform
from dataclasses import InitVar, asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from click.core import ParameterSource  # type: ignore[import]
from opsicommon.logging import (  # type: ignore[import]
	DEFAULT_COLORED_FORMAT,
	DEFAULT_FORMAT,
	LOG_ESSENTIAL,
	LOG_NONE,
	get_logger,
	logging_config,
)
from opsicommon.utils import Singleton  # type: ignore[import]
from ruamel.yaml import YAML  # type: ignore[import]

from cfplugin.types import COMPLETION_MODE, Bool, Directory, Executable, File, LogLevel

if not COMPLETION_MODE:
	import rich_click as click  # type: ignore[import]
else:
	import click  # type: ignore[import,no-redef]

logger = get_logger("cfplugin")


class ConfigValueSource(Enum):
	DEFAULT = "default"
	COMMANDLINE = "commandline"
	ENVIRONMENT = "environment"
	CONFIG_FILE_SYSTEM = "config_file_system"
	CONFIG_FILE_USER = "config_file_user"


logging_config(stderr_level=LOG_ESSENTIAL, file_level=LOG_NONE)


@dataclass
class ConfigValue:
	type: Any
	value: Any
	source: ConfigValueSource | None = None

	def __setattr__(self, name: str, value: Any) -> None:
		if name == "value" and value is not None and not isinstance(value, self.type):
			value = self.type(value)
		self.__dict__[name] = value

	def __repr__(self) -> str:
		return f"<ConfigValue value={self.value!r}, source={self.source}>"

	def __str__(self) -> str:
		if self.source:
			return f"{self.value} ({ConfigValueSource(self.source).value})"
		return f"{self.value}"


@dataclass
class ConfigItem:  # pylint: disable=too-many-instance-attributes
	name: str
	type: Any
	description: str | None = None
	group: str | None = None
	default: InitVar[Any] = None
	value: InitVar[Any] = None
	_default: ConfigValue | None = None
	_value: ConfigValue | None = None

	def __post_init__(self, default: Any, value: Any) -> None:
		self.set_default(default)
		self.set_value(value)

	def __getattribute__(self, name: str) -> Any:
		if name in ("default", "value"):
			config_value = getattr(self, f"_{name}")
			return None if config_value is None else config_value.value
		return super().__getattribute__(name)

	def __setattr__(self, name: str, value: Any) -> None:
		if name in ("default", "value"):
			getattr(self, f"set_{name}")(value)
			return
		self.__dict__[name] = value

	def set_value(self, value: Any, source: ConfigValueSource | None = None) -> None:
		if value is None:
			# Unset falls back to the default
			self.__dict__["_value"] = None if self._default is None else ConfigValue(self.type, self._default.value, self._default.source)
			return
		self.__dict__["_value"] = ConfigValue(self.type, value, source)

	def set_default(self, value: Any) -> None:
		self.__dict__["_default"] = None if value is None else ConfigValue(self.type, value, ConfigValueSource.DEFAULT)

	def get_value(self, value_only: bool = True) -> Any:
		if value_only:
			return self.value
		return self._value

	def get_source(self) -> ConfigValueSource | None:
		return self._value.source if self._value else None

	def as_dict(self) -> dict[str, Any]:
		dict_ = asdict(self)
		dict_["value"] = dict_.pop("_value")
		dict_["default"] = dict_.pop("_default")
		return dict_

	def __repr__(self) -> str:
		return f"<ConfigItem name={self.name!r}, default={self.default}, value={self.value!r}>"


if platform.system().lower() == "windows":
	_user_lib_dir = Path(os.getenv("APPDATA") or ".") / "cf-plugin" / "Local" / "Lib"
	_config_file_system = None  # pylint: disable=invalid-name
	_config_file_user = Path(os.getenv("APPDATA") or ".") / "cf-plugin" / "cf-plugin.yaml"
else:
	_user_lib_dir = Path.home() / ".local" / "lib" / "cf-plugin"
	_config_file_system = Path("/etc/cf-plugin/cf-plugin.yaml")
	_config_file_user = Path("~/.config/cf-plugin/cf-plugin.yaml")

# Plugins shipped with this distribution live inside the cfplugin package
_plugin_bundle_dir = Path(__file__).resolve().parent / "plugins"

CONFIG_ITEMS = [
	ConfigItem(name="log_file", type=File, group="General", description="Log to the specified file."),
	ConfigItem(
		name="log_level_file",
		type=LogLevel,
		group="General",
		default="none",
		description=f"The log level for the log file. Possible values are:\n\n{LogLevel.possible_values_for_description}.",
	),
	ConfigItem(
		name="log_level_stderr",
		type=LogLevel,
		group="General",
		default="none",
		description=f"The log level for the console (stderr). Possible values are:\n\n{LogLevel.possible_values_for_description}.",
	),
	ConfigItem(name="color", type=Bool, group="General", default=True, description="Enable or disable colorized output."),
	ConfigItem(name="output_file", type=File, group="IO", default="-", description="Write the report to the given file."),
	ConfigItem(
		name="header",
		type=Bool,
		group="IO",
		default=False,
		description="Print a header naming the described object and the current user before the report.",
	),
	ConfigItem(
		name="cf_binary",
		type=Executable,
		group="Cloud Foundry",
		default="cf",
		description="Name or path of the cf command line client used to talk to the platform.",
	),
	ConfigItem(
		name="cf_home",
		type=Directory,
		group="Cloud Foundry",
		default=None,
		description="Directory containing the .cf configuration directory (CF_HOME). Defaults to the home directory.",
	),
	ConfigItem(name="user_lib_dir", type=Directory, group="General", default=_user_lib_dir),
	ConfigItem(name="plugin_bundle_dir", type=Directory, group="General", default=_plugin_bundle_dir),
	ConfigItem(name="plugin_user_dir", type=Directory, group="General", default=_user_lib_dir / "plugins"),
	ConfigItem(
		name="config_file_system",
		type=File,
		group="General",
		default=_config_file_system,
		description="System wide config file location",
	),
	ConfigItem(
		name="config_file_user",
		type=File,
		group="General",
		default=_config_file_user,
		description="User specific config file",
	),
]


class Config(metaclass=Singleton):  # pylint: disable=too-few-public-methods
	def __init__(self) -> None:
		self._options_processed: set[str] = set()
		self._config: dict[str, ConfigItem] = {}
		for item in CONFIG_ITEMS:
			self._config[item.name] = item

	def get_config_item(self, name: str) -> ConfigItem:
		return self._config[name]

	def get_values(self) -> dict[str, Any]:
		return {name: item.value for name, item in self._config.items()}

	def set_values(self, values: dict[str, Any]) -> None:
		for name, value in values.items():
			self._config[name].value = value

	def read_config_files(self) -> None:
		for file_type in ("config_file_system", "config_file_user"):
			config_file = getattr(self, file_type, None)
			if not config_file or not config_file.exists():
				continue
			source = ConfigValueSource.CONFIG_FILE_SYSTEM if file_type == "config_file_system" else ConfigValueSource.CONFIG_FILE_USER
			logger.debug("Reading config file %s", config_file)
			with open(config_file, "r", encoding="utf-8") as file:
				data = YAML().load(file.read()) or {}
			for key, value in data.items():
				config_item = self._config.get(key)
				if not config_item:
					logger.warning("Ignoring unknown config item %r in %s", key, config_file)
					continue
				if config_item.get_source() in (ConfigValueSource.COMMANDLINE, ConfigValueSource.ENVIRONMENT):
					# Do not override cmdline arguments
					continue
				config_item.set_value(value, source)

	def set_logging_config(self) -> None:
		logging_config(
			log_file=self.log_file,
			file_level=self.log_level_file,
			stderr_level=self.log_level_stderr,
			stderr_format=DEFAULT_COLORED_FORMAT if self.color else DEFAULT_FORMAT,
		)

	def get_click_option(self, name: str, **kwargs: Any) -> Callable:
		config_item = self._config[name]
		long_option = kwargs.pop("long_option", None)
		if long_option is None:
			long_option = f"--{name.replace('_', '-')}"
		_kwargs = {
			"type": getattr(config_item.type, "click_type", config_item.type),
			"callback": self.process_option,
			"metavar": name.upper(),
			"envvar": f"CFPLUGIN_{name.upper()}",
			"help": config_item.description,
			"default": config_item.default,
			"show_default": True,
		}
		_args = [str(long_option)] + ([str(kwargs.pop("short_option"))] if "short_option" in kwargs else [])
		_kwargs.update(kwargs)
		return click.option(*_args, **_kwargs)

	def process_option(self, ctx: click.Context, param: click.Option, value: Any) -> None:  # pylint: disable=unused-argument
		if param.name is None or COMPLETION_MODE or param.name not in self._config:
			return

		param_source = ctx.get_parameter_source(param.name)
		try:
			source = None
			if param_source == ParameterSource.COMMANDLINE:
				source = ConfigValueSource.COMMANDLINE
			elif param_source == ParameterSource.ENVIRONMENT:
				source = ConfigValueSource.ENVIRONMENT
			if source:
				self._config[param.name].set_value(value, source)
		except ValueError as err:
			raise click.BadParameter(str(err), ctx=ctx, param=param) from err

		self._options_processed.add(param.name)

		config_file_params = ("config_file_system", "config_file_user")
		if param.name in config_file_params and all(p in self._options_processed for p in config_file_params):
			self.read_config_files()

		if param.name in ("log_file", "log_level_file", "log_level_stderr", "color"):
			self.set_logging_config()

	def get_items_by_group(self) -> dict[str, list[ConfigItem]]:
		items: dict[str, list[ConfigItem]] = {}
		for item in self._config.values():
			items.setdefault(item.group or "", []).append(item)
		return items

	def __getattr__(self, name: str) -> Any:
		if not name.startswith("_") and name in self._config:
			return self._config[name].get_value()
		raise AttributeError(name)

	def __setattr__(self, name: str, value: Any) -> None:
		if not name.startswith("_") and name in self._config:
			self._config[name].set_value(value)
			return
		super().__setattr__(name, value)


config = Config()
