# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

types
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Type

from opsicommon.logging import (  # type: ignore[import]
	LEVEL_TO_OPSI_LEVEL,
	NAME_TO_LEVEL,
)

COMPLETION_MODE = "_CF_PLUGIN_COMPLETE" in os.environ

if not COMPLETION_MODE:
	import rich_click as click  # type: ignore[import]
else:
	# Loads faster
	import click  # type: ignore[import,no-redef]


class LogLevel(int):
	possible_values = list(reversed([v.lower() for v in NAME_TO_LEVEL]))
	possible_values_for_description = ", ".join(
		[f"[metavar]{name}[/metavar]/[metavar]{LEVEL_TO_OPSI_LEVEL[NAME_TO_LEVEL[name.upper()]]}[/metavar]" for name in possible_values]
	)

	def __new__(cls, value: Any) -> LogLevel:
		try:
			value = min(9, max(0, int(value)))
		except ValueError:
			try:
				value = LEVEL_TO_OPSI_LEVEL[NAME_TO_LEVEL[value.upper()]]
			except KeyError:
				raise ValueError(f"{value!r} is not a valid log level, choose one of: {cls.possible_values_for_description}") from None
		return super().__new__(cls, value)


class Bool:
	click_type = bool

	def __new__(cls: Type[Bool], value: Any) -> bool:  # type: ignore[misc]
		if isinstance(value, str):
			value = value.lower() in ("1", "true", "yes")
		return bool(value)


class File(type(Path())):  # type: ignore[misc] # pylint: disable=too-few-public-methods
	click_type = click.Path(dir_okay=False)

	def __new__(cls: Type[File], *args: Any, **kwargs: Any) -> File:
		path = super().__new__(cls, *args, **kwargs)
		if str(path) != "-":
			path = path.expanduser().absolute()
			if path.exists() and not path.is_file():
				raise ValueError(f"Not a file: {path!r}")
		return path


class Directory(type(Path())):  # type: ignore[misc] # pylint: disable=too-few-public-methods
	click_type = click.Path(file_okay=False)

	def __new__(cls: Type[Directory], *args: Any, **kwargs: Any) -> Directory:
		path = super().__new__(cls, *args, **kwargs)
		path = path.expanduser().absolute()
		if path.exists() and not path.is_dir():
			raise ValueError(f"Not a directory: {path!r}")
		return path


class Executable(str):
	"""
	Name or path of an executable.
	A bare name is looked up in PATH when the command runs.
	"""

	def __new__(cls: Type[Executable], value: Any) -> Executable:
		value = str(value).strip()
		if not value:
			raise ValueError("Executable must not be empty")
		if os.sep in value:
			value = str(Path(value).expanduser().absolute())
		return super().__new__(cls, value)


class CFPluginRuntimeError(RuntimeError):
	pass


class PluginFailure(CFPluginRuntimeError):
	"""
	A failure reported as "FAILED: <message>. Error: <error>".
	"""

	def __init__(self, message: str, error: Exception | str | None = None) -> None:
		super().__init__(message)
		self.message = message
		self.error = error

	def __str__(self) -> str:
		if self.error is None:
			return self.message
		return f"{self.message}. Error: {self.error}"


class CliCommandError(PluginFailure):
	pass


class PluginWarning(Exception):
	"""
	Nothing to show. Reported to the user, the process exits successfully.
	"""
