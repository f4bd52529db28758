# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

input output
"""

import sys
from contextlib import contextmanager
from typing import IO, Iterator

from opsicommon.logging import get_logger  # type: ignore[import]
from rich.console import Console  # type: ignore[import]

from cfplugin.config import config

logger = get_logger("cfplugin")


def output_file_is_stdout() -> bool:
	return str(config.output_file) in ("-", "")


@contextmanager
def output_file_str(encoding: str | None = "utf-8") -> Iterator[IO[str]]:
	encoding = encoding or "utf-8"
	if output_file_is_stdout():
		yield sys.stdout
		sys.stdout.flush()
	else:
		logger.debug("Writing output to %s", config.output_file)
		with open(config.output_file, mode="w", encoding=encoding) as file:
			yield file
			file.flush()


def get_console(file: IO[str] | None = None) -> Console:
	return Console(file=file, color_system="auto" if config.color else None, highlight=False)


def write_output_raw(data: str) -> None:
	if not data:
		return
	with output_file_str() as file:
		file.write(data)


def write_message(message: str, style: str | None = None) -> None:
	"""
	Print a one-line message to stdout.
	Messages are never sent to the output file, the report stays clean.
	"""
	console = get_console(sys.stdout)
	console.print(message, style=style, markup=False, emoji=False, soft_wrap=True)
