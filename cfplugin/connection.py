# -*- coding: utf-8 -*-
"""
cf-plugin - command line plugin host for the Cloud Foundry CLI

connection to the platform through the cf command line client
"""

import base64
import os
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

import orjson
from opsicommon.logging import get_logger, secret_filter  # type: ignore[import]

from cfplugin.config import config
from cfplugin.io import get_console
from cfplugin.models import Org, Space
from cfplugin.types import CliCommandError

logger = get_logger("cfplugin")
cli_connection = None


class CliConnection(ABC):
	"""
	What a plugin may ask of the host.
	Every call is synchronous and authenticated with the session of the cf client.
	"""

	@abstractmethod
	def cli_command_without_terminal_output(self, *args: str) -> list[str]:
		"""Run a cf command and return its output lines."""

	def cli_command(self, *args: str) -> list[str]:
		"""Run a cf command, print and return its output lines."""
		lines = self.cli_command_without_terminal_output(*args)
		console = get_console()
		for line in lines:
			console.print(line, markup=False, emoji=False, soft_wrap=True)
		return lines

	@abstractmethod
	def get_spaces(self) -> list[Space]:
		"""All spaces visible to the current user."""

	@abstractmethod
	def get_orgs(self) -> list[Org]:
		"""All organizations visible to the current user."""

	@abstractmethod
	def username(self) -> str: ...

	@abstractmethod
	def api_endpoint(self) -> str: ...


class CFCliConnection(CliConnection):
	def __init__(self, cf_binary: str = "cf", cf_home: Path | None = None) -> None:
		self.cf_binary = cf_binary
		self.cf_home = cf_home
		self._cf_config: dict[str, Any] | None = None

	def __repr__(self) -> str:
		return f"<CFCliConnection cf_binary={self.cf_binary!r}, cf_home={self.cf_home!r}>"

	def _environment(self) -> dict[str, str]:
		env = os.environ.copy()
		if self.cf_home:
			env["CF_HOME"] = str(self.cf_home)
		return env

	def cli_command_without_terminal_output(self, *args: str) -> list[str]:
		cmd = [self.cf_binary, *args]
		logger.debug("Executing %s", cmd)
		try:
			result = subprocess.run(cmd, capture_output=True, encoding="utf-8", env=self._environment(), check=False)
		except OSError as err:
			raise CliCommandError(f"could not execute {self.cf_binary!r}", err) from err
		logger.trace("Command %s returned %d, stdout: %s", cmd, result.returncode, result.stdout)
		if result.returncode != 0:
			output = (result.stderr or result.stdout or "").strip()
			raise CliCommandError(f"command 'cf {' '.join(args)}' failed with exit code {result.returncode}", output)
		return result.stdout.splitlines()

	def _get_all_resources(self, endpoint: str) -> list[dict[str, Any]]:
		resources: list[dict[str, Any]] = []
		next_url: str | None = endpoint
		while next_url:
			url = next_url
			lines = self.cli_command_without_terminal_output("curl", url)
			try:
				data = orjson.loads("".join(lines))
			except orjson.JSONDecodeError as err:
				raise CliCommandError(f"could not decode response of {url}", err) from err
			if not isinstance(data, dict):
				raise CliCommandError(f"could not decode response of {url}", f"expected an object, got {type(data).__name__}")
			if "error_code" in data:
				raise CliCommandError(f"request to {url} failed", f"{data['error_code']}: {data.get('description') or 'no description'}")
			page = data.get("resources") or []
			if not isinstance(page, list):
				raise CliCommandError(f"could not decode response of {url}", f"resources is {type(page).__name__}, expected array")
			resources.extend(page)
			next_url = data.get("next_url")
			if next_url is not None and not isinstance(next_url, str):
				raise CliCommandError(f"could not decode response of {url}", f"next_url is {type(next_url).__name__}, expected string")
			logger.debug("Fetched %d resources from %s, next page: %s", len(resources), endpoint, next_url)
		return resources

	def get_spaces(self) -> list[Space]:
		resources = self._get_all_resources("/v2/spaces")
		try:
			return [Space.from_resource(resource) for resource in resources]
		except ValueError as err:
			raise CliCommandError("unexpected space in response of /v2/spaces", err) from err

	def get_orgs(self) -> list[Org]:
		resources = self._get_all_resources("/v2/organizations")
		try:
			return [Org.from_resource(resource) for resource in resources]
		except ValueError as err:
			raise CliCommandError("unexpected organization in response of /v2/organizations", err) from err

	def _config_file(self) -> Path:
		return Path(self.cf_home or Path.home()) / ".cf" / "config.json"

	def _read_cf_config(self) -> dict[str, Any]:
		if self._cf_config is None:
			config_file = self._config_file()
			logger.debug("Reading cf config from %s", config_file)
			try:
				self._cf_config = orjson.loads(config_file.read_bytes())
			except (OSError, orjson.JSONDecodeError) as err:
				raise CliCommandError(f"could not read cf config file {str(config_file)!r}", err) from err
		return self._cf_config  # type: ignore[return-value]

	def access_token(self) -> str:
		token = str(self._read_cf_config().get("AccessToken") or "")
		if token.lower().startswith("bearer "):
			token = token[7:]
		if token:
			secret_filter.add_secrets(token)
		return token

	def username(self) -> str:
		token = self.access_token()
		if not token:
			raise CliCommandError("not logged in", "no access token found, use 'cf login'")
		try:
			payload = token.split(".")[1]
			claims = orjson.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
			return str(claims["user_name"])
		except (IndexError, KeyError, ValueError) as err:
			raise CliCommandError("could not determine the current user", err) from err

	def api_endpoint(self) -> str:
		return str(self._read_cf_config().get("Target") or "")


def get_cli_connection() -> CliConnection:
	global cli_connection  # pylint: disable=global-statement
	if not cli_connection:
		cli_connection = CFCliConnection(cf_binary=config.cf_binary, cf_home=config.cf_home)
		logger.info("Using %r", cli_connection)
	return cli_connection
