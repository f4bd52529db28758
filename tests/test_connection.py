"""
test_connection
"""

import base64
import re
import subprocess
from pathlib import Path
from typing import Any
from unittest.mock import patch

import orjson
import pytest
from _pytest.capture import CaptureFixture

from cfplugin import connection as connection_module
from cfplugin.config import config
from cfplugin.connection import CFCliConnection, get_cli_connection
from cfplugin.models import Org, Space, find_space
from cfplugin.types import CliCommandError

from .utils import BROKER, broker_responses, envelope, resource, run_cli, temp_context


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
	return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def paged(*resources: dict[str, Any], next_url: str | None = None) -> str:
	data = envelope(*resources)
	data["next_url"] = next_url
	return orjson.dumps(data, option=orjson.OPT_INDENT_2).decode("utf-8")


def write_cf_config(cf_home: Path, claims: dict[str, Any], target: str = "https://api.example.com") -> str:
	payload = base64.urlsafe_b64encode(orjson.dumps(claims)).decode("ascii").rstrip("=")
	token = f"eyJhbGciOiJSUzI1NiJ9.{payload}.c2lnbmF0dXJl"
	(cf_home / ".cf").mkdir(parents=True, exist_ok=True)
	(cf_home / ".cf" / "config.json").write_bytes(orjson.dumps({"AccessToken": f"bearer {token}", "Target": target}))
	return token


def test_cli_command_without_terminal_output() -> None:
	connection = CFCliConnection(cf_binary="cf", cf_home=Path("/tmp/cf-home"))
	with patch("cfplugin.connection.subprocess.run", return_value=completed('{\n  "total_results": 0\n}\n')) as run:
		lines = connection.cli_command_without_terminal_output("curl", "/v2/service_brokers")
	assert lines == ["{", '  "total_results": 0', "}"]
	args, kwargs = run.call_args
	assert args[0] == ["cf", "curl", "/v2/service_brokers"]
	assert kwargs["env"]["CF_HOME"] == "/tmp/cf-home"


def test_cli_command_prints_output(capsys: CaptureFixture[str]) -> None:
	connection = CFCliConnection()
	with temp_context(), patch("cfplugin.connection.subprocess.run", return_value=completed("line1\nline2\n")):
		assert connection.cli_command("version") == ["line1", "line2"]
	assert capsys.readouterr().out == "line1\nline2\n"


def test_cli_command_failed() -> None:
	connection = CFCliConnection()
	with patch("cfplugin.connection.subprocess.run", return_value=completed(returncode=1, stderr="Not logged in.\n")):
		with pytest.raises(CliCommandError, match="failed with exit code 1. Error: Not logged in."):
			connection.cli_command_without_terminal_output("curl", "/v2/spaces")


def test_cli_binary_not_found() -> None:
	connection = CFCliConnection(cf_binary="/nonexistent/cf")
	with patch("cfplugin.connection.subprocess.run", side_effect=FileNotFoundError("No such file or directory")):
		with pytest.raises(CliCommandError, match="could not execute '/nonexistent/cf'"):
			connection.cli_command_without_terminal_output("curl", "/v2/spaces")


def test_get_spaces_follows_pages() -> None:
	pages = {
		"/v2/spaces": paged(resource("s1", name="dev"), next_url="/v2/spaces?page=2"),
		"/v2/spaces?page=2": paged(resource("s2", name="prod")),
	}

	def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
		return completed(pages[cmd[2]])

	with patch("cfplugin.connection.subprocess.run", side_effect=run) as run_mock:
		spaces = CFCliConnection().get_spaces()
	assert spaces == [Space(guid="s1", name="dev"), Space(guid="s2", name="prod")]
	assert run_mock.call_count == 2
	assert find_space(spaces, "s2").name == "prod"
	assert find_space(spaces, "unknown") == Space()


def test_get_orgs() -> None:
	with patch("cfplugin.connection.subprocess.run", return_value=completed(paged(resource("o1", name="acme")))) as run:
		assert CFCliConnection().get_orgs() == [Org(guid="o1", name="acme")]
	assert run.call_args[0][0] == ["cf", "curl", "/v2/organizations"]


def test_get_spaces_invalid_response() -> None:
	with patch("cfplugin.connection.subprocess.run", return_value=completed("FAILED\n")):
		with pytest.raises(CliCommandError, match="could not decode response of /v2/spaces"):
			CFCliConnection().get_spaces()


@pytest.mark.parametrize(
	"stdout, message",
	(
		("[]", "could not decode response of /v2/spaces. Error: expected an object, got list"),
		(
			'{"code": 10002, "description": "Authentication error", "error_code": "CF-NotAuthenticated"}',
			"request to /v2/spaces failed. Error: CF-NotAuthenticated: Authentication error",
		),
		('{"resources": {"a": 1}}', "resources is dict, expected array"),
		('{"resources": [], "next_url": 2}', "next_url is int, expected string"),
		('{"resources": [{"metadata": {"guid": "s1"}, "entity": {}}]}', "unexpected space in response of /v2/spaces. Error: resource has no entity.name"),
		('{"resources": [{"entity": {"name": "dev"}}]}', "resource has no metadata.guid"),
		('{"resources": [1]}', "resource has no metadata.guid"),
	),
)
def test_get_spaces_unexpected_response(stdout: str, message: str) -> None:
	with patch("cfplugin.connection.subprocess.run", return_value=completed(stdout)):
		with pytest.raises(CliCommandError, match=re.escape(message)):
			CFCliConnection().get_spaces()


def test_get_orgs_unexpected_resource() -> None:
	with patch("cfplugin.connection.subprocess.run", return_value=completed(paged(resource("o1")))):
		with pytest.raises(CliCommandError, match="unexpected organization in response of /v2/organizations"):
			CFCliConnection().get_orgs()


def test_describe_reports_unexpected_spaces() -> None:
	responses = {**broker_responses(), "/v2/spaces": envelope(resource("s1"))}

	def run(cmd: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
		return completed(orjson.dumps(responses[cmd[2]]).decode("utf-8"))

	with temp_context(), patch("cfplugin.connection.subprocess.run", side_effect=run):
		exit_code, stdout = run_cli(["describe", "-b", BROKER])
	assert exit_code == 1
	assert stdout == "FAILED: unexpected space in response of /v2/spaces. Error: resource has no entity.name\n"


def test_username_and_api_endpoint(tmp_path: Path) -> None:
	token = write_cf_config(tmp_path, {"user_name": "jane", "user_id": "u1"})
	connection = CFCliConnection(cf_home=tmp_path)
	assert connection.username() == "jane"
	assert connection.access_token() == token
	assert connection.api_endpoint() == "https://api.example.com"


def test_username_not_logged_in(tmp_path: Path) -> None:
	(tmp_path / ".cf").mkdir()
	(tmp_path / ".cf" / "config.json").write_bytes(orjson.dumps({"AccessToken": "", "Target": ""}))
	with pytest.raises(CliCommandError, match="not logged in"):
		CFCliConnection(cf_home=tmp_path).username()


def test_username_without_claim(tmp_path: Path) -> None:
	write_cf_config(tmp_path, {"user_id": "u1"})
	with pytest.raises(CliCommandError, match="could not determine the current user"):
		CFCliConnection(cf_home=tmp_path).username()


def test_missing_cf_config(tmp_path: Path) -> None:
	with pytest.raises(CliCommandError, match="could not read cf config file"):
		CFCliConnection(cf_home=tmp_path).api_endpoint()


def test_get_cli_connection() -> None:
	with temp_context() as tempdir:
		config.cf_binary = "cf7"
		config.cf_home = tempdir
		connection = get_cli_connection()
		assert isinstance(connection, CFCliConnection)
		assert connection.cf_binary == "cf7"
		assert connection.cf_home == tempdir
		assert get_cli_connection() is connection
		assert connection_module.cli_connection is connection
