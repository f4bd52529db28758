"""
cf-plugin tests

pytest configuration
"""

import platform
from typing import Any, Generator

import pytest
from _pytest.config import Config as PytestConfig
from _pytest.logging import LogCaptureHandler
from _pytest.nodes import Item

import cfplugin.connection


def emit(*args: Any, **kwargs: Any) -> None:
	pass


LogCaptureHandler.emit = emit  # type: ignore[assignment]


@pytest.fixture(autouse=True)
def reset_cli_connection() -> Generator[None, None, None]:
	cfplugin.connection.cli_connection = None
	yield
	cfplugin.connection.cli_connection = None


@pytest.hookimpl()
def pytest_configure(config: PytestConfig) -> None:
	config.addinivalue_line("markers", "windows: mark test to run only on windows")
	config.addinivalue_line("markers", "linux: mark test to run only on linux")
	config.addinivalue_line("markers", "darwin: mark test to run only on darwin")
	config.addinivalue_line("markers", "posix: mark test to run only on posix")


PLATFORM = platform.system().lower()


def pytest_runtest_setup(item: Item) -> None:
	supported_platforms = []
	for marker in item.iter_markers():
		if marker.name in ("windows", "linux", "darwin", "posix"):
			if marker.name == "posix":
				supported_platforms.extend(["linux", "darwin"])
			else:
				supported_platforms.append(marker.name)

	if supported_platforms and PLATFORM not in supported_platforms:
		pytest.skip(f"Cannot run on {PLATFORM}")
