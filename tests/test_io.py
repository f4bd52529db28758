"""
test_io
"""

from pathlib import Path

from _pytest.capture import CaptureFixture

from cfplugin.config import config
from cfplugin.io import get_console, output_file_is_stdout, output_file_str, write_message, write_output_raw

from .utils import temp_context


def test_output_file_is_stdout() -> None:
	with temp_context() as tempdir:
		assert output_file_is_stdout()
		config.output_file = tempdir / "out.txt"
		assert not output_file_is_stdout()


def test_write_output_raw(capsys: CaptureFixture[str]) -> None:
	with temp_context():
		write_output_raw("Plan gold:\n")
		write_output_raw("")
	assert capsys.readouterr().out == "Plan gold:\n"


def test_write_output_raw_to_file(capsys: CaptureFixture[str]) -> None:
	with temp_context() as tempdir:
		output_file = Path(tempdir) / "out.txt"
		config.output_file = output_file
		write_output_raw("Plan gold:\n")
		assert output_file.read_text(encoding="utf-8") == "Plan gold:\n"
	assert capsys.readouterr().out == ""


def test_empty_output_creates_no_file() -> None:
	with temp_context() as tempdir:
		output_file = Path(tempdir) / "out.txt"
		config.output_file = output_file
		write_output_raw("")
		assert not output_file.exists()


def test_output_file_str() -> None:
	with temp_context() as tempdir:
		config.output_file = Path(tempdir) / "out.txt"
		with output_file_str() as file:
			file.write("äöü")
		assert (Path(tempdir) / "out.txt").read_text(encoding="utf-8") == "äöü"


def test_write_message_ignores_output_file(capsys: CaptureFixture[str]) -> None:
	with temp_context() as tempdir:
		config.output_file = Path(tempdir) / "out.txt"
		write_message("[b]my-broker[/b] not found :smile:", style="yellow")
		assert not (Path(tempdir) / "out.txt").exists()
	assert capsys.readouterr().out == "[b]my-broker[/b] not found :smile:\n"


def test_get_console() -> None:
	with temp_context():
		assert get_console().color_system is None
