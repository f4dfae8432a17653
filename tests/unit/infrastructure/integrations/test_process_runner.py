"""Tests for ProcessRunner using small fake executables."""

from pathlib import Path

import pytest

from musicdrop.domain.exceptions import (
    ProcessFailedError,
    ProcessSpawnError,
    ProcessTimeoutError,
)
from musicdrop.infrastructure.integrations.process_runner import ProcessRunner, count_files


class TestProcessRunner:
    """run() success and each failure mode."""

    @pytest.fixture
    def runner(self) -> ProcessRunner:
        return ProcessRunner(kill_grace_seconds=2.0)

    async def test_success_captures_output(self, runner: ProcessRunner, fake_tool) -> None:
        tool = fake_tool("echo-args", "print(' '.join(argv))\n")
        output = await runner.run(tool, ["a", "b c"])
        assert output.success
        assert output.returncode == 0
        assert output.stdout.strip() == "a b c"

    async def test_arguments_are_not_shell_interpreted(
        self, runner: ProcessRunner, fake_tool, tmp_path: Path
    ) -> None:
        tool = fake_tool("count-args", "print(len(argv))\n")
        marker = tmp_path / "pwned"
        output = await runner.run(tool, [f"x; touch {marker}"])
        assert output.stdout.strip() == "1"
        assert not marker.exists()

    async def test_non_zero_exit(self, runner: ProcessRunner, fake_tool) -> None:
        tool = fake_tool("fails", "sys.stderr.write('ERROR: video unavailable')\nsys.exit(3)\n")
        with pytest.raises(ProcessFailedError) as exc_info:
            await runner.run(tool, [])
        assert exc_info.value.returncode == 3
        assert "video unavailable" in exc_info.value.message

    async def test_failure_falls_back_to_stdout(self, runner: ProcessRunner, fake_tool) -> None:
        tool = fake_tool("fails-stdout", "print('bad url')\nsys.exit(1)\n")
        with pytest.raises(ProcessFailedError, match="bad url"):
            await runner.run(tool, [])

    async def test_timeout_kills_child(self, runner: ProcessRunner, fake_tool) -> None:
        tool = fake_tool("hangs", "time.sleep(30)\n")
        with pytest.raises(ProcessTimeoutError) as exc_info:
            await runner.run(tool, [], timeout=0.5)
        assert exc_info.value.timeout == 0.5

    async def test_missing_executable(self, runner: ProcessRunner, tmp_path: Path) -> None:
        with pytest.raises(ProcessSpawnError, match="Could not start"):
            await runner.run(tmp_path / "does-not-exist", [])

    async def test_not_executable(self, runner: ProcessRunner, tmp_path: Path) -> None:
        script = tmp_path / "plain.txt"
        script.write_text("hello")
        with pytest.raises(ProcessSpawnError):
            await runner.run(script, [])


class TestCountFiles:
    """count_files() only counts plain files directly inside the directory."""

    def test_counts_files_not_dirs(self, tmp_path: Path) -> None:
        (tmp_path / "a.mp3").write_bytes(b"x")
        (tmp_path / "b.mp3").write_bytes(b"x")
        (tmp_path / "sub").mkdir()
        (tmp_path / "sub" / "c.mp3").write_bytes(b"x")
        assert count_files(tmp_path) == 2

    def test_missing_directory_is_zero(self, tmp_path: Path) -> None:
        assert count_files(tmp_path / "nope") == 0
