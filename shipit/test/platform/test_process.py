"""Tests for shipit.platform.process module."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from shipit.core.result import Err, Ok
from shipit.platform.process import ProcessError, ProcessStream, run, stream

PY = sys.executable


class TestProcessError:
    def test_str_short_command(self) -> None:
        error = ProcessError(("npm", "test"), 1, "", "")
        assert str(error) == "npm test failed (exit 1)"

    def test_str_long_command_truncated(self) -> None:
        error = ProcessError(("npm", "install", "--no-package-lock", "--no-production"), 1, "", "")
        assert str(error) == "npm install --no-package-lock ... failed (exit 1)"

    def test_detail_prefers_stderr(self) -> None:
        assert ProcessError(("x",), 1, "out", "err\n").detail == "err"
        assert ProcessError(("x",), 1, "out\n", "").detail == "out"
        assert ProcessError(("x",), 2, "", "").detail == "x failed (exit 2)"

    def test_output_combines_streams(self) -> None:
        error = ProcessError(("x",), 1, "from stdout", "from stderr")
        assert "from stdout" in error.output
        assert "from stderr" in error.output


class TestRun:
    def test_success_returns_stdout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "print('hello')"], cwd=tmp_path)
        assert isinstance(result, Ok)
        assert "hello" in result.value

    def test_failure_returns_error(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import sys; sys.stderr.write('bad'); sys.exit(42)"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == 42
        assert "bad" in result.error.stderr

    def test_command_not_found(self, tmp_path: Path) -> None:
        result = run(["nonexistent_command_12345"], cwd=tmp_path)
        assert isinstance(result, Err)
        assert result.error.returncode == -1

    def test_timeout(self, tmp_path: Path) -> None:
        result = run([PY, "-c", "import time; time.sleep(10)"], cwd=tmp_path, timeout=0.5)
        assert isinstance(result, Err)
        assert "timed out" in result.error.stderr


class TestStream:
    def test_delivers_non_empty_lines_in_order(self, tmp_path: Path) -> None:
        lines: list[str] = []
        script = "print('one'); print(''); print('two'); print('   '); print('three')"

        result = stream([PY, "-c", script], cwd=tmp_path, on_line=lines.append)

        assert isinstance(result, Ok)
        assert lines == ["one", "two", "three"]
        assert result.value.splitlines() == ["one", "", "two", "   ", "three"]

    def test_includes_stderr_lines(self, tmp_path: Path) -> None:
        lines: list[str] = []
        script = (
            "import sys\n"
            "print('out', flush=True)\n"
            "sys.stderr.write('err\\n')\n"
        )

        result = stream([PY, "-c", script], cwd=tmp_path, on_line=lines.append)

        assert isinstance(result, Ok)
        assert sorted(lines) == ["err", "out"]
        assert result.value == "out\n"

    def test_failure_carries_stderr_and_exit_status(self, tmp_path: Path) -> None:
        lines: list[str] = []
        script = (
            "import sys\n"
            "print('progress', flush=True)\n"
            "sys.stderr.write('error Your lockfile needs to be updated\\n')\n"
            "sys.exit(3)\n"
        )

        result = stream([PY, "-c", script], cwd=tmp_path, on_line=lines.append)

        assert isinstance(result, Err)
        assert result.error.returncode == 3
        assert result.error.stderr.startswith("error Your lockfile needs to be updated")
        assert result.error.stdout == "progress\n"
        assert "progress" in lines

    def test_completion_resolves_after_last_line(self, tmp_path: Path) -> None:
        proc = ProcessStream([PY, "-c", "for i in range(50): print(i)"], cwd=tmp_path)
        seen: list[str] = []

        def listener(line: str) -> None:
            assert not proc.completion.done()
            seen.append(line)

        proc.subscribe(listener)
        result = proc.run()

        assert proc.completion.done()
        assert proc.completion.result() == result
        assert seen == [str(i) for i in range(50)]

    def test_every_listener_receives_lines(self, tmp_path: Path) -> None:
        proc = ProcessStream([PY, "-c", "print('x')"], cwd=tmp_path)
        a: list[str] = []
        b: list[str] = []
        proc.subscribe(a.append)
        proc.subscribe(b.append)

        proc.run()

        assert a == b == ["x"]

    def test_spawn_failure_resolves_completion(self, tmp_path: Path) -> None:
        proc = ProcessStream(["nonexistent_command_12345"], cwd=tmp_path)

        result = proc.run()

        assert isinstance(result, Err)
        assert result.error.returncode == -1
        assert proc.completion.result() == result

    def test_listener_error_propagates(self, tmp_path: Path) -> None:
        def boom(line: str) -> None:
            raise RuntimeError(line)

        with pytest.raises(RuntimeError, match="hello"):
            stream([PY, "-c", "print('hello')"], cwd=tmp_path, on_line=boom)
