"""Tests for the MCP command runner. subprocess.run is patched; no CLI is executed."""
import subprocess
from unittest.mock import MagicMock, patch

from integrations.mcp import CommandError, CommandOk, ErrorKind, McpRunner


def _completed(stdout="", stderr="", returncode=0):
    proc = MagicMock()
    proc.stdout = stdout
    proc.stderr = stderr
    proc.returncode = returncode
    return proc


def test_build_argv_stringifies_args():
    runner = McpRunner(executable="mcp-test")
    assert runner.build_argv("notion", "create-page", ["db", 3]) == [
        "mcp-test", "--server", "notion", "create-page", "db", "3",
    ]


def test_default_executable_from_config(monkeypatch):
    monkeypatch.setenv("MCP_CLI", "custom-mcp")
    assert McpRunner().executable == "custom-mcp"


def test_json_output_is_parsed():
    with patch("integrations.mcp.subprocess.run", return_value=_completed('{"success": true, "id": "p1"}')) as run:
        result = McpRunner(executable="mcp-test", timeout=5).execute("notion", "create-page", ["x"])
    assert isinstance(result, CommandOk)
    assert result.success is True
    assert result.get("id") == "p1"
    run.assert_called_once_with(
        ["mcp-test", "--server", "notion", "create-page", "x"], capture_output=True, text=True, timeout=5
    )


def test_non_json_output_wrapped():
    with patch("integrations.mcp.subprocess.run", return_value=_completed("deployed ok\n")):
        result = McpRunner(executable="mcp-test").execute("vercel", "deploy", [])
    assert isinstance(result, CommandOk)
    assert result.value == {"success": True, "output": "deployed ok\n"}
    assert result.to_dict() == {"success": True, "output": "deployed ok\n"}


def test_json_success_false_counts_as_failure():
    with patch("integrations.mcp.subprocess.run", return_value=_completed('{"success": false, "error": "quota"}')):
        result = McpRunner(executable="mcp-test").execute("vercel", "deploy", [])
    assert isinstance(result, CommandOk)
    assert result.success is False
    assert result.to_dict()["error"] == "quota"


def test_non_zero_exit():
    with patch("integrations.mcp.subprocess.run", return_value=_completed("", "boom", returncode=2)):
        result = McpRunner(executable="mcp-test").execute("sentry", "get-issues", ["p"])
    assert isinstance(result, CommandError)
    assert result.kind is ErrorKind.NON_ZERO_EXIT
    assert result.message == "boom"
    assert result.to_dict() == {"success": False, "error": "boom"}
    assert result.get("count") is None


def test_non_zero_exit_without_stderr():
    with patch("integrations.mcp.subprocess.run", return_value=_completed("", "", returncode=1)):
        result = McpRunner(executable="mcp-test").execute("sentry", "get-issues", [])
    assert result.message == "Command failed with exit code 1"


def test_cli_missing():
    with patch("integrations.mcp.subprocess.run", side_effect=FileNotFoundError()):
        result = McpRunner(executable="mcp-test").execute("notion", "create-page", [])
    assert result.kind is ErrorKind.NOT_FOUND
    assert result.success is False
    assert "mcp-test" in result.message


def test_timeout():
    err = subprocess.TimeoutExpired(cmd=["mcp-test"], timeout=1, output="partial")
    with patch("integrations.mcp.subprocess.run", side_effect=err):
        result = McpRunner(executable="mcp-test", timeout=1).execute("zapier", "trigger-event", [])
    assert result.kind is ErrorKind.TIMEOUT
    assert result.raw == "partial"


def test_other_os_error():
    with patch("integrations.mcp.subprocess.run", side_effect=PermissionError("denied")):
        result = McpRunner(executable="mcp-test").execute("notion", "create-page", [])
    assert result.kind is ErrorKind.OS_ERROR
    assert result.message == "denied"
