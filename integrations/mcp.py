"""
External command runner for the MCP CLI (uniform transport to Notion, Zapier, Vercel, Sentry).

execute() never raises. It returns a tagged result:
  CommandOk(value, raw)             - exit 0; value is the parsed JSON, or
                                      {"success": True, "output": raw} when stdout is not JSON
  CommandError(kind, message, raw)  - CLI missing, non-zero exit, timeout or other OS error
"""
import json
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

from loguru import logger

from portal.config import get_mcp_cli


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    NON_ZERO_EXIT = "non_zero_exit"
    TIMEOUT = "timeout"
    OS_ERROR = "os_error"


@dataclass(frozen=True)
class CommandOk:
    value: Any
    raw: str

    @property
    def success(self) -> bool:
        # A JSON body that reports success: false is still a failed action.
        return not (isinstance(self.value, dict) and self.value.get("success") is False)

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.value, dict):
            return self.value.get(key, default)
        return default

    def to_dict(self) -> Dict[str, Any]:
        if isinstance(self.value, dict):
            return dict(self.value)
        return {"success": True, "output": self.value}


@dataclass(frozen=True)
class CommandError:
    kind: ErrorKind
    message: str
    raw: str = ""

    success = False

    def get(self, key: str, default: Any = None) -> Any:
        return default

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.message}


CommandResult = Union[CommandOk, CommandError]


def _text(data: Any) -> str:
    if data is None:
        return ""
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return str(data)


class McpRunner:
    def __init__(self, executable: Optional[str] = None, timeout: Optional[float] = None):
        self.executable = executable or get_mcp_cli()
        self.timeout = timeout

    def build_argv(self, server: str, command: str, args: Sequence[Any] = ()) -> list:
        return [self.executable, "--server", server, command, *[str(a) for a in args]]

    def execute(self, server: str, command: str, args: Sequence[Any] = ()) -> CommandResult:
        argv = self.build_argv(server, command, args)
        try:
            proc = subprocess.run(argv, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError:
            msg = f"{self.executable} not found on PATH"
            logger.error("MCP error ({}): {}", server, msg)
            return CommandError(ErrorKind.NOT_FOUND, msg)
        except subprocess.TimeoutExpired as e:
            msg = f"{self.executable} timed out after {self.timeout}s"
            logger.error("MCP error ({}): {}", server, msg)
            return CommandError(ErrorKind.TIMEOUT, msg, _text(e.stdout))
        except OSError as e:
            logger.error("MCP error ({}): {}", server, e)
            return CommandError(ErrorKind.OS_ERROR, str(e))

        stdout = _text(proc.stdout)
        if proc.returncode != 0:
            stderr = _text(proc.stderr).strip()
            msg = stderr or f"Command failed with exit code {proc.returncode}"
            logger.error("MCP error ({}): {}", server, msg)
            return CommandError(ErrorKind.NON_ZERO_EXIT, msg, stdout + _text(proc.stderr))

        try:
            value = json.loads(stdout)
        except ValueError:
            value = {"success": True, "output": stdout}
        return CommandOk(value, stdout)
