"""Exceptions raised by the Git Changes MCP Server."""

from typing import List, Optional, Sequence


class GitChangesError(Exception):
    """Base exception for all server errors."""


class ExternalCommandError(GitChangesError):
    """Raised when a git invocation exits with a non-zero status.

    Attributes:
        step: Logical step that failed (status, diff, stage, commit, push)
        command: The argv that was executed
        status: Exit status reported by git, if any
        stderr: Captured standard error output
    """

    def __init__(
        self,
        step: str,
        command: Optional[Sequence[str]] = None,
        status: Optional[int] = None,
        stderr: str = ""
    ):
        self.step = step
        self.command: List[str] = list(command or [])
        self.status = status
        self.stderr = stderr.strip()
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        cmd = " ".join(self.command) or "git"
        message = f"{self.step} failed: '{cmd}' exited with status {self.status}"
        if self.stderr:
            message += f": {self.stderr}"
        return message


class ExternalCommandLaunchError(ExternalCommandError):
    """Raised when git could not be started at all."""

    def _build_message(self) -> str:
        cmd = " ".join(self.command) or "git"
        message = f"{self.step} failed: could not launch '{cmd}'"
        if self.stderr:
            message += f": {self.stderr}"
        return message


class ToolNotFoundError(GitChangesError):
    """Raised when a tool name is not registered with the server."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Tool {name} not found")
