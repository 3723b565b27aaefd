"""Version control client used by the change reader and writer.

``VersionControlClient`` is the capability interface; ``GitCommandClient``
implements it by invoking the ``git`` executable through GitPython's command
runner. Every method runs in the given working directory and returns git's
raw standard output.
"""

import os
import time
from typing import Any, Protocol, runtime_checkable

from git import Git
from git.exc import GitCommandError, GitCommandNotFound

from git_changes_mcp.errors import ExternalCommandError, ExternalCommandLaunchError
from git_changes_mcp.logging_config import get_logger, log_git_operation

logger = get_logger(__name__)


def _git_in(path: str) -> Git:
    # GitPython falls back to the process directory when cwd is unusable
    if not os.path.isdir(path):
        raise NotADirectoryError(f"Repository path is not a directory: {path}")
    return Git(path)


@runtime_checkable
class VersionControlClient(Protocol):
    """Protocol for the version control operations the server relies on."""

    def status(self, path: str) -> str:
        """Return porcelain status output for the working tree."""
        ...

    def diff(self, path: str) -> str:
        """Return the diff of the working tree against the last commit."""
        ...

    def stage_all(self, path: str) -> str:
        """Stage every change in the working tree."""
        ...

    def commit(self, path: str, message: str) -> str:
        """Create a commit with exactly the given message."""
        ...

    def push(self, path: str) -> str:
        """Push the current branch to its configured upstream."""
        ...


def _to_text(value: Any) -> str:
    """Decode git output as UTF-8, replacing undecodable bytes with U+FFFD.

    GitPython decodes error output with ``surrogateescape``; those lone
    surrogates are folded back to bytes first so they get replaced too.
    """
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    text = str(value)
    return text.encode("utf-8", errors="surrogateescape").decode("utf-8", errors="replace")


def _clean_output(value: Any) -> str:
    """Strip GitPython's ``stderr: '...'`` decoration from captured output."""
    if not value:
        return ""
    text = _to_text(value).strip()
    for prefix in ("stderr: ", "stdout: "):
        if text.startswith(prefix):
            text = text[len(prefix):]
            if len(text) >= 2 and text[0] == text[-1] == "'":
                text = text[1:-1]
            break
    return text.strip()


class GitCommandClient:
    """Runs git subcommands via GitPython and translates its errors.

    Args:
        git_factory: Callable building a command runner bound to a working
            directory (defaults to ``git.Git`` on an existing directory)
    """

    def __init__(self, git_factory=_git_in):
        self._git_factory = git_factory

    def status(self, path: str) -> str:
        return self._run("status", path, "status", "--porcelain")

    def diff(self, path: str) -> str:
        return self._run("diff", path, "diff", "HEAD")

    def stage_all(self, path: str) -> str:
        return self._run("stage", path, "add", "--all")

    def commit(self, path: str, message: str) -> str:
        return self._run("commit", path, "commit", "-m", message)

    def push(self, path: str) -> str:
        return self._run("push", path, "push")

    def _run(self, step: str, path: str, subcommand: str, *args: str) -> str:
        """Run ``git <subcommand> <args>`` in ``path``.

        Raises:
            ExternalCommandLaunchError: If git could not be started
            ExternalCommandError: If git exited with a non-zero status
        """
        command = ["git", subcommand, *args]
        logger.debug("Running git command", extra={"step": step, "repository": path})
        start = time.time()

        try:
            runner = self._git_factory(path)
            output = getattr(runner, subcommand)(*args, stdout_as_string=False)
        except GitCommandNotFound as e:
            raise self._failed(step, path, start, ExternalCommandLaunchError(
                step=step,
                command=command,
                stderr=_clean_output(e.stderr) or _to_text(e)
            )) from e
        except OSError as e:
            raise self._failed(step, path, start, ExternalCommandLaunchError(
                step=step,
                command=command,
                stderr=_to_text(e)
            )) from e
        except GitCommandError as e:
            raise self._failed(step, path, start, ExternalCommandError(
                step=step,
                command=e.command or command,
                status=e.status,
                stderr=_clean_output(e.stderr) or _clean_output(e.stdout)
            )) from e

        log_git_operation(
            operation=step,
            repository=path,
            success=True,
            duration=time.time() - start
        )
        return _to_text(output)

    @staticmethod
    def _failed(
        step: str,
        path: str,
        start: float,
        error: ExternalCommandError
    ) -> ExternalCommandError:
        log_git_operation(
            operation=step,
            repository=path,
            success=False,
            duration=time.time() - start,
            error=str(error)
        )
        return error
