"""Git operations for staging, committing and pushing changes."""

from git_changes_mcp.logging_config import get_logger
from git_changes_mcp.vcs_client import VersionControlClient

logger = get_logger(__name__)


class ChangeWriter:
    """Stages, commits and pushes every change of a repository.

    The three steps run strictly in order and the first failure stops the
    sequence. Nothing is rolled back: a failed commit leaves the index staged,
    a failed push leaves the local commit in place.

    Args:
        client: Version control client used to mutate the repository
        repository_path: Working directory of the repository
    """

    def __init__(self, client: VersionControlClient, repository_path: str):
        self.client = client
        self.repository_path = repository_path

    def commit_and_push(self, message: str) -> None:
        """Stage all changes, commit them with ``message`` and push.

        Args:
            message: Commit message, used verbatim

        Raises:
            ExternalCommandError: Naming the step (stage, commit, push) that failed
        """
        logger.info("Staging all changes", extra={"repository": self.repository_path})
        self.client.stage_all(self.repository_path)

        logger.info("Creating commit", extra={"repository": self.repository_path})
        self.client.commit(self.repository_path, message)

        logger.info("Pushing to remote", extra={"repository": self.repository_path})
        self.client.push(self.repository_path)

        logger.info("Commit pushed successfully", extra={"repository": self.repository_path})
