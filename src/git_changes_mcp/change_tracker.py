"""Change tracking component for reading Git working tree changes."""

from typing import Dict, List, Optional, Tuple

from git_changes_mcp.logging_config import get_logger
from git_changes_mcp.models import ChangeSet
from git_changes_mcp.vcs_client import VersionControlClient

logger = get_logger(__name__)

DIFF_HEADER = "diff --git"
DIFF_TARGET_MARKER = " b/"


def parse_status_output(status_output: str) -> Tuple[List[str], List[str], List[str]]:
    """Sort ``git status --porcelain`` lines into modified, added and deleted.

    The status code occupies the first two columns and the path starts at
    the fourth. A code is matched by letter, so ``AM`` lands in both added
    and modified. Codes without ``M``, ``A`` or ``D`` (untracked, renamed,
    copied, unmerged) are not recorded.

    Args:
        status_output: Raw porcelain status text

    Returns:
        Tuple of (modified, added, deleted) path lists in input order
    """
    modified: List[str] = []
    added: List[str] = []
    deleted: List[str] = []

    for line in status_output.split("\n"):
        if not line:
            continue
        code, path = line[:2].strip(), line[3:]
        if "M" in code:
            modified.append(path)
        if "A" in code:
            added.append(path)
        if "D" in code:
            deleted.append(path)

    return modified, added, deleted


def _diff_header_path(line: str) -> Optional[str]:
    # Everything after the first " b/" is the path on the working tree side
    _, marker, path = line.partition(DIFF_TARGET_MARKER)
    if not marker or not path:
        return None
    return path


def parse_diff_output(diff_output: str) -> Dict[str, List[str]]:
    """Collect the added and removed lines of each file in a unified diff.

    Args:
        diff_output: Raw ``git diff`` text

    Returns:
        Mapping of file path to its ``+``/``-`` lines, ``+++``/``---``
        headers excluded. Files appear in diff order.
    """
    details: Dict[str, List[str]] = {}
    current_file: Optional[str] = None

    for line in diff_output.split("\n"):
        if line.startswith(DIFF_HEADER):
            current_file = _diff_header_path(line)
            if current_file is not None:
                details[current_file] = []
        elif line.startswith(("+", "-")):
            if current_file is not None and not line.startswith(("+++", "---")):
                details[current_file].append(line)

    return details


def build_change_set(status_output: str, diff_output: str) -> ChangeSet:
    """Assemble a ChangeSet from status and diff text.

    The two sources are independent: a file may be listed by status without
    a diff section (untracked content, empty diff) and vice versa.
    """
    modified, added, deleted = parse_status_output(status_output)
    return ChangeSet(
        modified=modified,
        added=added,
        deleted=deleted,
        details=parse_diff_output(diff_output)
    )


class ChangeReader:
    """Reads the working tree changes of a repository.

    Args:
        client: Version control client used to query the repository
        repository_path: Working directory of the repository
    """

    def __init__(self, client: VersionControlClient, repository_path: str):
        self.client = client
        self.repository_path = repository_path

    def read_changes(self) -> ChangeSet:
        """Query status and diff and parse them into a ChangeSet.

        Returns:
            ChangeSet describing the current working tree

        Raises:
            ExternalCommandError: If either git query fails
        """
        status_output = self.client.status(self.repository_path)
        diff_output = self.client.diff(self.repository_path)

        changes = build_change_set(status_output, diff_output)

        logger.info(
            "Read working tree changes",
            extra={
                "repository": self.repository_path,
                "files_changed": changes.total_files(),
                "files_with_diff": len(changes.details),
            }
        )
        return changes
