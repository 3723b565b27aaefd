"""Data models for Git Changes MCP Server."""

from dataclasses import dataclass, field
from typing import Dict, List, Union


@dataclass
class ChangeSet:
    """Represents the working tree changes of a Git repository.

    Attributes:
        modified: List of file paths reported as modified
        added: List of file paths reported as newly added
        deleted: List of file paths reported as deleted
        details: Mapping of file path to the raw ``+``/``-`` lines of its diff,
            in the order they appear in the diff text
    """
    modified: List[str] = field(default_factory=list)
    added: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    details: Dict[str, List[str]] = field(default_factory=dict)

    def is_empty(self) -> bool:
        """Check if there are no changes in this changeset.

        Returns:
            True if no file was reported by status and no diff section was found
        """
        return not (self.modified or self.added or self.deleted or self.details)

    def total_files(self) -> int:
        """Count the distinct files reported by the status query.

        A path carrying several flags (e.g. ``AM``) is counted once.

        Returns:
            Number of distinct paths across modified, added and deleted
        """
        return len(set(self.modified) | set(self.added) | set(self.deleted))

    def to_dict(self) -> Dict[str, object]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "modified": list(self.modified),
            "added": list(self.added),
            "deleted": list(self.deleted),
            "details": {path: list(lines) for path, lines in self.details.items()},
        }


@dataclass
class CommitRequest:
    """Arguments of a commit request.

    The message is passed to git as-is; it is not checked for emptiness,
    length or special characters.
    """
    message: str


@dataclass
class ToolSuccess:
    """Successful tool outcome carrying the response text."""
    text: str

    def to_text(self) -> str:
        return self.text


@dataclass
class ToolFailure:
    """Failed tool outcome carrying a human-readable error message."""
    error: str

    def to_text(self) -> str:
        return f"Error: {self.error}"


ToolResult = Union[ToolSuccess, ToolFailure]
