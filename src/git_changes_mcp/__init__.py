"""Git Changes MCP Server - read working tree changes and commit them."""

__version__ = "0.1.0"

from git_changes_mcp.change_tracker import ChangeReader
from git_changes_mcp.git_operations import ChangeWriter
from git_changes_mcp.models import ChangeSet

__all__ = ["ChangeReader", "ChangeSet", "ChangeWriter"]
