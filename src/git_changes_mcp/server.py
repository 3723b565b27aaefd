"""Main MCP server implementation.

Exposes two tools over MCP:

- ``git-changes-commit-message``: summarise the working tree changes so the
  client can write a commit message for them
- ``git-changes-commit``: stage everything, commit with the given message
  and push

Tool failures never surface as protocol errors. Every error is caught at the
request boundary and returned as a normal text result starting with
``Error:``.
"""

import asyncio
import json
from typing import Annotated, Any, Awaitable, Callable, Dict, Optional

from fastmcp import FastMCP
from fastmcp.exceptions import NotFoundError, ToolError
from fastmcp.server.middleware import Middleware, MiddlewareContext
from fastmcp.tools.tool import ToolResult as MCPToolResult
from mcp.types import TextContent
from pydantic import Field, ValidationError

from git_changes_mcp.change_tracker import ChangeReader
from git_changes_mcp.config import ServerConfig
from git_changes_mcp.errors import ExternalCommandError, ToolNotFoundError
from git_changes_mcp.git_operations import ChangeWriter
from git_changes_mcp.logging_config import clear_request_id, get_logger, set_request_id
from git_changes_mcp.models import ChangeSet, ToolFailure, ToolResult, ToolSuccess
from git_changes_mcp.vcs_client import GitCommandClient, VersionControlClient

logger = get_logger(__name__)

READ_CHANGES_TOOL = "git-changes-commit-message"
COMMIT_TOOL = "git-changes-commit"

SERVER_INSTRUCTIONS = "A tool to generate commit messages based on git diffs."

READ_CHANGES_DESCRIPTION = (
    "Extract the Git diff of the current repository. This tool helps generate "
    "detailed commit messages by providing a comparison of changes. When prompted "
    "to commit changes, use this tool to automatically capture the differences and "
    "craft meaningful commit messages based on the modifications."
)

COMMIT_DESCRIPTION = (
    "Commit changes to the Git repository. This tool allows you to save your "
    "changes with a meaningful commit message. Use this tool after extracting the "
    "Git diff to finalize your changes in the repository."
)

MESSAGE_DESCRIPTION = (
    "The commit message. That should be a concise summary of the changes made. "
    "It should be clear and descriptive enough to understand the purpose of the commit."
)

CHANGES_PREAMBLE = (
    "Here is the Git diff of the current repository. Please review the changes "
    "and provide a meaningful commit message based on this diff:"
)

REQUIRED_ARGUMENTS = {
    COMMIT_TOOL: ("message",),
}


def format_changes_response(changes: ChangeSet) -> str:
    """Render a ChangeSet as the text returned by the read tool."""
    formatted = json.dumps(changes.to_dict(), indent=2, ensure_ascii=False)
    return f"{CHANGES_PREAMBLE}\n\n```diff\n{formatted}\n```\n"


class ToolDispatcher:
    """Routes tool calls to the change reader and writer.

    Every call returns a ``ToolSuccess`` or ``ToolFailure``; exceptions do
    not escape ``call_tool``.

    Args:
        reader: Reader used by the read tool
        writer: Writer used by the commit tool
    """

    def __init__(self, reader: ChangeReader, writer: ChangeWriter):
        self.reader = reader
        self.writer = writer
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[ToolResult]]] = {
            READ_CHANGES_TOOL: self._read_changes,
            COMMIT_TOOL: self._commit,
        }

    @property
    def tool_names(self):
        return list(self._handlers)

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None
    ) -> ToolResult:
        """Run the named tool.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            ToolSuccess with the response text, or ToolFailure describing the error
        """
        set_request_id()
        logger.info("Tool call received", extra={"tool": name})
        try:
            handler = self._handlers.get(name)
            if handler is None:
                raise ToolNotFoundError(name)
            return await handler(arguments or {})
        except ToolNotFoundError as e:
            logger.warning("Unknown tool requested", extra={"tool": name})
            return ToolFailure(str(e))
        except Exception as e:
            logger.exception("Unexpected error during tool call", extra={"tool": name})
            return ToolFailure(str(e))
        finally:
            clear_request_id()

    def invalid_arguments(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]],
        error: Exception
    ) -> ToolFailure:
        """Describe arguments that were rejected before reaching a handler.

        Args:
            name: Tool name
            arguments: Arguments as sent by the client
            error: Validation error raised for them

        Returns:
            ToolFailure naming the first missing argument, or carrying the
            validation error text
        """
        missing = _missing_argument(name, arguments or {})
        if missing:
            failure = ToolFailure(f"Missing required argument: {missing}")
        else:
            failure = ToolFailure(f"Invalid arguments for tool {name}: {error}")
        logger.warning("Rejected tool arguments", extra={"tool": name, "error": str(error)})
        return failure

    async def _read_changes(self, arguments: Dict[str, Any]) -> ToolResult:
        try:
            changes = await asyncio.to_thread(self.reader.read_changes)
        except ExternalCommandError as e:
            logger.error("Failed to get git changes", extra={"error": str(e), "step": e.step})
            return ToolFailure(f"Failed to get git changes: {e}")
        except Exception as e:
            logger.exception("Unexpected error while reading changes")
            return ToolFailure(f"Failed to get git changes: {e}")

        return ToolSuccess(format_changes_response(changes))

    async def _commit(self, arguments: Dict[str, Any]) -> ToolResult:
        missing = _missing_argument(COMMIT_TOOL, arguments)
        if missing:
            return ToolFailure(f"Missing required argument: {missing}")
        message = str(arguments["message"])

        try:
            await asyncio.to_thread(self.writer.commit_and_push, message)
        except ExternalCommandError as e:
            logger.error("Failed to commit changes", extra={"error": str(e), "step": e.step})
            return ToolFailure(f"Failed to commit changes: {e}")
        except Exception as e:
            logger.exception("Unexpected error while committing changes")
            return ToolFailure(f"Failed to commit changes: {e}")

        return ToolSuccess(f"Successfully committed with message: {message}")


def _missing_argument(name: str, arguments: Dict[str, Any]) -> Optional[str]:
    for argument in REQUIRED_ARGUMENTS.get(name, ()):
        if arguments.get(argument) is None:
            return argument
    return None


def _text_result(failure: ToolFailure) -> MCPToolResult:
    return MCPToolResult(content=[TextContent(type="text", text=failure.to_text())])


class ToolErrorMiddleware(Middleware):
    """Turns FastMCP's own call failures into ``Error:`` text results.

    FastMCP rejects unknown tool names and arguments that fail schema
    validation before any handler runs. Both are answered as a successful
    call whose text starts with ``Error:``.

    Args:
        dispatcher: Dispatcher used to word argument failures
    """

    def __init__(self, dispatcher: ToolDispatcher):
        self.dispatcher = dispatcher

    async def on_call_tool(self, context: MiddlewareContext, call_next):
        try:
            return await call_next(context)
        except NotFoundError:
            name = context.message.name
            logger.warning("Unknown tool requested", extra={"tool": name})
            return _text_result(ToolFailure(str(ToolNotFoundError(name))))
        except (ToolError, ValidationError) as e:
            return _text_result(self.dispatcher.invalid_arguments(
                context.message.name,
                context.message.arguments,
                e
            ))


def create_dispatcher(
    config: ServerConfig,
    client: Optional[VersionControlClient] = None
) -> ToolDispatcher:
    """Build a dispatcher whose reader and writer target ``config.repository_path``."""
    client = client or GitCommandClient()
    return ToolDispatcher(
        reader=ChangeReader(client, config.repository_path),
        writer=ChangeWriter(client, config.repository_path)
    )


def create_server(
    config: ServerConfig,
    client: Optional[VersionControlClient] = None
) -> FastMCP:
    """Create the FastMCP server with both tools registered.

    Args:
        config: Server configuration
        client: Version control client (defaults to GitCommandClient)

    Returns:
        Configured FastMCP instance
    """
    dispatcher = create_dispatcher(config, client)
    mcp = FastMCP(config.server_name, instructions=SERVER_INSTRUCTIONS)
    mcp.add_middleware(ToolErrorMiddleware(dispatcher))

    @mcp.tool(name=READ_CHANGES_TOOL, description=READ_CHANGES_DESCRIPTION)
    async def git_changes_commit_message() -> str:
        result = await dispatcher.call_tool(READ_CHANGES_TOOL, {})
        return result.to_text()

    @mcp.tool(name=COMMIT_TOOL, description=COMMIT_DESCRIPTION)
    async def git_changes_commit(
        message: Annotated[str, Field(description=MESSAGE_DESCRIPTION)]
    ) -> str:
        result = await dispatcher.call_tool(COMMIT_TOOL, {"message": message})
        return result.to_text()

    logger.info(
        "MCP server created",
        extra={"server_name": config.server_name, "repository": config.repository_path}
    )
    return mcp


def run_stdio_server(config: ServerConfig) -> None:
    """Run the MCP server over stdio until the client disconnects."""
    create_server(config).run(transport="stdio")
