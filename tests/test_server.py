"""Unit tests for the MCP server tools and dispatcher."""

import asyncio
import json

import pytest
from unittest.mock import Mock
from fastmcp import Client
from fastmcp.exceptions import NotFoundError, ToolError

from git_changes_mcp.change_tracker import ChangeReader
from git_changes_mcp.config import ServerConfig
from git_changes_mcp.errors import ExternalCommandError
from git_changes_mcp.git_operations import ChangeWriter
from git_changes_mcp.models import ChangeSet, ToolFailure, ToolSuccess
from git_changes_mcp.server import (
    CHANGES_PREAMBLE,
    COMMIT_TOOL,
    READ_CHANGES_TOOL,
    ToolDispatcher,
    ToolErrorMiddleware,
    create_server,
    format_changes_response,
)
from git_changes_mcp.vcs_client import VersionControlClient


SAMPLE_CHANGES = ChangeSet(
    modified=["a.txt"],
    added=["b.txt"],
    deleted=[],
    details={"a.txt": ["+line"]}
)


def _extract_json(text: str) -> dict:
    body = text.split("```diff\n", 1)[1].rsplit("\n```", 1)[0]
    return json.loads(body)


class TestFormatChangesResponse:
    """Tests for the read tool response text."""

    def test_response_layout(self):
        text = format_changes_response(SAMPLE_CHANGES)

        assert text.startswith(f"{CHANGES_PREAMBLE}\n\n```diff\n")
        assert text.endswith("\n```\n")

    def test_response_embeds_indented_json(self):
        text = format_changes_response(SAMPLE_CHANGES)

        assert '\n  "modified": [\n    "a.txt"\n  ],' in text
        assert _extract_json(text) == SAMPLE_CHANGES.to_dict()

    def test_empty_changeset(self):
        text = format_changes_response(ChangeSet())

        assert _extract_json(text) == {
            "modified": [], "added": [], "deleted": [], "details": {}
        }


class TestToolDispatcher:
    """Tests for ToolDispatcher."""

    @pytest.fixture
    def reader(self):
        reader = Mock(spec=ChangeReader)
        reader.read_changes.return_value = SAMPLE_CHANGES
        return reader

    @pytest.fixture
    def writer(self):
        return Mock(spec=ChangeWriter)

    @pytest.fixture
    def dispatcher(self, reader, writer):
        return ToolDispatcher(reader, writer)

    def test_tool_names(self, dispatcher):
        assert dispatcher.tool_names == [READ_CHANGES_TOOL, COMMIT_TOOL]

    def test_read_tool_returns_changes(self, dispatcher, reader):
        result = asyncio.run(dispatcher.call_tool(READ_CHANGES_TOOL))

        assert isinstance(result, ToolSuccess)
        assert _extract_json(result.to_text()) == SAMPLE_CHANGES.to_dict()
        reader.read_changes.assert_called_once_with()

    def test_read_tool_failure_is_error_text(self, dispatcher, reader):
        reader.read_changes.side_effect = ExternalCommandError(
            step="diff", command=["git", "diff", "HEAD"], status=128,
            stderr="fatal: ambiguous argument 'HEAD'"
        )

        result = asyncio.run(dispatcher.call_tool(READ_CHANGES_TOOL, {}))

        assert isinstance(result, ToolFailure)
        text = result.to_text()
        assert text.startswith("Error: Failed to get git changes: ")
        assert "fatal: ambiguous argument 'HEAD'" in text

    def test_commit_tool_success(self, dispatcher, writer):
        result = asyncio.run(dispatcher.call_tool(COMMIT_TOOL, {"message": "feat: add b"}))

        assert result == ToolSuccess("Successfully committed with message: feat: add b")
        writer.commit_and_push.assert_called_once_with("feat: add b")

    def test_commit_tool_failure_is_error_text(self, dispatcher, writer):
        writer.commit_and_push.side_effect = ExternalCommandError(
            step="push", command=["git", "push"], status=128,
            stderr="fatal: No configured push destination."
        )

        result = asyncio.run(dispatcher.call_tool(COMMIT_TOOL, {"message": "x"}))

        text = result.to_text()
        assert text.startswith("Error: Failed to commit changes: push failed")
        assert "No configured push destination." in text

    def test_commit_tool_requires_message(self, dispatcher, writer):
        result = asyncio.run(dispatcher.call_tool(COMMIT_TOOL, {}))

        assert result == ToolFailure("Missing required argument: message")
        writer.commit_and_push.assert_not_called()

    def test_commit_tool_accepts_empty_message(self, dispatcher, writer):
        asyncio.run(dispatcher.call_tool(COMMIT_TOOL, {"message": ""}))

        writer.commit_and_push.assert_called_once_with("")

    def test_unknown_tool_is_error_text(self, dispatcher, reader, writer):
        result = asyncio.run(dispatcher.call_tool("git-changes-revert", {}))

        assert result.to_text() == "Error: Tool git-changes-revert not found"
        reader.read_changes.assert_not_called()
        writer.commit_and_push.assert_not_called()

    def test_unexpected_error_is_error_text(self, dispatcher, reader):
        reader.read_changes.side_effect = RuntimeError("disk on fire")

        result = asyncio.run(dispatcher.call_tool(READ_CHANGES_TOOL))

        assert result.to_text() == "Error: Failed to get git changes: disk on fire"

    def test_unexpected_commit_error_keeps_prefix(self, dispatcher, writer):
        writer.commit_and_push.side_effect = UnicodeDecodeError(
            "utf-8", b"\xe9", 0, 1, "invalid continuation byte"
        )

        result = asyncio.run(dispatcher.call_tool(COMMIT_TOOL, {"message": "x"}))

        assert isinstance(result, ToolFailure)
        assert result.to_text().startswith("Error: Failed to commit changes: ")
        assert "invalid continuation byte" in result.to_text()

    def test_invalid_arguments_names_missing_message(self, dispatcher):
        failure = dispatcher.invalid_arguments(COMMIT_TOOL, {"message": None}, ValueError("x"))

        assert failure == ToolFailure("Missing required argument: message")

    def test_invalid_arguments_carries_validation_text(self, dispatcher):
        failure = dispatcher.invalid_arguments(
            COMMIT_TOOL, {"message": 5}, ValueError("Input should be a valid string")
        )

        assert failure.to_text() == (
            f"Error: Invalid arguments for tool {COMMIT_TOOL}: Input should be a valid string"
        )


class TestToolErrorMiddleware:
    """Tests for ToolErrorMiddleware."""

    @pytest.fixture
    def middleware(self):
        return ToolErrorMiddleware(ToolDispatcher(Mock(spec=ChangeReader), Mock(spec=ChangeWriter)))

    def test_not_found_becomes_error_text(self, middleware):
        context = Mock()
        context.message.name = "git-changes-revert"

        async def call_next(ctx):
            raise NotFoundError("Unknown tool: git-changes-revert")

        result = asyncio.run(middleware.on_call_tool(context, call_next))

        assert result.content[0].text == "Error: Tool git-changes-revert not found"

    def test_rejected_arguments_become_error_text(self, middleware):
        context = Mock()
        context.message.name = COMMIT_TOOL
        context.message.arguments = None

        async def call_next(ctx):
            raise ToolError("Missing required argument")

        result = asyncio.run(middleware.on_call_tool(context, call_next))

        assert result.content[0].text == "Error: Missing required argument: message"

    def test_known_tool_result_passes_through(self, middleware):
        sentinel = object()

        async def call_next(ctx):
            return sentinel

        result = asyncio.run(middleware.on_call_tool(Mock(), call_next))

        assert result is sentinel


class TestCreateServer:
    """Tests for the FastMCP server wiring."""

    @pytest.fixture
    def mock_client(self):
        client = Mock(spec=VersionControlClient)
        client.status.return_value = "M  a.txt\nA  b.txt\n"
        client.diff.return_value = "diff --git a/a.txt b/a.txt\n+line\n"
        return client

    @pytest.fixture
    def server(self, mock_client):
        return create_server(ServerConfig(repository_path="/repo"), client=mock_client)

    def test_lists_both_tools(self, server):
        async def list_tools():
            async with Client(server) as client:
                return await client.list_tools()

        tools = {tool.name: tool for tool in asyncio.run(list_tools())}

        assert set(tools) == {READ_CHANGES_TOOL, COMMIT_TOOL}
        assert tools[COMMIT_TOOL].inputSchema["required"] == ["message"]
        assert tools[READ_CHANGES_TOOL].description.startswith("Extract the Git diff")

    def test_read_tool_over_protocol(self, server, mock_client):
        async def call():
            async with Client(server) as client:
                return await client.call_tool_mcp(READ_CHANGES_TOOL, {})

        result = asyncio.run(call())

        assert result.isError is False
        assert _extract_json(result.content[0].text) == SAMPLE_CHANGES.to_dict()
        mock_client.status.assert_called_once_with("/repo")
        mock_client.diff.assert_called_once_with("/repo")

    def test_commit_failure_over_protocol_is_not_a_protocol_error(self, server, mock_client):
        mock_client.stage_all.side_effect = ExternalCommandError(
            step="stage", command=["git", "add", "--all"], status=128,
            stderr="fatal: not a git repository"
        )

        async def call():
            async with Client(server) as client:
                return await client.call_tool_mcp(COMMIT_TOOL, {"message": "x"})

        result = asyncio.run(call())

        assert result.isError is False
        assert result.content[0].text.startswith("Error: Failed to commit changes: stage failed")
        mock_client.commit.assert_not_called()
        mock_client.push.assert_not_called()

    def test_unknown_tool_over_protocol(self, server):
        async def call():
            async with Client(server) as client:
                return await client.call_tool_mcp("git-changes-revert", {})

        result = asyncio.run(call())

        assert result.isError is False
        assert result.content[0].text == "Error: Tool git-changes-revert not found"

    def test_commit_without_message_over_protocol(self, server, mock_client):
        async def call():
            async with Client(server) as client:
                return await client.call_tool_mcp(COMMIT_TOOL, {})

        result = asyncio.run(call())

        assert result.isError is False
        assert result.content[0].text == "Error: Missing required argument: message"
        mock_client.stage_all.assert_not_called()

    def test_commit_with_non_string_message_over_protocol(self, server, mock_client):
        async def call():
            async with Client(server) as client:
                return await client.call_tool_mcp(COMMIT_TOOL, {"message": 5})

        result = asyncio.run(call())

        assert result.isError is False
        assert result.content[0].text.startswith(
            f"Error: Invalid arguments for tool {COMMIT_TOOL}: "
        )
        mock_client.stage_all.assert_not_called()
