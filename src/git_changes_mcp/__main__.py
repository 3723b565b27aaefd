"""Entry point for running the Git Changes MCP Server.

This module provides the entry point for the MCP server with stdio transport.
It handles:
- Configuration loading from environment variables
- Logging setup
- Error handling and graceful shutdown
"""

import sys

from git_changes_mcp import __version__
from git_changes_mcp.config import ServerConfig
from git_changes_mcp.logging_config import get_logger, setup_logging
from git_changes_mcp.server import run_stdio_server

logger = get_logger(__name__)


def main():
    """Main entry point for the MCP server.

    Exit codes:
    - 0: Interrupted by the user
    - 1: Configuration error
    - 2: Transport failed to start
    """
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        # Logging is not configured yet
        setup_logging(stream="stderr")
        logger.error(f"Configuration error: {e}", extra={"error": str(e)})
        sys.exit(1)

    # stdout is reserved for MCP protocol JSON
    setup_logging(
        log_level=config.log_level,
        use_json=config.use_json_logs,
        log_file=config.log_file,
        stream="stderr"
    )

    logger.info(
        "Starting Git Changes MCP Server",
        extra={
            "version": __version__,
            "transport": "stdio",
            "repository": config.repository_path,
        }
    )

    try:
        run_stdio_server(config)
    except KeyboardInterrupt:
        logger.info("Received interrupt signal, shutting down")
        sys.exit(0)
    except Exception as e:
        logger.exception("Failed to start server", extra={"error": str(e)})
        sys.exit(2)


if __name__ == "__main__":
    main()
