"""Configuration management for Git Changes MCP Server."""

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import find_dotenv, load_dotenv


def _default_repository_path() -> str:
    return os.getcwd()


@dataclass
class ServerConfig:
    """Configuration settings for the MCP server.

    Attributes:
        repository_path: Working directory every git command runs in
        server_name: Name announced to MCP clients
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format ("text" or "json")
        log_file: Optional file that receives a copy of the logs
    """
    repository_path: str = field(default_factory=_default_repository_path)
    server_name: str = "commit-generator/v1"

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "ServerConfig":
        """Load configuration from environment variables.

        A ``.env`` file is loaded first (the given one, or the nearest one
        found walking up from the current directory). Variables already set in
        the environment take precedence.

        Args:
            env_file: Optional path to .env file to load

        Returns:
            ServerConfig instance populated from environment variables
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))

        # Empty REPOSITORY_PATH behaves like an unset one
        config = cls(
            repository_path=os.getenv("REPOSITORY_PATH") or os.getcwd(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
            log_file=os.getenv("LOG_FILE") or None,
        )

        config.validate()

        return config

    @property
    def use_json_logs(self) -> bool:
        return self.log_format == "json"

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ValueError: If any configuration value is invalid
        """
        valid_log_levels = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
        if self.log_level not in valid_log_levels:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. "
                f"Must be one of {valid_log_levels}"
            )

        valid_log_formats = ("text", "json")
        if self.log_format not in valid_log_formats:
            raise ValueError(
                f"Invalid log_format: {self.log_format}. "
                f"Must be one of {valid_log_formats}"
            )

        if not self.repository_path:
            raise ValueError("repository_path must not be empty")
