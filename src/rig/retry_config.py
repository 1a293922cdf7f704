"""Configuration for retry logic.

This module provides configurable retry settings for cloud CLI and SDK calls.

Design Philosophy:
- Sensible defaults: Works out of the box
- Environment-aware: Can be overridden via env vars
- Writes are never retried (a timed out create may still have succeeded)
"""

import os
from dataclasses import dataclass


@dataclass
class RetryConfig:
    """Retry configuration settings for rig operations."""

    # gcloud / gsutil read commands
    cloud_cli_max_attempts: int = 2
    cloud_cli_initial_delay: float = 1.0
    cloud_cli_max_delay: float = 10.0
    cloud_cli_timeout: int = 60

    # AI backend HTTP calls
    ai_request_timeout: int = 60

    # Global settings
    jitter_enabled: bool = True

    @classmethod
    def from_environment(cls) -> "RetryConfig":
        """Load retry configuration from environment variables.

        Environment variables (all optional):
            RIG_RETRY_MAX_ATTEMPTS: Max attempts for CLI reads (default: 2)
            RIG_RETRY_INITIAL_DELAY: Initial delay in seconds (default: 1.0)
            RIG_RETRY_MAX_DELAY: Max delay in seconds (default: 10.0)
            RIG_CLI_TIMEOUT: Subprocess timeout in seconds (default: 60)
            RIG_AI_TIMEOUT: AI request timeout in seconds (default: 60)
            RIG_RETRY_JITTER_ENABLED: Enable jitter (default: true)

        Returns:
            RetryConfig with values from environment or defaults
        """
        return cls(
            cloud_cli_max_attempts=int(os.getenv("RIG_RETRY_MAX_ATTEMPTS", "2")),
            cloud_cli_initial_delay=float(os.getenv("RIG_RETRY_INITIAL_DELAY", "1.0")),
            cloud_cli_max_delay=float(os.getenv("RIG_RETRY_MAX_DELAY", "10.0")),
            cloud_cli_timeout=int(os.getenv("RIG_CLI_TIMEOUT", "60")),
            ai_request_timeout=int(os.getenv("RIG_AI_TIMEOUT", "60")),
            jitter_enabled=os.getenv("RIG_RETRY_JITTER_ENABLED", "true").lower() == "true",
        )


# Global configuration instance (lazily loaded)
_config: RetryConfig | None = None


def get_retry_config() -> RetryConfig:
    """Get global retry configuration.

    Returns:
        RetryConfig instance (loaded from environment on first access)
    """
    global _config
    if _config is None:
        _config = RetryConfig.from_environment()
    return _config


def reset_retry_config() -> None:
    """Reset global retry configuration.

    Forces reload from environment on next access.
    """
    global _config
    _config = None


__all__ = ["RetryConfig", "get_retry_config", "reset_retry_config"]
