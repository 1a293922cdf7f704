"""Standardized gcloud/gsutil subprocess execution.

Provides run_gcloud_command() - a thin wrapper around subprocess.run that adds
automatic retry with exponential backoff for timed out Google Cloud CLI
commands. Only timeouts are retried: a non-zero exit is a real answer from the
backend (permission denied, API disabled, not found) and is raised at once.

Usage:
    from rig.gcloud_executor import run_gcloud_command

    result = run_gcloud_command(["gcloud", "compute", "instances", "list", "--format=json"])

    # Writes: one attempt, longer timeout
    result = run_gcloud_command(["gcloud", "compute", "instances", "create", ...],
                                timeout=300, max_attempts=1)
"""

import json
import logging
import subprocess
from typing import Any

from rig.cancellation import CancellationToken, check_cancelled
from rig.retry_config import get_retry_config
from rig.retry_handler import retry_with_exponential_backoff

logger = logging.getLogger(__name__)


def run_gcloud_command(
    cmd: list[str],
    *,
    timeout: int | None = None,
    max_attempts: int | None = None,
    check: bool = True,
    cancel_token: CancellationToken | None = None,
) -> subprocess.CompletedProcess[str]:
    """Execute a gcloud or gsutil command with retry on timeout.

    Args:
        cmd: Command list starting with "gcloud" or "gsutil"
        timeout: Subprocess timeout in seconds (default: from RetryConfig)
        max_attempts: Number of attempts (default: from RetryConfig)
        check: If True, raise CalledProcessError on non-zero exit
        cancel_token: Checked before every attempt

    Returns:
        subprocess.CompletedProcess with stdout/stderr

    Raises:
        subprocess.CalledProcessError: Non-zero exit (when check=True)
        subprocess.TimeoutExpired: After retries exhausted
        FileNotFoundError: The CLI binary is not installed
        OperationCancelledError: The token was cancelled
    """
    config = get_retry_config()
    attempts = max_attempts or config.cloud_cli_max_attempts
    effective_timeout = timeout or config.cloud_cli_timeout

    @retry_with_exponential_backoff(
        max_attempts=attempts,
        initial_delay=config.cloud_cli_initial_delay,
        max_delay=config.cloud_cli_max_delay,
        jitter=config.jitter_enabled,
        retryable_exceptions=(subprocess.TimeoutExpired,),
    )
    def _run() -> subprocess.CompletedProcess[str]:
        check_cancelled(cancel_token)
        logger.debug(f"Running: {' '.join(cmd)}")
        return subprocess.run(
            cmd, capture_output=True, text=True, check=check, timeout=effective_timeout
        )

    return _run()


def parse_json_output(stdout: str | None) -> Any:
    """Parse JSON command output, treating empty output as an empty list."""
    if not stdout or not stdout.strip():
        return []
    return json.loads(stdout)


def describe_failure(error: Exception) -> str:
    """Extract a readable message from a subprocess failure."""
    if isinstance(error, subprocess.CalledProcessError):
        stderr = (error.stderr or "").strip() if isinstance(error.stderr, str) else ""
        return stderr or f"command exited with status {error.returncode}"
    if isinstance(error, subprocess.TimeoutExpired):
        return f"command timed out after {error.timeout}s"
    if isinstance(error, FileNotFoundError):
        return f"command not found: {error.filename or error}"
    return str(error)


__all__ = ["describe_failure", "parse_json_output", "run_gcloud_command"]
