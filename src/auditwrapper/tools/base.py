"""Shared subprocess infrastructure for external scanner wrappers.

Provides:
- Tool protocol for consistent scanner interface
- ToolResult dataclass for structured scanner output
- Helper functions for binary checking and subprocess execution
- Retry logic with exponential backoff for transient registry failures
"""

import asyncio
import shutil
import structlog
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable

logger = structlog.get_logger()

# npm error codes and messages that are worth another attempt
TRANSIENT_MARKERS = ("etimedout", "econnreset", "econnrefused", "eai_again", "socket hang up", "network")
# ...and those that will fail the same way every time
PERMANENT_MARKERS = ("enoent", "eacces", "e404", "permission denied", "no such file")


class ToolStatus(str, Enum):
    """Tool execution status."""
    SUCCESS = "success"
    ERROR = "error"
    TIMEOUT = "timeout"
    NOT_INSTALLED = "not_installed"


@dataclass
class ToolResult:
    """Structured result from a tool execution."""
    status: ToolStatus
    data: dict[str, Any] = field(default_factory=dict)
    raw_output: str = ""
    error: str = ""
    duration_seconds: float = 0.0


@runtime_checkable
class Tool(Protocol):
    """Protocol for scanner wrappers."""
    name: str
    binary_name: str

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Execute the scanner against a working directory."""
        ...

    def is_available(self) -> bool:
        """Check if the scanner binary is available."""
        ...


def check_binary(binary_name: str) -> bool:
    """Check if binary exists on PATH.

    Args:
        binary_name: Name of binary to check (e.g., "npm")

    Returns:
        True if binary is available, False otherwise
    """
    return shutil.which(binary_name) is not None


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    text = text.lower()
    return any(marker in text for marker in markers)


async def run_subprocess(
    cmd: list[str],
    cwd: str | None = None,
    timeout: int = 300,
) -> tuple[str, str, int]:
    """Run command via subprocess with timeout.

    Uses asyncio.create_subprocess_exec (never a shell). Kills the process
    on timeout and waits for it to exit.

    Args:
        cmd: Command and arguments as list (e.g., ["npm", "audit", "--json"])
        cwd: Working directory for the command
        timeout: Timeout in seconds (default: 300)

    Returns:
        Tuple of (stdout, stderr, returncode)

    Raises:
        asyncio.TimeoutError: If command exceeds timeout
    """
    log = logger.bind(cmd=" ".join(cmd[:2]), cwd=cwd, timeout=timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )

        log.debug("subprocess_started", pid=process.pid)

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout
            )
            stdout = stdout_bytes.decode("utf-8", errors="replace")
            stderr = stderr_bytes.decode("utf-8", errors="replace")
            returncode = process.returncode or 0

            log.debug(
                "subprocess_completed",
                returncode=returncode,
                stdout_len=len(stdout),
                stderr_len=len(stderr)
            )

            return stdout, stderr, returncode

        except asyncio.TimeoutError:
            log.warning("subprocess_timeout", pid=process.pid)
            process.kill()
            await process.communicate()
            raise

    except Exception as e:
        log.error("subprocess_failed", error=str(e))
        raise


async def run_with_retry(
    cmd: list[str],
    cwd: str | None = None,
    max_retries: int = 3,
    timeout: int = 300,
) -> tuple[str, str, int]:
    """Run command, retrying transient registry failures.

    Retries with exponential backoff (1s, 2s, 4s) when the command times
    out or npm reports a network error. Missing files, permission problems
    and unknown packages are returned or raised immediately. A non-zero
    exit without a network error is returned as is, since ``npm audit``
    exits non-zero whenever it finds vulnerabilities.

    Args:
        cmd: Command and arguments as list
        cwd: Working directory for the command
        max_retries: Maximum number of attempts (default: 3)
        timeout: Timeout per attempt in seconds (default: 300)

    Returns:
        Tuple of (stdout, stderr, returncode)

    Raises:
        asyncio.TimeoutError: If every attempt timed out
        Exception: If a non-transient error was raised
    """
    log = logger.bind(cmd=" ".join(cmd[:2]), max_retries=max_retries)

    for attempt in range(max_retries):
        try:
            stdout, stderr, returncode = await run_subprocess(cmd, cwd=cwd, timeout=timeout)

            if returncode != 0:
                if _contains_any(stderr, PERMANENT_MARKERS):
                    log.error("permanent_error_in_output", stderr=stderr[:200])
                    return stdout, stderr, returncode

                if _contains_any(stderr, TRANSIENT_MARKERS) and attempt < max_retries - 1:
                    backoff = 2 ** attempt
                    log.warning(
                        "retry_after_transient_error_in_output",
                        attempt=attempt + 1,
                        stderr=stderr[:100],
                        backoff_seconds=backoff
                    )
                    await asyncio.sleep(backoff)
                    continue

            return stdout, stderr, returncode

        except asyncio.TimeoutError:
            if attempt < max_retries - 1:
                backoff = 2 ** attempt
                log.warning(
                    "retry_after_timeout",
                    attempt=attempt + 1,
                    backoff_seconds=backoff
                )
                await asyncio.sleep(backoff)
                continue
            raise

        except Exception as e:
            if _contains_any(str(e), PERMANENT_MARKERS):
                log.error("permanent_error", error=str(e))
                raise

            if _contains_any(str(e), TRANSIENT_MARKERS) and attempt < max_retries - 1:
                backoff = 2 ** attempt
                log.warning(
                    "retry_after_transient_error",
                    attempt=attempt + 1,
                    error=str(e),
                    backoff_seconds=backoff
                )
                await asyncio.sleep(backoff)
                continue

            raise

    # max_retries < 1
    raise ValueError("max_retries must be at least 1")
