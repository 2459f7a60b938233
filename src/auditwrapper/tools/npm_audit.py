"""npm audit wrapper.

Generates a lock file for the filtered package.json and runs
``npm audit --json`` against the configured registry. The audit's JSON is
passed back untouched in ``raw_output``; parsing and filtering happen in
the pipeline.
"""

import asyncio
import time
import structlog
from .base import ToolResult, ToolStatus, check_binary, run_with_retry

logger = structlog.get_logger()


class NpmAuditTool:
    """Wrapper for ``npm install --package-lock-only`` + ``npm audit --json``.

    npm exits non-zero whenever the audit finds vulnerabilities, so a
    non-zero audit exit still counts as success as long as npm ran. Its
    return code is kept in ``data["returncode"]``.
    """

    name = "npm_audit"
    binary_name = "npm"

    def __init__(self, timeout: int = 300, binary_name: str | None = None):
        """Initialize npm audit wrapper.

        Args:
            timeout: Timeout in seconds for each npm invocation (default: 300)
            binary_name: npm executable to use (default: "npm" from PATH)
        """
        self.timeout = timeout
        if binary_name:
            self.binary_name = binary_name
        self.log = logger.bind(tool=self.name)

    def is_available(self) -> bool:
        """Check if npm is available on PATH."""
        return check_binary(self.binary_name)

    async def run(self, target: str, **kwargs) -> ToolResult:
        """Audit the package.json in a working directory.

        Runs, with ``cwd=target``:
            npm install --package-lock-only
            npm audit --json --registry=<registry>

        Args:
            target: Directory holding the filtered package.json
            **kwargs:
                registry: Registry URL (default: https://registry.npmjs.org)

        Returns:
            ToolResult with:
                raw_output: audit JSON as printed by npm
                data.returncode: npm audit exit status
                data.registry: registry used
        """
        start_time = time.time()
        registry = kwargs.get("registry") or "https://registry.npmjs.org"
        self.log.info("npm_audit_start", target=target, registry=registry)

        if not self.is_available():
            self.log.warning("binary_not_found", binary=self.binary_name)
            return ToolResult(
                status=ToolStatus.NOT_INSTALLED,
                error=f"{self.binary_name} not installed. Install Node.js from https://nodejs.org/",
                duration_seconds=time.time() - start_time
            )

        try:
            _, stderr, returncode = await run_with_retry(
                [self.binary_name, "install", "--package-lock-only"],
                cwd=target,
                timeout=self.timeout
            )
            if returncode != 0:
                self.log.error("lockfile_failed", returncode=returncode, stderr=stderr[:200])
                return ToolResult(
                    status=ToolStatus.ERROR,
                    error=f"npm install --package-lock-only failed with code {returncode}: {stderr}",
                    duration_seconds=time.time() - start_time
                )

            stdout, stderr, returncode = await run_with_retry(
                [self.binary_name, "audit", "--json", f"--registry={registry}"],
                cwd=target,
                timeout=self.timeout
            )

        except asyncio.TimeoutError:
            self.log.error("npm_audit_timeout", timeout=self.timeout)
            return ToolResult(
                status=ToolStatus.TIMEOUT,
                error=f"npm timed out after {self.timeout}s",
                duration_seconds=time.time() - start_time
            )
        except Exception as e:
            self.log.error("npm_audit_exception", error=str(e))
            return ToolResult(
                status=ToolStatus.ERROR,
                error=f"npm execution error: {str(e)}",
                duration_seconds=time.time() - start_time
            )

        duration = time.time() - start_time
        if returncode != 0:
            self.log.info("npm_audit_nonzero_exit", returncode=returncode, stderr=stderr[:200])

        self.log.info("npm_audit_complete", returncode=returncode, duration=duration)
        return ToolResult(
            status=ToolStatus.SUCCESS,
            data={"returncode": returncode, "registry": registry},
            raw_output=stdout,
            error=stderr,
            duration_seconds=duration
        )
