"""Unit tests for the npm audit tool wrapper.

All subprocess calls are mocked; no npm installation required.
"""

import asyncio
import json
import pytest
from unittest.mock import AsyncMock, patch
from auditwrapper.tools import NpmAuditTool, ToolStatus, run_with_retry


AUDIT_JSON_OUTPUT = json.dumps(
    {
        "auditReportVersion": 2,
        "vulnerabilities": {
            "lodash": {
                "name": "lodash",
                "severity": "high",
                "via": ["lodash"],
                "fixAvailable": {"name": "lodash", "version": "4.17.21"},
            }
        },
    }
)


def make_process(stdout: str = "", stderr: str = "", returncode: int = 0):
    """Mock asyncio subprocess with canned output."""
    process = AsyncMock()
    process.communicate = AsyncMock(return_value=(stdout.encode(), stderr.encode()))
    process.returncode = returncode
    return process


@pytest.mark.asyncio
async def test_npm_audit_runs_lockfile_then_audit(tmp_path):
    """Test the two npm invocations, their arguments and working directory."""
    tool = NpmAuditTool()

    with patch("auditwrapper.tools.base.shutil.which", return_value="/usr/bin/npm"):
        with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.side_effect = [make_process(), make_process(AUDIT_JSON_OUTPUT)]

            result = await tool.run(str(tmp_path), registry="https://registry.example.com")

    assert result.status == ToolStatus.SUCCESS
    assert result.raw_output == AUDIT_JSON_OUTPUT
    assert result.data["returncode"] == 0
    assert result.data["registry"] == "https://registry.example.com"

    install_call, audit_call = mock_exec.call_args_list
    assert install_call.args == ("npm", "install", "--package-lock-only")
    assert audit_call.args == ("npm", "audit", "--json", "--registry=https://registry.example.com")
    assert install_call.kwargs["cwd"] == str(tmp_path)
    assert audit_call.kwargs["cwd"] == str(tmp_path)


@pytest.mark.asyncio
async def test_npm_audit_nonzero_exit_is_not_an_error(tmp_path):
    """Test that npm's "vulnerabilities found" exit code still yields output."""
    tool = NpmAuditTool()

    with patch("auditwrapper.tools.base.shutil.which", return_value="/usr/bin/npm"):
        with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.side_effect = [make_process(), make_process(AUDIT_JSON_OUTPUT, returncode=1)]

            result = await tool.run(str(tmp_path))

    assert result.status == ToolStatus.SUCCESS
    assert result.data["returncode"] == 1
    assert json.loads(result.raw_output)["vulnerabilities"]["lodash"]["severity"] == "high"


@pytest.mark.asyncio
async def test_npm_audit_default_registry(tmp_path):
    """Test that the public registry is used when none is given."""
    tool = NpmAuditTool()

    with patch("auditwrapper.tools.base.shutil.which", return_value="/usr/bin/npm"):
        with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.side_effect = [make_process(), make_process("{}")]
            await tool.run(str(tmp_path))

    assert mock_exec.call_args_list[1].args[-1] == "--registry=https://registry.npmjs.org"


@pytest.mark.asyncio
async def test_npm_audit_handles_missing_binary(tmp_path):
    """Test that a missing npm returns NOT_INSTALLED without running anything."""
    tool = NpmAuditTool()

    with patch("auditwrapper.tools.base.shutil.which", return_value=None):
        with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
            result = await tool.run(str(tmp_path))

    assert result.status == ToolStatus.NOT_INSTALLED
    assert "not installed" in result.error
    mock_exec.assert_not_called()


@pytest.mark.asyncio
async def test_npm_audit_lockfile_failure(tmp_path):
    """Test that a failed lock-file install stops before the audit."""
    tool = NpmAuditTool()

    with patch("auditwrapper.tools.base.shutil.which", return_value="/usr/bin/npm"):
        with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
            mock_exec.side_effect = [make_process(stderr="npm ERR! code ERESOLVE", returncode=1)]

            result = await tool.run(str(tmp_path))

    assert result.status == ToolStatus.ERROR
    assert "ERESOLVE" in result.error
    assert mock_exec.call_count == 1


@pytest.mark.asyncio
async def test_npm_audit_timeout(tmp_path):
    """Test that a timeout on every attempt returns TIMEOUT."""
    tool = NpmAuditTool(timeout=1)

    with patch("auditwrapper.tools.npm_audit.run_with_retry", side_effect=asyncio.TimeoutError()):
        with patch("auditwrapper.tools.base.shutil.which", return_value="/usr/bin/npm"):
            result = await tool.run(str(tmp_path))

    assert result.status == ToolStatus.TIMEOUT
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_custom_binary_name():
    """Test that a custom npm executable is checked on PATH."""
    tool = NpmAuditTool(binary_name="npm.cmd")

    with patch("auditwrapper.tools.base.shutil.which", return_value=None) as mock_which:
        assert not tool.is_available()

    mock_which.assert_called_once_with("npm.cmd")


# Retry tests


@pytest.mark.asyncio
async def test_retry_on_transient_network_error():
    """Test that a network error in npm output is retried with backoff."""
    with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
        with patch("auditwrapper.tools.base.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            mock_exec.side_effect = [
                make_process(stderr="npm ERR! code ETIMEDOUT", returncode=1),
                make_process("{}"),
            ]

            stdout, stderr, returncode = await run_with_retry(["npm", "install"], max_retries=3)

    assert returncode == 0
    assert stdout == "{}"
    assert mock_exec.call_count == 2
    mock_sleep.assert_awaited_once_with(1)


@pytest.mark.asyncio
async def test_no_retry_on_permanent_error():
    """Test that a permanent npm error is returned after one attempt."""
    with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
        mock_exec.side_effect = [make_process(stderr="npm ERR! code E404", returncode=1)]

        _, stderr, returncode = await run_with_retry(["npm", "install"], max_retries=3)

    assert returncode == 1
    assert "E404" in stderr
    assert mock_exec.call_count == 1


@pytest.mark.asyncio
async def test_no_retry_on_plain_nonzero_exit():
    """Test that a non-zero audit exit without network errors is returned as is."""
    with patch("auditwrapper.tools.base.asyncio.create_subprocess_exec") as mock_exec:
        mock_exec.side_effect = [make_process(AUDIT_JSON_OUTPUT, returncode=1)]

        stdout, _, returncode = await run_with_retry(["npm", "audit", "--json"])

    assert returncode == 1
    assert stdout == AUDIT_JSON_OUTPUT
    assert mock_exec.call_count == 1
