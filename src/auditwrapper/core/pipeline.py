"""Audit pipeline: manifest filter, npm audit, result filter, report.

Each stage reads the artifact the previous stage wrote to the work
directory and writes a new one:

    <template manifest> -> package.json          (filtered manifest)
    package.json        -> package-lock.json,
                           orgresults.json       (raw npm audit output)
    orgresults.json     -> results.json          (filtered results)
    results.json        -> report text

Malformed JSON in any artifact is raised to the caller as is.
"""

import json
import shutil
from pathlib import Path
from typing import Any

import structlog

from auditwrapper.core.config import DEFAULT_REGISTRY
from auditwrapper.core.filters import filter_manifest, filter_results
from auditwrapper.core.models import DependencyManifest, ScanResultSet
from auditwrapper.core.policy import PolicyConfig
from auditwrapper.core.reporting import render_report
from auditwrapper.tools import NpmAuditTool, Tool, ToolResult, ToolStatus

logger = structlog.get_logger()

MANIFEST_FILE = "package.json"
LOCK_FILE = "package-lock.json"
RAW_RESULTS_FILE = "orgresults.json"
RESULTS_FILE = "results.json"

# Intermediate artifacts removed by cleanup; results.json is kept
CLEANUP_FILES = (MANIFEST_FILE, LOCK_FILE, RAW_RESULTS_FILE)


def read_json(path: Path) -> Any:
    logger.debug("reading_file", path=str(path))
    data = json.loads(path.read_text(encoding="utf-8"))
    logger.debug("read_file", path=str(path))
    return data


def write_json(path: Path, data: Any) -> None:
    logger.debug("writing_file", path=str(path))
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    logger.debug("wrote_file", path=str(path))


class AuditPipeline:
    """Run one policy-filtered npm audit in a work directory.

    Attributes:
        policy: Filtering policy for the run
        work_dir: Directory holding the run's artifacts
        template_manifest: package.json copied into the work directory
        registry: Registry URL handed to npm audit
        tool: Scanner wrapper (NpmAuditTool by default)
    """

    def __init__(
        self,
        policy: PolicyConfig,
        work_dir: str | Path = "depResults",
        template_manifest: str | Path = "ex-package.json",
        registry: str = DEFAULT_REGISTRY,
        tool: Tool | None = None,
    ):
        self.policy = policy
        self.work_dir = Path(work_dir)
        self.template_manifest = Path(template_manifest)
        self.registry = registry
        self.tool = tool or NpmAuditTool()
        self.log = logger.bind(work_dir=str(self.work_dir))

    @property
    def manifest_path(self) -> Path:
        return self.work_dir / MANIFEST_FILE

    @property
    def raw_results_path(self) -> Path:
        return self.work_dir / RAW_RESULTS_FILE

    @property
    def results_path(self) -> Path:
        return self.work_dir / RESULTS_FILE

    def prepare_manifest(self) -> DependencyManifest:
        """Copy the template manifest into the work directory and filter it.

        Returns:
            The filtered manifest that was written to package.json
        """
        self.work_dir.mkdir(parents=True, exist_ok=True)
        self.log.debug(
            "copying_manifest",
            source=str(self.template_manifest),
            destination=str(self.manifest_path),
        )
        shutil.copyfile(self.template_manifest, self.manifest_path)

        manifest = DependencyManifest.model_validate(read_json(self.manifest_path))
        filtered = filter_manifest(manifest, self.policy)
        write_json(self.manifest_path, filtered.to_document())
        return filtered

    async def run_audit(self) -> ToolResult:
        """Run the scanner and store its raw output as orgresults.json.

        Raises:
            RuntimeError: If the scanner is missing, timed out, or failed
                before producing audit output
        """
        self.log.info("running_audit", registry=self.registry)
        result = await self.tool.run(str(self.work_dir), registry=self.registry)
        if result.status != ToolStatus.SUCCESS:
            raise RuntimeError(result.error or f"audit failed with status {result.status.value}")

        self.log.debug("writing_file", path=str(self.raw_results_path))
        self.raw_results_path.write_text(result.raw_output, encoding="utf-8")
        return result

    def exclude_results(self) -> ScanResultSet:
        """Filter orgresults.json by policy and write results.json."""
        document = read_json(self.raw_results_path)
        if not isinstance(document, dict):
            raise ValueError(f"{self.raw_results_path} is not an npm audit report")
        filtered = filter_results(ScanResultSet(document), self.policy)
        write_json(self.results_path, filtered.to_document())
        return filtered

    def create_report(self) -> str:
        """Render the report from results.json."""
        document = read_json(self.results_path)
        if not isinstance(document, dict):
            raise ValueError(f"{self.results_path} is not an npm audit report")
        return render_report(ScanResultSet(document))

    def cleanup(self) -> list[Path]:
        """Delete intermediate artifacts, skipping any that are missing.

        Returns:
            Paths that were deleted
        """
        deleted = []
        for filename in CLEANUP_FILES:
            path = self.work_dir / filename
            if not path.exists():
                self.log.debug("cleanup_skip_missing", path=str(path))
                continue
            self.log.debug("deleting_file", path=str(path))
            path.unlink()
            deleted.append(path)
        return deleted

    async def run(self, report: bool = True, cleanup: bool = False) -> str:
        """Run every stage in order.

        Args:
            report: Render the report after filtering
            cleanup: Delete intermediate artifacts at the end

        Returns:
            Report text ("" when skipped or when nothing survived filtering)
        """
        self.prepare_manifest()
        await self.run_audit()
        self.exclude_results()
        text = self.create_report() if report else ""
        if cleanup:
            self.cleanup()
        return text
