"""Configuration management for the audit wrapper.

Loads defaults from environment variables using Pydantic models. Command
line options override these values for a single run.

Provides:
- Config: Pydantic model with all application settings
- load_config: Factory function to create Config instance
"""

import os

from pydantic import BaseModel, Field

from auditwrapper.core.policy import PolicyConfig, SubstringExclusion
from auditwrapper.core.severity import Severity

DEFAULT_REGISTRY = "https://registry.npmjs.org"


def _env_list(name: str) -> list[str]:
    """Comma separated environment variable as a list (empty items dropped)."""
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]


class Config(BaseModel):
    """Application configuration loaded from the environment.

    Attributes:
        registry: npm registry URL passed to ``npm audit`` (AUDIT_REGISTRY)
        work_dir: Directory holding the run's artifacts (AUDIT_WORK_DIR)
        template_manifest: package.json copied into work_dir (AUDIT_TEMPLATE_MANIFEST)
        scan_exclude_patterns: Substrings of dependencies kept out of the scan (AUDIT_SCAN_EXCLUDE)
        audit_exclude_patterns: Substrings of packages hidden from results (AUDIT_AUDIT_EXCLUDE)
        npm_timeout: Timeout in seconds for each npm invocation
    """

    registry: str = Field(default_factory=lambda: os.getenv("AUDIT_REGISTRY", DEFAULT_REGISTRY))
    work_dir: str = Field(default_factory=lambda: os.getenv("AUDIT_WORK_DIR", "depResults"))
    template_manifest: str = Field(
        default_factory=lambda: os.getenv("AUDIT_TEMPLATE_MANIFEST", "ex-package.json")
    )

    # Exclusions
    scan_exclude_patterns: list[str] = Field(default_factory=lambda: _env_list("AUDIT_SCAN_EXCLUDE"))
    audit_exclude_patterns: list[str] = Field(default_factory=lambda: _env_list("AUDIT_AUDIT_EXCLUDE"))

    # Tool settings
    npm_timeout: int = Field(default=300)

    def policy(
        self,
        min_severity: Severity | str = Severity.LOW,
        exclude_dev_dependencies: bool = False,
    ) -> PolicyConfig:
        """Build the immutable filtering policy for one run.

        Args:
            min_severity: Lowest severity kept in results (case-insensitive)
            exclude_dev_dependencies: Drop all devDependencies before scanning

        Returns:
            PolicyConfig with substring exclusions from this config
        """
        return PolicyConfig(
            min_severity=Severity(min_severity.lower()),
            exclude_dev_dependencies=exclude_dev_dependencies,
            scan_exclusion=SubstringExclusion.from_patterns(self.scan_exclude_patterns),
            audit_exclusion=SubstringExclusion.from_patterns(self.audit_exclude_patterns),
        )


def load_config() -> Config:
    """Load configuration from environment.

    Returns:
        Populated Config instance
    """
    return Config()
