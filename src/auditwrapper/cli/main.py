"""AsyncClick CLI for the npm audit wrapper.

Runs the whole pipeline in one command: filter the template manifest,
audit it with npm, filter the results and print the report.
"""

import json

import asyncclick as click

from auditwrapper import __version__
from auditwrapper.core.config import load_config
from auditwrapper.core.filters import summarize_results
from auditwrapper.core.logging import configure_logging
from auditwrapper.core.pipeline import AuditPipeline
from auditwrapper.core.severity import Severity
from auditwrapper.tools import NpmAuditTool


@click.command()
@click.version_option(__version__, prog_name="npm-audit-wrapper")
@click.option("--vb", "verbose", is_flag=True, help="Enable verbose output")
@click.option("--cleanup", is_flag=True, help="Cleanup files after audit")
@click.option("--depreport/--no-depreport", default=True, help="Create (or skip) the dependency report")
@click.option("--excludedev", is_flag=True, help="Exclude devDependencies from audit")
@click.option("--registry", default=None, metavar="URL", help="Use registry URL (default: https://registry.npmjs.org)")
@click.option(
    "--minserv",
    type=click.Choice([s.value for s in Severity], case_sensitive=False),
    default=Severity.LOW.value,
    show_default=True,
    help="Define minimum severity for scan results",
)
@click.option("--workdir", default=None, help="Directory for audit artifacts (default: depResults)")
@click.option("--manifest", default=None, help="Template package.json (default: ex-package.json)")
@click.option("--exclude-scan", multiple=True, help="Exclude dependencies containing PATTERN from the scan (repeatable)")
@click.option("--exclude-audit", multiple=True, help="Exclude packages containing PATTERN from the results (repeatable)")
@click.pass_context
async def cli(
    ctx,
    verbose: bool,
    cleanup: bool,
    depreport: bool,
    excludedev: bool,
    registry: str | None,
    minserv: str,
    workdir: str | None,
    manifest: str | None,
    exclude_scan: tuple[str, ...],
    exclude_audit: tuple[str, ...],
):
    """Run npm audit with exclusions and print a dependency report.

    Examples:
        npm-audit-wrapper
        npm-audit-wrapper --minserv high --excludedev
        npm-audit-wrapper --exclude-scan @acme/ --no-depreport --cleanup
    """
    configure_logging(verbose)

    config = load_config()
    if exclude_scan:
        config.scan_exclude_patterns = list(exclude_scan)
    if exclude_audit:
        config.audit_exclude_patterns = list(exclude_audit)

    policy = config.policy(min_severity=minserv, exclude_dev_dependencies=excludedev)
    pipeline = AuditPipeline(
        policy=policy,
        work_dir=workdir or config.work_dir,
        template_manifest=manifest or config.template_manifest,
        registry=registry or config.registry,
        tool=NpmAuditTool(timeout=config.npm_timeout),
    )

    click.echo("Running npm-audit-wrapper")

    try:
        filtered_manifest = pipeline.prepare_manifest()
        click.echo(
            f"[+] Manifest filtered: {len(filtered_manifest.dependencies or {})} dependencies, "
            f"{len(filtered_manifest.dev_dependencies or {})} devDependencies"
        )

        click.echo(f"[*] Running npm audit against {pipeline.registry}")
        await pipeline.run_audit()

        results = pipeline.exclude_results()
        summary = summarize_results(results)
        click.echo(f"[+] Results after exclusions (min severity: {policy.min_severity.value}):")
        for severity_name in ["critical", "high", "moderate", "low"]:
            click.echo(f"    {severity_name.capitalize()}: {summary[severity_name]}")
        click.echo(f"    Total: {summary['total']}")

        if depreport:
            report = pipeline.create_report()
            if report:
                click.echo("")
                click.echo(report)

    except FileNotFoundError as e:
        click.echo(f"[-] Missing file: {e.filename}")
        ctx.exit(1)
    except json.JSONDecodeError as e:
        click.echo(f"[-] Malformed JSON: {e}")
        ctx.exit(1)
    except (RuntimeError, ValueError) as e:
        click.echo(f"[-] Audit failed: {e}")
        ctx.exit(1)

    if cleanup:
        click.echo("Running cleanup")
        pipeline.cleanup()
        click.echo("Cleanup finished")


if __name__ == "__main__":
    cli()
