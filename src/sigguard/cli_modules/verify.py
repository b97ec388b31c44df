"""Verify-signatures command.

This module implements the `sigguard verify-signatures` command, which
checks every commit of a pull-request range against the repository's
trusted collaborators and their signing keys.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console

from sigguard.cli_modules.errors import UsageError, error_boundary
from sigguard.config import load_settings, resolve_repository
from sigguard.observability import configure_logging, verbosity_to_level
from sigguard.pipeline import run_verification

REPORT_FORMATS = ("console", "json")


@error_boundary
def verify_signatures_cmd(
    base: Annotated[
        Optional[str],
        typer.Option("--base", help="Base reference of the range [default: origin/main]"),
    ] = None,
    head: Annotated[
        Optional[str],
        typer.Option("--head", help="Head reference of the range [default: HEAD]"),
    ] = None,
    repo_owner: Annotated[
        Optional[str],
        typer.Option("--repo-owner", help="Repository owner (autodetected in CI)"),
    ] = None,
    repo_name: Annotated[
        Optional[str],
        typer.Option("--repo-name", help="Repository name (autodetected in CI)"),
    ] = None,
    fetch_depth: Annotated[
        Optional[int],
        typer.Option("--fetch-depth", help="Clone depth of the checkout [default: 200]"),
    ] = None,
    fail_on_unsigned: Annotated[
        Optional[bool],
        typer.Option(
            "--fail-on-unsigned/--no-fail-on-unsigned",
            help="Exit with code 1 when a commit fails verification [default: on]",
        ),
    ] = None,
    format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format (console, json)"),
    ] = "console",
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output file path"),
    ] = None,
    repo_path: Annotated[
        Optional[Path],
        typer.Option("--repo-path", help="Working copy to inspect [default: .]"),
    ] = None,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="Configuration file (YAML, JSON or TOML)"),
    ] = None,
    verbose: Annotated[
        int,
        typer.Option("--verbose", "-v", count=True, help="Increase log verbosity (-v, -vv)"),
    ] = 0,
    quiet: Annotated[
        bool,
        typer.Option("--quiet", "-q", help="Only log errors"),
    ] = False,
) -> None:
    """Verify commit signatures against trusted collaborators.

    Collaborators with write access must sign their commits with one of
    the GPG keys registered on their account. Commits from anyone else
    pass whether signed or not. Merge commits are not checked.

    Examples:
        sigguard verify-signatures
        sigguard verify-signatures --base origin/develop --head HEAD
        sigguard verify-signatures --no-fail-on-unsigned -v
        sigguard verify-signatures --format json -o signatures.json
    """
    if format not in REPORT_FORMATS:
        raise UsageError(
            f"Invalid format: {format}",
            hint=f"Use one of: {', '.join(REPORT_FORMATS)}",
        )

    configure_logging(verbosity_to_level(verbose, quiet))

    settings = load_settings(
        config,
        overrides={
            "base_ref": base,
            "head_ref": head,
            "repo_owner": repo_owner,
            "repo_name": repo_name,
            "fetch_depth": fetch_depth,
            "fail_on_unsigned": fail_on_unsigned,
            "repo_path": str(repo_path) if repo_path else None,
        },
    )
    configure_logging(
        verbosity_to_level(verbose, quiet, default=settings.log_level),
        settings.log_format,
    )
    settings = resolve_repository(settings)

    run = run_verification(settings)
    report = run.report()

    if format == "json":
        result = report.to_json()
        if output:
            output.write_text(result, encoding="utf-8")
            typer.echo(f"Report written to {output}")
        else:
            typer.echo(result)
    elif output:
        with output.open("w", encoding="utf-8") as handle:
            report.print(Console(file=handle, width=100))
        typer.echo(f"Report written to {output}")
    else:
        report.print()

    raise typer.Exit(run.exit_code(settings.fail_on_unsigned))
