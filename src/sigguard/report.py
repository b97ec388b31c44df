"""Report generation for verification results.

Reports are written to public CI logs, so nothing here ever prints an
author email, author name, signer name or key id. Only the short sha, the
subject and the fixed reason message of each commit are shown.
"""

import json
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from sigguard.models import VerificationResult, VerificationSummary


@dataclass
class VerificationReport:
    """Verification report for one commit range."""

    results: list[VerificationResult] = field(default_factory=list)
    summary: VerificationSummary = field(default_factory=VerificationSummary)
    base_ref: str = "origin/main"
    head_ref: str = "HEAD"

    def __str__(self) -> str:
        """Return a formatted string representation using Rich."""
        console = Console(force_terminal=True, width=80)
        with console.capture() as capture:
            self._print_to_console(console)
        return capture.get()

    def _print_to_console(self, console: Console) -> None:
        """Print the report to a Rich console."""
        console.print()
        console.print("[bold]Signature Verification[/bold]")
        console.print(f"Range: {escape(self.base_ref)}..{escape(self.head_ref)}")
        console.print("━" * 52)

        if not self.results:
            console.print("[green]✓ No new commits to verify[/green]")
            console.print()
            return

        for result in self.results:
            glyph = "[green]✓[/green]" if result.passed else "[red]✗[/red]"
            console.print(
                f"{glyph} [cyan]{result.commit.short_sha}[/cyan] {escape(result.commit.subject)}"
            )
            style = "dim" if result.passed else "red"
            console.print(f"    [{style}]{result.reason.display_message}[/{style}]")

        console.print()
        console.print("[bold]Summary[/bold]")
        console.print(f"  Commits checked:       {self.summary.commits_checked}")
        console.print(f"  Trusted (verified):    {self.summary.trusted_verified}")
        console.print(f"  External contributors: {self.summary.external_contributors}")
        console.print(f"  Failures:              {self.summary.failures}")
        console.print()

        if self.passed:
            console.print("[bold green]✓ All commits passed signature verification[/bold green]")
        else:
            console.print(
                f"[bold red]✗ {self.summary.failures} commit(s) failed "
                f"signature verification[/bold red]"
            )
        console.print()

    def print(self, console: Console | None = None) -> None:
        """Print the report to stdout."""
        self._print_to_console(console or Console())

    @property
    def passed(self) -> bool:
        return self.summary.passed

    @property
    def failed_results(self) -> list[VerificationResult]:
        return [r for r in self.results if not r.passed]

    def to_dict(self) -> dict:
        """Convert report to dictionary for JSON serialization."""
        return {
            "base_ref": self.base_ref,
            "head_ref": self.head_ref,
            "outcome": "passed" if self.passed else "failed",
            "summary": self.summary.to_dict(),
            "results": [result.to_dict() for result in self.results],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert report to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)
