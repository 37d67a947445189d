"""
report.py - End-of-pass summary table
"""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from crossseed.core.coordinator import OutcomeStatus, RunReport, UnitOutcome

_STATUS_LABELS = {
    OutcomeStatus.ACTED: "[green]✓ {action}[/green]",
    OutcomeStatus.SKIPPED: "[grey50]Skipped ({reason})[/grey50]",
    OutcomeStatus.FAILED: "[red]✗ Failed ({kind})[/red]",
}


def _outcome_label(outcome: UnitOutcome) -> str:
    template = _STATUS_LABELS.get(outcome.status, "{reason}")
    return template.format(
        action=escape(outcome.action or "acted"),
        reason=escape(outcome.reason or "-"),
        kind=escape(outcome.failure_kind or "error"),
    )


def _outcome_detail(outcome: UnitOutcome) -> str:
    if outcome.new_fingerprint:
        return f"new hash {outcome.new_fingerprint}"
    return escape(str(outcome.detail or "").strip()[:100])


def render_report(report: RunReport, console: Console) -> None:
    """Print matches, actions and failures, then the totals."""
    rows = [o for o in report.outcomes if o.matched or o.status == OutcomeStatus.FAILED]

    table = Table(title="Cross-seed results")
    table.add_column("Torrent", style="cyan")
    table.add_column("Indexer", style="yellow", no_wrap=True)
    table.add_column("Outcome", no_wrap=True)
    table.add_column("Detail")
    for outcome in rows:
        table.add_row(escape(outcome.torrent), escape(outcome.indexer), _outcome_label(outcome), _outcome_detail(outcome))
    if not rows:
        table.add_row("-", "-", "[yellow]⚠ No cross-seeds found[/yellow]", "")
    console.print(table)

    console.print(
        f"Searched {len(report.outcomes)}, "
        f"matched {len(report.matches)}, "
        f"acted {len(report.actions)}, "
        f"skipped {len(report.skipped)}, "
        f"failed {len(report.failures)}"
    )
