"""
Plain-text renderer for the console summary.

The route listing keeps the ``name: https://host`` format of the old
migration script so existing tooling that scrapes it keeps working.
"""

from __future__ import annotations

from ..models import IngressRecord, MigrationReport, Outcome, PhaseResult

__all__ = ["format_phase_line", "format_route_urls", "generate_text_summary"]


def format_phase_line(phase: PhaseResult) -> str:
    """One-line summary of a phase, e.g. ``[4] Workloads + Other resources  3 created ...``."""
    label = f"[{phase.index}] {phase.name}"
    if all(r.outcome is None for r in phase.results):
        return f"  {label:<44s} {len(phase.results)} planned"
    counts = phase.counts()
    parts = [f"{counts[o]} {o.value}" for o in Outcome if counts[o]]
    return f"  {label:<44s} {', '.join(parts) or 'nothing to do'}"


def format_route_urls(records: list[IngressRecord]) -> list[str]:
    """``name: https://host`` for every route that received a hostname."""
    return [f"{r.route_name}: {r.url}" for r in records if r.hostname]


def generate_text_summary(report: MigrationReport) -> str:
    """Render the end-of-run summary printed to stdout."""
    lines: list[str] = []
    title = "Dry run" if report.dry_run else "Migration"
    lines.append(f"=== {title} summary for project '{report.project}' ===")
    lines.append(f"  Source:       {report.source}")
    lines.append(f"  Destination:  {report.destination}")
    lines.append(f"  Documents:    {report.document_count}")
    if report.namespace_outcome is not None:
        lines.append(f"  Project:      {report.namespace_outcome.value}")
    if report.snapshot_path:
        lines.append(f"  Snapshot:     {report.snapshot_path}")
    lines.append("")

    for phase in report.phases:
        lines.append(format_phase_line(phase))
        for failed in phase.failed:
            lines.append(f"      FAILED {failed.label}: {failed.error}")

    if report.verify_attempted:
        lines.append("")
        lines.append("=== New Routes URLs ===")
        urls = format_route_urls(report.ingress)
        lines.extend(urls or ["  (no route received a host within the timeout)"])
        unassigned = [r.route_name for r in report.ingress if not r.hostname]
        if unassigned:
            lines.append(f"  Still waiting for a host: {', '.join(unassigned)}")

    return "\n".join(lines)
