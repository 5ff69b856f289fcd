"""
JSON report renderer.
"""

from __future__ import annotations

import json

from ..models import MigrationReport

__all__ = ["generate_json_report"]


def _iso(value) -> str | None:
    return value.isoformat() if value is not None else None


def generate_json_report(report: MigrationReport) -> str:
    """Generate a JSON migration report."""
    r = report
    data: dict = {
        "report_metadata": {
            "project": r.project,
            "source": r.source,
            "destination": r.destination,
            "dry_run": r.dry_run,
            "started_at": _iso(r.started_at),
            "finished_at": _iso(r.finished_at),
            "snapshot_path": r.snapshot_path or None,
        },
        "summary": {
            "documents": r.document_count,
            "failed": len(r.failed_documents),
            "namespace": r.namespace_outcome.value if r.namespace_outcome else None,
            "completed": r.completed,
        },
        "phases": [
            {
                "index": p.index,
                "name": p.name,
                "state": p.state.value,
                "documents": [
                    {
                        "kind": d.api_kind,
                        "name": d.name,
                        "outcome": d.outcome.value if d.outcome else None,
                        "error": d.error or None,
                        **({"planned": json.loads(d.planned_json)} if d.planned_json else {}),
                    }
                    for d in p.results
                ],
            }
            for p in r.phases
        ],
        "routes": [
            {"name": i.route_name, "host": i.hostname, "url": i.url or None}
            for i in r.ingress
        ],
    }
    return json.dumps(data, indent=2, default=str)
