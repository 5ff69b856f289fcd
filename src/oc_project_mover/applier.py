"""
Import of planned phases into the destination project.

Phases run strictly one after another.  Documents inside a phase do not
depend on each other and are pushed through a bounded thread pool; the
phase finishes only once every document has an outcome.

A failing document never stops the run: it is recorded as ``failed`` and
the remaining documents and phases are still attempted.  Nothing is
retried here; re-running the migration is safe because existing objects
come back as ``skipped-exists``.
"""

from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable

from .client import ClusterClient, ClusterSession
from .errors import ClientError
from .models import (
    DocumentResult,
    Outcome,
    Phase,
    PhaseResult,
    PhaseState,
    ResourceDocument,
)
from .transform import clean_document

__all__ = [
    "ensure_destination_namespace",
    "apply_document",
    "apply_phase",
    "apply_all",
]

logger = logging.getLogger(__name__)


def ensure_destination_namespace(
    client: ClusterClient, session: ClusterSession, namespace: str,
) -> Outcome:
    """Create the destination project once; an existing one is fine.

    Raises:
        ClientError: If the project neither exists nor can be created.
    """
    logger.info("=== Creating project '%s' on %s ===", namespace, session.endpoint)
    outcome = client.ensure_namespace(session, namespace)
    if outcome is Outcome.SKIPPED_EXISTS:
        logger.info("Project '%s' already exists in destination cluster.", namespace)
    return outcome


def apply_document(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    document: ResourceDocument,
    replace: bool = False,
) -> DocumentResult:
    """Push one document and record its outcome.  Never raises ClientError."""
    result = DocumentResult(api_kind=document.resource.kind, name=document.name)
    body = clean_document(document, namespace)
    try:
        result.outcome = client.create_or_update(
            session, namespace, document.resource, body, replace=replace,
        )
    except ClientError as exc:
        result.outcome = Outcome.FAILED
        result.error = str(exc)
        logger.warning("%s — FAILED: %s", document.label, exc)
        return result

    logger.info("%s — %s", document.label, result.outcome.value)
    return result


def _plan_document(document: ResourceDocument, namespace: str) -> DocumentResult:
    body = clean_document(document, namespace)
    return DocumentResult(
        api_kind=document.resource.kind,
        name=document.name,
        planned_json=json.dumps(body, indent=2, sort_keys=True),
    )


def apply_phase(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    phase: Phase,
    max_workers: int = 4,
    replace: bool = False,
    dry_run: bool = False,
) -> PhaseResult:
    """Apply every document of *phase* and wait for all of them.

    In *dry_run* mode nothing is sent; each result carries the cleaned
    document that would have been pushed and no outcome.
    """
    result = PhaseResult(index=phase.index, name=phase.name)
    result.state = PhaseState.APPLYING
    logger.info("=== Applying %s (%d document(s)) ===", phase.name, len(phase.documents))

    if dry_run:
        result.results = [_plan_document(doc, namespace) for doc in phase.documents]
        result.state = PhaseState.COMPLETED
        return result

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"phase{phase.index}") as pool:
        futures = [
            pool.submit(apply_document, client, session, namespace, doc, replace)
            for doc in phase.documents
        ]
        try:
            result.results = [f.result() for f in futures]
        except KeyboardInterrupt:
            # Documents not yet started are dropped; in-flight requests finish
            pool.shutdown(wait=False, cancel_futures=True)
            logger.warning("%s interrupted; queued documents were not pushed", phase.name)
            raise

    failed = result.failed
    if failed:
        result.state = PhaseState.COMPLETED_WITH_FAILURES
        logger.warning(
            "%s: %d of %d document(s) failed: %s",
            phase.name, len(failed), len(result.results),
            ", ".join(r.label for r in failed),
        )
    else:
        result.state = PhaseState.COMPLETED
    return result


def apply_all(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    phases: Iterable[Phase],
    max_workers: int = 4,
    replace: bool = False,
    dry_run: bool = False,
    on_phase_done: Callable[[PhaseResult], None] | None = None,
) -> list[PhaseResult]:
    """Apply *phases* in order; each one completes before the next starts."""
    results: list[PhaseResult] = []
    for phase in phases:
        phase_result = apply_phase(
            client, session, namespace, phase,
            max_workers=max_workers, replace=replace, dry_run=dry_run,
        )
        results.append(phase_result)
        if on_phase_done is not None:
            on_phase_done(phase_result)
    return results
