"""
Migration pipeline: login → export → transform → import → verify.

Processing order:
  1. Login to both clusters (fails before anything is touched)
  2. Export a snapshot of the project from the source
  3. Strip route hostnames from the snapshot
  4. Plan the import phases
  5. Create the destination project, then apply each phase in order
  6. Wait for the destination router to assign route hostnames

Steps 1–2 raise on failure.  From step 5 on, failures are collected in
the returned :class:`MigrationReport` instead.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable

from .applier import apply_all, ensure_destination_namespace
from .client import ClusterClient
from .config import AppConfig, AuthConfig
from .errors import ClientError, MigrationCancelled
from .models import ROUTE_RESOURCE, MigrationReport, Outcome, PhaseResult
from .sequencer import plan
from .snapshot import capture, write_snapshot
from .transform import strip_ingress_hosts
from .verifier import routes_to_verify, verify

__all__ = ["migrate"]

logger = logging.getLogger(__name__)


def migrate(
    client: ClusterClient,
    config: AppConfig,
    auth: AuthConfig,
    cancel: threading.Event | None = None,
    on_phase_done: Callable[[PhaseResult], None] | None = None,
) -> MigrationReport:
    """Run one migration of ``config.project``.

    Raises:
        AuthError: If either cluster rejects its token.
        SourceUnavailable: If the source cannot be read.
        NamespaceNotFound: If the project does not exist on the source.
        MigrationCancelled: If *cancel* is set before the import starts.
    """
    cancel = cancel or threading.Event()
    project = config.project
    report = MigrationReport(
        project=project,
        source=config.source_url,
        destination=config.destination_url,
        dry_run=config.dry_run,
    )
    logger.info(
        "=== Migrating project '%s' from '%s' to '%s'%s ===",
        project, config.source_url, config.destination_url,
        " (dry run)" if config.dry_run else "",
    )

    logger.info("=== Logging into Source Cluster ===")
    source = client.login(config.source_url, auth.source_token)
    logger.info("=== Logging into Destination Cluster ===")
    dest = client.login(config.destination_url, auth.dest_token)

    logger.info("=== Exporting resources from Source Cluster ===")
    snapshot = capture(
        client, source, project, config.export.kinds,
        max_workers=config.export.max_workers,
    )
    report.document_count = len(snapshot)
    if config.export.keep_dir:
        write_snapshot(snapshot, config.export.keep_dir)
        report.snapshot_path = config.export.keep_dir
        logger.info("Snapshot kept in %s", config.export.keep_dir)

    transformed = strip_ingress_hosts(snapshot)
    phases = plan(transformed)

    if cancel.is_set():
        raise MigrationCancelled("Cancelled before import — destination left untouched")

    if not config.dry_run:
        try:
            report.namespace_outcome = ensure_destination_namespace(client, dest, project)
        except ClientError as exc:
            logger.error("Cannot create project '%s' on %s: %s", project, dest.endpoint, exc)
            report.namespace_outcome = Outcome.FAILED
            report.finished_at = datetime.now(timezone.utc)
            return report

    report.phases = apply_all(
        client, dest, project, phases,
        max_workers=config.apply.max_workers,
        replace=config.apply.on_conflict == "replace",
        dry_run=config.dry_run,
        on_phase_done=on_phase_done,
    )

    if not config.dry_run:
        failed_routes = {
            r.name for p in report.phases for r in p.failed if r.api_kind == ROUTE_RESOURCE.kind
        }
        route_names = routes_to_verify(transformed, exclude=failed_routes)
        report.ingress = verify(
            client, dest, project, route_names,
            timeout=config.verify.timeout,
            poll_interval=config.verify.poll_interval,
            cancel=cancel,
        )
        report.verify_attempted = True

    report.finished_at = datetime.now(timezone.utc)
    logger.info(
        "Migration of '%s' finished: %d document(s), %d failed, %d route host(s) assigned",
        project, report.document_count, len(report.failed_documents),
        sum(1 for r in report.ingress if r.hostname),
    )
    return report
