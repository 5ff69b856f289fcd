"""
CLI entry point for the OpenShift project mover.

Handles argument parsing and runs the full workflow:
config -> login -> export -> transform -> import -> verify -> report.

Cluster tokens are taken from the SOURCE_TOKEN and DEST_TOKEN environment
variables only.  The first SIGINT/SIGTERM cancels the route wait (or the
run, if the import has not started yet); a second SIGINT aborts at once.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading

from .client import ClusterClient
from .config import (
    CONFLICT_ACTIONS,
    ENV_DEST_TOKEN,
    ENV_SOURCE_TOKEN,
    ConfigError,
    load_config,
    merge_cli_overrides,
    read_tokens,
)
from .errors import AuthError, MigrationCancelled, NamespaceNotFound, SourceUnavailable
from .logging_setup import setup_logging
from .models import PhaseResult
from .orchestrator import migrate
from .report import (
    format_phase_line,
    generate_json_report,
    generate_text_summary,
    save_report,
)

__all__ = ["main"]

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_ABORTED = 2
EXIT_DOCUMENT_FAILURES = 3
EXIT_INCOMPLETE = 4
EXIT_INTERRUPTED = 130


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------

def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="oc-project-mover",
        description=(
            "Migrate an OpenShift project and its resources from one cluster to another. "
            f"Tokens are read from the {ENV_SOURCE_TOKEN} and {ENV_DEST_TOKEN} environment variables."
        ),
    )
    parser.add_argument("--project", "-p", default=None,
                        help="Name of the OpenShift project to migrate")
    parser.add_argument("--source", "-s", default=None,
                        help="API URL of the source OpenShift cluster")
    parser.add_argument("--destination", "-d", default=None,
                        help="API URL of the destination OpenShift cluster")
    parser.add_argument("--config", "-c", default=None,
                        help="Path to YAML config file (default: config/config.yaml if present)")
    parser.add_argument("--insecure-skip-tls-verify", action="store_true",
                        help="Do not verify the clusters' TLS certificates")

    run = parser.add_argument_group("run options")
    run.add_argument("--dry-run", action="store_true",
                     help="Export and plan only; nothing is written to the destination")
    run.add_argument("--on-conflict", choices=list(CONFLICT_ACTIONS), default=None,
                     help="Existing objects in the destination: 'skip' (default) or 'replace'")
    run.add_argument("--workers", type=int, default=None,
                     help="Parallel requests per phase and during export (default: 4)")
    run.add_argument("--verify-timeout", type=float, default=None,
                     help="Seconds to wait for route hosts (default: 120)")
    run.add_argument("--poll-interval", type=float, default=None,
                     help="Seconds between route checks (default: 5)")
    run.add_argument("--strict", action="store_true",
                     help=f"Exit with status {EXIT_DOCUMENT_FAILURES} if any document failed to import")

    out = parser.add_argument_group("output")
    out.add_argument("--keep-snapshot", default=None, metavar="DIR",
                     help="Write the exported resources to DIR (one JSON file per kind)")
    out.add_argument("--report-dir", default=None,
                     help="Directory for the JSON report (default: reports/)")
    out.add_argument("--no-report", action="store_true",
                     help="Do not write a JSON report")
    out.add_argument("--verbose", "-v", action="store_true",
                     help="Enable verbose (debug) logging")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Signal handling
# ---------------------------------------------------------------------------

def _install_cancel_handlers(cancel: threading.Event) -> dict:
    """Route SIGINT/SIGTERM to *cancel*; returns the previous handlers."""
    previous: dict = {}

    def _handler(signum, frame):
        if cancel.is_set():
            raise KeyboardInterrupt
        logger.warning("Received %s — cancelling (press Ctrl+C again to abort)",
                       signal.Signals(signum).name)
        cancel.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[sig] = signal.signal(sig, _handler)
        except ValueError:
            # Not in the main thread (e.g. embedded use); leave signals alone
            break
    return previous


def _restore_handlers(previous: dict) -> None:
    for sig, handler in previous.items():
        signal.signal(sig, handler)


def _print_phase(phase: PhaseResult) -> None:
    sys.stdout.write(format_phase_line(phase) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    log_path = setup_logging(verbose=args.verbose, log_prefix="migrate")

    try:
        cfg = merge_cli_overrides(load_config(args.config), args)
        auth = read_tokens()
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    client = ClusterClient(verify=cfg.tls.requests_verify)
    cancel = threading.Event()
    previous = _install_cancel_handlers(cancel)

    print(f"=== Migrating project '{cfg.project}' from '{cfg.source_url}' "
          f"to '{cfg.destination_url}' ===")
    try:
        report = migrate(client, cfg, auth, cancel=cancel, on_phase_done=_print_phase)
    except (AuthError, SourceUnavailable, NamespaceNotFound) as exc:
        logger.error("%s", exc)
        print(f"Aborted: {exc}\nNo changes were made on the destination cluster.")
        print(f"Log: {log_path}")
        return EXIT_ABORTED
    except MigrationCancelled as exc:
        logger.warning("%s", exc)
        print(f"Interrupted: {exc}")
        return EXIT_INTERRUPTED
    except KeyboardInterrupt:
        logger.error("Aborted by user")
        print("Aborted by user — the destination may hold a partial import; re-run to complete it.")
        return EXIT_INTERRUPTED
    finally:
        _restore_handlers(previous)

    print()
    print(generate_text_summary(report))

    if cfg.report.enabled:
        path = save_report(
            generate_json_report(report),
            project=cfg.project,
            output_dir=cfg.report.output_dir,
            dry_run=cfg.dry_run,
        )
        print(f"\nReport: {path}")
    print(f"Log: {log_path}")

    if not report.completed:
        logger.error("Migration of '%s' did not complete", cfg.project)
        return EXIT_INCOMPLETE
    if cfg.strict and report.failed_documents:
        return EXIT_DOCUMENT_FAILURES
    if report.failed_documents:
        print(f"=== Migration completed with {len(report.failed_documents)} failed document(s) ===")
    elif not cfg.dry_run:
        print("=== Migration completed successfully ===")
    return EXIT_OK
