"""
Post-import check for route hostnames assigned by the destination router.

Hostname assignment is asynchronous, so the verifier polls until every
route has one or the timeout runs out.  Routes still unassigned at the
end are reported without a hostname; that is not an error.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Iterable

from .client import ClusterClient, ClusterSession
from .errors import ClientError
from .models import IngressRecord, ResourceKind, Snapshot

__all__ = ["assigned_host", "routes_to_verify", "verify"]

logger = logging.getLogger(__name__)

# Routes fronting the API service are managed by the platform
_PLATFORM_BACKENDS = frozenset({"kubernetes"})

# Floor for the per-request timeout of a single route poll, in seconds
_MIN_POLL_REQUEST_TIMEOUT = 2.0


def assigned_host(route: dict) -> str | None:
    """First hostname the router reported in ``status.ingress``."""
    for ingress in (route.get("status") or {}).get("ingress") or []:
        host = (ingress or {}).get("host")
        if host:
            return host
    return None


def routes_to_verify(snapshot: Snapshot, exclude: Iterable[str] = ()) -> list[str]:
    """Names of the snapshot's routes worth waiting for, sorted.

    Routes whose backend is a platform service, and any name in *exclude*
    (e.g. routes that failed to import), are left out.
    """
    skip = set(exclude)
    names = []
    for doc in snapshot.get(ResourceKind.ROUTE):
        backend = ((doc.body.get("spec") or {}).get("to") or {}).get("name", "")
        if backend in _PLATFORM_BACKENDS or doc.name in skip:
            continue
        names.append(doc.name)
    return sorted(names)


def verify(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    route_names: Iterable[str],
    timeout: float,
    poll_interval: float,
    cancel: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> list[IngressRecord]:
    """Poll *namespace* until every route in *route_names* has a hostname.

    Gives up after *timeout* seconds, or as soon as *cancel* is set, and
    returns what is known at that point.  Each poll request is limited to
    about one *poll_interval*, so a hung API server cannot hold the wait
    far past the deadline.  The result is sorted by route
    name; routes without a hostname have ``hostname=None``.
    """
    hosts: dict[str, str | None] = {name: None for name in route_names}
    if not hosts:
        return []
    cancel = cancel or threading.Event()
    request_timeout = min(
        max(poll_interval, _MIN_POLL_REQUEST_TIMEOUT), ClusterClient.DEFAULT_TIMEOUT[1],
    )
    deadline = clock() + timeout
    logger.info("=== Waiting for %d route(s) to be assigned a host ===", len(hosts))

    while not cancel.is_set():
        try:
            routes = client.list_routes(session, namespace, timeout=request_timeout)
        except ClientError as exc:
            logger.warning("Could not read routes in '%s': %s", namespace, exc)
        else:
            for route in routes:
                name = (route.get("metadata") or {}).get("name", "")
                if name in hosts and hosts[name] is None:
                    host = assigned_host(route)
                    if host:
                        hosts[name] = host
                        logger.info("Route '%s' assigned host %s", name, host)

        pending = sorted(n for n, h in hosts.items() if h is None)
        if not pending:
            break
        remaining = deadline - clock()
        if remaining <= 0:
            logger.warning(
                "Timed out after %.0fs waiting for host on route(s): %s",
                timeout, ", ".join(pending),
            )
            break
        logger.debug("%d route(s) still pending, next check in %.1fs",
                     len(pending), min(poll_interval, remaining))
        if cancel.wait(min(poll_interval, remaining)):
            break

    if cancel.is_set():
        logger.info("Route verification cancelled — returning partial results")
    return [IngressRecord(route_name=n, hostname=hosts[n]) for n in sorted(hosts)]
