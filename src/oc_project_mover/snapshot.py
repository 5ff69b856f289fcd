"""
Snapshot capture from the source cluster, plus optional on-disk copies
for audit.

Capture never mutates the source.  Each requested kind is listed in a
worker thread; any failure aborts the capture so a partial snapshot is
never imported.
"""

from __future__ import annotations

import json
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from .client import ClusterClient, ClusterSession
from .errors import ClientError, NamespaceNotFound, SourceUnavailable
from .models import ResourceDocument, ResourceKind, Snapshot

__all__ = [
    "capture",
    "is_regenerated",
    "write_snapshot",
]

logger = logging.getLogger(__name__)

_SA_TOKEN_SECRET_TYPE = "kubernetes.io/service-account-token"
_SA_NAME_ANNOTATION = "kubernetes.io/service-account.name"


def is_regenerated(body: dict) -> bool:
    """True for objects the destination recreates by itself.

    Pods, ReplicaSets and the like carry ``ownerReferences`` to the
    controller that spawned them; service-account token and pull secrets
    are minted per cluster.
    """
    metadata = body.get("metadata") or {}
    if metadata.get("ownerReferences"):
        return True
    if body.get("kind") == "Secret":
        if body.get("type") == _SA_TOKEN_SECRET_TYPE:
            return True
        # Pull secrets minted for a service account
        if _SA_NAME_ANNOTATION in (metadata.get("annotations") or {}):
            return True
    return False


def _capture_kind(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    kind: ResourceKind,
) -> tuple[ResourceDocument, ...]:
    docs: list[ResourceDocument] = []
    for resource in kind.resources:
        try:
            items = client.list_objects(session, namespace, resource)
        except ClientError as exc:
            raise SourceUnavailable(
                f"Cannot list {resource.plural} in '{namespace}' on {session.endpoint}: {exc}"
            ) from exc
        for item in items:
            if is_regenerated(item):
                logger.debug(
                    "Skipping %s/%s — regenerated by the destination",
                    resource.kind, (item.get("metadata") or {}).get("name", "?"),
                )
                continue
            docs.append(ResourceDocument(kind=kind, resource=resource, body=item))
    logger.info("Exported %d %s", len(docs), kind.friendly_name)
    return tuple(docs)


def capture(
    client: ClusterClient,
    session: ClusterSession,
    namespace: str,
    kinds: Iterable[ResourceKind],
    max_workers: int = 4,
) -> Snapshot:
    """List every document of each kind in *kinds* from *namespace*.

    Raises:
        SourceUnavailable: If the source cannot be reached or a list fails.
        NamespaceNotFound: If *namespace* does not exist on the source.
    """
    kinds = list(dict.fromkeys(kinds))
    try:
        exists = client.namespace_exists(session, namespace)
    except ClientError as exc:
        raise SourceUnavailable(f"Cannot reach source cluster {session.endpoint}: {exc}") from exc
    if not exists:
        raise NamespaceNotFound(namespace, session.endpoint)

    logger.info("Exporting %d kind(s) from '%s' on %s", len(kinds), namespace, session.endpoint)
    captured_at = datetime.now(timezone.utc)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="export") as pool:
        futures = {
            kind: pool.submit(_capture_kind, client, session, namespace, kind)
            for kind in kinds
        }
        documents = {kind: future.result() for kind, future in futures.items()}

    return Snapshot(
        namespace=namespace,
        source=session.endpoint,
        documents=documents,
        captured_at=captured_at,
    )


# ------------------------------------------------------------------
# Disk copies
# ------------------------------------------------------------------

def _kind_filename(kind: ResourceKind) -> str:
    return f"{kind.value}.json"


def write_snapshot(snapshot: Snapshot, directory: str) -> list[str]:
    """Write one JSON ``List`` document per kind into *directory*.

    Returns the written file paths.  Kinds with no documents still get a
    file, so the directory shows exactly what was exported.
    """
    Path(directory).mkdir(parents=True, exist_ok=True)
    paths: list[str] = []
    for kind, docs in snapshot.documents.items():
        payload = {
            "apiVersion": "v1",
            "kind": "List",
            "metadata": {
                "namespace": snapshot.namespace,
                "source": snapshot.source,
                "capturedAt": snapshot.captured_at.isoformat(),
                "resourceKind": kind.value,
            },
            "items": [doc.body for doc in docs],
        }
        path = os.path.join(directory, _kind_filename(kind))
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)
        paths.append(os.path.abspath(path))
    logger.debug("Wrote %d snapshot file(s) to %s", len(paths), directory)
    return paths

