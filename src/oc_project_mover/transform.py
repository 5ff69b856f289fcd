"""
Document transforms applied between export and import.

``strip_ingress_hosts`` removes the hostnames the source cluster's router
assigned to routes, so the destination router assigns its own.
``clean_document`` drops server-managed fields that must not be sent back
to an API server on create.
"""

from __future__ import annotations

import copy
from typing import Any

from .models import ResourceDocument, ResourceKind, Snapshot

__all__ = [
    "strip_ingress_hosts",
    "strip_route_host",
    "clean_document",
]

# Metadata fields returned by GET that are assigned by the API server.
_METADATA_READONLY_FIELDS = frozenset(
    {
        "uid",
        "resourceVersion",
        "creationTimestamp",
        "deletionTimestamp",
        "deletionGracePeriodSeconds",
        "selfLink",
        "managedFields",
        "generation",
        "ownerReferences",
    }
)

# Service spec fields allocated by the destination cluster.
_SERVICE_ALLOCATED_FIELDS = frozenset({"clusterIP", "clusterIPs"})

# Per-cluster secrets a service account links to (e.g. "builder-dockercfg-x7k2p")
_GENERATED_SA_SECRET_MARKERS = ("-dockercfg-", "-token-")


def strip_route_host(body: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of a route body without ``spec.host``.

    Path, target service, port and TLS settings are left as they are.
    """
    out = copy.deepcopy(body)
    spec = out.get("spec")
    if isinstance(spec, dict):
        spec.pop("host", None)
    return out


def strip_ingress_hosts(snapshot: Snapshot) -> Snapshot:
    """Derive a snapshot whose routes carry no pinned hostname.

    Only route documents change; the input snapshot is not modified.
    """
    if ResourceKind.ROUTE not in snapshot.documents:
        return snapshot
    routes = [
        doc.with_body(strip_route_host(doc.body))
        for doc in snapshot.get(ResourceKind.ROUTE)
    ]
    return snapshot.with_documents(ResourceKind.ROUTE, routes)


def _drop_generated_sa_secrets(refs: list, sa_name: str) -> list:
    kept = []
    for ref in refs:
        name = (ref or {}).get("name", "")
        if name.startswith(sa_name) and any(m in name for m in _GENERATED_SA_SECRET_MARKERS):
            continue
        kept.append(ref)
    return kept


def clean_document(document: ResourceDocument, namespace: str) -> dict[str, Any]:
    """Return the body of *document* ready for a create call in *namespace*.

    - Strips server-assigned metadata and the ``status`` block
    - Sets ``metadata.namespace`` to *namespace*
    - Drops allocated service IPs
    - Unlinks per-cluster generated secrets from service accounts
    """
    body = copy.deepcopy(document.body)
    body.pop("status", None)

    metadata = {
        k: v for k, v in (body.get("metadata") or {}).items()
        if k not in _METADATA_READONLY_FIELDS
    }
    metadata["namespace"] = namespace
    body["metadata"] = metadata

    kind = body.get("kind") or document.resource.kind
    if kind == "Service":
        spec = body.get("spec") or {}
        for key in _SERVICE_ALLOCATED_FIELDS:
            spec.pop(key, None)
    elif kind == "ServiceAccount":
        sa_name = metadata.get("name", "")
        for key in ("secrets", "imagePullSecrets"):
            if key in body:
                body[key] = _drop_generated_sa_secrets(body[key] or [], sa_name)

    return body
