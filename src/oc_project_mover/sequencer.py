"""
Import phase planning.

Kinds are applied in a fixed order chosen so that an object is created
after the kinds it usually references: images before the builds that push
to them, builds before the deployment configs they trigger, workloads and
services next, then configuration, and routes last.  The order is a static
policy and is not derived from the references inside the documents.
"""

from __future__ import annotations

import logging

from .models import Phase, ResourceKind, Snapshot

__all__ = ["PHASE_ORDER", "phase_of", "plan"]

logger = logging.getLogger(__name__)

PHASE_ORDER: tuple[tuple[ResourceKind, ...], ...] = (
    (ResourceKind.IMAGE_STREAM,),
    (ResourceKind.BUILD_PIPELINE,),
    (ResourceKind.DEPLOYMENT_CONTROLLER,),
    (ResourceKind.WORKLOAD_CONTROLLER, ResourceKind.GENERIC_OBJECT),
    (ResourceKind.CONFIG_MAP, ResourceKind.SECRET),
    (ResourceKind.ROUTE,),
)

_PHASE_INDEX = {kind: i for i, kinds in enumerate(PHASE_ORDER, 1) for kind in kinds}


def phase_of(kind: ResourceKind) -> int:
    """1-based phase number of *kind*."""
    return _PHASE_INDEX[kind]


def plan(snapshot: Snapshot) -> list[Phase]:
    """Split *snapshot* into phases in import order.

    Phases without documents are left out.  Within a phase, documents keep
    their snapshot order, kind by kind.
    """
    phases: list[Phase] = []
    for index, kinds in enumerate(PHASE_ORDER, 1):
        present = tuple(k for k in kinds if snapshot.get(k))
        if not present:
            logger.debug("Phase %d (%s) has no documents — skipped",
                         index, ", ".join(k.value for k in kinds))
            continue
        documents = tuple(doc for k in present for doc in snapshot.get(k))
        phases.append(Phase(index=index, kinds=present, documents=documents))

    logger.info(
        "Import plan: %s",
        ", ".join(f"{p.index}:{p.name} ({len(p.documents)})" for p in phases) or "(empty)",
    )
    return phases
