"""Unit tests for import phase planning."""

from __future__ import annotations

from oc_project_mover.models import ResourceKind, Snapshot
from oc_project_mover.sequencer import PHASE_ORDER, phase_of, plan

from fakes import make_doc


def test_every_kind_belongs_to_exactly_one_phase() -> None:
    placed = [kind for kinds in PHASE_ORDER for kind in kinds]

    assert sorted(placed, key=lambda k: k.value) == sorted(ResourceKind, key=lambda k: k.value)


def test_plan_follows_dependency_direction(mixed_snapshot) -> None:
    phases = plan(mixed_snapshot)

    assert [p.kinds for p in phases] == [
        (ResourceKind.IMAGE_STREAM,),
        (ResourceKind.BUILD_PIPELINE,),
        (ResourceKind.DEPLOYMENT_CONTROLLER,),
        (ResourceKind.WORKLOAD_CONTROLLER, ResourceKind.GENERIC_OBJECT),
        (ResourceKind.CONFIG_MAP, ResourceKind.SECRET),
        (ResourceKind.ROUTE,),
    ]
    assert phases[-1].documents[0].resource.kind == "Route"


def test_plan_skips_phases_without_documents() -> None:
    snapshot = Snapshot(
        namespace="shop",
        source="https://src",
        documents={
            ResourceKind.IMAGE_STREAM: (make_doc("ImageStream", "app-img"),),
            ResourceKind.DEPLOYMENT_CONTROLLER: (make_doc("DeploymentConfig", "app-dc"),),
            ResourceKind.CONFIG_MAP: (),
            ResourceKind.ROUTE: (make_doc("Route", "app-route"),),
        },
    )

    phases = plan(snapshot)

    assert [p.index for p in phases] == [1, 3, 6]
    assert [[d.name for d in p.documents] for p in phases] == [["app-img"], ["app-dc"], ["app-route"]]


def test_plan_keeps_snapshot_order_within_a_phase() -> None:
    snapshot = Snapshot(
        namespace="shop",
        source="https://src",
        documents={
            ResourceKind.SECRET: (make_doc("Secret", "z-secret"),),
            ResourceKind.CONFIG_MAP: (make_doc("ConfigMap", "b"), make_doc("ConfigMap", "a")),
        },
    )

    (phase,) = plan(snapshot)

    assert [d.name for d in phase.documents] == ["b", "a", "z-secret"]
    assert phase.name == "ConfigMaps + Secrets"


def test_plan_of_empty_snapshot_is_empty() -> None:
    assert plan(Snapshot(namespace="shop", source="https://src", documents={})) == []


def test_routes_are_always_last() -> None:
    assert phase_of(ResourceKind.ROUTE) == len(PHASE_ORDER)
    assert phase_of(ResourceKind.IMAGE_STREAM) < phase_of(ResourceKind.BUILD_PIPELINE)
    assert phase_of(ResourceKind.BUILD_PIPELINE) < phase_of(ResourceKind.DEPLOYMENT_CONTROLLER)
