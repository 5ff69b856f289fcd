"""Unit tests for snapshot capture and disk copies."""

from __future__ import annotations

import json

import pytest

from oc_project_mover.errors import NamespaceNotFound, SourceUnavailable
from oc_project_mover.models import ResourceKind
from oc_project_mover.snapshot import capture, is_regenerated, write_snapshot

from fakes import make_body


def test_capture_collects_requested_kinds(fake_client, source_session) -> None:
    snapshot = capture(fake_client, source_session, "shop", list(ResourceKind), max_workers=3)

    assert [d.name for d in snapshot.get(ResourceKind.IMAGE_STREAM)] == ["app-img"]
    assert [d.name for d in snapshot.get(ResourceKind.DEPLOYMENT_CONTROLLER)] == ["app-dc"]
    assert [d.name for d in snapshot.get(ResourceKind.ROUTE)] == ["app-route"]
    assert snapshot.get(ResourceKind.SECRET) == ()
    assert snapshot.namespace == "shop"
    assert snapshot.source == source_session.endpoint


def test_capture_keeps_documents_verbatim(fake_client, source_session, source_cluster) -> None:
    snapshot = capture(fake_client, source_session, "shop", [ResourceKind.ROUTE])

    (route,) = snapshot.get(ResourceKind.ROUTE)
    assert route.body == source_cluster.get("shop", "Route", "app-route")
    assert route.body["spec"]["host"] == "old.example.com"


def test_capture_only_requested_kinds(fake_client, source_session) -> None:
    snapshot = capture(fake_client, source_session, "shop", [ResourceKind.ROUTE])

    assert list(snapshot.documents) == [ResourceKind.ROUTE]


def test_capture_missing_namespace_raises(fake_client, source_session) -> None:
    with pytest.raises(NamespaceNotFound, match="'ghost'"):
        capture(fake_client, source_session, "ghost", list(ResourceKind))


def test_capture_unreachable_source_raises(fake_client, source_session, source_cluster) -> None:
    source_cluster.reachable = False

    with pytest.raises(SourceUnavailable):
        capture(fake_client, source_session, "shop", list(ResourceKind))


def test_capture_skips_objects_the_destination_regenerates(fake_client, source_session, source_cluster) -> None:
    source_cluster.add("shop", make_body("Secret", "default-token-abcde",
                                         type="kubernetes.io/service-account-token"))
    source_cluster.add("shop", make_body("Secret", "db-creds", type="Opaque"))

    snapshot = capture(fake_client, source_session, "shop", [ResourceKind.SECRET])

    assert [d.name for d in snapshot.get(ResourceKind.SECRET)] == ["db-creds"]


@pytest.mark.parametrize(
    "body, expected",
    [
        (make_body("Secret", "s", type="kubernetes.io/service-account-token"), True),
        (make_body("Secret", "builder-dockercfg-1", type="kubernetes.io/dockercfg",
                   metadata={"name": "builder-dockercfg-1",
                             "annotations": {"kubernetes.io/service-account.name": "builder"}}), True),
        (make_body("Secret", "pull", type="kubernetes.io/dockercfg"), False),
        (make_body("Deployment", "web", metadata={"name": "web", "ownerReferences": [{"kind": "X"}]}), True),
        (make_body("Deployment", "web"), False),
    ],
)
def test_is_regenerated(body, expected) -> None:
    assert is_regenerated(body) is expected


def test_write_snapshot_writes_one_list_per_kind(fake_client, source_session, tmp_path) -> None:
    snapshot = capture(fake_client, source_session, "shop", [ResourceKind.ROUTE, ResourceKind.SECRET])

    paths = write_snapshot(snapshot, str(tmp_path / "snap"))

    assert sorted(p.rsplit("/", 1)[-1] for p in paths) == ["route.json", "secret.json"]
    routes = json.loads((tmp_path / "snap" / "route.json").read_text())
    assert routes["kind"] == "List"
    assert routes["metadata"]["namespace"] == "shop"
    assert [i["metadata"]["name"] for i in routes["items"]] == ["app-route"]
    secrets = json.loads((tmp_path / "snap" / "secret.json").read_text())
    assert secrets["items"] == []
