"""Shared fixtures for oc-project-mover tests.

Provides a source and destination FakeCluster plus a FakeClusterClient
wired to both, so pipeline tests exercise the full flow without touching
real clusters.
"""

from __future__ import annotations

import pytest

from oc_project_mover.config import AppConfig, AuthConfig, ExportConfig, ReportConfig, VerifyConfig
from oc_project_mover.models import ResourceKind, Snapshot

from fakes import (
    DEST_URL,
    SOURCE_URL,
    FakeCluster,
    FakeClusterClient,
    make_body,
    make_doc,
    make_route,
)

PROJECT = "shop"


@pytest.fixture
def source_cluster() -> FakeCluster:
    """Source cluster holding a small but complete project."""
    cluster = FakeCluster(SOURCE_URL, token="src-token")
    cluster.namespaces.add(PROJECT)
    cluster.add(PROJECT, make_body("ImageStream", "app-img"))
    cluster.add(PROJECT, make_body(
        "DeploymentConfig", "app-dc",
        spec={"triggers": [{"type": "ImageChange", "imageChangeParams": {
            "from": {"kind": "ImageStreamTag", "name": "app-img:latest"}}}]},
    ))
    cluster.add(PROJECT, make_route("app-route", host="old.example.com", backend="app-dc"))
    return cluster


@pytest.fixture
def dest_cluster() -> FakeCluster:
    return FakeCluster(DEST_URL, token="dest-token")


@pytest.fixture
def fake_client(source_cluster, dest_cluster) -> FakeClusterClient:
    return FakeClusterClient(source_cluster, dest_cluster)


@pytest.fixture
def source_session(fake_client):
    return fake_client.login(SOURCE_URL, "src-token")


@pytest.fixture
def dest_session(fake_client):
    return fake_client.login(DEST_URL, "dest-token")


@pytest.fixture
def auth() -> AuthConfig:
    return AuthConfig(source_token="src-token", dest_token="dest-token")


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    return AppConfig(
        project=PROJECT,
        source_url=SOURCE_URL,
        destination_url=DEST_URL,
        export=ExportConfig(max_workers=2),
        verify=VerifyConfig(timeout=2.0, poll_interval=0.01),
        report=ReportConfig(output_dir=str(tmp_path / "reports")),
    )


@pytest.fixture
def mixed_snapshot() -> Snapshot:
    """Snapshot touching every phase."""
    return Snapshot(
        namespace=PROJECT,
        source=SOURCE_URL,
        documents={
            ResourceKind.ROUTE: (make_doc("Route", "web", spec={"host": "web.old.example.com",
                                                                "to": {"name": "web"}}),),
            ResourceKind.SECRET: (make_doc("Secret", "db-creds", type="Opaque"),),
            ResourceKind.CONFIG_MAP: (make_doc("ConfigMap", "settings"),),
            ResourceKind.GENERIC_OBJECT: (
                make_doc("Service", "web", spec={"clusterIP": "172.30.1.1", "ports": [{"port": 8080}]}),
                make_doc("ServiceAccount", "deployer-bot"),
            ),
            ResourceKind.WORKLOAD_CONTROLLER: (make_doc("Deployment", "worker"),),
            ResourceKind.DEPLOYMENT_CONTROLLER: (make_doc("DeploymentConfig", "web"),),
            ResourceKind.BUILD_PIPELINE: (make_doc("BuildConfig", "web"),),
            ResourceKind.IMAGE_STREAM: (make_doc("ImageStream", "web"),),
        },
    )
