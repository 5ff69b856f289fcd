"""End-to-end pipeline tests against in-memory clusters."""

from __future__ import annotations

import copy
import json
import threading
from dataclasses import replace

import pytest

from oc_project_mover.config import ApplyConfig, AuthConfig, ExportConfig
from oc_project_mover.errors import AuthError, ClientError, MigrationCancelled, NamespaceNotFound
from oc_project_mover.models import IngressRecord, Outcome, PhaseState, ResourceKind
from oc_project_mover.orchestrator import migrate

from fakes import make_route


def test_migrates_project_and_reports_new_route_urls(fake_client, dest_cluster, app_config, auth) -> None:
    report = migrate(fake_client, app_config, auth)

    assert report.completed
    assert report.namespace_outcome is Outcome.CREATED
    assert report.failed_documents == []
    assert dest_cluster.names("shop") == {
        ("ImageStream", "app-img"),
        ("DeploymentConfig", "app-dc"),
        ("Route", "app-route"),
    }
    assert [p.name for p in report.phases] == ["ImageStreams", "DeploymentConfigs", "Routes"]
    assert report.ingress == [IngressRecord("app-route", "app-route-shop.apps.new.example.com")]
    assert report.ingress[0].url == "https://app-route-shop.apps.new.example.com"


def test_pushed_route_has_no_source_host(fake_client, app_config, auth) -> None:
    migrate(fake_client, app_config, auth)

    (route,) = [b for b in fake_client.pushed if b["kind"] == "Route"]
    assert "host" not in route["spec"]
    assert route["spec"]["to"]["name"] == "app-dc"


def test_source_is_never_modified(fake_client, source_cluster, app_config, auth) -> None:
    before = copy.deepcopy(source_cluster.objects)

    migrate(fake_client, app_config, auth)

    assert source_cluster.objects == before


def test_rerun_is_idempotent(fake_client, dest_cluster, app_config, auth) -> None:
    migrate(fake_client, app_config, auth)
    snapshot_of_dest = dict(dest_cluster.objects)

    report = migrate(fake_client, app_config, auth)

    assert report.namespace_outcome is Outcome.SKIPPED_EXISTS
    assert {d.outcome for p in report.phases for d in p.results} == {Outcome.SKIPPED_EXISTS}
    assert dest_cluster.objects == snapshot_of_dest


def test_bad_destination_token_touches_nothing(fake_client, dest_cluster, app_config) -> None:
    auth = AuthConfig(source_token="src-token", dest_token="wrong")

    with pytest.raises(AuthError, match="rejected the token"):
        migrate(fake_client, app_config, auth)

    assert dest_cluster.namespaces == set()
    assert fake_client.pushed == []


def test_missing_source_project_touches_nothing(fake_client, dest_cluster, app_config, auth) -> None:
    config = replace(app_config, project="ghost")

    with pytest.raises(NamespaceNotFound):
        migrate(fake_client, config, auth)

    assert dest_cluster.namespaces == set()


def test_cancel_before_import_leaves_destination_untouched(fake_client, dest_cluster, app_config, auth) -> None:
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(MigrationCancelled):
        migrate(fake_client, app_config, auth, cancel=cancel)

    assert dest_cluster.namespaces == set()


def test_dry_run_plans_without_writing(fake_client, dest_cluster, app_config, auth) -> None:
    report = migrate(fake_client, replace(app_config, dry_run=True), auth)

    assert report.dry_run and report.completed
    assert dest_cluster.namespaces == set()
    assert fake_client.pushed == []
    assert not report.verify_attempted
    planned = report.phases[-1].results[0]
    assert planned.outcome is None
    assert "old.example.com" not in planned.planned_json


def test_namespace_creation_failure_yields_incomplete_report(fake_client, dest_cluster, app_config, auth) -> None:
    def refuse(session, name):
        raise ClientError("projectrequests is forbidden", status=403)

    fake_client.ensure_namespace = refuse

    report = migrate(fake_client, app_config, auth)

    assert report.namespace_outcome is Outcome.FAILED
    assert report.phases == []
    assert not report.completed
    assert fake_client.pushed == []


def test_failed_route_is_not_waited_for(fake_client, app_config, auth) -> None:
    fake_client.fail[("Route", "app-route")] = 422

    report = migrate(fake_client, app_config, auth)

    assert report.phases[-1].state is PhaseState.COMPLETED_WITH_FAILURES
    assert report.ingress == []
    assert report.verify_attempted
    assert report.completed


def test_platform_route_is_imported_but_not_verified(fake_client, source_cluster, app_config, auth) -> None:
    source_cluster.add("shop", make_route("api", backend="kubernetes"))

    report = migrate(fake_client, app_config, auth)

    assert ("shop", "Route", "api") in fake_client.clusters[app_config.destination_url].objects
    assert [r.route_name for r in report.ingress] == ["app-route"]


def test_keep_dir_writes_snapshot_files(fake_client, app_config, auth, tmp_path) -> None:
    keep = tmp_path / "snapshot"
    config = replace(app_config, export=replace(app_config.export, keep_dir=str(keep)))

    report = migrate(fake_client, config, auth)

    assert report.snapshot_path == str(keep)
    route_list = json.loads((keep / "route.json").read_text())
    # The on-disk copy is the untouched export, host included
    assert route_list["items"][0]["spec"]["host"] == "old.example.com"


def test_replace_mode_updates_existing(fake_client, app_config, auth) -> None:
    migrate(fake_client, app_config, auth)
    config = replace(app_config, apply=ApplyConfig(on_conflict="replace"))

    report = migrate(fake_client, config, auth)

    assert {d.outcome for p in report.phases for d in p.results} == {Outcome.UPDATED}


def test_export_limited_to_configured_kinds(fake_client, dest_cluster, app_config, auth) -> None:
    config = replace(app_config, export=ExportConfig(kinds=(ResourceKind.IMAGE_STREAM,)))

    report = migrate(fake_client, config, auth)

    assert dest_cluster.names("shop") == {("ImageStream", "app-img")}
    assert report.ingress == []
