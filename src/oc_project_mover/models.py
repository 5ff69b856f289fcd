"""
Shared data models and constants used across the oc-project-mover project.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterator, Mapping


# ------------------------------------------------------------------
# Resource kinds and the API resources behind them
# ------------------------------------------------------------------

class ResourceKind(enum.Enum):
    """Category of project object.  Drives import order and transforms."""

    IMAGE_STREAM = "image-stream"
    BUILD_PIPELINE = "build-pipeline"
    DEPLOYMENT_CONTROLLER = "deployment-controller"
    WORKLOAD_CONTROLLER = "workload-controller"
    GENERIC_OBJECT = "generic-object"
    CONFIG_MAP = "config-map"
    SECRET = "secret"
    ROUTE = "route"

    @property
    def friendly_name(self) -> str:
        return FRIENDLY_KIND_NAMES[self]

    @property
    def resources(self) -> tuple["ApiResource", ...]:
        return KIND_RESOURCES[self]


@dataclass(frozen=True)
class ApiResource:
    """A concrete REST collection, e.g. ``apps/v1`` ``deployments``."""

    group_version: str
    plural: str
    kind: str

    @property
    def api_prefix(self) -> str:
        # Core group lives under /api, named groups under /apis
        if "/" in self.group_version:
            return f"/apis/{self.group_version}"
        return f"/api/{self.group_version}"

    def collection_path(self, namespace: str) -> str:
        return f"{self.api_prefix}/namespaces/{namespace}/{self.plural}"

    def object_path(self, namespace: str, name: str) -> str:
        return f"{self.collection_path(namespace)}/{name}"


KIND_RESOURCES: dict[ResourceKind, tuple[ApiResource, ...]] = {
    ResourceKind.IMAGE_STREAM: (
        ApiResource("image.openshift.io/v1", "imagestreams", "ImageStream"),
    ),
    ResourceKind.BUILD_PIPELINE: (
        ApiResource("build.openshift.io/v1", "buildconfigs", "BuildConfig"),
    ),
    ResourceKind.DEPLOYMENT_CONTROLLER: (
        ApiResource("apps.openshift.io/v1", "deploymentconfigs", "DeploymentConfig"),
    ),
    ResourceKind.WORKLOAD_CONTROLLER: (
        ApiResource("apps/v1", "deployments", "Deployment"),
        ApiResource("apps/v1", "statefulsets", "StatefulSet"),
        ApiResource("apps/v1", "daemonsets", "DaemonSet"),
        ApiResource("batch/v1", "jobs", "Job"),
        ApiResource("batch/v1", "cronjobs", "CronJob"),
        ApiResource("autoscaling/v1", "horizontalpodautoscalers", "HorizontalPodAutoscaler"),
    ),
    ResourceKind.GENERIC_OBJECT: (
        ApiResource("v1", "services", "Service"),
        ApiResource("v1", "serviceaccounts", "ServiceAccount"),
        ApiResource("rbac.authorization.k8s.io/v1", "roles", "Role"),
        ApiResource("rbac.authorization.k8s.io/v1", "rolebindings", "RoleBinding"),
    ),
    ResourceKind.CONFIG_MAP: (
        ApiResource("v1", "configmaps", "ConfigMap"),
    ),
    ResourceKind.SECRET: (
        ApiResource("v1", "secrets", "Secret"),
    ),
    ResourceKind.ROUTE: (
        ApiResource("route.openshift.io/v1", "routes", "Route"),
    ),
}

ROUTE_RESOURCE = KIND_RESOURCES[ResourceKind.ROUTE][0]

FRIENDLY_KIND_NAMES = {
    ResourceKind.IMAGE_STREAM: "ImageStreams",
    ResourceKind.BUILD_PIPELINE: "BuildConfigs",
    ResourceKind.DEPLOYMENT_CONTROLLER: "DeploymentConfigs",
    ResourceKind.WORKLOAD_CONTROLLER: "Workloads",
    ResourceKind.GENERIC_OBJECT: "Other resources",
    ResourceKind.CONFIG_MAP: "ConfigMaps",
    ResourceKind.SECRET: "Secrets",
    ResourceKind.ROUTE: "Routes",
}


# ------------------------------------------------------------------
# Documents and snapshots
# ------------------------------------------------------------------

@dataclass(frozen=True)
class ResourceDocument:
    """One API object as read from a cluster."""
    kind: ResourceKind
    resource: ApiResource
    body: dict[str, Any]

    @property
    def name(self) -> str:
        return (self.body.get("metadata") or {}).get("name", "")

    @property
    def key(self) -> tuple[str, str]:
        """``(api kind, name)``, unique within a snapshot."""
        return (self.resource.kind, self.name)

    @property
    def label(self) -> str:
        return f"{self.resource.kind}/{self.name}"

    def with_body(self, body: dict[str, Any]) -> "ResourceDocument":
        return replace(self, body=body)


@dataclass(frozen=True)
class Snapshot:
    """Documents captured from one cluster at one point in time.

    ``documents`` maps each captured kind to its documents in list order.
    The mapping is read-only; transforms build a new Snapshot.
    """
    namespace: str
    source: str
    documents: Mapping[ResourceKind, tuple[ResourceDocument, ...]]
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        frozen = {kind: tuple(docs) for kind, docs in self.documents.items()}
        seen: set[tuple[str, str]] = set()
        for kind, docs in frozen.items():
            for doc in docs:
                if doc.kind is not kind:
                    raise ValueError(
                        f"{doc.label} is a {doc.kind.value} document filed under {kind.value}"
                    )
                if doc.key in seen:
                    raise ValueError(f"Duplicate {doc.label} in snapshot of '{self.namespace}'")
                seen.add(doc.key)
        object.__setattr__(self, "documents", MappingProxyType(frozen))

    def get(self, kind: ResourceKind) -> tuple[ResourceDocument, ...]:
        return self.documents.get(kind, ())

    def kinds(self) -> list[ResourceKind]:
        """Kinds with at least one document, in enum order."""
        return [k for k in ResourceKind if self.documents.get(k)]

    def __iter__(self) -> Iterator[ResourceDocument]:
        for kind in ResourceKind:
            yield from self.documents.get(kind, ())

    def __len__(self) -> int:
        return sum(len(docs) for docs in self.documents.values())

    def with_documents(
        self, kind: ResourceKind, docs: tuple[ResourceDocument, ...] | list[ResourceDocument],
    ) -> "Snapshot":
        """Return a new Snapshot with *kind* replaced by *docs*."""
        updated = dict(self.documents)
        updated[kind] = tuple(docs)
        return Snapshot(
            namespace=self.namespace,
            source=self.source,
            documents=updated,
            captured_at=self.captured_at,
        )


@dataclass(frozen=True)
class Phase:
    """An ordered group of kinds applied together."""
    index: int
    kinds: tuple[ResourceKind, ...]
    documents: tuple[ResourceDocument, ...]

    @property
    def name(self) -> str:
        return " + ".join(k.friendly_name for k in self.kinds)


# ------------------------------------------------------------------
# Apply results
# ------------------------------------------------------------------

class Outcome(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED_EXISTS = "skipped-exists"
    FAILED = "failed"


class PhaseState(enum.Enum):
    PENDING = "pending"
    APPLYING = "applying"
    COMPLETED = "completed"
    COMPLETED_WITH_FAILURES = "completed-with-failures"


@dataclass
class DocumentResult:
    """Result of applying a single document."""
    api_kind: str
    name: str
    outcome: Outcome | None = None  # None = dry-run, nothing pushed
    error: str = ""
    planned_json: str = ""  # cleaned document (dry-run only)

    @property
    def label(self) -> str:
        return f"{self.api_kind}/{self.name}"


@dataclass
class PhaseResult:
    index: int
    name: str
    state: PhaseState = PhaseState.PENDING
    results: list[DocumentResult] = field(default_factory=list)

    @property
    def failed(self) -> list[DocumentResult]:
        return [r for r in self.results if r.outcome is Outcome.FAILED]

    def counts(self) -> dict[Outcome, int]:
        totals = {o: 0 for o in Outcome}
        for r in self.results:
            if r.outcome is not None:
                totals[r.outcome] += 1
        return totals


# ------------------------------------------------------------------
# Verify results and the run report
# ------------------------------------------------------------------

@dataclass(frozen=True)
class IngressRecord:
    route_name: str
    hostname: str | None = None

    @property
    def url(self) -> str:
        return f"https://{self.hostname}" if self.hostname else ""


@dataclass
class MigrationReport:
    project: str
    source: str
    destination: str
    dry_run: bool = False
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    namespace_outcome: Outcome | None = None
    phases: list[PhaseResult] = field(default_factory=list)
    ingress: list[IngressRecord] = field(default_factory=list)
    verify_attempted: bool = False
    snapshot_path: str = ""
    document_count: int = 0

    @property
    def failed_documents(self) -> list[DocumentResult]:
        return [r for p in self.phases for r in p.failed]

    @property
    def completed(self) -> bool:
        """Namespace ready, every phase finished, verify attempted."""
        if self.dry_run:
            return all(p.state is not PhaseState.PENDING for p in self.phases)
        return (
            self.namespace_outcome is not None
            and self.namespace_outcome is not Outcome.FAILED
            and all(
                p.state in (PhaseState.COMPLETED, PhaseState.COMPLETED_WITH_FAILURES)
                for p in self.phases
            )
            and self.verify_attempted
        )
