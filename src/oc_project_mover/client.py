"""
OpenShift / Kubernetes REST client for logging in, listing project
objects, and creating or replacing them on a cluster.

Every call takes an explicit :class:`ClusterSession`; the client holds no
"current cluster" state, so source and destination operations can be
interleaved freely.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import requests
import urllib3
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import AuthError, ClientError
from .models import ROUTE_RESOURCE, ApiResource, Outcome

__all__ = ["ClusterClient", "ClusterSession", "build_http_session"]

logger = logging.getLogger(__name__)

# Retry on transient server errors and connection failures.  POST is not
# retried: a create that landed before a gateway error would come back as 409.
_DEFAULT_RETRY = Retry(
    total=3,
    backoff_factor=0.5,
    status_forcelist=[502, 503, 504],
    allowed_methods=["GET", "PUT"],
    raise_on_status=False,
)

_USER_PATH = "/apis/user.openshift.io/v1/users/~"
_SELF_SUBJECT_REVIEW_PATH = "/apis/authentication.k8s.io/v1/selfsubjectreviews"
_PROJECT_REQUEST_PATH = "/apis/project.openshift.io/v1/projectrequests"
_NAMESPACES_PATH = "/api/v1/namespaces"


def build_http_session(
    token: str,
    verify: bool | str = True,
    retry: Retry | None = None,
) -> requests.Session:
    """Create a requests.Session with bearer auth and a retry adapter."""
    session = requests.Session()
    session.headers.update({
        "Authorization": f"Bearer {token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    })
    session.verify = verify
    adapter = HTTPAdapter(max_retries=retry or _DEFAULT_RETRY)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    return session


@dataclass(frozen=True)
class ClusterSession:
    """An authenticated connection to one cluster endpoint."""
    endpoint: str
    http: requests.Session = field(repr=False, compare=False)
    user: str = ""

    def url(self, path: str) -> str:
        return f"{self.endpoint}{path}"


def _status_message(resp: requests.Response) -> tuple[str, str]:
    """Best-effort ``(message, reason)`` from a Kubernetes ``Status`` body."""
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:500], ""
    if not isinstance(data, dict):
        return str(data)[:500], ""
    return (data.get("message") or resp.reason or "", data.get("reason") or "")


class ClusterClient:
    """HTTP client for the OpenShift / Kubernetes API.

    Supports dependency injection for the HTTP session factory (for
    testing) and automatic retry with backoff on transient HTTP errors.
    """

    # Default timeout for all HTTP requests: (connect, read) in seconds.
    DEFAULT_TIMEOUT = (10, 60)

    def __init__(
        self,
        verify: bool | str = True,
        session_factory: Callable[..., requests.Session] | None = None,
    ):
        self.verify = verify
        self._session_factory = session_factory or build_http_session
        # Resources that returned 404 on an endpoint, i.e. not served there
        self._missing: set[tuple[str, str, str]] = set()
        if verify is False:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

    def __repr__(self) -> str:
        return f"ClusterClient(verify={self.verify!r})"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        session: ClusterSession,
        method: str,
        path: str,
        body: dict | None = None,
        timeout: float | tuple[float, float] | None = None,
    ) -> dict:
        """Send a request and return the parsed JSON response.

        *timeout* overrides DEFAULT_TIMEOUT for this call.

        Raises:
            ClientError: On connection failure or any HTTP status >= 400.
        """
        url = session.url(path)
        logger.debug("%s %s", method, url)
        try:
            resp = session.http.request(method, url, json=body, timeout=timeout or self.DEFAULT_TIMEOUT)
        except requests.RequestException as exc:
            raise ClientError(f"{method} {url} failed: {exc}") from exc

        if resp.status_code >= 400:
            message, reason = _status_message(resp)
            raise ClientError(
                f"{method} {path} returned HTTP {resp.status_code}: {message}",
                status=resp.status_code,
                reason=reason,
            )
        if not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise ClientError(f"{method} {path} returned invalid JSON") from exc

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, endpoint: str, token: str) -> ClusterSession:
        """Validate *token* against *endpoint* and return a session.

        Asks the OpenShift user API who the token belongs to.  Clusters
        without that API are asked with a ``SelfSubjectReview`` instead.

        Raises:
            AuthError: If the endpoint is unreachable or rejects the token.
        """
        endpoint = endpoint.rstrip("/")
        logger.info("Logging into cluster: %s", endpoint)
        http = self._session_factory(token, verify=self.verify)
        session = ClusterSession(endpoint=endpoint, http=http)

        try:
            try:
                data = self._request(session, "GET", _USER_PATH)
                user = (data.get("metadata") or {}).get("name", "")
            except ClientError as exc:
                if not exc.not_found:
                    raise
                review = {
                    "apiVersion": "authentication.k8s.io/v1",
                    "kind": "SelfSubjectReview",
                }
                data = self._request(session, "POST", _SELF_SUBJECT_REVIEW_PATH, review)
                user = ((data.get("status") or {}).get("userInfo") or {}).get("username", "")
        except ClientError as exc:
            if exc.status in (401, 403):
                raise AuthError(f"Cluster {endpoint} rejected the token (HTTP {exc.status})") from exc
            raise AuthError(f"Failed to login to cluster: {endpoint}: {exc}") from exc

        logger.info("Logged into %s as '%s'", endpoint, user or "<unknown>")
        return ClusterSession(endpoint=endpoint, http=http, user=user)

    # ------------------------------------------------------------------
    # Namespaces
    # ------------------------------------------------------------------

    def namespace_exists(self, session: ClusterSession, name: str) -> bool:
        """Return True if the project is visible to the session's user.

        OpenShift answers 403 for projects the user cannot see, which is
        treated the same as 404.
        """
        try:
            self._request(session, "GET", f"{_NAMESPACES_PATH}/{name}")
        except ClientError as exc:
            if exc.status in (403, 404):
                return False
            raise
        return True

    def ensure_namespace(self, session: ClusterSession, name: str) -> Outcome:
        """Create the project on the cluster, tolerating an existing one.

        A project the user can already see is left as it is, so users with
        admin on an existing project but no self-provisioner role can still
        import into it.  Otherwise a ``ProjectRequest`` makes the requesting
        user project admin; a plain ``Namespace`` is created where the
        project API is not served.

        Raises:
            ClientError: If neither creation path succeeds.
        """
        if self.namespace_exists(session, name):
            logger.info("Project '%s' already exists on %s", name, session.endpoint)
            return Outcome.SKIPPED_EXISTS

        request = {
            "apiVersion": "project.openshift.io/v1",
            "kind": "ProjectRequest",
            "metadata": {"name": name},
        }
        try:
            self._request(session, "POST", _PROJECT_REQUEST_PATH, request)
            logger.info("Created project '%s' on %s", name, session.endpoint)
            return Outcome.CREATED
        except ClientError as exc:
            if exc.already_exists:
                logger.info("Project '%s' already exists on %s", name, session.endpoint)
                return Outcome.SKIPPED_EXISTS
            if not exc.not_found:
                raise

        namespace = {"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": name}}
        try:
            self._request(session, "POST", _NAMESPACES_PATH, namespace)
        except ClientError as exc:
            if exc.already_exists:
                logger.info("Namespace '%s' already exists on %s", name, session.endpoint)
                return Outcome.SKIPPED_EXISTS
            raise
        logger.info("Created namespace '%s' on %s", name, session.endpoint)
        return Outcome.CREATED

    # ------------------------------------------------------------------
    # Object listing
    # ------------------------------------------------------------------

    def list_objects(
        self,
        session: ClusterSession,
        namespace: str,
        resource: ApiResource,
        timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        """List every object of *resource* in *namespace*.

        List responses omit ``apiVersion``/``kind`` on their items; both are
        filled in so each returned dict is a complete resource document.
        An API group the cluster does not serve (404) yields an empty list,
        and is not queried again on that endpoint.

        Raises:
            ClientError: On any other failure.
        """
        key = (session.endpoint, resource.group_version, resource.plural)
        if key in self._missing:
            return []
        try:
            data = self._request(session, "GET", resource.collection_path(namespace), timeout=timeout)
        except ClientError as exc:
            if exc.not_found:
                self._missing.add(key)
                logger.info(
                    "%s is not served by %s — skipping %s",
                    resource.group_version, session.endpoint, resource.plural,
                )
                return []
            raise

        items = data.get("items") or []
        for item in items:
            item.setdefault("apiVersion", resource.group_version)
            item.setdefault("kind", resource.kind)
        logger.debug("Listed %d %s in '%s'", len(items), resource.plural, namespace)
        return items

    def list_routes(
        self, session: ClusterSession, namespace: str, timeout: float | None = None,
    ) -> list[dict[str, Any]]:
        return self.list_objects(session, namespace, ROUTE_RESOURCE, timeout=timeout)

    # ------------------------------------------------------------------
    # Object creation
    # ------------------------------------------------------------------

    def create_or_update(
        self,
        session: ClusterSession,
        namespace: str,
        resource: ApiResource,
        body: dict[str, Any],
        replace: bool = False,
    ) -> Outcome:
        """Create *body* in *namespace*.

        An existing object is left untouched (``SKIPPED_EXISTS``) unless
        *replace* is set, in which case it is overwritten with *body*
        (``UPDATED``).

        Raises:
            ClientError: If the create or replace fails for any other reason.
        """
        name = (body.get("metadata") or {}).get("name", "")
        try:
            self._request(session, "POST", resource.collection_path(namespace), body)
            return Outcome.CREATED
        except ClientError as exc:
            if not exc.already_exists:
                raise
        if not replace:
            return Outcome.SKIPPED_EXISTS

        path = resource.object_path(namespace, name)
        live = self._request(session, "GET", path)
        updated = copy.deepcopy(body)
        updated.setdefault("metadata", {})["resourceVersion"] = (
            (live.get("metadata") or {}).get("resourceVersion", "")
        )
        self._request(session, "PUT", path, updated)
        return Outcome.UPDATED
