"""
Configuration loading, validation, and typed models.

Supports:
  - Optional YAML config file (config/config.yaml)
  - Cluster tokens from the environment only (SOURCE_TOKEN, DEST_TOKEN)
  - CLI argument merging via merge_cli_overrides()

Tokens are never accepted as arguments or read from the config file, so
they stay out of process listings and shell history.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping

import yaml

from .models import ResourceKind

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PROJECT_ROOT",
    "ENV_SOURCE_TOKEN",
    "ENV_DEST_TOKEN",
    "CONFLICT_ACTIONS",
    "ConfigError",
    "AuthConfig",
    "TlsConfig",
    "ExportConfig",
    "ApplyConfig",
    "VerifyConfig",
    "ReportConfig",
    "AppConfig",
    "load_config",
    "read_tokens",
    "merge_cli_overrides",
    "validate_project_name",
    "validate_endpoint",
]

logger = logging.getLogger(__name__)

# Default config path, relative to the project root
DEFAULT_CONFIG_PATH = os.path.join(
    os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
    "config",
    "config.yaml",
)

# Project root directory
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# Environment variable names
ENV_SOURCE_TOKEN = "SOURCE_TOKEN"
ENV_DEST_TOKEN = "DEST_TOKEN"

CONFLICT_ACTIONS = ("skip", "replace")

# Project names are DNS-1123 labels: lowercase alphanumeric and hyphens, 1-63 chars.
_PROJECT_NAME_RE = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")

_ENDPOINT_RE = re.compile(r"^https?://[^\s/]+(:\d+)?/?$")


class ConfigError(Exception):
    """Raised when the configuration file or arguments are missing or invalid."""


# ---------------------------------------------------------------------------
# Typed configuration models
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AuthConfig:
    source_token: str
    dest_token: str

    def __repr__(self) -> str:
        """Redact tokens in repr to prevent accidental logging."""
        return "AuthConfig(source_token='***redacted***', dest_token='***redacted***')"


@dataclass(frozen=True)
class TlsConfig:
    verify: bool = True
    ca_bundle: str = ""

    @property
    def requests_verify(self) -> bool | str:
        """Value for the ``verify`` argument of ``requests``."""
        if not self.verify:
            return False
        return self.ca_bundle or True


@dataclass(frozen=True)
class ExportConfig:
    kinds: tuple[ResourceKind, ...] = tuple(ResourceKind)
    max_workers: int = 4
    keep_dir: str = ""


@dataclass(frozen=True)
class ApplyConfig:
    max_workers: int = 4
    on_conflict: str = "skip"


@dataclass(frozen=True)
class VerifyConfig:
    timeout: float = 120.0
    poll_interval: float = 5.0


@dataclass(frozen=True)
class ReportConfig:
    output_dir: str = "reports"
    enabled: bool = True


@dataclass(frozen=True)
class AppConfig:
    project: str = ""
    source_url: str = ""
    destination_url: str = ""
    tls: TlsConfig = field(default_factory=TlsConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    apply: ApplyConfig = field(default_factory=ApplyConfig)
    verify: VerifyConfig = field(default_factory=VerifyConfig)
    report: ReportConfig = field(default_factory=ReportConfig)
    dry_run: bool = False
    strict: bool = False
    verbose: bool = False


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------

def validate_project_name(name: str, label: str = "project") -> str:
    """Validate that *name* is a legal project / namespace name.

    Raises:
        ConfigError: If the name is invalid.
    """
    name = (name or "").strip()
    if not _PROJECT_NAME_RE.match(name):
        raise ConfigError(
            f"Invalid {label}: {name!r} — must be 1-63 characters, "
            f"lowercase alphanumeric or hyphens, starting and ending with an alphanumeric."
        )
    return name


def validate_endpoint(url: str, label: str) -> str:
    """Validate a cluster API URL such as ``https://api.example.com:6443``."""
    url = (url or "").strip()
    if not _ENDPOINT_RE.match(url):
        raise ConfigError(
            f"Invalid {label} API URL: {url!r} — expected https://<host>[:port]"
        )
    return url.rstrip("/")


def _positive_number(value, label: str, cast=float):
    try:
        number = cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{label} must be a number, got {value!r}") from e
    if number <= 0:
        raise ConfigError(f"{label} must be greater than zero, got {value!r}")
    return number


def _parse_kinds(raw_kinds) -> tuple[ResourceKind, ...]:
    if raw_kinds is None:
        return tuple(ResourceKind)
    if not isinstance(raw_kinds, list):
        raise ConfigError("export.kinds must be a list")
    kinds: list[ResourceKind] = []
    for value in raw_kinds:
        try:
            kinds.append(ResourceKind(value))
        except ValueError as e:
            valid = ", ".join(k.value for k in ResourceKind)
            raise ConfigError(f"Unknown kind in export.kinds: {value!r} (valid: {valid})") from e
    return tuple(kinds)


def _parse_conflict_action(value: str) -> str:
    if value not in CONFLICT_ACTIONS:
        raise ConfigError(
            f"Invalid on_conflict action: {value!r} (expected one of {', '.join(CONFLICT_ACTIONS)})"
        )
    return value


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_config(config_path: str | None = None) -> AppConfig:
    """Load and validate the YAML configuration file.

    Without *config_path* the default ``config/config.yaml`` is used when
    it exists; otherwise built-in defaults apply.  An explicitly given path
    that does not exist is an error.

    Raises:
        ConfigError: If the config file is missing or contains invalid values.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        if not Path(config_path).exists():
            logger.debug("No config file at %s — using defaults", config_path)
            return AppConfig()

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(
            f"Config file not found: {config_path}\n"
            "Copy config/config.yaml.example to config/config.yaml and adjust it."
        )

    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Invalid config file format: expected YAML mapping, got {type(raw).__name__}")

    if "token" in (raw.get("source") or {}) or "token" in (raw.get("destination") or {}):
        raise ConfigError(
            f"Tokens must not be stored in the config file. "
            f"Set {ENV_SOURCE_TOKEN} and {ENV_DEST_TOKEN} in the environment instead."
        )

    project = (raw.get("project") or "").strip()
    if project:
        project = validate_project_name(project)
    source_url = (raw.get("source") or {}).get("api_url", "") or ""
    if source_url:
        source_url = validate_endpoint(source_url, "source")
    dest_url = (raw.get("destination") or {}).get("api_url", "") or ""
    if dest_url:
        dest_url = validate_endpoint(dest_url, "destination")

    tls_section = raw.get("tls") or {}
    tls = TlsConfig(
        verify=bool(tls_section.get("verify", True)),
        ca_bundle=tls_section.get("ca_bundle", "") or "",
    )
    if not tls.verify:
        logger.warning("TLS verification is disabled (tls.verify: false)")

    exp_section = raw.get("export") or {}
    export = ExportConfig(
        kinds=_parse_kinds(exp_section.get("kinds")),
        max_workers=_positive_number(exp_section.get("max_workers", 4), "export.max_workers", int),
        keep_dir=exp_section.get("keep_dir", "") or "",
    )

    apply_section = raw.get("apply") or {}
    apply = ApplyConfig(
        max_workers=_positive_number(apply_section.get("max_workers", 4), "apply.max_workers", int),
        on_conflict=_parse_conflict_action(apply_section.get("on_conflict", "skip") or "skip"),
    )

    verify_section = raw.get("verify") or {}
    verify = VerifyConfig(
        timeout=_positive_number(verify_section.get("timeout", 120), "verify.timeout"),
        poll_interval=_positive_number(verify_section.get("poll_interval", 5), "verify.poll_interval"),
    )

    rpt_section = raw.get("report") or {}
    report = ReportConfig(
        output_dir=rpt_section.get("output_dir", "reports") or "reports",
        enabled=bool(rpt_section.get("enabled", True)),
    )

    config = AppConfig(
        project=project,
        source_url=source_url,
        destination_url=dest_url,
        tls=tls,
        export=export,
        apply=apply,
        verify=verify,
        report=report,
    )
    logger.debug("Config loaded from %s", config_path)
    return config


def read_tokens(environ: Mapping[str, str] | None = None) -> AuthConfig:
    """Read both cluster tokens from the environment.

    Raises:
        ConfigError: If either token is unset or empty.
    """
    env = os.environ if environ is None else environ
    source_token = (env.get(ENV_SOURCE_TOKEN) or "").strip()
    dest_token = (env.get(ENV_DEST_TOKEN) or "").strip()
    if not source_token or not dest_token:
        raise ConfigError(
            f"{ENV_SOURCE_TOKEN} and {ENV_DEST_TOKEN} environment variables must be set "
            "with appropriate OpenShift tokens."
        )
    return AuthConfig(source_token=source_token, dest_token=dest_token)


# ---------------------------------------------------------------------------
# CLI override merging
# ---------------------------------------------------------------------------

def merge_cli_overrides(cfg: AppConfig, args) -> AppConfig:
    """Merge CLI arguments over loaded config, returning a new AppConfig.

    ``args`` is expected to have attributes matching argparse output:
    project, source, destination, dry_run, verify_timeout, poll_interval,
    workers, on_conflict, keep_snapshot, report_dir, no_report, strict, verbose,
    insecure_skip_tls_verify.
    Unset options are ``None`` and keep the config value.

    Raises:
        ConfigError: If merged values fail validation or a required value is missing.
    """
    project = args.project if args.project is not None else cfg.project
    source_url = args.source if args.source is not None else cfg.source_url
    dest_url = args.destination if args.destination is not None else cfg.destination_url

    if not project:
        raise ConfigError("Missing project name (-p/--project or 'project' in config).")
    if not source_url:
        raise ConfigError("Missing source cluster API URL (-s/--source).")
    if not dest_url:
        raise ConfigError("Missing destination cluster API URL (-d/--destination).")

    project = validate_project_name(project)
    source_url = validate_endpoint(source_url, "source")
    dest_url = validate_endpoint(dest_url, "destination")

    tls = cfg.tls
    export = cfg.export
    apply = cfg.apply
    verify = cfg.verify
    report = cfg.report

    if args.workers is not None:
        workers = _positive_number(args.workers, "--workers", int)
        export = replace(export, max_workers=workers)
        apply = replace(apply, max_workers=workers)
    if args.keep_snapshot is not None:
        export = replace(export, keep_dir=args.keep_snapshot)
    if args.on_conflict is not None:
        apply = replace(apply, on_conflict=_parse_conflict_action(args.on_conflict))
    if args.verify_timeout is not None:
        verify = replace(verify, timeout=_positive_number(args.verify_timeout, "--verify-timeout"))
    if args.poll_interval is not None:
        verify = replace(verify, poll_interval=_positive_number(args.poll_interval, "--poll-interval"))
    if args.report_dir is not None:
        report = replace(report, output_dir=args.report_dir)
    if getattr(args, "no_report", False):
        report = replace(report, enabled=False)
    if getattr(args, "insecure_skip_tls_verify", False):
        tls = replace(tls, verify=False)
        logger.warning("TLS verification is disabled (--insecure-skip-tls-verify)")

    return replace(
        cfg,
        project=project,
        source_url=source_url,
        destination_url=dest_url,
        tls=tls,
        export=export,
        apply=apply,
        verify=verify,
        report=report,
        dry_run=bool(getattr(args, "dry_run", False)),
        strict=bool(getattr(args, "strict", False)),
        verbose=bool(getattr(args, "verbose", False)),
    )
