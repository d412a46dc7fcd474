"""YAML config loader with environment variable expansion."""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator

from adminops.audit.models import EventKind


_ENV_REF = re.compile(r"\$\{([^}]+)\}")


def _expand(obj: object) -> object:
    """Substitute ${VAR} references in every string of a parsed YAML tree.

    References to unset variables are left as written.
    """
    if isinstance(obj, str):
        return _ENV_REF.sub(lambda m: os.environ.get(m.group(1), m.group(0)), obj)
    if isinstance(obj, dict):
        return {key: _expand(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_expand(item) for item in obj]
    return obj


def _default_watched_services() -> list[str]:
    if sys.platform == "win32":
        return ["wuauserv", "WinDefend", "EventLog", "Spooler", "BITS"]
    return ["ssh", "cron", "rsyslog", "systemd-journald", "systemd-timesyncd"]


class GraphConfig(BaseModel):
    authority_host: str = "https://login.microsoftonline.com"
    api_host: str = "https://graph.microsoft.com"
    api_version: str = "v1.0"
    timeout: float = Field(default=30.0, gt=0)


class CredentialConfig(BaseModel):
    tenant_id: str = ""
    client_id: str = ""
    thumbprint: str = ""
    private_key_path: str | None = None
    client_secret: str | None = None


class AuditExportConfig(BaseModel):
    window_months: int = Field(default=6, ge=1)
    operations: list[EventKind] = Field(
        default_factory=lambda: [
            EventKind.FILE_DELETED,
            EventKind.RETENTION_LABEL_APPLIED,
            EventKind.RETENTION_LABEL_REMOVED,
        ],
    )
    export_path: str = "reports/DataLifecycleEvents.csv"
    result_cap: int | None = Field(default=5000, ge=1)  # None = no cap
    page_size: int = Field(default=1000, ge=1)
    poll_interval: float = Field(default=10.0, gt=0)
    poll_timeout: float = Field(default=900.0, gt=0)
    fail_on_truncation: bool = False

    @field_validator("operations")
    @classmethod
    def _require_operations(cls, value: list[EventKind]) -> list[EventKind]:
        if not value:
            raise ValueError("audit_export.operations must not be empty")
        return value


class FactsConfig(BaseModel):
    recent_events: int = Field(default=10, ge=1)
    top_processes: int = Field(default=5, ge=1)
    watched_services: list[str] = Field(default_factory=_default_watched_services)
    command_timeout: float = Field(default=30.0, gt=0)
    cpu_sample_seconds: float = Field(default=0.5, ge=0)


class LoggingConfig(BaseModel):
    level: str = "INFO"
    file: str | None = None


class Settings(BaseModel):
    graph: GraphConfig = Field(default_factory=GraphConfig)
    credentials: CredentialConfig = Field(default_factory=CredentialConfig)
    audit_export: AuditExportConfig = Field(default_factory=AuditExportConfig)
    facts: FactsConfig = Field(default_factory=FactsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def export_path(self) -> Path:
        return Path(self.audit_export.export_path).expanduser()


def load_config(path: str | Path | None = None) -> Settings:
    """Load configuration from a YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path("adminops.yaml"),
            Path("adminops.yml"),
            Path.home() / ".adminops" / "config.yaml",
        ]
        for candidate in candidates:
            if candidate.exists():
                path = candidate
                break

    if path is not None:
        path = Path(path)
        if not path.is_file():
            raise ValueError(f"Config file not found: {path}")
        with open(path) as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ValueError(f"Config file {path} must contain a mapping")
        raw = _expand(raw)
        return Settings.model_validate(raw)

    return Settings()
