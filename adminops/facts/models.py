"""Typed records for the local facts report."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class CommandResult:
    command: str
    output: str
    success: bool = True
    error: str | None = None
    returncode: int | None = None
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class UptimeInfo:
    boot_time: datetime
    uptime_seconds: float


@dataclass
class DiskInfo:
    mountpoint: str
    fstype: str
    total_bytes: int
    free_bytes: int

    @property
    def used_percent(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return (self.total_bytes - self.free_bytes) / self.total_bytes * 100


@dataclass
class AdapterInfo:
    name: str
    ipv4: list[str] = field(default_factory=list)
    mac: str = ""


@dataclass
class SystemInfo:
    hostname: str
    os_name: str
    os_version: str
    cpu_model: str
    cpu_physical_cores: int
    cpu_logical_cores: int
    cpu_percent: float
    memory_total_bytes: int
    memory_available_bytes: int
    swap_total_bytes: int
    swap_used_bytes: int
    process_count: int
    user_count: int
    disks: list[DiskInfo] = field(default_factory=list)
    adapters: list[AdapterInfo] = field(default_factory=list)


@dataclass
class LogEntry:
    timestamp: datetime
    level: str
    source: str
    message: str
    event_id: str = ""


@dataclass
class LinkInfo:
    name: str
    is_up: bool
    speed_mbps: int
    duplex: str
    mtu: int


@dataclass
class ProcessInfo:
    pid: int
    name: str
    cpu_seconds: float
    memory_bytes: int


@dataclass
class ServiceStatus:
    name: str
    status: str
    display_name: str = ""


@dataclass
class PendingUpdate:
    title: str


@dataclass
class DiskHealth:
    device: str
    predict_failure: bool | None
    detail: str = ""


@dataclass
class FirewallProfile:
    name: str
    enabled: bool
