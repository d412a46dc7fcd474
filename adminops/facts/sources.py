"""Abstract facts source interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from adminops.facts.models import (
    DiskHealth,
    FirewallProfile,
    LinkInfo,
    LogEntry,
    PendingUpdate,
    ProcessInfo,
    ServiceStatus,
    SystemInfo,
    UptimeInfo,
)


class FactsSource(ABC):
    """One collector per report section.

    Implementations raise SectionUnavailable when a section cannot be
    collected on the current host.
    """

    @abstractmethod
    async def uptime(self) -> UptimeInfo:
        """Last boot time and elapsed uptime."""

    @abstractmethod
    async def system_info(self) -> SystemInfo:
        """OS, CPU, disks, memory, swap, process and user counts, adapters."""

    @abstractmethod
    async def recent_log_entries(self, limit: int) -> list[LogEntry]:
        """Most recent error and warning entries, newest first."""

    @abstractmethod
    async def adapter_links(self) -> list[LinkInfo]:
        """Link state of each network adapter."""

    @abstractmethod
    async def top_processes(self, limit: int) -> list[ProcessInfo]:
        """Processes with the most accumulated CPU time."""

    @abstractmethod
    async def service_statuses(self, names: list[str]) -> list[ServiceStatus]:
        """Status of each named service."""

    @abstractmethod
    async def pending_updates(self) -> list[PendingUpdate]:
        """Updates available but not installed."""

    @abstractmethod
    async def disk_health(self) -> list[DiskHealth]:
        """Storage failure-prediction status per physical disk."""

    @abstractmethod
    async def firewall_profiles(self) -> list[FirewallProfile]:
        """Firewall profile enablement."""

    @property
    def source_name(self) -> str:
        return self.__class__.__name__
