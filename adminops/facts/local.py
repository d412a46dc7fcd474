"""Facts source for the local host, backed by psutil and platform commands."""

from __future__ import annotations

import asyncio
import logging
import platform
import socket
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable

import psutil

from adminops.errors import SectionUnavailable
from adminops.facts.commands import powershell, run_command
from adminops.facts.models import (
    AdapterInfo,
    CommandResult,
    DiskHealth,
    DiskInfo,
    FirewallProfile,
    LinkInfo,
    LogEntry,
    PendingUpdate,
    ProcessInfo,
    ServiceStatus,
    SystemInfo,
    UptimeInfo,
)
from adminops.facts.parsers import (
    parse_apt_upgradable,
    parse_journal,
    parse_lsblk_disks,
    parse_powershell_json,
    parse_smartctl_health,
    parse_ufw_status,
    parse_windows_disk_health,
    parse_windows_events,
    parse_windows_firewall,
    parse_windows_updates,
)
from adminops.facts.sources import FactsSource

logger = logging.getLogger(__name__)

CommandRunner = Callable[[list[str], float], Awaitable[CommandResult]]

_DUPLEX = {
    psutil.NIC_DUPLEX_FULL: "full",
    psutil.NIC_DUPLEX_HALF: "half",
    psutil.NIC_DUPLEX_UNKNOWN: "unknown",
}

_PS_EVENTS = (
    "Get-WinEvent -FilterHashtable @{{LogName='System'; Level=2,3}} "
    "-MaxEvents {limit} -ErrorAction Stop | "
    "Select-Object @{{n='TimeCreated';e={{$_.TimeCreated.ToString('s')}}}},"
    "LevelDisplayName,ProviderName,Id,Message | ConvertTo-Json -Depth 2"
)
_PS_UPDATES = (
    "$s = (New-Object -ComObject Microsoft.Update.Session).CreateUpdateSearcher(); "
    "$s.Search('IsInstalled=0 and IsHidden=0').Updates | "
    "Select-Object Title | ConvertTo-Json -Depth 2"
)
_PS_DISK_HEALTH = (
    "Get-CimInstance -Namespace root\\wmi -ClassName MSStorageDriver_FailurePredictStatus "
    "-ErrorAction Stop | Select-Object InstanceName,PredictFailure,Reason | "
    "ConvertTo-Json -Depth 2"
)
_PS_FIREWALL = (
    "Get-NetFirewallProfile | "
    "Select-Object Name,@{n='Enabled';e={[bool]$_.Enabled}} | ConvertTo-Json -Depth 2"
)


class LocalFactsSource(FactsSource):
    """Collects facts from the machine the report runs on."""

    def __init__(
        self,
        command_timeout: float = 30.0,
        cpu_sample_seconds: float = 0.5,
        runner: CommandRunner = run_command,
        platform_name: str | None = None,
    ) -> None:
        self._timeout = command_timeout
        self._cpu_sample = cpu_sample_seconds
        self._runner = runner
        self._platform = platform_name or sys.platform

    @property
    def is_windows(self) -> bool:
        return self._platform == "win32"

    @property
    def is_linux(self) -> bool:
        return self._platform.startswith("linux")

    def _unsupported(self, what: str) -> SectionUnavailable:
        return SectionUnavailable(f"{what} is not supported on {self._platform}")

    async def _run(self, argv: list[str]) -> str:
        result = await self._runner(argv, self._timeout)
        if not result.success:
            raise SectionUnavailable(f"{argv[0]} failed: {result.error}")
        return result.output

    async def _run_powershell(self, script: str) -> list[dict]:
        output = await self._run(powershell(script))
        try:
            return parse_powershell_json(output)
        except ValueError as exc:
            raise SectionUnavailable(f"unreadable PowerShell output: {exc}") from exc

    # ── psutil-backed sections ──────────────────────────────────────

    async def uptime(self) -> UptimeInfo:
        boot = psutil.boot_time()
        return UptimeInfo(
            boot_time=datetime.fromtimestamp(boot),
            uptime_seconds=max(0.0, time.time() - boot),
        )

    async def system_info(self) -> SystemInfo:
        loop = asyncio.get_running_loop()
        cpu_percent = await loop.run_in_executor(
            None, psutil.cpu_percent, self._cpu_sample,
        )
        memory = psutil.virtual_memory()
        swap = psutil.swap_memory()
        return SystemInfo(
            hostname=platform.node(),
            os_name=f"{platform.system()} {platform.release()}".strip(),
            os_version=platform.version(),
            cpu_model=_cpu_model(),
            cpu_physical_cores=psutil.cpu_count(logical=False) or 0,
            cpu_logical_cores=psutil.cpu_count(logical=True) or 0,
            cpu_percent=cpu_percent,
            memory_total_bytes=memory.total,
            memory_available_bytes=memory.available,
            swap_total_bytes=swap.total,
            swap_used_bytes=swap.used,
            process_count=len(psutil.pids()),
            user_count=len(psutil.users()),
            disks=_disks(),
            adapters=_adapters(),
        )

    async def adapter_links(self) -> list[LinkInfo]:
        links = []
        for name, stats in sorted(psutil.net_if_stats().items()):
            links.append(LinkInfo(
                name=name,
                is_up=stats.isup,
                speed_mbps=stats.speed,
                duplex=_DUPLEX.get(stats.duplex, "unknown"),
                mtu=stats.mtu,
            ))
        return links

    async def top_processes(self, limit: int) -> list[ProcessInfo]:
        processes: list[ProcessInfo] = []
        for proc in psutil.process_iter(["pid", "name", "cpu_times", "memory_info"]):
            info = proc.info
            cpu = info.get("cpu_times")
            if info["pid"] == 0 or cpu is None:
                continue
            mem = info.get("memory_info")
            processes.append(ProcessInfo(
                pid=info["pid"],
                name=info.get("name") or "?",
                cpu_seconds=cpu.user + cpu.system,
                memory_bytes=mem.rss if mem is not None else 0,
            ))
        processes.sort(key=lambda p: p.cpu_seconds, reverse=True)
        return processes[:limit]

    async def service_statuses(self, names: list[str]) -> list[ServiceStatus]:
        if self.is_windows:
            return [_windows_service(name) for name in names]
        if self.is_linux:
            statuses = []
            for name in names:
                # is-active exits non-zero for inactive units but still prints the state
                result = await self._runner(
                    ["systemctl", "is-active", name], self._timeout,
                )
                if result.returncode is None and not result.output:
                    raise SectionUnavailable(f"systemctl failed: {result.error}")
                state = result.output.strip().splitlines()
                statuses.append(ServiceStatus(
                    name=name, status=state[0] if state else "unknown",
                ))
            return statuses
        raise self._unsupported("service status")

    # ── command-backed sections ─────────────────────────────────────

    async def recent_log_entries(self, limit: int) -> list[LogEntry]:
        if self.is_windows:
            items = await self._run_powershell(_PS_EVENTS.format(limit=limit))
            return parse_windows_events(items)[:limit]
        if self.is_linux:
            output = await self._run([
                "journalctl", "-p", "warning", "-n", str(limit), "-r",
                "-o", "json", "--no-pager",
            ])
            return parse_journal(output)[:limit]
        raise self._unsupported("event log")

    async def pending_updates(self) -> list[PendingUpdate]:
        if self.is_windows:
            return parse_windows_updates(await self._run_powershell(_PS_UPDATES))
        if self.is_linux:
            return parse_apt_upgradable(await self._run(["apt", "list", "--upgradable"]))
        raise self._unsupported("update listing")

    async def disk_health(self) -> list[DiskHealth]:
        if self.is_windows:
            return parse_windows_disk_health(
                await self._run_powershell(_PS_DISK_HEALTH)
            )
        if self.is_linux:
            disks = parse_lsblk_disks(await self._run(["lsblk", "-dno", "NAME,TYPE"]))
            health = []
            for name in disks:
                device = f"/dev/{name}"
                result = await self._runner(["smartctl", "-H", device], self._timeout)
                if result.returncode is None:
                    raise SectionUnavailable(f"smartctl failed: {result.error}")
                # smartctl sets status bits on warnings; the text verdict is authoritative
                health.append(parse_smartctl_health(device, result.output))
            return health
        raise self._unsupported("failure prediction")

    async def firewall_profiles(self) -> list[FirewallProfile]:
        if self.is_windows:
            return parse_windows_firewall(await self._run_powershell(_PS_FIREWALL))
        if self.is_linux:
            return parse_ufw_status(await self._run(["ufw", "status"]))
        raise self._unsupported("firewall status")


def _cpu_model() -> str:
    cpuinfo = Path("/proc/cpuinfo")
    if cpuinfo.is_file():
        for line in cpuinfo.read_text(errors="replace").splitlines():
            if line.startswith("model name"):
                return line.split(":", 1)[1].strip()
    return platform.processor() or "unknown"


def _disks() -> list[DiskInfo]:
    disks = []
    for part in psutil.disk_partitions(all=False):
        if not part.fstype:
            continue
        try:
            usage = psutil.disk_usage(part.mountpoint)
        except OSError as exc:
            logger.debug("Skipping %s: %s", part.mountpoint, exc)
            continue
        disks.append(DiskInfo(
            mountpoint=part.mountpoint, fstype=part.fstype,
            total_bytes=usage.total, free_bytes=usage.free,
        ))
    return disks


def _adapters() -> list[AdapterInfo]:
    adapters = []
    for name, addrs in sorted(psutil.net_if_addrs().items()):
        adapter = AdapterInfo(name=name)
        for addr in addrs:
            if addr.family == socket.AF_INET:
                adapter.ipv4.append(addr.address)
            elif addr.family == psutil.AF_LINK:
                adapter.mac = addr.address
        adapters.append(adapter)
    return adapters


def _windows_service(name: str) -> ServiceStatus:
    try:
        svc = psutil.win_service_get(name).as_dict()
    except psutil.NoSuchProcess:
        return ServiceStatus(name=name, status="not found")
    return ServiceStatus(
        name=name,
        status=svc.get("status", "unknown"),
        display_name=svc.get("display_name", ""),
    )
