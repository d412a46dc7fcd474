"""Plain-text rendering for the facts report sections."""

from __future__ import annotations

from datetime import datetime

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

GIB = 1024 ** 3
MIB = 1024 ** 2
MAX_MESSAGE = 120


def bytes_to_gb(value: int | float) -> str:
    """Binary gigabytes, two decimals: 8589934592 -> '8.00'."""
    return f"{value / GIB:.2f}"


def format_percent(value: float) -> str:
    return f"{value:.2f}"


def format_uptime(seconds: float) -> str:
    total = int(seconds)
    days, rem = divmod(total, 86400)
    hours, rem = divmod(rem, 3600)
    minutes, secs = divmod(rem, 60)
    return f"{days} days, {hours:02d}:{minutes:02d}:{secs:02d}"


def _timestamp(dt: datetime) -> str:
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def _one_line(text: str, limit: int = MAX_MESSAGE) -> str:
    flat = " ".join(text.split())
    if len(flat) > limit:
        return flat[: limit - 3] + "..."
    return flat


def render_uptime(info: UptimeInfo) -> list[str]:
    return [
        f"Last boot: {_timestamp(info.boot_time)}",
        f"Uptime: {format_uptime(info.uptime_seconds)}",
    ]


def render_system_info(info: SystemInfo) -> list[str]:
    mem_used = info.memory_total_bytes - info.memory_available_bytes
    mem_pct = mem_used / info.memory_total_bytes * 100 if info.memory_total_bytes else 0.0
    lines = [
        f"Host: {info.hostname}",
        f"OS: {info.os_name} {info.os_version}".rstrip(),
        f"CPU: {info.cpu_model} ({info.cpu_physical_cores} cores, "
        f"{info.cpu_logical_cores} logical) at {format_percent(info.cpu_percent)}%",
        f"Memory: {bytes_to_gb(mem_used)} / {bytes_to_gb(info.memory_total_bytes)} GB "
        f"used ({format_percent(mem_pct)}%)",
        f"Swap: {bytes_to_gb(info.swap_used_bytes)} / {bytes_to_gb(info.swap_total_bytes)} GB used",
        f"Processes: {info.process_count}",
        f"Logged-in users: {info.user_count}",
        "Disks:",
    ]
    if info.disks:
        for disk in info.disks:
            lines.append(
                f"  {disk.mountpoint} ({disk.fstype}): "
                f"{bytes_to_gb(disk.free_bytes)} GB free of "
                f"{bytes_to_gb(disk.total_bytes)} GB "
                f"({format_percent(disk.used_percent)}% used)"
            )
    else:
        lines.append("  (none)")
    lines.append("Network adapters:")
    if info.adapters:
        for adapter in info.adapters:
            addrs = ", ".join(adapter.ipv4) if adapter.ipv4 else "no IPv4"
            mac = f" [{adapter.mac}]" if adapter.mac else ""
            lines.append(f"  {adapter.name}: {addrs}{mac}")
    else:
        lines.append("  (none)")
    return lines


def render_log_entries(entries: list[LogEntry]) -> list[str]:
    lines = []
    for entry in entries:
        event = f" [{entry.event_id}]" if entry.event_id else ""
        lines.append(
            f"{_timestamp(entry.timestamp)} {entry.level.upper():<8} "
            f"{entry.source}{event}: {_one_line(entry.message)}"
        )
    return lines


def render_links(links: list[LinkInfo]) -> list[str]:
    lines = []
    for link in links:
        state = "up" if link.is_up else "down"
        speed = f"{link.speed_mbps} Mbps" if link.speed_mbps else "unknown speed"
        lines.append(
            f"{link.name}: {state}, {speed}, {link.duplex} duplex, MTU {link.mtu}"
        )
    return lines


def render_processes(processes: list[ProcessInfo]) -> list[str]:
    return [
        f"{p.name} (PID {p.pid}): CPU {p.cpu_seconds:.2f}s, "
        f"memory {p.memory_bytes / MIB:.2f} MB"
        for p in processes
    ]


def render_services(services: list[ServiceStatus]) -> list[str]:
    lines = []
    for svc in services:
        label = svc.name
        if svc.display_name and svc.display_name != svc.name:
            label = f"{svc.name} ({svc.display_name})"
        lines.append(f"{label}: {svc.status}")
    return lines


def render_updates(updates: list[PendingUpdate]) -> list[str]:
    return [f"- {u.title}" for u in updates]


def render_disk_health(disks: list[DiskHealth]) -> list[str]:
    lines = []
    for disk in disks:
        if disk.predict_failure is None:
            verdict = "unknown"
        elif disk.predict_failure:
            verdict = "FAILURE PREDICTED"
        else:
            verdict = "OK"
        detail = f" ({disk.detail})" if disk.detail else ""
        lines.append(f"{disk.device}: {verdict}{detail}")
    return lines


def render_firewall(profiles: list[FirewallProfile]) -> list[str]:
    return [
        f"{p.name}: {'enabled' if p.enabled else 'disabled'}" for p in profiles
    ]
