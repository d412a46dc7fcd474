"""Parsers for platform command output (PowerShell JSON, journalctl, apt, ...)."""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from adminops.facts.models import (
    DiskHealth,
    FirewallProfile,
    LogEntry,
    PendingUpdate,
)

# journald PRIORITY -> level name
_JOURNAL_LEVELS = {
    "0": "error", "1": "error", "2": "error", "3": "error",
    "4": "warning",
}


def parse_powershell_json(output: str) -> list[dict[str, Any]]:
    """Normalize ``ConvertTo-Json`` output to a list of objects.

    PowerShell emits nothing for an empty pipeline, a bare object for a
    single item and an array otherwise.
    """
    text = output.strip()
    if not text:
        return []
    data = json.loads(text)
    if isinstance(data, dict):
        return [data]
    if isinstance(data, list):
        return [item for item in data if isinstance(item, dict)]
    return []


# ── Windows ─────────────────────────────────────────────────────────

def parse_windows_events(items: list[dict[str, Any]]) -> list[LogEntry]:
    entries: list[LogEntry] = []
    for item in items:
        try:
            ts = datetime.fromisoformat(str(item.get("TimeCreated", "")))
        except ValueError:
            continue
        entries.append(LogEntry(
            timestamp=ts,
            level=str(item.get("LevelDisplayName") or "unknown"),
            source=str(item.get("ProviderName") or ""),
            message=str(item.get("Message") or ""),
            event_id=str(item.get("Id") or ""),
        ))
    return entries


def parse_windows_updates(items: list[dict[str, Any]]) -> list[PendingUpdate]:
    return [PendingUpdate(title=str(i["Title"])) for i in items if i.get("Title")]


def parse_windows_disk_health(items: list[dict[str, Any]]) -> list[DiskHealth]:
    disks: list[DiskHealth] = []
    for item in items:
        predict = item.get("PredictFailure")
        reason = item.get("Reason")
        disks.append(DiskHealth(
            device=str(item.get("InstanceName") or "unknown"),
            predict_failure=bool(predict) if predict is not None else None,
            detail=f"reason code {reason}" if reason else "",
        ))
    return disks


def parse_windows_firewall(items: list[dict[str, Any]]) -> list[FirewallProfile]:
    return [
        FirewallProfile(name=str(i.get("Name") or "unknown"),
                        enabled=bool(i.get("Enabled")))
        for i in items
    ]


# ── Linux ───────────────────────────────────────────────────────────

def parse_journal(output: str) -> list[LogEntry]:
    """Parse ``journalctl -o json`` (one JSON object per line)."""
    entries: list[LogEntry] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            item = json.loads(line)
        except ValueError:
            continue
        try:
            usec = int(item.get("__REALTIME_TIMESTAMP", ""))
        except ValueError:
            continue
        message = item.get("MESSAGE", "")
        if isinstance(message, list):
            # journald encodes non-UTF-8 payloads as byte arrays
            message = bytes(message).decode("utf-8", errors="replace")
        entries.append(LogEntry(
            timestamp=datetime.fromtimestamp(usec / 1_000_000),
            level=_JOURNAL_LEVELS.get(str(item.get("PRIORITY", "")), "notice"),
            source=str(item.get("SYSLOG_IDENTIFIER") or item.get("_COMM") or ""),
            message=str(message),
        ))
    return entries


_APT_LINE = re.compile(r"^(?P<name>[^/\s]+)/\S+\s+(?P<version>\S+)")


def parse_apt_upgradable(output: str) -> list[PendingUpdate]:
    """Parse ``apt list --upgradable``."""
    updates: list[PendingUpdate] = []
    for line in output.splitlines():
        m = _APT_LINE.match(line.strip())
        if m:
            updates.append(PendingUpdate(title=f"{m.group('name')} {m.group('version')}"))
    return updates


def parse_lsblk_disks(output: str) -> list[str]:
    """Physical disk names from ``lsblk -dno NAME,TYPE``."""
    disks: list[str] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 2 and parts[1] == "disk":
            disks.append(parts[0])
    return disks


def parse_smartctl_health(device: str, output: str) -> DiskHealth:
    """Parse ``smartctl -H`` overall health."""
    m = re.search(
        r"(?:overall-health self-assessment test result|SMART Health Status):\s*(\S+)",
        output,
    )
    if not m:
        return DiskHealth(device=device, predict_failure=None,
                          detail="no SMART health data")
    verdict = m.group(1).upper()
    if verdict in ("PASSED", "OK"):
        return DiskHealth(device=device, predict_failure=False)
    return DiskHealth(device=device, predict_failure=True, detail=m.group(1))


def parse_ufw_status(output: str) -> list[FirewallProfile]:
    m = re.search(r"^Status:\s*(\w+)", output, re.MULTILINE)
    if not m:
        return []
    return [FirewallProfile(name="ufw", enabled=m.group(1).lower() == "active")]
