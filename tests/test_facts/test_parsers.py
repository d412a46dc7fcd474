"""Tests for platform command output parsers."""

import json
from datetime import datetime

import pytest

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


class TestPowerShellJson:
    def test_empty_output(self):
        assert parse_powershell_json("  \r\n") == []

    def test_single_object(self):
        assert parse_powershell_json('{"Title": "KB1"}') == [{"Title": "KB1"}]

    def test_array(self):
        assert parse_powershell_json('[{"a": 1}, {"a": 2}]') == [{"a": 1}, {"a": 2}]

    def test_invalid_json_raises(self):
        with pytest.raises(ValueError):
            parse_powershell_json("Get-WinEvent : No events were found")


def test_windows_events():
    items = [
        {"TimeCreated": "2026-10-17T22:15:03", "LevelDisplayName": "Error",
         "ProviderName": "disk", "Id": 7, "Message": "Bad block"},
        {"TimeCreated": "garbage", "LevelDisplayName": "Warning"},
    ]
    entries = parse_windows_events(items)
    assert len(entries) == 1
    assert entries[0].timestamp == datetime(2026, 10, 17, 22, 15, 3)
    assert entries[0].level == "Error"
    assert entries[0].event_id == "7"


def test_windows_updates_skip_untitled():
    updates = parse_windows_updates([{"Title": "2026-10 Cumulative Update"}, {"Title": None}])
    assert [u.title for u in updates] == ["2026-10 Cumulative Update"]


def test_windows_disk_health():
    disks = parse_windows_disk_health([
        {"InstanceName": "SCSI\\Disk_0", "PredictFailure": False, "Reason": 0},
        {"InstanceName": "SCSI\\Disk_1", "PredictFailure": True, "Reason": 5},
    ])
    assert disks[0].predict_failure is False
    assert disks[0].detail == ""
    assert disks[1].predict_failure is True
    assert disks[1].detail == "reason code 5"


def test_windows_firewall():
    profiles = parse_windows_firewall([
        {"Name": "Domain", "Enabled": True},
        {"Name": "Public", "Enabled": False},
    ])
    assert [(p.name, p.enabled) for p in profiles] == [("Domain", True), ("Public", False)]


def test_journal_entries():
    lines = [
        {"__REALTIME_TIMESTAMP": "1792274400000000", "PRIORITY": "3",
         "SYSLOG_IDENTIFIER": "kernel", "MESSAGE": "I/O error"},
        {"__REALTIME_TIMESTAMP": "1792274300000000", "PRIORITY": "4",
         "_COMM": "sshd", "MESSAGE": [104, 105]},
    ]
    output = "\n".join(json.dumps(line) for line in lines) + "\nnot json\n"
    entries = parse_journal(output)
    assert [e.level for e in entries] == ["error", "warning"]
    assert entries[0].source == "kernel"
    assert entries[1].source == "sshd"
    assert entries[1].message == "hi"
    assert entries[0].timestamp == datetime.fromtimestamp(1792274400)


def test_apt_upgradable():
    output = (
        "Listing... Done\n"
        "openssl/jammy-updates 3.0.2-0ubuntu1.18 amd64 [upgradable from: 3.0.2-0ubuntu1.17]\n"
        "tzdata/jammy-updates 2026a-0ubuntu0.22.04 all [upgradable from: 2025b]\n"
    )
    assert [u.title for u in parse_apt_upgradable(output)] == [
        "openssl 3.0.2-0ubuntu1.18",
        "tzdata 2026a-0ubuntu0.22.04",
    ]


def test_lsblk_disks_only():
    assert parse_lsblk_disks("sda disk\nsr0 rom\nnvme0n1 disk\nloop0 loop\n") == ["sda", "nvme0n1"]


@pytest.mark.parametrize("output,expected", [
    ("SMART overall-health self-assessment test result: PASSED\n", False),
    ("SMART Health Status: OK\n", False),
    ("SMART overall-health self-assessment test result: FAILED!\n", True),
    ("Unable to detect device type\n", None),
])
def test_smartctl_health(output, expected):
    assert parse_smartctl_health("/dev/sda", output).predict_failure is expected


def test_ufw_status():
    assert parse_ufw_status("Status: active\n\nTo  Action  From\n")[0].enabled is True
    assert parse_ufw_status("Status: inactive\n")[0].enabled is False
    assert parse_ufw_status("ERROR: You need to be root\n") == []
