"""End-to-end tests for the audit export job."""

from __future__ import annotations

import csv
import json
from datetime import datetime, timezone

import httpx
import pytest

from adminops.audit.job import AUDIT_PERMISSION, run_audit_export
from adminops.audit.search import AuditLogSearch
from adminops.errors import AuditQueryError, AuthenticationError, ExportWriteError

from fakes import FakeTokenProvider, RecordingTransport, make_jwt

NOW = datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)


def _service(total: int, status: str = "succeeded"):
    records = [
        {"id": f"r{n}", "createdDateTime": "2026-08-01T00:00:00Z",
         "operation": "FileDeleted"}
        for n in range(total)
    ]
    posted: list[bytes] = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            posted.append(request.content)
            return httpx.Response(201, json={"id": "q9"})
        if request.url.path.endswith("/records"):
            return httpx.Response(200, json={"value": records})
        return httpx.Response(200, json={"id": "q9", "status": status})

    handler.posted = posted
    return handler


def _fast_search(session, config):
    async def no_sleep(seconds: float) -> None:
        return None
    return AuditLogSearch(session, result_cap=config.result_cap,
                          page_size=config.page_size, sleep=no_sleep)


@pytest.mark.asyncio
async def test_export_writes_all_records(sample_settings, credential, tmp_path):
    transport = RecordingTransport(_service(3))
    path = tmp_path / "DataLifecycleEvents.csv"

    result = await run_audit_export(
        sample_settings, credential, now=NOW, export_path=path,
        token_provider=FakeTokenProvider(make_jwt([AUDIT_PERMISSION])),
        transport=transport, search_factory=_fast_search,
    )

    assert result.rows == 3
    assert result.truncated is False
    assert result.query_id == "q9"
    with open(path, newline="", encoding="utf-8") as f:
        assert len(list(csv.DictReader(f))) == 3
    assert transport.close_count == 1


@pytest.mark.asyncio
async def test_export_uses_six_month_window(sample_settings, credential, tmp_path):
    handler = _service(0)
    await run_audit_export(
        sample_settings, credential, now=NOW, export_path=tmp_path / "out.csv",
        token_provider=FakeTokenProvider(make_jwt([AUDIT_PERMISSION])),
        transport=RecordingTransport(handler), search_factory=_fast_search,
    )
    body = json.loads(handler.posted[0])
    assert body["filterStartDateTime"] == "2026-04-18T09:00:00Z"
    assert body["filterEndDateTime"] == "2026-10-18T09:00:00Z"
    assert body["operationFilters"] == ["FileDeleted", "TagApplied", "TagRemoved"]


@pytest.mark.asyncio
async def test_export_reports_truncation(sample_settings, credential, tmp_path):
    sample_settings.audit_export.result_cap = 2
    result = await run_audit_export(
        sample_settings, credential, now=NOW, export_path=tmp_path / "out.csv",
        token_provider=FakeTokenProvider(make_jwt([AUDIT_PERMISSION])),
        transport=RecordingTransport(_service(5)), search_factory=_fast_search,
    )
    assert result.rows == 2
    assert result.truncated is True


@pytest.mark.asyncio
async def test_export_closes_session_when_query_fails(sample_settings, credential, tmp_path):
    transport = RecordingTransport(_service(0, status="failed"))
    path = tmp_path / "out.csv"

    with pytest.raises(AuditQueryError):
        await run_audit_export(
            sample_settings, credential, now=NOW, export_path=path,
            token_provider=FakeTokenProvider(make_jwt([AUDIT_PERMISSION])),
            transport=transport, search_factory=_fast_search,
        )

    assert transport.close_count == 1
    assert not path.exists()


@pytest.mark.asyncio
async def test_export_auth_failure_makes_no_requests(sample_settings, credential, tmp_path):
    transport = RecordingTransport(_service(1))
    with pytest.raises(AuthenticationError):
        await run_audit_export(
            sample_settings, credential, now=NOW, export_path=tmp_path / "out.csv",
            token_provider=FakeTokenProvider(fail=True),
            transport=transport, search_factory=_fast_search,
        )
    assert transport.requests == []


@pytest.mark.asyncio
async def test_export_missing_directory(sample_settings, credential, tmp_path):
    transport = RecordingTransport(_service(1))
    with pytest.raises(ExportWriteError):
        await run_audit_export(
            sample_settings, credential, now=NOW,
            export_path=tmp_path / "nope" / "out.csv",
            token_provider=FakeTokenProvider(make_jwt([AUDIT_PERMISSION])),
            transport=transport, search_factory=_fast_search,
        )
    assert transport.requests == []
    assert transport.close_count == 0
