"""Audit export job: authenticate, search, close the session, write the CSV."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Callable

import httpx

from adminops.audit.export import write_csv
from adminops.audit.models import ExportResult
from adminops.audit.search import AuditLogSearch, build_query
from adminops.config.settings import AuditExportConfig, Settings
from adminops.errors import ExportWriteError
from adminops.graph.auth import Credential, MsalTokenProvider, TokenProvider
from adminops.graph.session import GraphSession

AUDIT_PERMISSION = "AuditLogsQuery.Read.All"

SearchFactory = Callable[[GraphSession, AuditExportConfig], AuditLogSearch]


async def run_audit_export(
    settings: Settings,
    credential: Credential,
    now: datetime | None = None,
    export_path: str | Path | None = None,
    token_provider: TokenProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    search_factory: SearchFactory = AuditLogSearch.from_config,
) -> ExportResult:
    """Search the audit log and write the export.

    The export directory is checked before authenticating so a bad path
    fails fast; the session is closed before the file is written.
    """
    config = settings.audit_export
    path = Path(export_path).expanduser() if export_path else settings.export_path
    query = build_query(config, now)
    if not path.parent.is_dir():
        raise ExportWriteError(f"Export directory does not exist: {path.parent}")

    provider = token_provider or MsalTokenProvider(
        authority_host=settings.graph.authority_host,
        timeout=settings.graph.timeout,
    )
    session = GraphSession(
        credential, provider,
        config=settings.graph,
        permission=AUDIT_PERMISSION,
        transport=transport,
    )
    async with session:
        search = search_factory(session, config)
        result = await search.run(query)

    rows = write_csv(result.records, path)
    return ExportResult(
        path=str(path), rows=rows,
        truncated=result.truncated, query_id=result.query_id,
    )
