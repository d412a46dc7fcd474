"""Audit log search: create a query, wait for it, page through its records."""

from __future__ import annotations

import asyncio
import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from adminops.audit.models import (
    AuditEventRecord,
    AuditQuery,
    QueryStatus,
    SearchResult,
)
from adminops.config.settings import AuditExportConfig
from adminops.errors import AuditQueryError
from adminops.graph.session import GraphSession

logger = logging.getLogger(__name__)

QUERIES_PATH = "/security/auditLog/queries"

SleepFunc = Callable[[float], Awaitable[None]]


def subtract_months(dt: datetime, months: int) -> datetime:
    """Step back whole calendar months, clamping the day (Aug 31 -> Feb 28)."""
    month_index = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def build_query(config: AuditExportConfig, now: datetime | None = None) -> AuditQuery:
    end = now or datetime.now(timezone.utc)
    start = subtract_months(end, config.window_months)
    return AuditQuery(start=start, end=end, operations=list(config.operations))


class AuditLogSearch:
    """Runs one audit log query against a connected Graph session."""

    def __init__(
        self,
        session: GraphSession,
        result_cap: int | None = 5000,
        page_size: int = 1000,
        poll_interval: float = 10.0,
        poll_timeout: float = 900.0,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._result_cap = result_cap
        self._page_size = page_size
        self._poll_interval = poll_interval
        self._poll_timeout = poll_timeout
        self._sleep = sleep
        self._clock = clock

    @classmethod
    def from_config(cls, session: GraphSession,
                    config: AuditExportConfig) -> AuditLogSearch:
        return cls(
            session,
            result_cap=config.result_cap,
            page_size=config.page_size,
            poll_interval=config.poll_interval,
            poll_timeout=config.poll_timeout,
        )

    async def run(self, query: AuditQuery) -> SearchResult:
        query_id = await self.submit(query)
        await self.wait(query_id)
        records, truncated = await self.fetch_records(query_id)
        if truncated:
            logger.warning(
                "Audit query %s matched more than %d records; export is truncated",
                query_id, self._result_cap,
            )
        return SearchResult(query_id=query_id, records=records, truncated=truncated)

    async def submit(self, query: AuditQuery) -> str:
        data = await self._session.post_json(QUERIES_PATH, query.to_payload())
        query_id = data.get("id")
        if not query_id:
            raise AuditQueryError("Audit query was created without an id")
        logger.info("Submitted audit query %s (%s to %s, %s)",
                    query_id, query.start.isoformat(), query.end.isoformat(),
                    ", ".join(op.value for op in query.operations))
        return str(query_id)

    async def wait(self, query_id: str) -> None:
        """Poll until the query succeeds; raise on failure or timeout."""
        deadline = self._clock() + self._poll_timeout
        while True:
            data = await self._session.get_json(f"{QUERIES_PATH}/{query_id}")
            status = data.get("status", "")
            if status == QueryStatus.SUCCEEDED.value:
                return
            if status in (QueryStatus.FAILED.value, QueryStatus.CANCELLED.value):
                raise AuditQueryError(f"Audit query {query_id} {status}")
            if self._clock() >= deadline:
                raise AuditQueryError(
                    f"Audit query {query_id} still {status or 'pending'} "
                    f"after {self._poll_timeout:.0f}s"
                )
            logger.debug("Audit query %s is %s", query_id, status)
            await self._sleep(self._poll_interval)

    async def fetch_records(self, query_id: str) -> tuple[list[AuditEventRecord], bool]:
        """Page through results; return (records, truncated).

        When the cap is reached with a nextLink still pending, the result is
        flagged as truncated without fetching that page, even if it would
        have turned out empty.
        """
        cap = self._result_cap
        records: list[AuditEventRecord] = []
        url: str | None = f"{QUERIES_PATH}/{query_id}/records"
        params: dict | None = {"$top": self._page_size}

        while url:
            page = await self._session.get_json(url, params=params)
            params = None  # nextLink already carries the paging parameters
            items = page.get("value", [])
            if not isinstance(items, list):
                raise AuditQueryError(f"Audit query {query_id} returned a malformed page")
            next_link = page.get("@odata.nextLink")

            for raw in items:
                if cap is not None and len(records) >= cap:
                    return records, True
                records.append(AuditEventRecord.from_graph(raw))

            if cap is not None and len(records) >= cap and next_link:
                return records, True
            url = next_link

        logger.info("Fetched %d audit records for query %s", len(records), query_id)
        return records, False
