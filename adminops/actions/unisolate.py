"""Lift network isolation on a managed device."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import quote

import httpx

from adminops.config.settings import Settings
from adminops.graph.auth import Credential, MsalTokenProvider, TokenProvider
from adminops.graph.session import GraphSession

logger = logging.getLogger(__name__)

UNISOLATE_PERMISSION = "DeviceManagementManagedDevices.PrivilegedOperations.All"


@dataclass
class ActionResult:
    device_id: str
    status_code: int
    applied: bool = True
    timestamp: datetime = field(default_factory=datetime.now)


def unisolate_path(device_id: str) -> str:
    return f"/deviceManagement/managedDevices/{quote(device_id, safe='')}/unisolate"


async def unisolate_device(session: GraphSession, device_id: str) -> ActionResult:
    """POST the unisolate action for one device.

    Raises RemoteCallError when the service does not accept the request;
    the device should then be considered still isolated.
    """
    if not device_id.strip():
        raise ValueError("device id must not be empty")
    resp = await session.request("POST", unisolate_path(device_id))
    logger.info("Unisolate accepted for device %s (HTTP %d)",
                device_id, resp.status_code)
    return ActionResult(device_id=device_id, status_code=resp.status_code)


async def run_unisolate(
    settings: Settings,
    credential: Credential,
    device_id: str,
    token_provider: TokenProvider | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> ActionResult:
    """Open a session, unisolate one device, close the session."""
    if not device_id.strip():
        raise ValueError("device id must not be empty")
    provider = token_provider or MsalTokenProvider(
        authority_host=settings.graph.authority_host,
        timeout=settings.graph.timeout,
    )
    session = GraphSession(
        credential, provider,
        config=settings.graph,
        permission=UNISOLATE_PERMISSION,
        transport=transport,
    )
    async with session:
        return await unisolate_device(session, device_id)
