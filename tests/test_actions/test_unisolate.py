"""Tests for the managed-device unisolate action."""

from __future__ import annotations

from unittest.mock import patch

import httpx
import pytest

from adminops.actions.unisolate import (
    UNISOLATE_PERMISSION,
    run_unisolate,
    unisolate_path,
)
from adminops.errors import AuthenticationError, RemoteCallError
from adminops.graph.auth import Credential

from fakes import FakeTokenProvider, RecordingTransport, make_jwt

DEVICE_ID = "6f1e2a9c-0b7d-4c1e-9f33-2d8a7e0c4b11"
EXPECTED_URL = (
    "https://graph.example.test/v1.0/deviceManagement/managedDevices/"
    f"{DEVICE_ID}/unisolate"
)


def _provider(roles: list[str] | None = None) -> FakeTokenProvider:
    return FakeTokenProvider(make_jwt(roles if roles is not None else [UNISOLATE_PERMISSION]))


@pytest.mark.asyncio
async def test_unisolate_posts_once_to_expected_url(sample_settings, credential):
    transport = RecordingTransport(lambda req: httpx.Response(204))

    result = await run_unisolate(
        sample_settings, credential, DEVICE_ID,
        token_provider=_provider(), transport=transport,
    )

    assert len(transport.requests) == 1
    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == EXPECTED_URL
    assert result.status_code == 204
    assert result.applied is True
    assert result.device_id == DEVICE_ID
    assert transport.close_count == 1


@pytest.mark.asyncio
async def test_unisolate_failure_status_raises_and_closes(sample_settings, credential):
    transport = RecordingTransport(
        lambda req: httpx.Response(403, text="Forbidden: device not isolated"),
    )

    with pytest.raises(RemoteCallError) as exc_info:
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=_provider(), transport=transport,
        )

    assert exc_info.value.status_code == 403
    assert "device not isolated" in exc_info.value.body
    assert len(transport.requests) == 1
    assert transport.close_count == 1


@pytest.mark.asyncio
async def test_unisolate_transport_error_closes_session(sample_settings, credential):
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    transport = RecordingTransport(handler)
    with pytest.raises(RemoteCallError):
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=_provider(), transport=transport,
        )
    assert transport.close_count == 1


@pytest.mark.asyncio
async def test_unisolate_auth_failure_sends_nothing(sample_settings, credential):
    transport = RecordingTransport(lambda req: httpx.Response(204))

    with pytest.raises(AuthenticationError):
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=FakeTokenProvider(fail=True), transport=transport,
        )

    assert transport.requests == []


@pytest.mark.asyncio
async def test_unisolate_without_permission_sends_nothing(sample_settings, credential):
    transport = RecordingTransport(lambda req: httpx.Response(204))

    with pytest.raises(AuthenticationError, match="PrivilegedOperations"):
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=_provider(["DeviceManagementManagedDevices.Read.All"]),
            transport=transport,
        )

    assert transport.requests == []


@pytest.mark.asyncio
async def test_unisolate_invalid_credential_sends_nothing(sample_settings, credential):
    credential.tenant_id = ""
    provider = _provider()
    transport = RecordingTransport(lambda req: httpx.Response(204))

    with pytest.raises(AuthenticationError):
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=provider, transport=transport,
        )

    assert provider.calls == []
    assert transport.requests == []


@pytest.mark.asyncio
async def test_unisolate_rejects_empty_device_id(sample_settings, credential):
    provider = _provider()
    with pytest.raises(ValueError):
        await run_unisolate(sample_settings, credential, "  ",
                            token_provider=provider)
    assert provider.calls == []


def test_unisolate_path_escapes_device_id():
    assert unisolate_path("a/b c") == "/deviceManagement/managedDevices/a%2Fb%20c/unisolate"


@pytest.mark.asyncio
async def test_unisolate_validates_credential_once(sample_settings, credential):
    transport = RecordingTransport(lambda req: httpx.Response(204))
    with patch.object(Credential, "validate", autospec=True) as validate:
        await run_unisolate(
            sample_settings, credential, DEVICE_ID,
            token_provider=_provider(), transport=transport,
        )
    validate.assert_called_once_with(credential)
