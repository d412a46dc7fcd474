"""Credentials and token acquisition for the Graph API."""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from adminops.config.settings import CredentialConfig
from adminops.errors import AuthenticationError

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=1)


@dataclass
class Credential:
    tenant_id: str
    client_id: str
    thumbprint: str = ""
    private_key_path: str | None = None
    client_secret: str | None = None

    @classmethod
    def from_config(cls, config: CredentialConfig) -> Credential:
        return cls(
            tenant_id=config.tenant_id,
            client_id=config.client_id,
            thumbprint=config.thumbprint,
            private_key_path=config.private_key_path,
            client_secret=config.client_secret,
        )

    def validate(self) -> None:
        """Reject credentials that cannot possibly authenticate."""
        missing = [
            name for name in ("tenant_id", "client_id")
            if not getattr(self, name).strip()
        ]
        if missing:
            raise AuthenticationError(
                f"Credential is missing {', '.join(missing)}"
            )
        if self.client_secret:
            return
        if not self.thumbprint.strip():
            raise AuthenticationError("Credential is missing thumbprint")
        if not self.private_key_path:
            raise AuthenticationError(
                "Certificate credential needs a private key "
                "(--private-key or credentials.private_key_path)"
            )

    def __repr__(self) -> str:
        # Keep secrets out of logs and tracebacks
        return (f"Credential(tenant_id={self.tenant_id!r}, "
                f"client_id={self.client_id!r}, thumbprint={self.thumbprint!r})")


def token_roles(token: str) -> list[str] | None:
    """Return the ``roles`` claim of a JWT access token.

    The signature is not verified; the token came straight from the
    identity provider. Returns None when the token is not a decodable JWT.
    """
    parts = token.split(".")
    if len(parts) != 3:
        return None
    payload = parts[1] + "=" * (-len(parts[1]) % 4)
    try:
        claims = json.loads(base64.urlsafe_b64decode(payload))
    except (ValueError, TypeError):
        return None
    if not isinstance(claims, dict):
        return None
    roles = claims.get("roles", [])
    return [str(r) for r in roles] if isinstance(roles, list) else []


class TokenProvider(ABC):
    """Acquires app-only access tokens for a credential."""

    @abstractmethod
    async def acquire_token(self, credential: Credential,
                            scopes: list[str]) -> str:
        """Return a bearer token or raise AuthenticationError."""


class MsalTokenProvider(TokenProvider):
    """Client-credentials flow through msal (certificate or secret)."""

    def __init__(self, authority_host: str = "https://login.microsoftonline.com",
                 timeout: float = 30.0) -> None:
        self._authority_host = authority_host.rstrip("/")
        self._timeout = timeout

    def _client_credential(self, credential: Credential) -> str | dict:
        if credential.client_secret:
            return credential.client_secret
        key_path = Path(credential.private_key_path or "").expanduser()
        try:
            private_key = key_path.read_text(encoding="utf-8")
        except OSError as exc:
            raise AuthenticationError(
                f"Cannot read private key {key_path}: {exc}"
            ) from exc
        return {"thumbprint": credential.thumbprint, "private_key": private_key}

    def _acquire_blocking(self, credential: Credential,
                          scopes: list[str]) -> dict:
        import msal

        app = msal.ConfidentialClientApplication(
            credential.client_id,
            authority=f"{self._authority_host}/{credential.tenant_id}",
            client_credential=self._client_credential(credential),
            timeout=self._timeout,
        )
        return app.acquire_token_for_client(scopes=scopes)

    async def acquire_token(self, credential: Credential,
                            scopes: list[str]) -> str:
        credential.validate()
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(
                _executor, partial(self._acquire_blocking, credential, scopes),
            )
        except AuthenticationError:
            raise
        except Exception as exc:
            raise AuthenticationError(
                f"Token request for app {credential.client_id} failed: {exc}"
            ) from exc

        if not isinstance(result, dict):
            result = {}
        token = result.get("access_token")
        if not token:
            error = result.get("error", "unknown_error")
            description = result.get("error_description", "")
            raise AuthenticationError(
                f"Authentication failed for app {credential.client_id}: "
                f"{error} {description}".strip()
            )
        logger.info("Acquired token for app %s in tenant %s",
                    credential.client_id, credential.tenant_id)
        return token
