"""Graph API session: one authenticated connection per command run."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from adminops.config.settings import GraphConfig
from adminops.errors import AuthenticationError, RemoteCallError
from adminops.graph.auth import Credential, TokenProvider, token_roles

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 2000


class GraphSession:
    """Authenticated Graph API connection scoped to one permission.

    Use as an async context manager; the HTTP client is closed on every
    exit path, including errors raised inside the block.
    """

    def __init__(
        self,
        credential: Credential,
        token_provider: TokenProvider,
        config: GraphConfig | None = None,
        permission: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.credential = credential
        self.permission = permission
        self._config = config or GraphConfig()
        self._token_provider = token_provider
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    @property
    def base_url(self) -> str:
        return f"{self._config.api_host.rstrip('/')}/{self._config.api_version}"

    async def connect(self) -> None:
        if self._client is not None:
            return
        self.credential.validate()
        scope = f"{self._config.api_host.rstrip('/')}/.default"
        try:
            token = await self._token_provider.acquire_token(
                self.credential, [scope],
            )
        except AuthenticationError:
            raise
        except Exception as exc:
            raise AuthenticationError(f"Token acquisition failed: {exc}") from exc

        if self.permission:
            roles = token_roles(token)
            if roles is None:
                logger.debug("Access token is not a JWT; skipping role check")
            elif self.permission not in roles:
                raise AuthenticationError(
                    f"App {self.credential.client_id} lacks permission "
                    f"{self.permission}"
                )

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=self._config.timeout,
            transport=self._transport,
        )
        logger.info("Graph session opened for app %s", self.credential.client_id)

    async def disconnect(self) -> None:
        if self._client is not None:
            client, self._client = self._client, None
            await client.aclose()
            logger.info("Graph session closed for app %s",
                        self.credential.client_id)

    async def __aenter__(self) -> GraphSession:
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.disconnect()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; anything other than 2xx raises RemoteCallError.

        ``url`` is relative to the versioned API root, or absolute (as in
        ``@odata.nextLink``).
        """
        if self._client is None:
            raise RemoteCallError(f"{method} {url}: session is not connected")
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as exc:
            raise RemoteCallError(f"{method} {url} timed out") from exc
        except httpx.HTTPError as exc:
            raise RemoteCallError(f"{method} {url} failed: {exc}") from exc

        if not resp.is_success:
            raise RemoteCallError(
                f"{method} {url} was rejected",
                status_code=resp.status_code,
                body=resp.text[:MAX_ERROR_BODY],
            )
        return resp

    async def get_json(self, url: str, **kwargs: Any) -> dict:
        resp = await self.request("GET", url, **kwargs)
        return _json_body(resp)

    async def post_json(self, url: str, payload: dict, **kwargs: Any) -> dict:
        resp = await self.request("POST", url, json=payload, **kwargs)
        return _json_body(resp)


def _json_body(resp: httpx.Response) -> dict:
    try:
        data = resp.json()
    except ValueError as exc:
        raise RemoteCallError(
            f"{resp.request.method} {resp.request.url} returned invalid JSON",
            status_code=resp.status_code,
            body=resp.text[:MAX_ERROR_BODY],
        ) from exc
    if not isinstance(data, dict):
        raise RemoteCallError(
            f"{resp.request.method} {resp.request.url} returned "
            f"{type(data).__name__}, expected an object",
            status_code=resp.status_code,
        )
    return data
