"""HTTP(S) implementation of the probe client capability built on httpx.

Services that expose their RPC gateway over HTTP or WebSocket usually answer a
plain request on the same endpoint. :class:`HttpRpcClient` uses that to check
reachability, authentication and TLS without speaking the RPC protocol itself.
"""

from __future__ import annotations

import ssl
from typing import Final

import httpx

from rpcprobe.domain.models import ConnectionConfig, ConnectionInfo

_AUTH_FAILURE_STATUSES: Final = frozenset({401, 403})
_SERVICE_FAILURE_STATUSES: Final = frozenset({404, 502, 503})

HEADER_SYSTEM_ID: Final = "x-system-id"
HEADER_SYSTEM_NUMBER: Final = "x-system-number"
HEADER_CLIENT: Final = "x-client"


def _translate_transport_error(exc: httpx.TransportError) -> Exception:
    if isinstance(exc, httpx.TimeoutException):
        return TimeoutError(f"request to host timed out: {exc}")
    if isinstance(exc, httpx.ConnectError):
        return ConnectionError(f"cannot connect to host: {exc}")
    return ConnectionError(f"transport error: {exc}")


class HttpRpcClient:
    def __init__(
        self,
        config: ConnectionConfig,
        *,
        secure: bool | None = None,
        path: str = "/",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._secure = config.tls_enabled if secure is None else secure
        self._path = path if path.startswith("/") else f"/{path}"
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self._opened = False

    @property
    def base_url(self) -> str:
        scheme = "https" if self._secure else "http"
        return f"{scheme}://{self._config.host}:{self._config.port}"

    @property
    def alive(self) -> bool:
        return self._opened and self._client is not None and not self._client.is_closed

    def _build_verify(self) -> ssl.SSLContext | bool:
        if not self._secure:
            return True
        context = ssl.create_default_context()
        artifact = self._config.tls_artifact_path
        if artifact:
            try:
                context.load_cert_chain(
                    certfile=artifact, password=self._config.tls_passphrase
                )
            except (OSError, ssl.SSLError) as exc:
                raise ConnectionError(
                    f"TLS artifact could not be loaded from {artifact}: {exc}"
                ) from exc
        return context

    def _build_client(self) -> httpx.AsyncClient:
        headers = {HEADER_CLIENT: self._config.client}
        if self._config.language:
            headers["Accept-Language"] = self._config.language
        return httpx.AsyncClient(
            base_url=self.base_url,
            auth=(self._config.user, self._config.password),
            headers=headers,
            verify=self._build_verify(),
            transport=self._transport,
        )

    def _check_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if status in _AUTH_FAILURE_STATUSES:
            raise PermissionError(f"authentication failed: HTTP {status}")
        if status in _SERVICE_FAILURE_STATUSES:
            raise ConnectionError(
                f"service not active: HTTP {status} from the endpoint"
            )
        response.raise_for_status()

    async def _request(self, method: str) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("connection is not open")
        try:
            response = await self._client.request(method, self._path)
        except httpx.TransportError as exc:
            raise _translate_transport_error(exc) from exc
        self._check_status(response)
        return response

    async def open(self) -> None:
        self._client = self._build_client()
        try:
            response = await self._request("GET")
        except BaseException:
            await self._client.aclose()
            self._client = None
            raise
        self._response = response
        self._opened = True

    async def info(self) -> ConnectionInfo:
        response = self._response
        if response is None:
            raise RuntimeError("connection is not open")
        return ConnectionInfo(
            system_id=response.headers.get(HEADER_SYSTEM_ID),
            system_number=response.headers.get(HEADER_SYSTEM_NUMBER),
            partner_host=response.url.host or None,
            release=response.headers.get("server"),
            protocol=response.http_version,
        )

    async def ping(self) -> None:
        if self._client is None or not self._opened:
            raise RuntimeError("connection is not open")
        await self._request("HEAD")

    async def close(self) -> None:
        client, self._client = self._client, None
        self._opened = False
        self._response = None
        if client is not None:
            await client.aclose()


__all__ = ["HttpRpcClient"]
