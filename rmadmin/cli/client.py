"""HTTP client for the resource manager administration service."""

import asyncio
import time
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from rmadmin.config import AdminSettings
from rmadmin.core.commands import RemoteCall, RemoteResult
from rmadmin.errors import AdminConnectionError, RemoteServiceError
from rmadmin.labels.codec import sorted_labels

logger = structlog.get_logger(__name__)

API_PREFIX = "/ws/v1/cluster/admin"

# Only these mean the request never reached the service.
CONNECT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class AdminClient:
    """Client for the admin REST API.

    Provides one typed method per admin request, a connection retry loop
    bounded by ``max_retries`` and ``max_wait``, and ``submit()`` which
    classifies the outcome of a call instead of raising.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8033",
        timeout: float = 30.0,
        max_retries: int = 10,
        retry_interval: float = 30.0,
        max_wait: float = 900.0,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_interval = retry_interval
        self.max_wait = max_wait
        self.token = token
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(
        cls,
        settings: AdminSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AdminClient":
        return cls(
            base_url=settings.admin_url,
            timeout=settings.timeout,
            max_retries=settings.connect_max_retries,
            retry_interval=settings.connect_retry_interval,
            max_wait=settings.connect_max_wait,
            token=settings.admin_token,
            transport=transport,
        )

    # ── lifecycle ────────────────────────────────────────────────────

    async def connect(self) -> None:
        """Create the HTTP connection pool."""
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        self._client = httpx.AsyncClient(
            base_url=self.base_url + API_PREFIX,
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            # retries are handled by _request so they can be switched off
            transport=self._transport or httpx.AsyncHTTPTransport(retries=0),
        )

    async def close(self) -> None:
        """Close the HTTP connection pool."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "AdminClient":
        if self._client is None:
            await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError("Call connect() first")
        return self._client

    # ── low-level request ────────────────────────────────────────────

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json_body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Send a request, retrying only while the endpoint is unreachable."""
        last_exc: Optional[Exception] = None
        deadline = time.monotonic() + self.max_wait
        attempts = 0

        while True:
            attempts += 1
            try:
                resp = await self.client.request(method, path, json=json_body)
            except CONNECT_ERRORS as exc:
                last_exc = exc
                if attempts > self.max_retries or time.monotonic() + self.retry_interval > deadline:
                    break
                await logger.adebug(
                    "admin_connect_retry",
                    url=self.base_url,
                    attempt=attempts,
                    retry_in=self.retry_interval,
                    error=str(exc),
                )
                await asyncio.sleep(self.retry_interval)
                continue
            except httpx.TransportError as exc:
                # the request may have been delivered, so this is not a connect failure
                raise RemoteServiceError(0, f"{type(exc).__name__}: {exc}") from exc

            if resp.status_code >= 400:
                detail = resp.text
                try:
                    body = resp.json()
                    if isinstance(body, dict) and "detail" in body:
                        detail = str(body["detail"])
                except ValueError:
                    pass
                raise RemoteServiceError(resp.status_code, detail)

            if not resp.content:
                return {}
            try:
                body = resp.json()
            except ValueError as exc:
                raise RemoteServiceError(resp.status_code, f"Malformed response: {exc}") from exc
            return body if isinstance(body, dict) else {"result": body}

        raise AdminConnectionError(self.base_url, attempts, last_exc)

    # ── refresh ──────────────────────────────────────────────────────

    async def refresh_queues(self) -> None:
        """POST /refresh/queues: reload queue ACLs, states and scheduler properties."""
        await self._request("POST", "/refresh/queues")

    async def refresh_nodes(self) -> None:
        """POST /refresh/nodes: reload the include/exclude host lists."""
        await self._request("POST", "/refresh/nodes")

    async def refresh_user_to_groups_mappings(self) -> None:
        await self._request("POST", "/refresh/user-to-groups-mappings")

    async def refresh_superuser_groups_configuration(self) -> None:
        await self._request("POST", "/refresh/superuser-groups-configuration")

    async def refresh_admin_acls(self) -> None:
        await self._request("POST", "/refresh/admin-acls")

    async def refresh_service_acls(self) -> None:
        await self._request("POST", "/refresh/service-acls")

    # ── groups ───────────────────────────────────────────────────────

    async def get_groups_for_user(self, username: str) -> list[str]:
        """GET /users/{username}/groups."""
        data = await self._request("GET", f"/users/{quote(username, safe='')}/groups")
        return [str(g) for g in data.get("groups", [])]

    # ── labels ───────────────────────────────────────────────────────

    async def add_labels(self, labels: set[str]) -> None:
        """POST /labels: add labels to the cluster label set."""
        await self._request("POST", "/labels", json_body={"labels": sorted_labels(labels)})

    async def remove_labels(self, labels: set[str]) -> None:
        """POST /labels/remove: remove labels from the cluster label set."""
        await self._request("POST", "/labels/remove", json_body={"labels": sorted_labels(labels)})

    async def set_node_to_labels(self, node_to_labels: dict[str, set[str]]) -> None:
        """PUT /node-labels: replace the labels of the given nodes."""
        body = {
            "node_to_labels": {
                node: sorted_labels(labels) for node, labels in node_to_labels.items()
            }
        }
        await self._request("PUT", "/node-labels", json_body=body)

    async def get_node_to_labels(self) -> dict[str, set[str]]:
        """GET /node-labels."""
        data = await self._request("GET", "/node-labels")
        return {
            str(node): set(labels or [])
            for node, labels in (data.get("node_to_labels") or {}).items()
        }

    async def get_labels(self) -> set[str]:
        """GET /labels."""
        data = await self._request("GET", "/labels")
        return set(data.get("labels") or [])

    # ── classified calls ─────────────────────────────────────────────

    async def submit(self, call: RemoteCall, *args: Any) -> RemoteResult:
        """Run one request and classify its outcome.

        Connection failures become ``CONNECTION_FAILED``; errors reported
        by the service become ``FAILED``. Anything else propagates.
        """
        method = getattr(self, call.value)
        try:
            value = await method(*args)
        except AdminConnectionError as exc:
            await logger.awarning(
                "admin_unreachable",
                call=call.value,
                url=self.base_url,
                attempts=exc.attempts,
            )
            return RemoteResult.connection_failed(exc)
        except RemoteServiceError as exc:
            await logger.awarning(
                "admin_request_rejected",
                call=call.value,
                status_code=exc.status_code,
                detail=exc.first_line,
            )
            return RemoteResult.failed(exc)
        return RemoteResult.ok(value)


async def connect(
    settings: AdminSettings,
    no_retry: bool = False,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> AdminClient:
    """Build and open a client for the configured admin endpoint.

    Args:
        settings: Connection settings.
        no_retry: Fail on the first unreachable attempt instead of waiting
            through the retry policy.
        transport: Optional httpx transport (tests use MockTransport).
    """
    if no_retry:
        settings = settings.fast_fail()
    client = AdminClient.from_settings(settings, transport=transport)
    await client.connect()
    return client
