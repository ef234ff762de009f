import logging
from urllib.parse import urlparse

import httpx

logger = logging.getLogger("obsada.http_client")


def _safe_url(url: str) -> str:
    """Strip query params (may contain API keys) for safe logging."""
    parsed = urlparse(str(url))
    return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"


class GatewayClient:
    """httpx.AsyncClient wrapper for single-shot gateway calls.

    Every call is attempted exactly once (no retry, no backoff). Transport
    errors are logged and re-raised to the caller.
    """

    def __init__(self, name: str, timeout: float = 15.0):
        self._client = httpx.AsyncClient(timeout=timeout)
        self._name = name

    async def request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "[%s] Network error on %s %s: %s",
                self._name, method, _safe_url(url), exc,
            )
            raise
        logger.info(
            "[%s] %s %s -> %d", self._name, method, _safe_url(url), resp.status_code,
        )
        return resp

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()
