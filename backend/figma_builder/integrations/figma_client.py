"""Figma REST API client for the builder pipeline.

Fetches whole documents, node sub-documents and rendered previews from Figma
files using Personal Access Token (PAT) authentication.

Environment:
    FIGMA_TOKEN: Figma Personal Access Token (required)

Usage:
    client = FigmaClient()
    doc = await client.get_file("6kGd851qaAX4TiL44vpIrO")
    nodes = await client.get_file_nodes("6kGd851qaAX4TiL44vpIrO", ["16650:538"])
    images = await client.get_node_images("6kGd851qaAX4TiL44vpIrO", ["16650:539"])
"""

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from .. import config, settings

logger = logging.getLogger("figma_builder.integrations.figma")


class FigmaClientError(Exception):
    """Raised when a Figma API call fails.

    ``status_code`` holds the upstream HTTP status when Figma answered,
    None for transport failures and local misconfiguration.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FigmaClient:
    """Async Figma REST API client.

    Args:
        token: Figma PAT. Falls back to FIGMA_TOKEN env var.
        timeout: HTTP request timeout in seconds.
        transport: Optional httpx transport (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = settings.FIGMA_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._token = token or os.getenv("FIGMA_TOKEN", "")
        if not self._token:
            raise FigmaClientError(
                "Missing FIGMA_TOKEN. Set FIGMA_TOKEN environment variable "
                "or pass token= to FigmaClient()."
            )
        self._client: Optional[httpx.AsyncClient] = None
        self._timeout = timeout
        self._transport = transport

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=config.FIGMA_API_BASE,
                headers={"X-FIGMA-TOKEN": self._token},
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=3),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FigmaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get(self, path: str, params: Optional[Dict] = None) -> Dict[str, Any]:
        """Make a GET request to the Figma API."""
        client = await self._get_client()
        try:
            resp = await client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise FigmaClientError(f"Figma API timeout: {path}") from e
        except httpx.ConnectError as e:
            raise FigmaClientError(f"Figma API connection error: {path}") from e
        except httpx.HTTPError as e:
            raise FigmaClientError(f"Figma API transport error: {path}: {e}") from e

        if resp.status_code == 403:
            raise FigmaClientError(
                "Figma API returned 403 Forbidden. Check that FIGMA_TOKEN is valid "
                "and has file_content:read scope.",
                status_code=403,
            )
        if resp.status_code == 404:
            raise FigmaClientError(f"Figma resource not found: {path}", status_code=404)
        if resp.status_code == 429:
            raise FigmaClientError(
                "Figma API rate limit exceeded. Retry later.", status_code=429
            )
        if resp.status_code != 200:
            raise FigmaClientError(
                f"Figma API error {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise FigmaClientError(f"Figma API returned invalid JSON: {path}") from e
        if not isinstance(data, dict):
            raise FigmaClientError(f"Figma API returned an unexpected payload: {path}")
        return data

    # ------------------------------------------------------------------
    # Core API methods
    # ------------------------------------------------------------------

    async def get_file(self, file_key: str) -> Dict[str, Any]:
        """Fetch a whole Figma file (document tree under ``document``).

        GET /v1/files/:key
        """
        data = await self._get(f"/v1/files/{file_key}")
        pages = data.get("document", {}).get("children", [])
        logger.info(f"get_file: file={file_key}, pages={len(pages)}")
        return data

    async def get_file_nodes(
        self,
        file_key: str,
        node_ids: List[str],
    ) -> Dict[str, Any]:
        """Fetch specific nodes from a Figma file in one batched call.

        GET /v1/files/:key/nodes?ids=...

        Ids in URL form ("12-34") are normalized to API form ("12:34").
        """
        ids_param = ",".join(node_id.replace("-", ":") for node_id in node_ids)
        data = await self._get(f"/v1/files/{file_key}/nodes", params={"ids": ids_param})
        logger.info(
            f"get_file_nodes: file={file_key}, requested={len(node_ids)}, "
            f"returned={len(data.get('nodes') or {})}"
        )
        return data

    async def get_node_images(
        self,
        file_key: str,
        node_ids: List[str],
        fmt: str = settings.THUMBNAIL_FORMAT,
        scale: Optional[int] = None,
    ) -> Dict[str, Optional[str]]:
        """Render node previews via Figma's image export API.

        GET /v1/images/:key?ids=...&format=svg

        Returns a node_id → image URL mapping; Figma reports failed renders
        as null values.
        """
        params: Dict[str, str] = {
            "ids": ",".join(node_ids),
            "format": fmt,
        }
        if scale is not None:
            params["scale"] = str(scale)

        data = await self._get(f"/v1/images/{file_key}", params=params)

        if data.get("err"):
            raise FigmaClientError(f"Figma image render error: {data['err']}")

        images = data.get("images") or {}
        if not isinstance(images, dict):
            raise FigmaClientError("Figma image response has no images map")
        logger.info(
            f"get_node_images: file={file_key}, requested={len(node_ids)}, "
            f"rendered={sum(1 for v in images.values() if v)}"
        )
        return images
