"""Tests for figma_builder.integrations.figma_client."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from figma_builder.integrations.figma_client import FigmaClient, FigmaClientError


@pytest.fixture
def client():
    """Create a FigmaClient with a test token."""
    return FigmaClient(token="test-figma-token-123")


def _response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    resp.text = text
    return resp


def _patched_http(client, resp=None, side_effect=None):
    mock_http = AsyncMock()
    mock_http.get = AsyncMock(return_value=resp, side_effect=side_effect)
    return patch.object(client, "_get_client", AsyncMock(return_value=mock_http)), mock_http


class TestFigmaClientInit:

    def test_creates_with_explicit_token(self):
        client = FigmaClient(token="my-token")
        assert client._token == "my-token"

    def test_reads_token_from_env(self, monkeypatch):
        monkeypatch.setenv("FIGMA_TOKEN", "env-token-abc")
        client = FigmaClient()
        assert client._token == "env-token-abc"

    def test_raises_without_token(self, monkeypatch):
        monkeypatch.delenv("FIGMA_TOKEN", raising=False)
        with pytest.raises(FigmaClientError, match="Missing FIGMA_TOKEN"):
            FigmaClient()


class TestGetFile:

    @pytest.mark.asyncio
    async def test_returns_file(self, client, sample_file_response):
        patcher, mock_http = _patched_http(client, _response(payload=sample_file_response))
        with patcher:
            result = await client.get_file("test_key")

        assert result["document"]["children"][0]["name"] == "Page 1"
        mock_http.get.assert_awaited_once_with("/v1/files/test_key", params=None)

    @pytest.mark.asyncio
    async def test_404(self, client):
        patcher, _ = _patched_http(client, _response(404, text="Not found"))
        with patcher:
            with pytest.raises(FigmaClientError, match="not found") as exc_info:
                await client.get_file("missing")
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_timeout(self, client):
        patcher, _ = _patched_http(client, side_effect=httpx.ReadTimeout("slow"))
        with patcher:
            with pytest.raises(FigmaClientError, match="timeout"):
                await client.get_file("test_key")


class TestGetFileNodes:

    @pytest.mark.asyncio
    async def test_normalizes_ids(self, client, sample_nodes_response):
        patcher, mock_http = _patched_http(client, _response(payload=sample_nodes_response))
        with patcher:
            result = await client.get_file_nodes("test_key", ["1-2", "1:3"])

        assert "1:2" in result["nodes"]
        mock_http.get.assert_awaited_once_with(
            "/v1/files/test_key/nodes", params={"ids": "1:2,1:3"},
        )

    @pytest.mark.asyncio
    async def test_403_raises_auth_error(self, client):
        patcher, _ = _patched_http(client, _response(403, text="Forbidden"))
        with patcher:
            with pytest.raises(FigmaClientError, match="403 Forbidden") as exc_info:
                await client.get_file_nodes("test_key", ["node1"])
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_500(self, client):
        patcher, _ = _patched_http(client, _response(500, text="boom"))
        with patcher:
            with pytest.raises(FigmaClientError, match="error 500") as exc_info:
                await client.get_file_nodes("test_key", ["node1"])
        assert exc_info.value.status_code == 500


class TestGetNodeImages:

    @pytest.mark.asyncio
    async def test_returns_image_urls(self, client, sample_images_response):
        patcher, mock_http = _patched_http(
            client, _response(payload={"err": None, "images": sample_images_response}),
        )
        with patcher:
            result = await client.get_node_images("test_key", ["1:2", "1:3"])

        assert result == sample_images_response
        _, kwargs = mock_http.get.await_args
        assert kwargs["params"] == {"ids": "1:2,1:3", "format": "svg"}

    @pytest.mark.asyncio
    async def test_scale_param(self, client):
        patcher, mock_http = _patched_http(client, _response(payload={"images": {}}))
        with patcher:
            await client.get_node_images("test_key", ["1:2"], fmt="png", scale=2)

        _, kwargs = mock_http.get.await_args
        assert kwargs["params"] == {"ids": "1:2", "format": "png", "scale": "2"}

    @pytest.mark.asyncio
    async def test_error_field_raises(self, client):
        patcher, _ = _patched_http(client, _response(payload={"err": "Invalid node IDs", "images": {}}))
        with patcher:
            with pytest.raises(FigmaClientError, match="Invalid node IDs"):
                await client.get_node_images("test_key", ["bad"])

    @pytest.mark.asyncio
    async def test_429_raises_rate_limit(self, client):
        patcher, _ = _patched_http(client, _response(429, text="Rate limited"))
        with patcher:
            with pytest.raises(FigmaClientError, match="rate limit"):
                await client.get_node_images("test_key", ["node1"])


@pytest.mark.asyncio
async def test_close_is_idempotent(client):
    await client._get_client()
    await client.close()
    await client.close()
    assert client._client is None


def _transport_client(handler):
    return FigmaClient(token="test-figma-token-123", transport=httpx.MockTransport(handler))


class TestTransportFailures:
    """Every failure below the HTTP status layer surfaces as FigmaClientError."""

    @pytest.mark.asyncio
    async def test_read_error(self):
        def handler(request):
            raise httpx.ReadError("reset", request=request)

        client = _transport_client(handler)
        with pytest.raises(FigmaClientError, match="transport error"):
            await client.get_node_images("test_key", ["1:2"])
        await client.close()

    @pytest.mark.asyncio
    async def test_remote_protocol_error(self):
        def handler(request):
            raise httpx.RemoteProtocolError("peer closed connection", request=request)

        client = _transport_client(handler)
        with pytest.raises(FigmaClientError, match="transport error"):
            await client.get_file("test_key")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        def handler(request):
            return httpx.Response(200, text="<html>maintenance</html>")

        client = _transport_client(handler)
        with pytest.raises(FigmaClientError, match="invalid JSON"):
            await client.get_file("test_key")
        await client.close()

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        def handler(request):
            return httpx.Response(200, json=["not", "an", "object"])

        client = _transport_client(handler)
        with pytest.raises(FigmaClientError, match="unexpected payload"):
            await client.get_file_nodes("test_key", ["1:2"])
        await client.close()

    @pytest.mark.asyncio
    async def test_images_not_a_map(self):
        def handler(request):
            return httpx.Response(200, json={"err": None, "images": ["1:2"]})

        client = _transport_client(handler)
        with pytest.raises(FigmaClientError, match="no images map"):
            await client.get_node_images("test_key", ["1:2"])
        await client.close()

    @pytest.mark.asyncio
    async def test_sends_token_header(self, sample_file_response):
        seen = {}

        def handler(request):
            seen["token"] = request.headers.get("X-FIGMA-TOKEN")
            seen["path"] = request.url.path
            return httpx.Response(200, json=sample_file_response)

        client = _transport_client(handler)
        result = await client.get_file("test_key")
        await client.close()

        assert result["name"] == "Demo Kit"
        assert seen == {"token": "test-figma-token-123", "path": "/v1/files/test_key"}
