"""Root conftest for pipeline and API tests.

Provides:
- FastAPI AsyncClient over ASGITransport with a clean session registry
- Sample Figma file / node batch payloads
- Fake Figma and completion clients for pipeline runs
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from figma_builder.integrations.completion_client import CompletionClientError

FILE_KEY = "AbCdEfGhIjKlMnOpQrStUv"
FIGMA_URL = f"https://www.figma.com/design/{FILE_KEY}/Demo-Kit?node-id=1-3"


# ---------------------------------------------------------------------------
# Sample Figma payloads
# ---------------------------------------------------------------------------


@pytest.fixture
def figma_url() -> str:
    return FIGMA_URL


@pytest.fixture
def sample_file_response() -> Dict[str, Any]:
    """Sample Figma /v1/files/:key response: two pages, mixed node types.

    Selectable, in pre-order: 1:2 Hero, 1:3 primary cta - large,
    2:2 Icons, 2:3 icon/arrow.
    """
    return {
        "name": "Demo Kit",
        "document": {
            "id": "0:0",
            "name": "Document",
            "type": "DOCUMENT",
            "children": [
                {
                    "id": "0:1",
                    "name": "Page 1",
                    "type": "CANVAS",
                    "children": [
                        {
                            "id": "1:2",
                            "name": "Hero",
                            "type": "FRAME",
                            "children": [
                                {
                                    "id": "1:3",
                                    "name": "primary cta - large",
                                    "type": "COMPONENT",
                                    "children": [
                                        {"id": "1:8", "name": "Label", "type": "TEXT"},
                                    ],
                                },
                                {"id": "1:4", "name": "Caption", "type": "TEXT"},
                                {
                                    "id": "1:5",
                                    "name": "_scratch",
                                    "type": "FRAME",
                                    "children": [
                                        {"id": "1:9", "name": "Box", "type": "RECTANGLE"},
                                    ],
                                },
                            ],
                        },
                        {
                            "id": "1:6",
                            "name": "Hidden Panel",
                            "type": "FRAME",
                            "visible": False,
                            "children": [
                                {
                                    "id": "1:7",
                                    "name": "Inner",
                                    "type": "COMPONENT",
                                    "children": [
                                        {"id": "1:10", "name": "Dot", "type": "ELLIPSE"},
                                    ],
                                },
                            ],
                        },
                    ],
                },
                {
                    "id": "0:2",
                    "name": "Page 2",
                    "type": "CANVAS",
                    "children": [
                        {
                            "id": "2:1",
                            "name": "Card",
                            "type": "INSTANCE",
                            "children": [
                                {"id": "2:5", "name": "Title", "type": "TEXT"},
                            ],
                        },
                        {
                            "id": "2:2",
                            "name": "Icons",
                            "type": "COMPONENT_SET",
                            "children": [
                                {
                                    "id": "2:3",
                                    "name": "icon/arrow",
                                    "type": "COMPONENT",
                                    "children": [
                                        {"id": "2:6", "name": "Path", "type": "VECTOR"},
                                    ],
                                },
                            ],
                        },
                        {"id": "2:4", "name": "Empty Frame", "type": "FRAME", "children": []},
                    ],
                },
            ],
        },
    }


@pytest.fixture
def sample_nodes_response() -> Dict[str, Any]:
    """Sample Figma /v1/files/:key/nodes response (2:3 is not returned)."""
    return {
        "name": "Demo Kit",
        "nodes": {
            "1:2": {"document": {"id": "1:2", "name": "Hero", "type": "FRAME", "children": []}},
            "1:3": {
                "document": {"id": "1:3", "name": "primary cta - large", "type": "COMPONENT"}
            },
            "2:2": {"document": {"id": "2:2", "name": "Icons", "type": "COMPONENT_SET"}},
        },
    }


@pytest.fixture
def sample_images_response() -> Dict[str, Optional[str]]:
    return {
        "1:2": "https://figma-alpha-api.s3.us-west-2.amazonaws.com/images/hero.svg",
        "1:3": None,
        "2:2": "https://figma-alpha-api.s3.us-west-2.amazonaws.com/images/icons.svg",
    }


# ---------------------------------------------------------------------------
# Fake clients
# ---------------------------------------------------------------------------


def make_figma(
    file_response: Optional[Dict[str, Any]] = None,
    nodes_response: Optional[Dict[str, Any]] = None,
    images_response: Optional[Dict[str, Optional[str]]] = None,
) -> AsyncMock:
    """AsyncMock standing in for FigmaClient."""
    figma = AsyncMock()
    figma.get_file = AsyncMock(return_value=file_response or {"document": {}})
    figma.get_file_nodes = AsyncMock(return_value=nodes_response or {"nodes": {}})
    figma.get_node_images = AsyncMock(return_value=images_response or {})
    figma.close = AsyncMock()
    return figma


def make_completion(codes: Optional[List[Any]] = None) -> AsyncMock:
    """AsyncMock standing in for CompletionClient.

    ``codes`` is consumed in call order; Exception instances are raised.
    """
    completion = AsyncMock()
    if codes is None:
        async def _echo(figma_json, model=None):
            return f"export const {figma_json.get('name', 'X').replace(' ', '')} = () => null;"
        completion.generate_code = AsyncMock(side_effect=_echo)
    else:
        completion.generate_code = AsyncMock(side_effect=codes)
    completion.close = AsyncMock()
    return completion


@pytest.fixture
def figma(sample_file_response, sample_nodes_response, sample_images_response) -> AsyncMock:
    """Fake FigmaClient serving the sample payloads."""
    return make_figma(sample_file_response, sample_nodes_response, sample_images_response)


@pytest.fixture
def completion_factory():
    """Build a fake CompletionClient: completion_factory(["code", error, ...])."""
    return make_completion


@pytest.fixture
def completion_error() -> CompletionClientError:
    return CompletionClientError("Completion service error 503: overloaded")


# ---------------------------------------------------------------------------
# FastAPI test client
# ---------------------------------------------------------------------------


@pytest.fixture
def configured_tokens(monkeypatch):
    """Pretend FIGMA_TOKEN and HF_TOKEN are configured."""
    from figma_builder import config

    monkeypatch.setattr(config, "FIGMA_TOKEN", "test-figma-token")
    monkeypatch.setattr(config, "HF_TOKEN", "test-hf-token")


@pytest.fixture
def generated_dir(tmp_path, monkeypatch):
    """Redirect GENERATED_DIR into a temp directory."""
    from figma_builder import config

    out = tmp_path / "generated"
    monkeypatch.setattr(config, "GENERATED_DIR", str(out))
    return out


@pytest_asyncio.fixture
async def client() -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI routes.

    Starts and ends with an empty session registry so sessions never leak
    between tests.
    """
    from app.main import app
    from app.sessions import get_session_registry

    registry = get_session_registry()
    registry.clear()
    try:
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        registry.clear()
