"""LLM completion service client: Figma node JSON to component source code.

Talks to an OpenAI-compatible chat completions endpoint (Hugging Face router
by default) and to the Hugging Face model hub for the list of selectable
models.

Environment:
    HF_TOKEN: Hugging Face access token (required for code generation)

Usage:
    client = CompletionClient()
    code = await client.generate_code(node_document, model="openai/gpt-4o")
    models = await client.list_models()
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Dict, List, Optional

import httpx

from .. import config, settings

logger = logging.getLogger("figma_builder.integrations.completion")

CODEGEN_PROMPT = (
    "Convert this Figma JSON to a React TS component with Tailwind v4 classes. "
    "Output only the code:\n{figma_json}"
)

# Used whenever the model hub cannot be queried or returns nothing usable
FALLBACK_MODELS: List[Dict[str, Any]] = [
    {"id": "openai/gpt-4o", "name": "GPT-4o", "providers": ["OpenAI"]},
    {"id": "openai/gpt-4o-mini", "name": "GPT-4o Mini", "providers": ["OpenAI"]},
    {"id": "anthropic/claude-sonnet-4", "name": "Claude Sonnet 4", "providers": ["Anthropic"]},
    {"id": "google/gemini-2.0-flash-001", "name": "Gemini 2.0 Flash", "providers": ["Google"]},
    {
        "id": "meta-llama/Llama-3.3-70B-Instruct",
        "name": "Llama 3.3 70B Instruct",
        "providers": ["Meta"],
    },
    {
        "id": "mistralai/Mistral-Small-24B-Instruct-2501",
        "name": "Mistral Small 24B",
        "providers": ["Mistral"],
    },
    {"id": "Qwen/Qwen2.5-72B-Instruct", "name": "Qwen 2.5 72B Instruct", "providers": ["Qwen"]},
]


class CompletionClientError(Exception):
    """Raised when the completion service call fails."""


def strip_code_fence(text: str) -> str:
    """Remove a leading/trailing markdown code fence around a whole response.

    Only strips when the first line opens a fence and the last line closes it;
    anything else is returned trimmed but otherwise untouched.
    """
    code = text.strip()
    lines = code.split("\n")
    if len(lines) >= 2 and lines[0].startswith("```") and lines[-1].strip() == "```":
        code = "\n".join(lines[1:-1]).strip()
    return code


def format_model_name(model_id: str) -> str:
    """'meta-llama/Llama-3.3-70B-Instruct' -> 'Llama 3.3 70B Instruct'."""
    name = model_id.rsplit("/", 1)[-1]
    name = name.replace("-", " ")
    name = re.sub(r"\b\w", lambda m: m.group(0).upper(), name)
    name = re.sub(r"(\d+)b", r"\1B", name, flags=re.IGNORECASE)
    name = re.sub(r"instruct", "Instruct", name, flags=re.IGNORECASE)
    name = re.sub(r"chat", "Chat", name, flags=re.IGNORECASE)
    return name


def provider_label(provider: str) -> str:
    """'fireworks-ai' -> 'Fireworks Ai', 'meta-llama' -> 'Meta Llama'."""
    return " ".join(w[:1].upper() + w[1:] for w in provider.split("-") if w)


def _models_from_hub(data: Any) -> List[Dict[str, Any]]:
    """Turn a hub listing into sorted, de-duplicated model options."""
    options: Dict[str, Dict[str, Any]] = {}
    for entry in data:
        if not isinstance(entry, dict):
            continue
        model_id = entry.get("modelId") or entry.get("id")
        if not model_id:
            continue

        providers: List[str] = []
        inference = entry.get("inference")
        if isinstance(inference, dict):
            providers.extend(inference.get("providers") or [])
        mapping = entry.get("inference_provider_mapping")
        if isinstance(mapping, dict):
            providers.extend(mapping.keys())
        if not providers:
            continue

        router_id = model_id if "/" in model_id else f"huggingface/{model_id}"
        unique: List[str] = []
        for p in providers:
            label = provider_label(p)
            if label not in unique:
                unique.append(label)

        options[router_id] = {
            "id": router_id,
            "name": format_model_name(model_id),
            "providers": unique,
        }

    return sorted(options.values(), key=lambda m: m["name"].lower())


class CompletionClient:
    """Async client for the code-generating completion service.

    Args:
        token: HF access token. Falls back to HF_TOKEN env var.
        timeout: HTTP request timeout in seconds.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        timeout: float = settings.COMPLETION_HTTP_TIMEOUT,
    ):
        self._token = token or os.getenv("HF_TOKEN", "")
        if not self._token:
            raise CompletionClientError(
                "Missing HF_TOKEN. Set HF_TOKEN environment variable "
                "or pass token= to CompletionClient()."
            )
        self._timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def generate_code(
        self,
        figma_json: Dict[str, Any],
        model: Optional[str] = None,
    ) -> str:
        """Request a component implementation for one node sub-document.

        Returns the code text with any surrounding code fence removed.
        Raises CompletionClientError on transport errors, non-2xx responses
        and malformed payloads.
        """
        selected_model = model or config.DEFAULT_MODEL
        prompt = CODEGEN_PROMPT.format(
            figma_json=json.dumps(figma_json, indent=2, ensure_ascii=False)
        )
        body = {
            "messages": [{"role": "user", "content": prompt}],
            "model": selected_model,
            "stream": False,
        }

        client = await self._get_client()
        try:
            resp = await client.post(
                config.COMPLETION_API_URL,
                json=body,
                headers={"Authorization": f"Bearer {self._token}"},
            )
        except httpx.TimeoutException as e:
            raise CompletionClientError(
                f"Completion service timed out after {self._timeout}s"
            ) from e
        except httpx.HTTPError as e:
            raise CompletionClientError(f"Completion service unreachable: {e}") from e

        if not resp.is_success:
            raise CompletionClientError(
                f"Completion service error {resp.status_code}: {resp.text[:200]}"
            )

        try:
            content = resp.json()["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise CompletionClientError(
                "Completion service returned an unexpected response format"
            ) from e
        if not isinstance(content, str):
            raise CompletionClientError("Completion service returned no text content")

        code = strip_code_fence(content)
        logger.info(
            f"generate_code: model={selected_model}, prompt_chars={len(prompt)}, "
            f"code_chars={len(code)}"
        )
        return code

    async def list_models(self) -> List[Dict[str, Any]]:
        """List text-generation models that have inference providers.

        Never raises: any failure falls back to FALLBACK_MODELS.
        """
        return await list_models(token=self._token)


async def list_models(token: Optional[str] = None) -> List[Dict[str, Any]]:
    """Query the model hub for selectable models, falling back to a fixed list.

    Usable without a token (the hub listing is public), so the models
    endpoint keeps working when HF_TOKEN is not configured.
    """
    params = {
        "inference_provider": "all",
        "pipeline_tag": "text-generation",
        "sort": "downloads",
        "direction": "-1",
        "limit": str(settings.MODELS_LIST_LIMIT),
    }
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    try:
        async with httpx.AsyncClient(timeout=settings.MODELS_HTTP_TIMEOUT) as client:
            resp = await client.get(config.MODELS_API_URL, params=params, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"list_models: hub request failed, using fallback models: {e}")
        return list(FALLBACK_MODELS)

    if not resp.is_success:
        logger.warning(
            f"list_models: hub returned {resp.status_code}, using fallback models"
        )
        return list(FALLBACK_MODELS)

    try:
        data = resp.json()
    except ValueError:
        logger.warning("list_models: hub returned invalid JSON, using fallback models")
        return list(FALLBACK_MODELS)

    if not isinstance(data, list) or not data:
        logger.warning("list_models: hub returned empty or invalid data, using fallback models")
        return list(FALLBACK_MODELS)

    models = _models_from_hub(data)
    if not models:
        logger.warning("list_models: no models matched filter, using fallback models")
        return list(FALLBACK_MODELS)

    logger.info(f"list_models: {len(models)} models available")
    return models
