"""Generation orchestrator: selected nodes to named code artifacts.

Run state machine:
  1. Fetch phase: one batched node fetch for every selected id. Failure is
     fatal (FetchNodesFailedError), nothing is generated.
  2. Per-node phase, in selection order:
     - ids missing from the batch are skipped (logged, reported in
       GenerationResult.skipped_ids, never an error)
     - a "Generating <name> (i/n)..." status is emitted before each
       completion call
     - a failed completion call aborts the run (GenerationFailedError,
       partial results discarded) under the "stop" failure policy, or is
       recorded and skipped under the "skip" policy
  3. A final "Success! N components generated" status.

Completion calls are sequential unless a concurrency above 1 is configured;
artifact order always follows selection order.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Set

from .. import settings
from ..integrations.completion_client import CompletionClient, CompletionClientError
from ..integrations.figma_client import FigmaClient, FigmaClientError
from .catalogue import catalogue_names
from .errors import (
    FetchNodesFailedError,
    GenerationFailedError,
    NoSelectionError,
    RunCancelledError,
    ValidationError,
)
from .models import CatalogueEntry, GeneratedArtifact, GenerationResult

logger = logging.getLogger(__name__)

StatusCallback = Callable[[str], None]

FAILURE_POLICIES = ("stop", "skip")


def to_pascal_case(name: str) -> str:
    """'primary cta - large' -> 'PrimaryCtaLarge'.

    Every run of non-alphanumeric characters separates words; each word is
    capitalized and the rest lower-cased.
    """
    words = re.sub(r"[^a-zA-Z0-9]+", " ", name).split()
    return "".join(w[0].upper() + w[1:].lower() for w in words)


def artifact_file_name(component_name: str, extension: str = settings.ARTIFACT_EXTENSION) -> str:
    """Derive the artifact file name for a component name."""
    stem = to_pascal_case(component_name) or to_pascal_case(settings.FALLBACK_COMPONENT_NAME)
    return f"{stem}{extension}"


def _unique_file_name(file_name: str, used: Set[str]) -> str:
    """Suffix a counter when two components map to the same file name."""
    if file_name not in used:
        used.add(file_name)
        return file_name
    stem, dot, ext = file_name.rpartition(".")
    counter = 2
    while f"{stem}{counter}{dot}{ext}" in used:
        counter += 1
    unique = f"{stem}{counter}{dot}{ext}"
    used.add(unique)
    return unique


@dataclass
class _NodeJob:
    position: int
    node_id: str
    component_name: str
    document: Dict[str, Any]


class GenerationOrchestrator:
    """Drives one generation run for a set of selected nodes.

    Args:
        figma: Figma API client (node batch fetch).
        completion: Completion service client (code generation).
        model: Model id passed to every completion call.
        failure_policy: "stop" aborts on the first failed completion,
            "skip" records it and continues.
        concurrency: Max in-flight completion calls (1 = sequential).
        on_status: Receives every human-readable status update.
        cancel_event: When set, the run aborts before the next node.
    """

    def __init__(
        self,
        figma: FigmaClient,
        completion: CompletionClient,
        *,
        model: Optional[str] = None,
        failure_policy: Optional[str] = None,
        concurrency: Optional[int] = None,
        on_status: Optional[StatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        policy = failure_policy or settings.GENERATION_FAILURE_POLICY
        if policy not in FAILURE_POLICIES:
            raise ValidationError(
                f"Unknown failure policy '{policy}' (expected one of {', '.join(FAILURE_POLICIES)})"
            )
        self._figma = figma
        self._completion = completion
        self._model = model
        self._failure_policy = policy
        self._concurrency = max(1, concurrency or settings.GENERATION_CONCURRENCY)
        self._on_status = on_status
        self._cancel_event = cancel_event

    def _status(self, text: str) -> None:
        if self._on_status is not None:
            self._on_status(text)

    def _check_cancelled(self, partial: List[GeneratedArtifact]) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            raise RunCancelledError(partial=partial)

    async def generate(
        self,
        file_id: str,
        selected_ids: Sequence[str],
        catalogue: List[CatalogueEntry],
    ) -> GenerationResult:
        """Generate one artifact per resolvable selected node."""
        ids = list(selected_ids)
        if not file_id or not ids:
            raise NoSelectionError("No components selected")

        self._status("Fetching selected nodes...")
        try:
            data = await self._figma.get_file_nodes(file_id, ids)
        except FigmaClientError as e:
            raise FetchNodesFailedError(f"Failed to fetch nodes: {e}") from e

        result = GenerationResult()
        jobs = self._plan(ids, data.get("nodes") or {}, catalogue, result)
        self._check_cancelled([])

        if self._concurrency == 1:
            await self._run_sequential(jobs, len(ids), result)
        else:
            await self._run_bounded(jobs, len(ids), result)

        logger.info(
            f"generate: file={file_id}, selected={len(ids)}, generated={len(result.artifacts)}, "
            f"skipped={len(result.skipped_ids)}, failed={len(result.failed)}"
        )
        self._status(f"Success! {len(result.artifacts)} components generated")
        return result

    def _plan(
        self,
        ids: List[str],
        nodes: Dict[str, Any],
        catalogue: List[CatalogueEntry],
        result: GenerationResult,
    ) -> List[_NodeJob]:
        """Resolve each selected id against the batch; missing ids are skipped."""
        names = catalogue_names(catalogue)
        jobs: List[_NodeJob] = []
        for position, node_id in enumerate(ids):
            info = nodes.get(node_id)
            document = info.get("document") if isinstance(info, dict) else None
            if not document:
                logger.warning(f"generate: node {node_id} missing from batch, skipping")
                result.skipped_ids.append(node_id)
                continue
            jobs.append(_NodeJob(
                position=position,
                node_id=node_id,
                component_name=names.get(node_id) or settings.FALLBACK_COMPONENT_NAME,
                document=document,
            ))
        return jobs

    def _on_failure(
        self,
        job: _NodeJob,
        error: CompletionClientError,
        result: GenerationResult,
    ) -> None:
        if self._failure_policy == "skip":
            logger.warning(
                f"generate: {job.component_name} ({job.node_id}) failed, continuing: {error}"
            )
            result.failed[job.node_id] = str(error)
            return
        logger.error(
            f"generate: {job.component_name} ({job.node_id}) failed, aborting run: {error}"
        )
        raise GenerationFailedError(
            f"Code generation failed for {job.component_name}: {error}",
            component_name=job.component_name,
            partial=result.artifacts,
        ) from error

    async def _run_sequential(
        self,
        jobs: List[_NodeJob],
        total: int,
        result: GenerationResult,
    ) -> None:
        used: Set[str] = set()
        for job in jobs:
            self._check_cancelled(result.artifacts)
            self._status(f"Generating {job.component_name} ({job.position + 1}/{total})...")
            try:
                code = await self._completion.generate_code(job.document, model=self._model)
            except CompletionClientError as e:
                self._on_failure(job, e, result)
                continue
            result.artifacts.append(GeneratedArtifact(
                name=_unique_file_name(artifact_file_name(job.component_name), used),
                code=code,
            ))

    async def _run_bounded(
        self,
        jobs: List[_NodeJob],
        total: int,
        result: GenerationResult,
    ) -> None:
        semaphore = asyncio.Semaphore(self._concurrency)

        async def run(job: _NodeJob) -> str:
            async with semaphore:
                self._check_cancelled([])
                self._status(f"Generating {job.component_name} ({job.position + 1}/{total})...")
                return await self._completion.generate_code(job.document, model=self._model)

        tasks = [asyncio.create_task(run(job)) for job in jobs]
        used: Set[str] = set()
        try:
            # Collect in selection order so artifacts keep that order
            for job, task in zip(jobs, tasks):
                try:
                    code = await task
                except RunCancelledError as e:
                    raise RunCancelledError(partial=result.artifacts) from e
                except CompletionClientError as e:
                    self._on_failure(job, e, result)
                    continue
                result.artifacts.append(GeneratedArtifact(
                    name=_unique_file_name(artifact_file_name(job.component_name), used),
                    code=code,
                ))
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
