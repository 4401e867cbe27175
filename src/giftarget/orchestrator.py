"""Top-level coordination of the size-targeting search.

``SearchOrchestrator.run`` sequences inspection, planning, parallel trials and
selection, then promotes the winning artifact to the requested output path.
All trial artifacts live in one scoped temporary directory that is removed on
every exit path. ``compress`` is the caller-facing boundary that turns
giftarget errors into a failed :class:`CompressResult` with a stable message.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import tempfile
from pathlib import Path

from .backend import CompressionBackend, GifsicleBackend
from .config import (
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_SEARCH_CONFIG,
    EngineConfig,
    SearchConfig,
)
from .error_handling import (
    BackendInvocationError,
    BackendUnavailableError,
    GifIOError,
    GiftargetError,
    InputNotFoundError,
    TempStorageError,
    error_context,
    user_message,
)
from .executor import ProgressCallback, StopCondition, TrialExecutor, TrialOutcome
from .meta import GifMetadata, inspect_gif
from .planner import min_frames_required, plan_trials
from .schema import CompressionRequest, CompressResult
from .selector import select_best

logger = logging.getLogger(__name__)


def promote_artifact(artifact_path: Path, output_path: Path) -> None:
    """Move *artifact_path* to *output_path*, replacing any existing file.

    Uses an atomic rename and falls back to copy + delete only when the two
    paths live on different filesystems.
    """
    output_path.parent.mkdir(parents=True, exist_ok=True)
    try:
        os.replace(artifact_path, output_path)
    except OSError as e:
        if e.errno != errno.EXDEV:
            raise
        logger.debug(f"Rename to {output_path} failed ({e}), copying instead")
        shutil.copy2(artifact_path, output_path)
        artifact_path.unlink(missing_ok=True)


def _discard_artifacts(outcomes: list[TrialOutcome]) -> None:
    for outcome in outcomes:
        if outcome.artifact_path is not None:
            outcome.artifact_path.unlink(missing_ok=True)


class SearchOrchestrator:
    """Runs the complete search for one request."""

    def __init__(
        self,
        backend: CompressionBackend | None = None,
        search_config: SearchConfig | None = None,
        engine_config: EngineConfig | None = None,
    ):
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self.search_config = search_config or DEFAULT_SEARCH_CONFIG
        self.backend = backend or GifsicleBackend(self.engine_config)

    def run(
        self,
        request: CompressionRequest,
        progress_callback: ProgressCallback | None = None,
    ) -> CompressResult:
        """Compress ``request.input_path`` toward ``request.target_size_kb``.

        Raises:
            InputNotFoundError, NotAGifError, TruncatedGifError: Before any trial
            BackendUnavailableError: Before any trial or temporary file
            BackendInvocationError: When every trial failed
            NoValidResultsError: When no trial kept enough frames
            TempStorageError: When the working directory cannot be created
            GifIOError: When the output path is a directory, or the winner
                cannot be written to it
        """
        input_path = Path(request.input_path)
        output_path = Path(request.output_path)

        if not input_path.exists():
            raise InputNotFoundError(f"Input file not found: {input_path}")
        if output_path.is_dir():
            raise GifIOError(f"Output path is a directory: {output_path}")

        metadata = inspect_gif(input_path)
        logger.info(
            f"Original: {metadata.size_kb:.2f} KB, {metadata.frame_count} frames; "
            f"target {request.target_size_kb:.2f} KB"
        )

        if not self.backend.is_available():
            raise BackendUnavailableError(
                f"Compression backend '{self.backend.name}' is not available"
            )

        if (
            self.search_config.COPY_IF_UNDER_TARGET
            and metadata.size_kb <= request.target_size_kb
        ):
            return self._copy_original(input_path, output_path, metadata)

        try:
            scratch = tempfile.TemporaryDirectory(prefix="giftarget_")
        except OSError as e:
            raise TempStorageError("Cannot create temporary directory", cause=e) from e

        with scratch as work_dir:
            candidates = plan_trials(metadata, request, self.search_config)
            executor = TrialExecutor(
                self.backend, Path(work_dir), timeout=self.engine_config.RUN_TIMEOUT
            )
            outcomes = executor.execute(
                input_path,
                candidates,
                request.threads,
                metadata,
                progress_callback=progress_callback,
                stop_condition=self._stop_condition(request, metadata),
            )

            try:
                winner = self._select(outcomes, request, metadata)
                with error_context(f"write {output_path}", GifIOError, logger=logger):
                    promote_artifact(winner.artifact_path, output_path)
                    compressed_size_kb = output_path.stat().st_size / 1024.0
            finally:
                _discard_artifacts(outcomes)

        return self._build_result(
            request, metadata, winner, outcomes, output_path, compressed_size_kb
        )

    def _stop_condition(
        self, request: CompressionRequest, metadata: GifMetadata
    ) -> StopCondition | None:
        if not request.early_exit:
            return None

        min_frames = min_frames_required(metadata.frame_count, request.min_frame_percent)
        lower_bound = request.target_size_kb * (1.0 - self.search_config.EARLY_EXIT_TOLERANCE)

        def near_target(outcome: TrialOutcome) -> bool:
            return (
                outcome.frames_retained >= min_frames
                and lower_bound <= outcome.output_size_kb <= request.target_size_kb
            )

        return near_target

    def _select(
        self,
        outcomes: list[TrialOutcome],
        request: CompressionRequest,
        metadata: GifMetadata,
    ) -> TrialOutcome:
        if outcomes and not any(outcome.succeeded for outcome in outcomes):
            first_error = next(
                (outcome.error for outcome in outcomes if outcome.error), "unknown error"
            )
            raise BackendInvocationError(
                f"All {len(outcomes)} trials failed; first error: {first_error}",
                context={"trials": len(outcomes)},
            )
        return select_best(outcomes, request, metadata.frame_count)

    def _copy_original(
        self, input_path: Path, output_path: Path, metadata: GifMetadata
    ) -> CompressResult:
        logger.info("Input already fits the target, copying it unchanged")
        with error_context(f"copy {input_path} to {output_path}", GifIOError, logger=logger):
            output_path.parent.mkdir(parents=True, exist_ok=True)
            if not output_path.exists() or not output_path.samefile(input_path):
                shutil.copyfile(input_path, output_path)

        return CompressResult(
            success=True,
            original_size_kb=metadata.size_kb,
            compressed_size_kb=metadata.size_kb,
            output_path=output_path,
            message=f"File is already within the target size ({metadata.size_kb:.2f} KB), copied unchanged",
            original_frames=metadata.frame_count,
            frames_retained=metadata.frame_count,
        )

    def _build_result(
        self,
        request: CompressionRequest,
        metadata: GifMetadata,
        winner: TrialOutcome,
        outcomes: list[TrialOutcome],
        output_path: Path,
        compressed_size_kb: float,
    ) -> CompressResult:
        success = winner.output_size_kb <= request.target_size_kb
        reduction = (1.0 - compressed_size_kb / metadata.size_kb) * 100.0 if metadata.size_kb else 0.0

        if success:
            message = (
                f"Compressed below the {request.target_size_kb:.2f} KB target: "
                f"{compressed_size_kb:.2f} KB ({reduction:.1f}% smaller)"
            )
        else:
            message = (
                f"Could not reach the {request.target_size_kb:.2f} KB target, "
                f"best effort is {compressed_size_kb:.2f} KB ({reduction:.1f}% smaller) "
                f"keeping {winner.frames_retained} of {metadata.frame_count} frames"
            )
        logger.info(message)

        return CompressResult(
            success=success,
            original_size_kb=metadata.size_kb,
            compressed_size_kb=compressed_size_kb,
            output_path=output_path,
            message=message,
            original_frames=metadata.frame_count,
            frames_retained=winner.frames_retained,
            params=winner.params.to_dict(),
            trials_run=sum(1 for outcome in outcomes if not outcome.skipped),
            trials_failed=sum(
                1 for outcome in outcomes if not outcome.succeeded and not outcome.skipped
            ),
        )


def compress(
    request: CompressionRequest,
    backend: CompressionBackend | None = None,
    search_config: SearchConfig | None = None,
    engine_config: EngineConfig | None = None,
    progress_callback: ProgressCallback | None = None,
) -> CompressResult:
    """Run the search and report every giftarget failure as a result record."""
    orchestrator = SearchOrchestrator(backend, search_config, engine_config)
    try:
        return orchestrator.run(request, progress_callback)
    except GiftargetError as e:
        message = user_message(e)
        logger.error(message)
        return CompressResult(
            success=False,
            original_size_kb=0.0,
            compressed_size_kb=0.0,
            output_path=None,
            message=message,
            error_kind=e.kind,
        )
