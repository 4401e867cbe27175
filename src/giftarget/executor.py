"""Parallel trial execution for the size-targeting search.

Each candidate :class:`ParameterSet` becomes one trial: the backend writes a
compressed GIF to a private path inside the search's scoped working
directory, and the result is re-inspected to measure its real size and frame
count. Trials run on a bounded thread pool because the work happens in the
backend's subprocess; a trial's failure is recorded in its outcome and never
affects sibling trials.
"""

from __future__ import annotations

import logging
import os
import threading
import time
import uuid
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import psutil

from .backend import CompressionBackend
from .error_handling import GiftargetError
from .meta import GifMetadata, inspect_gif
from .planner import ParameterSet

logger = logging.getLogger(__name__)


@dataclass
class TrialOutcome:
    """Result of one compression trial."""

    params: ParameterSet
    order: int  # position in the planned candidate list
    succeeded: bool
    output_size_kb: float = 0.0
    frames_retained: int = 0
    artifact_path: Path | None = None
    error: str | None = None
    render_ms: int = 0
    command: str | None = None
    skipped: bool = False


ProgressCallback = Callable[[int, int, TrialOutcome], None]
StopCondition = Callable[[TrialOutcome], bool]


def resolve_thread_count(thread_budget: int, task_count: int | None = None) -> int:
    """Turn a caller thread budget into a worker count.

    Args:
        thread_budget: Requested workers, 0 = number of physical cores
        task_count: Number of tasks; the pool never exceeds it

    Raises:
        ValueError: If thread_budget is negative
    """
    if thread_budget < 0:
        raise ValueError(f"thread_budget must be non-negative, got {thread_budget}")

    if thread_budget == 0:
        workers = psutil.cpu_count(logical=False) or os.cpu_count() or 1
    else:
        workers = thread_budget

    if task_count is not None:
        workers = min(workers, max(1, task_count))
    return workers


class TrialArtifact:
    """Output location owned by a single trial."""

    def __init__(self, path: Path):
        self.path = path
        self.kept = False

    def keep(self) -> Path:
        """Hand the file over to the caller; it survives the trial scope."""
        self.kept = True
        return self.path

    def discard(self) -> None:
        self.path.unlink(missing_ok=True)


@contextmanager
def trial_artifact(work_dir: Path, order: int) -> Iterator[TrialArtifact]:
    """Allocate a unique artifact path for trial *order*.

    The file is removed when the scope exits unless :meth:`TrialArtifact.keep`
    was called, so failed and aborted trials never leave files behind.
    """
    artifact = TrialArtifact(work_dir / f"trial_{order:03d}_{uuid.uuid4().hex[:8]}.gif")
    try:
        yield artifact
    finally:
        if not artifact.kept:
            artifact.discard()


class TrialExecutor:
    """Bounded worker pool that runs compression trials concurrently."""

    def __init__(
        self,
        backend: CompressionBackend,
        work_dir: Path,
        timeout: float | None = None,
    ):
        """Initialize the executor.

        Args:
            backend: Compression backend invoked once per trial
            work_dir: Scoped directory that holds trial artifacts
            timeout: Per-trial backend timeout in seconds (backend default if None)
        """
        self.backend = backend
        self.work_dir = Path(work_dir)
        self.timeout = timeout

    def execute(
        self,
        input_path: Path,
        candidates: list[ParameterSet],
        thread_budget: int,
        metadata: GifMetadata,
        progress_callback: ProgressCallback | None = None,
        stop_condition: StopCondition | None = None,
    ) -> list[TrialOutcome]:
        """Run every candidate and collect one outcome per trial.

        Args:
            input_path: GIF to compress
            candidates: Planned parameter sets, in generation order
            thread_budget: Worker count, 0 = physical core count
            metadata: Inspection result of *input_path*
            progress_callback: Called as (completed, total, outcome) after each trial
            stop_condition: When it returns True for an outcome, trials that
                have not started yet are skipped; running ones finish

        Returns:
            Outcomes sorted by candidate order
        """
        if not candidates:
            return []

        workers = resolve_thread_count(thread_budget, len(candidates))
        stop_event = threading.Event()
        outcomes: list[TrialOutcome] = []
        lock = threading.Lock()
        start_time = time.time()

        logger.info(f"Running {len(candidates)} trials with {workers} workers")

        def run(order: int, params: ParameterSet) -> TrialOutcome:
            if stop_event.is_set():
                outcome = TrialOutcome(
                    params=params,
                    order=order,
                    succeeded=False,
                    skipped=True,
                    error="skipped after an early-exit result was found",
                )
            else:
                outcome = self._run_trial(input_path, order, params, metadata)
                if outcome.succeeded and stop_condition and stop_condition(outcome):
                    logger.info(f"Trial {order} ({params.label}) met the early-exit condition")
                    stop_event.set()

            with lock:
                outcomes.append(outcome)
            return outcome

        completed = 0
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="giftarget-trial"
        ) as pool:
            futures = [
                pool.submit(run, order, params) for order, params in enumerate(candidates)
            ]
            for future in as_completed(futures):
                outcome = future.result()
                completed += 1
                if progress_callback:
                    progress_callback(completed, len(candidates), outcome)

        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        logger.info(
            f"Trials finished in {time.time() - start_time:.2f}s: "
            f"{len(outcomes) - failed} succeeded, {failed} failed or skipped"
        )

        return sorted(outcomes, key=lambda outcome: outcome.order)

    def _run_trial(
        self,
        input_path: Path,
        order: int,
        params: ParameterSet,
        metadata: GifMetadata,
    ) -> TrialOutcome:
        with trial_artifact(self.work_dir, order) as artifact:
            try:
                info = self.backend.run_once(
                    input_path, artifact.path, params, metadata, timeout=self.timeout
                )
                output_metadata = inspect_gif(artifact.path)
            except (GiftargetError, OSError) as e:
                logger.warning(f"Trial {order} ({params.label}) failed: {e}")
                return TrialOutcome(
                    params=params, order=order, succeeded=False, error=str(e)
                )

            logger.debug(
                f"Trial {order} ({params.label}): {output_metadata.size_kb:.2f} KB, "
                f"{output_metadata.frame_count} frames"
            )
            return TrialOutcome(
                params=params,
                order=order,
                succeeded=True,
                output_size_kb=output_metadata.size_kb,
                frames_retained=output_metadata.frame_count,
                artifact_path=artifact.keep(),
                render_ms=int(info.get("render_ms", 0)),
                command=info.get("command"),
            )
