"""Pick the winning trial outcome.

Selection only looks at outcome values and their generation order, never at
the order outcomes finished in, so the same trials always yield the same
winner however the worker pool scheduled them.
"""

from __future__ import annotations

import logging

from .error_handling import NoValidResultsError
from .executor import TrialOutcome
from .planner import min_frames_required
from .schema import CompressionRequest

logger = logging.getLogger(__name__)


def viable_outcomes(outcomes: list[TrialOutcome], min_frames: int) -> list[TrialOutcome]:
    """Successful outcomes that kept at least *min_frames* frames."""
    return [
        outcome
        for outcome in outcomes
        if outcome.succeeded and outcome.frames_retained >= min_frames
    ]


def select_best(
    outcomes: list[TrialOutcome],
    request: CompressionRequest,
    original_frames: int,
) -> TrialOutcome:
    """Choose the best outcome for *request*.

    Policy:
    1. Among outcomes at or under the target, the largest one wins.
    2. Otherwise the smallest outcome wins (best effort).
    3. Ties go to the earlier-generated, less lossy candidate.

    Raises:
        NoValidResultsError: If no outcome succeeded with enough frames
    """
    min_frames = min_frames_required(original_frames, request.min_frame_percent)
    viable = viable_outcomes(outcomes, min_frames)

    if not viable:
        raise NoValidResultsError(
            f"None of {len(outcomes)} trials produced a GIF with at least "
            f"{min_frames} frames",
            context={"min_frames": min_frames, "trials": len(outcomes)},
        )

    under_target = [o for o in viable if o.output_size_kb <= request.target_size_kb]
    if under_target:
        best = min(under_target, key=lambda o: (-o.output_size_kb, o.order))
        logger.info(
            f"Selected trial {best.order} ({best.params.label}): "
            f"{best.output_size_kb:.2f} KB <= {request.target_size_kb:.2f} KB target"
        )
    else:
        best = min(viable, key=lambda o: (o.output_size_kb, o.order))
        logger.info(
            f"No trial reached {request.target_size_kb:.2f} KB; smallest is trial "
            f"{best.order} ({best.params.label}) at {best.output_size_kb:.2f} KB"
        )

    return best
