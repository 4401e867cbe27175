"""Trial planning for the size-targeting search.

The planner turns the original frame count and the caller's constraints into
a fully materialized, deterministic list of :class:`ParameterSet` candidates.
Candidates are ordered from least to most lossy: smallest frame stride first,
then larger colour tables, lower optimization levels and lower lossy levels.
The selector relies on this order to break ties.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass

from .color_keep import MAX_COLOR_TABLE_SIZE, validate_color_table_size
from .config import DEFAULT_SEARCH_CONFIG, OptimizationLevel, SearchConfig
from .frame_keep import frames_kept_by_stride
from .meta import GifMetadata
from .schema import CompressionRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParameterSet:
    """Encoding parameters for one compression trial."""

    frame_stride: int
    color_table_size: int
    optimization_level: OptimizationLevel
    lossy_level: int = 0

    def __post_init__(self) -> None:
        if self.frame_stride < 1:
            raise ValueError(f"frame_stride must be at least 1, got {self.frame_stride}")
        validate_color_table_size(self.color_table_size)
        if self.lossy_level < 0:
            raise ValueError(f"lossy_level must be non-negative, got {self.lossy_level}")

    @property
    def label(self) -> str:
        label = (
            f"stride={self.frame_stride} colors={self.color_table_size} "
            f"{self.optimization_level.gifsicle_flag}"
        )
        if self.lossy_level:
            label += f" lossy={self.lossy_level}"
        return label

    def to_dict(self) -> dict[str, int | str]:
        data = asdict(self)
        data["optimization_level"] = self.optimization_level.name
        return data


BASELINE = ParameterSet(
    frame_stride=1,
    color_table_size=MAX_COLOR_TABLE_SIZE,
    optimization_level=OptimizationLevel.HIGH,
)


def min_frames_required(frame_count: int, min_frame_percent: int) -> int:
    """Smallest frame count that honours *min_frame_percent*, never below 1."""
    return max(1, math.ceil(frame_count * min_frame_percent / 100))


def candidate_strides(frame_count: int, min_frames: int) -> list[int]:
    """Strides ``1, 2, …`` whose retained frame count stays at or above *min_frames*."""
    strides = []
    stride = 1
    while frame_count / stride >= min_frames:
        strides.append(stride)
        stride += 1
    return strides


def thin_evenly(values: list, keep: int) -> list:
    """Pick *keep* evenly spaced items of *values*, always including the first and last.

    Example:
        thin_evenly([1, 2, ..., 10], 4) -> [1, 4, 7, 10]
    """
    if keep >= len(values):
        return list(values)
    if keep <= 1:
        return values[:1]

    step = (len(values) - 1) / (keep - 1)
    picked = []
    for i in range(keep):
        value = values[round(i * step)]
        if value not in picked:
            picked.append(value)
    return picked


def fit_grid(
    color_table_sizes: list[int],
    levels: list[OptimizationLevel],
    lossy_levels: list[int],
    budget: int,
) -> tuple[list[int], list[OptimizationLevel], list[int]]:
    """Shrink the per-stride axes until their product is at most *budget*.

    Axes come in planning order. The longest axis is thinned one step at a
    time (lossy, then colours, then optimization levels on ties) and every
    thinned axis keeps its first and last value.
    """
    axes = [list(lossy_levels), list(color_table_sizes), list(levels)]
    while math.prod(len(axis) for axis in axes) > budget:
        longest = max(range(len(axes)), key=lambda i: len(axes[i]))
        if len(axes[longest]) == 1:
            break
        axes[longest] = thin_evenly(axes[longest], len(axes[longest]) - 1)

    lossy_levels, color_table_sizes, levels = axes
    return color_table_sizes, levels, lossy_levels


def plan_trials(
    metadata: GifMetadata,
    request: CompressionRequest,
    config: SearchConfig | None = None,
) -> list[ParameterSet]:
    """Enumerate the ordered candidate list for *request*.

    When the full grid does not fit ``config.MAX_CANDIDATES``, the per-stride
    grid is trimmed first so that at least ``config.MIN_PLANNED_STRIDES``
    strides fit, then the strides are thinned. Stride 1 and the largest valid
    stride always survive.

    Args:
        metadata: Inspection result of the input GIF
        request: Validated compression request
        config: Search grid configuration (defaults to DEFAULT_SEARCH_CONFIG)

    Returns:
        Candidates in generation order, at most ``config.MAX_CANDIDATES`` long
        and always containing the lossless baseline.
    """
    config = config or DEFAULT_SEARCH_CONFIG

    min_frames = min_frames_required(metadata.frame_count, request.min_frame_percent)
    strides = candidate_strides(metadata.frame_count, min_frames)

    wanted_strides = max(1, min(len(strides), config.MIN_PLANNED_STRIDES))
    color_table_sizes, levels, lossy_levels = fit_grid(
        sorted(config.COLOR_TABLE_SIZES, reverse=True),
        sorted(config.OPTIMIZATION_LEVELS, key=lambda lvl: lvl.value),
        sorted(config.LOSSY_LEVELS),
        max(1, config.MAX_CANDIDATES // wanted_strides),
    )
    per_stride = len(color_table_sizes) * len(levels) * len(lossy_levels)
    if per_stride < config.candidates_per_stride:
        logger.debug(
            f"Trimmed the per-stride grid from {config.candidates_per_stride} to "
            f"{per_stride} combinations: colors {color_table_sizes}, "
            f"lossy {lossy_levels}"
        )

    # Reserve a slot for the baseline when the trimmed grid does not produce it
    baseline_planned = (
        BASELINE.color_table_size in color_table_sizes
        and BASELINE.optimization_level in levels
        and BASELINE.lossy_level in lossy_levels
    )
    slots = config.MAX_CANDIDATES - (0 if baseline_planned else 1)
    stride_budget = max(1, slots // per_stride)
    if len(strides) > stride_budget:
        logger.debug(
            f"Thinning {len(strides)} strides to {stride_budget} "
            f"to stay within {config.MAX_CANDIDATES} candidates"
        )
        strides = thin_evenly(strides, stride_budget)

    candidates: list[ParameterSet] = []
    for stride in strides:
        for color_table_size in color_table_sizes:
            for level in levels:
                for lossy_level in lossy_levels:
                    candidates.append(
                        ParameterSet(
                            frame_stride=stride,
                            color_table_size=color_table_size,
                            optimization_level=level,
                            lossy_level=lossy_level,
                        )
                    )

    candidates = candidates[: config.MAX_CANDIDATES]
    if BASELINE not in candidates:
        candidates = [BASELINE] + candidates[: config.MAX_CANDIDATES - 1]

    planned_strides = sorted({c.frame_stride for c in candidates})
    logger.info(
        f"Planned {len(candidates)} trials over strides {planned_strides} "
        f"({metadata.frame_count} frames, at least {min_frames} kept)"
    )
    for stride in planned_strides:
        logger.debug(
            f"stride {stride} keeps {frames_kept_by_stride(metadata.frame_count, stride)} frames"
        )

    return candidates
