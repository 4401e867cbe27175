"""Frame reduction functionality for GIF compression.

Frames are dropped by stride: a stride of N keeps frames ``0, N, 2N, …``.
This module turns a stride into gifsicle frame-selection and timing
arguments so a single gifsicle invocation applies frame reduction together
with palette reduction and optimization.

Frame Selection Best Practices:
- Gifsicle uses frame selection syntax: #0 #2 #4 (frames to keep)
- Input file must be specified BEFORE frame selection arguments
- Frame selection is compatible with --optimize (unlike --delete)
"""

import math

# Smallest delay browsers honour, in centiseconds
MIN_FRAME_DELAY_CS = 2


def calculate_stride_indices(total_frames: int, stride: int) -> list[int]:
    """Return the 0-based indices kept by *stride*.

    Raises:
        ValueError: If stride is less than 1 or total_frames is negative
    """
    if stride < 1:
        raise ValueError(f"stride must be at least 1, got {stride}")
    if total_frames < 0:
        raise ValueError(f"total_frames must be non-negative, got {total_frames}")
    return list(range(0, total_frames, stride))


def frames_kept_by_stride(total_frames: int, stride: int) -> int:
    """Number of frames *stride* keeps out of *total_frames*."""
    if stride < 1:
        raise ValueError(f"stride must be at least 1, got {stride}")
    return math.ceil(total_frames / stride)


def calculate_adjusted_delays(
    original_delays: list[int] | tuple[int, ...], frame_indices: list[int]
) -> list[int]:
    """Calculate adjusted frame delays when frames are removed.

    Each kept frame absorbs the delays of the dropped frames that follow it,
    so the animation keeps its original duration.

    Example:
        Original: [10, 10, 10, 10] (4 frames, 10cs each)
        Keep indices: [0, 2]
        Result: [20, 20]
    """
    if not original_delays or not frame_indices:
        return []

    adjusted_delays = []
    for i, frame_idx in enumerate(frame_indices):
        if i == len(frame_indices) - 1:
            adjusted_delay = sum(original_delays[frame_idx:])
        else:
            adjusted_delay = sum(original_delays[frame_idx : frame_indices[i + 1]])
        adjusted_delays.append(max(MIN_FRAME_DELAY_CS, adjusted_delay))

    return adjusted_delays


def build_gifsicle_frame_args(stride: int, total_frames: int) -> list[str]:
    """Build gifsicle frame selection arguments for *stride*.

    Example:
        For 12 frames with stride 2: ['#0', '#2', '#4', '#6', '#8', '#10']

    Returns an empty list when no frame is dropped.
    """
    if stride == 1:
        return []
    return [f"#{index}" for index in calculate_stride_indices(total_frames, stride)]


def build_gifsicle_timing_args(
    original_delays: list[int] | tuple[int, ...],
    frame_indices: list[int],
    loop_count: int | None,
) -> list[str]:
    """Build gifsicle arguments that preserve playback speed and looping.

    When frames are dropped a uniform ``--delay`` equal to the mean adjusted
    delay is applied. GIFs that keep every frame, or carry no delay
    information at all, keep their own timing.

    Example:
        For adjusted delays [20, 30] and infinite loop:
        Returns: ['--delay', '25', '--loopcount=forever']
    """
    timing_args = []

    if any(original_delays) and len(frame_indices) < len(original_delays):
        adjusted_delays = calculate_adjusted_delays(original_delays, frame_indices)
        if adjusted_delays:
            avg_delay = sum(adjusted_delays) / len(adjusted_delays)
            timing_args.extend(["--delay", str(max(MIN_FRAME_DELAY_CS, round(avg_delay)))])

    if loop_count is None or loop_count == 0:
        timing_args.append("--loopcount=forever")
    else:
        timing_args.append(f"--loopcount={loop_count}")

    return timing_args
