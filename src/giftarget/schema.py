from __future__ import annotations

"""Request and result records exchanged with callers of the search engine."""

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .error_handling import ErrorKind

# --------------------------------------------------------------------------- #
# Request
# --------------------------------------------------------------------------- #


class CompressionRequest(BaseModel):
    """Validated, immutable description of one compression job.

    Construction fails with ``pydantic.ValidationError`` when the target size
    is not positive, the minimum frame percentage is outside 1..100 or the
    thread budget is negative.
    """

    input_path: Path
    output_path: Path
    target_size_kb: float = Field(gt=0, description="Upper bound on output size (KB)")
    min_frame_percent: int = Field(
        ge=1, le=100, description="Minimum share of original frames to keep (%)"
    )
    threads: int = Field(default=0, ge=0, description="Worker count, 0 = physical cores")
    early_exit: bool = Field(
        default=False,
        description="Stop dispatching trials once a result lands just under the target",
    )

    model_config = ConfigDict(frozen=True)


# --------------------------------------------------------------------------- #
# Result
# --------------------------------------------------------------------------- #


class CompressResult(BaseModel):
    """Terminal record returned to the caller after a search."""

    success: bool
    original_size_kb: float = Field(ge=0)
    compressed_size_kb: float = Field(ge=0)
    output_path: Path | None = None
    message: str
    original_frames: int = Field(default=0, ge=0)
    frames_retained: int = Field(default=0, ge=0)
    params: dict[str, int | str] | None = None
    trials_run: int = Field(default=0, ge=0)
    trials_failed: int = Field(default=0, ge=0)
    error_kind: ErrorKind | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def reduction_percent(self) -> float:
        """Size reduction relative to the original, in percent."""
        if self.original_size_kb <= 0:
            return 0.0
        return (1.0 - self.compressed_size_kb / self.original_size_kb) * 100.0
