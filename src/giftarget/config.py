"""Configuration settings for giftarget."""

import os
from dataclasses import dataclass
from enum import Enum

# gifsicle --lossy amounts tried by a full lossy sweep (compress --lossy-sweep)
LOSSY_SWEEP = [30, 60, 90, 120, 150, 180, 210, 240]


class OptimizationLevel(Enum):
    """gifsicle optimization levels, from least to most effort."""

    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def gifsicle_flag(self) -> str:
        return f"-O{self.value}"


@dataclass
class SearchConfig:
    """Configuration for the size-targeting parameter search."""

    # Palette sizes to try for every stride, largest first
    COLOR_TABLE_SIZES: list[int] | None = None

    # Optimization levels to try, least aggressive first
    OPTIMIZATION_LEVELS: list[OptimizationLevel] | None = None

    # gifsicle --lossy amounts (0 = lossless)
    LOSSY_LEVELS: list[int] | None = None

    # Hard bound on the number of planned trials
    MAX_CANDIDATES: int = 96

    # Strides kept when the colour/optimization/lossy grid has to be trimmed
    # to fit MAX_CANDIDATES
    MIN_PLANNED_STRIDES: int = 4

    # With early exit enabled, stop dispatching once a result lands within
    # this fraction below the target
    EARLY_EXIT_TOLERANCE: float = 0.05

    # Copy the input unchanged when it already fits the target
    COPY_IF_UNDER_TARGET: bool = True

    def __post_init__(self) -> None:
        if self.COLOR_TABLE_SIZES is None:
            self.COLOR_TABLE_SIZES = [256, 128, 64, 32]

        if self.OPTIMIZATION_LEVELS is None:
            self.OPTIMIZATION_LEVELS = [
                OptimizationLevel.LOW,
                OptimizationLevel.MEDIUM,
                OptimizationLevel.HIGH,
            ]

        if self.LOSSY_LEVELS is None:
            self.LOSSY_LEVELS = [0]

        if not self.COLOR_TABLE_SIZES:
            raise ValueError("COLOR_TABLE_SIZES must not be empty")
        if any(size < 2 or size > 256 for size in self.COLOR_TABLE_SIZES):
            raise ValueError(
                f"COLOR_TABLE_SIZES must be between 2 and 256, got {self.COLOR_TABLE_SIZES}"
            )

        if not self.OPTIMIZATION_LEVELS:
            raise ValueError("OPTIMIZATION_LEVELS must not be empty")

        if not self.LOSSY_LEVELS:
            raise ValueError("LOSSY_LEVELS must not be empty")
        if any(level < 0 for level in self.LOSSY_LEVELS):
            raise ValueError(
                f"LOSSY_LEVELS must be non-negative, got {self.LOSSY_LEVELS}"
            )

        if self.MAX_CANDIDATES < 1:
            raise ValueError(
                f"MAX_CANDIDATES must be at least 1, got {self.MAX_CANDIDATES}"
            )

        if self.MIN_PLANNED_STRIDES < 1:
            raise ValueError(
                f"MIN_PLANNED_STRIDES must be at least 1, got {self.MIN_PLANNED_STRIDES}"
            )

        if not 0.0 <= self.EARLY_EXIT_TOLERANCE < 1.0:
            raise ValueError(
                f"EARLY_EXIT_TOLERANCE must be in [0, 1), got {self.EARLY_EXIT_TOLERANCE}"
            )

    @property
    def candidates_per_stride(self) -> int:
        return (
            len(self.COLOR_TABLE_SIZES)
            * len(self.OPTIMIZATION_LEVELS)
            * len(self.LOSSY_LEVELS)
        )


@dataclass
class EngineConfig:
    """Configuration for the compression backend with environment variable overrides."""

    # Path to the gifsicle executable.
    # On macOS/Linux, "gifsicle" should work if installed via package manager
    # On Windows, you might need to provide the full path to the .exe
    # Override with: GIFTARGET_GIFSICLE_PATH
    GIFSICLE_PATH: str = "gifsicle"

    # Per-trial timeout in seconds.
    # Override with: GIFTARGET_RUN_TIMEOUT
    RUN_TIMEOUT: int = 60

    def __post_init__(self) -> None:
        """Apply environment variable overrides after initialization."""
        gifsicle_path = os.getenv("GIFTARGET_GIFSICLE_PATH")
        if gifsicle_path:
            self.GIFSICLE_PATH = gifsicle_path

        run_timeout = os.getenv("GIFTARGET_RUN_TIMEOUT")
        if run_timeout:
            try:
                self.RUN_TIMEOUT = int(run_timeout)
            except ValueError as e:
                raise ValueError(
                    f"GIFTARGET_RUN_TIMEOUT must be an integer, got {run_timeout!r}"
                ) from e

        if self.RUN_TIMEOUT <= 0:
            raise ValueError(f"RUN_TIMEOUT must be positive, got {self.RUN_TIMEOUT}")


# Default configuration instances
DEFAULT_SEARCH_CONFIG = SearchConfig()
DEFAULT_ENGINE_CONFIG = EngineConfig()
