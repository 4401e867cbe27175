"""Compression backends invoked once per search trial.

A backend is an opaque, synchronous, one-shot capability: given an input
file, an output path and a :class:`ParameterSet` it either produces a
compressed GIF or raises :class:`BackendInvocationError`. The search engine
only depends on the :class:`CompressionBackend` protocol; gifsicle is the
production implementation.

Gifsicle (https://www.lcdf.org/gifsicle/):
- Optimization levels: -O1, -O2, -O3
- Lossy compression: --lossy=LEVEL (0 = lossless, higher = more compression)
- Color reduction: --colors N (reduce palette to N colors)
- Frame selection syntax: #0 #2 #4 (specify frames to keep)
- Command structure: gifsicle [OPTIONS] INPUT [FRAME_SELECTION] --output OUTPUT

Usage Examples:
    # Lossless baseline
    gifsicle -O3 input.gif --loopcount=forever --output output.gif

    # Keep every other frame with a 64 colour palette
    gifsicle -O2 --colors 64 --no-dither input.gif #0 #2 #4 --delay 8 --output output.gif
"""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from .color_keep import build_gifsicle_color_args
from .config import DEFAULT_ENGINE_CONFIG, EngineConfig
from .error_handling import BackendInvocationError
from .frame_keep import (
    build_gifsicle_frame_args,
    build_gifsicle_timing_args,
    calculate_stride_indices,
)
from .meta import GifMetadata
from .planner import ParameterSet
from .system_tools import ToolInfo, discover_tool

logger = logging.getLogger(__name__)


@runtime_checkable
class CompressionBackend(Protocol):
    """Capability that performs one lossy GIF optimization."""

    name: str

    def is_available(self) -> bool:
        """Return True when the backend can be invoked at all."""
        ...

    def run_once(
        self,
        input_path: Path,
        output_path: Path,
        params: ParameterSet,
        metadata: GifMetadata,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Write the compressed GIF to *output_path* or raise BackendInvocationError."""
        ...


class GifsicleBackend:
    """Compression backend that shells out to gifsicle."""

    name = "gifsicle"

    def __init__(self, engine_config: EngineConfig | None = None):
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self._tool: ToolInfo | None = None

    @property
    def tool(self) -> ToolInfo:
        if self._tool is None:
            self._tool = discover_tool("gifsicle", self.engine_config)
        return self._tool

    def is_available(self) -> bool:
        return self.tool.available

    def build_command(
        self,
        input_path: Path,
        output_path: Path,
        params: ParameterSet,
        metadata: GifMetadata,
    ) -> list[str]:
        """Construct the gifsicle command line for one trial.

        Command Construction:
        1. Base: gifsicle -O<level> plus metadata stripping flags
        2. Lossy: --lossy=LEVEL (if level > 0)
        3. Colors: --colors N --no-dither (if fewer than 256 colours)
        4. Input: INPUT_FILE (must come before frame selection)
        5. Frames: #0 #s #2s (if stride > 1)
        6. Timing: --delay CS (if frames dropped) and --loopcount
        7. Output: --output OUTPUT_FILE
        """
        cmd = [
            self.tool.name,
            params.optimization_level.gifsicle_flag,
            "--no-warnings",
            "--no-conserve-memory",
            "--no-comments",
            "--no-names",
        ]

        if params.lossy_level > 0:
            cmd.append(f"--lossy={params.lossy_level}")

        cmd.extend(build_gifsicle_color_args(params.color_table_size))

        cmd.append(str(input_path))

        frame_indices = calculate_stride_indices(metadata.frame_count, params.frame_stride)
        cmd.extend(build_gifsicle_frame_args(params.frame_stride, metadata.frame_count))
        cmd.extend(
            build_gifsicle_timing_args(
                metadata.frame_delays, frame_indices, metadata.loop_count
            )
        )

        cmd.extend(["--output", str(output_path)])
        return cmd

    def run_once(
        self,
        input_path: Path,
        output_path: Path,
        params: ParameterSet,
        metadata: GifMetadata,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Compress *input_path* into *output_path* with *params*.

        Returns:
            Dictionary with ``render_ms``, ``engine`` and ``command``

        Raises:
            BackendInvocationError: On a missing binary, non-zero exit, timeout
                or when no output file was produced
        """
        if timeout is None:
            timeout = self.engine_config.RUN_TIMEOUT

        cmd = self.build_command(input_path, output_path, params, metadata)
        command = " ".join(cmd)
        start_time = time.perf_counter()

        try:
            result = subprocess.run(
                cmd, capture_output=True, text=True, check=True, timeout=timeout
            )
        except FileNotFoundError as e:
            raise BackendInvocationError(
                f"gifsicle binary not found: {cmd[0]}", cause=e, context={"command": command}
            ) from e
        except subprocess.CalledProcessError as e:
            raise BackendInvocationError(
                f"gifsicle failed with exit code {e.returncode}: {(e.stderr or '').strip()}",
                context={"command": command},
            ) from e
        except subprocess.TimeoutExpired as e:
            # subprocess.run kills the child before re-raising
            raise BackendInvocationError(
                f"gifsicle timed out after {timeout} seconds",
                context={"command": command},
            ) from e

        render_ms = int((time.perf_counter() - start_time) * 1000)

        if not output_path.exists():
            raise BackendInvocationError(
                f"gifsicle failed to create output file: {output_path}",
                context={"command": command},
            )

        return {
            "render_ms": render_ms,
            "engine": self.name,
            "command": command,
            "stderr": result.stderr or None,
        }
