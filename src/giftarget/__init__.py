"""giftarget - size-targeting compression for animated GIFs."""

__version__: str = "0.1.0"

# Public re-exports for convenience ---------------------------------------------------

from .backend import CompressionBackend, GifsicleBackend
from .config import (
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_SEARCH_CONFIG,
    EngineConfig,
    OptimizationLevel,
    SearchConfig,
)
from .error_handling import (
    BackendInvocationError,
    BackendUnavailableError,
    ErrorKind,
    GifIOError,
    GiftargetError,
    InputNotFoundError,
    NotAGifError,
    NoValidResultsError,
    TempStorageError,
    TruncatedGifError,
    user_message,
)
from .executor import TrialExecutor, TrialOutcome, resolve_thread_count
from .meta import GifMetadata, get_gif_info, inspect_gif
from .orchestrator import SearchOrchestrator, compress
from .planner import ParameterSet, min_frames_required, plan_trials
from .schema import CompressionRequest, CompressResult
from .selector import select_best
from .system_tools import ToolInfo, discover_tool

__all__ = [
    "BackendInvocationError",
    "BackendUnavailableError",
    "CompressionBackend",
    "CompressionRequest",
    "CompressResult",
    "DEFAULT_ENGINE_CONFIG",
    "DEFAULT_SEARCH_CONFIG",
    "EngineConfig",
    "ErrorKind",
    "GifIOError",
    "GifMetadata",
    "GifsicleBackend",
    "GiftargetError",
    "InputNotFoundError",
    "NotAGifError",
    "NoValidResultsError",
    "OptimizationLevel",
    "ParameterSet",
    "SearchConfig",
    "SearchOrchestrator",
    "TempStorageError",
    "ToolInfo",
    "TrialExecutor",
    "TrialOutcome",
    "TruncatedGifError",
    "compress",
    "discover_tool",
    "get_gif_info",
    "inspect_gif",
    "min_frames_required",
    "plan_trials",
    "resolve_thread_count",
    "select_best",
    "user_message",
]
