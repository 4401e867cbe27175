from __future__ import annotations

"""Utility helpers for verifying external system tools.

These lightweight checks ensure that gifsicle is present *before* any
compression trial runs, so a missing binary is reported once instead of once
per trial.
"""

import re
import subprocess
from dataclasses import dataclass
from shutil import which


@dataclass(frozen=True, slots=True)
class ToolInfo:
    """Metadata for an external binary discovered on the system."""

    name: str
    available: bool
    version: str | None = None


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------


def _which(cmd: str) -> str | None:
    """Return full path if *cmd* is executable in $PATH, else *None*."""
    return which(cmd)


def _extract_version(output: str, pattern: str) -> str | None:
    match = re.search(pattern, output)
    if match:
        return match.group(1)
    return None


def _run_version_cmd(cmd: list[str], regex: str) -> str | None:
    try:
        completed = subprocess.run(cmd, capture_output=True, text=True, timeout=5)
    except (OSError, subprocess.SubprocessError):
        return None

    version = _extract_version(completed.stdout, regex) or _extract_version(
        completed.stderr, regex
    )
    if version:
        return version

    if completed.returncode != 0:
        return None

    return version


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

_FALLBACK_TOOLS: dict[str, list[str]] = {
    "gifsicle": ["gifsicle"],
}

_VERSION_PATTERNS: dict[str, str] = {
    "gifsicle": r"LCDF Gifsicle (\S+)",
}

_CONFIG_MAPPING: dict[str, str] = {
    "gifsicle": "GIFSICLE_PATH",
}

INSTALL_HINTS: dict[str, str] = {
    "darwin": "brew install gifsicle",
    "linux": "apt install gifsicle  (or: yum install gifsicle)",
    "windows": "Download from https://eternallybored.org/misc/gifsicle/",
    "other": "See https://www.lcdf.org/gifsicle/",
}


def discover_tool(tool_key: str = "gifsicle", engine_config=None) -> ToolInfo:
    """Return *ToolInfo* for *tool_key* using configuration and PATH discovery.

    Args:
        tool_key: Tool identifier (currently only gifsicle)
        engine_config: EngineConfig instance (uses DEFAULT_ENGINE_CONFIG if None)

    Returns:
        ToolInfo with availability and version information
    """
    if tool_key not in _FALLBACK_TOOLS:
        raise ValueError(f"Unknown tool: {tool_key}")

    if engine_config is None:
        from .config import DEFAULT_ENGINE_CONFIG

        engine_config = DEFAULT_ENGINE_CONFIG

    version_regex = _VERSION_PATTERNS[tool_key]

    configured_path = getattr(engine_config, _CONFIG_MAPPING[tool_key], None)
    if configured_path and _which(configured_path):
        version = _run_version_cmd([configured_path, "--version"], version_regex)
        return ToolInfo(name=configured_path, available=True, version=version)

    for candidate in _FALLBACK_TOOLS[tool_key]:
        if _which(candidate):
            version = _run_version_cmd([candidate, "--version"], version_regex)
            return ToolInfo(name=candidate, available=True, version=version)

    return ToolInfo(name=_FALLBACK_TOOLS[tool_key][0], available=False, version=None)


def install_hint(system: str | None = None) -> str:
    """Return the gifsicle install instruction for *system* (defaults to this host)."""
    if system is None:
        import platform

        system = platform.system()
    return INSTALL_HINTS.get(system.lower(), INSTALL_HINTS["other"])
