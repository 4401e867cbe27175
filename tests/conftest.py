import os
from pathlib import Path

import pytest

from giftarget.schema import CompressionRequest
from tests.fakes import FakeBackend, make_gif

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def gif_factory(tmp_path):
    """Build GIFs inside the test's tmp_path: ``gif_factory("a.gif", frames=10)``."""

    def _factory(name: str = "input.gif", **kwargs) -> Path:
        return make_gif(tmp_path / name, **kwargs)

    return _factory


@pytest.fixture
def simple_gif(gif_factory):
    """Four-frame looping GIF with 10 cs delays."""
    return gif_factory("simple_4frame.gif", frames=4)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def make_request(tmp_path):
    """Build a CompressionRequest with sensible test defaults."""

    def _make(input_path: Path, **overrides) -> CompressionRequest:
        values = {
            "input_path": input_path,
            "output_path": tmp_path / "out" / "result.gif",
            "target_size_kb": 500.0,
            "min_frame_percent": 10,
            "threads": 2,
        }
        values.update(overrides)
        return CompressionRequest(**values)

    return _make


@pytest.fixture
def isolated_tempdir(tmp_path, monkeypatch):
    """Point tempfile at an empty directory so leftover temporaries are observable."""
    import tempfile

    scratch = tmp_path / "system_tmp"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


@pytest.fixture(autouse=True)
def _clean_giftarget_env(monkeypatch):
    """Keep host GIFTARGET_* variables from leaking into EngineConfig."""
    for key in list(os.environ):
        if key.startswith("GIFTARGET_"):
            monkeypatch.delenv(key, raising=False)
