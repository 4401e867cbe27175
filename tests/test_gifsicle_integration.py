"""End-to-end tests against the real gifsicle binary."""

import pytest

from giftarget.backend import GifsicleBackend
from giftarget.config import OptimizationLevel, SearchConfig
from giftarget.meta import inspect_gif
from giftarget.orchestrator import SearchOrchestrator
from giftarget.planner import ParameterSet
from giftarget.system_tools import discover_tool

pytestmark = [
    pytest.mark.external_tools,
    pytest.mark.skipif(
        not discover_tool("gifsicle").available, reason="gifsicle not installed"
    ),
]


@pytest.fixture
def animated_gif(gif_factory):
    return gif_factory("anim.gif", frames=12, size=(48, 48), duration=80)


class TestGifsicleBackend:
    """Single gifsicle invocations."""

    def test_baseline_keeps_every_frame(self, animated_gif, tmp_path):
        backend = GifsicleBackend()
        output = tmp_path / "baseline.gif"
        metadata = inspect_gif(animated_gif)

        info = backend.run_once(
            animated_gif, output, ParameterSet(1, 256, OptimizationLevel.HIGH), metadata
        )

        assert inspect_gif(output).frame_count == 12
        assert info["engine"] == "gifsicle"

    def test_stride_drops_frames_and_keeps_duration(self, animated_gif, tmp_path):
        backend = GifsicleBackend()
        output = tmp_path / "stride3.gif"
        metadata = inspect_gif(animated_gif)

        backend.run_once(
            animated_gif, output, ParameterSet(3, 32, OptimizationLevel.MEDIUM), metadata
        )

        result = inspect_gif(output)
        assert result.frame_count == 4
        assert result.frame_delays == (24, 24, 24, 24)
        assert result.loop_count == 0


class TestSearchWithGifsicle:
    """Full search with the real backend."""

    def test_compress_to_target(self, gif_factory, make_request, isolated_tempdir):
        gif = gif_factory("search.gif", frames=12, size=(48, 48))
        request = make_request(gif, target_size_kb=500.0, min_frame_percent=50)
        config = SearchConfig(COPY_IF_UNDER_TARGET=False)

        result = SearchOrchestrator(search_config=config).run(request)

        assert result.success is True
        assert result.trials_run > 1
        assert result.compressed_size_kb <= 500.0
        assert result.frames_retained >= 6
        assert inspect_gif(request.output_path).frame_count == result.frames_retained
        assert list(isolated_tempdir.iterdir()) == []
