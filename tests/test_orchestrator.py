"""Tests for giftarget.orchestrator module."""

import errno
import os
from unittest.mock import patch

import pytest

from giftarget.config import OptimizationLevel, SearchConfig
from giftarget.error_handling import (
    BackendInvocationError,
    BackendUnavailableError,
    ErrorKind,
    GifIOError,
    InputNotFoundError,
    NotAGifError,
    TempStorageError,
)
from giftarget.meta import inspect_gif
from giftarget.orchestrator import SearchOrchestrator, compress, promote_artifact
from giftarget.planner import min_frames_required

from tests.fakes import FakeBackend


def _run_collecting(orchestrator, request):
    """Run *orchestrator* and return (result, outcomes seen by the progress callback)."""
    seen = []
    result = orchestrator.run(
        request, progress_callback=lambda done, total, outcome: seen.append(outcome)
    )
    return result, seen


@pytest.fixture
def large_gif(gif_factory):
    """20-frame GIF padded to 64 KB so every default target needs compression."""
    return gif_factory("large.gif", frames=20, size=(8, 8), pad_to=64 * 1024)


class TestSearchOrchestratorRun:
    """Tests for SearchOrchestrator.run."""

    def test_largest_result_under_target(self, large_gif, make_request, isolated_tempdir):
        request = make_request(large_gif, target_size_kb=10.0)
        orchestrator = SearchOrchestrator(backend=FakeBackend())

        result, outcomes = _run_collecting(orchestrator, request)

        min_frames = min_frames_required(20, request.min_frame_percent)
        under = [
            o.output_size_kb
            for o in outcomes
            if o.succeeded and o.frames_retained >= min_frames and o.output_size_kb <= 10.0
        ]
        assert result.success is True
        assert result.compressed_size_kb == pytest.approx(max(under))
        assert result.compressed_size_kb <= 10.0
        assert result.frames_retained >= min_frames
        assert result.original_frames == 20
        assert result.original_size_kb == pytest.approx(64.0)
        assert result.trials_run == len(outcomes)
        assert result.trials_failed == 0
        assert set(result.params) == {
            "frame_stride",
            "color_table_size",
            "optimization_level",
            "lossy_level",
        }
        assert "Compressed below" in result.message

    def test_single_output_and_no_temporaries(self, large_gif, make_request, isolated_tempdir):
        request = make_request(large_gif, target_size_kb=10.0)

        result = SearchOrchestrator(backend=FakeBackend()).run(request)

        assert result.output_path == request.output_path
        assert list(request.output_path.parent.iterdir()) == [request.output_path]
        assert list(isolated_tempdir.iterdir()) == []
        assert inspect_gif(request.output_path).size_kb == pytest.approx(
            result.compressed_size_kb
        )

    def test_five_frame_best_effort(self, gif_factory, make_request, isolated_tempdir):
        """Target unreachable: smallest outcome with >= 3 frames, success=False."""
        gif = gif_factory("five.gif", frames=5, pad_to=8192)
        request = make_request(gif, target_size_kb=0.01, min_frame_percent=50)

        result, outcomes = _run_collecting(SearchOrchestrator(backend=FakeBackend()), request)

        viable = [o.output_size_kb for o in outcomes if o.succeeded and o.frames_retained >= 3]
        assert result.success is False
        assert result.error_kind is None
        assert result.frames_retained >= 3
        assert result.compressed_size_kb == pytest.approx(min(viable))
        assert request.output_path.exists()
        assert list(isolated_tempdir.iterdir()) == []
        assert "Could not reach" in result.message

    def test_backend_unavailable(self, large_gif, make_request, isolated_tempdir):
        backend = FakeBackend(available=False)
        request = make_request(large_gif, target_size_kb=10.0)

        with pytest.raises(BackendUnavailableError):
            SearchOrchestrator(backend=backend).run(request)

        assert backend.calls == []
        assert list(isolated_tempdir.iterdir()) == []
        assert not request.output_path.exists()

    def test_backend_unavailable_checked_before_copy(self, gif_factory, make_request):
        """Even a GIF already under the target needs a working backend."""
        gif = gif_factory("small.gif", frames=3)
        request = make_request(gif, target_size_kb=500.0)

        with pytest.raises(BackendUnavailableError):
            SearchOrchestrator(backend=FakeBackend(available=False)).run(request)

    def test_all_trials_failed(self, large_gif, make_request, isolated_tempdir):
        backend = FakeBackend(fail_when=lambda params: True)
        request = make_request(large_gif, target_size_kb=10.0)

        with pytest.raises(BackendInvocationError, match="trials failed"):
            SearchOrchestrator(backend=backend).run(request)

        assert backend.calls
        assert list(isolated_tempdir.iterdir()) == []
        assert not request.output_path.exists()

    def test_partial_failures_counted(self, large_gif, make_request, isolated_tempdir):
        backend = FakeBackend(fail_when=lambda params: params.color_table_size == 32)
        request = make_request(large_gif, target_size_kb=10.0)

        result = SearchOrchestrator(backend=backend).run(request)

        assert result.trials_failed > 0
        assert result.trials_failed < result.trials_run
        assert result.params["color_table_size"] != 32

    def test_missing_input(self, tmp_path, make_request):
        backend = FakeBackend()
        with pytest.raises(InputNotFoundError):
            SearchOrchestrator(backend=backend).run(make_request(tmp_path / "missing.gif"))
        assert backend.calls == []

    def test_not_a_gif(self, tmp_path, make_request):
        bogus = tmp_path / "bogus.gif"
        bogus.write_bytes(b"definitely not a gif")
        backend = FakeBackend()

        with pytest.raises(NotAGifError):
            SearchOrchestrator(backend=backend).run(make_request(bogus))
        assert backend.calls == []

    def test_temp_storage_failure(self, large_gif, make_request):
        request = make_request(large_gif, target_size_kb=10.0)

        with patch(
            "giftarget.orchestrator.tempfile.TemporaryDirectory",
            side_effect=OSError("no space left on device"),
        ):
            with pytest.raises(TempStorageError):
                SearchOrchestrator(backend=FakeBackend()).run(request)

    def test_existing_output_replaced(self, large_gif, make_request):
        request = make_request(large_gif, target_size_kb=10.0)
        request.output_path.parent.mkdir(parents=True)
        request.output_path.write_bytes(b"stale")

        SearchOrchestrator(backend=FakeBackend()).run(request)

        assert inspect_gif(request.output_path).frame_count > 0

    def test_output_directory_rejected(self, large_gif, make_request, isolated_tempdir):
        """A directory output path fails before any trial and is left untouched."""
        request = make_request(large_gif, target_size_kb=10.0)
        request.output_path.mkdir(parents=True)
        backend = FakeBackend()

        with pytest.raises(GifIOError, match="is a directory"):
            SearchOrchestrator(backend=backend).run(request)

        assert backend.calls == []
        assert list(request.output_path.iterdir()) == []
        assert list(isolated_tempdir.iterdir()) == []


class TestCopyUnderTarget:
    """Inputs that already fit the target are copied unchanged."""

    def test_copies_without_trials(self, gif_factory, make_request):
        gif = gif_factory("small.gif", frames=3)
        backend = FakeBackend()
        request = make_request(gif, target_size_kb=500.0)

        result = SearchOrchestrator(backend=backend).run(request)

        assert result.success is True
        assert result.trials_run == 0
        assert result.params is None
        assert backend.calls == []
        assert request.output_path.read_bytes() == gif.read_bytes()
        assert "already within the target" in result.message

    def test_output_same_as_input(self, gif_factory, make_request):
        gif = gif_factory("small.gif", frames=3)
        original = gif.read_bytes()

        result = SearchOrchestrator(backend=FakeBackend()).run(
            make_request(gif, output_path=gif, target_size_kb=500.0)
        )

        assert result.success is True
        assert gif.read_bytes() == original

    def test_disabled_runs_search(self, gif_factory, make_request):
        gif = gif_factory("small.gif", frames=3)
        backend = FakeBackend()
        config = SearchConfig(COPY_IF_UNDER_TARGET=False)

        result = SearchOrchestrator(backend=backend, search_config=config).run(
            make_request(gif, target_size_kb=500.0)
        )

        assert backend.calls
        assert result.trials_run == len(backend.calls)


class TestEarlyExit:
    """Tests for the optional early-exit search."""

    @staticmethod
    def _size_fn(params, frames_kept):
        # First planned candidate lands just under a 10 KB target
        if (
            params.frame_stride == 1
            and params.color_table_size == 256
            and params.optimization_level is OptimizationLevel.LOW
        ):
            return 9_900
        return 5_000

    def test_stops_dispatching(self, large_gif, make_request, isolated_tempdir):
        backend = FakeBackend(size_fn=self._size_fn)
        request = make_request(large_gif, target_size_kb=10.0, threads=1, early_exit=True)

        result = SearchOrchestrator(backend=backend).run(request)

        assert result.success is True
        assert result.trials_run == 1
        assert len(backend.calls) == 1
        assert result.compressed_size_kb == pytest.approx(9_900 / 1024)
        assert list(isolated_tempdir.iterdir()) == []

    def test_disabled_by_default(self, large_gif, make_request):
        backend = FakeBackend(size_fn=self._size_fn)
        request = make_request(large_gif, target_size_kb=10.0, threads=1)

        result = SearchOrchestrator(backend=backend).run(request)

        assert result.trials_run == len(backend.calls) > 1
        assert result.compressed_size_kb == pytest.approx(9_900 / 1024)


class TestPromoteArtifact:
    """Tests for promote_artifact function."""

    def test_rename(self, tmp_path):
        src = tmp_path / "a.gif"
        src.write_bytes(b"GIF89a")
        dst = tmp_path / "nested" / "b.gif"

        promote_artifact(src, dst)

        assert dst.read_bytes() == b"GIF89a"
        assert not src.exists()

    def test_cross_device_fallback(self, tmp_path):
        src = tmp_path / "a.gif"
        src.write_bytes(b"GIF89a")
        dst = tmp_path / "b.gif"

        with patch(
            "giftarget.orchestrator.os.replace",
            side_effect=OSError(errno.EXDEV, "cross-device"),
        ):
            promote_artifact(src, dst)

        assert dst.read_bytes() == b"GIF89a"
        assert not src.exists()

    def test_other_rename_errors_propagate(self, tmp_path):
        src = tmp_path / "a.gif"
        src.write_bytes(b"GIF89a")
        dst = tmp_path / "b.gif"

        with patch(
            "giftarget.orchestrator.os.replace", side_effect=PermissionError(13, "denied")
        ):
            with pytest.raises(PermissionError):
                promote_artifact(src, dst)

        assert src.exists()
        assert not dst.exists()


class TestCompress:
    """Tests for the compress() boundary."""

    def test_success(self, large_gif, make_request):
        result = compress(make_request(large_gif, target_size_kb=10.0), backend=FakeBackend())

        assert result.success is True
        assert result.error_kind is None

    def test_errors_become_results(self, large_gif, make_request):
        result = compress(
            make_request(large_gif, target_size_kb=10.0),
            backend=FakeBackend(available=False),
        )

        assert result.success is False
        assert result.error_kind is ErrorKind.BACKEND_UNAVAILABLE
        assert result.output_path is None
        assert result.message.startswith(
            "Compression failed: gifsicle was not found, please install it first"
        )

    def test_missing_input_result(self, tmp_path, make_request):
        result = compress(make_request(tmp_path / "gone.gif"), backend=FakeBackend())

        assert result.error_kind is ErrorKind.INPUT_NOT_FOUND
        assert not os.path.exists(tmp_path / "out" / "result.gif")

    def test_output_directory_result(self, large_gif, make_request, tmp_path):
        out_dir = tmp_path / "outdir"
        out_dir.mkdir()

        result = compress(
            make_request(large_gif, output_path=out_dir, target_size_kb=10.0),
            backend=FakeBackend(),
        )

        assert result.success is False
        assert result.error_kind is ErrorKind.IO_ERROR
        assert result.output_path is None
        assert list(out_dir.iterdir()) == []

    def test_progress_callback_forwarded(self, large_gif, make_request):
        calls = []
        compress(
            make_request(large_gif, target_size_kb=10.0),
            backend=FakeBackend(),
            progress_callback=lambda done, total, outcome: calls.append(done),
        )
        assert calls
        assert sorted(calls) == list(range(1, len(calls) + 1))
