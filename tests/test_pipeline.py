import pytest

from conftest import MAP_FILES, read_embedded
from yawbuild.errors import CompilationError, FilesystemError, ServerBindError
from yawbuild.pipeline import PipelineStage, ReleasePipeline


class RecordingServer:
    """Serve stage stand-in that records its call instead of blocking."""

    def __init__(self, error=None):
        self.calls = []
        self.error = error

    def __call__(self, directory, host, port):
        self.calls.append((directory, host, port))
        if self.error is not None:
            raise self.error


def _listing(directory):
    return sorted(p.relative_to(directory).as_posix() for p in directory.rglob("*") if p.is_file())


def test_fresh_checkout_builds_bundles_and_serves(config):
    server = RecordingServer()
    assert not config.output_path.exists()

    results = ReleasePipeline(config, server=server).run()

    out = config.output_path
    assert _listing(out) == ["images/logo.png", "index.html", "yaw.js", "yaw.wasm"]
    assert [r.stage for r in results] == [
        PipelineStage.INIT,
        PipelineStage.RESET,
        PipelineStage.COMPILE,
        PipelineStage.BUNDLE,
        PipelineStage.SERVE,
    ]
    assert all(r.ok for r in results)
    assert server.calls == [(out, "127.0.0.1", 0)]


def test_stale_output_is_discarded(config):
    stale = config.output_path / "images" / "old.png"
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"old")

    ReleasePipeline(config, server=RecordingServer()).run()

    assert not stale.exists()


def test_failed_compile_halts_before_bundle_and_serve(config, monkeypatch):
    monkeypatch.setenv("FAKE_CARGO_EXIT", "1")
    monkeypatch.setenv("FAKE_CARGO_STDERR", "undefined reference")
    server = RecordingServer()
    pipeline = ReleasePipeline(config, server=server)

    with pytest.raises(CompilationError) as info:
        pipeline.run()

    assert info.value.diagnostics == "undefined reference"
    assert info.value.exit_code != 0
    assert pipeline.state == PipelineStage.FAILED
    assert pipeline.failed_stage == PipelineStage.COMPILE
    assert pipeline.results[-1].error is info.value
    assert server.calls == []
    assert config.output_path.is_dir()
    assert list(config.output_path.iterdir()) == []


def test_missing_map_fails_before_output_is_reset(config):
    (config.output_path / "keep.txt").parent.mkdir(parents=True)
    (config.output_path / "keep.txt").write_text("previous build")
    for rel in MAP_FILES:
        (config.project_root / "map" / rel).unlink()

    pipeline = ReleasePipeline(config, server=RecordingServer())
    with pytest.raises(FilesystemError, match="empty"):
        pipeline.run()

    assert pipeline.failed_stage == PipelineStage.INIT
    assert (config.output_path / "keep.txt").exists()


def test_server_bind_failure_is_fatal(config):
    server = RecordingServer(error=ServerBindError("127.0.0.1", 8000, "Address already in use"))
    pipeline = ReleasePipeline(config, server=server)

    with pytest.raises(ServerBindError):
        pipeline.run()

    assert pipeline.failed_stage == PipelineStage.SERVE
    assert len(server.calls) == 1


def test_run_without_serve_stops_after_bundle(config):
    pipeline = ReleasePipeline(config, server=RecordingServer())

    results = pipeline.run(serve=False)

    assert results[-1].stage == PipelineStage.BUNDLE
    assert pipeline.state == PipelineStage.DONE
    assert pipeline.server.calls == []


def test_payload_embeds_every_map_file(config):
    pipeline = ReleasePipeline(config, server=RecordingServer())
    pipeline.run(serve=False)

    embedded = read_embedded(config.output_path / "yaw.wasm")

    for rel, content in MAP_FILES.items():
        assert embedded[f"map/{rel}"] == content.encode()


def test_rerun_is_idempotent_for_static_assets(config):
    ReleasePipeline(config, server=RecordingServer()).run(serve=False)
    first = {p: (config.output_path / p).read_bytes() for p in _listing(config.output_path)}

    ReleasePipeline(config, server=RecordingServer()).run(serve=False)
    second = {p: (config.output_path / p).read_bytes() for p in _listing(config.output_path)}

    assert first.keys() == second.keys()
    assert first["index.html"] == second["index.html"]
    assert first["images/logo.png"] == second["images/logo.png"]
    assert read_embedded(config.output_path / "yaw.wasm") == {
        f"map/{rel}": content.encode() for rel, content in MAP_FILES.items()
    }


def test_pipeline_is_single_use(config):
    pipeline = ReleasePipeline(config, server=RecordingServer())
    pipeline.run(serve=False)

    with pytest.raises(RuntimeError):
        pipeline.run(serve=False)


@pytest.mark.parametrize("output_dir", ["images", "map", "src"])
def test_output_dir_over_a_source_directory_is_refused(config, output_dir):
    config = config.model_copy(update={"output_dir": config.project_root / output_dir})
    before = _listing(config.project_root)
    pipeline = ReleasePipeline(config, server=RecordingServer())

    with pytest.raises(FilesystemError, match="source path"):
        pipeline.run()

    assert pipeline.failed_stage == PipelineStage.RESET
    assert _listing(config.project_root) == before
