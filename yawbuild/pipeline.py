"""
Release pipeline: Reset -> Compile -> Bundle -> Serve.

Stages run strictly in order on the calling thread. The first failure moves
the pipeline to FAILED and is re-raised; no later stage runs and nothing is
rolled back, so a failed compile leaves an empty output directory behind.
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .bundler import bundle_assets, check_asset_sources
from .compiler import BuildArtifacts, CrossCompiler, check_embed_sources
from .config import ReleaseConfig
from .errors import PipelineError
from .logging import get_logger
from .server import serve as serve_directory
from .workspace import reset_output_dir

log = get_logger('pipeline')

ServeFn = Callable[[Path, str, int], None]


class PipelineStage(str, Enum):
    """Pipeline state."""
    INIT = "init"
    RESET = "reset"
    COMPILE = "compile"
    BUNDLE = "bundle"
    SERVE = "serve"
    DONE = "done"
    FAILED = "failed"


@dataclass
class StageResult:
    """Outcome of a single stage."""
    stage: PipelineStage
    ok: bool
    elapsed: float
    error: Optional[PipelineError] = None


class ReleasePipeline:
    """
    Runs the release stages for one invocation.

    A pipeline instance is single-use: build a new one to re-run.
    """

    def __init__(
        self,
        config: ReleaseConfig,
        compiler: Optional[CrossCompiler] = None,
        server: Optional[ServeFn] = None,
    ):
        """
        Args:
            config: Release configuration
            compiler: Compile stage implementation (default CrossCompiler(config))
            server: Serve stage callable taking (directory, host, port)
        """
        self.config = config
        self.compiler = compiler if compiler is not None else CrossCompiler(config)
        self.server = server if server is not None else serve_directory

        self.state = PipelineStage.INIT
        self.results: List[StageResult] = []
        self.artifacts: Optional[BuildArtifacts] = None
        self.bundled: List[Path] = []

    @property
    def failed_stage(self) -> Optional[PipelineStage]:
        for result in self.results:
            if not result.ok:
                return result.stage
        return None

    def check_inputs(self) -> None:
        """Validate flags and asset sources before anything is deleted."""
        self.config.flags.check()
        check_asset_sources(self.config)
        check_embed_sources(self.config.embed_paths)

    def _run_stage(self, stage: PipelineStage, action: Callable):
        self.state = stage
        log.info("Stage: %s", stage.value)
        start = time.monotonic()
        try:
            value = action()
        except PipelineError as exc:
            elapsed = time.monotonic() - start
            self.results.append(StageResult(stage, False, elapsed, exc))
            self.state = PipelineStage.FAILED
            log.error("Stage %s failed: %s", stage.value, exc)
            raise
        self.results.append(StageResult(stage, True, time.monotonic() - start))
        return value

    def run(self, serve: bool = True) -> List[StageResult]:
        """
        Run every stage in order.

        Args:
            serve: Run the Serve stage after bundling (blocks until terminated)

        Returns:
            One StageResult per completed stage

        Raises:
            PipelineError: The first stage failure, after recording it
        """
        if self.state != PipelineStage.INIT or self.results:
            raise RuntimeError("ReleasePipeline instances are single-use")

        config = self.config
        self._run_stage(PipelineStage.INIT, self.check_inputs)
        output_dir = self._run_stage(
            PipelineStage.RESET,
            lambda: reset_output_dir(
                config.output_path,
                config.project_root,
                protected=[config.image_path, config.shell_document_path, *config.embed_paths],
            ),
        )
        self.artifacts = self._run_stage(PipelineStage.COMPILE, self.compiler.compile)
        self.bundled = self._run_stage(
            PipelineStage.BUNDLE,
            lambda: bundle_assets(config, self.artifacts),
        )
        print(f"\nBuild complete!\nOutput: {output_dir}")

        if serve:
            self._run_stage(
                PipelineStage.SERVE,
                lambda: self.server(output_dir, config.host, config.port),
            )

        self.state = PipelineStage.DONE
        return self.results
