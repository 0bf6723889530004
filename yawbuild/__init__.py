"""
yaw web release pipeline.

Cross-compiles yaw to wasm32-unknown-emscripten, bundles the HTML shell and
images next to the loader and payload, and serves the result locally.

Modules:
    config.py - ReleaseConfig / BuildTarget, release.yaml and env overrides
    flags.py - Typed EMCC_CFLAGS toolchain flag set
    workspace.py - Output directory reset
    compiler.py - cargo/emcc invocation and build artifacts
    bundler.py - Asset copying into the output directory
    server.py - Local static file server (FastAPI + uvicorn)
    pipeline.py - Stage sequencing and state tracking
"""

from .compiler import BuildArtifacts, CrossCompiler, embedded_files
from .config import BuildTarget, ReleaseConfig, load_config
from .errors import (
    CompilationError,
    ConfigurationError,
    FilesystemError,
    PipelineError,
    ServerBindError,
)
from .flags import ImageFormat, ToolchainFlagSet
from .pipeline import PipelineStage, ReleasePipeline, StageResult

__all__ = [
    # Config
    "BuildTarget",
    "ReleaseConfig",
    "load_config",
    "ImageFormat",
    "ToolchainFlagSet",
    # Stages
    "BuildArtifacts",
    "CrossCompiler",
    "embedded_files",
    "PipelineStage",
    "ReleasePipeline",
    "StageResult",
    # Errors
    "PipelineError",
    "ConfigurationError",
    "FilesystemError",
    "CompilationError",
    "ServerBindError",
]
