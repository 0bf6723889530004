#!/usr/bin/env python3
"""
yaw web release - build and preview the browser bundle

Run from the yaw checkout (the directory holding Cargo.toml). Every run is a
full clean rebuild:

    1. dist/ is deleted and recreated
    2. cargo builds yaw for wasm32-unknown-emscripten, embedding map/
    3. src/index.html, images/, yaw.js and yaw.wasm are copied into dist/
    4. dist/ is served on http://localhost:8000 until Ctrl+C

Usage:
    python yaw_release.py

Environment variables:
    EMCC_CFLAGS       Replace the built-in emscripten flag set
    YAW_RELEASE_PORT  Local server port (default 8000)
    YAW_LOG           Log level: error, warn, info, debug, trace
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from yawbuild.config import load_config
from yawbuild.errors import CompilationError, PipelineError
from yawbuild.logging import configure_logging
from yawbuild.pipeline import ReleasePipeline


def _parse_args(argv: Optional[List[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Build yaw for the browser and serve the bundle locally',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Takes no arguments. Configure through release.yaml in the project root
or the EMCC_CFLAGS, YAW_RELEASE_PORT and YAW_LOG environment variables.
        """
    )
    return parser.parse_args(argv)


def run(argv: Optional[List[str]] = None, project_root: Optional[Path] = None) -> int:
    """Run the pipeline and return the process exit status."""
    _parse_args(argv)
    configure_logging()

    try:
        config = load_config(project_root if project_root is not None else Path.cwd())
        ReleasePipeline(config).run()
    except CompilationError as e:
        print(f"\n{e}", file=sys.stderr)
        if e.diagnostics:
            print(e.diagnostics, file=sys.stderr, end="" if e.diagnostics.endswith("\n") else "\n")
        return e.exit_code
    except PipelineError as e:
        print(f"\n{e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130

    return 0


def main():
    """Main entry point for the release pipeline."""
    sys.exit(run())


if __name__ == '__main__':
    main()
