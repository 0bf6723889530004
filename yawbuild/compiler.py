"""
Cross-compiler invocation.

Runs ``cargo build --target wasm32-unknown-emscripten --release`` with the
toolchain flag set exported as EMCC_CFLAGS, and returns the two artifacts
emscripten produces: the JS loader and the wasm payload.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from .config import ReleaseConfig
from .errors import CompilationError, FilesystemError
from .flags import FLAGS_ENV_VAR
from .logging import get_logger

log = get_logger('compiler')

# Conventional shell statuses for "command not found" / "not executable"
EXIT_NOT_FOUND = 127
EXIT_NOT_EXECUTABLE = 126


@dataclass(frozen=True)
class BuildArtifacts:
    """The two files a successful compile produces.

    Attributes:
        loader: JS glue that fetches and instantiates the payload
        payload: The compiled wasm binary (with the embedded filesystem)
    """
    loader: Path
    payload: Path

    @property
    def paths(self) -> List[Path]:
        return [self.loader, self.payload]


def embedded_files(directory: Path, mount: Optional[str] = None) -> List[str]:
    """List the virtual filesystem paths an embedded directory will expose.

    ``--embed-file map`` places map/<rel> at the same relative path inside the
    payload, so the mount name defaults to the directory name.
    """
    directory = Path(directory)
    mount = mount if mount is not None else directory.name
    return sorted(
        f"{mount}/{path.relative_to(directory).as_posix()}"
        for path in directory.rglob("*")
        if path.is_file()
    )


def check_embed_sources(paths: List[Path]) -> None:
    """Fail before compiling if an embed directory is missing or empty."""
    for path in paths:
        if not path.is_dir():
            raise FilesystemError(f"Embed directory not found: {path}", path)
        if not embedded_files(path):
            raise FilesystemError(f"Embed directory is empty: {path}", path)


class CrossCompiler:
    """Invokes the native toolchain for the configured target."""

    def __init__(self, config: ReleaseConfig):
        self.config = config

    def find_compiler(self) -> List[str]:
        """Find the compiler command (configured, or cargo on PATH)."""
        if self.config.compiler_command:
            return list(self.config.compiler_command)

        cargo = shutil.which("cargo")
        if cargo:
            return [cargo]

        raise CompilationError(
            "cargo not found. Install a Rust toolchain with the "
            f"{self.config.target.triple} target and an active emsdk.",
            returncode=EXIT_NOT_FOUND,
        )

    def command(self) -> List[str]:
        return self.find_compiler() + ["build"] + self.config.target.cargo_args()

    def environment(self) -> Dict[str, str]:
        """Child process environment with EMCC_CFLAGS set from the flag set."""
        env = dict(os.environ)
        flags = self.config.flags
        if flags.is_default:
            # No flags: emcc runs with toolchain defaults
            env.pop(FLAGS_ENV_VAR, None)
        else:
            env[FLAGS_ENV_VAR] = flags.to_env_value()
        return env

    def expected_artifacts(self) -> BuildArtifacts:
        artifact_dir = self.config.target.artifact_dir(self.config.project_root)
        return BuildArtifacts(
            loader=artifact_dir / self.config.loader_name,
            payload=artifact_dir / self.config.payload_name,
        )

    def compile(self) -> BuildArtifacts:
        """Run the compiler and block until it exits.

        Raises:
            ConfigurationError: If the flag set has incompatible options
            FilesystemError: If an embed directory is missing or empty
            CompilationError: On non-zero exit, or if an artifact is missing
        """
        config = self.config
        config.flags.check()

        embed_paths = config.embed_paths
        check_embed_sources(embed_paths)
        for path in embed_paths:
            files = embedded_files(path)
            log.info("Embedding %d file(s) from %s", len(files), path)
            for name in files:
                log.debug("  embed: %s", name)

        cmd = self.command()
        env = self.environment()
        log.info("Compiling %s for %s", config.project_name, config.target.triple)
        log.debug("%s=%s", FLAGS_ENV_VAR, env.get(FLAGS_ENV_VAR, ""))
        log.debug("Command: %s", " ".join(cmd))

        try:
            result = subprocess.run(
                cmd,
                cwd=config.project_root,
                env=env,
                capture_output=True,
                text=True,
                errors="replace",
            )
        except FileNotFoundError as exc:
            raise CompilationError(
                f"Compiler not found: {cmd[0]}", returncode=EXIT_NOT_FOUND, diagnostics=str(exc)
            ) from exc
        except PermissionError as exc:
            raise CompilationError(
                f"Compiler not executable: {cmd[0]}", returncode=EXIT_NOT_EXECUTABLE, diagnostics=str(exc)
            ) from exc

        diagnostics = (result.stdout or "") + (result.stderr or "")

        if result.returncode != 0:
            raise CompilationError(
                f"Build failed with code {result.returncode}",
                returncode=result.returncode,
                diagnostics=diagnostics,
            )

        for line in diagnostics.splitlines():
            log.debug("  | %s", line)

        artifacts = self.expected_artifacts()
        missing = [p for p in artifacts.paths if not p.is_file()]
        if missing:
            raise CompilationError(
                "Compiler exited successfully but did not produce: "
                + ", ".join(str(p) for p in missing),
                returncode=1,
                diagnostics=diagnostics,
            )

        log.info("Build complete: %s, %s", artifacts.loader.name, artifacts.payload.name)
        return artifacts
