"""
Release configuration.

Defaults reproduce the fixed yaw web release: compile for
wasm32-unknown-emscripten, bundle src/index.html and images/ into dist/,
embed map/ into the payload and serve dist/ on port 8000.

Overrides are read once at startup from an optional release.yaml (or
release.json) at the project root, then from the environment:

    EMCC_CFLAGS       full toolchain flag set (replaces the built-in one)
    YAW_RELEASE_PORT  local server port
"""

import os
from pathlib import Path
from typing import List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from . import yaml
from .errors import ConfigurationError
from .flags import FLAGS_ENV_VAR, ToolchainFlagSet
from .logging import get_logger

log = get_logger('config')

CONFIG_FILENAMES = ("release.yaml", "release.yml", "release.json")
PORT_ENV_VAR = "YAW_RELEASE_PORT"


class BuildTarget(BaseModel):
    """Compilation destination: target triple plus cargo profile."""
    model_config = ConfigDict(frozen=True, extra='forbid')

    triple: str = "wasm32-unknown-emscripten"
    profile: str = "release"

    @field_validator('triple')
    @classmethod
    def validate_triple(cls, v):
        parts = v.split('-')
        if len(parts) < 3 or not all(parts):
            raise ValueError(f"target triple must look like arch-vendor-os, got '{v}'")
        return v

    @property
    def arch(self) -> str:
        return self.triple.split('-')[0]

    @property
    def os(self) -> str:
        return self.triple.split('-')[2]

    def cargo_args(self) -> List[str]:
        args = ["--target", self.triple]
        if self.profile == "release":
            args.append("--release")
        elif self.profile != "dev":
            args.extend(["--profile", self.profile])
        return args

    def artifact_dir(self, project_root: Path) -> Path:
        """Directory cargo writes this target's artifacts to."""
        # cargo names the dev profile's output directory "debug"
        profile_dir = "debug" if self.profile == "dev" else self.profile
        return project_root / "target" / self.triple / profile_dir


class ReleaseConfig(BaseModel):
    """Everything the pipeline needs, resolved once at startup.

    Paths other than project_root are relative to project_root.
    """
    model_config = ConfigDict(extra='forbid')

    project_root: Path
    project_name: str = Field(default="yaw", min_length=1)
    target: BuildTarget = Field(default_factory=BuildTarget)

    output_dir: Path = Path("dist")
    shell_document: Path = Path("src/index.html")
    image_dir: Path = Path("images")
    map_dir: Path = Path("map")

    compiler_command: Optional[List[str]] = Field(
        default=None,
        description="Compiler executable and leading args; cargo on PATH when unset"
    )
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=0, le=65535)

    flags: Optional[ToolchainFlagSet] = None

    @field_validator('flags', mode='before')
    @classmethod
    def parse_flag_string(cls, v):
        if isinstance(v, str):
            return ToolchainFlagSet.parse(v)
        return v

    @field_validator('compiler_command')
    @classmethod
    def validate_compiler_command(cls, v):
        if v is not None and not v:
            raise ValueError("compiler_command must not be empty")
        return v

    @model_validator(mode='after')
    def default_flags(self):
        if self.flags is None:
            self.flags = ToolchainFlagSet.release(self.map_dir.as_posix())
        return self

    def resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.project_root / path

    @property
    def output_path(self) -> Path:
        return self.resolve(self.output_dir)

    @property
    def shell_document_path(self) -> Path:
        return self.resolve(self.shell_document)

    @property
    def image_path(self) -> Path:
        return self.resolve(self.image_dir)

    @property
    def embed_paths(self) -> List[Path]:
        return [self.resolve(Path(d)) for d in self.flags.embed_directories]

    @property
    def loader_name(self) -> str:
        return f"{self.project_name}.js"

    @property
    def payload_name(self) -> str:
        return f"{self.project_name}.wasm"


def find_config_file(project_root: Path) -> Optional[Path]:
    for name in CONFIG_FILENAMES:
        candidate = project_root / name
        if candidate.is_file():
            return candidate
    return None


def load_config(
    project_root: Path,
    environ: Optional[Mapping[str, str]] = None,
) -> ReleaseConfig:
    """Build the release config for a project.

    Args:
        project_root: Directory holding Cargo.toml and the asset directories
        environ: Environment to read overrides from (default os.environ)

    Raises:
        ConfigurationError: If the config file, an override or the flag set is invalid
    """
    if environ is None:
        environ = os.environ
    project_root = Path(project_root).resolve()

    data = {}
    config_file = find_config_file(project_root)
    if config_file is not None:
        log.info("Loading release config from %s", config_file)
        try:
            loaded = yaml.load(config_file)
        except (yaml.YAMLError, ValueError, OSError) as exc:
            raise ConfigurationError(f"Cannot load {config_file}: {exc}") from exc
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{config_file} must contain a mapping")
        data.update(loaded)

    data['project_root'] = project_root

    port = environ.get(PORT_ENV_VAR)
    if port is not None:
        data['port'] = port

    if FLAGS_ENV_VAR in environ:
        log.info("Using toolchain flags from %s", FLAGS_ENV_VAR)
        data['flags'] = ToolchainFlagSet.parse(environ[FLAGS_ENV_VAR])

    try:
        config = ReleaseConfig(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid release config: {exc}") from exc

    config.flags.check()
    log.debug("Effective config:\n%s", yaml.dumps(config.model_dump(mode='json')))
    return config
