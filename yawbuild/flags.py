"""
Toolchain flag set for the emscripten cross-compile.

The flag set is carried to emcc through the EMCC_CFLAGS environment variable
as a whitespace-separated token string. ToolchainFlagSet is the typed form of
that string: it is parsed once at startup, validated, and serialised back for
the compiler child process.
"""

import shlex
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .errors import ConfigurationError

FLAGS_ENV_VAR = "EMCC_CFLAGS"

PORT_PREFIX = "--use-port="
GRAPHICS_PORT = "sdl2"
TEXT_RENDERING_PORT = "sdl2_ttf"
IMAGE_DECODING_PORT = "sdl2_image"
PRELOAD_PLUGINS = "--use-preload-plugins"
EMBED_FILE = "--embed-file"
ASYNCIFY = "ASYNCIFY"
ALLOW_MEMORY_GROWTH = "ALLOW_MEMORY_GROWTH"


class ImageFormat(str, Enum):
    """Container formats the sdl2_image port can be restricted to."""
    PNG = "png"
    JPG = "jpg"
    BMP = "bmp"
    GIF = "gif"
    WEBP = "webp"
    QOI = "qoi"
    SVG = "svg"
    TGA = "tga"


class ToolchainFlagSet(BaseModel):
    """Named emcc options, each toggling one capability.

    An empty flag set means "toolchain defaults only". Tokens that are not
    modelled here are kept in ``extra`` and passed through unchanged.
    """
    model_config = ConfigDict(extra='forbid')

    graphics_port: bool = Field(
        default=False,
        description="Link the SDL2 port (window, rendering surface, event loop, input)"
    )
    text_rendering_port: bool = Field(
        default=False,
        description="Link the SDL2_ttf port for on-screen text"
    )
    image_decoding_port: Optional[ImageFormat] = Field(
        default=None,
        description="Link SDL2_image restricted to a single container format"
    )
    preload_plugins: bool = Field(
        default=False,
        description="Package declared preload assets into the virtual filesystem"
    )
    async_control_transfer: bool = Field(
        default=False,
        description="Apply the ASYNCIFY transform so blocking code can yield to the browser"
    )
    dynamic_memory_growth: bool = Field(
        default=False,
        description="Allow linear memory to grow at runtime"
    )
    embed_directories: List[str] = Field(
        default_factory=list,
        description="Source directories copied into the payload's virtual filesystem"
    )
    extra: List[str] = Field(
        default_factory=list,
        description="Unrecognised tokens, passed through verbatim"
    )

    @field_validator('embed_directories')
    @classmethod
    def validate_embed_directories(cls, v):
        cleaned = [d.rstrip('/') or d for d in v]
        if any(not d for d in cleaned):
            raise ValueError("embed directory must not be empty")
        return cleaned

    @classmethod
    def release(cls, map_dir: str = "map") -> 'ToolchainFlagSet':
        """The flag set used for yaw release builds."""
        return cls(
            graphics_port=True,
            text_rendering_port=True,
            image_decoding_port=ImageFormat.PNG,
            preload_plugins=True,
            async_control_transfer=True,
            dynamic_memory_growth=True,
            embed_directories=[map_dir],
        )

    @classmethod
    def parse(cls, value: str) -> 'ToolchainFlagSet':
        """Parse an EMCC_CFLAGS token string.

        Raises:
            ConfigurationError: If a known option is malformed
        """
        try:
            tokens = shlex.split(value)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid {FLAGS_ENV_VAR}: {exc}") from exc
        fields = {
            'embed_directories': [],
            'extra': [],
        }
        i = 0
        while i < len(tokens):
            token = tokens[i]

            if token.startswith(PORT_PREFIX):
                _parse_port(token[len(PORT_PREFIX):], fields)
            elif token == PRELOAD_PLUGINS:
                fields['preload_plugins'] = True
            elif token == EMBED_FILE:
                if i + 1 >= len(tokens):
                    raise ConfigurationError(f"{EMBED_FILE} requires a directory argument")
                fields['embed_directories'].append(tokens[i + 1])
                i += 1
            elif token.startswith(EMBED_FILE + "="):
                fields['embed_directories'].append(token[len(EMBED_FILE) + 1:])
            elif token == "-s" or (token.startswith("-s") and not token.startswith("--")):
                if token == "-s":
                    if i + 1 >= len(tokens):
                        raise ConfigurationError("-s requires a setting argument")
                    setting = tokens[i + 1]
                    consumed = ["-s", setting]
                    i += 1
                else:
                    setting = token[2:]
                    consumed = [token]
                if not _parse_setting(setting, fields):
                    fields['extra'].extend(consumed)
            else:
                fields['extra'].append(token)
            i += 1

        try:
            return cls(**fields)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid {FLAGS_ENV_VAR}: {exc}") from exc

    def to_tokens(self) -> List[str]:
        """Serialise to emcc tokens.

        Preload plugin handling is emitted before any embed directive.
        """
        tokens: List[str] = []
        if self.graphics_port:
            tokens.append(PORT_PREFIX + GRAPHICS_PORT)
        if self.text_rendering_port:
            tokens.append(PORT_PREFIX + TEXT_RENDERING_PORT)
        if self.image_decoding_port is not None:
            tokens.append(
                f"{PORT_PREFIX}{IMAGE_DECODING_PORT}:formats={self.image_decoding_port.value}"
            )
        if self.preload_plugins:
            tokens.append(PRELOAD_PLUGINS)
        if self.async_control_transfer:
            tokens.extend(["-s", ASYNCIFY])
        if self.dynamic_memory_growth:
            tokens.extend(["-s", f"{ALLOW_MEMORY_GROWTH}=1"])
        for directory in self.embed_directories:
            tokens.extend([EMBED_FILE, directory])
        tokens.extend(self.extra)
        return tokens

    def to_env_value(self) -> str:
        """Serialise to the EMCC_CFLAGS string."""
        return " ".join(shlex.quote(t) for t in self.to_tokens())

    @property
    def is_default(self) -> bool:
        """True when no option is set (toolchain defaults only)."""
        return not self.to_tokens()

    def problems(self) -> List[str]:
        """List known-incompatible combinations in this flag set."""
        found = []
        if self.text_rendering_port and not self.graphics_port:
            found.append("text-rendering port requires the graphics port")
        if self.image_decoding_port is not None and not self.graphics_port:
            found.append("image-decoding port requires the graphics port")
        if self.graphics_port and not self.async_control_transfer:
            # SDL's event loop blocks; without ASYNCIFY the browser main thread deadlocks
            found.append("graphics port requires async control transfer (-s ASYNCIFY)")
        seen = set()
        for directory in self.embed_directories:
            if directory in seen:
                found.append(f"embed directory listed twice: {directory}")
            seen.add(directory)
        return found

    def check(self) -> 'ToolchainFlagSet':
        """Raise ConfigurationError if the flag set has incompatible options."""
        found = self.problems()
        if found:
            raise ConfigurationError(
                "Incompatible toolchain flags: " + "; ".join(found)
            )
        return self


def _parse_port(spec: str, fields: dict) -> None:
    name, _, options = spec.partition(":")
    if name == GRAPHICS_PORT:
        fields['graphics_port'] = True
    elif name == TEXT_RENDERING_PORT:
        fields['text_rendering_port'] = True
    elif name == IMAGE_DECODING_PORT:
        fields['image_decoding_port'] = _parse_image_format(options)
    else:
        fields['extra'].append(PORT_PREFIX + spec)


def _parse_image_format(options: str) -> ImageFormat:
    if not options:
        raise ConfigurationError(
            f"{IMAGE_DECODING_PORT} port must be restricted to one format (formats=png)"
        )
    key, _, value = options.partition("=")
    formats = [f for f in value.split(",") if f]
    if key != "formats" or len(formats) != 1:
        raise ConfigurationError(
            f"{IMAGE_DECODING_PORT} port must be restricted to exactly one format, got '{options}'"
        )
    try:
        return ImageFormat(formats[0].lower())
    except ValueError:
        raise ConfigurationError(f"Unsupported image format: {formats[0]}") from None


def _parse_setting(setting: str, fields: dict) -> bool:
    """Apply a -s setting. Returns False for settings that are not modelled."""
    name, _, value = setting.partition("=")
    enabled = value != "0"
    if name == ASYNCIFY:
        fields['async_control_transfer'] = enabled
        return True
    if name == ALLOW_MEMORY_GROWTH:
        fields['dynamic_memory_growth'] = enabled
        return True
    return False
