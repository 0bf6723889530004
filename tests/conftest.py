import base64
import json
import logging
import sys
from pathlib import Path

import pytest

from yawbuild.config import ReleaseConfig
from yawbuild.logging import ROOT_LOGGER


FAKE_CARGO = Path(__file__).resolve().parent / "fake_cargo.py"

LOGO_BYTES = b"\x89PNG\r\n\x1a\nfake-logo"
MAP_FILES = {
    "level1.txt": "##########\n#S.......#\n##########\n",
    "meta.toml": "fog = { dof = 8, color = '#202020' }\n",
    "tiles/brick.txt": "collidable = true\n",
}


def read_payload(payload: Path) -> dict:
    return json.loads(payload.read_text())


def read_embedded(payload: Path) -> dict:
    """Embedded virtual filesystem of a fake payload: {path: bytes}."""
    files = read_payload(payload)["files"]
    return {path: base64.b64decode(data) for path, data in files.items()}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "EMCC_CFLAGS",
        "YAW_RELEASE_PORT",
        "YAW_LOG",
        "FAKE_CARGO_EXIT",
        "FAKE_CARGO_STDERR",
        "FAKE_CARGO_NO_WASM",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def project(tmp_path) -> Path:
    """A yaw checkout: shell document, images and map directory."""
    root = tmp_path / "yaw"
    (root / "src").mkdir(parents=True)
    (root / "src" / "index.html").write_text(
        "<!doctype html><canvas id=canvas></canvas><script src=yaw.js></script>\n"
    )
    (root / "images").mkdir()
    (root / "images" / "logo.png").write_bytes(LOGO_BYTES)
    for rel, content in MAP_FILES.items():
        path = root / "map" / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    (root / "Cargo.toml").write_text('[package]\nname = "yaw"\nversion = "0.1.0"\n')
    return root


@pytest.fixture
def config(project) -> ReleaseConfig:
    return ReleaseConfig(
        project_root=project,
        compiler_command=[sys.executable, str(FAKE_CARGO)],
        host="127.0.0.1",
        port=0,
    )


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(logging.NOTSET)
    root.propagate = True
