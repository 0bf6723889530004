"""
Asset bundling: assemble the servable web bundle in the output directory.

After a successful compile the output directory gets:
- the HTML shell document
- a recursive copy of the image directory
- the JS loader and wasm payload

The map directory is not copied; it is already embedded in the payload.
"""

import shutil
from pathlib import Path
from typing import List

from .compiler import BuildArtifacts
from .config import ReleaseConfig
from .errors import FilesystemError
from .logging import get_logger

log = get_logger('bundler')


def check_asset_sources(config: ReleaseConfig) -> None:
    """
    Verify the shell document and image directory exist.

    An empty image directory is treated as a broken checkout, not as an
    empty bundle.

    Raises:
        FilesystemError: If a source is missing or the image directory is empty
    """
    document = config.shell_document_path
    if not document.is_file():
        raise FilesystemError(f"Shell document not found: {document}", document)

    images = config.image_path
    if not images.is_dir():
        raise FilesystemError(f"Image directory not found: {images}", images)
    if not any(p.is_file() for p in images.rglob("*")):
        raise FilesystemError(f"Image directory is empty: {images}", images)


def _copy_file(src: Path, dst: Path) -> Path:
    try:
        shutil.copy2(src, dst)
    except OSError as exc:
        raise FilesystemError(f"Cannot copy {src} to {dst}: {exc}", src) from exc
    return dst


def _copy_tree(src: Path, dst: Path) -> List[Path]:
    try:
        shutil.copytree(src, dst)
    except (OSError, shutil.Error) as exc:
        raise FilesystemError(f"Cannot copy {src} to {dst}: {exc}", src) from exc
    return sorted(p for p in dst.rglob("*") if p.is_file())


def bundle_assets(config: ReleaseConfig, artifacts: BuildArtifacts) -> List[Path]:
    """
    Copy the shell document, images and build artifacts into the output directory.

    The output directory is expected to have just been reset, so nothing is
    merged or overwritten.

    Args:
        config: Release configuration
        artifacts: Loader and payload from the compile stage

    Returns:
        Every file written, in copy order

    Raises:
        FilesystemError: If a source is missing or a copy fails
    """
    check_asset_sources(config)
    output_dir = config.output_path
    if not output_dir.is_dir():
        raise FilesystemError(f"Output directory not found: {output_dir}", output_dir)

    written: List[Path] = []

    document = config.shell_document_path
    written.append(_copy_file(document, output_dir / document.name))
    print(f"  Copied: {document.name}")

    images = config.image_path
    written.extend(_copy_tree(images, output_dir / images.name))
    print(f"  Copied: {images.name}/")

    for artifact in artifacts.paths:
        if not artifact.is_file():
            raise FilesystemError(f"Build artifact not found: {artifact}", artifact)
        written.append(_copy_file(artifact, output_dir / artifact.name))
        print(f"  Copied: {artifact.name}")

    log.info("Bundled %d file(s) into %s", len(written), output_dir)
    return written
