"""
Workspace reset: guarantee a clean, empty output directory.
"""

import shutil
from pathlib import Path
from typing import Iterable, Optional

from .errors import FilesystemError
from .logging import get_logger

log = get_logger('workspace')


def _overlaps(target: Path, source: Path) -> bool:
    return target == source or target in source.parents or source in target.parents


def reset_output_dir(
    output_dir: Path,
    project_root: Optional[Path] = None,
    protected: Iterable[Path] = (),
) -> Path:
    """
    Recursively remove output_dir and recreate it empty.

    A missing output_dir is fine (nothing to remove). Whatever occupies the
    path, directory, file or symlink, is deleted irreversibly.

    Args:
        output_dir: Directory to reset
        project_root: If given, refuse to reset this directory or an ancestor of it
        protected: Source paths (assets, embed directories) the output must not
            be, contain or sit inside

    Returns:
        The (absolute) reset directory

    Raises:
        FilesystemError: If removal or creation fails, or the path is unsafe to delete
    """
    output_dir = Path(output_dir).absolute()
    target = output_dir.resolve()

    if project_root is not None:
        root = Path(project_root).resolve()
        if target == root or target in root.parents:
            raise FilesystemError(
                f"Refusing to reset {output_dir}: it contains the project root",
                output_dir,
            )

    for source in protected:
        if _overlaps(target, Path(source).resolve()):
            raise FilesystemError(
                f"Refusing to reset {output_dir}: it overlaps source path {source}",
                output_dir,
            )

    try:
        if output_dir.is_symlink() or output_dir.is_file():
            output_dir.unlink()
        elif output_dir.exists():
            log.debug("Removing %s", output_dir)
            shutil.rmtree(output_dir)
    except OSError as exc:
        raise FilesystemError(f"Cannot remove {output_dir}: {exc}", output_dir) from exc

    try:
        output_dir.mkdir(parents=True)
    except OSError as exc:
        raise FilesystemError(f"Cannot create {output_dir}: {exc}", output_dir) from exc

    log.info("Reset output directory %s", output_dir)
    return output_dir
