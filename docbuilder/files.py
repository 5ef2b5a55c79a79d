"""
Filesystem helpers shared by the tree builder, transformer and assemblers.
"""

import logging
import os
import shutil
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def is_hidden(name: str) -> bool:
    """Names starting with '_' or '.' are never traversed or copied."""
    return name.startswith('_') or name.startswith('.')


def absolute(path: PathLike) -> Path:
    """Absolute, normalized path without resolving symlinks."""
    return Path(os.path.abspath(os.fspath(path)))


def folder_name(directory: PathLike, root: PathLike, homepage_name: str) -> str:
    """Display name of a source directory; the root is shown as the homepage."""
    if absolute(directory) == absolute(root):
        return homepage_name
    return absolute(directory).name


def mirror_path(path: PathLike, root_folder: PathLike, dist_folder: PathLike) -> Optional[Path]:
    """Swap the root-folder prefix of ``path`` for the destination folder.

    Returns None when ``path`` does not live under ``root_folder``.
    """
    try:
        relative = absolute(path).relative_to(absolute(root_folder))
    except ValueError:
        return None
    return absolute(dist_folder) / relative


def relative_url(target: PathLike, base: PathLike) -> str:
    """Forward-slash path of ``target`` relative to the directory ``base``."""
    return Path(os.path.relpath(absolute(target), absolute(base))).as_posix()


def empty_sub_folder(directory: PathLike) -> bool:
    """Remove everything inside ``directory``, creating it if missing.

    Refuses any path that is not strictly below the current working directory.
    """
    resolved = Path(directory).resolve()
    cwd = Path.cwd().resolve()
    if cwd not in resolved.parents:
        logger.warning(f"Refusing to empty non-subdirectory path: {resolved}")
        return False

    try:
        resolved.mkdir(parents=True, exist_ok=True)
        for child in resolved.iterdir():
            if child.is_dir() and not child.is_symlink():
                shutil.rmtree(child)
            else:
                child.unlink()
    except OSError as error:
        logger.error(f"Error emptying directory {resolved}: {error}")
        return False
    return True


def read_text(path: PathLike) -> Optional[str]:
    """File contents as text, or None when the file cannot be read."""
    try:
        return Path(path).read_text(encoding='utf-8')
    except (OSError, UnicodeDecodeError) as error:
        logger.error(f"Error reading file {path}: {error}")
        return None


def write_text(path: PathLike, text: str):
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding='utf-8')


def write_text_if_changed(path: PathLike, text: str) -> bool:
    """Write ``text`` unless the file already holds exactly that text."""
    target = Path(path)
    if target.is_file():
        try:
            if target.read_text(encoding='utf-8') == text:
                return False
        except (OSError, UnicodeDecodeError):
            pass
    write_text(target, text)
    return True
