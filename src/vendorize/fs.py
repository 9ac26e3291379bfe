from __future__ import annotations

import os
import shutil
import stat
import tempfile
from pathlib import Path
from typing import Callable, Collection, List

from vendorize.model import MODULE_SUFFIXES


def _holds_python(directory: Path) -> bool:
    try:
        return any(
            entry.is_file() and entry.name.endswith(MODULE_SUFFIXES)
            for entry in directory.iterdir()
        )
    except OSError:
        return False


def copy_tree(
    dest_dir: Path,
    src_dir: Path,
    *,
    overwrite: bool = False,
    dry_run: bool = False,
    names: Collection[str] | None = None,
    on_copy: Callable[[Path, Path], None] | None = None,
) -> List[Path]:
    """Copy the regular files of ``src_dir`` into ``dest_dir``.

    Sub-directories holding Python sources are packages of their own and are
    skipped; other sub-directories are package data and are copied whole.
    With ``names`` only those files are copied and nothing is recursed into.
    Existing destination files are kept unless ``overwrite``. Returns the
    destination paths that were (or, in a dry run, would be) written.
    """
    if not dry_run:
        dest_dir.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for entry in sorted(src_dir.iterdir(), key=lambda item: item.name):
        target = dest_dir / entry.name
        if entry.is_dir():
            if names is not None or entry.name == "__pycache__" or _holds_python(entry):
                continue
            written.extend(
                copy_tree(target, entry, overwrite=overwrite, dry_run=dry_run, on_copy=on_copy)
            )
            continue
        if not entry.is_file():
            continue
        if names is not None and entry.name not in names:
            continue
        if on_copy is not None:
            on_copy(entry, target)
        if dry_run:
            written.append(target)
            continue
        if target.exists() and not overwrite:
            continue
        shutil.copyfile(entry, target)
        os.chmod(target, stat.S_IMODE(entry.stat().st_mode))
        written.append(target)
    return written


def atomic_write_bytes(path: Path, data: bytes) -> None:
    """Replace ``path`` with ``data`` through a sibling temporary file."""
    mode = stat.S_IMODE(path.stat().st_mode) if path.exists() else None
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        if mode is not None:
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
