from __future__ import annotations

import importlib.machinery
import os
import stat
from pathlib import Path

from tests.helpers import snapshot, write_tree
from vendorize.fs import atomic_write_bytes, copy_tree


def _source(tmp_path: Path) -> Path:
    return write_tree(
        tmp_path / "src" / "pkg",
        {
            "__init__.py": "value = 1\n",
            "core.py": "import dep\n",
            "data/schema.json": "{}\n",
            "data/nested/table.csv": "a,b\n",
            "sub/__init__.py": "",
            "__pycache__/core.cpython-311.pyc": "junk",
        },
    )


def test_copy_tree_skips_subpackages_and_keeps_package_data(tmp_path: Path) -> None:
    src = _source(tmp_path)
    dest = tmp_path / "out" / "pkg"
    written = copy_tree(dest, src)
    assert sorted(snapshot(dest)) == [
        "__init__.py",
        "core.py",
        os.path.join("data", "nested", "table.csv"),
        os.path.join("data", "schema.json"),
    ]
    assert dest / "core.py" in written


def test_copy_tree_keeps_existing_files_unless_overwrite(tmp_path: Path) -> None:
    src = _source(tmp_path)
    dest = tmp_path / "out" / "pkg"
    dest.mkdir(parents=True)
    (dest / "core.py").write_text("local edit\n", encoding="utf-8")
    copy_tree(dest, src)
    assert (dest / "core.py").read_text(encoding="utf-8") == "local edit\n"
    copy_tree(dest, src, overwrite=True)
    assert (dest / "core.py").read_text(encoding="utf-8") == "import dep\n"


def test_copy_tree_dry_run_reports_without_writing(tmp_path: Path) -> None:
    src = _source(tmp_path)
    dest = tmp_path / "out" / "pkg"
    seen = []
    written = copy_tree(dest, src, dry_run=True, on_copy=lambda a, b: seen.append(b))
    assert not dest.exists()
    assert dest / "__init__.py" in written
    assert seen == written


def test_copy_tree_names_limits_the_copy(tmp_path: Path) -> None:
    root = write_tree(tmp_path / "site", {"six.py": "", "other.py": "", "pkg/__init__.py": ""})
    dest = tmp_path / "out"
    copy_tree(dest, root, names=("six.py",))
    assert sorted(snapshot(dest)) == ["six.py"]


def test_copy_tree_preserves_permission_bits(tmp_path: Path) -> None:
    src = write_tree(tmp_path / "src", {"run.py": "print('hi')\n"})
    os.chmod(src / "run.py", 0o750)
    dest = tmp_path / "dest"
    copy_tree(dest, src)
    assert stat.S_IMODE((dest / "run.py").stat().st_mode) == 0o750


def test_atomic_write_replaces_content_and_mode(tmp_path: Path) -> None:
    target = tmp_path / "module.py"
    target.write_text("old\n", encoding="utf-8")
    os.chmod(target, 0o640)
    atomic_write_bytes(target, b"new\n")
    assert target.read_bytes() == b"new\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o640
    assert sorted(path.name for path in tmp_path.iterdir()) == ["module.py"]


def test_copy_tree_skips_extension_only_subpackages(tmp_path: Path) -> None:
    ext = importlib.machinery.EXTENSION_SUFFIXES[0]
    src = write_tree(
        tmp_path / "src" / "alpha",
        {
            "__init__.py": "from ._speedups import fast\n",
            f"_speedups/__init__{ext}": "binary",
            "assets/logo.txt": "logo\n",
        },
    )
    dest = tmp_path / "out" / "alpha"
    copy_tree(dest, src)
    assert sorted(snapshot(dest)) == ["__init__.py", os.path.join("assets", "logo.txt")]
