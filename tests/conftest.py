from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable, Dict

ROOT = Path(__file__).resolve().parents[1]
for entry in (ROOT, ROOT / "src"):
    if str(entry) not in sys.path:
        sys.path.insert(0, str(entry))


import pytest

from tests.helpers import write_tree


@pytest.fixture
def site(tmp_path: Path) -> Path:
    path = tmp_path / "site"
    path.mkdir()
    return path


@pytest.fixture
def make_site(site: Path) -> Callable[[Dict[str, str]], Path]:
    def _make(files: Dict[str, str]) -> Path:
        return write_tree(site, files)

    return _make
