from __future__ import annotations

import os
import stat
import textwrap
from pathlib import Path

import libcst as cst
import pytest

from vendorize import rewrite as rewrite_module
from vendorize.exceptions import RewriteFailed
from vendorize.rewrite import ImportMatcher, rewrite_imports, rewrite_source

MAPPING = {"bravo": "app/_vendor/bravo", "charlie/util": "app/_vendor/charlie/util"}


def _rewrite(text: str, mapping=MAPPING, known=()) -> tuple[str, list, list]:
    code, replaced, warnings = rewrite_source(
        textwrap.dedent(text).lstrip("\n").encode("utf-8"), mapping, known=known
    )
    return code.decode("utf-8"), replaced, warnings


def test_module_expr_round_trip() -> None:
    expr = rewrite_module._module_expr("app._vendor.bravo")
    assert rewrite_module._module_expr_to_str(expr) == "app._vendor.bravo"
    assert rewrite_module._module_expr_to_str(cst.Name("x")) == "x"
    assert rewrite_module._module_expr_to_str(None) is None


def test_matcher_prefers_the_longest_known_unit() -> None:
    matcher = ImportMatcher({"bravo": "v/bravo"}, known=["bravo/inner"])
    assert matcher.target_for("bravo") == "v.bravo"
    assert matcher.target_for("bravo.helpers") == "v.bravo.helpers"
    assert matcher.target_for("bravo.inner") is None
    assert matcher.target_for("bravo.inner.deep") is None
    assert matcher.target_for("bravissimo") is None


def test_from_imports_are_rewritten_in_place() -> None:
    code, replaced, _ = _rewrite(
        """
        from bravo import client  # keep me
        from bravo.models import (
            Thing,
            Other,
        )
        from charlie.util import helper
        from charlie import elsewhere
        """
    )
    assert code == textwrap.dedent(
        """\
        from app._vendor.bravo import client  # keep me
        from app._vendor.bravo.models import (
            Thing,
            Other,
        )
        from app._vendor.charlie.util import helper
        from charlie import elsewhere
        """
    )
    assert ("bravo.models", "app._vendor.bravo.models") in replaced
    assert len(replaced) == 3


def test_plain_imports_keep_their_bound_names() -> None:
    code, replaced, warnings = _rewrite(
        """
        import bravo
        import bravo as b, os
        import charlie.util as util
        import charlie.util
        """
    )
    assert code.splitlines() == [
        "import app._vendor.bravo as bravo",
        "import app._vendor.bravo as b, os",
        "import app._vendor.charlie.util as util",
        "import charlie.util",
    ]
    assert len(replaced) == 3
    assert warnings == ["import charlie.util: unaliased dotted import left unchanged"]


def test_relative_and_unmapped_imports_are_untouched() -> None:
    source = """
    from . import bravo
    from .bravo import thing
    import delta
    def lazy():
        import bravo
        return bravo
    """
    code, replaced, _ = _rewrite(source)
    assert replaced == [("bravo", "app._vendor.bravo")]
    assert "from . import bravo" in code
    assert "from .bravo import thing" in code
    assert "import delta\n" in code
    assert "    import app._vendor.bravo as bravo" in code


def test_source_without_matches_is_returned_unchanged() -> None:
    source = b"# -*- coding: utf-8 -*-\nimport delta\n\n\nx  =  1\n"
    code, replaced, _ = rewrite_source(source, MAPPING)
    assert code is source
    assert replaced == []


def test_rewrite_imports_writes_atomically_and_keeps_mode(tmp_path: Path) -> None:
    target = tmp_path / "mod.py"
    target.write_text("import bravo\n", encoding="utf-8")
    os.chmod(target, 0o751)
    result = rewrite_imports(target, MAPPING)
    assert result.written and result.changed
    assert target.read_text(encoding="utf-8") == "import app._vendor.bravo as bravo\n"
    assert stat.S_IMODE(target.stat().st_mode) == 0o751
    assert [path.name for path in tmp_path.iterdir()] == ["mod.py"]


def test_rewrite_imports_without_match_does_not_touch_the_file(tmp_path: Path) -> None:
    target = tmp_path / "mod.py"
    target.write_text("import delta\n", encoding="utf-8")
    os.utime(target, (1_000_000, 1_000_000))
    result = rewrite_imports(target, MAPPING)
    assert not result.written
    assert not result.changed
    assert target.stat().st_mtime == 1_000_000


def test_rewrite_imports_reads_from_the_source_path(tmp_path: Path) -> None:
    original = tmp_path / "orig.py"
    original.write_text("from bravo import x\n", encoding="utf-8")
    copy = tmp_path / "copy.py"
    copy.write_text("stale\n", encoding="utf-8")
    rewrite_imports(copy, MAPPING, source_path=original)
    assert copy.read_text(encoding="utf-8") == "from app._vendor.bravo import x\n"
    assert original.read_text(encoding="utf-8") == "from bravo import x\n"


def test_rewrite_imports_dry_run_reports_only(tmp_path: Path) -> None:
    target = tmp_path / "mod.py"
    target.write_text("import bravo\n", encoding="utf-8")
    result = rewrite_imports(target, MAPPING, dry_run=True)
    assert result.changed
    assert not result.written
    assert target.read_text(encoding="utf-8") == "import bravo\n"


def test_rewrite_imports_parse_error_leaves_file(tmp_path: Path) -> None:
    target = tmp_path / "bad.py"
    target.write_text("import bravo\ndef (:\n", encoding="utf-8")
    with pytest.raises(RewriteFailed) as exc:
        rewrite_imports(target, MAPPING)
    assert exc.value.path == str(target)
    assert target.read_text(encoding="utf-8") == "import bravo\ndef (:\n"
