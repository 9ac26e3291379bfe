"""Locate Python units on a search path and read their direct imports."""

from __future__ import annotations

import ast
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from vendorize.exceptions import ResolutionFailed
from vendorize.model import MODULE_SUFFIXES, PSEUDO_IMPORTS, ImportRef, ImportRole, Unit

logger = logging.getLogger(__name__)

STDLIB_NAMES = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)

_IMPORT_GUARD_NAMES = frozenset({"ImportError", "ModuleNotFoundError", "Exception", "BaseException"})


class UnitResolver(Protocol):
    def resolve(self, identifier: str) -> Unit: ...


def normalize_identifier(value: str) -> str:
    """Return the slash-separated form of a dotted or slashed module path."""
    text = value.strip().replace("\\", "/").replace(".", "/")
    return "/".join(part for part in text.split("/") if part)


def is_stdlib(identifier: str) -> bool:
    head = normalize_identifier(identifier).split("/", 1)[0]
    return head in STDLIB_NAMES


def role_for_file(name: str) -> ImportRole:
    if name == "conftest.py":
        return ImportRole.EXTERNAL_TEST
    stem = name[:-3] if name.endswith(".py") else name
    if stem.startswith("test_") or stem.endswith("_test"):
        return ImportRole.TEST
    return ImportRole.NORMAL


@dataclass(frozen=True)
class RawImport:
    module: str | None
    level: int = 0
    names: Tuple[str, ...] = ()
    optional: bool = False
    is_from: bool = False


def _handler_catches_import_error(handler: ast.ExceptHandler) -> bool:
    if handler.type is None:
        return True
    candidates: Iterable[ast.expr]
    if isinstance(handler.type, ast.Tuple):
        candidates = handler.type.elts
    else:
        candidates = (handler.type,)
    for candidate in candidates:
        if isinstance(candidate, ast.Name) and candidate.id in _IMPORT_GUARD_NAMES:
            return True
        if isinstance(candidate, ast.Attribute) and candidate.attr in _IMPORT_GUARD_NAMES:
            return True
    return False


def _is_type_checking(test: ast.expr) -> bool:
    if isinstance(test, ast.Name):
        return test.id == "TYPE_CHECKING"
    if isinstance(test, ast.Attribute):
        return test.attr == "TYPE_CHECKING"
    return False


class _ImportCollector(ast.NodeVisitor):
    def __init__(self) -> None:
        self.imports: List[RawImport] = []
        self._optional_depth = 0

    @property
    def _optional(self) -> bool:
        return self._optional_depth > 0

    def _visit_optional(self, nodes: Iterable[ast.AST]) -> None:
        self._optional_depth += 1
        try:
            for node in nodes:
                self.visit(node)
        finally:
            self._optional_depth -= 1

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.imports.append(RawImport(module=alias.name, optional=self._optional))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        names = tuple(alias.name for alias in node.names if alias.name != "*")
        self.imports.append(
            RawImport(
                module=node.module,
                level=node.level or 0,
                names=names,
                optional=self._optional,
                is_from=True,
            )
        )

    def visit_Try(self, node: ast.Try) -> None:
        if any(_handler_catches_import_error(handler) for handler in node.handlers):
            self._visit_optional(node.body)
            self._visit_optional(node.handlers)
            for stmt in (*node.orelse, *node.finalbody):
                self.visit(stmt)
            return
        self.generic_visit(node)

    visit_TryStar = visit_Try

    def visit_If(self, node: ast.If) -> None:
        if _is_type_checking(node.test):
            self._visit_optional(node.body)
            for stmt in node.orelse:
                self.visit(stmt)
            return
        self.generic_visit(node)


def collect_imports(source: str | bytes, *, filename: str = "<unknown>") -> List[RawImport]:
    tree = ast.parse(source, filename=filename)
    collector = _ImportCollector()
    collector.visit(tree)
    return collector.imports


class ModuleResolver:
    """Resolve identifiers against an ordered list of search-path directories."""

    def __init__(self, search_path: Sequence[Path | str]) -> None:
        self.search_path: Tuple[Path, ...] = tuple(Path(entry).resolve() for entry in search_path)

    def _module_file(self, root: Path, name: str) -> str | None:
        for suffix in MODULE_SUFFIXES:
            candidate = root / f"{name}{suffix}"
            if candidate.is_file():
                return candidate.name
        return None

    def root_for(self, head: str) -> Path | None:
        for root in self.search_path:
            if (root / head).is_dir() or self._module_file(root, head) is not None:
                return root
        return None

    def _is_package_dir(self, parts: Sequence[str]) -> bool:
        # namespace packages may be split over several entries
        return any(root.joinpath(*parts).is_dir() for root in self.search_path)

    def _locate(self, parts: Sequence[str]) -> Tuple[Path, Path, bool] | None:
        """Return ``(search_root, directory, is_module)`` for a unit, first entry wins."""
        for root in self.search_path:
            directory = root.joinpath(*parts)
            if directory.is_dir():
                return root, directory, False
            if len(parts) == 1 and self._module_file(root, parts[0]) is not None:
                return root, root, True
        return None

    def identifier_for_import(self, module: str) -> str:
        """Map an absolute dotted module name to the identifier of its unit.

        ``a.b.c`` belongs to unit ``a/b/c`` when that is a directory in any
        search-path entry, otherwise to the deepest directory holding it.
        Unlocatable names map to their slash form so that resolving them
        reports the failure.
        """
        parts = [part for part in module.split(".") if part]
        fallback = "/".join(parts)
        if not parts or is_stdlib(fallback) or self.root_for(parts[0]) is None:
            return fallback
        for depth in range(len(parts), 0, -1):
            if self._is_package_dir(parts[:depth]):
                return "/".join(parts[:depth])
        return parts[0]

    def resolve(self, identifier: str) -> Unit:
        ident = normalize_identifier(identifier)
        if not ident:
            raise ResolutionFailed("empty import path", identifier=identifier)
        if is_stdlib(ident):
            return Unit(identifier=ident, directory=Path(), is_stdlib=True)
        parts = ident.split("/")
        if self.root_for(parts[0]) is None:
            raise ResolutionFailed("cannot find package in search path", identifier=ident)
        located = self._locate(parts)
        if located is None:
            raise ResolutionFailed(
                f"cannot find package directory {'/'.join(parts)}", identifier=ident
            )
        root, directory, is_module = located
        if is_module:
            files: Tuple[str, ...] = (self._module_file(root, ident),)
        else:
            files = tuple(
                sorted(
                    entry.name
                    for entry in directory.iterdir()
                    if entry.is_file() and entry.name.endswith(MODULE_SUFFIXES)
                )
            )
        imports = self._collect_unit_imports(ident, directory, files, is_module=is_module)
        return Unit(
            identifier=ident,
            directory=directory,
            files=files,
            imports=imports,
            is_module=is_module,
            search_root=root,
        )

    def _collect_unit_imports(
        self,
        ident: str,
        directory: Path,
        files: Sequence[str],
        *,
        is_module: bool,
    ) -> Dict[ImportRole, Tuple[ImportRef, ...]]:
        buckets: Dict[ImportRole, Dict[str, bool]] = {role: {} for role in ImportRole}
        package_parts = [] if is_module else ident.split("/")
        sources = [name for name in files if name.endswith(".py")]
        parsed = 0
        first_error: BaseException | None = None
        for name in sources:
            path = directory / name
            try:
                raw_imports = collect_imports(path.read_bytes(), filename=str(path))
            except (OSError, SyntaxError, ValueError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                first_error = first_error or exc
                continue
            parsed += 1
            bucket = buckets[role_for_file(name)]
            for raw in raw_imports:
                for target in self._targets(raw, package_parts):
                    bucket[target] = bucket.get(target, True) and raw.optional
        if sources and not parsed:
            raise ResolutionFailed(
                "no parsable Python source files", identifier=ident, cause=first_error
            )
        return {
            role: tuple(ImportRef(identifier=key, optional=value) for key, value in bucket.items())
            for role, bucket in buckets.items()
            if bucket
        }

    def _targets(self, raw: RawImport, package_parts: Sequence[str]) -> List[str]:
        if raw.level:
            if not package_parts or raw.level > len(package_parts):
                return []
            module_parts = list(package_parts[: len(package_parts) - raw.level + 1])
            if raw.module:
                module_parts.extend(raw.module.split("."))
        elif raw.module:
            module_parts = raw.module.split(".")
        else:
            return []
        if module_parts[0] in PSEUDO_IMPORTS:
            return [module_parts[0]]
        module = ".".join(module_parts)
        targets = [self.identifier_for_import(module)]
        if raw.is_from and not is_stdlib(module):
            for name in raw.names:
                if self._is_package_dir([*module_parts, name]):
                    targets.append("/".join([*module_parts, name]))
        return targets
