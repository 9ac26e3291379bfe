from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Tuple

import libcst as cst

from vendorize.exceptions import RewriteFailed
from vendorize.fs import atomic_write_bytes


@dataclass(frozen=True)
class RewriteResult:
    path: Path
    replaced: Tuple[Tuple[str, str], ...] = ()
    warnings: Tuple[str, ...] = ()
    written: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.replaced)


def _dotted(identifier: str) -> str:
    return identifier.strip("/").replace("/", ".")


def _module_expr_to_str(expr: cst.BaseExpression | None) -> str | None:
    if expr is None:
        return None
    if isinstance(expr, cst.Name):
        return expr.value
    if isinstance(expr, cst.Attribute):
        parts = []
        current: cst.BaseExpression | None = expr
        while isinstance(current, cst.Attribute):
            parts.append(current.attr.value)
            current = current.value
        if isinstance(current, cst.Name):
            parts.append(current.value)
            return ".".join(reversed(parts))
    return None


def _module_expr(dotted: str) -> cst.Name | cst.Attribute:
    parts = dotted.split(".")
    expr: cst.Name | cst.Attribute = cst.Name(parts[0])
    for part in parts[1:]:
        expr = cst.Attribute(value=expr, attr=cst.Name(part))
    return expr


class ImportMatcher:
    """Decide the replacement for an absolute import literal.

    A literal belongs to the longest known unit it equals or extends; it is
    rewritten only when that unit is a key of the mapping.
    """

    def __init__(self, mapping: Mapping[str, str], known: Iterable[str] = ()) -> None:
        self.mapping: Dict[str, str] = {_dotted(key): _dotted(value) for key, value in mapping.items()}
        self.known = set(self.mapping) | {_dotted(identifier) for identifier in known}

    def target_for(self, literal: str) -> str | None:
        parts = literal.split(".")
        for depth in range(len(parts), 0, -1):
            candidate = ".".join(parts[:depth])
            if candidate not in self.known:
                continue
            replacement = self.mapping.get(candidate)
            if replacement is None:
                return None
            return ".".join([replacement, *parts[depth:]])
        return None


class _ImportRewriter(cst.CSTTransformer):
    def __init__(self, matcher: ImportMatcher) -> None:
        self.matcher = matcher
        self.replaced: List[Tuple[str, str]] = []
        self.warnings: List[str] = []

    def leave_Import(self, original_node: cst.Import, updated_node: cst.Import) -> cst.Import:
        names: List[cst.ImportAlias] = []
        for alias in updated_node.names:
            literal = _module_expr_to_str(alias.name)
            target = self.matcher.target_for(literal) if literal else None
            if literal is None or target is None:
                names.append(alias)
                continue
            if alias.asname is None:
                if "." in literal:
                    self.warnings.append(
                        f"import {literal}: unaliased dotted import left unchanged"
                    )
                    names.append(alias)
                    continue
                # keep the bound name
                alias = alias.with_changes(
                    name=_module_expr(target), asname=cst.AsName(name=cst.Name(literal))
                )
            else:
                alias = alias.with_changes(name=_module_expr(target))
            self.replaced.append((literal, target))
            names.append(alias)
        return updated_node.with_changes(names=names)

    def leave_ImportFrom(
        self, original_node: cst.ImportFrom, updated_node: cst.ImportFrom
    ) -> cst.ImportFrom:
        if updated_node.relative:
            return updated_node
        literal = _module_expr_to_str(updated_node.module)
        if literal is None:
            return updated_node
        target = self.matcher.target_for(literal)
        if target is None:
            return updated_node
        self.replaced.append((literal, target))
        return updated_node.with_changes(module=_module_expr(target))


def rewrite_source(
    source: bytes, mapping: Mapping[str, str], *, known: Iterable[str] = ()
) -> Tuple[bytes, List[Tuple[str, str]], List[str]]:
    module = cst.parse_module(source)
    transformer = _ImportRewriter(ImportMatcher(mapping, known))
    updated = module.visit(transformer)
    if not transformer.replaced:
        return source, [], transformer.warnings
    return updated.bytes, transformer.replaced, transformer.warnings


def rewrite_imports(
    path: Path,
    mapping: Mapping[str, str],
    *,
    source_path: Path | None = None,
    known: Iterable[str] = (),
    dry_run: bool = False,
) -> RewriteResult:
    """Rewrite the import literals of ``path`` found in ``mapping``.

    The imports are read from ``source_path`` when given (the unit's original
    file) and the result lands in ``path``. Files without a matching import
    are never written.
    """
    origin = source_path if source_path is not None else path
    try:
        source = origin.read_bytes()
    except OSError as exc:
        raise RewriteFailed(str(path), "read failed", cause=exc) from exc
    try:
        code, replaced, warnings = rewrite_source(source, mapping, known=known)
    except cst.ParserSyntaxError as exc:
        raise RewriteFailed(str(path), "parse failed", cause=exc) from exc
    result = RewriteResult(path=path, replaced=tuple(replaced), warnings=tuple(warnings))
    if not replaced or dry_run:
        return result
    try:
        atomic_write_bytes(path, code)
    except OSError as exc:
        raise RewriteFailed(str(path), "write failed", cause=exc) from exc
    return RewriteResult(
        path=path, replaced=result.replaced, warnings=result.warnings, written=True
    )
