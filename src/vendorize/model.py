from __future__ import annotations

import importlib.machinery
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Mapping, Set, Tuple

from vendorize.exceptions import PreexistingSkipped, VendorizeError

# Compiler and runtime directives; never resolvable as units.
PSEUDO_IMPORTS = frozenset({"__future__", "__main__"})

# Files that make a directory importable on its own.
MODULE_SUFFIXES: Tuple[str, ...] = (".py", *importlib.machinery.EXTENSION_SUFFIXES)


class ImportRole(str, Enum):
    NORMAL = "normal"
    TEST = "test"
    EXTERNAL_TEST = "external_test"


@dataclass(frozen=True)
class ImportRef:
    identifier: str
    optional: bool = False


@dataclass(frozen=True)
class Unit:
    """One resolved package directory or top-level module.

    ``files`` are names relative to ``directory``. A single-file module keeps
    the search-path entry as its directory and lists only its own file.
    """

    identifier: str
    directory: Path
    files: Tuple[str, ...] = ()
    imports: Mapping[ImportRole, Tuple[ImportRef, ...]] = field(default_factory=dict)
    is_stdlib: bool = False
    is_module: bool = False
    search_root: Path | None = None

    @property
    def dotted(self) -> str:
        return self.identifier.replace("/", ".")

    def all_imports(self) -> Tuple[ImportRef, ...]:
        """Union of every role's imports, pseudo-imports dropped.

        An identifier imported both optionally and unconditionally is
        required.
        """
        merged: Dict[str, bool] = {}
        for role in ImportRole:
            for ref in self.imports.get(role, ()):
                if ref.identifier in PSEUDO_IMPORTS:
                    continue
                merged[ref.identifier] = merged.get(ref.identifier, True) and ref.optional
        return tuple(ImportRef(identifier=key, optional=value) for key, value in merged.items())


class OutcomeStatus(str, Enum):
    COPIED = "copied"
    EXCLUDED = "excluded"
    PREEXISTING = "preexisting"
    ALREADY_MATERIALIZED = "already-materialized"
    STDLIB = "stdlib"
    FAILED = "failed"


@dataclass(frozen=True)
class VendorEvent:
    kind: str
    identifier: str
    detail: str = ""
    path: str = ""


@dataclass
class TraversalOutcome:
    identifier: str
    status: OutcomeStatus
    unit: Unit | None = None
    destination_identifier: str | None = None
    rewrite_dir: Path | None = None
    children: Tuple[str, ...] = ()
    error: VendorizeError | None = None
    events: List[VendorEvent] = field(default_factory=list)

    @property
    def copied(self) -> bool:
        return self.status is OutcomeStatus.COPIED

    @property
    def rewritable(self) -> bool:
        return self.rewrite_dir is not None and self.unit is not None


@dataclass
class RunResult:
    visited: Set[str] = field(default_factory=set)
    rewrites: Dict[str, str] = field(default_factory=dict)
    errors: List[VendorizeError] = field(default_factory=list)
    skipped: List[PreexistingSkipped] = field(default_factory=list)
    events: List[VendorEvent] = field(default_factory=list)
    elapsed: float = 0.0

    @property
    def rewrite_count(self) -> int:
        return len(self.rewrites)

    @property
    def exit_code(self) -> int:
        return 0 if not self.errors else 1
