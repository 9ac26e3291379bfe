from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Mapping, Set

from vendorize.exceptions import CopyFailed, PreexistingSkipped, RewriteFailed, VendorizeError
from vendorize.fs import copy_tree
from vendorize.model import OutcomeStatus, Unit, VendorEvent
from vendorize.rewrite import RewriteResult, rewrite_imports

logger = logging.getLogger(__name__)


@dataclass
class MaterializeResult:
    status: OutcomeStatus
    destination: Path
    error: VendorizeError | None = None
    events: List[VendorEvent] = field(default_factory=list)


@dataclass
class UnitRewriteReport:
    identifier: str
    results: List[RewriteResult] = field(default_factory=list)
    errors: List[RewriteFailed] = field(default_factory=list)
    events: List[VendorEvent] = field(default_factory=list)


class Materializer:
    """Copies units under the output root and rewrites their imports.

    Each identifier is materialized at most once per instance. In a dry run
    the same decisions are taken and reported but nothing is written.
    """

    def __init__(self, output_root: Path, *, force: bool = False, dry_run: bool = False) -> None:
        self.output_root = Path(output_root)
        self.force = force
        self.dry_run = dry_run
        self._lock = threading.Lock()
        self._materialized: Set[str] = set()

    def destination_path(self, unit: Unit, destination_identifier: str) -> Path:
        base = self.output_root.joinpath(*destination_identifier.split("/"))
        # a top-level module lands beside its siblings as <name>.py
        return base.parent if unit.is_module else base

    def _destination_present(self, unit: Unit, dest_dir: Path) -> bool:
        if unit.files:
            return any((dest_dir / name).exists() for name in unit.files)
        return dest_dir.is_dir() and any(entry.is_file() for entry in dest_dir.iterdir())

    def materialize(self, unit: Unit, destination_identifier: str) -> MaterializeResult:
        dest_dir = self.destination_path(unit, destination_identifier)
        with self._lock:
            if unit.identifier in self._materialized:
                return MaterializeResult(OutcomeStatus.ALREADY_MATERIALIZED, dest_dir)
            self._materialized.add(unit.identifier)
        events: List[VendorEvent] = []
        if not self.force and self._destination_present(unit, dest_dir):
            skipped = PreexistingSkipped(str(dest_dir), identifier=unit.identifier)
            events.append(
                VendorEvent("skip-preexisting", unit.identifier, skipped.message, str(dest_dir))
            )
            return MaterializeResult(OutcomeStatus.PREEXISTING, dest_dir, skipped, events)
        events.append(
            VendorEvent(
                "copy",
                unit.identifier,
                f"Copying contents of {str(unit.directory)!r} to {str(dest_dir)!r}",
                str(dest_dir),
            )
        )

        def _on_copy(src: Path, dest: Path) -> None:
            events.append(
                VendorEvent("copy-file", unit.identifier, f"Copying {str(src)!r} to {str(dest)!r}", str(dest))
            )

        try:
            copy_tree(
                dest_dir,
                unit.directory,
                overwrite=self.force,
                dry_run=self.dry_run,
                names=unit.files if unit.is_module else None,
                on_copy=_on_copy,
            )
        except OSError as exc:
            error = CopyFailed(f"couldn't copy to {str(dest_dir)!r}", identifier=unit.identifier, cause=exc)
            return MaterializeResult(OutcomeStatus.FAILED, dest_dir, error, events)
        return MaterializeResult(OutcomeStatus.COPIED, dest_dir, events=events)

    def rewrite_unit(
        self,
        unit: Unit,
        target_dir: Path,
        mapping: Mapping[str, str],
        *,
        known: Iterable[str] = (),
    ) -> UnitRewriteReport:
        """Rewrite every Python file of ``unit`` found in ``target_dir``.

        Sources are read from the unit's original directory. A failing file is
        reported and the remaining files are still processed.
        """
        report = UnitRewriteReport(identifier=unit.identifier)
        if not mapping:
            return report
        known = frozenset(known)
        for name in unit.files:
            if not name.endswith(".py"):
                continue
            target = target_dir / name
            try:
                result = rewrite_imports(
                    target,
                    mapping,
                    source_path=unit.directory / name,
                    known=known,
                    dry_run=self.dry_run,
                )
            except RewriteFailed as exc:
                exc.identifier = unit.identifier
                report.errors.append(exc)
                report.events.append(VendorEvent("error", unit.identifier, str(exc), str(target)))
                continue
            report.results.append(result)
            for warning in result.warnings:
                report.events.append(VendorEvent("rewrite-warning", unit.identifier, warning, str(target)))
            if result.changed:
                replaced = ", ".join(f"{old} -> {new}" for old, new in result.replaced)
                report.events.append(
                    VendorEvent("rewrite", unit.identifier, f"Rewriting imports in {str(target)!r}: {replaced}", str(target))
                )
            else:
                report.events.append(
                    VendorEvent("rewrite-skip", unit.identifier, f"No matching imports in {str(target)!r}", str(target))
                )
        return report
