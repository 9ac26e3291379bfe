from __future__ import annotations

from pathlib import Path
from typing import Sequence

from vendorize.cache import ResolverCache
from vendorize.config import default_jobs, default_search_path
from vendorize.exceptions import ConfigurationError, ResolutionFailed
from vendorize.materialize import Materializer
from vendorize.model import RunResult
from vendorize.resolver import ModuleResolver, UnitResolver, is_stdlib, normalize_identifier
from vendorize.scheduler import EventSink, TraversalScheduler, log_event
from vendorize.walker import DependencyWalker


def run_vendorize(
    root_identifier: str,
    destination_prefix: str,
    exclusion_prefixes: Sequence[str] = (),
    force: bool = False,
    update_imports: bool = False,
    dry_run: bool = False,
    *,
    search_path: Sequence[Path | str] | None = None,
    output_root: Path | None = None,
    jobs: int | None = None,
    on_event: EventSink | None = log_event,
    resolver: UnitResolver | None = None,
) -> RunResult:
    """Copy the external import closure of ``root_identifier`` below ``destination_prefix``.

    Raises ConfigurationError before any traversal starts when the arguments
    are empty or the root cannot be vendorized. Every other failure is
    collected into ``RunResult.errors``.
    """
    root = normalize_identifier(root_identifier or "")
    if not root:
        raise ConfigurationError("Package name required")
    destination = normalize_identifier(destination_prefix or "")
    if not destination:
        raise ConfigurationError("Destination path required")
    if is_stdlib(root):
        raise ConfigurationError(
            "Can't vendorize packages from the standard library", identifier=root
        )

    if resolver is None:
        paths = list(search_path) if search_path else default_search_path()
        resolver = ModuleResolver(paths)
    cache = ResolverCache(resolver)
    try:
        root_unit = cache.resolve(root)
    except ResolutionFailed as exc:
        raise ConfigurationError("Couldn't import root", identifier=root, cause=exc) from exc
    if root_unit.is_stdlib:
        raise ConfigurationError(
            "Can't vendorize packages from the standard library", identifier=root
        )
    if output_root is None:
        if root_unit.search_root is None:
            raise ConfigurationError("Output root required", identifier=root)
        output_root = root_unit.search_root

    # prefixes keep trailing slashes; "a/" must not match "ab"
    exclusions = [
        prefix.strip().replace(".", "/") for prefix in exclusion_prefixes if prefix.strip()
    ]
    exclusions.extend([root, destination])
    materializer = Materializer(Path(output_root), force=force, dry_run=dry_run)
    walker = DependencyWalker(
        cache,
        materializer,
        root_identifier=root,
        destination_prefix=destination,
        exclusions=exclusions,
    )
    scheduler = TraversalScheduler(
        walker,
        materializer,
        jobs=jobs if jobs is not None else default_jobs(),
        update_imports=update_imports,
        on_event=on_event,
    )
    return scheduler.run(root)
