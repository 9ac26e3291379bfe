"""Traversal of a single unit of the import graph.

The walker never recurses by itself: children are handed to ``issue`` and the
scheduler decides whether they still need a traversal of their own.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from vendorize.cache import ResolverCache
from vendorize.exceptions import ResolutionFailed
from vendorize.materialize import Materializer
from vendorize.model import OutcomeStatus, TraversalOutcome, VendorEvent

logger = logging.getLogger(__name__)

IssueFn = Callable[[Sequence[str]], None]


class DependencyWalker:
    def __init__(
        self,
        cache: ResolverCache,
        materializer: Materializer,
        *,
        root_identifier: str,
        destination_prefix: str,
        exclusions: Sequence[str] = (),
    ) -> None:
        self.cache = cache
        self.materializer = materializer
        self.root_identifier = root_identifier
        self.destination_prefix = destination_prefix
        self.exclusions = tuple(exclusions)

    def destination_identifier(self, identifier: str) -> str:
        return f"{self.destination_prefix}/{identifier}"

    def is_excluded(self, identifier: str) -> bool:
        # plain string prefix, not a path hierarchy test
        return any(identifier.startswith(prefix) for prefix in self.exclusions)

    def traverse(self, identifier: str, *, issue: IssueFn | None = None) -> TraversalOutcome:
        logger.debug("Vendorizing %s", identifier)
        try:
            unit = self.cache.resolve(identifier)
        except ResolutionFailed as exc:
            return TraversalOutcome(identifier, OutcomeStatus.FAILED, error=exc)
        if unit.is_stdlib:
            return TraversalOutcome(identifier, OutcomeStatus.STDLIB, unit=unit)

        events: List[VendorEvent] = []
        children: List[str] = []
        for ref in unit.all_imports():
            try:
                dependency = self.cache.resolve(ref.identifier)
            except ResolutionFailed as exc:
                if ref.optional:
                    events.append(
                        VendorEvent("optional-missing", identifier, f"optional import {ref.identifier}: {exc}")
                    )
                    continue
                return TraversalOutcome(
                    identifier,
                    OutcomeStatus.FAILED,
                    unit=unit,
                    error=ResolutionFailed(
                        f"couldn't import {ref.identifier}", identifier=identifier, cause=exc
                    ),
                    events=events,
                )
            if dependency.is_stdlib:
                continue
            if dependency.identifier in (identifier, self.root_identifier):
                continue
            if dependency.identifier not in children:
                children.append(dependency.identifier)
        if issue is not None and children:
            issue(tuple(children))

        if self.is_excluded(identifier):
            return TraversalOutcome(
                identifier,
                OutcomeStatus.EXCLUDED,
                unit=unit,
                rewrite_dir=unit.directory,
                children=tuple(children),
                events=events,
            )
        destination_identifier = self.destination_identifier(identifier)
        result = self.materializer.materialize(unit, destination_identifier)
        events.extend(result.events)
        if result.status is OutcomeStatus.COPIED:
            return TraversalOutcome(
                identifier,
                OutcomeStatus.COPIED,
                unit=unit,
                destination_identifier=destination_identifier,
                rewrite_dir=result.destination,
                children=tuple(children),
                events=events,
            )
        return TraversalOutcome(
            identifier,
            result.status,
            unit=unit,
            children=tuple(children),
            error=result.error,
            events=events,
        )
