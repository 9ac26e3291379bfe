from __future__ import annotations

import logging
import queue
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, List, Sequence, Set, Tuple, Union

from vendorize.exceptions import PreexistingSkipped, VendorizeError
from vendorize.materialize import Materializer
from vendorize.model import OutcomeStatus, RunResult, TraversalOutcome, VendorEvent
from vendorize.walker import DependencyWalker

logger = logging.getLogger(__name__)

EventSink = Callable[[VendorEvent], None]

_ISSUE = "issue"
_DONE = "done"
_Message = Tuple[str, Union[Tuple[str, ...], TraversalOutcome]]

_EVENT_LEVELS = {
    "copy": logging.INFO,
    "rewrite": logging.INFO,
    "skip-preexisting": logging.INFO,
    "visited": logging.INFO,
    "rewrite-warning": logging.WARNING,
    "optional-missing": logging.DEBUG,
    "error": logging.WARNING,
}


def log_event(event: VendorEvent) -> None:
    logger.log(
        _EVENT_LEVELS.get(event.kind, logging.DEBUG),
        "%s %s: %s",
        event.kind,
        event.identifier,
        event.detail,
    )


class TraversalScheduler:
    """Fans traversals out over a thread pool and owns all run bookkeeping.

    Workers only post messages; ``claimed``, ``visited``, ``rewrites`` and the
    pending count are read and written by the coordinator loop alone.
    """

    def __init__(
        self,
        walker: DependencyWalker,
        materializer: Materializer,
        *,
        jobs: int | None = None,
        update_imports: bool = False,
        on_event: EventSink | None = log_event,
    ) -> None:
        self.walker = walker
        self.materializer = materializer
        self.jobs = jobs
        self.update_imports = update_imports
        self.on_event = on_event

    def _emit(self, result: RunResult, event: VendorEvent) -> None:
        result.events.append(event)
        if self.on_event is not None:
            self.on_event(event)

    def _work(self, identifier: str, messages: "queue.Queue[_Message]") -> None:
        def _issue(children: Sequence[str]) -> None:
            messages.put((_ISSUE, tuple(children)))

        try:
            outcome = self.walker.traverse(identifier, issue=_issue)
        except Exception as exc:
            logger.exception("Traversal of %s failed unexpectedly", identifier)
            outcome = TraversalOutcome(
                identifier,
                OutcomeStatus.FAILED,
                error=VendorizeError("traversal failed", identifier=identifier, cause=exc),
            )
        messages.put((_DONE, outcome))

    def _record(self, result: RunResult, outcome: TraversalOutcome, pending: int) -> None:
        result.visited.add(outcome.identifier)
        for event in outcome.events:
            self._emit(result, event)
        if outcome.copied and outcome.destination_identifier is not None:
            result.rewrites[outcome.identifier] = outcome.destination_identifier
        error = outcome.error
        if isinstance(error, PreexistingSkipped):
            result.skipped.append(error)
        elif error is not None:
            result.errors.append(error)
            self._emit(result, VendorEvent("error", outcome.identifier, str(error)))
        detail = f"[Packages Remaining: {pending}] {outcome.status.value}"
        self._emit(result, VendorEvent("visited", outcome.identifier, detail))

    def run(self, root_identifier: str) -> RunResult:
        started = time.monotonic()
        result = RunResult()
        outcomes: List[TraversalOutcome] = []
        claimed: Set[str] = set()
        messages: "queue.Queue[_Message]" = queue.Queue()
        pending = 0
        with ThreadPoolExecutor(max_workers=self.jobs, thread_name_prefix="vendorize") as executor:

            def _claim(identifier: str) -> None:
                nonlocal pending
                if identifier in claimed:
                    return
                claimed.add(identifier)
                pending += 1
                executor.submit(self._work, identifier, messages)

            _claim(root_identifier)
            while pending > 0:
                kind, payload = messages.get()
                if kind == _ISSUE:
                    for identifier in payload:
                        _claim(identifier)
                    continue
                pending -= 1
                outcomes.append(payload)
                self._record(result, payload, pending)

            if self.update_imports and result.rewrites:
                self._rewrite_all(executor, result, outcomes)
        result.elapsed = time.monotonic() - started
        return result

    def _rewrite_all(
        self,
        executor: Executor,
        result: RunResult,
        outcomes: Sequence[TraversalOutcome],
    ) -> None:
        mapping = dict(result.rewrites)
        known = frozenset(result.visited)
        submitted = []
        for outcome in sorted(outcomes, key=lambda item: item.identifier):
            if not outcome.rewritable:
                continue
            future = executor.submit(
                self.materializer.rewrite_unit,
                outcome.unit,
                outcome.rewrite_dir,
                mapping,
                known=known,
            )
            submitted.append((outcome.identifier, future))
        for identifier, future in submitted:
            try:
                report = future.result()
            except Exception as exc:
                logger.exception("Rewrite of %s failed unexpectedly", identifier)
                error = VendorizeError("rewrite failed", identifier=identifier, cause=exc)
                result.errors.append(error)
                self._emit(result, VendorEvent("error", identifier, str(error)))
                continue
            for event in report.events:
                self._emit(result, event)
            result.errors.extend(report.errors)
