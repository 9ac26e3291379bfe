"""Error kinds reported by a vendorize run.

Unit-level errors are carried as values in traversal outcomes and collected by
the scheduler; only :class:`ConfigurationError` is raised out of
:func:`vendorize.runner.run_vendorize`.
"""

from __future__ import annotations


class VendorizeError(Exception):
    """Base class for every error a run can report."""

    kind = "error"

    def __init__(
        self,
        message: str,
        *,
        identifier: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.identifier = identifier
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause
        super().__init__(message)

    def __str__(self) -> str:
        return self.render()

    def render(self) -> str:
        text = f"{self.identifier}: {self.message}" if self.identifier else self.message
        if self.cause is not None:
            text = f"{text}: {self.cause}"
        return text


class ConfigurationError(VendorizeError):
    """Pre-traversal problem that aborts the run before any task is spawned."""

    kind = "configuration"


class ResolutionFailed(VendorizeError):
    """A unit, or one of its required imports, could not be resolved."""

    kind = "resolution-failed"


class PreexistingSkipped(VendorizeError):
    """Destination already present and ``force`` not set.

    Informational; never counted as a failure of the run.
    """

    kind = "preexisting-skipped"

    def __init__(self, destination: str, *, identifier: str = "") -> None:
        self.destination = destination
        super().__init__(f"Ignored (preexisting): {destination!r}", identifier=identifier)


class CopyFailed(VendorizeError):
    kind = "copy-failed"


class RewriteFailed(VendorizeError):
    """Parse or write error while rewriting imports; the file is left as it was."""

    kind = "rewrite-failed"

    def __init__(
        self,
        path: str,
        message: str,
        *,
        identifier: str = "",
        cause: BaseException | None = None,
    ) -> None:
        self.path = path
        super().__init__(
            f"couldn't rewrite file {path!r}: {message}",
            identifier=identifier,
            cause=cause,
        )
