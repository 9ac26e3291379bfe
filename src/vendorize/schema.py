from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel

from vendorize.exceptions import VendorizeError
from vendorize.model import RunResult


class VendorizeErrorDTO(BaseModel):
    kind: str
    identifier: str
    message: str


class VendorizeReportDTO(BaseModel):
    root: str
    destination: str
    dry_run: bool = False
    visited: List[str] = []
    rewrites: Dict[str, str] = {}
    rewrite_count: int = 0
    skipped: List[VendorizeErrorDTO] = []
    errors: List[VendorizeErrorDTO] = []
    elapsed_seconds: float = 0.0
    exit_code: int = 0


def _error_dto(error: VendorizeError) -> VendorizeErrorDTO:
    return VendorizeErrorDTO(kind=error.kind, identifier=error.identifier, message=str(error))


def report_from_result(
    result: RunResult, *, root: str, destination: str, dry_run: bool = False
) -> VendorizeReportDTO:
    return VendorizeReportDTO(
        root=root,
        destination=destination,
        dry_run=dry_run,
        visited=sorted(result.visited),
        rewrites=dict(sorted(result.rewrites.items())),
        rewrite_count=result.rewrite_count,
        skipped=[_error_dto(item) for item in result.skipped],
        errors=[_error_dto(item) for item in result.errors],
        elapsed_seconds=round(result.elapsed, 6),
        exit_code=result.exit_code,
    )
