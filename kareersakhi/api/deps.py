"""Request-scoped accessors for the objects wired up in main.create_app."""

from fastapi import Request, UploadFile

from kareersakhi.core.errors import PayloadTooLargeError, ValidationError
from kareersakhi.features.analysis.gate import AnalysisGate
from kareersakhi.features.billing.service import PaymentReconciler
from kareersakhi.features.entitlements.store import EntitlementStore
from kareersakhi.features.intake.validator import (
    REASON_TOO_LARGE,
    IntakeConstraints,
    Rejected,
    UploadedArtifact,
    validate,
)


def get_store(request: Request) -> EntitlementStore:
    return request.app.state.entitlement_store


def get_reconciler(request: Request) -> PaymentReconciler:
    return request.app.state.payment_reconciler


def get_gate(request: Request) -> AnalysisGate:
    return request.app.state.analysis_gate


def get_constraints(request: Request) -> IntakeConstraints:
    return request.app.state.intake_constraints


async def read_upload(file: UploadFile, max_bytes: int) -> UploadedArtifact:
    """
    Read at most max_bytes + 1 bytes of an upload.

    An over-limit body is never buffered in full: the extra byte is enough for
    validate() to reject it as too large.
    """
    content = await file.read(max_bytes + 1)
    byte_size = len(content)
    if file.size is not None:
        byte_size = max(byte_size, file.size)
    return UploadedArtifact(
        name=file.filename or "",
        byte_size=byte_size,
        content=content,
        content_type=file.content_type,
    )


def rejection_error(rejected: Rejected):
    details = {"reason": rejected.reason}
    if rejected.limit is not None:
        details["limit"] = rejected.limit
    if rejected.allowed is not None:
        details["allowed"] = sorted(rejected.allowed)
    if rejected.reason == REASON_TOO_LARGE:
        return PayloadTooLargeError(rejected.message, details=details)
    return ValidationError(rejected.message, code="unsupported_file", details=details)


async def accepted_upload(file: UploadFile, constraints: IntakeConstraints) -> UploadedArtifact:
    """Read and validate an upload, raising the matching AppError on rejection."""
    artifact = await read_upload(file, constraints.max_bytes)
    result = validate(artifact, constraints)
    if isinstance(result, Rejected):
        raise rejection_error(result)
    return result.artifact
