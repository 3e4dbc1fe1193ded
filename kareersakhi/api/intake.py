"""
Intake API routes.

- POST /api/intake/validate: check an upload against the configured constraints
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from kareersakhi.api.deps import get_constraints, read_upload
from kareersakhi.core.logging import log_event
from kareersakhi.features.intake.validator import IntakeConstraints, Rejected, validate


router = APIRouter(prefix="/api/intake", tags=["intake"])


class IntakeResponse(BaseModel):
    accepted: bool
    name: str
    byte_size: int
    reason: Optional[str] = None
    message: Optional[str] = None
    limit: Optional[int] = None
    allowed: Optional[List[str]] = None


@router.post("/validate", response_model=IntakeResponse)
async def validate_upload(
    file: UploadFile = File(...),
    constraints: IntakeConstraints = Depends(get_constraints),
):
    """
    Validate an upload without analyzing it.

    Rejections are returned inline (200) so the client can show the reason
    next to the file picker.
    """
    artifact = await read_upload(file, constraints.max_bytes)
    result = validate(artifact, constraints)
    if isinstance(result, Rejected):
        log_event("info", "intake.rejected", event_type="intake.validate",
                  extra={"artifact": artifact.name, "reason": result.reason})
        return IntakeResponse(
            accepted=False,
            name=artifact.name,
            byte_size=artifact.byte_size,
            reason=result.reason,
            message=result.message,
            limit=result.limit,
            allowed=sorted(result.allowed) if result.allowed is not None else None,
        )
    return IntakeResponse(accepted=True, name=artifact.name, byte_size=artifact.byte_size)
