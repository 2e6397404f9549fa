"""
IP access endpoints.

POST  /api/ip/request        → public: ask for access for your IP (or a given one)
GET   /api/ip                → admin: list all entries, newest request first
PATCH /api/ip/{id}/status    → admin: set PENDING / WHITELIST / BLACKLIST

Admin routes require the X-Admin-Key header to match ADMIN_API_KEY.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request

from access.ledger import AccessEntryNotFound, AccessLedger
from api.dependencies import client_ip, get_ledger, require_admin
from api.schemas.access import AccessEntryOut, AccessRequest, AccessRequested, AccessStatusUpdate
from api.schemas.common import ApiResponse

router = APIRouter(prefix="/api/ip", tags=["access"])


@router.post("/request", response_model=ApiResponse[AccessRequested])
async def request_access(
    body: AccessRequest,
    request: Request,
    ledger: AccessLedger = Depends(get_ledger),
) -> ApiResponse[AccessRequested]:
    """
    Idempotent: asking again returns the existing entry unchanged, so a
    blacklisted IP cannot reset itself to PENDING by re-requesting.
    """
    ip = body.ip or client_ip(request)
    if not ip or ip == "unknown":
        raise HTTPException(status_code=400, detail="IP is required")

    entry = await ledger.request_access(ip, body.note)
    return ApiResponse(
        message="IP whitelist request submitted",
        data=AccessRequested(ip=entry.ip, status=entry.status),
    )


@router.get("", response_model=ApiResponse[list[AccessEntryOut]], dependencies=[Depends(require_admin)])
async def list_access(
    ledger: AccessLedger = Depends(get_ledger),
) -> ApiResponse[list[AccessEntryOut]]:
    entries = await ledger.list_entries()
    return ApiResponse(data=[AccessEntryOut.model_validate(e) for e in entries])


@router.patch(
    "/{entry_id}/status",
    response_model=ApiResponse[AccessEntryOut],
    dependencies=[Depends(require_admin)],
)
async def set_access_status(
    entry_id: UUID,
    body: AccessStatusUpdate,
    ledger: AccessLedger = Depends(get_ledger),
) -> ApiResponse[AccessEntryOut]:
    try:
        entry = await ledger.set_status(entry_id, body.status)
    except AccessEntryNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return ApiResponse(data=AccessEntryOut.model_validate(entry))
