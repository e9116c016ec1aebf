"""Device trust endpoints."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from adaptive_auth.core.constants import Operation
from adaptive_auth.core.database import get_db
from adaptive_auth.dependencies.auth import require_operation
from adaptive_auth.models.session import UserSession
from adaptive_auth.schemas.device import DeviceRead, DeviceRegisterRequest
from adaptive_auth.services.device_service import DeviceService
from adaptive_auth.utils.helpers import format_response, get_client_ip

router = APIRouter(prefix="/devices", tags=["devices"])


@router.get("", response_model=list[DeviceRead])
async def list_devices(
    session: UserSession = Depends(require_operation(Operation.DEVICES_READ)),
    db: Session = Depends(get_db),
):
    return DeviceService.get_user_devices(db, session.user_id)


@router.post("", response_model=DeviceRead, status_code=201)
async def register_device(
    payload: DeviceRegisterRequest,
    request: Request,
    session: UserSession = Depends(require_operation(Operation.DEVICES_WRITE)),
    db: Session = Depends(get_db),
):
    return DeviceService.register_device_fingerprint(
        db,
        session.user_id,
        payload.fingerprint,
        device_name=payload.device_name,
        device_type=payload.device_type,
        browser=payload.browser,
        os=payload.os,
        ip_address=get_client_ip(request),
    )


@router.post("/{device_id}/trust", response_model=DeviceRead)
async def trust_device(
    device_id: int,
    request: Request,
    session: UserSession = Depends(require_operation(Operation.DEVICES_WRITE)),
    db: Session = Depends(get_db),
):
    return DeviceService.trust_device(
        db, session.user_id, device_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.delete("/{device_id}", status_code=200)
async def revoke_device(
    device_id: int,
    request: Request,
    session: UserSession = Depends(require_operation(Operation.DEVICES_WRITE)),
    db: Session = Depends(get_db),
):
    DeviceService.revoke_device(
        db, session.user_id, device_id,
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    return format_response({"message": "Device revoked"})
