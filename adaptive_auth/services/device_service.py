from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from adaptive_auth.core.constants import EventType, Severity
from adaptive_auth.models.device import DeviceFingerprint
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.errors import InvalidInputError, NotFoundError
from adaptive_auth.utils.helpers import parse_user_id, utcnow
import logging

logger = logging.getLogger(__name__)


class DeviceService:

    @staticmethod
    def get_device_by_fingerprint(db: Session, user_id: str, fingerprint: str) -> Optional[DeviceFingerprint]:
        return (
            db.query(DeviceFingerprint)
            .filter(
                DeviceFingerprint.user_id == user_id,
                DeviceFingerprint.fingerprint == fingerprint,
            )
            .first()
        )

    @staticmethod
    def is_new_device(db: Session, user_id: str, fingerprint: Optional[str]) -> bool:
        """True when no (user, fingerprint) row exists yet. A missing fingerprint is always new."""
        user_id = parse_user_id(user_id)
        if not fingerprint:
            return True
        return DeviceService.get_device_by_fingerprint(db, user_id, fingerprint) is None

    @staticmethod
    def is_trusted_device(db: Session, user_id: str, fingerprint: Optional[str]) -> bool:
        user_id = parse_user_id(user_id)
        if not fingerprint:
            return False
        device = DeviceService.get_device_by_fingerprint(db, user_id, fingerprint)
        return bool(device and device.is_trusted)

    @staticmethod
    def register_device_fingerprint(
        db: Session,
        user_id: str,
        fingerprint: str,
        device_name: Optional[str] = None,
        device_type: Optional[str] = None,
        browser: Optional[str] = None,
        os: Optional[str] = None,
        ip_address: Optional[str] = None,
        location: Optional[str] = None,
    ) -> DeviceFingerprint:
        """
        Record a sighting of a device.
        - First sighting creates an untrusted row
        - Later sightings (including a racing duplicate insert) only refresh last-seen metadata
        """
        user_id = parse_user_id(user_id)
        if not fingerprint:
            raise InvalidInputError("fingerprint is required")

        existing = DeviceService.get_device_by_fingerprint(db, user_id, fingerprint)
        if existing:
            return DeviceService._touch(db, existing, device_name, device_type, browser, os, ip_address, location)

        now = utcnow()
        device = DeviceFingerprint(
            user_id=user_id,
            fingerprint=fingerprint,
            device_name=device_name,
            device_type=device_type,
            browser=browser,
            os=os,
            ip_address=ip_address,
            location=location,
            is_trusted=False,
            first_seen=now,
            last_seen=now,
        )
        db.add(device)
        try:
            db.commit()
        except IntegrityError:
            # Lost a race against a concurrent registration of the same device
            db.rollback()
            existing = DeviceService.get_device_by_fingerprint(db, user_id, fingerprint)
            if existing is None:
                raise
            return DeviceService._touch(db, existing, device_name, device_type, browser, os, ip_address, location)

        db.refresh(device)
        logger.info(f"Registered new device {device.id} for user {user_id}")
        return device

    @staticmethod
    def _touch(db, device, device_name, device_type, browser, os, ip_address, location) -> DeviceFingerprint:
        device.last_seen = utcnow()
        for field, value in (
            ("device_name", device_name),
            ("device_type", device_type),
            ("browser", browser),
            ("os", os),
            ("ip_address", ip_address),
            ("location", location),
        ):
            if value is not None:
                setattr(device, field, value)
        db.commit()
        db.refresh(device)
        return device

    @staticmethod
    def get_device(db: Session, user_id: str, device_id: int) -> DeviceFingerprint:
        user_id = parse_user_id(user_id)
        device = (
            db.query(DeviceFingerprint)
            .filter(DeviceFingerprint.id == device_id, DeviceFingerprint.user_id == user_id)
            .first()
        )
        if not device:
            raise NotFoundError("Device not found")
        return device

    @staticmethod
    def get_user_devices(db: Session, user_id: str) -> List[DeviceFingerprint]:
        user_id = parse_user_id(user_id)
        return (
            db.query(DeviceFingerprint)
            .filter(DeviceFingerprint.user_id == user_id)
            .order_by(DeviceFingerprint.last_seen.desc())
            .all()
        )

    @staticmethod
    def trust_device(
        db: Session,
        user_id: str,
        device_id: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> DeviceFingerprint:
        device = DeviceService.get_device(db, user_id, device_id)
        device.is_trusted = True
        db.commit()
        db.refresh(device)

        SecurityEventService.record_event(
            db,
            user_id=device.user_id,
            event_type=EventType.DEVICE_TRUSTED,
            description=f"Device '{device.device_name or device.fingerprint}' marked as trusted",
            severity=Severity.INFO,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return device

    @staticmethod
    def revoke_device(
        db: Session,
        user_id: str,
        device_id: int,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Delete the device row. A revoked device that comes back is new again."""
        device = DeviceService.get_device(db, user_id, device_id)
        label = device.device_name or device.fingerprint
        owner = device.user_id
        db.delete(device)
        db.commit()

        SecurityEventService.record_event(
            db,
            user_id=owner,
            event_type=EventType.DEVICE_REVOKED,
            description=f"Device '{label}' revoked",
            severity=Severity.MEDIUM,
            ip_address=ip_address,
            user_agent=user_agent,
        )
