from typing import List, Optional

from sqlalchemy.orm import Session

from adaptive_auth.core.constants import EventType, Severity
from adaptive_auth.core.security import (
    generate_backup_codes, generate_mfa_secret, hash_backup_code,
    provisioning_uri, qr_code_data_url, verify_totp,
)
from adaptive_auth.models.mfa import MFABackupCode, MFASetup
from adaptive_auth.services.security_event_service import SecurityEventService
from adaptive_auth.utils.errors import InvalidInputError, NotFoundError, UnauthorizedError
from adaptive_auth.utils.helpers import parse_user_id, utcnow
import logging

logger = logging.getLogger(__name__)


class MFAService:

    @staticmethod
    def _get_setup(db: Session, user_id: str) -> Optional[MFASetup]:
        return db.query(MFASetup).filter(MFASetup.user_id == user_id).first()

    @staticmethod
    def _store_backup_codes(db: Session, setup: MFASetup) -> List[str]:
        """Replace every backup code of `setup` and return the new plaintext codes."""
        db.query(MFABackupCode).filter(MFABackupCode.mfa_setup_id == setup.id).delete(
            synchronize_session=False
        )
        codes = generate_backup_codes()
        for code in codes:
            db.add(MFABackupCode(mfa_setup_id=setup.id, code_hash=hash_backup_code(code)))
        return codes

    @staticmethod
    def setup_mfa(db: Session, user_id: str, account_name: Optional[str] = None) -> dict:
        """
        Start TOTP enrollment.
        - Generates a fresh secret and backup codes
        - MFA stays disabled until verify_setup confirms a code
        """
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        if setup and setup.enabled:
            raise InvalidInputError("MFA is already enabled; disable it before setting up again")

        secret = generate_mfa_secret()
        if setup:
            setup.secret = secret
            setup.setup_at = utcnow()
            setup.enabled_at = None
        else:
            setup = MFASetup(user_id=user_id, secret=secret, enabled=False)
            db.add(setup)
        db.flush()

        codes = MFAService._store_backup_codes(db, setup)
        db.commit()

        uri = provisioning_uri(secret, account_name or user_id)
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=EventType.MFA_SETUP_STARTED,
            description="TOTP enrollment started",
            severity=Severity.INFO,
        )
        return {
            "secret": secret,
            "qr_payload": uri,
            "qr_code_data_url": qr_code_data_url(uri),
            "backup_codes": codes,
        }

    @staticmethod
    def verify_setup(db: Session, user_id: str, code: str) -> bool:
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        if not setup:
            raise NotFoundError("MFA setup not started")
        if setup.enabled:
            return True
        if not verify_totp(setup.secret, code):
            MFAService._record_failure(db, user_id, "Invalid code while confirming MFA enrollment")
            raise UnauthorizedError("Invalid MFA code")

        setup.enabled = True
        setup.enabled_at = utcnow()
        db.commit()
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=EventType.MFA_ENABLED,
            description="Multi-factor authentication enabled",
            severity=Severity.INFO,
        )
        return True

    @staticmethod
    def _consume_backup_code(db: Session, setup: MFASetup, code: str) -> bool:
        """Mark a matching unused code as used. The conditional update makes a code single use."""
        updated = (
            db.query(MFABackupCode)
            .filter(
                MFABackupCode.mfa_setup_id == setup.id,
                MFABackupCode.code_hash == hash_backup_code(code),
                MFABackupCode.used == False,
            )
            .update({MFABackupCode.used: True, MFABackupCode.used_at: utcnow()}, synchronize_session=False)
        )
        db.commit()
        return updated > 0

    @staticmethod
    def verify_code(db: Session, user_id: str, code: str) -> bool:
        """
        Check a TOTP or backup code for an enabled enrollment.
        - TOTP is tried first and never consumes a backup code
        - A backup code verifies at most once
        """
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        if not setup or not setup.enabled:
            raise InvalidInputError("MFA is not enabled")
        code = (code or "").strip()

        if verify_totp(setup.secret, code):
            return True

        if code and MFAService._consume_backup_code(db, setup, code):
            SecurityEventService.record_event(
                db,
                user_id=user_id,
                event_type=EventType.BACKUP_CODE_USED,
                description="Backup code used",
                severity=Severity.MEDIUM,
            )
            return True

        MFAService._record_failure(db, user_id, "Invalid MFA code")
        raise UnauthorizedError("Invalid MFA code")

    @staticmethod
    def _record_failure(db: Session, user_id: str, description: str) -> None:
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=EventType.MFA_VERIFICATION_FAILED,
            description=description,
            severity=Severity.HIGH,
        )

    @staticmethod
    def disable_mfa(db: Session, user_id: str, code: str) -> None:
        MFAService.verify_code(db, user_id, code)
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        db.delete(setup)
        db.commit()
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=EventType.MFA_DISABLED,
            description="Multi-factor authentication disabled",
            severity=Severity.MEDIUM,
        )

    @staticmethod
    def regenerate_backup_codes(db: Session, user_id: str, code: str) -> List[str]:
        MFAService.verify_code(db, user_id, code)
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        codes = MFAService._store_backup_codes(db, setup)
        db.commit()
        SecurityEventService.record_event(
            db,
            user_id=user_id,
            event_type=EventType.BACKUP_CODES_REGENERATED,
            description="Backup codes regenerated",
            severity=Severity.INFO,
        )
        return codes

    @staticmethod
    def is_mfa_enabled(db: Session, user_id: str) -> bool:
        setup = MFAService._get_setup(db, parse_user_id(user_id))
        return bool(setup and setup.enabled)

    @staticmethod
    def get_mfa_status(db: Session, user_id: str) -> dict:
        user_id = parse_user_id(user_id)
        setup = MFAService._get_setup(db, user_id)
        if not setup:
            return {"enabled": False, "setup_at": None, "backup_codes_remaining": 0}
        remaining = (
            db.query(MFABackupCode)
            .filter(MFABackupCode.mfa_setup_id == setup.id, MFABackupCode.used == False)
            .count()
        )
        return {
            "enabled": bool(setup.enabled),
            "setup_at": setup.setup_at,
            "backup_codes_remaining": remaining,
        }
