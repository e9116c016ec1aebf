from typing import Optional, Dict, Any, List
from jose import JWTError, jwt
import base64
import io
import secrets
import time
import pyotp
import qrcode
import hashlib
from adaptive_auth.core.config import settings

SESSION_TOKEN_BYTES = 32
BACKUP_CODE_BYTES = 5  # 10 hex characters


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_session_token() -> str:
    return secrets.token_hex(SESSION_TOKEN_BYTES)


def decode_idp_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a bearer token issued by the identity provider.

    Returns the claims, or None when the signature, expiry or audience
    does not check out.
    """
    if not settings.IDP_JWT_KEY:
        return None
    options = {"verify_aud": bool(settings.IDP_JWT_AUDIENCE)}
    try:
        return jwt.decode(
            token,
            settings.IDP_JWT_KEY,
            algorithms=[settings.IDP_JWT_ALGORITHM],
            audience=settings.IDP_JWT_AUDIENCE,
            options=options,
        )
    except JWTError:
        return None


def decode_webauthn_assertion(token: str) -> Optional[Dict[str, Any]]:
    """Verify a WebAuthn verdict minted by the ceremony handler.

    The token must be signed with the shared assertion key, carry
    `type=webauthn_assertion` and be younger than the configured max age.
    """
    if not settings.WEBAUTHN_ASSERTION_KEY:
        return None
    try:
        payload = jwt.decode(
            token,
            settings.WEBAUTHN_ASSERTION_KEY,
            algorithms=[settings.WEBAUTHN_ASSERTION_ALGORITHM],
            options={"verify_aud": False, "require_exp": True, "require_iat": True},
        )
    except JWTError:
        return None
    if payload.get("type") != "webauthn_assertion":
        return None
    issued_at = payload.get("iat")
    if not isinstance(issued_at, (int, float)):
        return None
    if abs(time.time() - issued_at) > settings.WEBAUTHN_ASSERTION_MAX_AGE_SECONDS:
        return None
    return payload


def generate_mfa_secret() -> str:
    return pyotp.random_base32()


def build_totp(secret: str) -> pyotp.TOTP:
    return pyotp.TOTP(secret)


def verify_totp(secret: str, code: str) -> bool:
    if not secret or not code:
        return False
    return build_totp(secret).verify(code, valid_window=settings.MFA_VALID_WINDOW)


def provisioning_uri(secret: str, account_name: str) -> str:
    return build_totp(secret).provisioning_uri(name=account_name, issuer_name=settings.MFA_ISSUER)


def qr_code_data_url(payload: str) -> str:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def generate_backup_codes(count: Optional[int] = None) -> List[str]:
    count = count or settings.MFA_BACKUP_CODE_COUNT
    return [secrets.token_hex(BACKUP_CODE_BYTES).upper() for _ in range(count)]


def normalize_backup_code(code: str) -> str:
    return code.replace("-", "").replace(" ", "").strip().upper()


def hash_backup_code(code: str) -> str:
    return hash_token(normalize_backup_code(code))

