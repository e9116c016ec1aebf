"""Helper utilities (clock, identifiers, responses, request helpers)."""
import uuid
from datetime import date, datetime, time, timezone
from time import monotonic
from typing import Optional

from fastapi import Request

from adaptive_auth.utils.errors import InternalError, InvalidInputError


def utcnow() -> datetime:
    """Naive UTC now, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_user_id(user_id) -> str:
    """Return the canonical string form of a user id or raise InvalidInputError."""
    if user_id is None or (isinstance(user_id, str) and not user_id.strip()):
        raise InvalidInputError("user_id is required")
    try:
        return str(uuid.UUID(str(user_id).strip()))
    except (ValueError, AttributeError, TypeError):
        raise InvalidInputError(f"Malformed user_id: {user_id!r}")


def local_day_start_utc(today: Optional[date] = None) -> datetime:
    """Start of the caller's local calendar day, expressed as naive UTC."""
    today = today or datetime.now().date()
    local_midnight = datetime.combine(today, time.min).astimezone()
    return local_midnight.astimezone(timezone.utc).replace(tzinfo=None)


def format_response(data=None, success=True):
    return {"success": success, "data": data}


def get_client_ip(request: Request) -> str:
    """Return client's IP address from request headers or connection info.

    Checks `X-Forwarded-For` first (comma-separated), then falls back to
    `request.client.host`. Returns 'unknown' if not found.
    """
    x_forwarded_for = request.headers.get("x-forwarded-for")
    if x_forwarded_for:
        # X-Forwarded-For can contain a list of IPs
        return x_forwarded_for.split(",")[0].strip()

    client = getattr(request, "client", None)
    if client and getattr(client, "host", None):
        return client.host

    return "unknown"


class Deadline:
    """Time budget for one evaluation. `check` raises InternalError once it is spent."""

    def __init__(self, budget_ms: int):
        self.budget_ms = budget_ms
        self._started = monotonic()

    @property
    def elapsed_ms(self) -> float:
        return (monotonic() - self._started) * 1000

    def check(self, stage: str) -> None:
        if self.elapsed_ms > self.budget_ms:
            raise InternalError(f"Evaluation budget of {self.budget_ms} ms exceeded during {stage}")
