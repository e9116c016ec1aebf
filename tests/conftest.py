"""Pytest fixtures for service and async FastAPI testing.

Points the app at a throwaway SQLite file, initializes a clean schema for the
test session and truncates every table after each test. Provides an
`AsyncClient` for integration tests plus helpers for identity-provider tokens.
"""
import os
import pathlib
import tempfile
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from dotenv import load_dotenv

_TEST_DB = pathlib.Path(tempfile.gettempdir()) / f"adaptive_auth_test_{os.getpid()}.db"

# Settings are read at import time, so the environment must be ready first
os.environ["DATABASE_URL"] = f"sqlite:///{_TEST_DB}"
os.environ["IDP_JWT_KEY"] = "test-idp-signing-key"
os.environ["IDP_JWT_ALGORITHM"] = "HS256"
os.environ["IDP_JWT_AUDIENCE"] = ""
os.environ["RATE_LIMIT_ENABLED"] = "False"
os.environ["WEBAUTHN_ASSERTION_KEY"] = "test-webauthn-signing-key"
os.environ["DATABASE_POOL_SIZE"] = "5"

TEST_IDP_KEY = os.environ["IDP_JWT_KEY"]
TEST_WEBAUTHN_KEY = os.environ["WEBAUTHN_ASSERTION_KEY"]
BROWSER_AGENT = "Mozilla/5.0 (X11; Linux x86_64; rv:128.0) Gecko/20100101 Firefox/128.0"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(scope="session")
def load_test_env():
    """Load `.env.test` if present; explicit variables above still win."""
    root = pathlib.Path(__file__).resolve().parent.parent
    dotenv_path = root / ".env.test"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=str(dotenv_path), override=False)


@pytest.fixture(scope="session")
def prepare_database(load_test_env):
    """Create clean schema for the test session."""
    from adaptive_auth.core.database import engine, Base

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    yield

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if _TEST_DB.exists():
        _TEST_DB.unlink()


@pytest.fixture(autouse=True)
def clean_tables(prepare_database):
    """Empty every table after each test so tests stay independent."""
    yield
    from adaptive_auth.core.database import engine, Base

    with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            conn.execute(table.delete())


@pytest.fixture
def db_session(prepare_database):
    """Yield a SQLAlchemy session for direct DB access in tests."""
    from adaptive_auth.core.database import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def user(db_session, user_id):
    from adaptive_auth.services.user_service import UserService

    return UserService.ensure_user(db_session, user_id, email="alice@example.com", username="alice")


def make_idp_token(sub: str, roles=None, email=None, expires_in: int = 300) -> str:
    from jose import jwt

    claims = {
        "sub": sub,
        "email": email or f"{sub[:8]}@example.com",
        "preferred_username": sub[:8],
        "roles": roles or [],
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    return jwt.encode(claims, TEST_IDP_KEY, algorithm="HS256")


@pytest.fixture
def idp_headers(user_id):
    return {"Authorization": f"Bearer {make_idp_token(user_id)}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_idp_token(str(uuid.uuid4()), roles=['admin'])}"}


@pytest.fixture
async def async_client(prepare_database):
    """Provide an httpx AsyncClient configured with the FastAPI app."""
    from httpx import ASGITransport, AsyncClient
    from adaptive_auth.main import create_app

    app = create_app()

    # httpx identifies itself as python-httpx, which scores as a script
    headers = {"User-Agent": BROWSER_AGENT}
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver", headers=headers) as client:
        yield client


@pytest.fixture
def idp_token():
    """Factory for identity-provider tokens with custom claims."""
    return make_idp_token


def make_webauthn_assertion(sub: str, key: str = TEST_WEBAUTHN_KEY, token_type: str = "webauthn_assertion",
                            age: int = 0) -> str:
    """Signed verdict as the WebAuthn ceremony handler would mint it."""
    from jose import jwt

    issued = datetime.now(timezone.utc) - timedelta(seconds=age)
    claims = {
        "sub": sub,
        "type": token_type,
        "iat": int(issued.timestamp()),
        "exp": issued + timedelta(seconds=60),
    }
    return jwt.encode(claims, key, algorithm="HS256")


@pytest.fixture
def webauthn_assertion():
    """Factory for WebAuthn ceremony assertions."""
    return make_webauthn_assertion
