from __future__ import annotations
# ruff: noqa: E402

import sys
import time
import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from pathlib import Path
from typing import Any

import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient, Response
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

API_ROOT = Path(__file__).resolve().parents[1]
if str(API_ROOT) not in sys.path:
    sys.path.insert(0, str(API_ROOT))

from rolodex_api.db import get_session_factory
from rolodex_api.identity import IdentityVerifier, get_identity_verifier
from rolodex_api.main import app
from rolodex_api.models import Base, Organization, Role
from rolodex_api.services.rate_limit import InMemoryRateLimiter, get_rate_limiter
from rolodex_api.settings import Settings
from rolodex_api.tenancy import RequestContext

TEST_ORG_ID = uuid.UUID("aaaaaaaa-aaaa-aaaa-aaaa-aaaaaaaaaaaa")
OTHER_ORG_ID = uuid.UUID("bbbbbbbb-bbbb-bbbb-bbbb-bbbbbbbbbbbb")
TOKEN_ISSUER = "https://login.rolodex.test/tenant/v2.0"
TOKEN_AUDIENCE = "api://rolodex-test"
TOKEN_JWKS_URI = "https://login.rolodex.test/tenant/discovery/v2.0/keys"


@pytest.fixture(scope="session")
def signing_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    with Session(engine) as db:
        db.add_all(
            [
                Organization(id=TEST_ORG_ID, name="Test Org"),
                Organization(id=OTHER_ORG_ID, name="Other Test Org"),
            ]
        )
        db.commit()
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, class_=Session)


@pytest.fixture()
def token_settings() -> Settings:
    return Settings(
        app_env="development",
        dev_auth_bypass=False,
        token_issuer=TOKEN_ISSUER,
        token_audience=TOKEN_AUDIENCE,
        token_jwks_uri=TOKEN_JWKS_URI,
        default_org_id=None,
    )


@pytest.fixture()
def verifier(signing_key: rsa.RSAPrivateKey, token_settings: Settings) -> IdentityVerifier:
    public_key = signing_key.public_key()
    return IdentityVerifier(token_settings, key_resolver=lambda _token: public_key)


@pytest.fixture()
def make_token(signing_key: rsa.RSAPrivateKey) -> Callable[..., str]:
    def _make(
        subject: str = "subject-admin",
        roles: Any = ("admin",),
        org_id: uuid.UUID | str | None = TEST_ORG_ID,
        expires_in: int = 300,
        **claims: Any,
    ) -> str:
        now = int(time.time())
        payload: dict[str, Any] = {
            "sub": subject,
            "roles": list(roles) if isinstance(roles, (list, tuple)) else roles,
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "iat": now,
            "exp": now + expires_in,
        }
        if org_id is not None:
            payload["org_id"] = str(org_id)
        payload.update(claims)
        return jwt.encode(payload, signing_key, algorithm="RS256", headers={"kid": "test-key"})

    return _make


@pytest.fixture()
def auth_headers(make_token: Callable[..., str]) -> Callable[..., dict[str, str]]:
    def _headers(role: str = "admin", org_id: uuid.UUID = TEST_ORG_ID, subject: str | None = None) -> dict[str, str]:
        token = make_token(
            subject=subject or f"{role}-{org_id}",
            roles=[role],
            org_id=org_id,
            name=f"{role.title()} User",
            preferred_username=f"{role}@rolodex.test",
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture()
def rate_limiter() -> InMemoryRateLimiter:
    return InMemoryRateLimiter(max_requests=10_000, window_seconds=60)


@pytest.fixture()
async def client(
    session_factory: sessionmaker[Session],
    verifier: IdentityVerifier,
    rate_limiter: InMemoryRateLimiter,
) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_identity_verifier] = lambda: verifier
    app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()


@pytest.fixture()
def call_action(
    client: AsyncClient, auth_headers: Callable[..., dict[str, str]]
) -> Callable[..., Awaitable[Response]]:
    async def _call(
        action: str,
        body: dict[str, Any] | None = None,
        *,
        role: str = "admin",
        org_id: uuid.UUID = TEST_ORG_ID,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> Response:
        request_headers = auth_headers(role, org_id) if headers is None else headers
        return await client.post(
            "/api",
            params={"action": action, **(params or {})},
            json=body,
            headers=request_headers,
        )

    return _call


@pytest.fixture()
def make_context() -> Callable[..., RequestContext]:
    def _context(role: Role = Role.ADMIN, org_id: uuid.UUID = TEST_ORG_ID, subject: str | None = None) -> RequestContext:
        return RequestContext(
            subject=subject or f"{role.value}-{org_id}",
            org_id=org_id,
            role=role,
            email=f"{role.value}@rolodex.test",
            display_name=f"{role.value.title()} User",
        )

    return _context


@pytest.fixture()
def other_org_id() -> uuid.UUID:
    return OTHER_ORG_ID


@pytest.fixture()
def contact_payload() -> Callable[..., dict[str, Any]]:
    def _payload(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "firstName": "Jordan",
            "lastName": "Price",
            "company": "Bright Path Advisors",
            "contactType": "Advisor",
            "status": "Active",
        }
        payload.update(overrides)
        return payload

    return _payload
