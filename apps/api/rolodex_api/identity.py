"""Caller identity from bearer tokens, or from settings under the local bypass."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

import jwt

from .errors import AuthenticationError, ConfigError
from .models import Role
from .settings import Settings, settings
from .tenancy import RequestContext

logger = logging.getLogger(__name__)

KeyResolver = Callable[[str], Any]


@lru_cache(maxsize=8)
def _jwk_client(jwks_uri: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_uri, cache_keys=True)


def jwks_key_resolver(jwks_uri: str) -> KeyResolver:
    def resolve(token: str) -> Any:
        return _jwk_client(jwks_uri).get_signing_key_from_jwt(token).key

    return resolve


def extract_bearer_token(headers: Mapping[str, str]) -> str | None:
    header = headers.get("authorization") or headers.get("Authorization")
    if not header or not header.startswith("Bearer "):
        return None
    token = header[len("Bearer ") :].strip()
    return token or None


def parse_role(roles: Any) -> Role:
    """Most privileged known role in the claim; anything else is a participant."""
    if isinstance(roles, str):
        role_list = [roles]
    elif isinstance(roles, (list, tuple)):
        role_list = list(roles)
    else:
        role_list = []
    if Role.ADMIN.value in role_list:
        return Role.ADMIN
    if Role.CREATOR.value in role_list:
        return Role.CREATOR
    return Role.PARTICIPANT


def _as_uuid(value: Any) -> uuid.UUID | None:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def resolve_org_id(claims: Mapping[str, Any], default_org_id: str | None) -> uuid.UUID | None:
    for candidate in (default_org_id, claims.get("org_id"), claims.get("tid")):
        org_id = _as_uuid(candidate)
        if org_id is not None:
            return org_id
    return None


class IdentityVerifier:
    def __init__(self, config: Settings, key_resolver: KeyResolver | None = None) -> None:
        self._config = config
        self._key_resolver = key_resolver
        if key_resolver is None and config.token_jwks_uri:
            self._key_resolver = jwks_key_resolver(config.token_jwks_uri)

    @property
    def bypass_active(self) -> bool:
        return self._config.dev_bypass_active

    def verify(self, headers: Mapping[str, str]) -> RequestContext:
        if self.bypass_active:
            return self._bypass_identity()

        token = extract_bearer_token(headers)
        if token is None:
            raise AuthenticationError("Missing bearer token")
        if not self._config.token_config_complete or self._key_resolver is None:
            raise AuthenticationError("Authorization is not configured")

        try:
            key = self._key_resolver(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=self._config.allowed_token_algorithms,
                audience=self._config.token_audience,
                issuer=self._config.token_issuer,
                options={"require": ["exp", "iss", "aud"]},
            )
        except jwt.PyJWTError as exc:
            logger.info("token rejected: %s", type(exc).__name__)
            raise AuthenticationError("Invalid or expired token") from exc

        subject = str(claims.get("sub") or "").strip()
        if not subject:
            raise AuthenticationError("Invalid token subject")

        org_id = resolve_org_id(claims, self._config.default_org_id)
        if org_id is None:
            raise AuthenticationError("Unable to resolve organization")

        email = claims.get("preferred_username") or claims.get("email")
        display_name = claims.get("name")
        return RequestContext(
            subject=subject,
            org_id=org_id,
            role=parse_role(claims.get("roles")),
            email=email if isinstance(email, str) else None,
            display_name=display_name if isinstance(display_name, str) else None,
        )

    def _bypass_identity(self) -> RequestContext:
        org_id = _as_uuid(self._config.dev_org_id)
        if org_id is None:
            raise ConfigError("DEV_ORG_ID must be a UUID")
        logger.warning("local auth bypass in use for subject=%s", self._config.dev_subject)
        return RequestContext(
            subject=self._config.dev_subject,
            org_id=org_id,
            role=Role(self._config.dev_role),
            email=self._config.dev_email,
            display_name="Local Developer",
        )


@lru_cache(maxsize=1)
def get_identity_verifier() -> IdentityVerifier:
    return IdentityVerifier(settings)
