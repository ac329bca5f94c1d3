"""
Shared FastAPI dependencies.

Caller identity comes from a bearer JWT issued by the external auth
provider. Provider clients are built here from settings so routes (and
tests, via dependency_overrides) never touch globals directly.
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tempo_guide.config import settings
from tempo_guide.features.plans import PlanUpdateBroker, plan_update_broker
from tempo_guide.features.strava import StravaClient, StravaOAuth, TokenCipher
from tempo_guide.shared.errors import AuthenticationError, ConfigurationError

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """
    Verify the bearer token and return its subject.

    Raises:
        AuthenticationError: Missing, malformed, expired or unsigned token
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized")
    if not settings.auth_jwt_secret:
        raise ConfigurationError("Authentication is not configured")

    options = {"verify_aud": settings.auth_jwt_audience is not None}
    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options=options,
        )
    except JWTError as e:
        raise AuthenticationError("Could not validate credentials") from e

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Could not validate credentials")
    return str(user_id)


def get_strava_oauth() -> StravaOAuth:
    if not settings.strava_configured:
        raise ConfigurationError("Strava integration not configured")
    return StravaOAuth(settings.strava_credentials())


def get_strava_client() -> StravaClient:
    if not settings.strava_configured:
        raise ConfigurationError("Strava integration not configured")
    return StravaClient(settings.strava_credentials())


def get_token_cipher() -> TokenCipher:
    if not settings.token_encryption_key:
        raise ConfigurationError("Token encryption key not configured")
    return TokenCipher(settings.token_encryption_key)


def get_plan_broker() -> PlanUpdateBroker:
    return plan_update_broker


def get_optional_strava_oauth() -> Optional[StravaOAuth]:
    """Like get_strava_oauth, but None when unconfigured (callback must still redirect)."""
    try:
        return get_strava_oauth()
    except ConfigurationError:
        return None


def get_optional_token_cipher() -> Optional[TokenCipher]:
    try:
        return get_token_cipher()
    except ConfigurationError:
        return None
