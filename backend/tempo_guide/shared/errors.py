"""
Application error taxonomy.

Every error raised across feature boundaries derives from TempoGuideError
so routes can translate failures into HTTP responses in one place.

Hierarchy:
- AuthenticationError: missing or invalid caller identity
- ValidationError: malformed input, rejected before any side effect
- NotFound: referenced entity does not exist (or is not the caller's)
- StateTokenError: OAuth state token could not be consumed
    - StateTokenNotFound / StateTokenAlreadyUsed / StateTokenExpired
- UpstreamError: provider returned non-2xx or the call failed
- PersistenceError: storage read/write failure
- PlanParseError: plan listing could not be turned into training days
- NotConnected: user has no stored provider tokens
- RefreshFailed: stored refresh token was rejected by the provider
- ConfigurationError: required integration settings are missing
"""


class TempoGuideError(Exception):
    """Base application error."""

    status_code: int = 500


class AuthenticationError(TempoGuideError):
    """Caller identity is missing or invalid."""

    status_code = 401


class ValidationError(TempoGuideError):
    """Request input is malformed."""

    status_code = 400


class NotFound(TempoGuideError):
    """Requested entity does not exist."""

    status_code = 404


class StateTokenError(TempoGuideError):
    """OAuth state token could not be consumed."""

    # Query-string code sent back to the frontend
    redirect_code: str = "invalid_state"


class StateTokenNotFound(StateTokenError):
    redirect_code = "invalid_state"


class StateTokenAlreadyUsed(StateTokenError):
    redirect_code = "state_reused"


class StateTokenExpired(StateTokenError):
    redirect_code = "state_expired"


class UpstreamError(TempoGuideError):
    """Provider API error (non-2xx or network failure)."""

    status_code = 502


class PersistenceError(TempoGuideError):
    """Storage read/write failure."""


class PlanParseError(TempoGuideError):
    """Plan listing could not be parsed into training days."""


class NotConnected(TempoGuideError):
    """User has not connected a Strava account."""


class RefreshFailed(TempoGuideError):
    """Provider rejected the refresh token; user must reconnect."""


class ConfigurationError(TempoGuideError):
    """A required integration is not configured."""

    status_code = 503
