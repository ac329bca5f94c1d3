"""
Strava integration module.

Usage:
    from tempo_guide.features.strava import StravaOAuth, TokenVault, CallbackHandler
    from tempo_guide.features.strava.importer import ActivityImporter

Components:
- StateTokenStore: single-use OAuth state tokens
- StravaOAuth: OAuth flow (auth URL, token exchange, refresh, deauthorize)
- TokenVault: encrypted token storage with refresh
- ConnectFlow / CallbackHandler / DisconnectService: connection lifecycle
- ConnectionStatusService: status with flag repair
- StravaClient: REST API client (stats, activities, activity detail)

Models:
- OAuthStateToken: OAuth handshake state
- StravaToken: Encrypted OAuth tokens
- StravaActivity: Imported runs
- StravaBestEffort: Best times per distance
- StravaStats: Aggregate run totals
- StravaActivitySplit / StravaActivityLap: Per-activity splits and laps
"""

from .models import (
    OAuthStateToken,
    StravaToken,
    StravaActivity,
    StravaBestEffort,
    StravaStats,
    StravaActivitySplit,
    StravaActivityLap,
)
from .cipher import TokenCipher
from .oauth import StravaOAuth, StravaOAuthError
from .client import (
    StravaClient,
    StravaAPIError,
    StravaAuthError,
    StravaRateLimitError,
    StravaRateLimiter,
    rate_limiter,
)
from .repository import (
    OAuthStateTokenRepository,
    StravaTokenRepository,
    StravaActivityRepository,
    StravaBestEffortRepository,
    StravaStatsRepository,
    StravaActivitySplitRepository,
    StravaActivityLapRepository,
)
from .state_tokens import StateTokenStore, StateTokenClaim
from .vault import TokenVault
from .connect import ConnectFlow, RequestContext
from .callback import CallbackHandler, CallbackOutcome, CallbackState, CallbackFailure
from .disconnect import DisconnectService, DisconnectResult
from .status import ConnectionStatusService, ConnectionStatus

__all__ = [
    # Models
    "OAuthStateToken",
    "StravaToken",
    "StravaActivity",
    "StravaBestEffort",
    "StravaStats",
    "StravaActivitySplit",
    "StravaActivityLap",
    # OAuth / tokens
    "TokenCipher",
    "StravaOAuth",
    "StravaOAuthError",
    "StateTokenStore",
    "StateTokenClaim",
    "TokenVault",
    # Client
    "StravaClient",
    "StravaAPIError",
    "StravaAuthError",
    "StravaRateLimitError",
    "StravaRateLimiter",
    "rate_limiter",
    # Flows
    "ConnectFlow",
    "RequestContext",
    "CallbackHandler",
    "CallbackOutcome",
    "CallbackState",
    "CallbackFailure",
    "DisconnectService",
    "DisconnectResult",
    "ConnectionStatusService",
    "ConnectionStatus",
    # Repositories
    "OAuthStateTokenRepository",
    "StravaTokenRepository",
    "StravaActivityRepository",
    "StravaBestEffortRepository",
    "StravaStatsRepository",
    "StravaActivitySplitRepository",
    "StravaActivityLapRepository",
]
