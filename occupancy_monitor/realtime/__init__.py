"""
Real-time components: the Socket.IO live feed session, the background
snapshot refresher and the service that ties them to the dashboard state.
"""

from .refresher import BackgroundRefresher
from .service import LiveDashboardService, ServiceConfig
from .session import LiveFeedSession, SessionState, Subscription

__all__ = [
    "BackgroundRefresher",
    "LiveDashboardService",
    "LiveFeedSession",
    "ServiceConfig",
    "SessionState",
    "Subscription",
]
