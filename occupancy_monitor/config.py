"""Configuration management for the occupancy monitor."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)
else:
    # Fall back to template for defaults
    template_path = Path(__file__).parent.parent / ".env.template"
    if template_path.exists():
        load_dotenv(template_path)


class Config:
    """Application configuration."""

    # Analytics backend
    API_BASE_URL: str = os.getenv("OCCUPANCY_API_BASE_URL", "http://localhost:8080/api")
    SOCKET_URL: str = os.getenv("OCCUPANCY_SOCKET_URL", "http://localhost:8080")
    REQUEST_TIMEOUT: int = int(os.getenv("OCCUPANCY_REQUEST_TIMEOUT", "30"))

    # Persisted client state (token, selected site, user email)
    STATE_DB_PATH: str = os.getenv(
        "OCCUPANCY_STATE_DB_PATH", "~/.occupancy/client_state.db"
    )

    # Live feed settings
    SOCKET_TRANSPORTS: list[str] = [
        t.strip()
        for t in os.getenv("OCCUPANCY_SOCKET_TRANSPORTS", "websocket,polling").split(",")
        if t.strip()
    ]
    RECONNECTION_ATTEMPTS: int = int(os.getenv("OCCUPANCY_RECONNECTION_ATTEMPTS", "5"))
    RECONNECTION_DELAY: float = float(os.getenv("OCCUPANCY_RECONNECTION_DELAY", "1.0"))

    # Dashboard settings
    REFRESH_INTERVAL: int = int(os.getenv("OCCUPANCY_REFRESH_INTERVAL", "30"))
    PAGE_SIZE: int = int(os.getenv("OCCUPANCY_PAGE_SIZE", "10"))
    DATE_FILTER: str = os.getenv("OCCUPANCY_DATE_FILTER", "today")

    # CLI credentials
    EMAIL: str = os.getenv("OCCUPANCY_EMAIL", "")
    PASSWORD: str = os.getenv("OCCUPANCY_PASSWORD", "")

    @classmethod
    def get_state_db_path(cls) -> str:
        """Get the client state database path with ~ expanded."""
        return os.path.expanduser(cls.STATE_DB_PATH)


config = Config()
