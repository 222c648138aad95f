"""Authentication and session persistence."""

import logging

import requests

from .api_client import AnalyticsAPIClient
from .client_state import ClientStateStore
from .models import LoginResult

logger = logging.getLogger(__name__)

LOGIN_FAILED_MESSAGE = "Login failed. Please check your credentials."
SITE_LOAD_FAILED_MESSAGE = "Failed to load site information. Please try again."


def _server_message(error: requests.HTTPError) -> str | None:
    """Extract the `message` field from an error response body."""
    if error.response is None:
        return None
    try:
        body = error.response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and isinstance(body.get("message"), str):
        return body["message"]
    return None


class AuthService:
    """Logs in against the backend and persists the session locally."""

    def __init__(self, api: AnalyticsAPIClient, state: ClientStateStore):
        self.api = api
        self.state = state

    def login(self, email: str, password: str) -> LoginResult:
        """Authenticate and store the token and user email.

        The email returned by the server is preferred; the one typed by the
        user is stored when the response carries no user object.
        """
        try:
            response = self.api.login(email, password)
        except requests.HTTPError as e:
            logger.error(f"Login error: {e}")
            return LoginResult(
                success=False,
                error_message=_server_message(e) or LOGIN_FAILED_MESSAGE,
            )
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Login error: {e}")
            return LoginResult(success=False, error_message=LOGIN_FAILED_MESSAGE)

        token = response.get("token") if isinstance(response, dict) else None
        if not token:
            logger.error("Login response did not contain a token")
            return LoginResult(success=False, error_message=LOGIN_FAILED_MESSAGE)

        user = response.get("user") or {}
        user_email = user.get("email") if isinstance(user, dict) else None

        self.state.set_token(token)
        self.state.set_user_email(user_email or email)
        logger.info(f"Logged in as {user_email or email}")

        return LoginResult(success=True, token=token, email=user_email or email)

    def logout(self) -> None:
        """Clear token, selected site and user email together."""
        self.state.clear()

    def get_token(self) -> str | None:
        return self.state.get_token()

    def is_authenticated(self) -> bool:
        return bool(self.get_token())

    def get_user_email(self) -> str | None:
        return self.state.get_user_email()

    def fetch_initial_site_id(self) -> str:
        """Fetch the site list and store the first site's id.

        Returns:
            The stored site id, or '' when the backend has no sites
        """
        sites = self.api.get_sites()
        if sites and isinstance(sites[0], dict):
            site_id = sites[0].get("siteId") or ""
            if site_id:
                logger.info(f"Storing site ID: {site_id}")
                self.state.set_site_id(site_id)
                return site_id
        logger.warning("No sites found in response")
        return ""

    def login_and_load_site(self, email: str, password: str) -> LoginResult:
        """Log in, then make sure at least one site is available.

        A session without a site cannot show a dashboard, so an empty or
        failing site fetch is reported as a failed login with the
        site-information message.
        """
        result = self.login(email, password)
        if not result.success:
            return result

        try:
            site_id = self.fetch_initial_site_id()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Error fetching site ID: {e}")
            site_id = ""

        if not site_id:
            return LoginResult(
                success=False,
                token=result.token,
                email=result.email,
                error_message=SITE_LOAD_FAILED_MESSAGE,
            )

        return result
