"""Authentication helpers for Gmail API."""

from __future__ import annotations

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError

from .config import GmailConfig
from .logger import get_logger

logger = get_logger(__name__)


def get_gmail_service(config: GmailConfig | None = None) -> Resource:
    """Return an authenticated Gmail API service object.

    Loads the cached token from ``config.token_file`` if available. When the
    token is expired it is silently refreshed. If no token exists, an OAuth
    browser flow is launched (requires the client secrets file at
    ``config.credentials_file``).
    """
    config = config or GmailConfig()
    config.token_file.parent.mkdir(parents=True, exist_ok=True)

    creds: Credentials | None = None

    if config.token_file.exists():
        creds = Credentials.from_authorized_user_file(str(config.token_file), config.scopes)

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    elif not creds or not creds.valid:
        if not config.credentials_file.exists():
            raise FileNotFoundError(
                f"Credentials file not found at {config.credentials_file}.\n"
                "Download your OAuth client credentials from the Google Cloud Console "
                "and save them as:\n"
                f"  {config.credentials_file}"
            )
        flow = InstalledAppFlow.from_client_secrets_file(str(config.credentials_file), config.scopes)
        creds = flow.run_local_server(port=0)

    config.token_file.write_text(creds.to_json())

    return build("gmail", "v1", credentials=creds)


def check_auth(config: GmailConfig | None = None) -> str | None:
    """Test whether Gmail authentication is working.

    Returns the authenticated address, or None when the Gmail API cannot be
    reached with the stored credentials.
    """
    try:
        service = get_gmail_service(config)
        profile = service.users().getProfile(userId="me").execute()
    except (FileNotFoundError, GoogleAuthError, HttpError) as exc:
        logger.error("Authentication failed: %s", exc)
        return None
    return profile["emailAddress"]
