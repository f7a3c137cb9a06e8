import os
import pickle
import logging

from google_auth_oauthlib.flow import InstalledAppFlow
from google.auth.transport.requests import Request
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import service_account
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from providers.interface import ProviderConnectionError

logger = logging.getLogger("google_service")

# Full Drive scope: permissions can only be deleted with it
SCOPES = ['https://www.googleapis.com/auth/drive']

def _load_user_credentials(token_path, secrets_path):
    creds = None
    if os.path.exists(token_path):
        with open(token_path, 'rb') as token:
            creds = pickle.load(token)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        try:
            creds.refresh(Request())
        except GoogleAuthError as e:
            logger.error(f"Failed to refresh token: {e}")
            creds = None

    if not creds:
        if not os.path.exists(secrets_path):
            raise ProviderConnectionError(
                f"{secrets_path} not found. Download OAuth client secrets from Google Cloud Console."
            )
        flow = InstalledAppFlow.from_client_secrets_file(secrets_path, SCOPES)
        creds = flow.run_local_server(port=0)

    with open(token_path, 'wb') as token:
        pickle.dump(creds, token)
    return creds

def connect_google(config):
    """
    Build an authenticated Drive v3 service.
    Uses a service account key when configured (unattended hosts),
    otherwise the installed-app OAuth flow with a cached token.
    """
    key_file = config.get("google_service_account")
    try:
        if key_file:
            creds = service_account.Credentials.from_service_account_file(key_file, scopes=SCOPES)
        else:
            creds = _load_user_credentials(config["google_token"], config["google_client_secrets"])
    except (OSError, ValueError, GoogleAuthError) as e:
        raise ProviderConnectionError(f"Google authentication failed: {e}") from e

    service = build('drive', 'v3', credentials=creds, cache_discovery=False)
    try:
        about = service.about().get(fields="user").execute()
    except HttpError as e:
        raise ProviderConnectionError(f"Drive API rejected credentials: {e}") from e

    user_info = about.get('user', {})
    logger.info(f"Connected to Google Drive as {user_info.get('displayName', 'Google User')} "
                f"({user_info.get('emailAddress', '')})")
    return service
