import os
import logging

import dropbox
import requests
from dropbox.exceptions import ApiError, AuthError
from dotenv import load_dotenv

from logger_setup import format_api_error
from providers.interface import ProviderConnectionError

logger = logging.getLogger("dropbox_service")

def connect_dropbox():
    """Connect to Dropbox with the refresh token stored in .env."""
    logger.info("Attempting to connect to Dropbox...")
    load_dotenv()

    app_key = os.getenv("DROPBOX_APP_KEY")
    app_secret = os.getenv("DROPBOX_APP_SECRET")
    refresh_token = os.getenv("DROPBOX_REFRESH_TOKEN")

    if not all([app_key, app_secret, refresh_token]):
        raise ProviderConnectionError(
            "Missing DROPBOX_APP_KEY / DROPBOX_APP_SECRET / DROPBOX_REFRESH_TOKEN in .env "
            "(run dropbox_auth.py)"
        )

    session = requests.Session()
    adapter = requests.adapters.HTTPAdapter(pool_connections=4, pool_maxsize=4, max_retries=3)
    session.mount('https://', adapter)

    dbx = dropbox.Dropbox(
        oauth2_refresh_token=refresh_token,
        app_key=app_key,
        app_secret=app_secret,
        session=session,
        timeout=30
    )
    try:
        account = dbx.users_get_current_account()
    except AuthError as e:
        raise ProviderConnectionError(f"Dropbox authentication failed: {e}") from e
    except ApiError as e:
        raise ProviderConnectionError(format_api_error(e)) from e

    logger.info(f"Connected to Dropbox as: {account.name.display_name} ({account.email})")
    return dbx
