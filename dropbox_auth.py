#!/usr/bin/env python3
"""
Dropbox OAuth Authorization Helper
===================================
Run once to authorize the app and save a refresh token to .env.
The app needs sharing scopes to list and remove members and links.

Usage:
    python3 dropbox_auth.py
"""

import os
import sys
import webbrowser
from dotenv import load_dotenv, set_key

import dropbox
from dropbox import DropboxOAuth2FlowNoRedirect
from dropbox.exceptions import DropboxException

SCOPES = ["files.metadata.read", "sharing.read", "sharing.write", "account_info.read"]


def main():
    load_dotenv()

    app_key = os.getenv("DROPBOX_APP_KEY")
    app_secret = os.getenv("DROPBOX_APP_SECRET")

    if not app_key or not app_secret:
        print("Error: DROPBOX_APP_KEY and DROPBOX_APP_SECRET must be set in .env")
        sys.exit(1)

    print("\n" + "=" * 60)
    print("  DROPBOX AUTHORIZATION SETUP")
    print("=" * 60)

    auth_flow = DropboxOAuth2FlowNoRedirect(
        app_key,
        app_secret,
        token_access_type='offline',
        scope=SCOPES
    )
    authorize_url = auth_flow.start()

    print(f"\n1. Visit this URL (opening your browser):\n   {authorize_url}\n")
    webbrowser.open(authorize_url)
    print("2. Click 'Allow' and paste the authorization code below\n")

    auth_code = input("Enter the authorization code: ").strip()
    if not auth_code:
        print("Error: No authorization code provided")
        sys.exit(1)

    try:
        oauth_result = auth_flow.finish(auth_code)
    except DropboxException as e:
        print(f"\nError: Could not complete authorization - {e}")
        sys.exit(1)

    env_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), '.env')
    set_key(env_path, "DROPBOX_REFRESH_TOKEN", oauth_result.refresh_token)

    dbx = dropbox.Dropbox(
        oauth2_refresh_token=oauth_result.refresh_token,
        app_key=app_key,
        app_secret=app_secret
    )
    account = dbx.users_get_current_account()
    print(f"\nAuthorized as: {account.name.display_name} ({account.email})")
    print("Refresh token saved to .env. Start a reset with:")
    print("    python3 sharing_reset.py --provider dropbox --start --root ''")


if __name__ == "__main__":
    main()
