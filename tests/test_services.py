import os
import unittest
from unittest.mock import patch

import httplib2
from googleapiclient.errors import HttpError

from dropbox_service import connect_dropbox
from google_service import connect_google
from providers.interface import ProviderConnectionError
from reset_service import build_provider
from providers.memory_provider import MemoryProvider

class TestConnections(unittest.TestCase):
    @patch("dropbox_service.load_dotenv")
    @patch.dict(os.environ, {"DROPBOX_APP_KEY": "", "DROPBOX_APP_SECRET": "", "DROPBOX_REFRESH_TOKEN": ""})
    def test_dropbox_requires_refresh_token(self, _dotenv):
        with self.assertRaises(ProviderConnectionError):
            connect_dropbox()

    @patch("google_service.build")
    @patch("google_service.service_account.Credentials.from_service_account_file")
    def test_google_rejected_credentials(self, mock_creds, mock_build):
        mock_build.return_value.about.return_value.get.return_value.execute.side_effect = HttpError(
            httplib2.Response({"status": "401"}), b"{}"
        )
        with self.assertRaises(ProviderConnectionError):
            connect_google({"google_service_account": "key.json"})
        mock_creds.assert_called_once()

    def test_google_missing_client_secrets(self):
        with self.assertRaises(ProviderConnectionError):
            connect_google({
                "google_service_account": "",
                "google_token": "/nonexistent/token.pickle",
                "google_client_secrets": "/nonexistent/client_secrets.json",
            })

    def test_memory_provider_needs_no_credentials(self):
        self.assertIsInstance(build_provider({"provider": "memory"}), MemoryProvider)

if __name__ == '__main__':
    unittest.main()
