from abc import ABC, abstractmethod
from typing import Dict, Any, List
import smtplib
from email.message import EmailMessage
import json
import urllib.request
import logging

logger = logging.getLogger("notifications")

class INotificationChannel(ABC):
    @abstractmethod
    def send(self, message: str, level: str = "info") -> bool:
        pass

class EmailChannel(INotificationChannel):
    def __init__(self, config: Dict[str, Any]):
        self.host = config.get("smtp_host", "localhost")
        self.port = config.get("smtp_port", 587)
        self.user = config.get("user")
        self.password = config.get("password")
        self.sender = config.get("sender") or self.user
        self.recipients = config.get("recipients", [])

        if not self.recipients:
            logger.warning("EmailChannel configured without recipients")

    def send(self, message: str, level: str = "info") -> bool:
        if not self.recipients:
            return False

        msg = EmailMessage()
        msg.set_content(message)
        msg["Subject"] = f"[{level.upper()}] Sharing reset"
        if self.sender:
            msg["From"] = self.sender
        msg["To"] = ", ".join(self.recipients)

        try:
            with smtplib.SMTP(self.host, self.port) as server:
                if self.user and self.password:
                    server.starttls()
                    server.login(self.user, self.password)
                server.send_message(msg)
            return True
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False

class WebhookChannel(INotificationChannel):
    def __init__(self, config: Dict[str, Any]):
        self.url = config.get("url")
        self.timeout = config.get("timeout", 10)
        if not self.url:
            logger.warning("WebhookChannel configured without URL")

    def _payload(self, message: str, level: str) -> Dict[str, str]:
        text = f"[{level.upper()}] {message}"
        # Slack expects 'text', Discord-style hooks expect 'content'
        if "slack.com" in self.url:
            return {"text": text}
        return {"content": text, "username": "sharing-reset"}

    def send(self, message: str, level: str = "info") -> bool:
        if not self.url:
            return False

        req = urllib.request.Request(
            self.url,
            data=json.dumps(self._payload(message, level)).encode("utf-8"),
            headers={"Content-Type": "application/json", "User-Agent": "sharing-reset/1.0"}
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return 200 <= response.getcode() < 300
        except OSError as e:
            logger.error(f"Failed to send webhook: {e}")
            return False

class NotificationManager:
    def __init__(self):
        self.channels: List[INotificationChannel] = []

    def register(self, channel: INotificationChannel):
        self.channels.append(channel)

    def load_from_config(self, config: Dict[str, Any]):
        """
        Register channels from the "notifications" config section:
        {"email": {"enabled": bool, ...}, "webhook": {"enabled": bool, "url": ...}}
        """
        if config.get("email", {}).get("enabled"):
            self.register(EmailChannel(config["email"]))
        if config.get("webhook", {}).get("enabled"):
            self.register(WebhookChannel(config["webhook"]))

    def notify(self, message: str, level: str = "info"):
        for channel in self.channels:
            if not channel.send(message, level):
                logger.warning(f"{type(channel).__name__} did not deliver notification")

    def traversal_complete(self, root_id: str, counts: Dict[str, int]):
        self.notify(
            f"Sharing reset of {root_id!r} finished: "
            f"{counts.get('processed_folders', 0):,} folders and "
            f"{counts.get('processed_files', 0):,} files processed."
        )

    def invocation_failed(self, root_id: str, error: Exception):
        self.notify(f"Sharing reset of {root_id!r} stopped: {error}", level="error")
