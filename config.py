import os
import json
import logging
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger("config")

CONFIG_FILE = "config.json"

DEFAULT_CONFIG: Dict[str, Any] = {
    "provider": "google",
    # None: the provider's own root (see ROOT_DEFAULTS)
    "root_id": None,
    # Hosts kill an invocation at 300s; stop starting new nodes well before that
    "time_budget_seconds": 270,
    "resume_delay_seconds": 60,
    "state_db": "sharing_state.db",
    "checkpoint_url": "",
    "key_prefix": "sharing_reset.",
    "dry_run": False,
    "poll_interval_seconds": 5,
    "port": 8766,
    "google_token": "token_google.pickle",
    "google_client_secrets": "client_secrets.json",
    "google_service_account": "",
    "notifications": {
        "email": {"enabled": False},
        "webhook": {"enabled": False},
    },
}

# Root folder id per provider: Drive aliases "My Drive" as "root", Dropbox uses ""
ROOT_DEFAULTS = {
    "google": "root",
    "dropbox": "",
    "memory": "root",
}

# Environment variable -> (config key, type)
ENV_OVERRIDES = {
    "SHARING_RESET_PROVIDER": ("provider", str),
    "SHARING_RESET_ROOT_ID": ("root_id", str),
    "SHARING_RESET_TIME_BUDGET": ("time_budget_seconds", float),
    "SHARING_RESET_RESUME_DELAY": ("resume_delay_seconds", float),
    "SHARING_RESET_STATE_DB": ("state_db", str),
    "SHARING_RESET_CHECKPOINT_URL": ("checkpoint_url", str),
    "SHARING_RESET_DRY_RUN": ("dry_run", bool),
    "GOOGLE_SERVICE_ACCOUNT_FILE": ("google_service_account", str),
}


class ConfigError(Exception):
    pass


def _coerce(value: str, kind):
    if kind is bool:
        return value.strip().lower() in ("1", "true", "yes", "on")
    return kind(value)


def load_config(path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Defaults, overlaid by config.json, then environment (.env is loaded first),
    then explicit overrides (command-line flags).
    """
    load_dotenv()
    config = json.loads(json.dumps(DEFAULT_CONFIG))

    config_path = path or os.path.join(os.path.dirname(os.path.abspath(__file__)), CONFIG_FILE)
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config.update(json.load(f))
            logger.info(f"Configuration loaded from {config_path}")
        except (OSError, ValueError) as e:
            raise ConfigError(f"Cannot read {config_path}: {e}") from e
    else:
        logger.debug("No config file found, using defaults")

    for env_name, (key, kind) in ENV_OVERRIDES.items():
        raw = os.getenv(env_name)
        if raw is None or raw == "":
            continue
        try:
            config[key] = _coerce(raw, kind)
        except ValueError as e:
            raise ConfigError(f"Invalid value for {env_name}: {raw!r}") from e

    config.update(overrides or {})

    if config["provider"] in ROOT_DEFAULTS and config["root_id"] is None:
        config["root_id"] = ROOT_DEFAULTS[config["provider"]]

    validate_config(config)
    return config


def validate_config(config: Dict[str, Any]):
    if config["provider"] not in ("google", "dropbox", "memory"):
        raise ConfigError(f"Unknown provider: {config['provider']!r}")
    if config["time_budget_seconds"] <= 0:
        raise ConfigError("time_budget_seconds must be positive")
    if config["resume_delay_seconds"] < 0:
        raise ConfigError("resume_delay_seconds cannot be negative")
    if not isinstance(config["root_id"], str):
        raise ConfigError("root_id must be a string")
    if config["provider"] == "dropbox" and config["root_id"] == "root":
        raise ConfigError("Dropbox has no 'root' folder id; use \"\" for the account root or an \"id:...\" folder id")

