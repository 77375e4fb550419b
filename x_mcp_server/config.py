from dotenv import load_dotenv
import os
from typing import NamedTuple

from . import __version__
from .errors import ConfigError

load_dotenv()

PROTOCOL_VERSION = '2024-11-05'


class Config:
    X_CONSUMER_KEY = os.getenv('X_CONSUMER_KEY')
    X_CONSUMER_SECRET = os.getenv('X_CONSUMER_SECRET')
    X_ACCESS_TOKEN = os.getenv('X_ACCESS_TOKEN')
    X_ACCESS_TOKEN_SECRET = os.getenv('X_ACCESS_TOKEN_SECRET')
    X_BEARER_TOKEN = os.getenv('X_BEARER_TOKEN')

    X_AUTH_MODE = os.getenv('X_AUTH_MODE', '').strip().lower()
    X_API_BASE_URL = os.getenv('X_API_BASE_URL', 'https://api.twitter.com/2')
    X_HTTP_TIMEOUT = os.getenv('X_HTTP_TIMEOUT', '30')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


def parse_timeout(raw) -> float:
    """Parse X_HTTP_TIMEOUT into a positive number of seconds.

    Raises:
        ConfigError: if the value is not a positive number
    """
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"X_HTTP_TIMEOUT must be a number of seconds, got '{raw}'")
    if timeout <= 0:
        raise ConfigError(f"X_HTTP_TIMEOUT must be positive, got '{raw}'")
    return timeout


class ServerInfo(NamedTuple):
    """Static identity reported to the host on ``initialize``."""
    name: str = 'x-mcp-server'
    version: str = __version__
    protocol_version: str = PROTOCOL_VERSION


def resolve_auth_mode() -> str:
    """Pick ``oauth1`` or ``bearer`` from X_AUTH_MODE, else from which secrets are set."""
    if Config.X_AUTH_MODE:
        return Config.X_AUTH_MODE
    oauth_vars = (Config.X_CONSUMER_KEY, Config.X_CONSUMER_SECRET,
                  Config.X_ACCESS_TOKEN, Config.X_ACCESS_TOKEN_SECRET)
    if all(oauth_vars):
        return 'oauth1'
    if Config.X_BEARER_TOKEN:
        return 'bearer'
    return 'oauth1'
