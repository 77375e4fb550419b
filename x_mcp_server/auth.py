"""
Authentication Module
Sign X API requests with OAuth 1.0a (HMAC-SHA1) or a static bearer token.
"""

import base64
import hashlib
import hmac
import os
import secrets
import string
import time
from typing import Callable, Dict, Mapping, NamedTuple, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from .errors import AuthError, ConfigError

NONCE_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
NONCE_LENGTH = 32
SIGNATURE_METHOD = "HMAC-SHA1"
OAUTH_VERSION = "1.0"

_DEFAULT_PORTS = {"http": 80, "https": 443}


class OAuthCredentials(NamedTuple):
    """OAuth 1.0a consumer and access-token credentials for the X API."""

    consumer_key: str
    consumer_secret: str
    access_token: str
    access_token_secret: str

    @classmethod
    def from_env(cls) -> "OAuthCredentials":
        """
        Load credentials from the environment.

        Reads X_CONSUMER_KEY, X_CONSUMER_SECRET, X_ACCESS_TOKEN and
        X_ACCESS_TOKEN_SECRET.

        Raises:
            ConfigError: if any of them is unset or empty
        """
        values = []
        for name in ("X_CONSUMER_KEY", "X_CONSUMER_SECRET", "X_ACCESS_TOKEN", "X_ACCESS_TOKEN_SECRET"):
            value = os.getenv(name)
            if not value:
                raise ConfigError(f"{name} not found")
            values.append(value)
        return cls(*values)

    def __repr__(self) -> str:
        return f"OAuthCredentials(consumer_key='***', consumer_secret='***', access_token='***', access_token_secret='***')"


def percent_encode(value: str) -> str:
    """
    Percent-encode a string per RFC 3986.

    Only ``A-Z a-z 0-9 - _ . ~`` pass through; everything else, including
    space and ``/``, becomes ``%XX`` with uppercase hex over the UTF-8 bytes.
    """
    return quote(value, safe="~")


def percent_decode(value: str) -> str:
    """Reverse ``percent_encode``, decoding ``%XX`` escapes as UTF-8."""
    return unquote(value)


def generate_nonce(length: int = NONCE_LENGTH) -> str:
    """Return a random alphanumeric nonce drawn from a CSPRNG."""
    return "".join(secrets.choice(NONCE_ALPHABET) for _ in range(length))


def normalize_url(url: str) -> str:
    """Base string URI: lowercase scheme and host, no default port, no query or fragment."""
    parts = urlsplit(url)
    scheme = parts.scheme.lower()
    host = (parts.hostname or "").lower()
    if parts.port and parts.port != _DEFAULT_PORTS.get(scheme):
        host = f"{host}:{parts.port}"
    return urlunsplit((scheme, host, parts.path or "/", "", ""))


def build_parameter_string(params: Mapping[str, str]) -> str:
    """
    Build the normalized parameter string.

    Every key and value is percent-encoded, entries are sorted by encoded
    key and joined as ``key=value`` pairs with ``&``. The result does not
    depend on the insertion order of ``params``.
    """
    encoded = sorted((percent_encode(k), percent_encode(v)) for k, v in params.items())
    return "&".join(f"{k}={v}" for k, v in encoded)


def build_base_string(method: str, url: str, param_string: str) -> str:
    return "&".join([method.upper(), percent_encode(normalize_url(url)), percent_encode(param_string)])


def build_signing_key(consumer_secret: str, token_secret: str) -> str:
    return f"{percent_encode(consumer_secret)}&{percent_encode(token_secret)}"


def sign_base_string(signing_key: str, base_string: str) -> str:
    """HMAC-SHA1 over the base string, base64 encoded with padding."""
    digest = hmac.new(signing_key.encode("utf-8"), base_string.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("ascii")


def _check_request_params(params: Mapping[str, str]) -> None:
    for key in params:
        if key.startswith("oauth_"):
            raise AuthError(f"request parameter '{key}' collides with an OAuth protocol parameter")


def generate_auth_header(
    credentials: OAuthCredentials,
    method: str,
    url: str,
    params: Optional[Mapping[str, str]] = None,
    nonce: Optional[str] = None,
    timestamp: Optional[str] = None,
) -> str:
    """
    Generate an OAuth 1.0a Authorization header value.

    Args:
        credentials: Consumer and access-token credentials
        method: HTTP method of the request
        url: Request URL; any query string is ignored for signing
        params: Query or form parameters that travel with the request
        nonce: Fixed nonce (generated when omitted)
        timestamp: Fixed epoch-seconds timestamp (current time when omitted)

    Returns:
        Header value of the form ``OAuth oauth_consumer_key="...", ...``

    Raises:
        AuthError: if a secret is empty or a request parameter uses an
            ``oauth_`` key
    """
    if not credentials.consumer_secret or not credentials.access_token_secret:
        raise AuthError("consumer secret and access token secret must not be empty")
    params = dict(params or {})
    _check_request_params(params)

    oauth_params: Dict[str, str] = {
        "oauth_consumer_key": credentials.consumer_key,
        "oauth_nonce": nonce if nonce is not None else generate_nonce(),
        "oauth_signature_method": SIGNATURE_METHOD,
        "oauth_timestamp": timestamp if timestamp is not None else str(int(time.time())),
        "oauth_token": credentials.access_token,
        "oauth_version": OAUTH_VERSION,
    }

    all_params = dict(oauth_params)
    all_params.update(params)

    base_string = build_base_string(method, url, build_parameter_string(all_params))
    signing_key = build_signing_key(credentials.consumer_secret, credentials.access_token_secret)
    oauth_params["oauth_signature"] = sign_base_string(signing_key, base_string)

    header = ", ".join(f'{k}="{percent_encode(v)}"' for k, v in sorted(oauth_params.items()))
    return f"OAuth {header}"


class HmacSigner:
    """Per-request OAuth 1.0a HMAC-SHA1 signing."""

    def __init__(self, credentials: OAuthCredentials,
                 nonce_factory: Callable[[], str] = generate_nonce,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the signer.

        Args:
            credentials: OAuth 1.0a credentials
            nonce_factory: Source of nonces
            clock: Source of the current Unix time in seconds

        Raises:
            AuthError: if any credential part is empty
        """
        if not all(credentials):
            raise AuthError("all four OAuth credential values are required")
        self.credentials = credentials
        self._nonce_factory = nonce_factory
        self._clock = clock

    def authorization_header(self, method: str, url: str, params: Optional[Mapping[str, str]] = None) -> str:
        return generate_auth_header(
            self.credentials,
            method,
            url,
            params,
            nonce=self._nonce_factory(),
            timestamp=str(int(self._clock())),
        )


class BearerToken:
    """Fixed app-only bearer token authentication."""

    def __init__(self, token: str):
        if not token:
            raise AuthError("bearer token must not be empty")
        self._token = token

    def authorization_header(self, method: str, url: str, params: Optional[Mapping[str, str]] = None) -> str:
        return f"Bearer {self._token}"

    @classmethod
    def from_env(cls) -> "BearerToken":
        token = os.getenv("X_BEARER_TOKEN")
        if not token:
            raise ConfigError("X_BEARER_TOKEN not found")
        return cls(token)


def signer_from_env(mode: str):
    """
    Build the signing strategy selected by ``mode``.

    Args:
        mode: ``oauth1`` for per-request HMAC signing, ``bearer`` for a fixed token

    Raises:
        ConfigError: on an unknown mode or missing credentials
    """
    if mode == "oauth1":
        return HmacSigner(OAuthCredentials.from_env())
    if mode == "bearer":
        return BearerToken.from_env()
    raise ConfigError(f"unknown X_AUTH_MODE '{mode}' (expected 'oauth1' or 'bearer')")
