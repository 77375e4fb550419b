"""
X API Client
Authenticated wrapper around the X API v2 REST endpoints used by the tools.
"""
import requests
from typing import Any, Dict, List, NamedTuple, Optional
from urllib.parse import quote

from .config import Config, parse_timeout
from .errors import ApiError, HttpError
from .logger import logger

USER_FIELDS = 'id,name,username,description,public_metrics,profile_image_url,verified,created_at'
TWEET_FIELDS = 'id,text,author_id,created_at,public_metrics,context_annotations,referenced_tweets'
TIMELINE_TWEET_FIELDS = 'id,text,author_id,created_at,public_metrics'


class SearchTweetsParams(NamedTuple):
    """Query parameters for the recent-search endpoint."""
    query: str
    max_results: Optional[int] = None
    tweet_fields: Optional[List[str]] = None
    user_fields: Optional[List[str]] = None
    expansions: Optional[List[str]] = None

    def to_query(self) -> Dict[str, str]:
        params = {'query': self.query}
        if self.max_results is not None:
            params['max_results'] = str(self.max_results)
        if self.tweet_fields:
            params['tweet.fields'] = ','.join(self.tweet_fields)
        if self.user_fields:
            params['user.fields'] = ','.join(self.user_fields)
        if self.expansions:
            params['expansions'] = ','.join(self.expansions)
        return params


def _segment(value: str) -> str:
    """Percent-encode one URL path segment so the signed URL is the one sent."""
    return quote(str(value), safe='')


def _is_not_found(error: Dict[str, Any]) -> bool:
    return (error.get('title') == 'Not Found Error'
            or 'resource-not-found' in str(error.get('type', '')))


class XClient:
    """Wrapper for X API v2 using a pluggable authorization strategy."""

    def __init__(self, signer, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            signer: Object with ``authorization_header(method, url, params)``
                (``HmacSigner`` or ``BearerToken``)
            base_url: API root (defaults to X_API_BASE_URL)
            timeout: Per-request timeout in seconds (defaults to X_HTTP_TIMEOUT)
            session: Optional preconfigured requests session
        """
        self.signer = signer
        self.base_url = (base_url or Config.X_API_BASE_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else parse_timeout(Config.X_HTTP_TIMEOUT)
        self.session = session or requests.Session()

    def get_user_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        """Get user info by username (without @). Returns None if the user does not exist."""
        body = self._request('GET', f'/users/by/username/{_segment(username)}', params={'user.fields': USER_FIELDS})
        return self._single(body)

    def get_user_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get user info by numeric user ID. Returns None if the user does not exist."""
        body = self._request('GET', f'/users/{_segment(user_id)}', params={'user.fields': USER_FIELDS})
        return self._single(body)

    def post_tweet(self, text: str, reply_to: Optional[str] = None) -> Dict[str, Any]:
        """Create a tweet.

        Args:
            text: Tweet text
            reply_to: ID of the tweet to reply to

        Returns:
            Created tweet data (``id`` and ``text``)
        """
        payload: Dict[str, Any] = {'text': text}
        if reply_to:
            payload['reply'] = {'in_reply_to_tweet_id': reply_to}

        body = self._request('POST', '/tweets', json_body=payload)
        self._raise_for_errors(body)
        data = body.get('data')
        if not data:
            raise ApiError(400, 'No data returned from post tweet')
        return data

    def search_tweets(self, params: SearchTweetsParams) -> List[Dict[str, Any]]:
        """Search tweets from the last seven days."""
        body = self._request('GET', '/tweets/search/recent', params=params.to_query())
        return self._many(body)

    def get_tweet(self, tweet_id: str) -> Optional[Dict[str, Any]]:
        """Get a specific tweet. Returns None if it does not exist."""
        params = {
            'tweet.fields': TWEET_FIELDS,
            'expansions': 'author_id',
        }
        body = self._request('GET', f'/tweets/{_segment(tweet_id)}', params=params)
        return self._single(body)

    def get_user_tweets(self, user_id: str, max_results: Optional[int] = None) -> List[Dict[str, Any]]:
        """Get a user's most recent tweets."""
        params = {'tweet.fields': TIMELINE_TWEET_FIELDS}
        if max_results is not None:
            params['max_results'] = str(max_results)
        body = self._request('GET', f'/users/{_segment(user_id)}/tweets', params=params)
        return self._many(body)

    def _single(self, body: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        data = body.get('data')
        errors = body.get('errors') or []
        if data is None and errors and all(_is_not_found(e) for e in errors):
            return None
        self._raise_for_errors(body)
        return data

    def _many(self, body: Dict[str, Any]) -> List[Dict[str, Any]]:
        self._raise_for_errors(body)
        return body.get('data') or []

    @staticmethod
    def _raise_for_errors(body: Dict[str, Any]):
        errors = body.get('errors')
        if errors:
            raise ApiError(400, f'API errors: {errors}')

    def _request(self, method: str, path: str, params: Optional[Dict[str, str]] = None,
                 json_body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send one signed request and return the decoded JSON body."""
        url = f'{self.base_url}{path}'
        params = params or {}
        headers = {
            'Authorization': self.signer.authorization_header(method, url, params),
            'Content-Type': 'application/json',
        }

        try:
            response = self.session.request(
                method,
                url,
                params=params or None,
                json=json_body,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error('%s %s failed: %s', method, path, e)
            raise HttpError(str(e)) from e

        if not response.ok:
            logger.warning('%s %s returned HTTP %s', method, path, response.status_code)
            raise ApiError(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            logger.error('Failed to parse response from %s %s', method, path)
            raise ApiError(response.status_code, f'Invalid JSON response: {e}') from e
