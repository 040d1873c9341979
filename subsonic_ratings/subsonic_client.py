"""
Subsonic API Client

Provides a clean interface to the Subsonic REST API with:
- Salted token authentication (the password never goes over the wire)
- Catalog browsing (artists, albums, songs)
- Rating and star mutations
- Rate limiting and retry logic

Catalog fetches raise SubsonicAPIError so an index build can abort cleanly.
Mutations are best-effort and return an ApiResult instead of raising.
"""

import hashlib
import logging
import random
import string
import time
import requests
from typing import Optional, Dict, Any, List, Callable

from subsonic_ratings.exceptions import SubsonicAPIError
from subsonic_ratings.models import ApiResult, TrackId

logger = logging.getLogger(__name__)

DEFAULT_API_VERSION = "1.15.0"
DEFAULT_CLIENT_ID = "python(subsonic-ratings)"
SALT_CHARS = string.ascii_lowercase + string.digits + string.ascii_uppercase


def _version_tuple(version: str) -> tuple:
    parts = []
    for piece in str(version).split('.'):
        digits = ''.join(ch for ch in piece if ch.isdigit())
        parts.append(int(digits) if digits else 0)
    return tuple(parts)


def generate_salt(length: int = 12) -> str:
    """Random alphanumeric salt used for token authentication."""
    return ''.join(random.choice(SALT_CHARS) for _ in range(length))


def make_token(password: str, salt: str) -> str:
    """Subsonic auth token: md5(password + salt) as lowercase hex."""
    return hashlib.md5((password + salt).encode('utf-8')).hexdigest()


class SubsonicClient:
    """
    Client for the Subsonic REST API.

    This client handles the calls needed to import ratings:
    - Listing artists and walking their albums and songs
    - Setting a 0-5 rating on a song
    - Starring (favoriting) a song
    """

    def __init__(
        self,
        server: str = "localhost",
        username: str = "",
        password: str = "",
        port: int = 4040,
        protocol: str = "https",
        api_version: str = DEFAULT_API_VERSION,
        client_id: str = DEFAULT_CLIENT_ID,
        request_delay: float = 0.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: int = 30
    ):
        """
        Initialize the Subsonic API client.

        Args:
            server: Subsonic server host name (default: localhost)
            username: Subsonic user name
            password: Subsonic password, only used to derive the auth token
            port: Server port (default: 4040)
            protocol: "https" or "http" (default: https)
            api_version: API version to announce; 2.0.0 and above use /rest2
            client_id: Client identifier sent with every request
            request_delay: Delay between requests in seconds (default: 0)
            max_retries: Maximum number of attempts for failed requests (default: 3)
            retry_delay: Base delay for exponential backoff (default: 2.0)
            timeout: Request timeout in seconds (default: 30)
        """
        if protocol not in ("http", "https"):
            raise ValueError(f"Unsupported protocol: {protocol}")
        self.server = server
        self.username = username
        self.port = int(port)
        self.protocol = protocol
        self.api_version = api_version
        self.client_id = client_id
        self.request_delay = request_delay
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.salt = generate_salt()
        self.token = make_token(password, self.salt)
        self.last_request_time = 0

        logger.info(f"SubsonicClient initialized for {self.base_url}")

    def __repr__(self) -> str:
        return f"SubsonicClient(url={self.base_url}, username={self.username})"

    @property
    def base_url(self) -> str:
        rest = "rest2" if _version_tuple(self.api_version) >= (2, 0, 0) else "rest"
        return f"{self.protocol}://{self.server}:{self.port}/{rest}"

    def _auth_params(self) -> Dict[str, str]:
        """Parameters sent with every API call."""
        return {
            'u': self.username,
            's': self.salt,
            't': self.token,
            'v': self.api_version,
            'c': self.client_id,
            'f': 'json',
        }

    def _wait_for_rate_limit(self):
        """Apply rate limiting between requests."""
        if self.request_delay > 0:
            time_since_last = time.time() - self.last_request_time
            if time_since_last < self.request_delay:
                time.sleep(self.request_delay - time_since_last)
        self.last_request_time = time.time()

    def _retry_request(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute a request with retry logic and exponential backoff.

        Only connection problems and 503 responses are retried.
        """
        attempts = max(1, self.max_retries)
        for attempt in range(attempts):
            try:
                return func(*args, **kwargs)
            except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
                last_error = e
            except requests.exceptions.HTTPError as e:
                if e.response is None or e.response.status_code != 503:
                    raise
                last_error = e
            if attempt < attempts - 1:
                wait_time = self.retry_delay * (2 ** attempt)
                logger.warning(
                    f"Subsonic unavailable ({last_error}), retrying in {wait_time}s "
                    f"(attempt {attempt + 1}/{attempts})"
                )
                time.sleep(wait_time)
        raise last_error

    def api_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Call a Subsonic endpoint and return the unwrapped "subsonic-response".

        Args:
            endpoint: Method name, e.g. "getArtists" or "setRating.view"
            params: Method-specific query parameters

        Returns:
            The response body inside the "subsonic-response" envelope

        Raises:
            SubsonicAPIError: transport failure, non-JSON body or a failed status
        """
        url = f"{self.base_url}/{endpoint}"
        query = self._auth_params()
        if params:
            query.update(params)

        def _get():
            self._wait_for_rate_limit()
            r = requests.get(url, params=query, timeout=self.timeout)
            r.raise_for_status()
            return r

        try:
            r = self._retry_request(_get)
        except requests.exceptions.RequestException as e:
            raise SubsonicAPIError(f"Request to {endpoint} failed: {e}") from e

        try:
            body = r.json()
        except ValueError as e:
            raise SubsonicAPIError(f"Invalid JSON from {endpoint}: {e}") from e

        data = body.get('subsonic-response') if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise SubsonicAPIError(f"Missing subsonic-response envelope from {endpoint}")

        if data.get('status') == 'failed':
            error = data.get('error') or {}
            raise SubsonicAPIError(
                f"{endpoint} failed: {error.get('message', 'unknown error')}",
                code=error.get('code'),
            )
        return data

    def ping(self) -> bool:
        """Check connectivity and credentials."""
        self.api_request('ping.view')
        return True

    def get_artists(self) -> List[Dict[str, Any]]:
        """
        List all artists, flattening Subsonic's alphabetical index groups.

        Returns:
            List of {"id", "name", ...} artist dictionaries in server order
        """
        data = self.api_request('getArtists')
        indexes = (data.get('artists') or {}).get('index')
        if not isinstance(indexes, list):
            raise SubsonicAPIError("getArtists returned no artist index")
        artists = []
        for group in indexes:
            logger.debug(f"Index: {group.get('name')}")
            artists.extend(group.get('artist') or [])
        return artists

    def get_artist(self, artist_id: TrackId) -> Dict[str, Any]:
        """
        Fetch one artist with its albums.

        Returns:
            The "artist" payload; its "album" list is always present
        """
        data = self.api_request('getArtist', {'id': artist_id})
        artist = data.get('artist')
        if not isinstance(artist, dict):
            raise SubsonicAPIError(f"getArtist returned no artist for id {artist_id}")
        artist.setdefault('album', [])
        return artist

    def get_album(self, album_id: TrackId) -> Dict[str, Any]:
        """
        Fetch one album with its songs.

        Returns:
            The "album" payload; its "song" list is always present
        """
        data = self.api_request('getAlbum', {'id': album_id})
        album = data.get('album')
        if not isinstance(album, dict):
            raise SubsonicAPIError(f"getAlbum returned no album for id {album_id}")
        album.setdefault('song', [])
        return album

    def set_rating(self, track_id: TrackId, rating: float) -> ApiResult:
        """
        Set the 0-5 rating of a song.

        Returns:
            ApiResult; failures are returned, not raised
        """
        try:
            data = self.api_request('setRating.view', {'id': track_id, 'rating': f"{rating:0.1f}"})
        except SubsonicAPIError as e:
            return ApiResult.failure(str(e))
        return ApiResult.success(data)

    def star(self, track_id: TrackId) -> ApiResult:
        """
        Star (favorite) a song.

        Returns:
            ApiResult; failures are returned, not raised
        """
        try:
            data = self.api_request('star', {'id': track_id})
        except SubsonicAPIError as e:
            return ApiResult.failure(str(e))
        return ApiResult.success(data)
