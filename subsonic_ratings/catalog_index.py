"""
Catalog Index Builder

Walks the Subsonic catalog (artists -> albums -> songs) and builds the nested
lookup used for rating matching:

    normalized artist -> normalized album -> normalized title -> [song ids]

Song id lists keep duplicates in traversal order; a title can appear on one
album more than once (bonus tracks) or on several albums sharing a key.

Failure policy: the build aborts on the first failed or malformed fetch and
raises CatalogUnavailableError. A partial index is never returned, so it can
never be cached as if it were the whole catalog.
"""

import logging
from typing import Any, Dict, List

from tqdm import tqdm

from subsonic_ratings.exceptions import CatalogUnavailableError, SubsonicAPIError
from subsonic_ratings.models import CatalogIndex, TrackId
from subsonic_ratings.text_utils import normalize

logger = logging.getLogger(__name__)


def _sort_key_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def sort_albums(albums: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort albums by year (missing year counts as 0); ties keep server order."""
    return sorted(albums, key=lambda a: _sort_key_int(a.get('year')))


def sort_songs(songs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Sort songs by track number (missing counts as 0); ties keep server order."""
    return sorted(songs, key=lambda s: _sort_key_int(s.get('track')))


def add_track(index: CatalogIndex, artist: str, album: str, title: str, track_id: TrackId) -> None:
    """Append a song id under index[artist][album][title], creating levels on first use."""
    albums = index.setdefault(artist, {})
    titles = albums.setdefault(album, {})
    titles.setdefault(title, []).append(track_id)


def _require_list(payload: Dict[str, Any], key: str, what: str) -> List[Dict[str, Any]]:
    items = payload.get(key)
    if not isinstance(items, list):
        raise CatalogUnavailableError(f"Malformed {what}: '{key}' is not a list")
    return items


def build_catalog_index(client, show_progress: bool = False) -> CatalogIndex:
    """
    Build a CatalogIndex snapshot from the Subsonic server.

    Args:
        client: SubsonicClient (or anything with get_artists/get_artist/get_album)
        show_progress: Show a tqdm progress bar over artists

    Returns:
        The complete nested index

    Raises:
        CatalogUnavailableError: any fetch failed or returned malformed data
    """
    index: CatalogIndex = {}
    track_count = 0

    try:
        artists = client.get_artists()
        for artist in tqdm(artists, desc="Indexing artists", unit="artist", disable=not show_progress):
            artist_name = artist.get('name') or ""
            norm_artist = normalize(artist_name)
            logger.info(f"{artist.get('id')} - {artist_name} ({norm_artist})")

            artist_data = client.get_artist(artist['id'])
            albums = _require_list(artist_data, 'album', f"artist {artist['id']}")
            for album in sort_albums(albums):
                logger.debug(f"  {_sort_key_int(album.get('year')):04d} - {album.get('name')} by {album.get('artist', artist_name)}")
                norm_album = normalize(album.get('name'))

                album_data = client.get_album(album['id'])
                songs = _require_list(album_data, 'song', f"album {album['id']}")
                for song in sort_songs(songs):
                    logger.debug(f"    {_sort_key_int(song.get('track')):02d} - {song.get('title')}")
                    add_track(index, norm_artist, norm_album, normalize(song.get('title')), song['id'])
                    track_count += 1
    except SubsonicAPIError as e:
        raise CatalogUnavailableError(f"Catalog walk aborted: {e}") from e
    except (KeyError, TypeError, AttributeError) as e:
        raise CatalogUnavailableError(f"Catalog walk aborted on malformed data: {e!r}") from e

    logger.info(f"Indexed {track_count} tracks from {len(index)} artists")
    return index
