"""Index cache: persist a CatalogIndex snapshot between runs.

The cache is a single JSON file. It has no expiry; run with --clear-cache to
force a fresh catalog walk. A missing, unreadable or malformed cache is a
cache miss, never an error for the caller.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Callable, Optional

from subsonic_ratings.exceptions import CacheError
from subsonic_ratings.models import CatalogIndex

logger = logging.getLogger(__name__)


def validate_index_shape(obj: Any) -> CatalogIndex:
    """Check the artist -> album -> title -> [ids] nesting and return the index.

    Raises CacheError on the first level that does not match.
    """
    if not isinstance(obj, dict):
        raise CacheError("index root is not a mapping")
    for artist, albums in obj.items():
        if not isinstance(albums, dict):
            raise CacheError(f"albums of {artist!r} are not a mapping")
        for album, titles in albums.items():
            if not isinstance(titles, dict):
                raise CacheError(f"titles of {artist!r}/{album!r} are not a mapping")
            for title, ids in titles.items():
                if not isinstance(ids, list) or not all(isinstance(i, (str, int)) for i in ids):
                    raise CacheError(f"ids of {artist!r}/{album!r}/{title!r} are not a list of ids")
    return obj


class IndexCache:
    """JSON file cache for the catalog index."""

    def __init__(self, path):
        self.path = Path(path).expanduser()

    def __repr__(self) -> str:
        return f"IndexCache(path={self.path})"

    def load(self) -> Optional[CatalogIndex]:
        """Return the cached index, or None on a miss or a corrupt cache."""
        if not self.path.is_file():
            return None
        logger.info(f"Loading catalog index from cache {self.path}")
        try:
            with self.path.open('r', encoding='utf-8') as f:
                index = validate_index_shape(json.load(f))
        except (OSError, ValueError, CacheError) as e:
            logger.error(f"Failed loading cache {self.path}: {e}")
            return None
        if not index:
            logger.info(f"Cache {self.path} holds an empty index, ignoring it")
            return None
        return index

    def save(self, index: CatalogIndex) -> bool:
        """Write the index, replacing any previous cache contents.

        Returns False when the cache cannot be written; the previous cache,
        if any, is left in place.
        """
        tmp_path = self.path.with_name(self.path.name + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open('w', encoding='utf-8') as f:
                json.dump(index, f, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.error(f"Failed saving cache {self.path}: {e}")
            try:
                tmp_path.unlink()
            except OSError:
                pass
            return False
        logger.info(f"Saved catalog index to cache {self.path}")
        return True

    def clear(self) -> None:
        """Remove the cache file so the next run walks the catalog again."""
        try:
            self.path.unlink()
            logger.info(f"Removed cache {self.path}")
        except FileNotFoundError:
            pass

    def load_or_build(self, builder: Callable[[], CatalogIndex]) -> CatalogIndex:
        """Return the cached index, or build one and cache it.

        Exceptions from `builder` propagate and nothing is written. A cache
        that cannot be written is logged and the built index is still returned.
        """
        index = self.load()
        if index is not None:
            return index
        index = builder()
        self.save(index)
        return index
