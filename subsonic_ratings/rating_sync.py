"""
Rating matching and dispatch.

Each rated iTunes record is matched against the catalog index:

1. Normalize Artist, Album and Name (absent fields stay absent)
2. Unknown artist -> no match
3. Album present -> only that album; Album absent -> every album of the artist
4. Collect the song ids of the title under every candidate album

The iTunes rating (0-100, 20 per star) becomes a 0.0-5.0 Subsonic rating,
which is set on every matched song. Songs rated at or above the star
threshold are also starred. A failed call for one song never stops the others.

Known ambiguity: without an Album, two different songs by the same artist
that share a title on different albums are both rated.
"""

import logging
from typing import Iterable, List

from subsonic_ratings.exceptions import ValidationError
from subsonic_ratings.models import (
    CatalogIndex,
    LibraryTrack,
    MatchResult,
    RatingAssignment,
    SyncStats,
)
from subsonic_ratings.text_utils import normalize_fields

logger = logging.getLogger(__name__)

ITUNES_POINTS_PER_STAR = 20
MAX_ITUNES_RATING = 100


def convert_rating(raw) -> float:
    """
    Convert an iTunes rating (0-100) to a Subsonic rating (0.0-5.0).

    Examples:
        "100" -> 5.0
        "80" -> 4.0
        "90" -> 4.5

    Raises:
        ValidationError: value is not a number or is outside 0-100
    """
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid rating value: {raw!r}")
    if not 0 <= value <= MAX_ITUNES_RATING:
        raise ValidationError(f"Rating out of range 0-{MAX_ITUNES_RATING}: {raw!r}")
    return float(f"{value / ITUNES_POINTS_PER_STAR:0.1f}")


def find_track_ids(record: LibraryTrack, index: CatalogIndex) -> MatchResult:
    """Look up the catalog song ids for one library record."""
    result = MatchResult(
        artist=record.get('Artist'),
        album=record.get('Album'),
        name=record.get('Name'),
    )
    normal = normalize_fields(record)

    if 'Artist' not in normal or 'Name' not in normal:
        return result
    albums = index.get(normal['Artist'])
    if albums is None:
        return result

    candidates = [normal['Album']] if 'Album' in normal else list(albums)
    for album in candidates:
        titles = albums.get(album)
        if titles is None:
            continue
        result.track_ids.extend(titles.get(normal['Name'], []))
    return result


class RatingDispatcher:
    """
    Applies matched ratings to the Subsonic server.

    Args:
        client: SubsonicClient (set_rating / star returning ApiResult)
        star_threshold: Star songs whose 0-5 rating is at least this value
        dry_run: Log what would be sent without calling the server
    """

    def __init__(self, client, star_threshold: float = 4.0, dry_run: bool = False):
        self.client = client
        self.star_threshold = star_threshold
        self.dry_run = dry_run
        self.stats = SyncStats()

    def dispatch(self, record: LibraryTrack, index: CatalogIndex) -> List[RatingAssignment]:
        """
        Match one rated record and push its rating to every matched song.

        Returns:
            The assignments that were attempted (empty when nothing matched)
        """
        self.stats.records += 1
        rating = convert_rating(record.get('Rating'))
        match = find_track_ids(record, index)
        if not match.found:
            self.stats.unmatched += 1
            logger.warning(f"No tracks found for {match.describe()}")
            return []

        self.stats.matched += 1
        logger.info(f"{len(match.track_ids)} tracks found for {match.describe()}")
        favorite = rating >= self.star_threshold

        assignments = [RatingAssignment(track_id, rating, favorite) for track_id in match.track_ids]
        for assignment in assignments:
            self._apply(assignment)
        return assignments

    def _apply(self, assignment: RatingAssignment) -> None:
        if self.dry_run:
            logger.info(
                f"[dry-run] would rate {assignment.track_id} {assignment.rating:0.1f}"
                + (" and star it" if assignment.favorite else "")
            )
            return

        result = self.client.set_rating(assignment.track_id, assignment.rating)
        if result.ok:
            self.stats.ratings_set += 1
            logger.debug(f"Rated {assignment.track_id} {assignment.rating:0.1f}")
        else:
            self.stats.failures += 1
            logger.error(f"Failed to rate {assignment.track_id}: {result.error}")

        if assignment.favorite:
            result = self.client.star(assignment.track_id)
            if result.ok:
                self.stats.stars_set += 1
                logger.debug(f"Starred {assignment.track_id}")
            else:
                self.stats.failures += 1
                logger.error(f"Failed to star {assignment.track_id}: {result.error}")


def sync_ratings(records: Iterable[LibraryTrack], index: CatalogIndex, dispatcher: RatingDispatcher) -> SyncStats:
    """
    Dispatch every rated record in order and return the run statistics.

    Records with an unusable Rating value are logged and skipped.
    """
    for record in records:
        if 'Rating' not in record:
            continue
        try:
            dispatcher.dispatch(record, index)
        except ValidationError as e:
            dispatcher.stats.invalid_ratings += 1
            skipped = MatchResult(record.get('Artist'), record.get('Album'), record.get('Name'))
            logger.warning(f"Skipping {skipped.describe()}: {e}")
    return dispatcher.stats
