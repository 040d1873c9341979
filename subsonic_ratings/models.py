from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

TrackId = Union[str, int]
CatalogIndex = Dict[str, Dict[str, Dict[str, List[TrackId]]]]
LibraryTrack = Dict[str, str]


@dataclass
class ApiResult:
    """Outcome of a best-effort Subsonic call."""
    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Any = None) -> "ApiResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "ApiResult":
        return cls(ok=False, error=error)


@dataclass
class RatingAssignment:
    track_id: TrackId
    rating: float
    favorite: bool = False


@dataclass
class MatchResult:
    artist: Optional[str]
    album: Optional[str]
    name: Optional[str]
    track_ids: List[TrackId] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.track_ids)

    def describe(self) -> str:
        """Human readable "Artist - Album - Name" with n/a for missing fields."""
        return " - ".join(value or "n/a" for value in (self.artist, self.album, self.name))


@dataclass
class SyncStats:
    records: int = 0
    matched: int = 0
    unmatched: int = 0
    invalid_ratings: int = 0
    ratings_set: int = 0
    stars_set: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'records': self.records,
            'matched': self.matched,
            'unmatched': self.unmatched,
            'invalid_ratings': self.invalid_ratings,
            'ratings_set': self.ratings_set,
            'stars_set': self.stars_set,
            'failures': self.failures,
        }
