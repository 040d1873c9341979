"""
Pytest fixtures for subsonic rating importer tests

Provides common test data and fake collaborators for use across all test modules.
"""
import pytest

from subsonic_ratings.models import ApiResult


LIBRARY_XML = (
    '<?xml version="1.0" encoding="UTF-8"?>\n'
    '<!DOCTYPE plist PUBLIC "-//Apple Computer//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
    '<plist version="1.0">\n'
    '<dict>\n'
    '\t<key>Major Version</key><integer>1</integer>\n'
    '\t<key>Application Version</key><string>12.9.5.5</string>\n'
    '\t<key>Tracks</key>\n'
    '\t<dict>\n'
    '\t\t<key>101</key>\n'
    '\t\t<dict>\n'
    '\t\t\t<key>Track ID</key><integer>101</integer>\n'
    '\t\t\t<key>Name</key><string>Bohemian Rhapsody</string>\n'
    '\t\t\t<key>Artist</key><string>Queen</string>\n'
    '\t\t\t<key>Album</key><string>A Night At The Opera</string>\n'
    '\t\t\t<key>Rating</key><integer>100</integer>\n'
    '\t\t\t<key>Compilation</key><true/>\n'
    '\t\t</dict>\n'
    '\t\t<key>102</key>\n'
    '\t\t<dict>\n'
    '\t\t\t<key>Track ID</key><integer>102</integer>\n'
    '\t\t\t<key>Name</key><string>Love of My Life</string>\n'
    '\t\t\t<key>Artist</key><string>Queen</string>\n'
    '\t\t\t<key>Album</key><string>A Night At The Opera</string>\n'
    '\t\t</dict>\n'
    '\t\t<key>103</key>\n'
    '\t\t<dict>\n'
    '\t\t\t<key>Track ID</key><integer>103</integer>\n'
    '\t\t\t<key>Name</key><string>The Boxer</string>\n'
    '\t\t\t<key>Artist</key><string>Simon &#38; Garfunkel</string>\n'
    '\t\t\t<key>Rating</key><integer>60</integer>\n'
    '\t\t</dict>\n'
    '\t</dict>\n'
    '\t<key>Playlists</key>\n'
    '\t<array>\n'
    '\t\t<dict>\n'
    '\t\t\t<key>Name</key><string>Library</string>\n'
    '\t\t\t<key>Rating</key><integer>80</integer>\n'
    '\t\t</dict>\n'
    '\t</array>\n'
    '</dict>\n'
    '</plist>\n'
)


class FakeSubsonic:
    """In-memory stand-in for SubsonicClient, recording every call."""

    def __init__(self, artists=None, artist_albums=None, album_songs=None, failing_ids=()):
        self.artists = artists or []
        self.artist_albums = artist_albums or {}
        self.album_songs = album_songs or {}
        self.failing_ids = set(failing_ids)
        self.calls = []

    def get_artists(self):
        self.calls.append(('get_artists',))
        return [dict(a) for a in self.artists]

    def get_artist(self, artist_id):
        self.calls.append(('get_artist', artist_id))
        return {'id': artist_id, 'album': [dict(a) for a in self.artist_albums.get(artist_id, [])]}

    def get_album(self, album_id):
        self.calls.append(('get_album', album_id))
        return {'id': album_id, 'song': [dict(s) for s in self.album_songs.get(album_id, [])]}

    def set_rating(self, track_id, rating):
        self.calls.append(('set_rating', track_id, rating))
        if track_id in self.failing_ids:
            return ApiResult.failure("server said no")
        return ApiResult.success({})

    def star(self, track_id):
        self.calls.append(('star', track_id))
        if track_id in self.failing_ids:
            return ApiResult.failure("server said no")
        return ApiResult.success({})

    def mutations(self):
        return [c for c in self.calls if c[0] in ('set_rating', 'star')]


@pytest.fixture
def library_xml():
    """A small iTunes Library.xml export with tab indentation."""
    return LIBRARY_XML


@pytest.fixture
def library_file(tmp_path, library_xml):
    path = tmp_path / "Library.xml"
    path.write_text(library_xml, encoding="utf-8")
    return path


@pytest.fixture
def queen_catalog():
    """Fake Subsonic catalog with one Queen album and one Simon & Garfunkel album."""
    return FakeSubsonic(
        artists=[
            {'id': 'ar-1', 'name': 'Queen'},
            {'id': 'ar-2', 'name': 'Simon & Garfunkel'},
        ],
        artist_albums={
            'ar-1': [{'id': 'al-1', 'name': 'A Night at the Opera', 'year': 1975}],
            'ar-2': [{'id': 'al-2', 'name': 'Bridge over Troubled Water'}],
        },
        album_songs={
            'al-1': [
                {'id': 42, 'title': 'Bohemian Rhapsody', 'track': 11},
                {'id': 43, 'title': 'Love of My Life', 'track': 9},
            ],
            'al-2': [{'id': 'so-7', 'title': 'The Boxer', 'track': 3}],
        },
    )


@pytest.fixture
def fake_subsonic():
    return FakeSubsonic


@pytest.fixture
def sample_index():
    """Index for artist "x" with the same title on two albums."""
    return {
        'x': {
            'a': {'song': [1]},
            'b': {'song': [2], 'other': [3, 3]},
        }
    }


def pytest_terminal_summary(terminalreporter, exitstatus, config):
    """Print a concise, one-line summary at the end of the test run."""
    stats = getattr(terminalreporter, "stats", {})

    def _count(key):
        return len(stats.get(key, []))

    passed = _count('passed')
    failed = _count('failed')
    skipped = _count('skipped')
    errors = _count('error')

    terminalreporter.write_sep("=", "pytest summary")
    terminalreporter.write_line(
        f"Total: {passed + failed + skipped + errors}  Passed: {passed}  Failed: {failed}  "
        f"Skipped: {skipped}  Errors: {errors}"
    )
