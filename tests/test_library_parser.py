"""
Tests for subsonic_ratings/library_parser.py

Tests the line state machine over iTunes Library.xml exports.
"""

import pytest

from subsonic_ratings.library_parser import LibraryParser, ParserState, parse_library_file
from subsonic_ratings.rating_sync import RatingDispatcher, sync_ratings


def test_iter_records_yields_every_track(library_xml):
    records = list(LibraryParser().iter_records(library_xml.splitlines(keepends=True)))
    assert [r['Track ID'] for r in records] == ['101', '102', '103']


def test_fields_are_strings_and_decoded(library_xml):
    first, _, third = LibraryParser().iter_records(library_xml.splitlines())
    assert first == {
        'Track ID': '101',
        'Name': 'Bohemian Rhapsody',
        'Artist': 'Queen',
        'Album': 'A Night At The Opera',
        'Rating': '100',
    }
    assert third['Artist'] == 'Simon & Garfunkel'


def test_rated_records_only(library_xml):
    records = list(LibraryParser().iter_rated_records(library_xml.splitlines()))
    assert [r['Name'] for r in records] == ['Bohemian Rhapsody', 'The Boxer']


def test_other_sections_ignored(library_xml):
    records = list(LibraryParser().iter_records(library_xml.splitlines()))
    assert all(r.get('Name') != 'Library' for r in records)


def test_keep_tracks_archives_by_id(library_xml):
    parser = LibraryParser(keep_tracks=True)
    list(parser.iter_rated_records(library_xml.splitlines()))
    assert sorted(parser.tracks_by_id) == ['101', '102', '103']
    assert parser.tracks_by_id['102']['Name'] == 'Love of My Life'


def test_tracks_not_archived_by_default(library_xml):
    parser = LibraryParser()
    list(parser.iter_records(library_xml.splitlines()))
    assert parser.tracks_by_id == {}


def test_lazy_single_pass():
    consumed = []

    def lines():
        for line in ['\t<key>Tracks</key>\n', '\t\t<dict>\n',
                     '\t\t\t<key>Name</key><string>One</string>\n', '\t\t</dict>\n',
                     '\t\t<dict>\n', '\t\t\t<key>Name</key><string>Two</string>\n', '\t\t</dict>\n']:
            consumed.append(line)
            yield line

    records = LibraryParser().iter_records(lines())
    assert next(records) == {'Name': 'One'}
    assert len(consumed) == 4
    assert next(records) == {'Name': 'Two'}
    with pytest.raises(StopIteration):
        next(records)


def test_state_transitions():
    parser = LibraryParser()
    assert parser.state == ParserState.OUTSIDE
    parser.feed('\t<key>Tracks</key>\n')
    assert parser.state == ParserState.IN_SECTION
    assert parser.section == 'Tracks'
    parser.feed('\t\t<dict>\n')
    assert parser.state == ParserState.IN_TRACK
    assert parser.feed('\t\t\t<key>Name</key><string>X</string>\n') is None
    assert parser.feed('\t\t</dict>\n') == {'Name': 'X'}
    assert parser.state == ParserState.IN_SECTION


def test_unrecognized_lines_skipped():
    lines = [
        '<plist version="1.0">',
        '\t<key>Tracks</key>',
        '\t\t<dict>',
        '\t\t\t<key>Name</key><string>Kept</string>',
        '\t\t\t<key>Explicit</key><true/>',
        '\t\t\t<key>Artwork</key>',
        'garbage without tab',
        '\t\t\t<key>Rating</key><integer>40</integer>',
        '\t\t</dict>',
    ]
    assert list(LibraryParser().iter_records(lines)) == [{'Name': 'Kept', 'Rating': '40'}]


def test_fields_outside_tracks_section_ignored():
    lines = [
        '\t<key>Playlists</key>',
        '\t\t<dict>',
        '\t\t\t<key>Name</key><string>Playlist</string>',
        '\t\t\t<key>Rating</key><integer>40</integer>',
        '\t\t</dict>',
    ]
    assert list(LibraryParser().iter_records(lines)) == []


def test_crlf_line_endings():
    lines = ['\t<key>Tracks</key>\r\n', '\t\t<dict>\r\n',
             '\t\t\t<key>Name</key><string>Windows</string>\r\n', '\t\t</dict>\r\n']
    assert list(LibraryParser().iter_records(lines)) == [{'Name': 'Windows'}]


def test_parse_library_file(library_file):
    parser = LibraryParser(keep_tracks=True)
    records = list(parse_library_file(library_file, parser=parser))
    assert [r['Track ID'] for r in records] == ['101', '103']
    assert len(parser.tracks_by_id) == 3


def test_parse_library_file_all_records(library_file):
    records = list(parse_library_file(library_file, rated_only=False))
    assert len(records) == 3


def test_parse_library_file_survives_undecodable_bytes(tmp_path, sample_index, fake_subsonic):
    path = tmp_path / "Library.xml"
    path.write_bytes(
        b'\t<key>Tracks</key>\n'
        b'\t<dict>\n'
        b'\t\t<dict>\n'
        b'\t\t\t<key>Name</key><string>Caf\xff</string>\n'
        b'\t\t\t<key>Artist</key><string>y</string>\n'
        b'\t\t\t<key>Rating</key><integer>20</integer>\n'
        b'\t\t</dict>\n'
        b'\t\t<dict>\n'
        b'\t\t\t<key>Name</key><string>song</string>\n'
        b'\t\t\t<key>Artist</key><string>x</string>\n'
        b'\t\t\t<key>Album</key><string>b</string>\n'
        b'\t\t\t<key>Rating</key><integer>100</integer>\n'
        b'\t\t</dict>\n'
        b'\t</dict>\n'
    )

    records = list(parse_library_file(path))
    assert [r['Name'] for r in records] == ['Caf\ufffd', 'song']

    client = fake_subsonic()
    stats = sync_ratings(parse_library_file(path), sample_index, RatingDispatcher(client, star_threshold=4))
    assert ('set_rating', 2, 5.0) in client.mutations()
    assert stats.records == 2
