"""
iTunes Library XML stream parser.

Reads an iTunes "Library.xml" export one line at a time and yields one
record (field name -> value) per track, without building a DOM of the whole
file. iTunes writes the plist with a fixed tab indentation, which is what
the line patterns below rely on:

    \t<key>Tracks</key>                      section key
    \t\t<dict>                               track record opens
    \t\t\t<key>Name</key><string>X</string>  field
    \t\t</dict>                              track record closes

Lines that match none of these are skipped. Only the "Tracks" section is
read; "Playlists" and the other sections are consumed and ignored.
"""

import html
import logging
import re
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Iterator, Optional

from subsonic_ratings.models import LibraryTrack

logger = logging.getLogger(__name__)

TRACKS_SECTION = 'Tracks'

SECTION_RE = re.compile(r'^\t<key>(\w+(?:\s+\w+)*)</key>$')
RECORD_OPEN_RE = re.compile(r'^\t\t<dict>')
RECORD_CLOSE_RE = re.compile(r'^\t\t</dict>')
FIELD_RE = re.compile(r'^\t\t\t<key>(?P<key>\w+(?:\s+\w+)*)</key><\w+>(?P<value>.+)</\w+>$')


class ParserState(str, Enum):
    OUTSIDE = 'outside'
    IN_SECTION = 'in_section'
    IN_TRACK = 'in_track'


class LibraryParser:
    """
    Finite state machine over the lines of a library export.

    Usage:
        parser = LibraryParser(keep_tracks=True)
        with open(path, encoding='utf-8') as f:
            for record in parser.iter_rated_records(f):
                ...
        parser.tracks_by_id  # every track seen, keyed by Track ID
    """

    def __init__(self, keep_tracks: bool = False):
        self.keep_tracks = keep_tracks
        self.tracks_by_id: Dict[str, LibraryTrack] = {}
        self.state = ParserState.OUTSIDE
        self.section: Optional[str] = None
        self._fields: LibraryTrack = {}

    def feed(self, line: str) -> Optional[LibraryTrack]:
        """
        Consume one line and return a completed record, if this line closed one.
        """
        line = line.rstrip('\r\n')
        if not line.startswith('\t'):
            return None

        match = SECTION_RE.match(line)
        if match:
            self.section = match.group(1)
            self.state = ParserState.IN_SECTION
            self._fields = {}
            return None

        if self.state == ParserState.OUTSIDE or self.section != TRACKS_SECTION:
            return None

        if RECORD_CLOSE_RE.match(line):
            return self._close_record()

        if RECORD_OPEN_RE.match(line):
            self.state = ParserState.IN_TRACK
            self._fields = {}
            return None

        match = FIELD_RE.match(line)
        if match:
            self.state = ParserState.IN_TRACK
            self._fields[match.group('key')] = html.unescape(match.group('value'))
        return None

    def _close_record(self) -> LibraryTrack:
        record = self._fields
        self._fields = {}
        self.state = ParserState.IN_SECTION
        if self.keep_tracks and 'Track ID' in record:
            self.tracks_by_id[record['Track ID']] = dict(record)
        return record

    def iter_records(self, lines: Iterable[str]) -> Iterator[LibraryTrack]:
        """Yield every track record in file order. Single pass over `lines`."""
        for line in lines:
            record = self.feed(line)
            if record is not None:
                yield record

    def iter_rated_records(self, lines: Iterable[str]) -> Iterator[LibraryTrack]:
        """Yield only the track records carrying a Rating field."""
        for record in self.iter_records(lines):
            if 'Rating' in record:
                yield record


def parse_library_file(
    path,
    parser: Optional[LibraryParser] = None,
    rated_only: bool = True,
) -> Iterator[LibraryTrack]:
    """Open an iTunes library export and stream its track records.

    Pass your own `parser` to inspect `tracks_by_id` once the stream is consumed.
    Undecodable bytes become U+FFFD so one damaged entry cannot end the stream.
    """
    p = Path(path).expanduser()
    if parser is None:
        parser = LibraryParser()
    logger.info(f"Reading library export {p}")
    with p.open('r', encoding='utf-8', errors='replace') as f:
        if rated_only:
            yield from parser.iter_rated_records(f)
        else:
            yield from parser.iter_records(f)
