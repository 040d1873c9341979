#!/usr/bin/env python3
"""
import_itunes_ratings.py - Import iTunes Ratings into a Subsonic Server

This script reads an iTunes Library XML export and copies the star ratings of
rated tracks to the matching songs on a Subsonic server.

WORKFLOW:
1. Load the catalog index from the cache, or walk the Subsonic catalog
   (artists -> albums -> songs) and cache the result
2. Stream the library export one track at a time
3. Match each rated track by normalized artist / album / title; without an
   album, the title is searched across all of the artist's albums
4. Set the 0-5 rating on every matched song and star songs rated at or
   above --star-rating

FEATURES:
- Salted token authentication, the password is read from a file
- Catalog index cache to avoid re-walking large catalogs (--clear-cache to refresh)
- Dry-run mode for testing
- Per-song failures are logged and never stop the run

Exit status is 0 when the export was processed, 1 for configuration problems or
when the catalog could not be indexed.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure repo root is importable when run as a script
repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from subsonic_ratings.catalog_index import build_catalog_index
from subsonic_ratings.config_manager import Config, read_password
from subsonic_ratings.exceptions import CatalogUnavailableError, ConfigurationError
from subsonic_ratings.index_cache import IndexCache
from subsonic_ratings.library_parser import LibraryParser, parse_library_file
from subsonic_ratings.rating_sync import RatingDispatcher, sync_ratings
from subsonic_ratings.subsonic_client import SubsonicClient

LOG_FORMAT = "%(asctime)s %(levelname)s: %(message)s"


def build_parser(config: Config) -> argparse.ArgumentParser:
    """Command line options; defaults come from config.py or the environment."""
    parser = argparse.ArgumentParser(
        description="Import ratings from an iTunes Library XML export to a Subsonic server",
        epilog="""
USAGE EXAMPLES:
    # Basic import
    py -3 import_itunes_ratings.py -S music.example.com -u me "iTunes Library.xml"

    # Rebuild the catalog index and preview without changing anything
    py -3 import_itunes_ratings.py --clear-cache --dry-run -u me Library.xml
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("library",
                        help="Path to the iTunes Library XML export")

    api = parser.add_argument_group("Subsonic API Details")
    api.add_argument("-S", "--server", default=config.subsonic_server,
                     help=f"Subsonic server name (default: {config.subsonic_server})")
    api.add_argument("-P", "--port", type=int, default=config.subsonic_port,
                     help=f"Subsonic server port (default: {config.subsonic_port})")
    api.add_argument("-u", "--username", "--user", dest="username", default=config.subsonic_username,
                     help="Subsonic username, required")
    api.add_argument("-p", "--password-file", default=config.subsonic_password_file,
                     help=f"File containing the password (default: {config.subsonic_password_file})")
    api.add_argument("--api-version", default=config.subsonic_api_version,
                     help=f"Subsonic API version (default: {config.subsonic_api_version})")
    api.add_argument("--insecure", "--http", dest="insecure", action="store_true",
                     default=config.subsonic_protocol == "http",
                     help="Use insecure HTTP for communication")

    behavior = parser.add_argument_group("Import Behavior")
    behavior.add_argument("--star-rating", type=float, default=config.star_rating,
                          help=f"Also star songs rated at or above this 0-5 value (default: {config.star_rating})")
    behavior.add_argument("--dry-run", action="store_true",
                          help="Match and log only, do not change ratings on the server")
    behavior.add_argument("--keep-tracks", action="store_true",
                          help="Keep every parsed track in memory, keyed by Track ID")

    caching = parser.add_argument_group("Caching Behavior")
    caching.add_argument("--cache", default=config.cache_path,
                         help=f"Catalog index cache location (default: {config.cache_path})")
    caching.add_argument("--clear-cache", action="store_true",
                         help="Remove the cache file before processing")

    output = parser.add_argument_group("Output")
    output.add_argument("-v", "--verbose", action="store_true",
                        help="Debug logging")
    output.add_argument("--log-file", type=str,
                        help="Also write the log to this file")
    output.add_argument("--no-progress", action="store_true",
                        help="Disable the progress bar while indexing the catalog")
    return parser


def setup_logging(level: str, log_file: Optional[str] = None) -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logging.getLogger().addHandler(file_handler)
        logging.info(f"Logging to file: {log_file}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the rating import script.

    Returns:
        Process exit status
    """
    try:
        config = Config()
    except ConfigurationError as e:
        logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
        logging.error(str(e))
        return 1

    args = build_parser(config).parse_args(argv)
    setup_logging("DEBUG" if args.verbose else config.log_level, args.log_file)

    # Command line options win over config.py / environment
    config.subsonic_username = args.username
    config.star_rating = args.star_rating
    config.subsonic_protocol = "http" if args.insecure else "https"
    try:
        config._validate()
    except ConfigurationError as e:
        logging.error(str(e))
        return 1
    logging.info(f"Configuration loaded: {config}")

    library_path = Path(args.library).expanduser()
    if not library_path.is_file():
        logging.error(f"Library export not found: {library_path}")
        return 1

    cache = IndexCache(args.cache)
    if args.clear_cache:
        cache.clear()

    try:
        password = read_password(args.password_file)
    except ConfigurationError as e:
        logging.error(str(e))
        return 1

    client = SubsonicClient(
        server=args.server,
        username=args.username,
        password=password,
        port=args.port,
        protocol=config.subsonic_protocol,
        api_version=args.api_version,
        request_delay=config.request_delay,
        max_retries=config.max_retries,
        retry_delay=config.retry_delay,
        timeout=config.request_timeout,
    )

    try:
        index = cache.load_or_build(lambda: build_catalog_index(client, show_progress=not args.no_progress))
    except CatalogUnavailableError as e:
        logging.error(f"Could not index the Subsonic catalog: {e}")
        return 1
    logging.debug(f"Catalog index holds {len(index)} artists")

    library_parser = LibraryParser(keep_tracks=args.keep_tracks)
    dispatcher = RatingDispatcher(client, star_threshold=args.star_rating, dry_run=args.dry_run)
    stats = sync_ratings(parse_library_file(library_path, parser=library_parser), index, dispatcher)

    if args.keep_tracks:
        logging.info(f"Parsed {len(library_parser.tracks_by_id)} tracks from {library_path}")
    summary = ", ".join(f"{key}={value}" for key, value in stats.to_dict().items())
    logging.info(f"Import finished{' (dry run)' if args.dry_run else ''}: {summary}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
