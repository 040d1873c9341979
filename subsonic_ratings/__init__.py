"""
Subsonic Rating Importer Library

Core modules for indexing a Subsonic catalog and importing iTunes ratings into it.
"""

__version__ = "1.0.0"
__author__ = "Subsonic Rating Importer Contributors"

from .config_manager import Config

__all__ = ['Config']
