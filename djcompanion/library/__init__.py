"""
DJ library package
Flat JSON track store and the read-only BPM mirror used by the playback engine
"""

from .store import LibraryTrack, LibraryStore, LibraryMirror, fetch_library_track

__all__ = [
    'LibraryTrack',
    'LibraryStore',
    'LibraryMirror',
    'fetch_library_track'
]
