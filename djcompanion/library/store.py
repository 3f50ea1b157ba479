"""
DJ library store

The DJ library is a flat JSON file (``tracks.json``) holding a list of track
records annotated with tempo (BPM), energy and free-form notes. The file
format uses camelCase keys so existing libraries stay readable:

    [
      {
        "id": "4uLU6hMCjMI75M1A2tKUQC",
        "name": "Shiny Stockings",
        "artist": "Count Basie",
        "album": "April in Paris",
        "duration": 312,
        "bpm": 124,
        "energy": 0.41,
        "spotifyUri": "spotify:track:4uLU6hMCjMI75M1A2tKUQC",
        "addedAt": "2024-05-01T20:15:00",
        "notes": ""
      }
    ]

``LibraryStore`` performs the CRUD operations on that file, writing through
a temporary file and an atomic replace. ``LibraryMirror`` is the read-only
``{id: bpm}`` view the playback engine consults to annotate now playing.
"""

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import spotipy

from ..utils.exceptions import LibraryError
from ..utils.helpers import extract_spotify_uri, get_current_timestamp, track_id_from_uri
from ..utils.logger import get_logger

logger = get_logger(__name__)

# On-disk camelCase keys that differ from the attribute names
_DISK_KEYS = {
    'spotify_uri': 'spotifyUri',
    'added_at': 'addedAt',
}


@dataclass
class LibraryTrack:
    """
    A track in the DJ library

    Attributes:
        id: Spotify track id
        name: Track title
        artist: Comma separated artist names
        album: Album title
        duration: Duration in seconds
        bpm: Tempo in beats per minute, None if unknown
        energy: Spotify energy feature (0.0 - 1.0), None if unknown
        spotify_uri: ``spotify:track:<id>`` URI
        added_at: ISO timestamp when the track was added
        notes: Free-form DJ notes
    """
    id: str
    name: str = ""
    artist: str = ""
    album: str = ""
    duration: Optional[int] = None
    bpm: Optional[int] = None
    energy: Optional[float] = None
    spotify_uri: str = ""
    added_at: str = field(default_factory=get_current_timestamp)
    notes: str = ""

    def __post_init__(self):
        if not self.spotify_uri:
            self.spotify_uri = f"spotify:track:{self.id}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LibraryTrack':
        """Create a track from an on-disk record (unknown keys are ignored)"""
        kwargs = {}
        for f in fields(cls):
            key = _DISK_KEYS.get(f.name, f.name)
            if key in data:
                kwargs[f.name] = data[key]
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """On-disk record with camelCase keys"""
        return {_DISK_KEYS.get(f.name, f.name): getattr(self, f.name) for f in fields(self)}

    @staticmethod
    def field_names() -> List[str]:
        """Editable attribute names"""
        return [f.name for f in fields(LibraryTrack) if f.name != 'id']


class LibraryStore:
    """
    CRUD access to the JSON track file

    Args:
        path: Location of ``tracks.json``
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def load(self) -> List[LibraryTrack]:
        """
        Load all tracks

        A missing or unreadable file is treated as an empty library.
        """
        if not self.path.exists():
            return []

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read library {self.path}: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Library {self.path} is not a list of tracks, ignoring it")
            return []

        tracks = []
        for record in data:
            if isinstance(record, dict) and record.get('id'):
                tracks.append(LibraryTrack.from_dict(record))
            else:
                logger.debug(f"Skipping malformed library record: {record!r}")
        return tracks

    def save(self, tracks: List[LibraryTrack]) -> None:
        """
        Write all tracks, replacing the file atomically

        Raises:
            LibraryError: If the file cannot be written
        """
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump([t.to_dict() for t in tracks], f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise LibraryError(f"Failed to save library: {e}", details={'path': str(self.path)})

    def get(self, track_id: str) -> Optional[LibraryTrack]:
        for track in self.load():
            if track.id == track_id:
                return track
        return None

    def add(self, track: LibraryTrack) -> LibraryTrack:
        """
        Append a track

        Raises:
            LibraryError: If the track is already in the library
        """
        tracks = self.load()
        if any(t.id == track.id for t in tracks):
            raise LibraryError(
                f"Track already in library: {track.name or track.id}",
                details={'track_id': track.id, 'duplicate': True}
            )
        tracks.append(track)
        self.save(tracks)
        logger.info(f"Added {track.id} to library")
        return track

    def remove(self, track_id: str) -> bool:
        """
        Remove a track

        Returns:
            True if a track was removed
        """
        tracks = self.load()
        remaining = [t for t in tracks if t.id != track_id]
        if len(remaining) == len(tracks):
            return False
        self.save(remaining)
        logger.info(f"Removed {track_id} from library")
        return True

    def update(self, track_id: str, field_name: str, value: Any) -> LibraryTrack:
        """
        Set one field of a track

        Args:
            track_id: Track to update
            field_name: Attribute name, camelCase disk names are accepted too
            value: New value

        Raises:
            LibraryError: Unknown field or track not in the library
        """
        reverse = {disk: attr for attr, disk in _DISK_KEYS.items()}
        attr = reverse.get(field_name, field_name)
        if attr not in LibraryTrack.field_names():
            raise LibraryError(f"Unknown track field: {field_name}", details={'field': field_name})

        tracks = self.load()
        for track in tracks:
            if track.id == track_id:
                setattr(track, attr, value)
                self.save(tracks)
                return track

        raise LibraryError(f"Track not in library: {track_id}", details={'track_id': track_id})


def fetch_library_track(spotify: spotipy.Spotify, text: str) -> LibraryTrack:
    """
    Build a library track from a Spotify link or URI

    Track metadata is required; tempo and energy come from the audio features
    endpoint, which not every app may use, so they are optional.

    Args:
        spotify: Authenticated spotipy client
        text: ``spotify:track:<id>`` URI or open.spotify.com track link

    Returns:
        New, unsaved LibraryTrack

    Raises:
        LibraryError: Input is not a track reference or the lookup failed
    """
    uri = extract_spotify_uri(text)
    if not uri:
        raise LibraryError("Not a valid Spotify track link or URI.", details={'input': text})
    track_id = track_id_from_uri(uri)

    try:
        track_data = spotify.track(track_id)
    except spotipy.SpotifyException as e:
        raise LibraryError(f"Failed to fetch track {track_id}: {e.msg}", details={'track_id': track_id})

    features = None
    try:
        features_list = spotify.audio_features([track_id]) or []
        features = features_list[0] if features_list else None
    except spotipy.SpotifyException as e:
        logger.debug(f"Audio features unavailable for {track_id}: {e.msg}")

    tempo = features.get('tempo') if features else None
    return LibraryTrack(
        id=track_id,
        name=track_data.get('name', ''),
        artist=", ".join(a.get('name', '') for a in track_data.get('artists') or []),
        album=(track_data.get('album') or {}).get('name', ''),
        duration=round((track_data.get('duration_ms') or 0) / 1000),
        bpm=round(tempo) if tempo else None,
        energy=features.get('energy') if features else None,
        spotify_uri=uri,
    )


class LibraryMirror:
    """
    Read-only ``{id: bpm}`` view of the library

    Args:
        store: Library store to mirror
        auto_refresh: Reload whenever the file changed on disk before answering
    """

    def __init__(self, store: LibraryStore, auto_refresh: bool = False):
        self.store = store
        self.auto_refresh = auto_refresh
        self._bpm: Dict[str, Optional[int]] = {}
        self._mtime: Optional[float] = None

    def refresh(self) -> int:
        """Reload from the store, returning the number of tracks"""
        self._bpm = {t.id: t.bpm for t in self.store.load()}
        self._mtime = self._file_mtime()
        return len(self._bpm)

    def refresh_if_changed(self) -> bool:
        if self._file_mtime() == self._mtime:
            return False
        self.refresh()
        return True

    def bpm_for(self, track_id: Optional[str]) -> Optional[int]:
        """BPM of a library track, None if unknown or not in the library"""
        if self.auto_refresh:
            self.refresh_if_changed()
        if not track_id:
            return None
        return self._bpm.get(track_id)

    def _file_mtime(self) -> Optional[float]:
        try:
            return self.store.path.stat().st_mtime
        except OSError:
            return None

    def __contains__(self, track_id: str) -> bool:
        return track_id in self._bpm

    def __len__(self) -> int:
        return len(self._bpm)
