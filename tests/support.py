"""Test doubles and builders shared across the suite."""

from __future__ import annotations

import hashlib
import struct
from dataclasses import dataclass, field, replace
from pathlib import Path

from mutagen.flac import FLAC

from mlsync.features.index.usecases.metadata_index import MetadataIndex
from mlsync.features.sync.usecases.file_operations import FileOperations
from mlsync.features.sync.usecases.synchronizer import LibrarySynchronizer
from mlsync.platform.db.daos.inbox_status_dao import InboxStatusDAO
from mlsync.platform.db.daos.tracks_dao import TracksDAO
from mlsync.platform.db.db_manager import DatabaseManager
from mlsync.shared.track_metadata import AudioFormat, RawTags

AUDIO_SUFFIXES = frozenset({".flac", ".mp3", ".m4a", ".ogg", ".opus", ".wv", ".wav"})


def make_tags(**overrides: object) -> RawTags:
    """Return a valid FLAC tag set with ``overrides`` applied."""

    tags = RawTags(
        title="Dronevil",
        artist="Boris",
        album="Flood",
        track_number=1,
        format=AudioFormat.FLAC,
        bitrate=1000,
        bit_depth=16,
    )
    return replace(tags, **overrides)  # pyright: ignore[reportArgumentType]


def write_flac(path: Path, **tags: str) -> Path:
    """Write a tagged FLAC file holding only a STREAMINFO block (44.1 kHz, stereo, 16 bit)."""

    packed = (44100 << 44) | (1 << 41) | (15 << 36)
    streaminfo = struct.pack(">HH", 4096, 4096) + bytes(6) + struct.pack(">Q", packed) + bytes(16)
    path.parent.mkdir(parents=True, exist_ok=True)
    _ = path.write_bytes(b"fLaC" + b"\x80" + len(streaminfo).to_bytes(3, "big") + streaminfo)
    audio = FLAC(path)
    for key, value in tags.items():
        audio[key] = value
    audio.save()
    return path


class StubTagReader:
    """Tag reader that looks tags up by file contents, so moved files keep their tags."""

    def __init__(self) -> None:
        self.tags: dict[bytes, RawTags] = {}
        self.failures: dict[bytes, int] = {}
        self.errors: dict[bytes, Exception] = {}
        self.reads: int = 0

    def is_supported(self, path: Path) -> bool:
        return path.suffix.lower() in AUDIO_SUFFIXES

    def extract(self, path: Path) -> RawTags:
        self.reads += 1
        content = path.read_bytes()
        if content in self.errors:
            raise self.errors[content]
        remaining = self.failures.get(content, 0)
        if remaining:
            self.failures[content] = remaining - 1
            raise OSError("simulated read failure")
        return replace(self.tags[content])

    def register(self, content: bytes, tags: RawTags) -> None:
        self.tags[content] = tags


@dataclass
class SyncHarness:
    """A synchronizer over temporary roots and an in-memory database."""

    library: Path
    inbox: Path
    reader: StubTagReader
    db: DatabaseManager
    store: TracksDAO
    index: MetadataIndex
    status: InboxStatusDAO
    files: FileOperations
    sync: LibrarySynchronizer
    sleeps: list[float] = field(default_factory=list)

    def drop(self, relative: str, tags: RawTags | None = None, content: bytes | None = None) -> Path:
        """Write a file into the inbox and register its tags."""

        path = self.inbox / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        data = content if content is not None else relative.encode("utf-8")
        _ = path.write_bytes(data)
        self.reader.register(data, tags or make_tags())
        return path

    @staticmethod
    def identity_of(content: bytes) -> str:
        return hashlib.sha256(content).hexdigest()
