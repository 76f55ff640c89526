"""Pydantic value types passed between the capture layer, the catalog and the stores."""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict

from field_notes.enums import MediaKind
from field_notes.utils import is_video_path


class Entry(BaseModel):
    """A field-note entry as the stores see it.

    ``id == 0`` marks an entry that has not been persisted yet; saving it
    inserts a new row, any other id updates that row.
    """
    id: int = 0
    name: str = ""
    notes: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: Optional[datetime] = None
    is_video: bool = False
    media_id: Optional[int] = None
    file_paths: List[str] = Field(default_factory=list)
    voice_recording_id: Optional[int] = None

    @property
    def is_new(self):
        return self.id == 0

    @property
    def has_location(self):
        return self.latitude is not None and self.longitude is not None

    @property
    def coordinates(self):
        if not self.has_location:
            return None
        return self.latitude, self.longitude


class Blob(BaseModel):
    id: int
    kind: MediaKind
    data: bytes
    mime_type: str = ""
    duration_seconds: int = 0
    created_at: datetime

    @property
    def size_bytes(self):
        return len(self.data)


class VoiceClip(BaseModel):
    """Recorded audio handed over by the capture layer."""
    data: bytes
    duration_seconds: int = Field(default=0, ge=0)


class MediaItem(BaseModel):
    """An external media file referenced by path."""
    file_path: str
    is_video: bool = False

    @property
    def is_image(self):
        return not self.is_video

    @classmethod
    def from_path(cls, path):
        return cls(file_path=path, is_video=is_video_path(path))


class EntrySummary(BaseModel):
    """Row shown in the entry list, newest first."""
    id: int
    name: str
    created_at: datetime
    media_count: int = 0
    is_video: bool = False
    has_voice_recording: bool = False

    model_config = ConfigDict(frozen=True)


class EntryDetail(BaseModel):
    """An entry with its media and voice recording resolved for the detail view."""
    entry: Entry
    media: Optional[Blob] = None
    voice_recording: Optional[Blob] = None
    media_items: List[MediaItem] = Field(default_factory=list)
