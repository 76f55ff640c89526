from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, Boolean, Text, LargeBinary, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import declarative_base

from field_notes.utils import EMPTY_PATH_LIST

Base = declarative_base()

NAME_MAX_LENGTH = 200
NOTES_MAX_LENGTH = 500
MIME_TYPE_MAX_LENGTH = 50


def now():
    """Return the current local time as a naive datetime.

    SQLite strips timezone info on storage, so timestamps are kept naive and
    interpreted as device-local time, the same way the capture device reports them.
    """
    return datetime.now()


def to_local_naive(value):
    """Convert an aware datetime to naive local time; naive values pass through."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


class Media(Base):
    """Photo or video bytes captured for an entry."""
    __tablename__ = 'media'
    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    is_video = Column(Boolean, default=False, nullable=False, server_default='0')
    mime_type = Column(String(MIME_TYPE_MAX_LENGTH), nullable=False, server_default="")
    data = Column(LargeBinary, nullable=False)
    created_at = Column(DateTime, default=now, nullable=False)

    __table_args__ = {'sqlite_autoincrement': True}


class VoiceRecording(Base):
    """Audio recorded alongside an entry."""
    __tablename__ = 'voice_recordings'
    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    data = Column(LargeBinary, nullable=False)
    duration_seconds = Column(Integer, default=0, nullable=False, server_default="0")
    created_at = Column(DateTime, default=now, nullable=False)

    __table_args__ = (
        CheckConstraint('duration_seconds >= 0', name='chk_voice_duration_non_negative'),
        {'sqlite_autoincrement': True},
    )


class NoteEntry(Base):
    """A field note: name, notes, optional geotag and its media references.

    Foreign keys are checked at commit time (DEFERRABLE INITIALLY DEFERRED) so a
    grouped write can delete a blob before the entry that references it.
    """
    __tablename__ = 'entries'
    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    notes = Column(String(NOTES_MAX_LENGTH), nullable=False, server_default="")
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    created_at = Column(DateTime, default=now, nullable=False)
    is_video = Column(Boolean, default=False, nullable=False, server_default='0')
    media_id = Column(Integer, ForeignKey('media.id', deferrable=True, initially='DEFERRED'), nullable=True, index=True)
    file_paths_json = Column(Text, nullable=False, default=EMPTY_PATH_LIST, server_default=EMPTY_PATH_LIST)
    voice_recording_id = Column(
        Integer,
        ForeignKey('voice_recordings.id', deferrable=True, initially='DEFERRED'),
        nullable=True,
        index=True,
    )

    __table_args__ = (
        CheckConstraint('(latitude IS NULL) = (longitude IS NULL)', name='chk_entry_geotag_pair'),
        CheckConstraint('latitude IS NULL OR (latitude >= -90.0 AND latitude <= 90.0)', name='chk_entry_latitude_range'),
        CheckConstraint('longitude IS NULL OR (longitude >= -180.0 AND longitude <= 180.0)', name='chk_entry_longitude_range'),
        CheckConstraint(f'length(notes) <= {NOTES_MAX_LENGTH}', name='chk_entry_notes_length'),
        CheckConstraint("length(trim(name)) > 0", name='chk_entry_name_not_blank'),
        {'sqlite_autoincrement': True},
    )

Index('idx_entries_created_at_id', NoteEntry.created_at, NoteEntry.id)


class AppConfig(Base):
    __tablename__ = 'app_config'
    id = Column(Integer, primary_key=True, nullable=False)
    key = Column(String(100), unique=True, nullable=False, server_default="")
    value = Column(Text, server_default="")
    updated_at = Column(DateTime, default=now, onupdate=now)
