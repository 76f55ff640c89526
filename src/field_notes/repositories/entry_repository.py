"""Entry Store: the field-note rows themselves."""
import logging

from field_notes.enums import MediaKind
from field_notes.exceptions import InvalidArgument, NotFound
from field_notes.models import NoteEntry, now, to_local_naive
from field_notes.schemas import Entry
from field_notes.utils import encode_path_list, decode_path_list
from field_notes.validation import Validator


class EntryRepository:
    """CRUD operations for entries.

    Entries refer to blobs by id only; resolving those ids is the caller's job.
    """

    def __init__(self, db):
        """Initialize repository with the owning LocalDatabase."""
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    def save(self, entry):
        """Insert a new entry (id 0) or update an existing one. Returns the entry id."""
        if entry.is_new:
            return self.insert(entry)
        self.update(entry)
        return entry.id

    def insert(self, entry):
        """Insert an entry and return its new id.

        The assigned id and the stored created_at are written back onto
        ``entry``. A timezone-aware created_at is stored as naive local time,
        so entries sort by the instant they were captured.
        """
        if not entry.is_new:
            raise InvalidArgument(f"Entry already has id {entry.id}; update it instead")
        Validator.validate_entry(entry)
        file_paths_json = encode_path_list(entry.file_paths)

        with self.db.session_scope() as session:
            record = NoteEntry(
                name=entry.name,
                notes=entry.notes,
                latitude=entry.latitude,
                longitude=entry.longitude,
                created_at=to_local_naive(entry.created_at) or now(),
                is_video=entry.is_video,
                media_id=entry.media_id,
                file_paths_json=file_paths_json,
                voice_recording_id=entry.voice_recording_id,
            )
            session.add(record)
            session.flush()
            new_id, created_at = record.id, record.created_at

        entry.id = new_id
        entry.created_at = created_at
        self.logger.info(f"Inserted entry {new_id}: {entry.name}")
        return new_id

    def update(self, entry):
        """Replace every mutable field of an existing entry.

        created_at is never overwritten; the stored value is copied back onto
        ``entry`` instead.
        """
        if entry.is_new:
            raise InvalidArgument("Entry has no id; insert it instead")
        Validator.validate_entry(entry)
        file_paths_json = encode_path_list(entry.file_paths)

        with self.db.session_scope() as session:
            record = session.get(NoteEntry, entry.id)
            if record is None:
                raise NotFound(f"Entry {entry.id} not found")
            record.name = entry.name
            record.notes = entry.notes
            record.latitude = entry.latitude
            record.longitude = entry.longitude
            record.is_video = entry.is_video
            record.media_id = entry.media_id
            record.file_paths_json = file_paths_json
            record.voice_recording_id = entry.voice_recording_id
            session.flush()
            created_at = record.created_at

        entry.created_at = created_at
        self.logger.info(f"Updated entry {entry.id}: {entry.name}")

    def get_by_id(self, entry_id):
        """Get an entry by ID."""
        with self.db.session_scope() as session:
            record = session.get(NoteEntry, entry_id)
            if record is None:
                raise NotFound(f"Entry {entry_id} not found")
            return self._to_entry(record)

    def list_all(self):
        """Get all entries, newest first; equal timestamps list the higher id first."""
        with self.db.session_scope() as session:
            records = (
                session.query(NoteEntry)
                .order_by(NoteEntry.created_at.desc(), NoteEntry.id.desc())
                .all()
            )
            return [self._to_entry(record) for record in records]

    def delete(self, entry_id):
        """Delete an entry row. Referenced blobs are left alone."""
        with self.db.session_scope() as session:
            record = session.get(NoteEntry, entry_id)
            if record is None:
                raise NotFound(f"Entry {entry_id} not found")
            session.delete(record)
            session.flush()
        self.logger.info(f"Deleted entry {entry_id}")

    def find_referencing(self, blob_id, kind):
        """Get ids of the entries that hold a reference to the given blob."""
        column = NoteEntry.voice_recording_id if MediaKind(kind).is_audio else NoteEntry.media_id
        with self.db.session_scope() as session:
            return [row.id for row in session.query(NoteEntry.id).filter(column == blob_id).order_by(NoteEntry.id)]

    def referenced_blob_ids(self):
        """Get (media ids, voice recording ids) referenced by any entry."""
        with self.db.session_scope() as session:
            rows = session.query(NoteEntry.media_id, NoteEntry.voice_recording_id).all()
        media_ids = {row.media_id for row in rows if row.media_id is not None}
        voice_ids = {row.voice_recording_id for row in rows if row.voice_recording_id is not None}
        return media_ids, voice_ids

    @staticmethod
    def _to_entry(record):
        return Entry(
            id=record.id,
            name=record.name,
            notes=record.notes,
            latitude=record.latitude,
            longitude=record.longitude,
            created_at=record.created_at,
            is_video=record.is_video,
            media_id=record.media_id,
            file_paths=decode_path_list(record.file_paths_json),
            voice_recording_id=record.voice_recording_id,
        )
