"""Blob Store: raw media and voice-recording bytes."""
import logging

from field_notes.enums import MediaKind
from field_notes.exceptions import InvalidArgument, NotFound
from field_notes.models import Media, VoiceRecording
from field_notes.schemas import Blob


class BlobRepository:
    """Key-to-bytes storage for photos, videos and voice recordings.

    Image and video blobs share the media table and audio blobs live in
    voice_recordings, so each table has its own id space and reads and deletes
    name the kind they address.
    """

    def __init__(self, db):
        """Initialize repository with the owning LocalDatabase."""
        self.db = db
        self.logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def _kind(kind):
        try:
            return MediaKind(kind)
        except ValueError:
            raise InvalidArgument(f"Unknown media kind: {kind!r}")

    def _model_for(self, kind):
        return VoiceRecording if self._kind(kind).is_audio else Media

    def save(self, data, kind, duration_seconds=0):
        """Insert a new blob and return its id. Identical bytes are stored again."""
        kind = self._kind(kind)
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgument(f"Blob data must be bytes, got {type(data).__name__}")
        if duration_seconds is None or duration_seconds < 0:
            raise InvalidArgument(f"duration_seconds must be zero or positive, got {duration_seconds!r}")

        data = bytes(data)
        with self.db.session_scope() as session:
            if kind.is_audio:
                record = VoiceRecording(data=data, duration_seconds=int(duration_seconds))
            else:
                record = Media(
                    is_video=kind is MediaKind.VIDEO,
                    mime_type=self.db.config.mime_type_for(kind),
                    data=data,
                )
            session.add(record)
            session.flush()
            blob_id = record.id

        self.logger.info(f"Saved {kind.value} blob {blob_id} ({len(data)} bytes)")
        return blob_id

    def get(self, blob_id, kind):
        """Get a blob with its data."""
        model = self._model_for(kind)
        with self.db.session_scope() as session:
            record = session.get(model, blob_id)
            if record is None:
                raise NotFound(f"{model.__tablename__} row {blob_id} not found")
            return self._to_blob(record)

    def delete(self, blob_id, kind):
        """Delete a blob. Deleting a missing id raises NotFound."""
        model = self._model_for(kind)
        with self.db.session_scope() as session:
            record = session.get(model, blob_id)
            if record is None:
                raise NotFound(f"{model.__tablename__} row {blob_id} not found")
            session.delete(record)
            session.flush()
        self.logger.info(f"Deleted {model.__tablename__} row {blob_id}")

    def list_media_ids(self):
        """Get the ids of all media blobs."""
        with self.db.session_scope() as session:
            return {row.id for row in session.query(Media.id)}

    def list_voice_recording_ids(self):
        """Get the ids of all voice-recording blobs."""
        with self.db.session_scope() as session:
            return {row.id for row in session.query(VoiceRecording.id)}

    def _to_blob(self, record):
        if isinstance(record, VoiceRecording):
            return Blob(
                id=record.id,
                kind=MediaKind.AUDIO,
                data=record.data,
                mime_type=self.db.config.audio_mime_type,
                duration_seconds=record.duration_seconds,
                created_at=record.created_at,
            )
        return Blob(
            id=record.id,
            kind=MediaKind.VIDEO if record.is_video else MediaKind.IMAGE,
            data=record.data,
            mime_type=record.mime_type,
            created_at=record.created_at,
        )
