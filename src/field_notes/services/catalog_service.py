"""Catalog service: the save/list/get/delete surface the UI layer calls."""
import logging

from pydantic import ValidationError

from field_notes.enums import MediaKind, StorageStrategy
from field_notes.exceptions import CorruptData, InvalidArgument, NotFound
from field_notes.models import now
from field_notes.schemas import Entry, EntryDetail, EntrySummary, MediaItem
from field_notes.utils import default_entry_name, is_video_path
from field_notes.validation import Validator


class CatalogService:
    """Coordinates the Blob Store and the Entry Store.

    Callers pass captured bytes, file paths, notes and coordinates; they never
    handle blob ids. Each operation runs in one session scope, writing blobs
    before the entry that references them and deleting them before the entry
    that owned them, all in a single commit.
    """

    def __init__(self, db, clock=None):
        self.db = db
        self.blobs = db.blobs
        self.entries = db.entries
        self.clock = clock or now
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def storage_strategy(self):
        return self.db.storage_strategy

    def _require_strategy(self, strategy):
        if self.storage_strategy is not strategy:
            raise InvalidArgument(
                f"This catalog uses '{self.storage_strategy.value}' storage; "
                f"'{strategy.value}' operations are not available"
            )

    @staticmethod
    def _split_coords(coords):
        if coords is None:
            return None, None
        try:
            latitude, longitude = coords
        except (TypeError, ValueError):
            raise InvalidArgument(f"coords must be a (latitude, longitude) pair, got {coords!r}")
        return Validator.validate_coordinates(latitude, longitude)

    @staticmethod
    def _build_entry(**fields):
        try:
            return Entry(**fields)
        except ValidationError as e:
            error = e.errors()[0]
            field = '.'.join(str(part) for part in error['loc'])
            raise InvalidArgument(f"Invalid {field}: {error['msg']}") from e

    @staticmethod
    def _media_kind(entry):
        return MediaKind.VIDEO if entry.is_video else MediaKind.IMAGE

    def save_capture(self, media_bytes, kind, name="", notes="", coords=None,
                     existing_entry_id=0, media_changed=True, voice=None):
        """Save a captured photo or video as a new entry or as an edit of an existing one.

        Args:
            media_bytes: Captured bytes; only read when a new blob is written
            kind: MediaKind.IMAGE or MediaKind.VIDEO
            name: Display name; a new entry without one is named after its date and kind
            notes: Free text, at most 500 characters
            coords: Optional (latitude, longitude) pair
            existing_entry_id: 0 for a new entry, otherwise the entry being edited
            media_changed: On edits, False keeps the stored media without rewriting it
            voice: Optional VoiceClip that replaces the entry's voice recording

        Returns:
            int: The entry id

        Raises:
            InvalidArgument: Bad kind, missing media, or an entry that fails validation
            NotFound: existing_entry_id does not exist
        """
        self._require_strategy(StorageStrategy.BLOB)
        try:
            kind = MediaKind(kind)
        except ValueError:
            raise InvalidArgument(f"Unknown media kind: {kind!r}")
        if kind.is_audio:
            raise InvalidArgument("Captured media must be an image or a video")
        latitude, longitude = self._split_coords(coords)

        with self.db.session_scope():
            prior = self.entries.get_by_id(existing_entry_id) if existing_entry_id else None

            if prior is None or media_changed:
                if media_bytes is None:
                    raise InvalidArgument("media_bytes is required for new or replaced media")
                media_id = self.blobs.save(media_bytes, kind)
                is_video = kind is MediaKind.VIDEO
            else:
                media_id = prior.media_id
                is_video = prior.is_video

            voice_id = self._save_voice(voice, prior)
            created_at = prior.created_at if prior else self.clock()
            if not name and prior is None:
                name = default_entry_name(created_at, is_video)

            entry = self._build_entry(
                id=existing_entry_id,
                name=name or "",
                notes=notes or "",
                latitude=latitude,
                longitude=longitude,
                created_at=created_at,
                is_video=is_video,
                media_id=media_id,
                voice_recording_id=voice_id,
            )
            entry_id = self.entries.save(entry)

            if prior is not None:
                if prior.media_id and prior.media_id != media_id and self.db.config.delete_replaced_media:
                    self._release_blob(prior.media_id, self._media_kind(prior))
                if prior.voice_recording_id and prior.voice_recording_id != voice_id:
                    self._release_blob(prior.voice_recording_id, MediaKind.AUDIO)

        self.logger.info(f"{'Updated' if prior else 'Created'} {kind.value} entry {entry_id}")
        return entry_id

    def save_referenced_files(self, file_paths, name="", notes="", coords=None,
                              existing_entry_id=0, voice=None):
        """Save an entry whose media stays in external files, referenced by path.

        On edits, ``file_paths=None`` keeps the stored path list.
        """
        self._require_strategy(StorageStrategy.PATH_LIST)
        latitude, longitude = self._split_coords(coords)

        with self.db.session_scope():
            prior = self.entries.get_by_id(existing_entry_id) if existing_entry_id else None

            if file_paths is None:
                file_paths = prior.file_paths if prior else []
            elif isinstance(file_paths, str):
                raise InvalidArgument("file_paths must be a list of paths, not a single string")
            file_paths = list(file_paths)
            if not all(isinstance(path, str) for path in file_paths):
                raise InvalidArgument("file_paths must contain only strings")
            is_video = any(is_video_path(path) for path in file_paths)

            voice_id = self._save_voice(voice, prior)
            created_at = prior.created_at if prior else self.clock()
            if not name and prior is None:
                name = default_entry_name(created_at, is_video)

            entry = self._build_entry(
                id=existing_entry_id,
                name=name or "",
                notes=notes or "",
                latitude=latitude,
                longitude=longitude,
                created_at=created_at,
                is_video=is_video,
                file_paths=file_paths,
                voice_recording_id=voice_id,
            )
            entry_id = self.entries.save(entry)

            if prior is not None and prior.voice_recording_id and prior.voice_recording_id != voice_id:
                self._release_blob(prior.voice_recording_id, MediaKind.AUDIO)

        self.logger.info(f"{'Updated' if prior else 'Created'} entry {entry_id} with {len(file_paths)} file(s)")
        return entry_id

    def _save_voice(self, voice, prior):
        if voice is None:
            return prior.voice_recording_id if prior else None
        return self.blobs.save(voice.data, MediaKind.AUDIO, voice.duration_seconds)

    def delete_entry(self, entry_id):
        """Delete an entry together with its voice recording and media blob.

        A blob that is already gone is logged and skipped. A missing entry
        raises NotFound and nothing is deleted.
        """
        with self.db.session_scope():
            entry = self.entries.get_by_id(entry_id)
            if entry.voice_recording_id:
                self._release_blob(entry.voice_recording_id, MediaKind.AUDIO, owner_id=entry_id)
            if entry.media_id:
                self._release_blob(entry.media_id, self._media_kind(entry), owner_id=entry_id)
            self.entries.delete(entry_id)
        self.logger.info(f"Deleted entry {entry_id} and its blobs")

    def _release_blob(self, blob_id, kind, owner_id=None):
        """Delete a blob unless another entry still references it."""
        holders = [entry_id for entry_id in self.entries.find_referencing(blob_id, kind) if entry_id != owner_id]
        if holders:
            self.logger.debug(f"Keeping {kind.value} blob {blob_id}, still referenced by entries {holders}")
            return False
        try:
            self.blobs.delete(blob_id, kind)
            return True
        except NotFound:
            self.logger.warning(f"{kind.value.title()} blob {blob_id} already deleted")
            return False

    def list_summaries(self):
        """Get list rows for every entry, newest first."""
        summaries = []
        for entry in self.entries.list_all():
            if self.storage_strategy is StorageStrategy.PATH_LIST:
                media_count = len(entry.file_paths)
                is_video = any(is_video_path(path) for path in entry.file_paths)
            else:
                media_count = 1 if entry.media_id else 0
                is_video = entry.is_video
            summaries.append(EntrySummary(
                id=entry.id,
                name=entry.name,
                created_at=entry.created_at,
                media_count=media_count,
                is_video=is_video,
                has_voice_recording=entry.voice_recording_id is not None,
            ))
        return summaries

    def get_entry_detail(self, entry_id):
        """Get an entry with its media and voice recording resolved."""
        with self.db.session_scope():
            entry = self.entries.get_by_id(entry_id)
            media = None
            if entry.media_id:
                media = self._resolve(entry, entry.media_id, self._media_kind(entry))
            voice_recording = None
            if entry.voice_recording_id:
                voice_recording = self._resolve(entry, entry.voice_recording_id, MediaKind.AUDIO)
        return EntryDetail(
            entry=entry,
            media=media,
            voice_recording=voice_recording,
            media_items=[MediaItem.from_path(path) for path in entry.file_paths],
        )

    def _resolve(self, entry, blob_id, kind):
        try:
            return self.blobs.get(blob_id, kind)
        except NotFound as e:
            self.logger.error(f"Entry {entry.id} references missing {kind.value} blob {blob_id}")
            raise CorruptData(f"Entry {entry.id} references missing {kind.value} blob {blob_id}") from e

    def attach_voice_recording(self, entry_id, audio, duration_seconds=0):
        """Attach a voice recording to an entry, replacing any previous one."""
        with self.db.session_scope():
            entry = self.entries.get_by_id(entry_id)
            previous_id = entry.voice_recording_id
            entry.voice_recording_id = self.blobs.save(audio, MediaKind.AUDIO, duration_seconds)
            self.entries.update(entry)
            if previous_id:
                self._release_blob(previous_id, MediaKind.AUDIO)
        self.logger.info(f"Attached voice recording {entry.voice_recording_id} to entry {entry_id}")
        return entry.voice_recording_id

    def remove_voice_recording(self, entry_id):
        """Detach and delete an entry's voice recording. Returns False if it had none."""
        with self.db.session_scope():
            entry = self.entries.get_by_id(entry_id)
            previous_id = entry.voice_recording_id
            if previous_id is None:
                return False
            entry.voice_recording_id = None
            self.entries.update(entry)
            self._release_blob(previous_id, MediaKind.AUDIO)
        self.logger.info(f"Removed voice recording {previous_id} from entry {entry_id}")
        return True

    def find_orphaned_blobs(self):
        """Get ids of blobs that no entry references, by table."""
        with self.db.session_scope():
            referenced_media, referenced_voice = self.entries.referenced_blob_ids()
            media_ids = self.blobs.list_media_ids() - referenced_media
            voice_ids = self.blobs.list_voice_recording_ids() - referenced_voice
        return {
            'media': sorted(media_ids),
            'voice_recordings': sorted(voice_ids),
        }

    def purge_orphaned_blobs(self):
        """Delete every unreferenced blob. Returns the number of rows removed."""
        with self.db.session_scope():
            orphaned = self.find_orphaned_blobs()
            for media_id in orphaned['media']:
                self.blobs.delete(media_id, MediaKind.IMAGE)
            for voice_id in orphaned['voice_recordings']:
                self.blobs.delete(voice_id, MediaKind.AUDIO)
        removed = len(orphaned['media']) + len(orphaned['voice_recordings'])
        if removed:
            self.logger.info(f"Purged {removed} orphaned blob(s)")
        return removed
