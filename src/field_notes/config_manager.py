"""Configuration Manager for the Field Notes store."""
import os
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from appdirs import user_data_dir

from field_notes.enums import MediaKind, StorageStrategy

APP_NAME = 'FieldNotes'
DB_FILENAME = 'fieldnotes.db3'


def default_db_path():
    """Database file under the platform's per-user application data directory."""
    return os.path.join(user_data_dir(APP_NAME, APP_NAME), DB_FILENAME)


class ConfigManager(BaseSettings):
    """Manages store configuration settings using Pydantic BaseSettings."""

    # Storage settings
    db_path: str = Field(default_factory=default_db_path)
    storage_strategy: StorageStrategy = StorageStrategy.BLOB
    sqlite_timeout: float = 5.0  # seconds to wait on a locked database file
    echo_sql: bool = False

    # Media settings
    image_mime_type: str = 'image/jpeg'
    video_mime_type: str = 'video/mp4'
    audio_mime_type: str = 'audio/mp4'
    delete_replaced_media: bool = True

    model_config = SettingsConfigDict(env_prefix='FIELD_NOTES_', case_sensitive=False)

    def mime_type_for(self, kind):
        """MIME type recorded for a blob of the given kind."""
        kind = MediaKind(kind)
        if kind is MediaKind.VIDEO:
            return self.video_mime_type
        if kind is MediaKind.AUDIO:
            return self.audio_mime_type
        return self.image_mime_type

    def get(self, key, default=None):
        """Get a configuration value."""
        return getattr(self, key, default)

    def set(self, key, value):
        """Set a configuration value."""
        setattr(self, key, value)

    def get_all(self):
        """Get all configuration values as dictionary."""
        return self.model_dump()
