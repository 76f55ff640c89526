import enum


class MediaKind(str, enum.Enum):
    """Kinds of captured payload a blob can hold.

    Images and videos are stored in the media table; audio is stored in the
    voice_recordings table.
    """
    AUDIO = "audio"
    IMAGE = "image"
    VIDEO = "video"

    @property
    def is_audio(self):
        return self is MediaKind.AUDIO


class StorageStrategy(str, enum.Enum):
    """How an entry refers to its media.

    A database is created with one strategy and keeps it for its lifetime.
    """
    BLOB = "blob"
    PATH_LIST = "path_list"
