"""Input validation utilities."""
import math

from field_notes.exceptions import InvalidArgument
from field_notes.models import NAME_MAX_LENGTH, NOTES_MAX_LENGTH


class Validator:
    """Input validation utilities.

    Every check raises InvalidArgument and returns the value unchanged, so
    what the caller passed is exactly what gets stored.
    """

    @staticmethod
    def validate_required(value, field_name):
        """Validate that a required field is not empty."""
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidArgument(f"{field_name} is required")
        return value

    @staticmethod
    def validate_string_length(value, field_name, min_length=0, max_length=None):
        """Validate string length constraints."""
        if not isinstance(value, str):
            raise InvalidArgument(f"{field_name} must be a string")

        if len(value) < min_length:
            raise InvalidArgument(f"{field_name} must be at least {min_length} characters")

        if max_length and len(value) > max_length:
            raise InvalidArgument(f"{field_name} must be no more than {max_length} characters")

        return value

    @staticmethod
    def validate_coordinates(lat, lng):
        """Validate an optional geotag.

        Both values must be given or both omitted; a lone latitude or longitude
        has no meaning and is rejected.
        """
        if lat is None and lng is None:
            return None, None
        if lat is None or lng is None:
            missing = 'Longitude' if lng is None else 'Latitude'
            raise InvalidArgument(f"{missing} is required when the other coordinate is set")

        try:
            lat_val = float(lat)
            lng_val = float(lng)
        except (TypeError, ValueError):
            raise InvalidArgument(f"Coordinates must be numbers, got '{lat}', '{lng}'")

        if math.isnan(lat_val) or not (-90 <= lat_val <= 90):
            raise InvalidArgument("Latitude must be between -90 and 90")

        if math.isnan(lng_val) or not (-180 <= lng_val <= 180):
            raise InvalidArgument("Longitude must be between -180 and 180")

        return lat_val, lng_val

    @staticmethod
    def validate_reference(value, field_name):
        """Validate an optional foreign key id."""
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise InvalidArgument(f"{field_name} must be a positive integer id, got {value!r}")
        return value

    @classmethod
    def validate_entry(cls, entry):
        """Validate every persisted field of an entry before insert or update."""
        cls.validate_required(entry.name, 'Entry name')
        cls.validate_string_length(entry.name, 'Entry name', max_length=NAME_MAX_LENGTH)
        cls.validate_string_length(entry.notes, 'Notes', max_length=NOTES_MAX_LENGTH)
        cls.validate_coordinates(entry.latitude, entry.longitude)
        cls.validate_reference(entry.media_id, 'media_id')
        cls.validate_reference(entry.voice_recording_id, 'voice_recording_id')
        return entry
