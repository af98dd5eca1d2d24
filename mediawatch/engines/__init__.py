"""Classification and metadata engines."""
from .classifier import classify, is_media, require_media_type
from .exiftool import ExifToolReader, PillowTagReader, create_tag_reader
from .ffprobe import FFprobe
from .metadata import MetadataExtractor
from .timecode import calculate_end_timecode, resolution_quality

__all__ = [
    "classify",
    "is_media",
    "require_media_type",
    "ExifToolReader",
    "PillowTagReader",
    "create_tag_reader",
    "FFprobe",
    "MetadataExtractor",
    "calculate_end_timecode",
    "resolution_quality",
]
