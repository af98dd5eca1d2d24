"""Metadata extraction: probe output and embedded tags to normalized records."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from ..core.config import MediaType
from ..core.date_utils import to_utc_iso
from ..core.errors import ExtractionFailure
from ..core.models import (
    AudioStreamInfo,
    DeviceTags,
    ImageMetadata,
    Metadata,
    StreamSummary,
    TimecodeInfo,
    VideoAudioMetadata,
    VideoStreamInfo,
)
from ..core.protocols import MediaProbe, TagReader
from .timecode import calculate_end_timecode, resolution_quality

logger = logging.getLogger(__name__)


# Format tags that may carry the start timecode, in priority order
TIMECODE_TAG_KEYS = [
    "timecode",
    "time_code",
    "tc",
    "start_timecode",
    "TIMECODE",
    "creation_time_timecode",
    "material_package_timecode",
]

TIMECODE_CODECS = {"smpte_timecode", "timecode"}

# Fields requested from the embedded-tag reader for still images
IMAGE_FIELDS = [
    "Make", "Model", "Software",
    "DateTime", "DateTimeOriginal", "DateTimeDigitized",
    "CreateDate", "ModifyDate",
    "ISO", "FNumber", "ExposureTime", "FocalLength",
    "WhiteBalance", "Flash", "Orientation",
    "ImageWidth", "ImageHeight",
    "ColorSpace", "ExifImageWidth", "ExifImageHeight",
    "GPSLatitude", "GPSLongitude", "GPSAltitude",
    "Artist", "Copyright", "ImageDescription",
    "XResolution", "YResolution", "ResolutionUnit",
]


def _first(*values: Any) -> Any:
    """First truthy value, or None."""
    for value in values:
        if value:
            return value
    return None


def _safe_int(value: Any) -> Optional[int]:
    """Integer or None; zero counts as missing."""
    if value is None:
        return None
    try:
        return int(float(value)) or None
    except (TypeError, ValueError, OverflowError):
        return None


def _safe_float(value: Any) -> Optional[float]:
    """Float or None; zero counts as missing."""
    if value is None:
        return None
    try:
        return float(value) or None
    except (TypeError, ValueError):
        return None


def _dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


# ============ Video / audio ============

def _find_start_timecode(format_tags: dict, streams: list[dict]) -> Optional[str]:
    for key in TIMECODE_TAG_KEYS:
        if format_tags.get(key):
            return format_tags[key]
    for stream in streams:
        tc = _dict(stream.get("tags")).get("timecode")
        if tc:
            return tc
    return None


def _find_timecode_track(streams: list[dict]) -> Optional[dict]:
    for stream in streams:
        if stream.get("codec_type") != "data":
            continue
        if stream.get("codec_name") in TIMECODE_CODECS or _dict(stream.get("tags")).get("timecode"):
            return stream
    return None


def _build_timecode(format_section: dict, format_tags: dict, streams: list[dict],
                    video_stream: Optional[dict]) -> TimecodeInfo:
    tc_tag = format_tags.get("timecode")
    # A known timecode without ";" is non-drop-frame (False), not unknown
    separator_drop = ";" in tc_tag if isinstance(tc_tag, str) else None
    drop_frame = _first(format_tags.get("drop_frame"), format_tags.get("drop_frame_flag")) or separator_drop
    video = video_stream or {}
    return TimecodeInfo(
        start_timecode=_find_start_timecode(format_tags, streams),
        duration=_safe_float(format_section.get("duration")),
        frame_rate=_first(video.get("r_frame_rate"), video.get("avg_frame_rate")),
        drop_frame=drop_frame,
        alt_timecode=format_tags.get("alt_timecode") or None,
        source_timecode=format_tags.get("source_timecode") or None,
        creation_timecode=format_tags.get("creation_time_timecode") or None,
        timecode_track=_find_timecode_track(streams),
        all_timecode_fields={
            key: value
            for key, value in format_tags.items()
            if "timecode" in key.lower() or "time_code" in key.lower()
        },
    )


def _build_video(stream: dict) -> VideoStreamInfo:
    width = stream.get("width") or None
    height = stream.get("height") or None
    return VideoStreamInfo(
        codec=stream.get("codec_name") or None,
        codec_long_name=stream.get("codec_long_name") or None,
        width=width,
        height=height,
        aspect_ratio=stream.get("display_aspect_ratio") or None,
        frame_rate=stream.get("r_frame_rate") or None,
        avg_frame_rate=stream.get("avg_frame_rate") or None,
        pixel_format=stream.get("pix_fmt") or None,
        color_space=stream.get("color_space") or None,
        color_range=stream.get("color_range") or None,
        bit_rate=_safe_int(stream.get("bit_rate")),
        quality=resolution_quality(width, height),
    )


def _build_audio(stream: dict) -> AudioStreamInfo:
    return AudioStreamInfo(
        codec=stream.get("codec_name") or None,
        codec_long_name=stream.get("codec_long_name") or None,
        sample_rate=_safe_int(stream.get("sample_rate")),
        channels=stream.get("channels") or None,
        channel_layout=stream.get("channel_layout") or None,
        bit_rate=_safe_int(stream.get("bit_rate")),
        bits_per_sample=stream.get("bits_per_sample") or None,
    )


def _build_device_tags(tags: dict) -> DeviceTags:
    def get(key: str) -> Any:
        return tags.get(key) or None

    return DeviceTags(
        title=get("title"),
        artist=get("artist"),
        album=get("album"),
        date=get("date"),
        genre=get("genre"),
        comment=get("comment"),
        make=get("make"),
        model=get("model"),
        software=get("software"),
        encoder=get("encoder"),
        product_name=get("product_name"),
        product_version=get("product_version"),
        product_uid=get("product_uid"),
        # MXF writers put the shooting date in modification_date
        recorded_date=get("modification_date"),
        shooting_date=get("modification_date"),
        material_package_umid=get("material_package_umid"),
        package_uid=get("package_uid"),
        reel=get("reel"),
        scene=get("scene"),
        take=get("take"),
        angle=_first(tags.get("angle"), tags.get("camera_angle")),
        location=get("location"),
        gps_coordinates=get("com.apple.quicktime.location.ISO6709"),
        copyright=get("copyright"),
        description=get("description"),
        keywords=get("keywords"),
    )


def normalize_probe(info: dict) -> VideoAudioMetadata:
    """Turn raw ffprobe JSON into a VideoAudioMetadata record.

    Derived fields: ``video.quality`` from the frame size, and
    ``timecode.end_timecode`` when both a start timecode and a duration exist.
    """
    format_section = _dict(info.get("format"))
    format_tags = _dict(format_section.get("tags"))
    streams = [s for s in info.get("streams") or [] if isinstance(s, dict)]

    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)

    creation_time = format_tags.get("creation_time") or None

    metadata = VideoAudioMetadata(
        duration=_safe_float(format_section.get("duration")),
        size=_safe_int(format_section.get("size")),
        bit_rate=_safe_int(format_section.get("bit_rate")),
        format_name=format_section.get("format_name") or None,
        format_long_name=format_section.get("format_long_name") or None,
        start_time=_safe_float(format_section.get("start_time")),
        creation_time=creation_time,
        creation_time_utc=to_utc_iso(creation_time) if creation_time else None,
        timecode=_build_timecode(format_section, format_tags, streams, video_stream),
        video=_build_video(video_stream) if video_stream else None,
        audio=_build_audio(audio_stream) if audio_stream else None,
        tags=_build_device_tags(format_tags),
        streams_count=len(streams),
        streams=[
            StreamSummary(
                index=s.get("index"),
                codec_type=s.get("codec_type"),
                codec_name=s.get("codec_name"),
                duration=_safe_float(s.get("duration")),
            )
            for s in streams
        ],
    )

    tc = metadata.timecode
    if tc.start_timecode and tc.duration:
        tc.end_timecode = calculate_end_timecode(tc.start_timecode, tc.duration, tc.frame_rate)

    return metadata


# ============ Images ============

def normalize_image(tags: dict) -> ImageMetadata:
    """Turn a flat tag map into an ImageMetadata record.

    Each of the three dates gets its own UTC twin; a date that cannot be
    converted leaves only its own twin empty.
    """
    metadata = ImageMetadata(
        make=tags.get("Make") or None,
        model=tags.get("Model") or None,
        software=tags.get("Software") or None,
        date_time_original=_first(tags.get("DateTimeOriginal"), tags.get("CreateDate")),
        date_time_digitized=tags.get("DateTimeDigitized") or None,
        date_time=_first(tags.get("DateTime"), tags.get("ModifyDate")),
        iso=tags.get("ISO") or None,
        f_number=tags.get("FNumber") or None,
        exposure_time=tags.get("ExposureTime") or None,
        focal_length=tags.get("FocalLength") or None,
        white_balance=tags.get("WhiteBalance"),
        flash=tags.get("Flash"),
        orientation=tags.get("Orientation") or None,
        image_width=_first(tags.get("ImageWidth"), tags.get("ExifImageWidth")),
        image_height=_first(tags.get("ImageHeight"), tags.get("ExifImageHeight")),
        color_space=tags.get("ColorSpace") or None,
        gps_latitude=tags.get("GPSLatitude") or None,
        gps_longitude=tags.get("GPSLongitude") or None,
        gps_altitude=tags.get("GPSAltitude") or None,
        artist=tags.get("Artist") or None,
        copyright=tags.get("Copyright") or None,
        image_description=tags.get("ImageDescription") or None,
        x_resolution=tags.get("XResolution") or None,
        y_resolution=tags.get("YResolution") or None,
        resolution_unit=tags.get("ResolutionUnit") or None,
    )

    if metadata.date_time_original:
        metadata.date_time_original_utc = to_utc_iso(metadata.date_time_original)
    if metadata.date_time_digitized:
        metadata.date_time_digitized_utc = to_utc_iso(metadata.date_time_digitized)
    if metadata.date_time:
        metadata.date_time_utc = to_utc_iso(metadata.date_time)

    return metadata


class MetadataExtractor:
    """Produces normalized metadata for a classified file.

    Extraction never blocks ingestion: collaborator failures are logged and
    reported as "no metadata".
    """

    def __init__(self, probe: MediaProbe, tag_reader: TagReader):
        """Initialize the extractor.

        Args:
            probe: Video/audio probe (ffprobe).
            tag_reader: Embedded image tag reader.
        """
        self._probe = probe
        self._tag_reader = tag_reader

    @property
    def tag_reader_name(self) -> str:
        return self._tag_reader.name

    def extract(self, path: Path, media_type: MediaType) -> Optional[Metadata]:
        """Extract metadata, returning None if the collaborator failed."""
        try:
            if media_type == MediaType.IMAGES:
                return self.extract_image(path)
            return self.extract_video(path)
        except ExtractionFailure as e:
            logger.warning("No metadata for %s: %s", path.name, e.reason)
            return None

    def extract_video(self, path: Path) -> VideoAudioMetadata:
        """Probe a video or audio file.

        Raises:
            ProbeFailure: The probe could not read the file.
        """
        return normalize_probe(self._probe.probe(path))

    def extract_image(self, path: Path) -> Optional[ImageMetadata]:
        """Read embedded tags from an image.

        Raises:
            TagReadFailure: The reader could not read the file.
        """
        tags = self._tag_reader.read(path, IMAGE_FIELDS)
        if not tags:
            return None
        return normalize_image(tags)
