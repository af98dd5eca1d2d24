"""Tests for metadata extraction engines."""
import copy
import json
import subprocess
import pytest
from datetime import datetime
from pathlib import Path

from PIL import Image

from mediawatch.core.config import MediaType
from mediawatch.core.date_utils import to_iso
from mediawatch.core.errors import ProbeFailure, TagReadFailure
from mediawatch.core.models import ImageMetadata, VideoAudioMetadata
from mediawatch.engines import exiftool as exiftool_module
from mediawatch.engines import ffprobe as ffprobe_module
from mediawatch.engines.exiftool import ExifToolReader, PillowTagReader, create_tag_reader
from mediawatch.engines.ffprobe import PROBE_ARGS, FFprobe
from mediawatch.engines.metadata import IMAGE_FIELDS, MetadataExtractor, normalize_image, normalize_probe

from fixtures import SAMPLE_IMAGE_TAGS, SAMPLE_PROBE, FakeProbe, FakeTagReader


def completed(stdout: str = "", returncode: int = 0, stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class TestNormalizeProbe:
    """Tests for normalize_probe()."""

    @pytest.fixture
    def metadata(self) -> VideoAudioMetadata:
        return normalize_probe(copy.deepcopy(SAMPLE_PROBE))

    def test_format_fields(self, metadata):
        """Test container-level values are converted to numbers."""
        assert metadata.duration == 90.0
        assert metadata.size == 10485760
        assert metadata.bit_rate == 932067
        assert metadata.format_long_name == "QuickTime / MOV"
        assert metadata.streams_count == 3

    def test_zero_values_are_missing(self, metadata):
        """Test a zero start time is reported as missing."""
        assert metadata.start_time is None

    def test_creation_time_utc(self, metadata):
        """Test the creation time gets a UTC twin."""
        assert metadata.creation_time == "2024-03-15T10:30:00.000000Z"
        assert metadata.creation_time_utc == "2024-03-15T10:30:00.000Z"

    def test_timecode(self, metadata):
        """Test start timecode lookup and end timecode derivation."""
        tc = metadata.timecode
        assert tc.start_timecode == "01:00:00:00"
        assert tc.end_timecode == "01:01:30:00"
        assert tc.frame_rate == "30/1"
        assert tc.all_timecode_fields == {"timecode": "01:00:00:00"}
        assert tc.timecode_track["codec_name"] == "timecode"

    def test_timecode_from_stream_tags(self):
        """Test streams are searched when format tags have no timecode."""
        info = copy.deepcopy(SAMPLE_PROBE)
        del info["format"]["tags"]["timecode"]
        info["streams"][2]["tags"]["timecode"] = "10:00:00:00"

        tc = normalize_probe(info).timecode
        assert tc.start_timecode == "10:00:00:00"
        assert tc.end_timecode == "10:01:30:00"

    def test_no_timecode(self):
        """Test files without timecode have no end timecode."""
        info = copy.deepcopy(SAMPLE_PROBE)
        del info["format"]["tags"]["timecode"]
        info["streams"] = info["streams"][:2]

        tc = normalize_probe(info).timecode
        assert tc.start_timecode is None
        assert tc.end_timecode is None
        assert tc.timecode_track is None

    def test_drop_frame_false_for_colon_timecode(self, metadata):
        """Test a timecode without ";" is recorded as non-drop-frame."""
        assert metadata.timecode.drop_frame is False

    def test_drop_frame_from_separator(self):
        """Test a ";" separator marks drop-frame timecode."""
        info = copy.deepcopy(SAMPLE_PROBE)
        info["format"]["tags"]["timecode"] = "01:00:00;00"
        assert normalize_probe(info).timecode.drop_frame is True

    def test_drop_frame_unknown_without_timecode(self):
        """Test drop frame stays unknown when there is no timecode tag."""
        info = copy.deepcopy(SAMPLE_PROBE)
        del info["format"]["tags"]["timecode"]
        assert normalize_probe(info).timecode.drop_frame is None

    def test_drop_frame_tag_wins(self):
        """Test an explicit drop_frame tag is used as given."""
        info = copy.deepcopy(SAMPLE_PROBE)
        info["format"]["tags"]["drop_frame"] = "1"
        assert normalize_probe(info).timecode.drop_frame == "1"

    def test_video_stream(self, metadata):
        """Test the first video stream and its quality label."""
        assert metadata.video.codec == "h264"
        assert metadata.video.width == 1920
        assert metadata.video.height == 1080
        assert metadata.video.quality == "1080p/FHD"
        assert metadata.video.bit_rate == 800000

    def test_audio_stream(self, metadata):
        """Test the first audio stream."""
        assert metadata.audio.codec == "aac"
        assert metadata.audio.sample_rate == 48000
        assert metadata.audio.channels == 2

    def test_device_tags(self, metadata):
        """Test camera tags including the QuickTime location."""
        assert metadata.tags.make == "Apple"
        assert metadata.tags.model == "iPhone 15 Pro"
        assert metadata.tags.gps_coordinates == "+48.8584+002.2945/"
        assert metadata.tags.reel is None

    def test_stream_summary(self, metadata):
        """Test each stream is summarized."""
        assert [s.codec_type for s in metadata.streams] == ["video", "audio", "data"]
        assert metadata.streams[0].duration == 90.0

    def test_audio_only(self):
        """Test audio files have no video block."""
        info = {
            "format": {"duration": "12.5", "format_name": "wav"},
            "streams": [{"index": 0, "codec_type": "audio", "codec_name": "pcm_s16le", "sample_rate": "44100"}],
        }
        metadata = normalize_probe(info)
        assert metadata.video is None
        assert metadata.audio.sample_rate == 44100
        assert metadata.creation_time_utc is None

    def test_empty_probe(self):
        """Test an empty probe result still gives a record."""
        metadata = normalize_probe({})
        assert metadata.duration is None
        assert metadata.streams == []


class TestNormalizeImage:
    """Tests for normalize_image()."""

    def test_fields(self):
        """Test camera and exposure fields."""
        metadata = normalize_image(dict(SAMPLE_IMAGE_TAGS))
        assert metadata.make == "SONY"
        assert metadata.iso == 400
        assert metadata.f_number == 2.8
        assert metadata.gps_latitude == 48.8584

    def test_dimension_fallback(self):
        """Test ExifImageWidth/Height fill in missing ImageWidth/Height."""
        metadata = normalize_image(dict(SAMPLE_IMAGE_TAGS))
        assert metadata.image_width == 7008
        assert metadata.image_height == 4672

    def test_date_fallbacks(self):
        """Test CreateDate and ModifyDate fill in missing dates."""
        metadata = normalize_image({"CreateDate": "2024:01:02 03:04:05", "ModifyDate": "2024:02:03 04:05:06"})
        assert metadata.date_time_original == "2024:01:02 03:04:05"
        assert metadata.date_time == "2024:02:03 04:05:06"
        assert metadata.date_time_digitized is None

    def test_utc_twins(self):
        """Test each present date gets its own UTC twin in local time."""
        metadata = normalize_image(dict(SAMPLE_IMAGE_TAGS))
        assert metadata.date_time_original_utc == to_iso(datetime(2024, 3, 15, 10, 30))
        assert metadata.date_time_utc is None

    def test_bad_date_only_affects_its_twin(self):
        """Test an unparsable date leaves only its own twin empty."""
        metadata = normalize_image({"DateTimeOriginal": "garbage", "DateTime": "2024:03:15 10:30:00"})
        assert metadata.date_time_original == "garbage"
        assert metadata.date_time_original_utc is None
        assert metadata.date_time_utc is not None


class TestMetadataExtractor:
    """Tests for MetadataExtractor."""

    def test_video_uses_probe(self, tmp_path):
        """Test videos go through the probe."""
        probe = FakeProbe(result=copy.deepcopy(SAMPLE_PROBE))
        extractor = MetadataExtractor(probe, FakeTagReader())

        metadata = extractor.extract(tmp_path / "clip.mov", MediaType.VIDEOS)
        assert isinstance(metadata, VideoAudioMetadata)
        assert probe.calls == [tmp_path / "clip.mov"]

    def test_audio_uses_probe(self, tmp_path):
        """Test audio also goes through the probe."""
        probe = FakeProbe(result={"format": {"duration": "3"}, "streams": []})
        reader = FakeTagReader()
        metadata = MetadataExtractor(probe, reader).extract(tmp_path / "a.wav", MediaType.AUDIO)
        assert metadata.duration == 3.0
        assert reader.calls == []

    def test_probe_failure_gives_none(self, tmp_path):
        """Test a failing probe yields no metadata instead of raising."""
        extractor = MetadataExtractor(FakeProbe(error="FFprobe failed: bad file"), FakeTagReader())
        assert extractor.extract(tmp_path / "clip.mov", MediaType.VIDEOS) is None

    def test_image_uses_tag_reader(self, tmp_path):
        """Test images go through the tag reader with the image field list."""
        reader = FakeTagReader(tags=dict(SAMPLE_IMAGE_TAGS))
        probe = FakeProbe()
        metadata = MetadataExtractor(probe, reader).extract(tmp_path / "a.jpg", MediaType.IMAGES)
        assert isinstance(metadata, ImageMetadata)
        assert metadata.model == "ILCE-7M4"
        assert probe.calls == []

    def test_image_without_tags(self, tmp_path):
        """Test an image with no tags has no metadata."""
        extractor = MetadataExtractor(FakeProbe(), FakeTagReader(tags=None))
        assert extractor.extract(tmp_path / "a.png", MediaType.IMAGES) is None

    def test_tag_reader_failure_gives_none(self, tmp_path):
        """Test a failing tag reader yields no metadata."""
        extractor = MetadataExtractor(FakeProbe(), FakeTagReader(error="corrupt"))
        assert extractor.extract(tmp_path / "a.jpg", MediaType.IMAGES) is None

    def test_extract_video_raises(self, tmp_path):
        """Test the direct call surfaces ProbeFailure."""
        extractor = MetadataExtractor(FakeProbe(error="boom"), FakeTagReader())
        with pytest.raises(ProbeFailure):
            extractor.extract_video(tmp_path / "clip.mov")


class TestFFprobe:
    """Tests for the ffprobe subprocess wrapper."""

    def test_command_and_parse(self, monkeypatch, tmp_path):
        """Test the invocation and JSON parsing."""
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append((cmd, kwargs))
            return completed(stdout=json.dumps(SAMPLE_PROBE))

        monkeypatch.setattr(ffprobe_module.subprocess, "run", fake_run)
        result = FFprobe("ffprobe", timeout=5).probe(tmp_path / "clip.mov")

        assert result["format"]["duration"] == "90.000000"
        cmd, kwargs = calls[0]
        assert cmd == ["ffprobe", *PROBE_ARGS, str(tmp_path / "clip.mov")]
        assert kwargs["timeout"] == 5

    def test_nonzero_exit(self, monkeypatch, tmp_path):
        """Test a failing ffprobe raises ProbeFailure."""
        monkeypatch.setattr(
            ffprobe_module.subprocess, "run",
            lambda cmd, **kw: completed(returncode=1, stderr="Invalid data found"),
        )
        with pytest.raises(ProbeFailure, match="FFprobe failed: Invalid data found"):
            FFprobe().probe(tmp_path / "clip.mov")

    def test_bad_json(self, monkeypatch, tmp_path):
        """Test unparsable output raises ProbeFailure."""
        monkeypatch.setattr(ffprobe_module.subprocess, "run", lambda cmd, **kw: completed(stdout="{oops"))
        with pytest.raises(ProbeFailure, match="parse"):
            FFprobe().probe(tmp_path / "clip.mov")

    def test_missing_binary(self, tmp_path):
        """Test a missing executable raises ProbeFailure."""
        with pytest.raises(ProbeFailure, match="not found"):
            FFprobe(binary=str(tmp_path / "no-such-ffprobe")).probe(tmp_path / "clip.mov")

    def test_timeout(self, monkeypatch, tmp_path):
        """Test a hung probe raises ProbeFailure."""
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

        monkeypatch.setattr(ffprobe_module.subprocess, "run", fake_run)
        with pytest.raises(ProbeFailure, match="timed out"):
            FFprobe(timeout=1).probe(tmp_path / "clip.mov")

    def test_available(self, monkeypatch):
        """Test availability follows the PATH lookup."""
        monkeypatch.setattr(ffprobe_module.shutil, "which", lambda name: None)
        assert not ffprobe_module.ffprobe_available("ffprobe")
        monkeypatch.setattr(ffprobe_module.shutil, "which", lambda name: f"/usr/bin/{name}")
        assert ffprobe_module.ffprobe_available("ffprobe")


class TestExifToolReader:
    """Tests for the exiftool subprocess wrapper."""

    def test_command_and_filter(self, monkeypatch, tmp_path):
        """Test -json -n invocation and field filtering."""
        calls = []

        def fake_run(cmd, **kwargs):
            calls.append(cmd)
            return completed(stdout=json.dumps([{"SourceFile": "a.jpg", "Make": "SONY", "ISO": 400}]))

        monkeypatch.setattr(exiftool_module.subprocess, "run", fake_run)
        tags = ExifToolReader().read(tmp_path / "a.jpg", ["Make", "ISO", "Model"])

        assert tags == {"Make": "SONY", "ISO": 400}
        assert calls[0][:3] == ["exiftool", "-json", "-n"]
        assert "-Make" in calls[0]
        assert calls[0][-1] == str(tmp_path / "a.jpg")

    def test_no_tags(self, monkeypatch, tmp_path):
        """Test an empty result gives None."""
        monkeypatch.setattr(
            exiftool_module.subprocess, "run",
            lambda cmd, **kw: completed(stdout=json.dumps([{"SourceFile": "a.jpg"}])),
        )
        assert ExifToolReader().read(tmp_path / "a.jpg", ["Make"]) is None

    def test_failure(self, monkeypatch, tmp_path):
        """Test a failing exiftool with no output raises TagReadFailure."""
        monkeypatch.setattr(
            exiftool_module.subprocess, "run",
            lambda cmd, **kw: completed(returncode=1, stderr="File not found"),
        )
        with pytest.raises(TagReadFailure):
            ExifToolReader().read(tmp_path / "a.jpg", ["Make"])


class TestPillowTagReader:
    """Tests for the Pillow fallback reader."""

    def test_reads_exif(self, tmp_path):
        """Test basic IFD0 tags and image size."""
        path = tmp_path / "a.jpg"
        exif = Image.Exif()
        exif[0x010F] = "TestMake"
        exif[0x0110] = "TestModel"
        exif[0x0132] = "2024:03:15 10:30:00"
        Image.new("RGB", (64, 48), "red").save(path, exif=exif)

        tags = PillowTagReader().read(path, IMAGE_FIELDS)

        assert tags["Make"] == "TestMake"
        assert tags["Model"] == "TestModel"
        assert tags["DateTime"] == "2024:03:15 10:30:00"
        assert tags["ImageWidth"] == 64
        assert tags["ImageHeight"] == 48

    def test_no_exif(self, tmp_path):
        """Test images without EXIF still report their size."""
        path = tmp_path / "a.png"
        Image.new("RGB", (10, 20)).save(path)
        assert PillowTagReader().read(path, IMAGE_FIELDS) == {"ImageWidth": 10, "ImageHeight": 20}

    def test_not_an_image(self, tmp_path):
        """Test unreadable files raise TagReadFailure."""
        path = tmp_path / "fake.jpg"
        path.write_bytes(b"not an image")
        with pytest.raises(TagReadFailure):
            PillowTagReader().read(path, IMAGE_FIELDS)


class TestCreateTagReader:
    """Tests for create_tag_reader()."""

    def test_prefers_exiftool(self, monkeypatch):
        """Test exiftool is used when it is on PATH."""
        monkeypatch.setattr(exiftool_module.shutil, "which", lambda name: "/usr/bin/exiftool")
        assert create_tag_reader().name == "exiftool"

    def test_falls_back_to_pillow(self, monkeypatch):
        """Test Pillow is used when exiftool is missing."""
        monkeypatch.setattr(exiftool_module.shutil, "which", lambda name: None)
        assert create_tag_reader().name == "pillow"
