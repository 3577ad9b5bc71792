"""
Tests for URL checks, job ids and the value types in vidgrab.models.
"""

import pytest

from vidgrab.models import AUDIO, VIDEO, Artifact, JobHandle, Profile, TransformResult
from vidgrab.utils import format_size, generate_job_id, is_supported_url, is_valid_job_id


class TestIsSupportedUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
            "http://youtube.com/watch?v=dQw4w9WgXcQ",
            "youtube.com/watch?v=dQw4w9WgXcQ",
            "https://youtu.be/dQw4w9WgXcQ",
            "https://www.youtube.com/shorts/abc123",
            "  https://youtu.be/dQw4w9WgXcQ  ",
        ],
    )
    def test_accepted(self, url):
        assert is_supported_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "   ",
            None,
            42,
            "https://vimeo.com/123",
            "https://youtube.com/",
            "https://evil.com/youtube.com/watch?v=x",
            "https://www.youtube.com/watch?v=a b",
            "javascript:alert(1)",
        ],
    )
    def test_rejected(self, url):
        assert not is_supported_url(url)


class TestJobIds:
    def test_generated_ids_are_unique_and_valid(self):
        ids = {generate_job_id() for _ in range(100)}
        assert len(ids) == 100
        assert all(is_valid_job_id(i) for i in ids)

    @pytest.mark.parametrize("job_id", ["", None, "../x", "a.b", "a/b", "a b", 7])
    def test_invalid(self, job_id):
        assert not is_valid_job_id(job_id)


class TestFormatSize:
    def test_units(self):
        assert format_size(512) == "512.00 B"
        assert format_size(1536) == "1.50 KB"
        assert format_size(3 * 1024 ** 3) == "3.00 GB"


class TestProfile:
    @pytest.mark.parametrize(
        "quality,selector",
        [
            ("360", "best[height<=360]"),
            ("1080", "best[height<=1080]"),
            ("4k", "best[height<=2160]"),
            ("best", "best"),
        ],
    )
    def test_video_selectors(self, quality, selector):
        profile = Profile.video(quality)
        assert profile.kind == VIDEO
        assert profile.format_args() == ["-f", selector, "--merge-output-format", "mp4"]
        assert profile.expected_suffixes() is None

    def test_video_defaults(self):
        assert Profile.video().value == "720"
        assert Profile.video("potato").value == "720"
        assert Profile.video(1080).value == "1080"

    def test_audio(self):
        profile = Profile.audio("128")
        assert profile.kind == AUDIO
        assert profile.field_name == "bitrate"
        assert "--extract-audio" in profile.format_args()
        assert profile.format_args()[-1] == "128K"
        assert profile.expected_suffixes() == (".mp3",)

    def test_audio_defaults(self):
        assert Profile.audio().value == "192"
        assert Profile.audio("999").value == "192"


class TestValueTypes:
    def test_artifact_download_url(self, tmp_path):
        artifact = Artifact("abc", "abc.mp4", tmp_path / "abc.mp4", 10, 0.0)
        assert artifact.download_url == "/downloads/abc.mp4"

    def test_handle_payload_uses_profile_field(self):
        handle = JobHandle("abc", "abc.mp3", "/downloads/abc.mp3", Profile.audio("320"), 9)
        assert handle.to_dict() == {
            "success": True,
            "id": "abc",
            "filename": "abc.mp3",
            "downloadUrl": "/downloads/abc.mp3",
            "bitrate": "320",
            "size": 9,
        }

    def test_transform_result_ok(self):
        assert TransformResult(0).ok
        assert not TransformResult(1).ok
        assert not TransformResult(-9).ok
