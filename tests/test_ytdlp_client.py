"""Tests for YtDlpClient: command building, process handling and metadata."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from vidgrab.clients.ytdlp_client import YtDlpClient, parse_output_path
from vidgrab.exceptions import TransformFailed

URL = "https://youtu.be/dQw4w9WgXcQ"


def _popen(returncode=0, stdout="", stderr=""):
    proc = MagicMock()
    proc.pid = 1234
    proc.returncode = returncode
    proc.communicate.return_value = (stdout, stderr)
    return proc


class TestBuildCommand:
    def test_url_comes_last_after_separator(self):
        client = YtDlpClient("yt-dlp")
        cmd = client.build_command(URL, "/dl/abc.%(ext)s", ["-f", "best"])
        assert cmd[0] == "yt-dlp"
        assert cmd[1:3] == ["-f", "best"]
        assert cmd[-2:] == ["--", URL]
        assert cmd[cmd.index("-o") + 1] == "/dl/abc.%(ext)s"
        assert "--no-playlist" in cmd
        assert cmd[cmd.index("--print") + 1] == "after_move:filepath"

    def test_custom_binary(self):
        cmd = YtDlpClient("/opt/bin/yt-dlp").build_command(URL, "t", [])
        assert cmd[0] == "/opt/bin/yt-dlp"


class TestInvoke:
    def test_success_reports_exit_code_and_path(self):
        proc = _popen(stdout="[info] something\n/dl/abc.mp4\n")
        with patch("vidgrab.clients.ytdlp_client.subprocess.Popen", return_value=proc):
            process = YtDlpClient().invoke(URL, "/dl/abc.%(ext)s", [])
            result = process.wait(5)
        assert process.pid == 1234
        assert result.ok
        assert result.output_path == "/dl/abc.mp4"

    def test_failure_keeps_stderr_tail(self):
        stderr = "\n".join(f"line {i}" for i in range(50)) + "\nERROR: Video unavailable"
        proc = _popen(returncode=1, stderr=stderr)
        with patch("vidgrab.clients.ytdlp_client.subprocess.Popen", return_value=proc):
            result = YtDlpClient().invoke(URL, "t", []).wait(5)
        assert not result.ok
        assert result.exit_code == 1
        assert result.stderr_tail.endswith("ERROR: Video unavailable")
        assert len(result.stderr_tail.splitlines()) == 20

    def test_spawn_error_surfaces_through_handle(self):
        errors = []
        with patch(
            "vidgrab.clients.ytdlp_client.subprocess.Popen",
            side_effect=FileNotFoundError("yt-dlp"),
        ):
            process = YtDlpClient().invoke(URL, "t", [])
        process.on_error(errors.append)
        assert process.pid is None
        assert isinstance(errors[0], FileNotFoundError)
        with pytest.raises(FileNotFoundError):
            process.wait(1)

    def test_exit_callback(self):
        codes = []
        proc = _popen(returncode=0, stdout="/dl/x.mp4\n")
        with patch("vidgrab.clients.ytdlp_client.subprocess.Popen", return_value=proc):
            process = YtDlpClient().invoke(URL, "t", [])
            process.wait(5)
        process.on_exit(codes.append)
        assert codes == [0]


class TestParseOutputPath:
    def test_printed_path_wins(self):
        out = "[download] Destination: /dl/a.f137.mp4\n[Merger] Merging\n/dl/a.mp4\n"
        assert parse_output_path(out) == "/dl/a.mp4"

    def test_falls_back_to_destination(self):
        out = "[youtube] abc: Downloading\n[download] Destination: /dl/a.webm\n"
        assert parse_output_path(out) == "/dl/a.webm"

    def test_nothing_useful(self):
        assert parse_output_path("") is None
        assert parse_output_path("[download] 100% of 1MiB\n") is None


class TestFetchInfo:
    def test_parses_first_json_line(self):
        meta = {"id": "dQw4w9WgXcQ", "title": "Song"}
        completed = subprocess.CompletedProcess([], 0, stdout=json.dumps(meta) + "\n", stderr="")
        with patch("vidgrab.clients.ytdlp_client.subprocess.run", return_value=completed) as run:
            assert YtDlpClient().fetch_info(URL) == meta
        cmd = run.call_args[0][0]
        assert "--dump-json" in cmd
        assert cmd[-1] == URL

    def test_nonzero_exit(self):
        completed = subprocess.CompletedProcess([], 1, stdout="", stderr="ERROR: Private video")
        with patch("vidgrab.clients.ytdlp_client.subprocess.run", return_value=completed):
            with pytest.raises(TransformFailed) as exc_info:
                YtDlpClient().fetch_info(URL)
        assert exc_info.value.exit_code == 1
        assert "Private video" in exc_info.value.detail

    def test_binary_missing(self):
        with patch(
            "vidgrab.clients.ytdlp_client.subprocess.run", side_effect=FileNotFoundError()
        ):
            with pytest.raises(TransformFailed, match="not available"):
                YtDlpClient().fetch_info(URL)

    def test_timeout(self):
        with patch(
            "vidgrab.clients.ytdlp_client.subprocess.run",
            side_effect=subprocess.TimeoutExpired("yt-dlp", 60),
        ):
            with pytest.raises(TransformFailed, match="timed out"):
                YtDlpClient().fetch_info(URL)

    def test_garbage_output(self):
        completed = subprocess.CompletedProcess([], 0, stdout="not json", stderr="")
        with patch("vidgrab.clients.ytdlp_client.subprocess.run", return_value=completed):
            with pytest.raises(TransformFailed):
                YtDlpClient().fetch_info(URL)


class TestVersion:
    def test_version(self):
        completed = subprocess.CompletedProcess([], 0, stdout="2024.08.06\n", stderr="")
        with patch("vidgrab.clients.ytdlp_client.subprocess.run", return_value=completed):
            assert YtDlpClient().version() == "2024.08.06"

    def test_version_when_missing(self):
        with patch("vidgrab.clients.ytdlp_client.subprocess.run", side_effect=OSError()):
            assert YtDlpClient().version() is None


@pytest.mark.integration
def test_real_binary_reports_version():
    version = YtDlpClient().version()
    if version is None:
        pytest.skip("yt-dlp not installed")
    assert version[:4].isdigit()
