"""
Tests for the cached runtime archive downloader.
"""

import hashlib
import logging
import pytest
import responses

from runtimekit.core.download import DownloadProgress
from runtimekit.core.exceptions import ChecksumMismatch, DownloadFailure
from runtimekit.runtime.downloader import (
    RuntimeDownloader,
    _ProgressLogger,
    cache_filename,
)
from tests.fixtures.runtimes import FAKELANG_URL


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://go.dev/dl/go1.21.5.linux-amd64.tar.gz", "go1.21.5.linux-amd64.tar.gz"),
        (
            "https://github.com/x/releases/download/jdk-21.0.1%2B12/OpenJDK21U.tar.gz",
            "OpenJDK21U.tar.gz",
        ),
        ("https://example.com/a%20b.zip?token=1", "a b.zip"),
    ],
)
def test_cache_filename(url, expected):
    assert cache_filename(url) == expected


def test_cache_filename_requires_path():
    with pytest.raises(ValueError):
        cache_filename("https://example.com/")


class TestRuntimeDownloader:
    @responses.activate
    def test_downloads_into_cache(self, tmp_path):
        responses.add(responses.GET, FAKELANG_URL, body=b"archive-bytes")
        downloader = RuntimeDownloader(tmp_path)

        archive = downloader.download(FAKELANG_URL)

        assert archive == tmp_path / "cache" / "fakelang-1.0.0-linux-x64.tar.gz"
        assert archive.read_bytes() == b"archive-bytes"

    @responses.activate
    def test_second_download_uses_cache(self, tmp_path):
        responses.add(responses.GET, FAKELANG_URL, body=b"archive-bytes")
        downloader = RuntimeDownloader(tmp_path)

        first = downloader.download(FAKELANG_URL)
        second = downloader.download(FAKELANG_URL)

        assert first == second
        assert len(responses.calls) == 1

    @responses.activate
    def test_checksum_verified(self, tmp_path):
        body = b"archive-bytes"
        responses.add(responses.GET, FAKELANG_URL, body=body)
        downloader = RuntimeDownloader(tmp_path)

        archive = downloader.download(FAKELANG_URL, hashlib.sha256(body).hexdigest())

        assert archive.exists()

    @responses.activate
    def test_checksum_mismatch_leaves_no_file(self, tmp_path):
        responses.add(responses.GET, FAKELANG_URL, body=b"tampered")
        downloader = RuntimeDownloader(tmp_path)

        with pytest.raises(ChecksumMismatch):
            downloader.download(FAKELANG_URL, "0" * 64)

        assert not downloader.cache_path(FAKELANG_URL).exists()

    @responses.activate
    def test_http_error(self, tmp_path):
        responses.add(responses.GET, FAKELANG_URL, status=404)
        downloader = RuntimeDownloader(tmp_path)

        with pytest.raises(DownloadFailure):
            downloader.download(FAKELANG_URL)

    @responses.activate
    def test_custom_progress_callback(self, tmp_path):
        responses.add(
            responses.GET,
            FAKELANG_URL,
            body=b"x" * 20000,
            headers={"Content-Length": "20000"},
        )
        updates = []
        downloader = RuntimeDownloader(tmp_path, progress_callback=updates.append)

        downloader.download(FAKELANG_URL)

        assert updates
        assert updates[-1].bytes_downloaded == 20000


def test_progress_logger_logs_quarter_steps(caplog):
    progress_logger = _ProgressLogger("node.tar.xz")

    with caplog.at_level(logging.INFO, logger="runtimekit.runtime.downloader"):
        for pct in (5, 26, 27, 60, 100):
            progress_logger(DownloadProgress(pct, 100, float(pct), 0, 0))

    messages = [r.getMessage() for r in caplog.records]
    assert len(messages) == 3
    assert all(m.startswith("node.tar.xz: ") for m in messages)
