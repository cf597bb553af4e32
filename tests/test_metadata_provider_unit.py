"""
元数据提供者单元测试
"""
import asyncio
import time
from unittest.mock import MagicMock, patch

import pytest

from video_agent.exceptions import MetadataUnavailableError
from video_agent.metadata_provider import (
    SimulatedMetadataProvider,
    YtDlpMetadataProvider,
    sample_metadata,
)

YT_DLP_INFO = {
    "id": "abc123",
    "title": "Test Video",
    "duration": 300.0,
    "view_count": 1000,
    "like_count": 50,
    "comment_count": 7,
    "upload_date": "20240101",
    "description": "Test description",
    "tags": ["python", "asyncio", "python"],
    "thumbnail": "https://example.com/thumb.jpg",
    "uploader": "Test Channel",
    "chapters": [
        {"start_time": 0.0, "end_time": 60.0, "title": "Intro"},
        {"start_time": 60.0, "end_time": 300.0, "title": "Main"},
    ],
    "comments": [
        {"text": "Great video", "like_count": 10, "author": "@alice"},
        {"text": "", "like_count": 3, "author": "@bob"},
        {"text": "Why?", "like_count": None, "author": "@carol"},
    ],
}


def mock_youtube_dl(mock_ydl_class, info):
    mock_ydl = MagicMock()
    mock_ydl_class.return_value.__enter__.return_value = mock_ydl
    mock_ydl.extract_info.return_value = info
    mock_ydl.sanitize_info.side_effect = lambda value: value
    return mock_ydl


class TestYtDlpMetadataProvider:
    """yt-dlp 元数据提供者测试"""

    @patch("video_agent.metadata_provider.yt_dlp.YoutubeDL")
    def test_fetch_metadata(self, mock_ydl_class):
        """测试获取元数据（模拟）"""
        mock_ydl = mock_youtube_dl(mock_ydl_class, YT_DLP_INFO)
        provider = YtDlpMetadataProvider(timeout=5)

        metadata = asyncio.run(provider.fetch_metadata("abc123"))

        assert metadata.video_id == "abc123"
        assert metadata.title == "Test Video"
        assert metadata.duration == 300
        assert metadata.view_count == 1000
        assert metadata.publish_date == "2024-01-01"
        assert metadata.channel == "Test Channel"
        assert metadata.tags == ("python", "asyncio", "python")
        assert [c.title for c in metadata.chapters] == ["Intro", "Main"]
        assert [c.text for c in metadata.comments] == ["Great video", "Why?"]
        assert metadata.comments[1].like_count == 0

        url = mock_ydl.extract_info.call_args.args[0]
        assert url == "https://www.youtube.com/watch?v=abc123"
        assert mock_ydl.extract_info.call_args.kwargs["download"] is False

    @patch("video_agent.metadata_provider.yt_dlp.YoutubeDL")
    def test_fetch_failure(self, mock_ydl_class):
        """测试获取失败"""
        mock_ydl_class.return_value.__enter__.side_effect = Exception("Video unavailable")
        provider = YtDlpMetadataProvider(timeout=5)

        with pytest.raises(MetadataUnavailableError, match="Video unavailable"):
            asyncio.run(provider.fetch_metadata("abc123"))

    @patch("video_agent.metadata_provider.yt_dlp.YoutubeDL")
    def test_fetch_empty_info(self, mock_ydl_class):
        mock_youtube_dl(mock_ydl_class, None)
        provider = YtDlpMetadataProvider(timeout=5)

        with pytest.raises(MetadataUnavailableError):
            asyncio.run(provider.fetch_metadata("abc123"))

    def test_timeout_does_not_wait_for_worker(self):
        """测试超时后立即返回，不等待仍在运行的 yt-dlp 线程"""
        provider = YtDlpMetadataProvider(timeout=0.05)

        def slow_extract(url):
            time.sleep(0.5)
            return {"title": "late"}

        with patch.object(provider, "_extract_info", side_effect=slow_extract):
            started = time.monotonic()
            with pytest.raises(MetadataUnavailableError, match="超时"):
                asyncio.run(provider.fetch_metadata("abc123"))
            elapsed = time.monotonic() - started

        assert elapsed < 0.4

    def test_ydl_opts_with_comments(self):
        opts = YtDlpMetadataProvider(fetch_comments=True, max_comments=20)._get_ydl_opts()
        assert opts["getcomments"] is True
        assert opts["extractor_args"]["youtube"]["max_comments"] == ["20"]
        assert opts["skip_download"] is True

    def test_ydl_opts_without_comments(self):
        opts = YtDlpMetadataProvider(fetch_comments=False)._get_ydl_opts()
        assert "getcomments" not in opts

    def test_to_metadata_defaults(self):
        """测试缺失字段时的默认值"""
        metadata = YtDlpMetadataProvider.to_metadata("xyz789", {"title": "Only title"})
        assert metadata.video_id == "xyz789"
        assert metadata.duration is None
        assert metadata.tags == ()
        assert metadata.thumbnail_url == "https://img.youtube.com/vi/xyz789/maxresdefault.jpg"


class TestSimulatedMetadataProvider:
    """模拟元数据提供者测试"""

    def test_returns_fixed_record(self):
        provider = SimulatedMetadataProvider(delay=0)
        metadata = asyncio.run(provider.fetch_metadata("xyz789"))
        assert metadata == sample_metadata("xyz789")
        assert metadata.formatted_duration == "45:32"
        assert provider.calls == 1

    def test_configured_failure(self):
        provider = SimulatedMetadataProvider(delay=0, fail=True)
        with pytest.raises(MetadataUnavailableError):
            asyncio.run(provider.fetch_metadata("xyz789"))
