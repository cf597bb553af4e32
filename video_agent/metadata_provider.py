"""
视频元数据提供者

编排器只依赖 MetadataProvider 契约：给定视频 ID，异步返回 VideoMetadata。
- YtDlpMetadataProvider: 通过 yt-dlp 获取真实元数据（不下载视频）
- SimulatedMetadataProvider: 固定延迟、固定结果的模拟实现，用于测试和演示
"""
import asyncio
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Optional

import yt_dlp

from .config import (
    FETCH_COMMENTS,
    MAX_COMMENTS,
    METADATA_TIMEOUT,
    SIMULATED_FETCH_DELAY,
)
from .exceptions import MetadataUnavailableError
from .logger import get_logger
from .models import Chapter, Comment, VideoMetadata
from .resolver import canonical_url

logger = get_logger(__name__)


class MetadataProvider(ABC):
    """元数据提供者契约"""

    @abstractmethod
    async def fetch_metadata(self, video_id: str) -> VideoMetadata:
        """
        获取视频元数据

        Raises:
            MetadataUnavailableError: 获取失败或超时
        """


class YtDlpMetadataProvider(MetadataProvider):
    """
    基于 yt-dlp 的元数据提供者

    特性：
    - 只提取信息，不下载视频
    - 可选获取热门评论
    - 超时控制
    """

    def __init__(
        self,
        timeout: float = METADATA_TIMEOUT,
        fetch_comments: bool = FETCH_COMMENTS,
        max_comments: int = MAX_COMMENTS,
    ):
        """
        初始化元数据提供者

        Args:
            timeout: 获取超时时间（秒）
            fetch_comments: 是否获取评论
            max_comments: 最多获取的评论数
        """
        self.timeout = timeout
        self.fetch_comments = fetch_comments
        self.max_comments = max_comments

    def _get_ydl_opts(self) -> Dict[str, Any]:
        """获取 yt-dlp 选项"""
        opts: Dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "skip_download": True,
            "socket_timeout": self.timeout,
        }
        if self.fetch_comments:
            opts["getcomments"] = True
            opts["extractor_args"] = {
                "youtube": {
                    "max_comments": [str(self.max_comments)],
                    "comment_sort": ["top"],
                }
            }
        return opts

    def _extract_info(self, url: str) -> Dict[str, Any]:
        """在工作线程中运行（yt-dlp 是阻塞调用）"""
        with yt_dlp.YoutubeDL(self._get_ydl_opts()) as ydl:
            info = ydl.extract_info(url, download=False)
            return ydl.sanitize_info(info)

    async def fetch_metadata(self, video_id: str) -> VideoMetadata:
        url = canonical_url(video_id)
        logger.info(f"开始获取视频元数据: {url}")

        loop = asyncio.get_running_loop()
        # 专用线程池：超时后不等待 yt-dlp 工作线程，事件循环可以立即关闭
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            info = await asyncio.wait_for(
                loop.run_in_executor(executor, self._extract_info, url),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            error_msg = f"获取视频元数据超时 ({self.timeout}s): {video_id}"
            logger.error(error_msg)
            raise MetadataUnavailableError(error_msg)
        except Exception as e:
            error_msg = f"获取视频元数据失败: {str(e)}"
            logger.error(error_msg)
            raise MetadataUnavailableError(error_msg) from e
        finally:
            executor.shutdown(wait=False)

        if not info:
            raise MetadataUnavailableError(f"视频信息为空: {video_id}")

        metadata = self.to_metadata(video_id, info)
        logger.info(f"视频元数据获取完成: {metadata.title}")
        return metadata

    @staticmethod
    def to_metadata(video_id: str, info: Dict[str, Any]) -> VideoMetadata:
        """
        将 yt-dlp 信息字典转换为 VideoMetadata

        Args:
            video_id: 解析得到的视频 ID（info 中缺少 id 时使用）
            info: yt-dlp extract_info 的返回值
        """
        chapters = tuple(
            Chapter(start_time=float(chapter.get("start_time") or 0), title=chapter.get("title") or "")
            for chapter in info.get("chapters") or []
        )
        comments = tuple(
            Comment(
                text=comment.get("text") or "",
                like_count=int(comment.get("like_count") or 0),
                author=comment.get("author"),
            )
            for comment in info.get("comments") or []
            if comment.get("text")
        )
        duration = info.get("duration")

        return VideoMetadata(
            video_id=info.get("id") or video_id,
            title=info.get("title") or "",
            duration=int(duration) if duration is not None else None,
            view_count=info.get("view_count"),
            like_count=info.get("like_count"),
            comment_count=info.get("comment_count"),
            publish_date=_format_upload_date(info.get("upload_date")),
            description=info.get("description") or "",
            tags=tuple(info.get("tags") or ()),
            thumbnail_url=info.get("thumbnail") or _default_thumbnail(video_id),
            channel=info.get("channel") or info.get("uploader"),
            chapters=chapters,
            comments=comments,
        )


def _format_upload_date(upload_date: Optional[str]) -> Optional[str]:
    """20240115 -> 2024-01-15"""
    if not upload_date or len(upload_date) != 8 or not upload_date.isdigit():
        return upload_date
    return f"{upload_date[:4]}-{upload_date[4:6]}-{upload_date[6:]}"


def _default_thumbnail(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


class SimulatedMetadataProvider(MetadataProvider):
    """固定延迟、固定结果的模拟元数据提供者"""

    def __init__(self, delay: float = SIMULATED_FETCH_DELAY, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.calls = 0

    async def fetch_metadata(self, video_id: str) -> VideoMetadata:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise MetadataUnavailableError(f"模拟获取失败: {video_id}")
        return sample_metadata(video_id)


def sample_metadata(video_id: str) -> VideoMetadata:
    """模拟提供者返回的固定元数据"""
    return VideoMetadata(
        video_id=video_id,
        title="How to Build AI Agents - Complete Tutorial",
        duration=45 * 60 + 32,
        view_count=1234567,
        like_count=45678,
        comment_count=3456,
        publish_date="2024-01-15",
        description=(
            "Learn how to build powerful AI agents from scratch. This comprehensive "
            "tutorial covers everything from basic concepts to advanced automation "
            "techniques."
        ),
        tags=("AI", "Machine Learning", "Tutorial", "Automation", "Programming"),
        thumbnail_url=_default_thumbnail(video_id),
        channel="AI Academy",
        chapters=(
            Chapter(0, "Introduction to AI Agents"),
            Chapter(5 * 60 + 23, "Core Concepts and Architecture"),
            Chapter(12 * 60 + 45, "Building Your First Agent"),
            Chapter(23 * 60 + 10, "Advanced Features"),
            Chapter(35 * 60 + 20, "Deployment Strategies"),
            Chapter(42 * 60 + 15, "Conclusion and Next Steps"),
        ),
        comments=(
            Comment("Best tutorial on AI agents I've found!", 234),
            Comment("The examples are really helpful", 156),
            Comment("Can you make a follow-up on advanced topics?", 98),
            Comment("How to handle errors in production?", 87),
            Comment("Best practices for agent memory?", 64),
            Comment("Integration with existing systems?", 41),
            Comment("Great explanation, thanks a lot", 33),
            Comment("The audio is a bit quiet in the middle part", 12),
        ),
    )
