"""
视频 ID 解析器

从用户输入的引用字符串中提取 YouTube 视频 ID。
"""
import re
from typing import List, Pattern

from .exceptions import UnresolvableReferenceError

# 按优先级排列，返回第一个匹配
ID_PATTERNS: List[Pattern[str]] = [
    re.compile(r"(?:youtube\.com/watch\?(?:[^#\s]*&)?v=|youtu\.be/)([^&\n?#/\s]+)"),
    re.compile(r"youtube\.com/embed/([^&\n?#/\s]+)"),
    re.compile(r"youtube\.com/(?:shorts|live)/([^&\n?#/\s]+)"),
]


def extract_video_id(reference: str) -> str:
    """
    提取视频 ID

    Args:
        reference: 用户输入的引用字符串（通常是 URL）

    Returns:
        视频 ID

    Raises:
        UnresolvableReferenceError: 如果平台不支持或没有任何模式匹配
    """
    if not reference or not reference.strip():
        raise UnresolvableReferenceError("链接不能为空")

    text = reference.strip()
    for pattern in ID_PATTERNS:
        match = pattern.search(text)
        if match:
            return match.group(1)

    detect_platform(text)
    raise UnresolvableReferenceError(f"无效的 YouTube 链接: {reference!r}")


def detect_platform(reference: str) -> str:
    """
    检测视频平台

    Raises:
        UnresolvableReferenceError: 如果平台不支持
    """
    if "youtube.com" in reference or "youtu.be" in reference:
        return "youtube"
    raise UnresolvableReferenceError(f"不支持的平台: {reference}")


def canonical_url(video_id: str) -> str:
    """根据视频 ID 构建标准观看链接"""
    return f"https://www.youtube.com/watch?v={video_id}"
