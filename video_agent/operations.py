"""
分析操作模块

六个标准操作彼此独立、无状态，互不依赖对方的结果：
- extract-info: 提取视频信息
- generate-summary: 生成总结（LLM）
- analyze-engagement: 互动数据分析
- extract-timestamps: 提取章节时间戳
- analyze-comments: 评论情感分析
- generate-script: 生成视频脚本（LLM）
"""
import re
from datetime import date, datetime
from functools import partial
from typing import Any, Dict, List, Optional, Tuple

from .cache import LRUCache
from .exceptions import ExecutorError
from .logger import get_logger
from .models import OperationDefinition, VideoMetadata, format_seconds
from .registry import OperationRegistry
from .text_generator import TextGenerator

logger = get_logger(__name__)

EXTRACT_INFO = "extract-info"
GENERATE_SUMMARY = "generate-summary"
ANALYZE_ENGAGEMENT = "analyze-engagement"
EXTRACT_TIMESTAMPS = "extract-timestamps"
ANALYZE_COMMENTS = "analyze-comments"
GENERATE_SCRIPT = "generate-script"

# 描述文本送入提示词前的最大长度
MAX_DESCRIPTION_CHARS = 4000

TIMESTAMP_LINE = re.compile(
    r"^\s*[\[(]?((?:\d{1,2}:)?\d{1,2}:\d{2})[\])]?\s*[-–—:|]?\s*(.+?)\s*$"
)
BULLET_PREFIX = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s+")
WORD = re.compile(r"[a-z']+")

POSITIVE_WORDS = frozenset({
    "amazing", "awesome", "best", "brilliant", "clear", "enjoyed", "excellent",
    "fantastic", "favorite", "good", "great", "helpful", "informative", "love",
    "loved", "nice", "perfect", "thank", "thanks", "useful", "wonderful",
})
NEGATIVE_WORDS = frozenset({
    "annoying", "awful", "bad", "boring", "broken", "clickbait", "confusing",
    "disappointed", "hate", "misleading", "poor", "quiet", "slow", "terrible",
    "useless", "waste", "worst", "wrong",
})


def _format_count(value: Optional[int]) -> Optional[str]:
    if value is None:
        return None
    return f"{value:,}"


def _percent(numerator: float, denominator: float) -> float:
    return numerator / denominator * 100


def extract_info(metadata: VideoMetadata) -> Dict[str, Any]:
    """提取视频基本信息"""
    return {
        "title": metadata.title,
        "channel": metadata.channel,
        "duration": metadata.formatted_duration,
        "views": _format_count(metadata.view_count),
        "likes": _format_count(metadata.like_count),
        "comments": _format_count(metadata.comment_count),
        "uploadDate": metadata.publish_date,
        "tags": list(metadata.tags),
        "thumbnail": metadata.thumbnail_url,
    }


def _engagement_trend(engagement_rate: float) -> str:
    if engagement_rate >= 6:
        return "Excellent"
    elif engagement_rate >= 3:
        return "Above Average"
    elif engagement_rate >= 1:
        return "Average"
    return "Below Average"


def _days_since(publish_date: Optional[str]) -> Optional[int]:
    if not publish_date:
        return None
    try:
        published = datetime.strptime(publish_date, "%Y-%m-%d").date()
    except ValueError:
        return None
    return max((date.today() - published).days, 1)


def analyze_engagement(metadata: VideoMetadata) -> Dict[str, Any]:
    """
    互动数据分析

    Raises:
        ExecutorError: 缺少播放量数据
    """
    views = metadata.view_count
    if not views:
        raise ExecutorError("缺少播放量数据，无法分析互动")

    likes = metadata.like_count or 0
    comments = metadata.comment_count or 0

    like_ratio = _percent(likes, views)
    comment_ratio = _percent(comments, views)
    engagement_rate = _percent(likes + comments, views)

    insights = []
    if metadata.like_count is None:
        insights.append("Like count is hidden by the uploader")
    elif like_ratio >= 3:
        insights.append("Strong positive sentiment in like ratio")
    elif like_ratio < 1:
        insights.append("Low like ratio relative to views")

    if comment_ratio >= 0.2:
        insights.append("Active discussion in comments section")
    elif comment_ratio < 0.05:
        insights.append("Few viewers leave comments")

    if engagement_rate >= 3:
        insights.append("Content resonates well with target audience")
    else:
        insights.append("Engagement below typical levels; consider stronger calls to action")

    result: Dict[str, Any] = {
        "engagementRate": f"{engagement_rate:.2f}%",
        "likeToViewRatio": f"{like_ratio:.2f}%",
        "commentToViewRatio": f"{comment_ratio:.2f}%",
        "trend": _engagement_trend(engagement_rate),
        "insights": insights,
    }

    days = _days_since(metadata.publish_date)
    if days is not None:
        result["viewsPerDay"] = round(views / days)

    return result


def _parse_timestamp(value: str) -> int:
    seconds = 0
    for part in value.split(":"):
        seconds = seconds * 60 + int(part)
    return seconds


def parse_description_chapters(description: str) -> List[Tuple[int, str]]:
    """从描述中解析 "0:00 Intro" 形式的章节行"""
    chapters = []
    seen = set()
    for line in description.splitlines():
        match = TIMESTAMP_LINE.match(line)
        if not match:
            continue
        start = _parse_timestamp(match.group(1))
        if start in seen:
            continue
        seen.add(start)
        chapters.append((start, match.group(2)))
    return chapters


def extract_timestamps(metadata: VideoMetadata) -> Dict[str, Any]:
    """提取章节时间戳，优先使用平台提供的章节"""
    if metadata.chapters:
        chapters = [
            {"time": chapter.formatted_time, "title": chapter.title}
            for chapter in metadata.chapters
        ]
        source = "chapters"
    else:
        chapters = [
            {"time": format_seconds(start), "title": title}
            for start, title in parse_description_chapters(metadata.description)
        ]
        source = "description" if chapters else "none"

    return {"chapters": chapters, "source": source}


def score_comment(text: str) -> int:
    """词典情感打分：正面词 +1，负面词 -1"""
    words = WORD.findall(text.lower())
    return sum(word in POSITIVE_WORDS for word in words) - sum(word in NEGATIVE_WORDS for word in words)


def analyze_comments(metadata: VideoMetadata) -> Dict[str, Any]:
    """
    评论情感分析

    Raises:
        ExecutorError: 没有可分析的评论
    """
    if not metadata.comments:
        raise ExecutorError("没有可分析的评论")

    positive = negative = neutral = 0
    for comment in metadata.comments:
        score = score_comment(comment.text)
        if score > 0:
            positive += 1
        elif score < 0:
            negative += 1
        else:
            neutral += 1

    polar = positive + negative
    if polar == 0:
        sentiment = "Neutral"
    elif positive > negative:
        sentiment = f"Positive ({round(_percent(positive, polar))}%)"
    elif negative > positive:
        sentiment = f"Negative ({round(_percent(negative, polar))}%)"
    else:
        sentiment = "Mixed (50%)"

    by_likes = sorted(metadata.comments, key=lambda c: c.like_count, reverse=True)
    questions = [comment.text for comment in by_likes if "?" in comment.text]

    return {
        "sentiment": sentiment,
        "breakdown": {"positive": positive, "negative": negative, "neutral": neutral},
        "analyzed": len(metadata.comments),
        "topComments": [
            {"text": comment.text, "likes": comment.like_count}
            for comment in by_likes[:3]
        ],
        "commonQuestions": questions[:3],
    }


def _describe_video(metadata: VideoMetadata) -> str:
    """构建提示词中的视频描述部分"""
    lines = [f"Title: {metadata.title}"]
    if metadata.channel:
        lines.append(f"Channel: {metadata.channel}")
    if metadata.formatted_duration:
        lines.append(f"Duration: {metadata.formatted_duration}")
    if metadata.tags:
        lines.append(f"Tags: {', '.join(metadata.tags)}")
    if metadata.chapters:
        lines.append("Chapters:")
        lines.extend(f"  {c.formatted_time} {c.title}" for c in metadata.chapters)
    description = metadata.description[:MAX_DESCRIPTION_CHARS]
    if description:
        lines.append("Description:")
        lines.append(description)
    return "\n".join(lines)


def split_section(text: str, marker: str) -> Tuple[str, List[str]]:
    """
    将 LLM 输出按标记分为正文和列表

    例如 marker="KEY POINTS" 时，标记之前为正文，之后的项目符号行为列表。
    没有标记时，正文中的项目符号行作为列表。
    """
    pattern = re.compile(rf"^\s*\**{re.escape(marker)}\**\s*:?\s*\**\s*$", re.IGNORECASE | re.MULTILINE)
    match = pattern.search(text)
    if match:
        body = text[:match.start()].strip()
        tail = text[match.end():]
    else:
        body_lines = [line for line in text.splitlines() if not BULLET_PREFIX.match(line)]
        body = "\n".join(body_lines).strip()
        tail = text

    items = [
        BULLET_PREFIX.sub("", line).strip()
        for line in tail.splitlines()
        if BULLET_PREFIX.match(line)
    ]
    return body, items


SUMMARY_SYSTEM_PROMPT = (
    "You are a professional video content analyst. Summarize videos concisely and accurately."
)
SCRIPT_SYSTEM_PROMPT = (
    "You are an experienced YouTube scriptwriter. Write engaging, well-structured video scripts."
)


async def generate_summary(metadata: VideoMetadata, generator: TextGenerator) -> Dict[str, Any]:
    """生成视频总结和要点"""
    prompt = (
        f"{_describe_video(metadata)}\n\n"
        "Write a summary of this video in one short paragraph. "
        "Then write a line containing only 'KEY POINTS:' followed by 3-6 key points, "
        "each on its own line starting with '- '."
    )
    text = await generator.generate(
        GENERATE_SUMMARY, metadata.video_id, prompt, SUMMARY_SYSTEM_PROMPT, max_tokens=600,
    )
    summary, key_points = split_section(text, "KEY POINTS")
    return {"summary": summary, "keyPoints": key_points}


async def generate_script(metadata: VideoMetadata, generator: TextGenerator) -> Dict[str, Any]:
    """生成视频脚本和开场钩子"""
    prompt = (
        f"{_describe_video(metadata)}\n\n"
        "Write a video script covering the same topic, with [INTRO], [MAIN CONTENT], "
        "[SECTIONS] and [CONCLUSION] parts and approximate time ranges. "
        "Then write a line containing only 'HOOKS:' followed by 3 audience hooks, "
        "each on its own line starting with '- '."
    )
    text = await generator.generate(
        GENERATE_SCRIPT, metadata.video_id, prompt, SCRIPT_SYSTEM_PROMPT, max_tokens=1500,
    )
    script, hooks = split_section(text, "HOOKS")
    return {"script": script, "hooks": hooks}


def build_default_registry(text_generator: Optional[TextGenerator] = None) -> OperationRegistry:
    """
    构建包含六个标准操作的注册表

    Args:
        text_generator: LLM 操作使用的文本生成器（默认创建带缓存的实例）
    """
    generator = text_generator or TextGenerator(cache=LRUCache())

    return OperationRegistry([
        OperationDefinition(
            EXTRACT_INFO,
            "Extract Video Information",
            extract_info,
            "Title, channel, duration, views, upload date and tags",
        ),
        OperationDefinition(
            GENERATE_SUMMARY,
            "Generate Summary",
            partial(generate_summary, generator=generator),
            "LLM summary with key points",
        ),
        OperationDefinition(
            ANALYZE_ENGAGEMENT,
            "Analyze Engagement",
            analyze_engagement,
            "Engagement rate, like/comment ratios and trend",
        ),
        OperationDefinition(
            EXTRACT_TIMESTAMPS,
            "Extract Timestamps",
            extract_timestamps,
            "Chapter list from the video or its description",
        ),
        OperationDefinition(
            ANALYZE_COMMENTS,
            "Analyze Comments",
            analyze_comments,
            "Comment sentiment, top comments and common questions",
        ),
        OperationDefinition(
            GENERATE_SCRIPT,
            "Generate Video Script",
            partial(generate_script, generator=generator),
            "LLM video script with audience hooks",
        ),
    ])
