"""
分析操作单元测试
"""
import asyncio
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from video_agent.exceptions import ExecutorError, GenerationError
from video_agent.models import Chapter, Comment
from video_agent.operations import (
    analyze_comments,
    analyze_engagement,
    extract_info,
    extract_timestamps,
    generate_script,
    generate_summary,
    parse_description_chapters,
    score_comment,
    split_section,
)


class TestExtractInfo:
    """视频信息提取测试"""

    def test_extract_info(self, metadata):
        result = extract_info(metadata)
        assert result["title"] == "How to Build AI Agents - Complete Tutorial"
        assert result["channel"] == "AI Academy"
        assert result["duration"] == "45:32"
        assert result["views"] == "1,234,567"
        assert result["uploadDate"] == "2024-01-15"
        assert result["tags"] == ["AI", "Machine Learning", "Tutorial", "Automation", "Programming"]

    def test_extract_info_missing_counts(self, metadata):
        result = extract_info(replace(metadata, view_count=None, duration=None))
        assert result["views"] is None
        assert result["duration"] is None


class TestAnalyzeEngagement:
    """互动分析测试"""

    def test_ratios(self, metadata):
        result = analyze_engagement(metadata)
        assert result["likeToViewRatio"] == "3.70%"
        assert result["commentToViewRatio"] == "0.28%"
        assert result["engagementRate"] == "3.98%"
        assert result["trend"] == "Above Average"
        assert "Active discussion in comments section" in result["insights"]
        assert result["viewsPerDay"] > 0

    def test_missing_views_fails(self, metadata):
        with pytest.raises(ExecutorError):
            analyze_engagement(replace(metadata, view_count=None))

    def test_zero_views_fails(self, metadata):
        with pytest.raises(ExecutorError):
            analyze_engagement(replace(metadata, view_count=0))

    def test_hidden_likes(self, metadata):
        result = analyze_engagement(replace(metadata, like_count=None))
        assert "Like count is hidden by the uploader" in result["insights"]
        assert result["trend"] == "Below Average"

    def test_low_engagement(self, metadata):
        result = analyze_engagement(replace(metadata, view_count=100000, like_count=100, comment_count=1))
        assert result["trend"] == "Below Average"
        assert "Few viewers leave comments" in result["insights"]

    def test_unparseable_publish_date(self, metadata):
        result = analyze_engagement(replace(metadata, publish_date="sometime"))
        assert "viewsPerDay" not in result


class TestExtractTimestamps:
    """章节提取测试"""

    def test_provider_chapters(self, metadata):
        result = extract_timestamps(metadata)
        assert result["source"] == "chapters"
        assert result["chapters"][0] == {"time": "0:00", "title": "Introduction to AI Agents"}
        assert result["chapters"][1] == {"time": "5:23", "title": "Core Concepts and Architecture"}
        assert len(result["chapters"]) == 6

    def test_description_chapters(self, metadata):
        description = "\n".join([
            "Welcome to the video!",
            "0:00 Intro",
            "1:30 - Setup",
            "[12:05] Deep dive",
            "1:02:03 Wrap up",
            "Follow me on social media",
        ])
        result = extract_timestamps(replace(metadata, chapters=(), description=description))
        assert result["source"] == "description"
        assert result["chapters"] == [
            {"time": "0:00", "title": "Intro"},
            {"time": "1:30", "title": "Setup"},
            {"time": "12:05", "title": "Deep dive"},
            {"time": "1:02:03", "title": "Wrap up"},
        ]

    def test_no_chapters(self, metadata):
        result = extract_timestamps(replace(metadata, chapters=(), description="No timestamps here"))
        assert result == {"chapters": [], "source": "none"}

    def test_duplicate_timestamps_skipped(self):
        chapters = parse_description_chapters("0:00 Intro\n0:00 Again\n2:00 Next")
        assert chapters == [(0, "Intro"), (120, "Next")]


class TestAnalyzeComments:
    """评论分析测试"""

    def test_sentiment(self, metadata):
        result = analyze_comments(metadata)
        assert result["sentiment"] == "Positive (80%)"
        assert result["breakdown"] == {"positive": 4, "negative": 1, "neutral": 3}
        assert result["analyzed"] == 8

    def test_top_comments_sorted_by_likes(self, metadata):
        result = analyze_comments(metadata)
        assert [c["likes"] for c in result["topComments"]] == [234, 156, 98]

    def test_common_questions(self, metadata):
        result = analyze_comments(metadata)
        assert result["commonQuestions"] == [
            "Can you make a follow-up on advanced topics?",
            "How to handle errors in production?",
            "Best practices for agent memory?",
        ]

    def test_no_comments_fails(self, metadata):
        with pytest.raises(ExecutorError):
            analyze_comments(replace(metadata, comments=()))

    def test_negative_sentiment(self, metadata):
        comments = (Comment("Worst video, so boring"), Comment("Terrible audio"), Comment("Great"))
        result = analyze_comments(replace(metadata, comments=comments))
        assert result["sentiment"] == "Negative (67%)"

    def test_neutral_sentiment(self, metadata):
        result = analyze_comments(replace(metadata, comments=(Comment("First"),)))
        assert result["sentiment"] == "Neutral"

    def test_score_comment(self):
        assert score_comment("Great and helpful!") == 2
        assert score_comment("boring") == -1
        assert score_comment("ok") == 0


class TestSplitSection:
    """LLM 输出解析测试"""

    def test_with_marker(self):
        text = "A short summary.\n\nKEY POINTS:\n- one\n- two\n* three"
        body, items = split_section(text, "KEY POINTS")
        assert body == "A short summary."
        assert items == ["one", "two", "three"]

    def test_with_bold_marker(self):
        text = "Body text\n**HOOKS:**\n1. first\n2) second"
        body, items = split_section(text, "HOOKS")
        assert body == "Body text"
        assert items == ["first", "second"]

    def test_without_marker(self):
        text = "Summary line\n- bullet a\n- bullet b"
        body, items = split_section(text, "KEY POINTS")
        assert body == "Summary line"
        assert items == ["bullet a", "bullet b"]


class TestGenerationOperations:
    """LLM 操作测试"""

    def _generator(self, text):
        generator = MagicMock()
        generator.generate = AsyncMock(return_value=text)
        return generator

    def test_generate_summary(self, metadata):
        generator = self._generator("This video explains agents.\nKEY POINTS:\n- Architecture\n- Tools")
        result = asyncio.run(generate_summary(metadata, generator))
        assert result == {
            "summary": "This video explains agents.",
            "keyPoints": ["Architecture", "Tools"],
        }

        args = generator.generate.call_args.args
        assert args[0] == "generate-summary"
        assert args[1] == "abc123"
        assert "How to Build AI Agents" in args[2]

    def test_generate_script(self, metadata):
        generator = self._generator("[INTRO - 0:00-1:00]\nHey everyone!\nHOOKS:\n- Opening question")
        result = asyncio.run(generate_script(metadata, generator))
        assert result["script"].startswith("[INTRO - 0:00-1:00]")
        assert result["hooks"] == ["Opening question"]

    def test_generation_failure_propagates(self, metadata):
        generator = MagicMock()
        generator.generate = AsyncMock(side_effect=GenerationError("boom"))
        with pytest.raises(GenerationError):
            asyncio.run(generate_summary(metadata, generator))

    def test_prompt_includes_chapters(self, metadata):
        generator = self._generator("Summary")
        asyncio.run(generate_summary(metadata, generator))
        prompt = generator.generate.call_args.args[2]
        assert "5:23 Core Concepts and Architecture" in prompt
