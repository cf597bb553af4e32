"""
pytest 配置和 fixtures
"""
import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

# 添加项目根目录到 Python 路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from video_agent.cache import LRUCache
from video_agent.metadata_provider import sample_metadata
from video_agent.models import OperationDefinition
from video_agent.registry import OperationRegistry
from video_agent.text_generator import TextGenerator


def chat_response(text):
    """构造 OpenAI 聊天补全响应"""
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def fake_openai_client(text="Summary text.\nKEY POINTS:\n- point one\n- point two"):
    """返回 chat.completions.create 为 AsyncMock 的假客户端"""
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=chat_response(text))
    return client


@pytest.fixture
def sample_video_url():
    """示例视频 URL"""
    return "https://www.youtube.com/watch?v=abc123"


@pytest.fixture
def metadata():
    """示例视频元数据"""
    return sample_metadata("abc123")


@pytest.fixture
def text_generator():
    """使用假 OpenAI 客户端的文本生成器"""
    return TextGenerator(cache=LRUCache(max_size=10), client=fake_openai_client())


@pytest.fixture
def registry_factory():
    """
    构建测试用注册表

    每个操作返回 {"operation": id}；fail_ids 中的操作总是抛出异常；
    delay 大于 0 时操作在返回前挂起。
    """
    def factory(ids=("op-a", "op-b", "op-c"), fail_ids=(), delay=0.0):
        def make_executor(op_id):
            async def executor(metadata):
                if delay:
                    await asyncio.sleep(delay)
                if op_id in fail_ids:
                    raise RuntimeError(f"{op_id} failed")
                return {"operation": op_id, "video": metadata.video_id}
            return executor

        return OperationRegistry(
            OperationDefinition(op_id, op_id.upper(), make_executor(op_id))
            for op_id in ids
        )

    return factory
