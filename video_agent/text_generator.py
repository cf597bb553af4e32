"""
文本生成器模块

调用 OpenAI 生成总结、脚本等文本，支持动态模型选择和结果缓存。
"""
from typing import Dict, Optional

from openai import AsyncOpenAI

from .cache import CacheKeyGenerator, LRUCache
from .config import (
    OPENAI_API_KEY,
    OPENAI_MODEL_ADVANCED,
    OPENAI_MODEL_LIGHT,
    OPENAI_MODEL_STANDARD,
    OPENAI_TEMPERATURE,
)
from .exceptions import GenerationError
from .logger import get_logger

logger = get_logger(__name__)


class ModelSelector:
    """模型选择器

    根据提示词长度动态选择最合适的 LLM 模型。
    """

    # 模型配置
    MODELS = {
        OPENAI_MODEL_LIGHT: {
            "name": OPENAI_MODEL_LIGHT,
            "tier": "light",
        },
        OPENAI_MODEL_STANDARD: {
            "name": OPENAI_MODEL_STANDARD,
            "tier": "standard",
        },
        OPENAI_MODEL_ADVANCED: {
            "name": OPENAI_MODEL_ADVANCED,
            "tier": "advanced",
        },
    }

    # 提示词长度阈值（字符数）
    SHORT_THRESHOLD = 2000
    LONG_THRESHOLD = 8000

    def select_model(self, prompt: str, user_preference: Optional[str] = None) -> str:
        """选择模型

        Args:
            prompt: 提示词
            user_preference: 用户指定的模型（如果指定则直接使用）

        Returns:
            模型名称

        Raises:
            GenerationError: 指定的模型不受支持
        """
        if user_preference:
            return self.get_model_info(user_preference)["name"]

        length = len(prompt)
        if length < self.SHORT_THRESHOLD:
            return OPENAI_MODEL_LIGHT
        elif length < self.LONG_THRESHOLD:
            return OPENAI_MODEL_STANDARD
        return OPENAI_MODEL_ADVANCED

    def get_model_info(self, model_name: str) -> Dict:
        """获取模型信息

        Raises:
            GenerationError: 模型不存在
        """
        if model_name not in self.MODELS:
            raise GenerationError(f"不支持的模型: {model_name}")
        return self.MODELS[model_name]


class TextGenerator:
    """文本生成器类

    封装 OpenAI 聊天补全接口，相同请求从缓存返回。
    """

    def __init__(
        self,
        cache: Optional[LRUCache] = None,
        api_key: Optional[str] = None,
        model_selector: Optional[ModelSelector] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        """初始化文本生成器

        Args:
            cache: LRU 缓存实例（可选）
            api_key: OpenAI API 密钥（可选，默认读取配置）
            model_selector: 模型选择器实例（可选）
            client: 预先构造的 AsyncOpenAI 客户端（可选）
        """
        self.cache = cache
        self.api_key = api_key or OPENAI_API_KEY
        self.model_selector = model_selector or ModelSelector()
        self.key_generator = CacheKeyGenerator()
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise GenerationError("未设置 OPENAI_API_KEY 环境变量")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        operation_id: str,
        video_id: str,
        prompt: str,
        system_prompt: str,
        model: Optional[str] = None,
        max_tokens: int = 800,
    ) -> str:
        """生成文本

        Args:
            operation_id: 发起请求的操作 ID（用于缓存键）
            video_id: 视频 ID（用于缓存键）
            prompt: 用户提示词
            system_prompt: 系统提示词
            model: 使用的模型（为 None 时自动选择）
            max_tokens: 最大输出 token 数

        Returns:
            生成的文本

        Raises:
            GenerationError: 生成失败
            ValueError: 提示词为空
        """
        if not prompt or not prompt.strip():
            raise ValueError("提示词不能为空")

        model = self.model_selector.select_model(prompt, user_preference=model)
        cache_key = self.key_generator.generation_key(operation_id, video_id, model, prompt)

        if self.cache is not None:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.info(f"从缓存返回生成结果: {operation_id} ({video_id})")
                return cached

        logger.info(f"使用模型 {model} 生成文本: {operation_id}")
        text = await self._complete(prompt, system_prompt, model, max_tokens)

        if self.cache is not None:
            self.cache.set(cache_key, text)

        logger.info(f"文本生成完成，长度: {len(text)}")
        return text

    async def _complete(self, prompt: str, system_prompt: str, model: str, max_tokens: int) -> str:
        """调用 OpenAI 聊天补全接口"""
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt},
                ],
                temperature=OPENAI_TEMPERATURE,
                max_tokens=max_tokens,
            )
        except Exception as e:
            logger.error(f"OpenAI API 调用失败: {e}")
            raise GenerationError(f"OpenAI API 调用失败: {str(e)}") from e

        content = response.choices[0].message.content if response.choices else None
        text = (content or "").strip()
        if not text:
            raise GenerationError("OpenAI API 返回空内容")
        return text
