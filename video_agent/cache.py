"""
缓存系统 - LRU 缓存实现

用于缓存 LLM 生成结果，同一视频、同一操作、同一模型的重复请求直接返回缓存。
"""
import hashlib
import time
from collections import OrderedDict
from threading import Lock
from typing import Any, Dict, Optional, Tuple

from .config import CACHE_MAX_SIZE, CACHE_TTL
from .exceptions import CacheError
from .logger import get_logger

logger = get_logger(__name__)


class LRUCache:
    """
    LRU (Least Recently Used) 缓存

    特性：
    - 最大容量限制，满时驱逐最近最少使用的项
    - 可选 TTL (Time To Live)
    - 线程安全
    """

    def __init__(self, max_size: int = CACHE_MAX_SIZE, ttl: Optional[int] = CACHE_TTL):
        """
        初始化 LRU 缓存

        Args:
            max_size: 最大缓存项数
            ttl: 缓存过期时间（秒），None 表示不过期
        """
        if max_size <= 0:
            raise CacheError("max_size 必须大于 0")
        if ttl is not None and ttl <= 0:
            raise CacheError("ttl 必须大于 0")

        self.max_size = max_size
        self.ttl = ttl
        self.cache: "OrderedDict[str, Tuple[Any, float]]" = OrderedDict()
        self.lock = Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def _is_expired(self, stored_at: float) -> bool:
        if self.ttl is None:
            return False
        return time.monotonic() - stored_at > self.ttl

    def get(self, key: str) -> Optional[Any]:
        """
        获取缓存值

        Returns:
            缓存值，如果不存在或已过期则返回 None
        """
        with self.lock:
            entry = self.cache.get(key)
            if entry is None:
                self.misses += 1
                return None

            value, stored_at = entry
            if self._is_expired(stored_at):
                del self.cache[key]
                self.misses += 1
                logger.debug(f"缓存已过期: {key}")
                return None

            self.cache.move_to_end(key)
            self.hits += 1
            logger.debug(f"缓存命中: {key}")
            return value

    def set(self, key: str, value: Any) -> None:
        """
        设置缓存值

        Raises:
            CacheError: 如果值为 None（None 用于表示未命中）
        """
        if value is None:
            raise CacheError("不能缓存 None")

        with self.lock:
            if key in self.cache:
                del self.cache[key]
            elif len(self.cache) >= self.max_size:
                lru_key, _ = self.cache.popitem(last=False)
                self.evictions += 1
                logger.debug(f"驱逐 LRU 项: {lru_key}")

            self.cache[key] = (value, time.monotonic())

    def delete(self, key: str) -> bool:
        """删除缓存项，返回是否存在"""
        with self.lock:
            return self.cache.pop(key, None) is not None

    def clear(self) -> None:
        """清空所有缓存"""
        with self.lock:
            self.cache.clear()
            self.hits = 0
            self.misses = 0
            self.evictions = 0
            logger.info("缓存已清空")

    def size(self) -> int:
        """获取当前缓存大小"""
        with self.lock:
            return len(self.cache)

    def get_stats(self) -> Dict[str, Any]:
        """获取缓存统计信息"""
        with self.lock:
            total = self.hits + self.misses
            hit_rate = (self.hits / total * 100) if total > 0 else 0

            return {
                "size": len(self.cache),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "evictions": self.evictions,
                "hit_rate": f"{hit_rate:.2f}%",
                "total_requests": total,
            }

    def __len__(self) -> int:
        return self.size()

    def __contains__(self, key: str) -> bool:
        with self.lock:
            return key in self.cache


class CacheKeyGenerator:
    """缓存键生成器"""

    @staticmethod
    def generation_key(operation_id: str, video_id: str, model: str, prompt: str) -> str:
        """生成 LLM 结果缓存键，提示词变化时键也随之变化"""
        prompt_digest = hashlib.sha256(prompt.encode("utf-8")).hexdigest()
        key_str = f"generate:{operation_id}:{video_id}:{model}:{prompt_digest}"
        return hashlib.md5(key_str.encode("utf-8")).hexdigest()
