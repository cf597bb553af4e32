"""
系统配置
"""
import os
from dotenv import load_dotenv

# 加载环境变量
load_dotenv()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


# 缓存配置
CACHE_MAX_SIZE = int(os.getenv("CACHE_MAX_SIZE", "1000"))  # 最大缓存项数
CACHE_TTL = int(os.getenv("CACHE_TTL", "3600"))  # 缓存过期时间（秒）

# 元数据获取配置
METADATA_TIMEOUT = float(os.getenv("METADATA_TIMEOUT", "60"))  # 秒
FETCH_COMMENTS = _get_bool("FETCH_COMMENTS", True)
MAX_COMMENTS = int(os.getenv("MAX_COMMENTS", "100"))
SIMULATED_FETCH_DELAY = 1.5  # 模拟获取延迟（秒）

# 操作执行配置
OPERATION_TIMEOUT = float(os.getenv("OPERATION_TIMEOUT", "120"))  # 单个操作超时时间（秒）

# API 配置
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
OPENAI_MODEL_LIGHT = os.getenv("OPENAI_MODEL_LIGHT", "gpt-4o-mini")
OPENAI_MODEL_STANDARD = os.getenv("OPENAI_MODEL_STANDARD", "gpt-4o")
OPENAI_MODEL_ADVANCED = os.getenv("OPENAI_MODEL_ADVANCED", "gpt-4.1")
OPENAI_TEMPERATURE = 0.7

# 日志配置
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
