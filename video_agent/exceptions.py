"""
自定义异常类定义
"""


class VideoAgentError(Exception):
    """基础异常 - 视频分析代理错误"""
    pass


class UnresolvableReferenceError(VideoAgentError):
    """无法从引用字符串解析出视频 ID"""
    pass


class MetadataUnavailableError(VideoAgentError):
    """视频元数据获取失败或超时"""
    pass


class InvalidSelectionError(VideoAgentError):
    """操作选择为空、重复或包含未注册的操作"""
    pass


class RunInProgressError(VideoAgentError):
    """已有运行中的处理流程"""
    pass


class ExecutorError(VideoAgentError):
    """单个操作执行失败（只影响该任务）"""
    pass


class GenerationError(ExecutorError):
    """LLM 文本生成失败"""
    pass


class CacheError(VideoAgentError):
    """缓存错误异常"""
    pass
