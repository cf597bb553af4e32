"""
日志系统配置
"""
import logging
import sys
from datetime import datetime
from typing import Union

from .config import LOG_LEVEL


class LogFormatter(logging.Formatter):
    """带颜色的控制台日志格式化器"""
    
    COLORS = {
        'DEBUG': '\033[36m',      # 青色
        'INFO': '\033[32m',       # 绿色
        'WARNING': '\033[33m',    # 黄色
        'ERROR': '\033[31m',      # 红色
        'CRITICAL': '\033[35m',   # 紫色
        'RESET': '\033[0m',       # 重置
    }
    
    def __init__(self, fmt=None, datefmt=None, use_color: bool = True):
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_color = use_color
    
    def format(self, record):
        """格式化日志记录"""
        message = super().format(record)
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')
        
        if self.use_color:
            log_color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
            level = f"{log_color}[{record.levelname}]{self.COLORS['RESET']}"
        else:
            level = f"[{record.levelname}]"
        
        return f"{level} [{timestamp}] [{record.name}] {message}"


def setup_logger(name: str, level: Union[int, str] = logging.INFO) -> logging.Logger:
    """
    设置日志记录器
    
    Args:
        name: 日志记录器名称
        level: 日志级别（数值或名称，如 "DEBUG"）
    
    Returns:
        配置好的日志记录器
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    
    logger = logging.getLogger(name)
    logger.setLevel(level)
    
    # 移除已有的处理器
    logger.handlers.clear()
    
    # 创建控制台处理器
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    
    formatter = LogFormatter(
        fmt='%(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        use_color=sys.stdout.isatty(),
    )
    console_handler.setFormatter(formatter)
    
    logger.addHandler(console_handler)
    
    return logger


def get_logger(name: str) -> logging.Logger:
    """获取日志记录器"""
    return logging.getLogger(name)


# 创建全局日志记录器
logger = setup_logger('video_agent', LOG_LEVEL)
