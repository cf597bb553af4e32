"""
YouTube 视频分析代理
"""

__version__ = "0.1.0"

from .models import (
    VideoMetadata,
    Chapter,
    Comment,
    OperationDefinition,
    Task,
    TaskError,
    TaskErrorKind,
    TaskStatus,
    ProcessingRun,
    RunStatus,
    CancellationToken,
)
from .exceptions import (
    VideoAgentError,
    UnresolvableReferenceError,
    MetadataUnavailableError,
    InvalidSelectionError,
    RunInProgressError,
    ExecutorError,
    GenerationError,
    CacheError,
)
from .logger import setup_logger, get_logger
from .resolver import extract_video_id
from .registry import OperationRegistry
from .metadata_provider import (
    MetadataProvider,
    YtDlpMetadataProvider,
    SimulatedMetadataProvider,
)
from .text_generator import TextGenerator, ModelSelector
from .operations import build_default_registry
from .orchestrator import Orchestrator

__all__ = [
    "VideoMetadata",
    "Chapter",
    "Comment",
    "OperationDefinition",
    "Task",
    "TaskError",
    "TaskErrorKind",
    "TaskStatus",
    "ProcessingRun",
    "RunStatus",
    "CancellationToken",
    "VideoAgentError",
    "UnresolvableReferenceError",
    "MetadataUnavailableError",
    "InvalidSelectionError",
    "RunInProgressError",
    "ExecutorError",
    "GenerationError",
    "CacheError",
    "setup_logger",
    "get_logger",
    "extract_video_id",
    "OperationRegistry",
    "MetadataProvider",
    "YtDlpMetadataProvider",
    "SimulatedMetadataProvider",
    "TextGenerator",
    "ModelSelector",
    "build_default_registry",
    "Orchestrator",
]
