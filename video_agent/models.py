"""
核心数据模型定义
"""
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple


class TaskStatus(str, Enum):
    """任务状态枚举"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.ERROR)


class RunStatus(str, Enum):
    """处理流程状态枚举"""
    RUNNING = "running"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class TaskErrorKind(str, Enum):
    """任务错误类型"""
    EXECUTOR_FAILURE = "executor_failure"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


def format_seconds(seconds: float) -> str:
    """将秒数格式化为 H:MM:SS 或 M:SS"""
    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


@dataclass(frozen=True)
class Chapter:
    """视频章节"""
    start_time: float  # 秒
    title: str

    @property
    def formatted_time(self) -> str:
        return format_seconds(self.start_time)


@dataclass(frozen=True)
class Comment:
    """视频评论"""
    text: str
    like_count: int = 0
    author: Optional[str] = None


@dataclass(frozen=True)
class VideoMetadata:
    """视频元数据，每次处理只获取一次，对编排器只读"""
    video_id: str
    title: str
    duration: Optional[int] = None  # 秒
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    comment_count: Optional[int] = None
    publish_date: Optional[str] = None  # YYYY-MM-DD
    description: str = ""
    tags: Tuple[str, ...] = ()
    thumbnail_url: Optional[str] = None
    channel: Optional[str] = None
    chapters: Tuple[Chapter, ...] = ()
    comments: Tuple[Comment, ...] = ()

    @property
    def url(self) -> str:
        return f"https://www.youtube.com/watch?v={self.video_id}"

    @property
    def formatted_duration(self) -> Optional[str]:
        if self.duration is None:
            return None
        return format_seconds(self.duration)

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "video_id": self.video_id,
            "url": self.url,
            "title": self.title,
            "duration": self.duration,
            "view_count": self.view_count,
            "like_count": self.like_count,
            "comment_count": self.comment_count,
            "publish_date": self.publish_date,
            "description": self.description,
            "tags": list(self.tags),
            "thumbnail_url": self.thumbnail_url,
            "channel": self.channel,
            "chapters": [
                {"time": chapter.formatted_time, "title": chapter.title}
                for chapter in self.chapters
            ],
        }


@dataclass(frozen=True)
class OperationDefinition:
    """
    操作定义

    executor 接收 VideoMetadata，返回结果或返回结果的 awaitable，失败时抛出异常。
    """
    operation_id: str
    name: str
    executor: Callable[[VideoMetadata], Any]
    description: str = ""


@dataclass(frozen=True)
class TaskError:
    """任务错误描述"""
    kind: TaskErrorKind
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class Task:
    """
    处理任务

    不可变：每次状态转换都生成新的 Task，所以任何已发布的快照都不会被修改。
    """
    task_id: str  # 等于操作 ID
    name: str
    status: TaskStatus = TaskStatus.PENDING
    result: Any = None
    error: Optional[TaskError] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def mark_running(self) -> "Task":
        return replace(self, status=TaskStatus.RUNNING, started_at=datetime.now())

    def mark_completed(self, result: Any) -> "Task":
        return replace(
            self,
            status=TaskStatus.COMPLETED,
            result=result,
            error=None,
            finished_at=datetime.now(),
        )

    def mark_error(self, kind: TaskErrorKind, message: str) -> "Task":
        return replace(
            self,
            status=TaskStatus.ERROR,
            result=None,
            error=TaskError(kind=kind, message=message),
            finished_at=datetime.now(),
        )

    @property
    def duration(self) -> Optional[float]:
        if self.started_at is None or self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "id": self.task_id,
            "name": self.name,
            "status": self.status.value,
            "result": self.result,
            "error": self.error.to_dict() if self.error else None,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
        }


Snapshot = Tuple[Task, ...]


class CancellationToken:
    """取消令牌，编排器在任务之间检查"""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class ProcessingRun:
    """一次处理流程：一份元数据 + 有序的任务序列"""
    metadata: VideoMetadata
    operation_ids: Tuple[str, ...]
    tasks: Snapshot = ()
    run_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: RunStatus = RunStatus.RUNNING
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    created_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def completed_tasks(self) -> List[Task]:
        return [task for task in self.tasks if task.status == TaskStatus.COMPLETED]

    @property
    def failed_tasks(self) -> List[Task]:
        return [task for task in self.tasks if task.status == TaskStatus.ERROR]

    @property
    def processing_time(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.created_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "video": self.metadata.to_dict(),
            "tasks": [task.to_dict() for task in self.tasks],
            "created_at": self.created_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "processing_time": self.processing_time,
        }
