"""
终端展示层

只读取编排器发布的快照，不参与编排逻辑。
"""
import json
from typing import Callable, Dict, Optional

import click

from .models import ProcessingRun, Snapshot, Task, TaskStatus, VideoMetadata

STATUS_COLORS = {
    TaskStatus.PENDING: "white",
    TaskStatus.RUNNING: "blue",
    TaskStatus.COMPLETED: "green",
    TaskStatus.ERROR: "red",
}


def status_badge(status: TaskStatus) -> str:
    label = status.value.capitalize()
    return click.style(f"[{label}]", fg=STATUS_COLORS[status], bold=True)


class TaskListRenderer:
    """
    任务列表渲染器

    作为快照观察者使用：只打印状态发生变化的任务。
    """

    def __init__(self, echo: Callable[[str], None] = click.echo, show_results: bool = True):
        self.echo = echo
        self.show_results = show_results
        self._seen: Dict[str, TaskStatus] = {}

    def reset(self) -> None:
        self._seen.clear()

    def __call__(self, snapshot: Snapshot) -> None:
        for position, task in enumerate(snapshot, start=1):
            if self._seen.get(task.task_id) == task.status:
                continue
            self._seen[task.task_id] = task.status
            self.render_task(position, task)

    def render_task(self, position: int, task: Task) -> None:
        self.echo(f"{position}. {status_badge(task.status)} {task.name}")

        if task.status == TaskStatus.COMPLETED and self.show_results:
            body = json.dumps(task.result, ensure_ascii=False, indent=2, default=str)
            for line in body.splitlines():
                self.echo(f"     {line}")
        elif task.status == TaskStatus.ERROR and task.error is not None:
            self.echo(click.style(f"     {task.error.message}", fg="red"))


def render_metadata(metadata: VideoMetadata, echo: Callable[[str], None] = click.echo) -> None:
    """打印视频信息"""
    echo(click.style(metadata.title or metadata.video_id, bold=True))
    rows = [
        ("Duration", metadata.formatted_duration),
        ("Views", _count(metadata.view_count)),
        ("Likes", _count(metadata.like_count)),
        ("Comments", _count(metadata.comment_count)),
        ("Published", metadata.publish_date),
        ("Channel", metadata.channel),
    ]
    for label, value in rows:
        if value is not None:
            echo(f"  {label}: {value}")
    if metadata.tags:
        echo(f"  Tags: {', '.join(metadata.tags)}")
    echo("")


def render_summary(run: ProcessingRun, echo: Callable[[str], None] = click.echo) -> None:
    """打印处理流程汇总"""
    completed = len(run.completed_tasks)
    failed = len(run.failed_tasks)
    echo("")
    echo(f"Run {run.run_id} {run.status.value}: {completed} completed, {failed} failed")


def _count(value: Optional[int]) -> Optional[str]:
    return f"{value:,}" if value is not None else None
