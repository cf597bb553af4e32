"""
编排器模块 - 按顺序执行选定的分析操作

编排器是系统的核心组件：针对一份视频元数据，把选定的操作逐个实例化为任务，
依次驱动每个任务经历 pending → running → completed | error，
并在每次状态转换后发布不可变的任务快照。
"""
import asyncio
import inspect
import json
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .config import METADATA_TIMEOUT, OPERATION_TIMEOUT
from .exceptions import (
    InvalidSelectionError,
    MetadataUnavailableError,
    RunInProgressError,
)
from .logger import get_logger
from .metadata_provider import MetadataProvider, YtDlpMetadataProvider
from .models import (
    CancellationToken,
    OperationDefinition,
    ProcessingRun,
    RunStatus,
    Snapshot,
    Task,
    TaskErrorKind,
    VideoMetadata,
)
from .operations import build_default_registry
from .registry import OperationRegistry
from .resolver import extract_video_id

logger = get_logger(__name__)

SnapshotObserver = Callable[[Snapshot], None]

DEFAULT_RESULT = {"message": "Task completed successfully"}


class Orchestrator:
    """
    编排器类

    特性：
    - 任务严格按选择顺序执行，任何时刻最多一个任务处于 running
    - 单个任务失败只记录在该任务上，后续任务继续执行
    - 每个会话同一时间只允许一个处理流程
    - 任务之间检查取消令牌
    - 每次状态转换后通知观察者
    """

    def __init__(
        self,
        registry: Optional[OperationRegistry] = None,
        metadata_provider: Optional[MetadataProvider] = None,
        operation_timeout: Optional[float] = OPERATION_TIMEOUT,
        metadata_timeout: Optional[float] = METADATA_TIMEOUT,
    ):
        """
        初始化编排器

        Args:
            registry: 操作注册表（默认包含六个标准操作）
            metadata_provider: 元数据提供者（默认使用 yt-dlp）
            operation_timeout: 单个操作超时时间（秒），None 表示不限制
            metadata_timeout: 元数据获取超时时间（秒），None 表示不限制
        """
        self.registry = registry or build_default_registry()
        self.metadata_provider = metadata_provider or YtDlpMetadataProvider()
        self.operation_timeout = operation_timeout
        self.metadata_timeout = metadata_timeout

        self._active_run: Optional[ProcessingRun] = None
        self._snapshot: Snapshot = ()
        self._observers: List[SnapshotObserver] = []
        self.last_run: Optional[ProcessingRun] = None

    @property
    def is_running(self) -> bool:
        return self._active_run is not None

    @property
    def active_run(self) -> Optional[ProcessingRun]:
        return self._active_run

    def current_snapshot(self) -> Snapshot:
        """返回最新的任务快照，运行中也可安全调用"""
        return self._snapshot

    def subscribe(self, observer: SnapshotObserver) -> Callable[[], None]:
        """
        订阅任务快照

        Args:
            observer: 每次状态转换后以完整快照调用

        Returns:
            取消订阅的函数
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def validate_selection(self, operation_ids: Sequence[str]) -> Tuple[str, ...]:
        """
        校验操作选择

        Raises:
            InvalidSelectionError: 选择为空、有重复或包含未注册的操作
        """
        selection = tuple(operation_ids or ())
        if not selection:
            raise InvalidSelectionError("请至少选择一个操作")

        duplicates = sorted({op_id for op_id in selection if selection.count(op_id) > 1})
        if duplicates:
            raise InvalidSelectionError(f"操作重复: {', '.join(duplicates)}")

        missing = self.registry.missing(selection)
        if missing:
            raise InvalidSelectionError(f"未知的操作: {', '.join(missing)}")

        return selection

    async def process_video(
        self,
        reference: str,
        operation_ids: Sequence[str],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessingRun:
        """
        处理视频：解析链接 → 获取元数据 → 执行选定操作

        Raises:
            UnresolvableReferenceError: 链接无法解析
            InvalidSelectionError: 操作选择无效
            RunInProgressError: 已有运行中的处理流程
            MetadataUnavailableError: 元数据获取失败
        """
        video_id = extract_video_id(reference)
        selection = self.validate_selection(operation_ids)
        if self.is_running:
            raise RunInProgressError(f"已有处理流程在运行: {self._active_run.run_id}")

        metadata = await self.fetch_metadata(video_id)
        return await self.start_run(metadata, selection, cancel_token)

    async def fetch_metadata(self, video_id: str) -> VideoMetadata:
        """
        通过元数据提供者获取视频元数据

        Raises:
            MetadataUnavailableError: 提供者失败或超时
        """
        try:
            return await asyncio.wait_for(
                self.metadata_provider.fetch_metadata(video_id),
                timeout=self.metadata_timeout,
            )
        except MetadataUnavailableError:
            raise
        except asyncio.TimeoutError:
            error_msg = f"获取视频元数据超时 ({self.metadata_timeout}s): {video_id}"
            logger.error(error_msg)
            raise MetadataUnavailableError(error_msg)
        except Exception as e:
            logger.error(f"获取视频元数据失败: {str(e)}")
            raise MetadataUnavailableError(f"获取视频元数据失败: {str(e)}") from e

    async def start_run(
        self,
        metadata: VideoMetadata,
        operation_ids: Sequence[str],
        cancel_token: Optional[CancellationToken] = None,
    ) -> ProcessingRun:
        """
        创建并执行一个处理流程

        校验在第一个挂起点之前完成，失败时不会创建流程。

        Args:
            metadata: 视频元数据
            operation_ids: 有序的操作 ID
            cancel_token: 取消令牌（可选）

        Returns:
            执行结束的处理流程

        Raises:
            InvalidSelectionError: 操作选择无效
            RunInProgressError: 已有运行中的处理流程
        """
        run = self._create_run(metadata, operation_ids, cancel_token)
        await self._execute_run(run)
        return run

    async def retry_failed(self, run: ProcessingRun) -> ProcessingRun:
        """
        对失败的任务发起新的处理流程

        Raises:
            InvalidSelectionError: 没有失败的任务
            RunInProgressError: 已有运行中的处理流程
        """
        failed_ids = [task.task_id for task in run.failed_tasks]
        if not failed_ids:
            raise InvalidSelectionError("没有失败的任务可重试")

        logger.info(f"[{run.run_id}] 重试失败的任务: {', '.join(failed_ids)}")
        return await self.start_run(run.metadata, failed_ids)

    def cancel(self) -> bool:
        """
        请求取消当前处理流程

        正在执行的操作会执行完毕，之后的任务全部以 cancelled 结束。

        Returns:
            是否存在可取消的流程
        """
        if self._active_run is None:
            return False
        self._active_run.cancel_token.cancel()
        logger.info(f"[{self._active_run.run_id}] 已请求取消")
        return True

    def _create_run(
        self,
        metadata: VideoMetadata,
        operation_ids: Sequence[str],
        cancel_token: Optional[CancellationToken],
    ) -> ProcessingRun:
        if self._active_run is not None:
            raise RunInProgressError(f"已有处理流程在运行: {self._active_run.run_id}")

        selection = self.validate_selection(operation_ids)
        tasks = tuple(
            Task(task_id=op_id, name=self.registry.lookup(op_id).name)
            for op_id in selection
        )
        run = ProcessingRun(
            metadata=metadata,
            operation_ids=selection,
            tasks=tasks,
            cancel_token=cancel_token or CancellationToken(),
        )

        self._active_run = run
        logger.info(
            f"[{run.run_id}] 开始处理视频 {metadata.video_id}，"
            f"共 {len(tasks)} 个任务: {', '.join(selection)}"
        )
        self._publish(run.tasks)
        return run

    async def _execute_run(self, run: ProcessingRun) -> None:
        try:
            for index in range(len(run.tasks)):
                if run.cancel_token.cancelled:
                    self._cancel_remaining(run, "处理流程已取消")
                    run.status = RunStatus.CANCELLED
                    break
                await self._execute_task(run, index)
            else:
                run.status = RunStatus.FINISHED
        except asyncio.CancelledError:
            self._cancel_remaining(run, "处理流程被中断")
            run.status = RunStatus.CANCELLED
            raise
        finally:
            run.finished_at = datetime.now()
            self.last_run = run
            self._active_run = None
            logger.info(
                f"[{run.run_id}] 处理流程结束 ({run.status.value})，"
                f"完成 {len(run.completed_tasks)}，失败 {len(run.failed_tasks)}，"
                f"耗时: {run.processing_time:.2f}s"
            )

    async def _execute_task(self, run: ProcessingRun, index: int) -> None:
        task = run.tasks[index]
        definition = self.registry.lookup(task.task_id)

        task = task.mark_running()
        self._update_task(run, index, task)
        logger.info(f"[{run.run_id}] 任务 {index + 1}/{len(run.tasks)} 开始: {task.name}")

        # 执行器在独立的 asyncio 任务中运行：执行器自身抛出的 CancelledError
        # 记录为任务失败，只有编排协程被取消时才向上传播
        execution = asyncio.ensure_future(self._invoke(definition, run.metadata))
        try:
            done, _ = await asyncio.wait({execution}, timeout=self.operation_timeout)
        except asyncio.CancelledError:
            execution.cancel()
            raise

        if not done:
            execution.cancel()
            message = f"操作超时 ({self.operation_timeout}s)"
            logger.error(f"[{run.run_id}] 任务失败: {task.name} - {message}")
            task = task.mark_error(TaskErrorKind.TIMEOUT, message)
        elif execution.cancelled():
            message = "操作在执行过程中被取消"
            logger.error(f"[{run.run_id}] 任务失败: {task.name} - {message}")
            task = task.mark_error(TaskErrorKind.EXECUTOR_FAILURE, message)
        elif execution.exception() is not None:
            e = execution.exception()
            message = str(e) or type(e).__name__
            logger.error(f"[{run.run_id}] 任务失败: {task.name} - {message}")
            task = task.mark_error(TaskErrorKind.EXECUTOR_FAILURE, message)
        else:
            result = execution.result()
            if result is None:
                result = dict(DEFAULT_RESULT)
            task = task.mark_completed(result)
            logger.info(f"[{run.run_id}] 任务完成: {task.name}，耗时: {task.duration:.2f}s")

        self._update_task(run, index, task)

    @staticmethod
    async def _invoke(definition: OperationDefinition, metadata: VideoMetadata) -> Any:
        """调用执行器，同步执行器放到工作线程中运行，避免阻塞事件循环"""
        if inspect.iscoroutinefunction(definition.executor):
            return await definition.executor(metadata)

        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1)
        try:
            outcome = await loop.run_in_executor(executor, definition.executor, metadata)
        finally:
            # 超时后不等待工作线程结束
            executor.shutdown(wait=False)

        if inspect.isawaitable(outcome):
            outcome = await outcome
        return outcome

    def _cancel_remaining(self, run: ProcessingRun, message: str) -> None:
        """将所有未结束的任务标记为 cancelled"""
        for index, task in enumerate(run.tasks):
            if not task.status.is_terminal:
                self._update_task(run, index, task.mark_error(TaskErrorKind.CANCELLED, message))
        logger.warning(f"[{run.run_id}] {message}")

    def _update_task(self, run: ProcessingRun, index: int, task: Task) -> None:
        tasks = list(run.tasks)
        tasks[index] = task
        run.tasks = tuple(tasks)
        self._publish(run.tasks)

    def _publish(self, snapshot: Snapshot) -> None:
        """发布快照，观察者出错不影响编排"""
        self._snapshot = snapshot
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception as e:
                logger.error(f"快照观察者出错: {str(e)}")

    def get_status(self) -> Dict[str, Any]:
        """获取当前会话状态"""
        run = self._active_run or self.last_run
        return {
            "running": self.is_running,
            "run_id": run.run_id if run else None,
            "video_id": run.metadata.video_id if run else None,
            "tasks": [
                {"id": task.task_id, "status": task.status.value}
                for task in self._snapshot
            ],
        }

    def export_run_json(self, run: Optional[ProcessingRun] = None) -> Optional[str]:
        """
        导出处理流程为 JSON 字符串

        Args:
            run: 处理流程（默认为最近一次）

        Returns:
            JSON 字符串，如果没有流程则返回 None
        """
        run = run or self._active_run or self.last_run
        if run is None:
            return None
        return json.dumps(run.to_dict(), ensure_ascii=False, indent=2, default=str)
