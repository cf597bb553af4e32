"""
展示层单元测试
"""
from video_agent.models import Task, TaskErrorKind
from video_agent.presentation import TaskListRenderer, render_metadata


class TestTaskListRenderer:
    """任务列表渲染器测试"""

    def setup_method(self):
        self.lines = []
        self.renderer = TaskListRenderer(echo=self.lines.append)

    def test_prints_only_changes(self):
        pending = (Task("a", "Task A"), Task("b", "Task B"))
        running = (pending[0].mark_running(), pending[1])

        self.renderer(pending)
        self.renderer(pending)
        self.renderer(running)

        assert len(self.lines) == 3
        assert "Task A" in self.lines[-1]
        assert "Running" in self.lines[-1]

    def test_completed_shows_result(self):
        task = Task("a", "Task A").mark_running().mark_completed({"views": "1,000"})
        self.renderer((task,))
        assert any('"views": "1,000"' in line for line in self.lines)

    def test_error_shows_message(self):
        task = Task("a", "Task A").mark_running().mark_error(TaskErrorKind.EXECUTOR_FAILURE, "Task failed")
        self.renderer((task,))
        assert any("Task failed" in line for line in self.lines)

    def test_reset(self):
        snapshot = (Task("a", "Task A"),)
        self.renderer(snapshot)
        self.renderer.reset()
        self.renderer(snapshot)
        assert len(self.lines) == 2


def test_render_metadata(metadata):
    lines = []
    render_metadata(metadata, echo=lines.append)
    output = "\n".join(lines)
    assert "How to Build AI Agents" in output
    assert "Views: 1,234,567" in output
    assert "Duration: 45:32" in output
    assert "Tags: AI, Machine Learning" in output
