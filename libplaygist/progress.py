"""推送进度接收器"""

from typing import List
from .events import EventEmitter


class NoProgress:
    """不关心进度的接收器"""

    def begin_task(self, title: str, total_work: int = 0):
        pass

    def update(self, line: str):
        pass

    def end_task(self):
        pass


class LoggingProgress(NoProgress):
    """把 git 的进度输出转发到事件流"""

    def __init__(self, level: str = "info"):
        self.level = level
        self.tasks: List[str] = []

    def begin_task(self, title: str, total_work: int = 0):
        self.tasks.append(title)
        EventEmitter.phase_start(title, total_items=total_work)

    def update(self, line: str):
        task = self.tasks[-1] if self.tasks else "push"
        EventEmitter.log(self.level, f"[{task}] {line}")

    def end_task(self):
        if self.tasks:
            EventEmitter.log(self.level, f"Task ended: {self.tasks.pop()}")
