"""核心模块"""
from mobot.core.task_maker import TaskMaker

__all__ = ["TaskMaker"]
