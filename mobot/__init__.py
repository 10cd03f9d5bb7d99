# -*- coding: utf-8 -*-
"""mobot 主包: 移动操作机器人任务执行引擎"""
from mobot.core.task_maker import TaskMaker
from mobot.execution.executor import TaskScheduler
from mobot.models.action_parser import ActionParser

__all__ = ["TaskMaker", "TaskScheduler", "ActionParser"]
