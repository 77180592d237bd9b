"""
执行器模块
"""
from .actions import ActionInterpreter
from .context import RunContext
from .runner import TaskRunner
from .step import StepProcessor

__all__ = [
    "ActionInterpreter",
    "RunContext",
    "StepProcessor",
    "TaskRunner",
]
