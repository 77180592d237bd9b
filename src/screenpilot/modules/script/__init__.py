"""
脚本模块：宏展开与编译
"""
from .compiler import ScriptCompiler, compile_file, compile_script
from .macros import expand_macros, load_macros, parse_macros
from .types import Step, StepTask, StepType, Task

__all__ = [
    "ScriptCompiler",
    "compile_file",
    "compile_script",
    "expand_macros",
    "load_macros",
    "parse_macros",
    "Step",
    "StepTask",
    "StepType",
    "Task",
]
