"""
脚本编译器

逐行扫描（已展开宏的）脚本，生成有序的 Task 列表。

状态：
- step_type: 当前所在步骤类型，None 表示不在步骤内
- section:   步骤内的子段落（assertions / actions / memories）
- 断言、动作、记忆三个缓冲区

任何结构错误都会抛出 CompileError，不产生部分结果。
"""
from __future__ import annotations

import random
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, List, Optional

from ...core.errors import CompileError
from ...core.logger import logger
from .extras import apply_extras
from .macros import EMPTY_MACROS, expand_macros, load_macros
from .types import (
    DEFAULT_MAX_REPEATS,
    Back,
    ClearData,
    Description,
    Home,
    Install,
    OpenApp,
    RecentApps,
    Step,
    StepSection,
    StepTask,
    StepType,
    Task,
    Uninstall,
    Wait,
)

# 步骤开头关键字，按匹配顺序
_STEP_OPENERS = (
    ("step ", StepType.NORMAL),
    ("repeating step ", StepType.REPEATING),
    ("creative step ", StepType.CREATIVE),
)

_SECTION_HEADERS = {
    "assertions:": StepSection.ASSERTIONS,
    "actions:": StepSection.ACTIONS,
    "remember": StepSection.MEMORIES,
    "remember:": StepSection.MEMORIES,
}


def _strip_prefix(command: str, prefix: str) -> Optional[str]:
    """大小写不敏感地去掉前缀；不匹配返回 None"""
    if command.lower().startswith(prefix):
        return command[len(prefix):].strip()
    return None


def _parse_bare_command(command: str) -> tuple:
    """解析步骤外的单行命令。

    Returns:
        (matched, task)；matched 为 False 表示不是单行命令，
        task 为 None 表示命令被忽略（如 wait 参数非整数）
    """
    lowered = command.lower()
    if lowered == "install":
        return True, Install()
    if lowered == "back":
        return True, Back()
    if lowered == "home":
        return True, Home()
    if lowered == "recent":
        return True, RecentApps()

    package_commands: Dict[str, Callable[[str], Task]] = {
        "uninstall ": Uninstall,
        "cleardata ": ClearData,
        "open ": OpenApp,
    }
    for prefix, factory in package_commands.items():
        arg = _strip_prefix(command, prefix)
        if arg is not None:
            return True, factory(arg)

    arg = _strip_prefix(command, "wait ")
    if arg is not None:
        try:
            return True, Wait(int(arg))
        except ValueError:
            # 非整数参数直接忽略，不报错
            logger.debug(f"忽略无效的 wait 参数: {command}")
            return True, None

    arg = _strip_prefix(command, "description:")
    if arg is not None:
        return True, Description(arg)

    return False, None


class ScriptCompiler:
    """单遍扫描的脚本编译器"""

    def __init__(
        self,
        max_repeats: int = DEFAULT_MAX_REPEATS,
        rng: Optional[random.Random] = None,
    ):
        self.max_repeats = max_repeats
        self.rng = rng
        self._reset()

    def _reset(self) -> None:
        self.tasks: List[Task] = []
        self.step_type: Optional[StepType] = None
        self.section = StepSection.NONE
        self.step_name = ""
        self.assertions: List[str] = []
        self.actions: List[str] = []
        self.memories: List[str] = []

    @property
    def inside_step(self) -> bool:
        return self.step_type is not None

    def compile(self, lines: List[str]) -> List[Task]:
        self._reset()
        for line in lines:
            command = line.strip()
            if not command or command.startswith("#"):
                continue
            command = apply_extras(command, self.rng)
            self._consume(command, line)

        if self.inside_step:
            raise CompileError(f"Step '{self.step_name}' is missing 'end'.")

        self._mark_last_step()
        return list(self.tasks)

    def _consume(self, command: str, line: str) -> None:
        if not self.inside_step:
            matched, task = _parse_bare_command(command)
            if matched:
                if task is not None:
                    self.tasks.append(task)
                return

        lowered = command.lower()
        for prefix, step_type in _STEP_OPENERS:
            name = _strip_prefix(command, prefix)
            if name is not None:
                self._open_step(name, step_type, line)
                return

        section = _SECTION_HEADERS.get(lowered)
        if section is not None:
            self.section = section
            return
        memory = _strip_prefix(command, "remember ")
        if memory is not None:
            self.section = StepSection.MEMORIES
            if memory:
                self.memories.append(memory)
            return

        if lowered == "end":
            self._close_step(line)
            return

        if self.section == StepSection.ASSERTIONS:
            self.assertions.append(command)
        elif self.section == StepSection.ACTIONS:
            self.actions.append(command)
        elif self.section == StepSection.MEMORIES:
            # 记忆行目前只收集，不进入任何 Task
            self.memories.append(command)

    def _open_step(self, name: str, step_type: StepType, line: str) -> None:
        if self.inside_step:
            raise CompileError(
                f"Step '{self.step_name}' is missing 'end' before a new step begins.",
                line,
            )
        self.step_type = step_type
        self.step_name = name
        self.section = StepSection.NONE
        self.assertions = []
        self.actions = []
        self.memories = []

    def _close_step(self, line: str) -> None:
        if not self.inside_step:
            raise CompileError("'end' found without a matching 'step'.", line)
        step = Step(self.step_name, tuple(self.assertions), tuple(self.actions))
        self.tasks.append(StepTask(step, self.step_type, self.max_repeats))
        self.step_type = None
        self.section = StepSection.NONE

    def _mark_last_step(self) -> None:
        for index in range(len(self.tasks) - 1, -1, -1):
            task = self.tasks[index]
            if isinstance(task, StepTask):
                last_step = replace(task.step, is_last_step=True)
                self.tasks[index] = replace(task, step=last_step)
                break


def compile_script(
    lines: List[str],
    max_repeats: int = DEFAULT_MAX_REPEATS,
    rng: Optional[random.Random] = None,
) -> List[Task]:
    """编译已展开宏的脚本行"""
    return ScriptCompiler(max_repeats=max_repeats, rng=rng).compile(lines)


def compile_file(
    script_path,
    macros_path=None,
    max_repeats: int = DEFAULT_MAX_REPEATS,
) -> List[Task]:
    """读取脚本文件，展开宏并编译"""
    script_path = Path(script_path)
    if not script_path.exists():
        raise CompileError(f"Script file '{script_path}' not found.")

    logger.info(f"编译脚本: {script_path}")
    lines = script_path.read_text(encoding="utf-8").splitlines()
    macros = load_macros(macros_path) if macros_path else EMPTY_MACROS
    tasks = compile_script(expand_macros(lines, macros), max_repeats=max_repeats)
    logger.info(f"脚本编译完成，共 {len(tasks)} 个任务")
    return tasks
