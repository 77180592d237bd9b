"""
脚本编译产物：Step 与各类 Task
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Union


class StepType(str, Enum):
    """步骤类型，决定执行语义与发送给视觉服务的 temperature"""
    NORMAL = "normal"
    REPEATING = "repeating"
    CREATIVE = "creative"


class StepSection(str, Enum):
    """步骤内的子段落"""
    NONE = "none"
    ASSERTIONS = "assertions"
    ACTIONS = "actions"
    MEMORIES = "memories"


DEFAULT_MAX_REPEATS = 10


@dataclass(frozen=True)
class Step:
    name: str
    assertions: Tuple[str, ...] = ()
    actions: Tuple[str, ...] = ()
    # 由编译器在扫描结束后重建最后一个 StepTask 时置为 True
    is_last_step: bool = False

    def __str__(self) -> str:
        return f"name = {self.name} ({len(self.assertions)} assertions, {len(self.actions)} actions)"


@dataclass(frozen=True)
class Install:
    pass


@dataclass(frozen=True)
class Uninstall:
    package_name: str


@dataclass(frozen=True)
class ClearData:
    package_name: str


@dataclass(frozen=True)
class OpenApp:
    package_name: str


@dataclass(frozen=True)
class Back:
    pass


@dataclass(frozen=True)
class Home:
    pass


@dataclass(frozen=True)
class RecentApps:
    pass


@dataclass(frozen=True)
class Wait:
    seconds: int


@dataclass(frozen=True)
class Description:
    text: str


@dataclass(frozen=True)
class StepTask:
    step: Step
    step_type: StepType = StepType.NORMAL
    max_repeats: int = field(default=DEFAULT_MAX_REPEATS)


Task = Union[
    Install,
    Uninstall,
    ClearData,
    OpenApp,
    Back,
    Home,
    RecentApps,
    Wait,
    Description,
    StepTask,
]
