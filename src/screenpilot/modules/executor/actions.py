"""
动作解释器

视觉服务返回的动作语言：
    tap X,Y
    swipe x1,y1,x2,y2
    input X,Y 'text'   （或 "text"）
    home / back / recent
其余内容视为空操作。每个动作之后固定等待 default_action_delay。
"""
from __future__ import annotations

import re
from typing import List, Optional

from ...core import timeutils
from ...core.errors import SoftActionError
from ...core.logger import logger
from ...core.persisted import Intervals
from ..emu.base import BaseDevice
from .context import RunContext

_INPUT_RE = re.compile(r"""input (\d+),\s*(\d+) ['"](.*?)['"]""", re.IGNORECASE)


def _parse_coords(text: str, expected: int) -> Optional[List[int]]:
    coords = []
    for part in text.split(","):
        try:
            coords.append(int(part.strip()))
        except ValueError:
            continue
    if len(coords) != expected:
        return None
    return coords


def _strip_keyword(action: str, keyword: str) -> Optional[str]:
    if action[: len(keyword)].lower() == keyword:
        return action[len(keyword):].strip()
    return None


class ActionInterpreter:
    def __init__(self, device: BaseDevice, context: RunContext, intervals: Intervals):
        self.device = device
        self.context = context
        self.intervals = intervals
        self.logger = logger.bind(module="ActionInterpreter")

    async def execute(self, actions: List[str]) -> List[SoftActionError]:
        """顺序执行动作，返回可恢复错误列表"""
        soft_errors: List[SoftActionError] = []
        for action in actions:
            error = await self._execute_one(action)
            if error is not None:
                self.logger.error(str(error))
                soft_errors.append(error)
            await timeutils.sleep_ms(self.intervals.default_action_delay)
        return soft_errors

    async def _execute_one(self, action: str) -> Optional[SoftActionError]:
        action = action.strip()
        keyword = action.lower()
        if keyword == "home":
            await self.device.home()
            return None
        if keyword == "back":
            await self.device.back()
            return None
        if keyword == "recent":
            await self.device.recent()
            return None

        scale = self.context.scale

        rest = _strip_keyword(action, "tap ")
        if rest is not None:
            coords = _parse_coords(rest, 2)
            if coords:
                x, y = (scale(v) for v in coords)
                self.logger.debug(f"点击 {coords} -> ({x}, {y}) scale:{self.context.scale_factor}")
                await self.device.tap(x, y)
            return None

        rest = _strip_keyword(action, "swipe ")
        if rest is not None:
            coords = _parse_coords(rest, 4)
            if coords:
                x1, y1, x2, y2 = (scale(v) for v in coords)
                await self.device.swipe(x1, y1, x2, y2)
            return None

        if _strip_keyword(action, "input ") is not None:
            return await self._input(action)

        self.logger.debug(f"忽略无法识别的动作: {action}")
        return None

    async def _input(self, action: str) -> Optional[SoftActionError]:
        match = _INPUT_RE.search(action)
        if match is None:
            return None
        x = self.context.scale(int(match.group(1)))
        y = self.context.scale(int(match.group(2)))
        text = match.group(3)

        self.logger.debug(f"点击 ({x}, {y}) scale:{self.context.scale_factor}")
        error = None
        if not await self.device.tap(x, y):
            error = SoftActionError(action, f"Error tapping at {x}, {y}")
        await timeutils.sleep_ms(self.intervals.default_action_delay)

        self.logger.debug(f"输入文本: {text}")
        if not await self.device.input_text_slowly(text):
            error = SoftActionError(action, f"Error inputting text: {text}")
        return error
