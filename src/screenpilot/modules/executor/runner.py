"""
任务执行器

按顺序执行编译后的任务列表，任一任务失败立即终止。
全部成功后向视觉服务请求本次运行的总结（失败不影响结果）。
"""
from __future__ import annotations

from typing import List, Optional

from ...core import timeutils
from ...core.logger import logger
from ...core.persisted import Intervals
from ..emu.base import BaseDevice
from ..script.types import (
    Back,
    ClearData,
    Description,
    Home,
    Install,
    OpenApp,
    RecentApps,
    StepTask,
    StepType,
    Task,
    Uninstall,
    Wait,
)
from ..vision.client import VisionApiError, VisionClient
from .context import RunContext
from .step import StepProcessor


def has_stop_action(actions: Optional[List[str]]) -> bool:
    return any("stop" in action.lower() for action in actions or [])


class TaskRunner:
    def __init__(
        self,
        device: BaseDevice,
        vision: VisionClient,
        intervals: Optional[Intervals] = None,
        context: Optional[RunContext] = None,
    ) -> None:
        self.device = device
        self.vision = vision
        self.intervals = intervals or Intervals()
        self.context = context or RunContext()
        self.processor = StepProcessor(device, vision, self.context, self.intervals)
        self.logger = logger.bind(module="TaskRunner")

    async def run(self, tasks: List[Task], script_text: str = "") -> bool:
        if not await self.device.is_connected():
            self.logger.error("未检测到设备/模拟器，请先连接设备")
            return False

        self.logger.info("开始执行脚本...")
        total = len(tasks)
        for index, task in enumerate(tasks):
            self.logger.info(f"执行任务 {index + 1}/{total}: {task}")
            if not await self._execute(task):
                self.logger.error("任务失败，停止执行")
                return False
            await timeutils.sleep_ms(self.intervals.default_action_delay)
            self._dump_context()

        await self._summarize(script_text)
        self.logger.info("脚本执行完成")
        return True

    async def _execute(self, task: Task) -> bool:
        intervals = self.intervals
        if isinstance(task, Description):
            self.context.reset_description(task.text)
            return True
        if isinstance(task, Install):
            return await self._settle(await self.device.install(), intervals.long_delay)
        if isinstance(task, Uninstall):
            return await self._settle(await self.device.uninstall(task.package_name), intervals.short_delay)
        if isinstance(task, ClearData):
            return await self._settle(await self.device.clear_data(task.package_name), intervals.short_delay)
        if isinstance(task, OpenApp):
            return await self._settle(await self.device.open_app(task.package_name), intervals.long_delay)
        if isinstance(task, Back):
            return await self._settle(await self.device.back(), intervals.default_action_delay)
        if isinstance(task, Home):
            return await self._settle(await self.device.home(), intervals.short_delay)
        if isinstance(task, RecentApps):
            return await self._settle(await self.device.recent(), intervals.default_action_delay)
        if isinstance(task, Wait):
            await timeutils.sleep_ms(task.seconds * 1000)
            return True
        if isinstance(task, StepTask):
            if task.step_type == StepType.REPEATING:
                return await self._run_repeating(task)
            return await self.processor.process(task) is not None
        raise TypeError(f"未知任务类型: {type(task).__name__}")

    async def _settle(self, result: bool, delay_ms: int) -> bool:
        await timeutils.sleep_ms(delay_ms)
        return result

    async def _run_repeating(self, task: StepTask) -> bool:
        """重复执行同一步骤，直到动作中出现 stop 或达到 max_repeats"""
        for iteration in range(1, task.max_repeats + 1):
            response = await self.processor.process(task)
            if response is None:
                return False
            if has_stop_action(response.actions):
                self.logger.info(f"重复步骤 '{task.step.name}' 在第 {iteration} 次完成")
                return True
        self.logger.error(f"重复步骤 '{task.step.name}' 达到最大次数 {task.max_repeats} 仍未完成")
        return False

    def _dump_context(self) -> None:
        for item in self.context.accumulated_context:
            self.logger.debug(f"上下文: {item}")

    async def _summarize(self, script_text: str) -> None:
        try:
            summary = await self.vision.request_summary(script_text, self.context.joined_context())
        except VisionApiError as e:
            self.logger.warning(f"获取运行总结失败: {e}")
            return
        self.logger.info(f"状态: {summary.status}")
        self.logger.info(f"总结: {summary.summary}")
