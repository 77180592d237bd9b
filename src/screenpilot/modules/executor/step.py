"""
步骤处理器

单次处理流程：
1. 截图（同时得到本次的缩放比例）
2. Base64 编码
3. 组装请求并调用视觉服务
4. 记录 request id，供下一次请求延续上下文
5. 响应无动作列表 -> 失败
6. 断言把关：失败断言全部带 "optional" 才继续
7. 追加上下文并执行动作
任一环节失败返回 None。
"""
from __future__ import annotations

from typing import Optional

from ...core.logger import logger
from ...core.persisted import Intervals
from ..emu.base import BaseDevice
from ..script.types import StepTask, StepType
from ..vision.client import StepRequest, VisionApiError, VisionClient, VisionResponse
from ..vision.image import encode_image_base64
from .actions import ActionInterpreter
from .context import RunContext

CREATIVE_TEMPERATURE = 0.9
DEFAULT_TEMPERATURE = 0.1


def temperature_for(step_type: StepType) -> float:
    return CREATIVE_TEMPERATURE if step_type == StepType.CREATIVE else DEFAULT_TEMPERATURE


def only_optional_failures(failed_assertions) -> bool:
    return all("optional" in assertion.lower() for assertion in failed_assertions)


class StepProcessor:
    def __init__(
        self,
        device: BaseDevice,
        vision: VisionClient,
        context: RunContext,
        intervals: Intervals,
    ) -> None:
        self.device = device
        self.vision = vision
        self.context = context
        self.interpreter = ActionInterpreter(device, context, intervals)
        self.logger = logger.bind(module="StepProcessor")

    async def process(self, task: StepTask) -> Optional[VisionResponse]:
        step = task.step
        self.logger.info(f"处理步骤画面: {step.name}")

        screenshot = await self.device.screenshot(step)
        if screenshot is None:
            self.logger.error("获取截图失败")
            return None
        self.context.scale_factor = screenshot.scale_factor

        self.logger.debug("截图编码为 Base64")
        image = encode_image_base64(screenshot.path)
        if image is None:
            self.logger.error("截图编码失败")
            return None

        request = StepRequest(
            image=image,
            step_name=step.name,
            description=self.context.description,
            assertions=list(step.assertions),
            actions=list(step.actions),
            temperature=temperature_for(task.step_type),
            context=self.context.joined_context(),
            previous_request_id=self.context.previous_request_id,
            is_last_step=step.is_last_step,
        )
        self.logger.info(f"发送截图至视觉服务: {step.name}")
        try:
            response = await self.vision.process_step(request)
        except VisionApiError as e:
            self.logger.error(f"视觉服务处理失败 [{step.name}]: {e}")
            return None

        self.context.previous_request_id = response.request_id

        if response.actions is None:
            self.logger.error(f"视觉服务响应中没有动作列表: {step.name}")
            return None

        if response.failed_assertions:
            self.logger.info(f"步骤 '{step.name}' 以下断言未通过:")
            for assertion in response.failed_assertions:
                self.logger.info(f"   - {assertion}")
            if not only_optional_failures(response.failed_assertions):
                self.logger.error("存在必需断言未通过，停止执行")
                return None
            self.logger.info("仅可选断言未通过，继续执行")

        if response.passed_assertions:
            self.logger.info(f"步骤 '{step.name}' 以下断言通过:")
            for assertion in response.passed_assertions:
                self.logger.info(f"   - {assertion}")
            self.logger.info(f"{len(response.passed_assertions)} / {len(step.assertions)} 通过")

        if response.context:
            self.context.append_context(response.context)

        self.logger.info(f"动作: {', '.join(response.actions)}")
        soft_errors = await self.interpreter.execute(response.actions)
        if soft_errors:
            self.logger.warning(f"步骤 '{step.name}' 有 {len(soft_errors)} 个动作执行出错")
        return response
