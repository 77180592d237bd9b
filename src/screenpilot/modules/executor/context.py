"""
单次脚本运行的共享状态
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class RunContext:
    """运行上下文，生命周期为一次脚本执行"""

    # 归一化图像宽度 / 设备原始短边，每次截图更新
    scale_factor: float = 1.0
    # 多轮对话上下文，Description 任务会重置
    accumulated_context: List[str] = field(default_factory=list)
    # 上一次视觉响应的 request id，传给下一次请求
    previous_request_id: Optional[str] = None
    description: str = ""

    def reset_description(self, description: str) -> None:
        self.description = description
        self.accumulated_context = [description]

    def append_context(self, text: str) -> None:
        self.accumulated_context.append(text)

    def joined_context(self) -> str:
        return "\n".join(self.accumulated_context)

    def scale(self, value: int) -> int:
        """将视觉图像坐标还原为设备像素，.5 向上取整"""
        return int(math.floor(value / self.scale_factor + 0.5))
