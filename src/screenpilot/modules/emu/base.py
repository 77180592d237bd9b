"""
设备能力基类

引擎只通过这里列出的方法操作设备；每个方法返回是否成功，
不向上抛出设备层异常。
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..script.types import Step


@dataclass(frozen=True)
class Screenshot:
    """处理后的截图：本地路径，以及 归一化宽度 / 原始短边 的缩放比例"""
    path: str
    scale_factor: float


class BaseDevice(ABC):
    """设备抽象基类"""

    @abstractmethod
    async def is_connected(self) -> bool:
        pass

    @abstractmethod
    async def install(self) -> bool:
        pass

    @abstractmethod
    async def uninstall(self, package_name: str) -> bool:
        pass

    @abstractmethod
    async def clear_data(self, package_name: str) -> bool:
        pass

    @abstractmethod
    async def open_app(self, package_name: str) -> bool:
        pass

    @abstractmethod
    async def tap(self, x: int, y: int) -> bool:
        pass

    @abstractmethod
    async def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 200) -> bool:
        pass

    @abstractmethod
    async def input_text(self, text: str) -> bool:
        pass

    @abstractmethod
    async def input_text_slowly(self, text: str) -> bool:
        """逐字符输入"""
        pass

    @abstractmethod
    async def back(self) -> bool:
        pass

    @abstractmethod
    async def home(self) -> bool:
        pass

    @abstractmethod
    async def recent(self) -> bool:
        pass

    @abstractmethod
    async def screenshot(self, step: Step) -> Optional[Screenshot]:
        """
        截图并缩放到归一化宽度

        Args:
            step: 当前步骤（用于命名截图文件）

        Returns:
            Screenshot，失败返回 None
        """
        pass
