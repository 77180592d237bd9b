"""
ADB 设备实现

基于 asyncio 子进程调用 adb，提供引擎所需的设备操作：
- is_connected()
- install() / uninstall(pkg) / clear_data(pkg) / open_app(pkg)
- tap / swipe / input_text / input_text_slowly
- back / home / recent
- screenshot(step) -> Screenshot
"""
from __future__ import annotations

import asyncio
import shlex
from pathlib import Path
from typing import List, Optional, Tuple

from ...core import timeutils
from ...core.logger import logger
from ...core.persisted import Intervals
from ..script.types import Step
from ..vision.image import cover_status_bar, resize_to_min_side
from .base import BaseDevice, Screenshot

KEYCODE_HOME = 3
KEYCODE_BACK = 4
KEYCODE_APP_SWITCH = 187


class AdbError(RuntimeError):
    pass


def _looks_failed(output: str) -> bool:
    lowered = output.lower()
    return "error" in lowered or "failure" in lowered


def escape_input_text(text: str) -> str:
    """转义 `input text` 参数：adb shell 会把参数拼成一行交给设备端 shell。

    空格用 adb 的 %s 占位，其余字符按 shell 规则引用。
    """
    return "".join("%s" if char == " " else shlex.quote(char) for char in text)


class AdbDevice(BaseDevice):
    def __init__(
        self,
        working_dir,
        intervals: Optional[Intervals] = None,
        adb_path: str = "adb",
        serial: Optional[str] = None,
        timeout: float = 60.0,
    ) -> None:
        self.working_dir = Path(working_dir)
        self.intervals = intervals or Intervals()
        self.adb_path = adb_path
        self.serial = serial or None
        self.timeout = timeout
        self.logger = logger.bind(device=serial or "default", module="AdbDevice")

    def _base_cmd(self) -> List[str]:
        cmd = [self.adb_path]
        if self.serial:
            cmd += ["-s", self.serial]
        return cmd

    async def _exec(self, *args: str) -> Tuple[int, bytes]:
        """执行 adb 命令，返回 (returncode, stdout+stderr)"""
        cmd = self._base_cmd() + list(args)
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise AdbError(f"找不到 ADB 可执行文件: {self.adb_path}") from e

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise AdbError(f"ADB 命令超时: {' '.join(cmd)}") from e
        return process.returncode, stdout or b""

    async def _run(self, *args: str) -> Tuple[bool, str]:
        """执行文本输出的 adb 命令；输出包含 error/failure 视为失败"""
        try:
            returncode, raw = await self._exec(*args)
        except AdbError as e:
            self.logger.error(str(e))
            return False, str(e)
        output = raw.decode("utf-8", errors="ignore").strip()
        if output:
            self.logger.debug(output)
        return returncode == 0 and not _looks_failed(output), output

    async def is_connected(self) -> bool:
        ok, output = await self._run("devices")
        if not ok:
            return False
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[1] == "device":
                if not self.serial or parts[0] == self.serial:
                    return True
        return False

    def _find_apk(self) -> Optional[Path]:
        apks = sorted(self.working_dir.glob("*.apk"))
        return apks[0] if apks else None

    async def install(self) -> bool:
        apk = self._find_apk()
        if apk is None:
            self.logger.error(f"工作目录中没有 APK 文件: {self.working_dir}")
            return False
        self.logger.info(f"安装 APK: {apk.name}")
        ok, _ = await self._run("install", str(apk.resolve()))
        return ok

    async def uninstall(self, package_name: str) -> bool:
        self.logger.info(f"卸载: {package_name}")
        await self._run("uninstall", package_name)
        # 应用不存在时卸载也会失败，统一视为成功
        return True

    async def clear_data(self, package_name: str) -> bool:
        self.logger.info(f"清除数据: {package_name}")
        ok, _ = await self._run("shell", "pm", "clear", package_name)
        return ok

    async def open_app(self, package_name: str) -> bool:
        self.logger.info(f"启动应用: {package_name}")
        ok, _ = await self._run(
            "shell", "monkey",
            "-p", package_name,
            "-c", "android.intent.category.LAUNCHER",
            "1",
        )
        return ok

    async def tap(self, x: int, y: int) -> bool:
        self.logger.debug(f"点击 ({x}, {y})")
        ok, _ = await self._run("shell", "input", "tap", str(x), str(y))
        return ok

    async def swipe(self, x1: int, y1: int, x2: int, y2: int, duration_ms: int = 200) -> bool:
        self.logger.debug(f"滑动 ({x1}, {y1}) -> ({x2}, {y2}) {duration_ms}ms")
        ok, _ = await self._run(
            "shell", "input", "swipe",
            str(x1), str(y1), str(x2), str(y2), str(duration_ms),
        )
        return ok

    async def input_text(self, text: str) -> bool:
        text = text.strip()
        self.logger.debug(f"输入文本: '{text}'")
        ok, _ = await self._run("shell", "input", "text", escape_input_text(text))
        return ok

    async def input_text_slowly(self, text: str) -> bool:
        text = text.strip()
        self.logger.debug(f"逐字输入文本: '{text}'")
        for char in text:
            ok, _ = await self._run("shell", "input", "text", escape_input_text(char))
            if not ok:
                return False
            await timeutils.sleep_ms(self.intervals.typing_delay)
        return True

    async def _keyevent(self, keycode: int) -> bool:
        ok, _ = await self._run("shell", "input", "keyevent", str(keycode))
        return ok

    async def back(self) -> bool:
        return await self._keyevent(KEYCODE_BACK)

    async def home(self) -> bool:
        return await self._keyevent(KEYCODE_HOME)

    async def recent(self) -> bool:
        return await self._keyevent(KEYCODE_APP_SWITCH)

    async def screenshot(self, step: Step) -> Optional[Screenshot]:
        file_name = step.name.replace(" ", "-").lower()
        local_path = self.working_dir / "images" / f"{file_name}.png"
        local_path.parent.mkdir(parents=True, exist_ok=True)

        self.logger.debug("截图中...")
        try:
            returncode, data = await self._exec("exec-out", "screencap", "-p")
        except AdbError as e:
            self.logger.error(f"截图失败: {e}")
            return None
        if returncode != 0 or not data:
            self.logger.error(f"截图失败: returncode={returncode}, size={len(data)}")
            return None
        local_path.write_bytes(data)

        loop = asyncio.get_running_loop()
        try:
            scale_factor = await loop.run_in_executor(
                None,
                resize_to_min_side,
                local_path,
                local_path,
                self.intervals.normalized_width,
            )
            if self.intervals.cover_status_bar:
                await loop.run_in_executor(
                    None,
                    cover_status_bar,
                    local_path,
                    self.intervals.cover_status_bar_percentage,
                )
        except OSError as e:
            self.logger.error(f"截图处理失败: {e}")
            return None

        self.logger.debug(f"截图已保存: {local_path}")
        return Screenshot(path=str(local_path), scale_factor=scale_factor)
