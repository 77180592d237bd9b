"""
主程序入口

    python -m screenpilot [working_dir]

工作目录下需要：
    script.txt               测试脚本
    macros.txt               宏定义（可选）
    config/credentials.json  视觉服务凭据
    config/intervals.json    等待间隔
    *.apk                    install 命令使用的安装包
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

from .core.config import Settings, settings as default_settings
from .core.errors import CompileError
from .core.logger import add_session_sink, logger, setup_logger
from .core.persisted import (
    Credentials,
    Intervals,
    PersistedConfigError,
    initialize_workspace,
    load_persisted,
)
from .modules.emu.adb import AdbDevice
from .modules.executor import TaskRunner
from .modules.script import compile_file
from .modules.vision import VisionClient


async def run_script(settings: Settings) -> bool:
    """编译并执行工作目录中的脚本，返回是否成功"""
    add_session_sink(settings.log_path)

    try:
        root = initialize_workspace(settings.working_path)
        credentials = load_persisted(Credentials, settings.config_path / "credentials.json")
        intervals = load_persisted(Intervals, settings.config_path / "intervals.json")
    except PersistedConfigError as e:
        logger.error(str(e))
        return False

    device = AdbDevice(
        root,
        intervals=intervals,
        adb_path=settings.adb_path,
        serial=settings.device_serial,
        timeout=settings.adb_timeout_sec,
    )
    logger.info("ADB 已初始化")

    vision = VisionClient(
        credentials.lambda_url,
        api_key=credentials.api_key,
        client_key=credentials.client_key,
        timeout=settings.vision_timeout_sec,
    )
    logger.info("视觉服务已初始化")

    try:
        tasks = compile_file(
            settings.script_path,
            settings.macros_path,
            max_repeats=intervals.max_repeats,
        )
    except CompileError as e:
        logger.error(f"脚本编译失败: {e}")
        return False

    script_text = settings.script_path.read_text(encoding="utf-8")
    runner = TaskRunner(device, vision, intervals)
    return await runner.run(tasks, script_text)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenpilot",
        description="脚本驱动 + 视觉校验的移动端 UI 自动化测试",
    )
    parser.add_argument("working_dir", nargs="?", help="工作目录（默认取 SCREENPILOT_WORKING_DIR）")
    parser.add_argument("--serial", help="adb 设备序列号")
    parser.add_argument("--adb-path", help="adb 可执行文件路径")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    overrides = {}
    if args.working_dir:
        overrides["working_dir"] = args.working_dir
    if args.serial:
        overrides["device_serial"] = args.serial
    if args.adb_path:
        overrides["adb_path"] = args.adb_path
    settings = default_settings.model_copy(update=overrides)

    setup_logger()
    logger.info(f"工作目录: {settings.working_path.resolve()}")
    ok = asyncio.run(run_script(settings))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
