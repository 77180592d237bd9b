"""
日志配置模块
"""
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from loguru import logger

from .config import settings

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} - {message}"

_configured = False
_session_sink_id: Optional[int] = None


def _console_stream():
    """返回可用的控制台流；打包为窗口程序时 stdout/stderr 可能为 None。"""
    for stream in (sys.stdout, sys.__stdout__, sys.stderr, sys.__stderr__):
        if stream is not None:
            return stream
    return None


def setup_logger(force: bool = False):
    """配置日志系统（控制台输出）"""
    global _configured, _session_sink_id
    if _configured and not force:
        return logger

    # 移除默认处理器及此前添加的会话文件
    logger.remove()
    _session_sink_id = None

    stream = _console_stream()
    if settings.log_console_enabled and stream is not None:
        logger.add(stream, level=settings.log_level, format=_CONSOLE_FORMAT)

    _configured = True
    return logger


def add_session_sink(log_dir) -> Path:
    """为本次运行添加会话日志文件，返回文件路径。

    会话文件记录 DEBUG 及以上的全部信息（原始视觉响应、设备命令输出、上下文转储），
    控制台只显示 settings.log_level 以上的进度信息。
    """
    global _session_sink_id
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    if _session_sink_id is not None:
        logger.remove(_session_sink_id)

    path = log_dir / f"session-{datetime.now():%Y%m%d-%H%M%S}.log"
    _session_sink_id = logger.add(
        path,
        level="DEBUG",
        format=_FILE_FORMAT,
        encoding="utf-8",
    )
    logger.info(f"详细日志: {path}")
    return path


# 初始化日志系统
logger = setup_logger()
