"""
时间工具模块 - 统一的等待入口
"""
import asyncio


async def sleep_ms(milliseconds: float) -> None:
    """等待指定毫秒数；非正数立即返回"""
    if milliseconds <= 0:
        return
    await asyncio.sleep(milliseconds / 1000.0)
