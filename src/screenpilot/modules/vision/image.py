"""
截图处理：缩放、状态栏遮挡、Base64 编码
"""
from __future__ import annotations

import base64
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw

from ...core.logger import logger


def resize_to_min_side(input_path, output_path, min_side: int) -> float:
    """按短边缩放到 min_side，返回缩放比例 min_side / 原短边。

    视觉服务返回的坐标基于缩放后的图像，执行动作时除以该比例还原为设备像素。
    """
    with Image.open(input_path) as img:
        width, height = img.size
        scale_factor = min_side / min(width, height)
        new_size = (round(width * scale_factor), round(height * scale_factor))
        resized = img.convert("RGBA").resize(new_size, Image.LANCZOS)
    resized.save(output_path, format="PNG")
    logger.debug(f"截图缩放 {width}x{height} -> {new_size[0]}x{new_size[1]}, scale={scale_factor:.4f}")
    return scale_factor


def cover_status_bar(image_path, percentage: float = 0.04) -> None:
    """用黑色矩形遮挡顶部状态栏区域"""
    with Image.open(image_path) as img:
        img.load()
        covered = img.copy()
    height_to_cover = int(covered.height * percentage)
    if height_to_cover > 0:
        draw = ImageDraw.Draw(covered)
        draw.rectangle((0, 0, covered.width, height_to_cover - 1), fill="black")
    covered.save(image_path, format="PNG")


def encode_image_base64(image_path) -> Optional[str]:
    """读取图片文件并编码为 Base64；文件缺失或读取失败返回 None"""
    path = Path(image_path)
    if not path.exists():
        logger.error(f"图片文件不存在: {path}")
        return None
    try:
        return base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as e:
        logger.error(f"图片编码失败: {path}: {e}")
        return None
