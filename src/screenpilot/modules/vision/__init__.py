"""
视觉服务模块
"""
from .client import (
    StepRequest,
    SummaryResponse,
    VisionApiError,
    VisionClient,
    VisionResponse,
)
from .image import cover_status_bar, encode_image_base64, resize_to_min_side

__all__ = [
    "StepRequest",
    "SummaryResponse",
    "VisionApiError",
    "VisionClient",
    "VisionResponse",
    "cover_status_bar",
    "encode_image_base64",
    "resize_to_min_side",
]
