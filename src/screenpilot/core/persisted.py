"""
持久化配置（JSON 文件）

config/credentials.json  视觉服务地址与密钥
config/intervals.json    各类等待间隔（毫秒）与截图参数

文件不存在时以默认值创建；引擎只读取，不回写。
"""
from __future__ import annotations

from pathlib import Path
from typing import Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .logger import logger

M = TypeVar("M", bound=BaseModel)


class Credentials(BaseModel):
    """视觉服务凭据"""

    lambda_url: str = Field(default="")
    api_key: str = Field(default="")
    client_key: str = Field(default="")

    model_config = ConfigDict(extra="ignore")


class Intervals(BaseModel):
    """等待间隔与截图参数"""

    long_delay: int = Field(default=3000, ge=0)
    default_action_delay: int = Field(default=1000, ge=0)
    short_delay: int = Field(default=500, ge=0)
    typing_delay: int = Field(default=100, ge=0)

    cover_status_bar: bool = True
    cover_status_bar_percentage: float = Field(default=0.04, ge=0.0, le=1.0)
    normalized_width: int = Field(default=768, gt=0)

    max_repeats: int = Field(default=10, gt=0)

    model_config = ConfigDict(extra="ignore")


class PersistedConfigError(RuntimeError):
    """持久化配置文件无法解析"""


def load_persisted(model: Type[M], path) -> M:
    """读取 JSON 配置；不存在或为空时写入默认值。"""
    path = Path(path)
    if not path.exists() or not path.read_text(encoding="utf-8").strip():
        instance = model()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(instance.model_dump_json(indent=2), encoding="utf-8")
        logger.info(f"已创建默认配置: {path}")
        return instance

    try:
        return model.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise PersistedConfigError(f"配置文件格式错误: {path}: {e}") from e


def initialize_workspace(working_dir) -> Path:
    """准备工作目录结构，返回其路径"""
    root = Path(working_dir)
    for name in ("images", "logs", "config"):
        (root / name).mkdir(parents=True, exist_ok=True)

    load_persisted(Credentials, root / "config" / "credentials.json")
    load_persisted(Intervals, root / "config" / "intervals.json")

    script = root / "script.txt"
    if not script.exists():
        script.touch()
    return root
