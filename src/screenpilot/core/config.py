"""
核心配置模块
"""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """进程级配置（环境变量 / .env）"""

    # 工作目录：script.txt、macros.txt、config/、images/、logs/ 均位于此
    working_dir: str = Field(default="./dist")
    script_file: str = Field(default="script.txt")
    macros_file: str = Field(default="macros.txt")

    # 设备
    adb_path: str = Field(default="adb")
    device_serial: Optional[str] = Field(default=None)
    adb_timeout_sec: float = Field(default=60.0)

    # 视觉服务
    vision_timeout_sec: float = Field(default=60.0)

    # 日志
    log_level: str = Field(default="INFO")
    log_console_enabled: bool = Field(default=True)

    model_config = SettingsConfigDict(
        env_prefix="SCREENPILOT_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def working_path(self) -> Path:
        return Path(self.working_dir)

    @property
    def script_path(self) -> Path:
        return self.working_path / self.script_file

    @property
    def macros_path(self) -> Path:
        return self.working_path / self.macros_file

    @property
    def log_path(self) -> Path:
        return self.working_path / "logs"

    @property
    def images_path(self) -> Path:
        return self.working_path / "images"

    @property
    def config_path(self) -> Path:
        return self.working_path / "config"


# 全局配置实例
settings = Settings()
