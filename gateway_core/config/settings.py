"""配置管理模块。

支持从 .env、config.yaml 以及环境变量加载配置。
优先级：初始化参数 > 环境变量 > .env > config.yaml。
"""

import os
import warnings
from pathlib import Path
from typing import Any, Dict

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_config_from_yaml() -> Dict[str, Any]:
    """从 config.yaml 加载配置（若存在）。"""
    candidates = []
    explicit = os.getenv("GATEWAY_CONFIG_FILE")
    if explicit:
        candidates.append(Path(explicit).expanduser())
    candidates.extend([
        Path.cwd() / "config.yaml",
        Path(__file__).resolve().parents[2] / "config.yaml",
    ])

    seen: set[Path] = set()
    for path in candidates:
        if not path or path in seen:
            continue
        seen.add(path)
        try:
            if path.exists():
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
                if isinstance(data, dict):
                    return data
                warnings.warn(f"Config file {path} is not a mapping, ignored")
        except (OSError, yaml.YAMLError) as exc:
            warnings.warn(f"Failed to read config file {path}: {exc}")
    return {}


class GatewaySettings(BaseSettings):
    """网关配置（使用 Pydantic）。"""

    # ---- AI 引擎（上游）相关配置 ----
    ai_engine_url: str = Field(
        default="http://localhost:8001",
        description="AI 引擎服务的基础URL",
    )
    ai_request_timeout: float = Field(default=30.0, ge=1.0, description="普通请求超时时间（秒）")
    ai_health_timeout: float = Field(default=3.0, gt=0.0, description="健康检查超时时间（秒）")
    health_check_interval: float = Field(
        default=0.0,
        ge=0.0,
        description="后台健康检查间隔（秒），0 表示仅按需探测",
    )

    # ---- 存储与日志 ----
    storage_root: str = Field(default=".storage", description="存储根目录")
    log_dir: str = Field(default="logs", description="日志目录")
    log_level: str = Field(default="INFO", description="日志级别")
    log_redact_content: bool = Field(default=False, description="是否脱敏日志内容")

    # ---- Mock 引擎服务 ----
    engine_host: str = Field(default="0.0.0.0", description="Mock 引擎监听地址")
    engine_port: int = Field(default=8001, ge=1, le=65535, description="Mock 引擎监听端口")
    engine_service_name: str = Field(default="zenai-ai-engine", description="健康检查中返回的服务名")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @staticmethod
    def _config_source() -> Dict[str, Any]:
        return _load_config_from_yaml()

    @field_validator("ai_engine_url")
    @classmethod
    def validate_engine_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("ai_engine_url must start with http:// or https://")
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._config_source,
            file_secret_settings,
        )


settings = GatewaySettings()

# 类型别名，让外部代码可以使用 Settings 类型
Settings = GatewaySettings
