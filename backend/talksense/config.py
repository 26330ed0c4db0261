"""应用配置，YAML + pydantic-settings，环境变量优先覆盖。"""

import tempfile
from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

PACKAGE_DIR = Path(__file__).resolve().parent
BASE_DIR = PACKAGE_DIR.parent

_CONFIG_PATH = BASE_DIR / "config" / "config.yaml"


class RecognitionConfig(BaseModel):
    """Speech-to-Text 请求参数，与转码输出格式保持一致。"""

    language_code: str = Field(default="en-US", description="识别语种")
    sample_rate_hertz: int = Field(default=48000, description="FLAC 采样率")
    enable_automatic_punctuation: bool = Field(default=True, description="自动标点")


class Settings(BaseSettings):
    """应用配置，优先级：环境变量 > config.yaml > 默认值。"""

    model_config = SettingsConfigDict(extra="ignore", env_nested_delimiter="__")

    ffmpeg_path: str = Field(
        default="ffmpeg",
        validation_alias=AliasChoices("FFMPEG_PATH", "ffmpeg_path"),
    )
    google_credentials: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GOOGLE_APPLICATION_CREDENTIALS", "google_credentials"),
        description="service account 密钥文件路径，为空时使用 ADC",
    )
    upload_dir: Path = Field(default=Path(tempfile.gettempdir()) / "talksense")
    static_dir: Path = Field(default=PACKAGE_DIR / "static")
    keep_failed_uploads: bool = Field(
        default=False, description="转码失败时保留上传文件用于排查"
    )
    cleanup_orphans_on_startup: bool = Field(default=True)
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=_CONFIG_PATH, yaml_file_encoding="utf-8"),
        )


@lru_cache
def get_settings() -> Settings:
    """进程级配置单例，测试中用 dependency_overrides 或 cache_clear 替换。"""
    return Settings()
