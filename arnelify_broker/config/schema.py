"""
配置数据模型定义 (config/schema.py)
=================================
本模块使用 Pydantic 定义 arnelify-broker 的配置结构。
所有配置项都有默认值，用户只需在 config.json 中覆盖需要修改的部分。

整体配置结构（树形）：
Config (根配置)
├── broker   - 代理核心配置（编解码器、传输层、调用截止时间）
└── logging  - 日志配置（级别）

对于 Java 开发者：
- Pydantic 的 BaseModel 类似于 Java 中的 POJO/DTO，但自带字段验证功能
- BaseSettings 类似于 Spring 的 @ConfigurationProperties，额外支持从环境变量读取配置
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource


class BrokerConfig(BaseModel):
    """
    代理核心配置。

    - codec: 信封编解码器名称，"json"（可读文本）或 "base64"（不透明字符串）
    - transport: 进程内传输层，"local"（异步队列 + 后台分发）或 "direct"（直接调用）
    - call_timeout: 调用截止时间（秒）。None 表示无限等待，与原始行为一致
    """
    codec: Literal["json", "base64"] = "json"  # 编解码器名称
    transport: Literal["local", "direct"] = "local"  # 传输层名称
    call_timeout: float | None = None  # 调用截止时间（秒），None 表示不设上限

    @field_validator("call_timeout")
    @classmethod
    def _positive_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("call_timeout must be positive")
        return v


class LoggingConfig(BaseModel):
    """日志配置。level 取 loguru 的级别名（DEBUG/INFO/WARNING/ERROR/CRITICAL）。"""
    level: str = "INFO"


class Config(BaseSettings):
    """
    arnelify-broker 根配置类。

    继承自 Pydantic 的 BaseSettings，除了支持从 JSON 文件加载外，
    还支持从环境变量读取配置：
    - 环境变量前缀: ARNELIFY_BROKER_
    - 嵌套分隔符: __ (双下划线)
    - 示例: ARNELIFY_BROKER_BROKER__CODEC=base64 可覆盖 broker.codec
    - 环境变量的优先级高于 config.json
    """
    broker: BrokerConfig = Field(default_factory=BrokerConfig)  # 代理核心配置
    logging: LoggingConfig = Field(default_factory=LoggingConfig)  # 日志配置

    # Pydantic Settings 配置：支持 ARNELIFY_BROKER_ 前缀的环境变量，嵌套用 __ 分隔
    model_config = ConfigDict(
        env_prefix="ARNELIFY_BROKER_",
        env_nested_delimiter="__"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """
        调整配置来源的优先级：环境变量 > 构造参数（即 config.json 的内容）。

        load_config() 把文件内容作为构造参数传入，因此部署时可以用环境变量
        临时覆盖文件中的个别字段，其余字段仍以文件为准。
        """
        return env_settings, init_settings, dotenv_settings, file_secret_settings
