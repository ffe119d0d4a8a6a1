from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Note: do not hardcode env_file here; tests instantiate Settings() directly and
    # should not implicitly read the repo's .env. Runtime uses get_settings().
    model_config = SettingsConfigDict(extra="ignore")

    app_name: str = "cinescript-backend"
    environment: str = Field(default="dev", description="dev|staging|prod")
    log_level: str = Field(default="INFO", description="cinescript 日志级别")

    api_v1_prefix: str = "/api/v1"
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    # ============================================
    # LLM 服务选择
    # ============================================
    llm_provider: str = Field(
        default="gemini",
        description="生成服务提供商：gemini（Google GenAI）或 anthropic（Anthropic Messages API）",
    )

    # ============================================
    # Anthropic 形式接口
    # ============================================
    anthropic_api_key: str | None = None
    anthropic_auth_token: str | None = Field(
        default=None,
        description="中转站 Token（Bearer 鉴权）",
    )
    anthropic_base_url: str | None = Field(
        default=None,
        description="Anthropic 中转站/代理地址，例如 https://your-proxy.example.com",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-5-20250929",
        description="Claude 模型名称",
    )

    # ============================================
    # Google Gemini（多模态，支持参考图）
    # ============================================
    gemini_api_key: str | None = Field(
        default=None,
        description="Gemini API Key（GEMINI_API_KEY）",
    )
    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Gemini 模型名称",
    )

    # ============================================
    # 生成参数
    # ============================================
    generation_temperature: float = Field(default=0.9, ge=0.0, le=2.0)
    generation_max_tokens: int = Field(
        default=8192,
        description="单次生成的最大输出 token（整本剧本需要较大值）",
    )

    request_timeout_s: float = 120.0

    max_sessions: int = Field(default=200, ge=1, description="进程内保留的工作区上限（超出时淘汰最久未访问的空闲工作区）")

    def llm_model_name(self) -> str:
        """当前提供商使用的模型名称"""
        if self.llm_provider == "anthropic":
            return self.anthropic_model
        return self.gemini_model


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=".env", _env_file_encoding="utf-8")
