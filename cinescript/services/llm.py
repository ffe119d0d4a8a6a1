from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Any, Protocol

from cinescript.config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class LLMResponse:
    text: str
    raw: Any


class LLMServiceProtocol(Protocol):
    async def generate(
        self,
        *,
        messages: list[dict[str, Any]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_output: bool = False,
        response_schema: Any | None = None,
    ) -> LLMResponse: ...


class LLMService:
    """Claude (Anthropic Messages API) 服务包装器。

    - 直接使用 `anthropic` SDK
    - 单次调用，不做重试：失败直接抛给调用方（生成网关负责转换为 GenerationFailure）
    - 支持多模态消息（base64 图片块）
    - Messages API 没有结构化输出参数，`response_schema` 被忽略，结构由 prompt 和网关校验保证
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Any | None = None
        self._anthropic: Any | None = None

    def _import_anthropic(self) -> Any:
        if self._anthropic is not None:
            return self._anthropic
        try:
            import anthropic  # type: ignore
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "Missing dependency `anthropic`. Install: `pip install anthropic` "
                "or `pip install -e .`."
            ) from exc
        self._anthropic = anthropic
        return anthropic

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        anthropic = self._import_anthropic()

        api_key = self.settings.anthropic_api_key or self.settings.anthropic_auth_token
        if not api_key:
            raise ValueError("Anthropic credentials missing: set `anthropic_api_key` or `anthropic_auth_token`.")

        default_headers: dict[str, str] = {}
        if self.settings.anthropic_auth_token:
            # 兼容一些中转站使用 Bearer Token 的鉴权方式
            default_headers["Authorization"] = f"Bearer {self.settings.anthropic_auth_token}"

        kwargs: dict[str, Any] = {
            "api_key": api_key,
            "timeout": self.settings.request_timeout_s,
            # 生成请求是单次调用，SDK 也不能自动重试
            "max_retries": 0,
        }
        if self.settings.anthropic_base_url:
            kwargs["base_url"] = self.settings.anthropic_base_url
        if default_headers:
            kwargs["default_headers"] = default_headers

        self._client = anthropic.AsyncAnthropic(**kwargs)
        return self._client

    def _parse_message(self, message: Any) -> LLMResponse:
        text_parts: list[str] = []
        for block in getattr(message, "content", []) or []:
            if getattr(block, "type", None) == "text":
                text_parts.append(getattr(block, "text", ""))
        return LLMResponse(text="".join(text_parts), raw=message)

    async def generate(
        self,
        *,
        messages: list[dict[str, Any]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_output: bool = False,
        response_schema: Any | None = None,
    ) -> LLMResponse:
        client = self._get_client()

        payload: dict[str, Any] = {
            "model": model or self.settings.anthropic_model,
            "max_tokens": max_tokens or self.settings.generation_max_tokens,
            "messages": messages,
        }
        if system is not None:
            payload["system"] = system
        if temperature is not None:
            # Anthropic 的 temperature 上限为 1.0
            payload["temperature"] = min(temperature, 1.0)

        logger.debug(f"Anthropic request: model={payload['model']}, max_tokens={payload['max_tokens']}")
        message = await client.messages.create(**payload)
        return self._parse_message(message)


class GeminiLLMService:
    """Google Gemini 服务包装器（google-genai SDK）。

    接收与 `LLMService` 相同的 Anthropic 形式消息，内部转换为 Gemini 的 Content/Part。
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client: Any | None = None
        self._genai: Any | None = None

    def _import_genai(self) -> Any:
        if self._genai is not None:
            return self._genai
        try:
            from google import genai  # type: ignore
        except ModuleNotFoundError as exc:  # pragma: no cover
            raise RuntimeError(
                "Missing dependency `google-genai`. Install: `pip install google-genai` "
                "or `pip install -e .`."
            ) from exc
        self._genai = genai
        return genai

    def _get_client(self) -> Any:
        if self._client is not None:
            return self._client

        genai = self._import_genai()
        if not self.settings.gemini_api_key:
            raise ValueError("Gemini credentials missing: set `gemini_api_key`.")

        self._client = genai.Client(
            api_key=self.settings.gemini_api_key,
            http_options=genai.types.HttpOptions(timeout=int(self.settings.request_timeout_s * 1000)),
        )
        return self._client

    def _to_contents(self, messages: list[dict[str, Any]]) -> list[Any]:
        types = self._import_genai().types
        contents: list[Any] = []
        for msg in messages:
            content = msg.get("content")
            blocks = [{"type": "text", "text": content}] if isinstance(content, str) else content or []
            parts: list[Any] = []
            for block in blocks:
                block_type = block.get("type")
                if block_type == "text":
                    parts.append(types.Part.from_text(text=block["text"]))
                elif block_type == "image":
                    source = block["source"]
                    parts.append(
                        types.Part.from_bytes(
                            data=base64.b64decode(source["data"]),
                            mime_type=source["media_type"],
                        )
                    )
            role = "model" if msg.get("role") == "assistant" else "user"
            contents.append(types.Content(role=role, parts=parts))
        return contents

    async def generate(
        self,
        *,
        messages: list[dict[str, Any]],
        system: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        json_output: bool = False,
        response_schema: Any | None = None,
    ) -> LLMResponse:
        client = self._get_client()
        types = self._import_genai().types

        config_kwargs: dict[str, Any] = {
            "max_output_tokens": max_tokens or self.settings.generation_max_tokens,
        }
        if system is not None:
            config_kwargs["system_instruction"] = system
        if temperature is not None:
            config_kwargs["temperature"] = temperature
        if json_output:
            config_kwargs["response_mime_type"] = "application/json"
            if response_schema is not None:
                # pydantic 模型由 SDK 转换为 Gemini schema，生成阶段即约束字段
                config_kwargs["response_schema"] = response_schema

        model_name = model or self.settings.gemini_model
        logger.debug(f"Gemini request: model={model_name}, json_output={json_output}")
        response = await asyncio.to_thread(
            client.models.generate_content,
            model=model_name,
            contents=self._to_contents(messages),
            config=types.GenerateContentConfig(**config_kwargs),
        )
        return LLMResponse(text=response.text or "", raw=response)


def create_llm_service(settings: Settings) -> LLMServiceProtocol:
    provider = settings.llm_provider.lower()
    if provider == "anthropic":
        return LLMService(settings)
    if provider == "gemini":
        return GeminiLLMService(settings)
    raise ValueError(f"Unknown llm_provider: {settings.llm_provider}")
