"""OpenAI兼容接口翻译客户端.

先通过 AsyncOpenAI SDK 调用 chat/completions，失败后用 httpx 直接POST
同一接口一次。两条路径顺序执行，不做重试循环。
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from openai import AsyncOpenAI

from config.logging_config import get_logger
from config.settings import Settings, settings as default_settings
from models.models import Credentials
from translator.endpoint_resolver import EndpointKind, normalize_base_url, resolve
from translator.errors import (
    ClassifiedError,
    ErrorKind,
    ResponseFormatError,
    UpstreamHTTPError,
    classify,
)
from translator.upstream_headers import chat_headers, sdk_default_headers

logger = get_logger(__name__)

T = TypeVar("T")

PROMPT_TEMPLATE = (
    "Please translate the following text from {source_lang} to {target_lang}. "
    "Only return the translated text without any additional explanation or "
    "formatting:\n\n{text}"
)


@dataclass
class TranslationRequest:
    """翻译请求."""

    text: str
    source_lang: str
    target_lang: str
    model: Optional[str] = None


@dataclass
class TranslationResult:
    """翻译结果."""

    translated_text: str


def build_prompt(text: str, source_lang: str, target_lang: str) -> str:
    return PROMPT_TEMPLATE.format(
        source_lang=source_lang, target_lang=target_lang, text=text
    )


def extract_content(completion: Any) -> str:
    """取出 choices[0].message.content 并去掉首尾空白，缺失时返回空串."""
    try:
        content = completion["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content.strip() if isinstance(content, str) else ""


async def with_fallback(
    primary: Callable[[], Awaitable[T]], fallback: Callable[[], Awaitable[T]]
) -> T:
    """执行 primary，失败时执行一次 fallback；fallback 的异常直接抛出."""
    try:
        return await primary()
    except Exception as e:
        logger.warning(f"主调用路径失败，改用备用路径: {type(e).__name__}: {e}")
        return await fallback()


class TranslationClient:
    """翻译客户端."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or default_settings
        self.transport = transport

    def _validate(self, request: TranslationRequest, credentials: Credentials) -> None:
        required = (request.text, request.source_lang, request.target_lang)
        if any(not value or not value.strip() for value in required):
            raise ClassifiedError(ErrorKind.INVALID_INPUT)
        if not credentials.api_key or not credentials.api_key.strip():
            raise ClassifiedError(ErrorKind.MISSING_CREDENTIAL)

    def build_payload(self, request: TranslationRequest, model: str) -> Dict[str, Any]:
        prompt = build_prompt(request.text, request.source_lang, request.target_lang)
        return {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.settings.temperature,
            "max_tokens": self.settings.max_tokens,
        }

    async def translate(
        self, request: TranslationRequest, credentials: Credentials
    ) -> TranslationResult:
        """
        翻译一段文本.

        Args:
            request: 待翻译文本及源语言、目标语言、模型
            credentials: 用户提供的API Key与Base URL

        Returns:
            TranslationResult

        Raises:
            ClassifiedError: 参数缺失，或两条调用路径都失败
        """
        self._validate(request, credentials)
        api_key = credentials.api_key.strip()
        model = request.model or self.settings.default_model
        payload = self.build_payload(request, model)
        base_url = normalize_base_url(
            credentials.base_url, self.settings.default_base_url
        )
        chat_url = resolve(base_url, EndpointKind.CHAT)
        logger.info(
            f"翻译请求: {request.source_lang} -> {request.target_lang}, 模型: {model}"
        )

        try:
            async with httpx.AsyncClient(
                transport=self.transport, timeout=self.settings.request_timeout
            ) as http:
                completion = await with_fallback(
                    lambda: self._create_with_sdk(http, base_url, api_key, payload),
                    lambda: self._post_raw(http, chat_url, api_key, payload),
                )
        except Exception as e:
            error = classify(e, EndpointKind.CHAT, model)
            logger.error(f"翻译失败: {error.kind.value} ({str(e)[:200]})")
            raise error from e

        translated = extract_content(completion)
        if not translated:
            raise ClassifiedError(ErrorKind.EMPTY_RESULT)
        return TranslationResult(translated_text=translated)

    async def check_connection(
        self, credentials: Credentials, model: Optional[str] = None
    ) -> TranslationResult:
        """用一次简短翻译验证接口配置是否可用."""
        return await self.translate(
            TranslationRequest(
                text="Hello", source_lang="en", target_lang="zh", model=model
            ),
            credentials,
        )

    async def _create_with_sdk(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        payload: Dict[str, Any],
    ) -> Dict[str, Any]:
        logger.debug(f"OpenAI SDK 请求: {base_url}")
        client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            default_headers=sdk_default_headers(self.settings),
            timeout=self.settings.request_timeout,
            max_retries=0,
            http_client=http,
        )
        completion = await client.chat.completions.create(**payload)
        return completion.model_dump()

    async def _post_raw(
        self,
        http: httpx.AsyncClient,
        url: str,
        api_key: str,
        payload: Dict[str, Any],
    ) -> Any:
        logger.info(f"直接请求: {url}")
        response = await http.post(
            url, headers=chat_headers(api_key, self.settings), json=payload
        )
        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, response.text)
        try:
            return response.json()
        except ValueError:
            raise ResponseFormatError(f"Invalid JSON response: {response.text[:200]}")
