"""上游调用错误分类.

模型列表和翻译两条调用链共用同一套分类规则：原始的传输、HTTP、解析
错误被映射为少量面向用户的错误类型，消息固定且不包含上游HTML页面。
"""

import json
import re
from enum import Enum
from typing import Optional

import httpx
import openai
from bs4 import BeautifulSoup

from translator.endpoint_resolver import EndpointKind

MAX_MESSAGE_LENGTH = 200

_HTML_DOCUMENT = re.compile(r"<!DOCTYPE html>.*?</html>", re.IGNORECASE | re.DOTALL)
_HTML_TAG = re.compile(r"</?[a-zA-Z!][^>]*>")
_HTTP_PREFIX = re.compile(r"^\s*HTTP \d{3}:\s*")
_UNREACHABLE_MARKERS = (
    "ECONNREFUSED",
    "ENOTFOUND",
    "Connection refused",
    "Name or service not known",
    "nodename nor servname",
    "getaddrinfo failed",
    "Temporary failure in name resolution",
)


class ErrorKind(str, Enum):
    """错误类型（封闭枚举）."""

    MISSING_CREDENTIAL = "MissingCredential"
    INVALID_INPUT = "InvalidInput"
    UNAUTHORIZED = "Unauthorized"
    FORBIDDEN = "Forbidden"
    ENDPOINT_BLOCKED = "EndpointBlocked"
    ENDPOINT_NOT_FOUND = "EndpointNotFound"
    RATE_LIMITED = "RateLimited"
    UNREACHABLE = "Unreachable"
    MODEL_UNAVAILABLE = "ModelUnavailable"
    BAD_RESPONSE_FORMAT = "BadResponseFormat"
    UNEXPECTED_FORMAT = "UnexpectedFormat"
    EMPTY_RESULT = "EmptyResult"
    NETWORK_ERROR = "NetworkError"
    UNKNOWN = "Unknown"


MESSAGES = {
    ErrorKind.MISSING_CREDENTIAL: "API key is required",
    ErrorKind.INVALID_INPUT: "Missing required parameters",
    ErrorKind.UNAUTHORIZED: "Invalid API key. Please check your API key.",
    ErrorKind.FORBIDDEN: (
        "Access denied. Please check your API key and endpoint configuration."
    ),
    ErrorKind.ENDPOINT_BLOCKED: (
        "API endpoint blocked by security service. Please check your Base URL "
        "or try using the official OpenAI endpoint."
    ),
    ErrorKind.RATE_LIMITED: "Rate limit exceeded. Please try again later.",
    ErrorKind.UNREACHABLE: "Cannot connect to API endpoint. Please check your Base URL.",
    ErrorKind.BAD_RESPONSE_FORMAT: (
        "Invalid response format. The endpoint may not be compatible with "
        "OpenAI API format."
    ),
    ErrorKind.UNEXPECTED_FORMAT: (
        "Unexpected response format. Expected a models array."
    ),
    ErrorKind.EMPTY_RESULT: "Failed to get translation",
    ErrorKind.NETWORK_ERROR: (
        "Network error. Please check your internet connection and API endpoint."
    ),
}

NOT_FOUND_MESSAGES = {
    EndpointKind.MODELS: (
        "Models endpoint not found. This API may not support model listing."
    ),
    EndpointKind.CHAT: (
        "API endpoint not found. Please check your Base URL configuration."
    ),
}

GENERIC_MESSAGES = {
    EndpointKind.MODELS: "Failed to fetch models",
    EndpointKind.CHAT: "Translation failed",
}


class ClassifiedError(Exception):
    """归一化后的错误，kind + 面向用户的消息."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None):
        self.kind = ErrorKind(kind)
        self.message = message or MESSAGES.get(self.kind, "Unknown error")
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ClassifiedError(kind={self.kind.value!r}, message={self.message!r})"


class UpstreamHTTPError(Exception):
    """上游返回非2xx状态码."""

    def __init__(self, status_code: int, body: str = ""):
        self.status_code = status_code
        self.body = body or ""
        super().__init__(f"HTTP {status_code}: {self.body}")


class ResponseFormatError(Exception):
    """上游响应不是合法JSON."""


class UnexpectedFormatError(Exception):
    """上游响应是JSON，但结构无法识别."""


def sanitize_message(message: str, limit: int = MAX_MESSAGE_LENGTH) -> str:
    """
    清理错误消息以便展示.

    去掉内嵌的HTML文档与残留标签、开头的 ``HTTP ddd:`` 前缀，压缩空白，
    并截断到 ``limit`` 个字符。
    """
    text = _HTML_DOCUMENT.sub("", message or "")
    if _HTML_TAG.search(text):
        text = BeautifulSoup(text, "html.parser").get_text(" ")
    text = _HTTP_PREFIX.sub("", text)
    text = " ".join(text.split())
    return text[:limit]


def _status_code(raw: BaseException) -> Optional[int]:
    if isinstance(raw, UpstreamHTTPError):
        return raw.status_code
    if isinstance(raw, openai.APIStatusError):
        return raw.status_code
    if isinstance(raw, httpx.HTTPStatusError):
        return raw.response.status_code
    return None


def _raw_text(raw: BaseException) -> str:
    if isinstance(raw, UpstreamHTTPError):
        return f"{raw.body} {raw}"
    if isinstance(raw, openai.APIStatusError):
        return f"{raw.message} {raw.body}"
    return str(raw)


def _is_unreachable(raw: BaseException) -> bool:
    if isinstance(raw, httpx.ConnectError):
        return True
    if isinstance(raw, openai.APIConnectionError) and isinstance(
        raw.__cause__, httpx.ConnectError
    ):
        return True
    message = str(raw)
    return any(marker in message for marker in _UNREACHABLE_MARKERS)


def _is_network_error(raw: BaseException) -> bool:
    if isinstance(raw, (httpx.TransportError, openai.APIConnectionError)):
        return True
    return "fetch" in str(raw).lower()


def classify(
    raw: BaseException,
    kind: EndpointKind = EndpointKind.CHAT,
    model: Optional[str] = None,
) -> ClassifiedError:
    """
    将原始异常映射为 ClassifiedError，按顺序匹配，首个命中的规则生效.

    Args:
        raw: 任意调用链抛出的异常
        kind: 出错的操作，用于404和兜底消息
        model: 请求使用的模型，用于 ModelUnavailable 消息

    Returns:
        ClassifiedError 实例，不做任何I/O
    """
    if isinstance(raw, ClassifiedError):
        return raw
    kind = EndpointKind(kind)

    status = _status_code(raw)
    if status == 401:
        return ClassifiedError(ErrorKind.UNAUTHORIZED)
    if status == 403:
        text = _raw_text(raw).lower()
        if "cloudflare" in text or "blocked" in text:
            return ClassifiedError(ErrorKind.ENDPOINT_BLOCKED)
        return ClassifiedError(ErrorKind.FORBIDDEN)
    if status == 404:
        return ClassifiedError(ErrorKind.ENDPOINT_NOT_FOUND, NOT_FOUND_MESSAGES[kind])
    if status == 429:
        return ClassifiedError(ErrorKind.RATE_LIMITED)

    if _is_unreachable(raw):
        return ClassifiedError(ErrorKind.UNREACHABLE)

    if isinstance(raw, (ResponseFormatError, json.JSONDecodeError)):
        return ClassifiedError(ErrorKind.BAD_RESPONSE_FORMAT)
    if isinstance(raw, UnexpectedFormatError):
        return ClassifiedError(ErrorKind.UNEXPECTED_FORMAT)

    message = sanitize_message(str(raw))
    if "model" in message.lower():
        subject = f'Model "{model}"' if model else "The requested model"
        return ClassifiedError(
            ErrorKind.MODEL_UNAVAILABLE,
            f"{subject} not available. Please check your model selection "
            "or try a different model.",
        )

    if _is_network_error(raw):
        return ClassifiedError(ErrorKind.NETWORK_ERROR)

    return ClassifiedError(ErrorKind.UNKNOWN, message or GENERIC_MESSAGES[kind])
