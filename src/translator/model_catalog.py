"""上游模型列表客户端."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

import httpx

from config.logging_config import get_logger
from config.settings import Settings, settings as default_settings
from models.models import Credentials, ModelDescriptor
from translator.endpoint_resolver import EndpointKind, resolve
from translator.errors import (
    ClassifiedError,
    ErrorKind,
    ResponseFormatError,
    UnexpectedFormatError,
    UpstreamHTTPError,
    classify,
)
from translator.upstream_headers import models_headers

logger = get_logger(__name__)

# 上游不支持模型列表时使用的内置模型
FALLBACK_MODELS: Tuple[ModelDescriptor, ...] = (
    ModelDescriptor(id="gpt-3.5-turbo", owned_by="openai"),
    ModelDescriptor(id="gpt-4", owned_by="openai"),
    ModelDescriptor(id="gpt-4-turbo-preview", owned_by="openai"),
    ModelDescriptor(id="gpt-4o", owned_by="openai"),
)


@dataclass(frozen=True)
class ResponseShape:
    """一种可接受的模型列表响应结构."""

    name: str
    matches: Callable[[Any], bool]
    extract: Callable[[Any], list]


# 按优先级排列
RESPONSE_SHAPES: Tuple[ResponseShape, ...] = (
    ResponseShape(
        "data",
        lambda payload: isinstance(payload, dict)
        and isinstance(payload.get("data"), list),
        lambda payload: payload["data"],
    ),
    ResponseShape(
        "array",
        lambda payload: isinstance(payload, list),
        lambda payload: payload,
    ),
    ResponseShape(
        "models",
        lambda payload: isinstance(payload, dict)
        and isinstance(payload.get("models"), list),
        lambda payload: payload["models"],
    ),
)


@dataclass
class ModelCatalog:
    """模型列表结果；error 非空表示使用了内置模型."""

    models: List[ModelDescriptor] = field(default_factory=list)
    error: Optional[ClassifiedError] = None

    @property
    def is_fallback(self) -> bool:
        return self.error is not None


def match_shape(
    payload: Any, shapes: Sequence[ResponseShape] = RESPONSE_SHAPES
) -> Tuple[str, list]:
    """返回首个匹配的结构名称及其中的模型数组."""
    for shape in shapes:
        if shape.matches(payload):
            return shape.name, shape.extract(payload)
    if isinstance(payload, dict):
        keys = ", ".join(str(key) for key in payload.keys())
    else:
        keys = type(payload).__name__
    raise UnexpectedFormatError(
        f"Expected models array but got object with keys: {keys}"
    )


def parse_models(entries: Iterable[Any]) -> List[ModelDescriptor]:
    """将上游条目转换为按 id 排序、去重后的 ModelDescriptor 列表."""
    models = {}
    for entry in entries:
        if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
            logger.warning(f"跳过无法识别的模型条目: {str(entry)[:100]}")
            continue
        if entry["id"] in models:
            continue
        created = entry.get("created")
        owned_by = entry.get("owned_by")
        models[entry["id"]] = ModelDescriptor(
            id=entry["id"],
            object=str(entry.get("object") or "model"),
            created=created if isinstance(created, int) else None,
            owned_by=owned_by if isinstance(owned_by, str) else None,
        )
    return sorted(models.values(), key=lambda model: model.id)


class ModelCatalogClient:
    """调用上游 /models 接口，任何失败都回退到内置模型列表."""

    def __init__(
        self,
        fallback_models: Sequence[ModelDescriptor] = FALLBACK_MODELS,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.fallback_models = tuple(fallback_models)
        self.settings = settings or default_settings
        self.transport = transport

    def _fallback(self, error: ClassifiedError) -> ModelCatalog:
        return ModelCatalog(models=list(self.fallback_models), error=error)

    async def list_models(self, credentials: Credentials) -> ModelCatalog:
        """
        获取上游模型列表.

        Args:
            credentials: 用户提供的API Key与Base URL

        Returns:
            ModelCatalog，失败时包含内置模型及分类后的错误
        """
        api_key = (credentials.api_key or "").strip()
        if not api_key:
            return self._fallback(ClassifiedError(ErrorKind.MISSING_CREDENTIAL))

        url = resolve(
            credentials.base_url, EndpointKind.MODELS, self.settings.default_base_url
        )
        logger.info(f"获取模型列表: {url}")
        try:
            models = await self._fetch(url, api_key)
        except Exception as e:
            error = classify(e, EndpointKind.MODELS)
            logger.warning(
                f"获取模型列表失败，使用内置模型: {error.kind.value} ({str(e)[:200]})"
            )
            return self._fallback(error)

        logger.info(f"成功解析 {len(models)} 个模型")
        return ModelCatalog(models=models)

    async def _fetch(self, url: str, api_key: str) -> List[ModelDescriptor]:
        async with httpx.AsyncClient(
            transport=self.transport, timeout=self.settings.request_timeout
        ) as client:
            response = await client.get(url, headers=models_headers(api_key, self.settings))
            # 先按文本读取，便于检查非JSON的错误页面
            body = response.text
        logger.debug(f"响应状态: {response.status_code}, 内容: {body[:500]}")

        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, body)
        try:
            payload = json.loads(body)
        except ValueError:
            raise ResponseFormatError(f"Invalid JSON response: {body[:200]}")

        shape, entries = match_shape(payload)
        logger.debug(f"模型列表结构: {shape}, 数量: {len(entries)}")
        return parse_models(entries)
