"""上游OpenAI兼容接口地址解析."""

from enum import Enum
from typing import Optional

from config.settings import settings

DEFAULT_BASE_URL = "https://api.openai.com/v1"


class EndpointKind(str, Enum):
    """上游操作类型."""

    MODELS = "models"
    CHAT = "chat"


def normalize_base_url(base_url: Optional[str], default: Optional[str] = None) -> str:
    """补全协议并去掉结尾斜杠，空值时使用默认地址."""
    cleaned = (base_url or "").strip()
    if not cleaned:
        cleaned = (default or settings.default_base_url or DEFAULT_BASE_URL).strip()
    if not cleaned.startswith("http"):
        cleaned = f"https://{cleaned}"
    return cleaned.rstrip("/")


def resolve(
    base_url: Optional[str], kind: EndpointKind, default: Optional[str] = None
) -> str:
    """
    生成上游操作的完整URL.

    Args:
        base_url: 用户填写的Base URL，可为空、可缺少协议或版本号
        kind: 目标操作，models 或 chat
        default: 覆盖配置中的默认Base URL

    Returns:
        绝对URL字符串，不做任何网络访问
    """
    base = normalize_base_url(base_url, default)
    if EndpointKind(kind) is EndpointKind.MODELS:
        # 已带 /models 或 /v1/models 时原样使用
        if "/models" in base:
            return base
        if base.endswith("/v1"):
            return f"{base}/models"
        return f"{base}/v1/models"
    # chat 路径假定Base URL已包含所需的版本段
    return f"{base}/chat/completions"
