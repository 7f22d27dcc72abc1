"""上游请求头构造.

部分第三方中转站前置了WAF，会拦截明显来自服务端的请求。这里按用途
生成接近浏览器的请求头，可通过 ``browser_headers_enabled`` 关闭。
"""

from typing import Dict, Optional

from config.settings import Settings, settings as default_settings


def _browser_headers(settings: Settings) -> Dict[str, str]:
    return {
        "User-Agent": settings.browser_user_agent,
        "Accept-Language": settings.browser_accept_language,
        "Cache-Control": "no-cache",
        "Pragma": "no-cache",
        "Sec-Fetch-Dest": "empty",
        "Sec-Fetch-Mode": "cors",
    }


def auth_headers(api_key: str) -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }


def models_headers(api_key: str, settings: Optional[Settings] = None) -> Dict[str, str]:
    """获取模型列表时使用的请求头."""
    settings = settings or default_settings
    headers = auth_headers(api_key)
    headers["Accept"] = "application/json, */*"
    if settings.browser_headers_enabled:
        headers.update(_browser_headers(settings))
        headers["Accept-Encoding"] = "gzip, deflate"
        headers["Sec-Fetch-Site"] = "none"
    return headers


def sdk_default_headers(settings: Optional[Settings] = None) -> Dict[str, str]:
    """OpenAI SDK客户端的默认请求头，鉴权由SDK自行添加."""
    settings = settings or default_settings
    if not settings.browser_headers_enabled:
        return {}
    headers = _browser_headers(settings)
    headers["Accept"] = "*/*"
    headers["Sec-Fetch-Site"] = "cross-site"
    return headers


def chat_headers(api_key: str, settings: Optional[Settings] = None) -> Dict[str, str]:
    """直接POST chat/completions 时使用的请求头."""
    settings = settings or default_settings
    headers = auth_headers(api_key)
    headers["Accept"] = "*/*"
    if settings.browser_headers_enabled:
        headers.update(_browser_headers(settings))
        headers["Origin"] = "https://chat.openai.com"
        headers["Referer"] = "https://chat.openai.com/"
        headers["Sec-Fetch-Site"] = "same-site"
    return headers
