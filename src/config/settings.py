"""应用配置管理模块."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    default_base_url: str = Field(default="https://api.openai.com/v1")
    default_model: str = Field(default="gpt-3.5-turbo")
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2000, ge=1, le=128000)
    request_timeout: int = Field(default=60, ge=1, le=300)
    # 部分中转站的WAF会拦截非浏览器请求，可通过环境变量关闭
    browser_headers_enabled: bool = Field(default=True)
    browser_user_agent: str = Field(
        default=(
            "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
        )
    )
    browser_accept_language: str = Field(default="zh-CN,zh;q=0.9,en;q=0.8")
    # OCR设置
    ocr_default_language: str = Field(default="eng")
    max_image_size: int = Field(default=10485760, ge=1024, le=104857600)
    log_level: str = Field(default="INFO")


settings = Settings()
