"""API数据模型定义."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CamelModel(BaseModel):
    """前端使用驼峰字段名，服务端使用下划线."""

    model_config = ConfigDict(populate_by_name=True)


class ModelDescriptor(BaseModel):
    """上游模型描述."""

    model_config = ConfigDict(frozen=True)

    id: str
    object: str = "model"
    created: Optional[int] = None
    owned_by: Optional[str] = None


class Credentials(CamelModel):
    """上游接口凭据，每次请求传入，不做持久化."""

    api_key: str = Field(default="", alias="apiKey")
    base_url: Optional[str] = Field(default=None, alias="baseURL")


class ModelsRequest(Credentials):
    """模型列表请求数据模型."""


class ModelsResponse(BaseModel):
    models: List[ModelDescriptor]


class TranslateRequest(Credentials):
    """翻译请求数据模型."""

    text: str = ""
    source_lang: str = Field(default="", alias="sourceLang")
    target_lang: str = Field(default="", alias="targetLang")
    model: Optional[str] = None


class TranslateResponse(CamelModel):
    translated_text: str = Field(alias="translatedText")


class ConnectionTestRequest(Credentials):
    """接口连通性测试请求."""

    model: Optional[str] = None


class ConnectionTestResponse(CamelModel):
    success: bool = True
    translated_text: str = Field(alias="translatedText")
    endpoint: str


class OCRRequest(CamelModel):
    """OCR请求数据模型，imageData 为base64或data URL."""

    image_data: str = Field(default="", alias="imageData")
    language: Optional[str] = None


class OCRResponse(BaseModel):
    text: str
    confidence: int = Field(ge=0, le=100)


class OCRLanguagesResponse(BaseModel):
    languages: List[str]
    default: str


class ErrorResponse(BaseModel):
    """错误响应数据模型."""

    error: str
    kind: Optional[str] = None
    models: Optional[List[ModelDescriptor]] = None
