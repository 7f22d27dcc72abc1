"""Web Translator API 路由."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from config.logging_config import get_logger
from config.settings import settings
from models.models import (
    ConnectionTestRequest,
    ConnectionTestResponse,
    ErrorResponse,
    ModelsRequest,
    ModelsResponse,
    OCRLanguagesResponse,
    OCRRequest,
    OCRResponse,
    TranslateRequest,
    TranslateResponse,
)
from translator.endpoint_resolver import normalize_base_url
from translator.errors import ClassifiedError, ErrorKind
from translator.model_catalog import ModelCatalogClient
from translator.ocr_adapter import (
    OCR_LANGUAGES,
    OCREngine,
    OCRError,
    TesseractOCREngine,
    run_ocr,
)
from translator.translation_client import TranslationClient, TranslationRequest

logger = get_logger(__name__)

# 创建路由实例
router = APIRouter(prefix="/api")

CLIENT_ERRORS = (ErrorKind.INVALID_INPUT, ErrorKind.MISSING_CREDENTIAL)


def get_model_catalog_client() -> ModelCatalogClient:
    return ModelCatalogClient()


def get_translation_client() -> TranslationClient:
    return TranslationClient()


def get_ocr_engine() -> OCREngine:
    return TesseractOCREngine()


def error_response(error: ClassifiedError, **extra) -> JSONResponse:
    """将 ClassifiedError 转换为 {error, kind} 响应."""
    status_code = 400 if error.kind in CLIENT_ERRORS else 500
    body = ErrorResponse(error=error.message, kind=error.kind.value, **extra)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", exclude_none=True),
    )


@router.post("/models", response_model=ModelsResponse)
async def list_models(
    request: ModelsRequest,
    client: ModelCatalogClient = Depends(get_model_catalog_client),
):
    """
    获取上游可用模型列表

    失败时返回错误信息，同时附带内置模型列表供前端回退使用。
    """
    catalog = await client.list_models(request)
    if catalog.error is not None:
        return error_response(catalog.error, models=catalog.models)
    return ModelsResponse(models=catalog.models)


@router.post("/translate", response_model=TranslateResponse)
async def translate(
    request: TranslateRequest,
    client: TranslationClient = Depends(get_translation_client),
):
    """
    翻译文本

    Args:
        request: text, sourceLang, targetLang, apiKey, baseURL(可选), model(可选)

    Returns:
        {"translatedText": "..."}，失败时 {"error": "...", "kind": "..."}
    """
    try:
        result = await client.translate(
            TranslationRequest(
                text=request.text,
                source_lang=request.source_lang,
                target_lang=request.target_lang,
                model=request.model,
            ),
            request,
        )
    except ClassifiedError as e:
        return error_response(e)
    return TranslateResponse(translated_text=result.translated_text)


@router.post(
    "/test-connection",
    response_model=ConnectionTestResponse,
)
async def test_connection(
    request: ConnectionTestRequest,
    client: TranslationClient = Depends(get_translation_client),
):
    """用一次短文本翻译测试API配置"""
    try:
        result = await client.check_connection(request, request.model)
    except ClassifiedError as e:
        return error_response(e)
    return ConnectionTestResponse(
        translated_text=result.translated_text,
        endpoint=normalize_base_url(request.base_url, settings.default_base_url),
    )


@router.post("/ocr", response_model=OCRResponse)
async def recognize_image(
    request: OCRRequest,
    engine: OCREngine = Depends(get_ocr_engine),
):
    """
    识别图片中的文字

    Args:
        request: imageData(base64或data URL), language(Tesseract语言代码，默认eng)
    """
    try:
        result = await run_ocr(engine, request.image_data, request.language)
    except ClassifiedError as e:
        return error_response(e)
    except OCRError as e:
        logger.exception(f"OCR失败: {str(e)}")
        return JSONResponse(status_code=500, content={"error": str(e)})
    return OCRResponse(text=result.text, confidence=result.confidence)


@router.get("/ocr/languages", response_model=OCRLanguagesResponse)
async def ocr_languages():
    """返回支持的OCR语言"""
    return OCRLanguagesResponse(
        languages=list(OCR_LANGUAGES), default=settings.ocr_default_language
    )
