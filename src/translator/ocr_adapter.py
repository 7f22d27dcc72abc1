"""图片文字识别适配层.

识别算法交给 Tesseract，这里只负责解码上传的图片、调用引擎并统一
返回文本与置信度。
"""

import base64
import binascii
import io
import re
from dataclasses import dataclass
from typing import Optional, Protocol

import pytesseract
from fastapi.concurrency import run_in_threadpool
from PIL import Image, UnidentifiedImageError

from config.logging_config import get_logger
from config.settings import Settings, settings as default_settings
from translator.errors import ClassifiedError, ErrorKind

logger = get_logger(__name__)

# 前端可选的 Tesseract 语言包
OCR_LANGUAGES = (
    "eng",
    "chi_sim",
    "chi_tra",
    "jpn",
    "kor",
    "spa",
    "fra",
    "deu",
    "rus",
    "ara",
)

_DATA_URL = re.compile(r"^data:[^;,]*(;[^,]*)?,", re.IGNORECASE)


@dataclass
class OCRResult:
    """识别结果，confidence 范围 0-100."""

    text: str
    confidence: int


class OCRError(Exception):
    """识别引擎执行失败."""


class OCREngine(Protocol):
    def recognize(self, image: bytes, language: str) -> OCRResult: ...


def decode_image_data(image_data: str, max_size: Optional[int] = None) -> bytes:
    """
    解码base64图片数据，支持 ``data:image/png;base64,...`` 形式.

    Raises:
        ClassifiedError: 数据为空、不是合法base64或超过大小限制
    """
    if not image_data or not image_data.strip():
        raise ClassifiedError(ErrorKind.INVALID_INPUT, "Image data is required")
    encoded = _DATA_URL.sub("", image_data.strip(), count=1)
    try:
        image = base64.b64decode("".join(encoded.split()), validate=True)
    except (binascii.Error, ValueError):
        raise ClassifiedError(ErrorKind.INVALID_INPUT, "Image data is not valid base64")
    if not image:
        raise ClassifiedError(ErrorKind.INVALID_INPUT, "Image data is required")
    if max_size is not None and len(image) > max_size:
        raise ClassifiedError(
            ErrorKind.INVALID_INPUT,
            f"Image is too large (limit {max_size // (1024 * 1024)}MB)",
        )
    return image


class TesseractOCREngine:
    """基于 pytesseract 的识别引擎."""

    def recognize(self, image: bytes, language: str) -> OCRResult:
        try:
            with Image.open(io.BytesIO(image)) as img:
                img.load()
                text = pytesseract.image_to_string(img, lang=language)
                data = pytesseract.image_to_data(
                    img, lang=language, output_type=pytesseract.Output.DICT
                )
        except UnidentifiedImageError:
            raise OCRError("Unsupported or corrupted image")
        except pytesseract.TesseractNotFoundError:
            raise OCRError("Tesseract is not installed on the server")
        except pytesseract.TesseractError as e:
            raise OCRError(f"OCR processing failed: {e.message}")
        # 截断的图片在 load() 时才报错；超大图片触发 Pillow 的解压炸弹保护
        except (OSError, Image.DecompressionBombError) as e:
            logger.warning(f"图片解码失败: {str(e)}")
            raise OCRError("Unsupported or corrupted image")

        confidences = [float(conf) for conf in data.get("conf", []) if float(conf) >= 0]
        confidence = round(sum(confidences) / len(confidences)) if confidences else 0
        return OCRResult(text=(text or "").strip(), confidence=confidence)


async def run_ocr(
    engine: OCREngine,
    image_data: str,
    language: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> OCRResult:
    """解码图片并在线程池中执行识别."""
    settings = settings or default_settings
    language = (language or "").strip() or settings.ocr_default_language
    image = decode_image_data(image_data, settings.max_image_size)
    logger.info(f"OCR识别: {len(image)} 字节, 语言: {language}")
    result = await run_in_threadpool(engine.recognize, image, language)
    logger.info(f"OCR完成: {len(result.text)} 个字符, 置信度: {result.confidence}")
    return result
