"""Web Translator API 主入口."""

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import router
from config.logging_config import get_logger, setup_logging

setup_logging()
logger = get_logger(__name__)

# 创建FastAPI应用实例
app = FastAPI(
    title="Web Translator API",
    description="基于OpenAI兼容接口的文本翻译与图片文字识别服务",
    version="1.0.0",
)

# 添加CORS中间件
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """请求体无法解析时返回与其他接口一致的 {error} 格式"""
    errors = exc.errors()
    detail = errors[0].get("msg", "Invalid request body") if errors else ""
    logger.warning(f"请求参数错误 {request.url.path}: {detail}")
    return JSONResponse(
        status_code=400, content={"error": f"Invalid request body: {detail}"}
    )


# 包含路由
app.include_router(router)


@app.get("/")
async def root():
    """根路径，返回API信息"""
    return {
        "message": "Web Translator API",
        "version": "1.0.0",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=18000, reload=True)
