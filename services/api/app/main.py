# services/api/app/main.py

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

# -----------------------------------------------------------------------------
# 核心模块导入 (Core Module Imports)
# -----------------------------------------------------------------------------
from .core.config import settings
from .core.exceptions import register_exception_handlers
from .core.log import RequestLogMiddleware, setup_logging
from .api.v1 import routes_sessions, routes_storyboard

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# FastAPI 生命周期事件 (Lifespan Events)
# -----------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    启动时配置日志并检查 Gemini API Key。
    缺少 Key 时服务仍会启动，但所有生成请求都会以 503 (configuration_error) 拒绝。
    """
    setup_logging(settings.LOG_LEVEL)
    logger.info("--- %s 启动 (env=%s, model=%s) ---", settings.APP_NAME, settings.APP_ENV, settings.GEMINI_MODEL)
    if not settings.gemini_api_key:
        logger.error("GOOGLE_API_KEY 未配置：所有分镜生成请求都将被拒绝")
    yield
    logger.info("--- 应用关闭 ---")


app = FastAPI(
    title=settings.APP_NAME,
    lifespan=lifespan
)

# -----------------------------------------------------------------------------
# 中间件配置 (Middleware Configuration)
# -----------------------------------------------------------------------------
# 允许的源从 settings.CORS_ORIGINS 读取（逗号分隔）
if settings.CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.add_middleware(RequestLogMiddleware)

register_exception_handlers(app)

# -----------------------------------------------------------------------------
# API 路由注册 (API Router Registration)
# -----------------------------------------------------------------------------
app.include_router(routes_storyboard.router, prefix="/api/v1", tags=["storyboard"])
app.include_router(routes_sessions.router, prefix="/api/v1", tags=["sessions"])


@app.get("/", tags=["Health Check"])
def read_root():
    """
    根路由，返回一个简单的欢迎信息，用于确认服务正在运行。
    """
    return {"message": f"Welcome to {settings.APP_NAME}!"}
