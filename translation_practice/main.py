#!/usr/bin/env python3
"""
句子翻译练习服务 - FastAPI 主应用入口
Description: 提供逐句翻译练习、AI评分与间隔重复复习的 REST API
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from translation_practice.config.settings import settings
from translation_practice.utils.logger import setup_logging
from translation_practice.utils.database import init_db, check_db_connection
from translation_practice.utils.llm_client import create_llm_client
from translation_practice.practice.errors import InvalidInput, NotFound, PracticeError, StorageError
from translation_practice.services.ai_scoring_service import LLMHintProvider, LLMTranslationScorer
from translation_practice.services.exercise_service import load_exercise_summaries
from translation_practice.services.practice_service import PracticeService
from translation_practice.services.review_service import ReviewQueueManager
from translation_practice.services.storage_service import SqlPracticeStorage

# 设置日志
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理
    - 启动时初始化数据库、大模型客户端和服务
    - 关闭时放弃所有进行中的练习会话
    """
    logger.info("初始化句子翻译练习服务...")

    try:
        # 初始化数据库
        init_db()
        logger.info("数据库初始化完成")

        # 初始化服务层
        llm_client = create_llm_client()
        storage = SqlPracticeStorage()
        review_manager = ReviewQueueManager(storage, load_exercise_summaries)
        practice_service = PracticeService(
            storage=storage,
            review_manager=review_manager,
            scorer=LLMTranslationScorer(llm_client),
            hint_provider=LLMHintProvider(llm_client),
        )

        app.state.llm_client = llm_client
        app.state.review_manager = review_manager
        app.state.practice_service = practice_service
        logger.info("服务层初始化完成")

        # 检查大模型连接
        if await llm_client.check_connection():
            logger.info("大模型连接测试成功")
        else:
            logger.warning("大模型连接测试失败，评分功能可能不可用")

        logger.info("句子翻译练习服务启动完成")

    except Exception as e:
        logger.error(f"应用启动失败: {e}")
        raise

    yield  # 应用运行期间

    logger.info("正在关闭句子翻译练习服务...")
    for exercise_id in list(app.state.practice_service.active_sessions):
        app.state.practice_service.abandon(exercise_id)
    logger.info("句子翻译练习服务已安全关闭")


def create_application() -> FastAPI:
    """创建并配置FastAPI应用实例"""

    app = FastAPI(
        title=settings.APP_NAME,
        description="基于大模型评分的逐句翻译练习与间隔重复复习系统",
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan
    )

    # 配置CORS中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:3000",      # 开发环境
        ],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 全局异常处理
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail}
        )

    @app.exception_handler(InvalidInput)
    async def invalid_input_handler(request: Request, exc: InvalidInput):
        logger.warning(f"请求参数不合法: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": str(exc)}
        )

    @app.exception_handler(NotFound)
    async def not_found_handler(request: Request, exc: NotFound):
        return JSONResponse(
            status_code=404,
            content={"error": str(exc)}
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request: Request, exc: StorageError):
        logger.error(f"存储服务错误: {exc}")
        return JSONResponse(
            status_code=503,
            content={"error": "存储暂时不可用，请稍后重试", "retryable": True}
        )

    @app.exception_handler(PracticeError)
    async def practice_error_handler(request: Request, exc: PracticeError):
        logger.error(f"练习服务错误: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "服务暂时不可用，请稍后重试"}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"未处理的异常: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={"error": "内部服务器错误"}
        )

    return app

# 创建应用实例
app = create_application()

# 导入并包含路由
from translation_practice.api.routes import exercises, sessions, review

# 注册API路由
app.include_router(exercises.router, prefix="/api/v1/exercises", tags=["练习管理"])
app.include_router(sessions.router, prefix="/api/v1/sessions", tags=["练习会话"])
app.include_router(review.router, prefix="/api/v1/review", tags=["复习管理"])


def _get_current_timestamp() -> str:
    """获取当前时间戳"""
    return datetime.now(timezone.utc).isoformat()

# 健康检查端点
@app.get("/")
async def root():
    """根端点 - 服务状态检查"""
    return {
        "status": "running",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": _get_current_timestamp()
    }

@app.get("/health")
async def health_check(request: Request):
    """健康检查端点"""
    db_status = check_db_connection()

    llm_client = getattr(request.app.state, "llm_client", None)
    llm_status = await llm_client.check_connection() if llm_client else False

    status = "healthy" if db_status and llm_status else "unhealthy"

    return {
        "status": status,
        "database": "connected" if db_status else "disconnected",
        "llm_service": "connected" if llm_status else "disconnected",
        "timestamp": _get_current_timestamp()
    }

@app.get("/api/v1/system/info")
async def system_info(request: Request):
    """系统信息端点"""
    import psutil
    import platform

    practice_service = getattr(request.app.state, "practice_service", None)

    return {
        "python_version": platform.python_version(),
        "platform": platform.platform(),
        "cpu_usage": psutil.cpu_percent(),
        "memory_usage": psutil.virtual_memory().percent,
        "active_sessions": len(practice_service.active_sessions) if practice_service else 0,
        "advance_threshold": settings.ADVANCE_THRESHOLD,
        "max_hints_per_sentence": settings.MAX_HINTS_PER_SENTENCE,
        "llm_model": settings.LLM_MODEL
    }

if __name__ == "__main__":
    """开发环境直接运行"""
    uvicorn.run(
        "translation_practice.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # 开发模式热重载
        log_level="info",
        timeout_keep_alive=5,     # 保持连接超时
    )
