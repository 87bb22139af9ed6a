from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from campaign_detector.api.v1 import campaigns, health, highlight, upload
from campaign_detector.core.config import get_settings
from campaign_detector.core.errors import BaseApplicationError
from campaign_detector.core.logging import LogEvent, configure_logging, get_logger
from campaign_detector.core.middleware import ErrorHandlerMiddleware, application_error_handler, error_handler
from campaign_detector.db import dispose_engine, init_db
from campaign_detector.repositories.campaigns import install_search_function

settings = get_settings()
configure_logging(level=settings.log_level, json_logs=settings.json_logs)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    logger.info(
        LogEvent.APP_STARTED,
        version=settings.version,
        environment=settings.environment.value,
        api_prefix=settings.api_v1_prefix,
        postgres=settings.is_postgres,
    )

    try:
        await init_db()
        await install_search_function()
        yield
    finally:
        logger.info(LogEvent.APP_STOPPED)
        await dispose_engine()


app = FastAPI(
    title=settings.project_name,
    version=settings.version,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# 浏览器规范：当 allow_origins 为 "*" 时，不能允许 credentials
origins = settings.get_cors_origins()
allow_credentials = settings.cors_allow_credentials and origins != ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(ErrorHandlerMiddleware)

# 错误处理
app.add_exception_handler(BaseApplicationError, application_error_handler)
app.add_exception_handler(Exception, error_handler)

# 路由注册
app.include_router(
    health.router,
    prefix=f"{settings.api_v1_prefix}/health",
    tags=["health"]
)
app.include_router(upload.router, prefix=settings.api_v1_prefix)
app.include_router(campaigns.router, prefix=settings.api_v1_prefix)
app.include_router(highlight.router, prefix=settings.api_v1_prefix)

# Prometheus监控
Instrumentator().instrument(app).expose(app)


@app.get("/")
async def root():
    """根路径"""
    return {
        "name": settings.project_name,
        "version": settings.version,
        "docs": "/docs",
        "api_prefix": settings.api_v1_prefix,
    }


@app.get(f"{settings.api_v1_prefix}")
async def api_root():
    """API根路径"""
    prefix = settings.api_v1_prefix
    return {
        "version": "v1",
        "endpoints": {
            "health": f"{prefix}/health",
            "upload": f"{prefix}/upload",
            "confirm": f"{prefix}/confirm",
            "campaigns": f"{prefix}/campaigns",
            "highlight": f"{prefix}/highlight",
        }
    }
