"""
FastAPI应用主入口
"""
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from api.routes import upload as upload_routes
from api.routes import mock_storage as mock_storage_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from core.config import settings
from core.exceptions import register_exception_handlers
from core.logging_config import get_logger, configure_logging
from infrastructure.external.storage import (
    init_storage_client,
    shutdown_storage_client,
)


# 初始化日志：在入口处显式配置，避免模块导入时的副作用
configure_logging()
logger = get_logger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    # 初始化存储服务（mock 或 S3，进程内只选择一次）
    try:
        await init_storage_client()
    except Exception as exc:
        logger.error("storage_init_failed", error=str(exc))

    yield

    await shutdown_storage_client()
    logger.info("application_shutdown", message="Application shutdown")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Photo upload API backed by S3 or a local mock store",
)

# 添加中间件（注意顺序：从下往上执行）
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials="*" not in settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册全局异常处理器
register_exception_handlers(app)


# 注册路由
app.include_router(upload_routes.router, prefix="/api")

if settings.storage.use_mock:
    # mock-upload 路由需在静态目录挂载之前注册
    app.include_router(mock_storage_routes.router)
    app.mount(
        "/mock-storage",
        StaticFiles(directory=settings.storage.local_base_path, check_dir=False),
        name="mock-storage",
    )
    logger.info("mock_storage_mounted", directory=settings.storage.local_base_path)


# 根路径：静态测试页面
@app.get("/", include_in_schema=False)
async def root():
    return FileResponse(STATIC_DIR / "index.html")


@app.get("/api", tags=["Root"])
async def api_info():
    """接口目录"""
    return {
        "success": True,
        "message": "Photo Upload API",
        "version": settings.VERSION,
        "endpoints": {
            "health": "GET /api/upload/health",
            "uploadSingle": "POST /api/upload/single",
            "uploadMultiple": "POST /api/upload/multiple",
            "listPhotos": "GET /api/upload/photos",
            "deletePhoto": "DELETE /api/upload/photos/:key",
            "presignedUrl": "POST /api/upload/presigned",
        },
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
