"""FastAPI 应用入口。"""

import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from loguru import logger

from talksense import __version__
from talksense.api import router as api_router
from talksense.config import get_settings
from talksense.services import converter, uploads


def setup_logging(level: str = "INFO") -> None:
    """配置 Loguru 日志。"""
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=level,
    )


def _cleanup_orphans_safe() -> None:
    settings = get_settings()
    try:
        removed = uploads.cleanup_orphans(settings.upload_dir)
    except OSError as e:
        logger.warning(f"startup cleanup failed (non-fatal) {e=}")
        return
    if removed:
        logger.info(f"startup cleanup {removed=}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期：启动时解析 ffmpeg、准备上传目录并清理遗留临时文件。"""
    settings = get_settings()
    app.state.ffmpeg_path = converter.resolve_ffmpeg(settings.ffmpeg_path)
    settings.upload_dir.mkdir(parents=True, exist_ok=True)
    if settings.cleanup_orphans_on_startup:
        _cleanup_orphans_safe()
    logger.info(f"talksense backend started {app.state.ffmpeg_path=} {settings.upload_dir=}")
    yield
    app.state.ffmpeg_path = None
    logger.info("talksense backend shutdown")


app = FastAPI(
    title="talksense",
    description="录音转写 + 实体情感分析 API",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)


@app.get("/health")
def health() -> dict:
    """健康检查。"""
    return {"status": "ok"}


# 静态页面挂在最后，避免覆盖 API 路由
app.mount("/", StaticFiles(directory=get_settings().static_dir, html=True), name="static")


def main() -> None:
    """启动 uvicorn。"""
    settings = get_settings()
    setup_logging(settings.log_level)
    import uvicorn

    uvicorn.run(
        "talksense.main:app",
        host=settings.host,
        port=settings.port,
    )


if __name__ == "__main__":
    main()
