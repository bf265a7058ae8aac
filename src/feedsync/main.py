"""FeedSync 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from feedsync import __version__
from feedsync.api import articles, feeds, stats, sync
from feedsync.config import get_settings
from feedsync.core.channel import EventChannel
from feedsync.core.orchestrator import SyncOrchestrator, set_orchestrator
from feedsync.fetcher.extractor import shutdown_extractor
from feedsync.fetcher.pipeline import FetchParsePipeline
from feedsync.models.database import async_session_maker, close_db, init_db
from feedsync.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    logger.info("正在初始化数据库...")
    await init_db(app_settings.database_url)

    logger.info("正在创建同步编排器...")
    pipeline = FetchParsePipeline()
    orchestrator = SyncOrchestrator(
        async_session_maker(),
        pipeline=pipeline,
        channel=EventChannel(app_settings.event_buffer_size),
        concurrency=app_settings.sync_concurrency,
    )
    set_orchestrator(orchestrator)

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings, orchestrator)

    logger.info("FeedSync 启动完成！")
    yield

    logger.info("正在关闭...")
    await shutdown_scheduler()
    await orchestrator.shutdown()
    orchestrator.channel.close()
    await pipeline.close()
    set_orchestrator(None)
    shutdown_extractor()
    await close_db()
    logger.info("FeedSync 已关闭")


app = FastAPI(
    title="FeedSync",
    description="RSS 订阅抓取与同步服务",
    version=__version__,
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # 生产环境应该限制具体域名
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(feeds.router)
app.include_router(articles.router)
app.include_router(sync.router)
app.include_router(stats.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "FeedSync",
        "version": __version__,
        "description": "RSS 订阅抓取与同步服务",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


def run() -> None:
    """命令行入口."""
    import uvicorn

    settings = get_settings()
    uvicorn.run("feedsync.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
