"""同步 API 与实时事件推送."""

import asyncio
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from feedsync.api.serializers import run_result_to_dict
from feedsync.core.channel import Subscription
from feedsync.core.orchestrator import SyncOrchestrator, get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sync", tags=["sync"])

HEARTBEAT_SECONDS = 30.0


@router.post("")
async def sync_all(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> dict:
    """同步所有启用的订阅源并等待结束."""
    results = await orchestrator.sync_all()
    return {
        "total": len(results),
        "succeeded": sum(1 for r in results if r.succeeded),
        "items": [run_result_to_dict(r) for r in results],
    }


@router.get("/running")
async def get_running(
    orchestrator: SyncOrchestrator = Depends(get_orchestrator),
) -> dict:
    """获取正在同步的订阅源 ID."""
    return {"feed_ids": orchestrator.running_feeds()}


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    feed_id: str | None = None,
) -> None:
    """WebSocket 端点，实时推送进度和新文章事件（可按 feed_id 过滤）."""
    orchestrator = get_orchestrator()
    await websocket.accept()

    await websocket.send_json({"type": "connected", "data": {"feed_id": feed_id}})

    subscription = orchestrator.channel.subscribe(feed_id=feed_id)
    pump = asyncio.create_task(_pump_events(websocket, subscription))

    try:
        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(),
                    timeout=HEARTBEAT_SECONDS,
                )
                if data == "ping":
                    await websocket.send_text("pong")
            except TimeoutError:
                # 发送心跳检测
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break

    except WebSocketDisconnect:
        pass
    finally:
        subscription.unsubscribe()
        pump.cancel()
        await asyncio.gather(pump, return_exceptions=True)


async def _pump_events(websocket: WebSocket, subscription: Subscription) -> None:
    """把订阅到的事件转发给客户端；缓冲区溢出丢弃过进度事件时先通知丢弃数."""
    reported = 0
    async for event in subscription:
        if subscription.dropped > reported:
            await websocket.send_json(
                {"type": "lagged", "data": {"dropped": subscription.dropped - reported}}
            )
            reported = subscription.dropped
        await websocket.send_json(event.to_message())
    logger.debug("事件订阅已关闭")
