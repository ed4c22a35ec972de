from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import StreamingResponse

from wallfinder.api.services.engine import CalibrationEngine
from wallfinder.api.services.state import get_engine

router = APIRouter()

logger = logging.getLogger(__name__)

STREAMS = ("depth", "color")


@router.get("/stream/{name}")
async def stream_video(name: str):
    if name not in STREAMS:
        raise HTTPException(status_code=404, detail="Unknown stream")

    async def generator():
        engine: CalibrationEngine = await asyncio.to_thread(get_engine)
        async for chunk in engine.mjpeg_generator(name):
            yield chunk

    return StreamingResponse(
        generator(),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={
            "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
            "Pragma": "no-cache",
            # Helps avoid proxy buffering (e.g., nginx) in front of the stream.
            "X-Accel-Buffering": "no",
        },
    )


@router.websocket("/stream/metadata")
async def stream_metadata(ws: WebSocket):
    await ws.accept()
    engine: CalibrationEngine = await asyncio.to_thread(get_engine)
    try:
        async for summary in engine.metadata_stream():
            try:
                await ws.send_json(asdict(summary))
            except WebSocketDisconnect:
                return
            except RuntimeError:
                # Uvicorn raises this when a send happens after the client closed.
                logger.debug("Metadata websocket closed during send")
                return
    except WebSocketDisconnect:
        return
    except Exception:
        logger.exception("Metadata websocket crashed")
        await ws.close(code=1011)
