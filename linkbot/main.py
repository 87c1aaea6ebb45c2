# linkbot/main.py
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from linkbot.core.config import settings
from linkbot.routers.preview_router import router as preview_router
from linkbot.services.link_service import LinkPreviewService
from linkbot.utils.logger import setup_logger

# ── 로깅 설정 ────────────────────────────────────────────────────
setup_logger("linkbot", settings.LOG_LEVEL)
logger = logging.getLogger("linkbot.main")


# ── 서비스 수명주기: 시작 시 생성, 종료 시 정리 ──────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    service = LinkPreviewService.from_settings(settings)
    app.state.link_service = service
    sweeper = asyncio.create_task(service.cache.run_sweeper(settings.LINK_CACHE_SWEEP_SEC))
    logger.info(
        "[ENV] link previews %s, ttl=%ss, timeout=%ss, lock=%s",
        "enabled" if service.enabled else "disabled",
        settings.LINK_CACHE_TTL_SEC,
        settings.LINK_REQUEST_TIMEOUT,
        settings.LINK_LOCK_MODE,
    )
    try:
        yield
    finally:
        sweeper.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sweeper
        await service.aclose()


app = FastAPI(title="Link Preview API", lifespan=lifespan)

# ── 라우터 등록 ──────────────────────────────────────────────────
app.include_router(preview_router, prefix="")


@app.get("/ping")
def ping():
    return {"pong": True}


if __name__ == "__main__":
    uvicorn.run("linkbot.main:app", host="0.0.0.0", port=8000)
