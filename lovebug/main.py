"""FastAPI application with lifespan, WebSocket, and REST routes."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket

from lovebug.api.routes import router
from lovebug.api.websocket import websocket_challenge
from lovebug.database import close_db, get_db
from lovebug.middleware.rate_limit import RateLimitMiddleware

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("LoveBug verification starting, initialising database")
    await get_db()
    yield
    logger.info("LoveBug verification shutting down, closing database")
    await close_db()


app = FastAPI(
    title="LoveBug Verification",
    description="Human-verification challenges (questions, text CAPTCHA, slider) gating LoveBug accounts",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(RateLimitMiddleware)
app.include_router(router)


@app.websocket("/ws/challenge")
async def ws_challenge(websocket: WebSocket):
    await websocket_challenge(websocket)
