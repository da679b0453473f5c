from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from market_globe.api.routes import router
from market_globe.config.settings import get_settings
from market_globe.services.market_board import MarketBoard
from market_globe.services.quote_cache import CacheManager


def build_board() -> MarketBoard:
    settings = get_settings()
    manager = CacheManager.create(settings)
    return MarketBoard.from_settings(manager, settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    board = app.state.market_board
    if board.manager.closed:
        board = app.state.market_board = app.state.board_factory()
    board.start()
    print("[APP][board_start]", flush=True)
    try:
        yield
    finally:
        board.stop()
        print("[APP][board_stop]", flush=True)


app = FastAPI(title="Market Globe Quote Gateway", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")

# NOTE: tests swap in a board built from stub providers before starting the app.
app.state.board_factory = build_board
app.state.market_board = build_board()
