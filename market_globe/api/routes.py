from fastapi import APIRouter, HTTPException, Query, Request

from market_globe.errors import QuoteNotFoundError, QuotesUnavailableError
from market_globe.services.market_board import UNAVAILABLE_MESSAGE

router = APIRouter()


def _board(request: Request):
    return request.app.state.market_board


@router.get('/board')
def get_board(
    request: Request,
    width: int | None = Query(default=None, ge=0),
    height: int | None = Query(default=None, ge=0),
):
    board = _board(request)
    if width is not None and height is not None:
        board.set_viewport(width, height)
    if not board.quotes and board.error is None:
        board.refresh(force=False)
    return board.snapshot().model_dump()


@router.post('/board/refresh')
def refresh_board(request: Request):
    board = _board(request)
    success = board.refresh(force=True)
    return {'success': success, 'error': board.error}


@router.get('/quotes')
def get_quotes(request: Request):
    manager = _board(request).manager
    try:
        rows = manager.get_quotes()
    except QuotesUnavailableError as exc:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE) from exc
    return [row.model_dump() for row in rows]


@router.get('/quotes/{symbol}')
def get_quote(symbol: str, request: Request):
    manager = _board(request).manager
    try:
        row = manager.get_quote(symbol)
    except QuoteNotFoundError as exc:
        raise HTTPException(status_code=404, detail='QUOTE_NOT_FOUND') from exc
    except QuotesUnavailableError as exc:
        raise HTTPException(status_code=503, detail=UNAVAILABLE_MESSAGE) from exc
    return row.model_dump()


@router.get('/cache/status')
def get_cache_status(request: Request):
    return _board(request).manager.cache_status().model_dump()


@router.delete('/cache')
def clear_cache(request: Request):
    _board(request).manager.clear()
    return {'cleared': True}


@router.get('/metrics/quote')
def get_quote_metrics(request: Request):
    board = _board(request)
    return {
        **board.manager.metrics(),
        **board.position_cache.metrics(),
        'board_refreshes': board.refresh_count,
        'board_skipped_ticks': board.skipped_ticks,
    }


@router.get('/catalog')
def get_catalog(request: Request):
    return [spec.model_dump() for spec in _board(request).manager.catalog]
