from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from fastapi.concurrency import run_in_threadpool

from psx_scraper.errors import InvalidSymbolsError, QuoteFetchError, StoreError
from psx_scraper.integrations.scrape_api_client import ScrapeApiClient

router = APIRouter()

_SCRAPE_STOCK_CORS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'GET, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}
_SCRAPE_ALL_CORS = {
    'Access-Control-Allow-Origin': '*',
    'Access-Control-Allow-Methods': 'POST, OPTIONS',
    'Access-Control-Allow-Headers': 'Content-Type',
}


def _json(status_code: int, content, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _self_base_url(request: Request) -> str:
    configured = request.app.state.get_settings().PSX_SELF_BASE_URL
    if configured:
        return configured
    proto = request.headers.get('x-forwarded-proto')
    host = request.headers.get('x-forwarded-host')
    if proto and host:
        return f'{proto}://{host}'
    return str(request.base_url).rstrip('/')


@router.options('/scrape-stock')
def scrape_stock_preflight():
    return Response(status_code=200, headers=_SCRAPE_STOCK_CORS)


@router.get('/scrape-stock')
def scrape_stock(request: Request, symbol: str | None = None):
    upper = (symbol or '').strip().upper()
    if not upper:
        return _json(400, {'error': 'Symbol parameter required'}, _SCRAPE_STOCK_CORS)

    try:
        quote = request.app.state.quote_scraper.fetch(upper)
    except QuoteFetchError as exc:
        return _json(500, {'error': exc.message, 'symbol': exc.symbol}, _SCRAPE_STOCK_CORS)
    return _json(200, quote.to_wire(), _SCRAPE_STOCK_CORS)


@router.options('/scrape-all-stocks')
def scrape_all_preflight():
    return Response(status_code=200, headers=_SCRAPE_ALL_CORS)


@router.api_route(
    '/scrape-all-stocks',
    methods=['GET', 'HEAD', 'PUT', 'PATCH', 'DELETE', 'TRACE', 'CONNECT'],
)
def scrape_all_method_not_allowed():
    return _json(405, {'error': 'Method not allowed'}, _SCRAPE_ALL_CORS)


async def _read_symbols(request: Request):
    try:
        body = await request.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    return body.get('symbols')


@router.post('/scrape-all-stocks')
async def scrape_all_stocks(request: Request):
    symbols = await _read_symbols(request)
    orchestrator = request.app.state.batch_orchestrator
    try:
        orchestrator.validate(symbols)
    except InvalidSymbolsError as exc:
        return _json(400, {'error': str(exc)}, _SCRAPE_ALL_CORS)

    settings = request.app.state.get_settings()
    client = ScrapeApiClient(
        base_url=_self_base_url(request),
        timeout_sec=settings.PSX_BATCH_FETCH_TIMEOUT_SEC,
        session=request.app.state.self_http_session,
    )
    try:
        result = await run_in_threadpool(orchestrator.refresh_all, symbols, client.get_quote)
    except Exception as exc:
        print(f'[SCRAPE][batch_error] error={exc}', flush=True)
        return _json(500, {'error': 'Failed to scrape stocks'}, _SCRAPE_ALL_CORS)

    return _json(
        200,
        {
            'success': True,
            'count': result.success_count,
            'total': result.total_requested,
            'data': [q.to_wire() for q in result.results],
        },
        _SCRAPE_ALL_CORS,
    )


@router.get('/stocks')
def list_stocks(request: Request):
    try:
        rows = request.app.state.stock_service.list_stocks()
    except StoreError as exc:
        print(f'[STORE][list_error] error={exc}', flush=True)
        return []
    return [r.to_wire() for r in rows]


@router.get('/stocks/search')
def search_stocks(request: Request, q: str = ''):
    try:
        rows = request.app.state.stock_service.search_stocks(q)
    except StoreError as exc:
        print(f'[STORE][search_error] query={q} error={exc}', flush=True)
        return []
    return [r.to_wire() for r in rows]


@router.post('/stocks/refresh')
async def refresh_stocks(request: Request):
    symbols = await _read_symbols(request)
    service = request.app.state.stock_service
    try:
        result = await run_in_threadpool(service.refresh, symbols)
    except InvalidSymbolsError as exc:
        return _json(400, {'error': str(exc)})
    return {
        'success': True,
        'count': result.success_count,
        'total': result.total_requested,
        'data': [q.to_wire() for q in result.results],
    }


@router.post('/stocks/refresh-stale')
async def refresh_stale_stocks(request: Request):
    symbols = await _read_symbols(request)
    if not isinstance(symbols, list) or not all(isinstance(s, str) for s in symbols):
        return _json(400, {'error': 'Symbols array required'})
    rows = await run_in_threadpool(request.app.state.stock_service.refresh_stale, symbols)
    return {'data': [r.to_wire() for r in rows]}


# keeps GETs on the POST-only paths from matching /stocks/{symbol}
@router.api_route('/stocks/refresh', methods=['GET', 'PUT', 'PATCH', 'DELETE'])
@router.api_route('/stocks/refresh-stale', methods=['GET', 'PUT', 'PATCH', 'DELETE'])
def refresh_method_not_allowed():
    return _json(405, {'error': 'Method not allowed'})


@router.get('/stocks/{symbol}')
def get_stock(symbol: str, request: Request):
    row = request.app.state.stock_service.get_stock(symbol)
    if row is None:
        return _json(404, {'error': 'Stock not found', 'symbol': symbol.strip().upper()})
    return row.to_wire()


@router.post('/stocks/{symbol}/seed')
def seed_stock(symbol: str, request: Request):
    try:
        row = request.app.state.stock_service.seed(symbol)
    except StoreError as exc:
        return _json(500, {'error': f'Cannot write stock {symbol.strip().upper()}: {exc}'})
    return row.to_wire()


@router.get('/health')
def health(request: Request):
    return request.app.state.runtime_state.status().model_dump()


@router.get('/metrics/scrape')
def scrape_metrics(request: Request):
    metrics = dict(request.app.state.quote_scraper.metrics())
    metrics.update(request.app.state.batch_orchestrator.metrics())
    metrics.update(request.app.state.stock_service.metrics())
    return metrics
