import asyncio
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.auth.dependencies import get_session_store
from backend.auth.sweeper import init_session_sweeper, stop_session_sweeper
from backend.core import config
from backend.core.errors import AppError
from backend.core.logging_config import init_logging
from backend.database import ensure_schema
from backend.routes import session_routes, user_routes

app = FastAPI(title='Tutor Match API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


def error_response(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={'message': message, 'status': status_code},
    )


@app.exception_handler(AppError)
async def handle_app_error(_request: Request, exc: AppError) -> JSONResponse:
    return error_response(exc.message, exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def handle_http_exception(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return error_response(str(exc.detail), exc.status_code)


@app.exception_handler(RequestValidationError)
async def handle_validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug('Rejected request body: %s', exc.errors())
    return error_response('Bad request format', 400)


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception('Unhandled error on %s %s', request.method, request.url.path, exc_info=exc)
    return error_response('Internal server error', 500)


@app.middleware('http')
async def enforce_request_timeout(request: Request, call_next):
    try:
        return await asyncio.wait_for(call_next(request), timeout=config.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.warning('Request timed out: %s %s', request.method, request.url.path)
        return error_response('Request timed out', 504)


@app.on_event('startup')
async def initialize() -> None:
    init_logging(config.LOG_LEVEL, config.LOG_FORMAT)
    config.validate_runtime_config()
    try:
        ensure_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and SESSION_DATABASE_URL.')

    app.state.session_sweeper = init_session_sweeper(
        get_session_store(),
        config.SESSION_CLEANUP_INTERVAL_SECONDS,
    )


@app.on_event('shutdown')
async def shutdown() -> None:
    stop_session_sweeper(getattr(app.state, 'session_sweeper', None))


@app.get('/')
def root():
    return {'status': 'Tutor Match API Running'}


app.include_router(user_routes.router, prefix='/api/users')
app.include_router(session_routes.router, prefix='/api')


def run() -> None:
    uvicorn.run('backend.main:app', host=config.HOST, port=config.PORT)


if __name__ == '__main__':
    run()
