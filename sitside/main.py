import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException

from sitside.core import config, errors
from sitside.database import Base, SessionLocal, engine
from sitside.models import booking, user
from sitside.routes import admin_routes, auth_routes, booking_routes, user_routes
from sitside.services import users as user_service

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s %(levelname)s %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='SitSide API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'error': message})


@app.exception_handler(errors.SitsideError)
async def sitside_error_handler(request: Request, exc: errors.SitsideError):
    if exc.status_code >= 500:
        logger.error('%s %s failed: %s', request.method, request.url.path, exc.message)
    return _error(exc.status_code, exc.message)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    message = exc.detail if isinstance(exc.detail, str) else 'Request failed'
    return _error(exc.status_code, message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for error in exc.errors():
        location = '.'.join(str(part) for part in error.get('loc', ()) if part != 'body')
        message = error.get('msg', 'Invalid value').removeprefix('Value error, ')
        problems.append(f'{location}: {message}' if location else message)
    logger.warning('Validation error for %s: %s', request.url.path, problems)
    return _error(400, ', '.join(problems) or 'Invalid request')


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    logger.exception('Database error on %s %s', request.method, request.url.path)
    return _error(503, 'Database unavailable. Please try again later.')


@app.exception_handler(Exception)
async def unexpected_exception_handler(request: Request, exc: Exception):
    logger.exception('Unexpected error on %s %s', request.method, request.url.path)
    return _error(500, 'Something went wrong!')


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine, tables=[user.User.__table__, booking.Booking.__table__])
        db = SessionLocal()
        try:
            user_service.seed_admin(db)
        finally:
            db.close()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.get('/api/health')
def health():
    return {'status': 'OK', 'timestamp': datetime.now(timezone.utc).isoformat()}


app.include_router(auth_routes.router, prefix='/api/auth')
app.include_router(user_routes.router, prefix='/api/users')
app.include_router(booking_routes.router, prefix='/api/bookings')
app.include_router(admin_routes.router, prefix='/api/admin')
