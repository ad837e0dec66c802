import logging
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from pythonjsonlogger import jsonlogger
from .auth import TokenIssuer, make_password_context
from .config import Settings
from .crud import CredentialStore, UserDirectory, MessageLedger
from .errors import MessagelyError, BadRequestError
from .models import make_engine, make_sessionmaker, create_tables
from .routes import router

# setup structured logging
logger = logging.getLogger('messagely')
handler = logging.StreamHandler()
formatter = jsonlogger.JsonFormatter('%(asctime)s %(levelname)s %(name)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)
logger.setLevel(logging.INFO)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    settings.validate()
    logger.setLevel(settings.log_level)

    app = FastAPI(title="Messagely API", version="0.1.0")
    app.state.settings = settings

    engine = make_engine(settings.database_url)
    session_factory = make_sessionmaker(engine)
    app.state.engine = engine
    app.state.tokens = TokenIssuer(settings)
    app.state.credentials = CredentialStore(session_factory, make_password_context(settings))
    app.state.users = UserDirectory(session_factory)
    app.state.messages = MessageLedger(session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=['*'],
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    app.include_router(router, prefix="/api")

    @app.get('/healthz')
    async def healthz():
        return {'status': 'ok'}

    @app.get('/metrics', include_in_schema=False)
    async def metrics():
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)

    @app.exception_handler(MessagelyError)
    async def messagely_error(request: Request, exc: MessagelyError):
        logger.info({'msg': 'request_failed', 'path': request.url.path, 'status': exc.status_code, 'error': exc.message})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        fields = sorted({'.'.join(str(p) for p in err['loc'][1:]) or err['loc'][0] for err in exc.errors()})
        err = BadRequestError(f"Missing or invalid fields: {', '.join(fields)}")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    @app.middleware('http')
    async def log_requests(request: Request, call_next):
        logger.info({'msg': 'request_start', 'method': request.method, 'path': request.url.path})
        response = await call_next(request)
        logger.info({'msg': 'request_end', 'status': response.status_code})
        return response

    @app.on_event("startup")
    async def startup():
        if settings.auto_create_tables:
            await create_tables(engine)
            logger.info({'msg': 'tables_created'})

    @app.on_event("shutdown")
    async def shutdown():
        await engine.dispose()

    return app


app = create_app()
