import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from core.config import Settings, settings as default_settings
from db.database import Database
from routers.ingredients import router as ingredients_router
from routers.recipes import router as recipes_router
from services.exceptions import ServiceError, StoreUnavailable
from contextlib import asynccontextmanager

logger = logging.getLogger("foodcost")


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or default_settings
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = Database(settings.database_url, echo=settings.database_echo)
        app.state.database = database
        await database.create_all()
        logger.info("Connected to the database")
        yield
        await database.dispose()
        logger.info("Database connections released")

    app = FastAPI(
        title="Food Cost API",
        description="API for managing ingredients, recipes and their costs",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"msg": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "msg": _validation_message(exc),
                "errors": jsonable_encoder(exc.errors(), exclude={"ctx", "input", "url"}),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError):
        logger.exception("Store error on %s %s", request.method, request.url.path)
        error = StoreUnavailable()
        return JSONResponse(status_code=error.status_code, content={"msg": error.message})

    prefix = settings.api_prefix.rstrip("/")

    @app.get(prefix or "/", tags=["health"])
    async def hello():
        return {"message": "Hello from the backend!"}

    app.include_router(ingredients_router, prefix=f"{prefix}/ingredients", tags=["ingredients"])
    app.include_router(recipes_router, prefix=f"{prefix}/recipes", tags=["recipes"])

    return app


app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
