import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import settings
from core.exceptions import TaxEngineError
from core.firebase import initialize_firebase
from core.logging_config import configure_logging
from core.tax_rules import get_tax_rules
from api.v1 import taxes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    # Таблиці ставок валідуються один раз на старті
    get_tax_rules()
    if settings.STORAGE_BACKEND == "firestore":
        initialize_firebase()
    yield


app = FastAPI(title="Property Tax Engine", lifespan=lifespan)

# Налаштування CORS (щоб фронтенд мав доступ)
origins = [o.strip() for o in settings.FRONTEND_ORIGIN.split(",") if o.strip()] or [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(TaxEngineError)
async def tax_engine_error_handler(request: Request, exc: TaxEngineError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# --- ПІДКЛЮЧЕННЯ РОУТЕРІВ ---
app.include_router(taxes.router, prefix="/api/v1/taxes", tags=["Taxes"])


@app.get("/")
def read_root():
    return {"status": "ok", "version": "1.0.0"}
