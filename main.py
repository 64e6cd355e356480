import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

# Import routers
from watercan.api.routes import customers, orders, inventory, dashboard
from watercan.core import config
from watercan.core.exceptions import LedgerError
from watercan.core.logging_config import configure_logging
from watercan.db.get_db import engine
from watercan.db.init_db import create_tables
from watercan.utils.error_codes import HTTP_STATUS_TO_ERROR_CODE, http_status_for
from watercan.utils.helpers import error_response

configure_logging(config.LOG_LEVEL)
logger = logging.getLogger("watercan.api")

@asynccontextmanager
async def lifespan(app: FastAPI):
    create_tables(engine)
    logger.info("Database tables ready")
    yield


app = FastAPI(
    title="Water Can API",
    description="FastAPI backend for the water-can delivery service",
    version="1.0.0",
    docs_url=None if config.IS_PRODUCTION else "/docs",
    redoc_url=None if config.IS_PRODUCTION else "/redoc",
    lifespan=lifespan
)

# --- CORS Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

API_PREFIX = "/api/v1"

# Root route
@app.get("/")
def root():
    return {"success": True, "message": "Welcome to the Water Can backend API!", "data": None}

# Include routers
app.include_router(customers.router, prefix=f"{API_PREFIX}/customers", tags=["Customers"])
app.include_router(orders.router, prefix=f"{API_PREFIX}/orders", tags=["Orders"])
app.include_router(inventory.router, prefix=f"{API_PREFIX}/inventory", tags=["Inventory"])
app.include_router(dashboard.router, prefix=f"{API_PREFIX}/dashboard", tags=["Dashboard"])

@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    status_code = http_status_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=status_code,
        content=error_response(exc.code, exc.message, exc.details),
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    error_code = HTTP_STATUS_TO_ERROR_CODE.get(exc.status_code, "SERVER_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(error_code, exc.detail),
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=error_response(
            HTTP_STATUS_TO_ERROR_CODE.get(422, "VALIDATION_ERROR"),
            "Invalid request: Please send the correct content type and required fields.",
            jsonable_encoder(exc.errors())
        ),
    )
