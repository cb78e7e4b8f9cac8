# backend/app/main.py
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.app.api import auth, dashboard, transactions
from backend.app.config import get_settings
from backend.app.db import init_db
from backend.app.errors import LedgerError
from backend.app.logging_config import get_logger, new_request_id, setup_logging

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)
logger = get_logger("api.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    request_id = new_request_id()
    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path}",
        method=request.method,
        path=request.url.path,
        client=request.client.host if request.client else "unknown",
    )
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(
            f"Request failed: {e}",
            error=str(e),
            process_time_ms=round((time.time() - start_time) * 1000, 2),
            exc_info=True,
        )
        raise

    logger.info(
        f"Request completed: {request.method} {request.url.path} - Status: {response.status_code}",
        status_code=response.status_code,
        process_time_ms=round((time.time() - start_time) * 1000, 2),
    )
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    if exc.status_code >= 500:
        logger.error(f"{exc.kind}: {exc.message}", path=request.url.path, exc_info=exc)
    else:
        logger.info(f"{exc.kind}: {exc.message}", path=request.url.path, field=exc.field)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # malformed input is a client error like any other validation failure
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "validation_error",
            "message": first.get("msg", "Invalid request"),
            "field": ".".join(location) or None,
        },
    )


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
app.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])


@app.get("/")
def root():
    return {"message": f"{settings.app_name} is running"}


@app.get("/health")
def health_check():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)
