import logging
import time
import traceback
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv

# Uvicorn nereden çalışırsa çalışsın .env proje kökünden yüklensin
_PROJ_ROOT = Path(__file__).resolve().parent.parent
load_dotenv(_PROJ_ROOT / ".env")

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlmodel import Session

from app.api.admin import router as admin_router
from app.api.checkout import router as checkout_router
from app.api.webhooks import router as webhooks_router
from app.core.config import is_asaas_configured, settings
from app.core.database import engine, init_db
from app.core.exceptions import CheckoutError
from app.core.rate_limit import client_ip, limiter
from app.logging import setup_logging
from app.models import ErrorLog
from app.services.security_events import record_security_event
from app.services.task_queue import task_queue

setup_logging(level=settings.log_level)
log = logging.getLogger("checkout")


def _cors_origins_list() -> list[str]:
    if not settings.cors_origins or settings.cors_origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in settings.cors_origins.split(",") if o.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    log.info("Asaas invoice API configured: %s", "yes" if is_asaas_configured() else "NO (.env dosyasına ASAAS_API_KEY ekleyin)")
    if settings.task_worker_enabled:
        task_queue.start()
    yield
    if settings.task_worker_enabled:
        task_queue.stop()


app = FastAPI(
    title="Checkout API",
    description="Kurs erişimi satın alma: sipariş, ödeme onayı, hesap eşleştirme ve erişim",
    lifespan=lifespan,
)
app.state.limiter = limiter


def _error_response(request: Request, status_code: int, detail: str) -> JSONResponse:
    rid = getattr(request.state, "request_id", None)
    body = {"error": detail, "status_code": status_code}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=status_code, content=body)


def _rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    with Session(engine) as db:
        record_security_event(db, "rate_limit", ip=client_ip(request), endpoint=request.url.path, detail="Rate limit exceeded")
    return _error_response(request, 429, "Muitas requisições. Aguarde um minuto.")


app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)


@app.exception_handler(CheckoutError)
def checkout_error_handler(request: Request, exc: CheckoutError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("Checkout error: path=%s %s", request.url.path, exc)
        return _error_response(request, exc.status_code, "Erro interno no servidor.")
    return _error_response(request, exc.status_code, str(exc))


def _jsonable_errors(errs: list) -> list:
    # pydantic hata bağlamı (ctx) istisna nesneleri taşıyabilir
    return [{"loc": list(e.get("loc") or []), "msg": e.get("msg"), "type": e.get("type")} for e in errs]


@app.exception_handler(RequestValidationError)
def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errs = exc.errors()
    log.warning(
        "Request validation error (422): path=%s method=%s detail=%s",
        request.url.path,
        request.method,
        errs,
    )
    first = errs[0] if errs else {}
    user_msg = first.get("msg") or "Requisição inválida."
    rid = getattr(request.state, "request_id", None)
    body = {"error": user_msg, "status_code": 422, "detail": _jsonable_errors(errs)}
    if rid:
        body["request_id"] = rid
    return JSONResponse(status_code=422, content=body)


@app.exception_handler(HTTPException)
def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error_response(request, exc.status_code, exc.detail if isinstance(exc.detail, str) else str(exc.detail))


@app.exception_handler(Exception)
def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled exception: path=%s %s", request.url.path, exc, exc_info=exc)
    try:
        with Session(engine) as db:
            db.add(ErrorLog(
                endpoint=request.url.path,
                method=request.method,
                request_id=getattr(request.state, "request_id", None),
                error_message=str(exc)[:2000],
                stack_trace="".join(traceback.format_exception(type(exc), exc, exc.__traceback__))[:10000],
            ))
            db.commit()
    except Exception as e:
        log.warning("ErrorLog write failed: %s", e)
    return _error_response(request, 500, "Erro inesperado no servidor.")


@app.middleware("http")
async def request_id_and_latency(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    start = time.perf_counter()
    response = await call_next(request)
    latency_ms = (time.perf_counter() - start) * 1000
    response.headers["X-Request-ID"] = request.state.request_id
    log.info(
        "request_id=%s method=%s path=%s status=%s latency_ms=%.2f",
        request.state.request_id,
        request.method,
        request.url.path,
        response.status_code,
        latency_ms,
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(checkout_router)
app.include_router(webhooks_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    database = "ok"
    try:
        with Session(engine) as db:
            db.exec(text("SELECT 1"))
    except Exception as e:
        log.warning("Health check database error: %s", e)
        database = "error"
    return {
        "status": "ok" if database == "ok" else "degraded",
        "database": database,
        "asaas_configured": is_asaas_configured(),
        "pending_tasks": task_queue.pending(),
    }
