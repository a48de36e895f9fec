from __future__ import annotations
import os, sys, time, logging
from pathlib import Path
from typing import Dict, Any, Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, Body, Query, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pydantic import BaseModel, Field, field_validator

# ====== Path / Constants ======
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from plg.errors import ClassificationError, InitError  # noqa: E402
from plg.features.config import FEATURE_VERSION  # noqa: E402
from plg.models.infer import Engine, load_engine  # noqa: E402

ARTIFACT_DIR = Path(os.getenv("PLG_ARTIFACT_DIR", str(ROOT_DIR / "models")))
APP_VERSION = "2.1.0"

# ====== Logging ======
logging.basicConfig(
    level=os.getenv("PLG_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("PLG_API")

# One engine per process, built at startup and never mutated
ENGINE: Optional[Engine] = None
INIT_ERROR: Optional[str] = None

# ====== Schemas ======
class ClassifyRequest(BaseModel):
    url: str = Field(..., min_length=1)
    debug: bool = Field(False)

    @field_validator("url")
    @classmethod
    def _clean(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be blank")
        return v

class HealthResponse(BaseModel):
    status: str
    ready: bool
    version: str
    feature_version: str
    threshold: Optional[float] = None
    error: Optional[str] = None

# ====== Lifespan / Engine Loader ======
def _init_engine() -> None:
    global ENGINE, INIT_ERROR
    try:
        ENGINE = load_engine(ARTIFACT_DIR)
        INIT_ERROR = None
    except InitError as e:
        log.error("Engine başlatılamadı (%s): %s", ARTIFACT_DIR, e)
        ENGINE = None
        INIT_ERROR = str(e)

@asynccontextmanager
async def lifespan(app: FastAPI):
    t0 = time.time()
    _init_engine()
    log.info("Başlangıç süresi: %.0f ms", (time.time() - t0) * 1000)
    yield
    log.info("Uygulama kapanıyor.")

# ====== App Init ======
app = FastAPI(
    title="Page Load Guard",
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

# ====== Error Handlers ======
def _error(request: Request, status_code: int, error: str, detail: Any) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "detail": detail,
            "path": request.url.path,
            "timestamp": int(time.time() * 1000),
        },
    )

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    detail = [{"loc": list(e.get("loc", ())), "msg": e.get("msg", "")} for e in exc.errors()]
    return _error(request, 422, "validation_error", detail)

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error(request, exc.status_code, "http_exception", exc.detail)

@app.exception_handler(ClassificationError)
async def classification_exception_handler(request: Request, exc: ClassificationError):
    return _error(request, 500, "classification_error", str(exc))

# ====== Middleware ======
@app.middleware("http")
async def global_mw(request: Request, call_next):
    start = time.time()
    path = request.url.path

    headers_extra = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }

    resp: Response = await call_next(request)

    if path.startswith(("/classify", "/health")):
        resp.headers["Cache-Control"] = "no-store"

    for k, v in headers_extra.items():
        resp.headers.setdefault(k, v)

    duration_ms = (time.time() - start) * 1000
    resp.headers["X-Request-Latency-ms"] = f"{duration_ms:.1f}"
    return resp

# ====== Helpers ======
def _engine() -> Engine:
    if ENGINE is None:
        raise HTTPException(status_code=503, detail=INIT_ERROR or "engine not ready")
    return ENGINE

def classify(url: str, debug: bool) -> Dict[str, Any]:
    engine = _engine()
    t0 = time.time()
    verdict = engine.classify(url)
    out: Dict[str, Any] = {"url": url, **verdict.to_dict()}
    out["latency_ms"] = round((time.time() - t0) * 1000, 1)
    out["timestamp"] = int(time.time() * 1000)
    if debug:
        out["explain"] = engine.explain(url)
    return out

# ====== Routes ======
@app.get("/health", response_model=HealthResponse, tags=["system"])
def health():
    return {
        "status": "active" if ENGINE is not None else "not_ready",
        "ready": ENGINE is not None,
        "version": APP_VERSION,
        "feature_version": FEATURE_VERSION,
        "threshold": ENGINE.threshold if ENGINE is not None else None,
        "error": INIT_ERROR,
    }

@app.post("/classify", tags=["inference"])
def classify_post(payload: ClassifyRequest = Body(...)):
    return classify(payload.url, payload.debug)

@app.get("/classify", tags=["inference"])
def classify_get(
    url: str = Query(..., min_length=1),
    debug: bool = Query(False),
):
    url = url.strip()
    if not url:
        raise HTTPException(status_code=400, detail="url must not be blank")
    return classify(url, debug)

@app.get("/ping", tags=["system"])
def ping():
    return PlainTextResponse("pong", headers={"Cache-Control": "no-store"})

# ====== Local run ======
if __name__ == "__main__":
    import uvicorn
    host = os.getenv("PLG_HOST", "127.0.0.1")
    port = int(os.getenv("PLG_PORT", "8081"))
    log.info("Başlatılıyor: http://%s:%d/", host, port)
    uvicorn.run("app.main:app", host=host, port=port)
