# --- imports (top of labscan/app.py) ---
import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Resolve paths early so env vars are available before importing the app modules
BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(ENV_PATH)

from labscan import __version__  # noqa: E402
from labscan.middleware.tracing import TRACE_ID_CTX_VAR, TracingMiddleware  # noqa: E402
from labscan.routes import labs_routes  # noqa: E402
from labscan.utils.exceptions import register_exception_handlers  # noqa: E402
from labscan.utils.rate_limit import limiter  # noqa: E402

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()
CORS_ORIGINS = [
    origin.strip()
    for origin in (os.getenv("CORS_ORIGINS") or "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if origin.strip()
]


# --- logging setup ---
class JsonFormatter(logging.Formatter):
    def format(self, record):  # type: ignore[override]
        message = record.msg if isinstance(record.msg, dict) else record.getMessage()
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "function": record.funcName,
            "message": message,
            "trace_id": TRACE_ID_CTX_VAR.get() or None,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging() -> logging.Logger:
    logger = logging.getLogger("labscan")
    logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    return logger


logger = configure_logging()

# --- app & router setup ---
app = FastAPI(title="LabScan", version=__version__)
app.state.limiter = limiter

app.add_middleware(TracingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["x-trace-id"],
)

register_exception_handlers(app)
app.include_router(labs_routes.router)


@app.get("/api/health")
def health():
    return {"status": "ok"}
