from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from internmatch.api.routes import applications, matches, meta, profiles
from internmatch.core.config import settings
from internmatch.core.database import init_db


@asynccontextmanager
async def lifespan(_: FastAPI):
    if settings.auto_create_tables:
        init_db()
    yield


app = FastAPI(title="InternMatch API", version="0.1.0", lifespan=lifespan)

origins = [origin.strip() for origin in settings.cors_origins.split(",") if origin.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Request-Id"],
)


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid4().hex
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


def _register_routes(prefix: str = "") -> None:
    app.include_router(matches.router, tags=["matches"], prefix=prefix)
    app.include_router(profiles.router, tags=["profiles"], prefix=prefix)
    app.include_router(applications.router, tags=["applications"], prefix=prefix)
    app.include_router(meta.router, tags=["meta"], prefix=prefix)


_register_routes("")
_register_routes("/api")
