import json
import time
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Type

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from pydantic import BaseModel

from . import config, crud
from .errors import Err, NotFound, ValidationError
from .models import User, UserStore, users_store
from .schemas import UserCreate, UserIdParams, UserUpdate
from .validation import validate

SERVICE_NAME = config.SERVICE_NAME

# Config logging JSON (niveaux INFO, WARNING, ERROR)
logger.remove()  # Supprime le handler par défaut
logger.add(
    sink=config.LOG_FILE,
    format="{time:YYYY-MM-DDTHH:mm:ss.SSSZ} | {level} | {message} | {extra}",
    level=config.LOG_LEVEL,
    serialize=True,  # Format JSON
    rotation=config.LOG_ROTATION,
)

# Prometheus metrics
REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "method", "endpoint", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency in seconds",
    ["service", "method", "endpoint"]
)
ERROR_COUNT = Counter(
    "http_errors_total",
    "Total HTTP errors",
    ["service", "endpoint", "error_type"]
)

app = FastAPI(title="Users Service")
app.state.not_found_status = config.NOT_FOUND_STATUS_CODE


class RequestValidationFailed(Exception):
    """Raised by a validation dependency; rendered as a 400 by the handler below."""

    def __init__(self, error: ValidationError, endpoint: str):
        super().__init__("Validation error")
        self.error = error
        self.endpoint = endpoint


def format_response_time(seconds: float) -> str:
    ms = seconds * 1000
    return f"{ms / 1000:.3f} s" if ms >= 1000 else f"{ms:.3f} ms"


# Middleware pour logger les requests avec correlation ID (observabilité)
@app.middleware("http")
async def log_requests(request: Request, call_next):
    # Generate or propagate correlation ID (trace-id)
    trace_id = request.headers.get("X-Trace-ID", str(uuid.uuid4()))
    start_time = time.time()

    with logger.contextualize(trace_id=trace_id, service=SERVICE_NAME):
        logger.bind(method=request.method, url=str(request.url)).info(
            f"Request: {request.method} {request.url.path}"
        )

        response = await call_next(request)

        latency = time.time() - start_time

        REQUEST_COUNT.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        REQUEST_LATENCY.labels(
            service=SERVICE_NAME,
            method=request.method,
            endpoint=request.url.path
        ).observe(latency)

        # Access line: timestamp ip method url status - response time
        remote_ip = request.client.host if request.client else "-"
        url = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        logger.info(
            f"{crud.isoformat(datetime.now(timezone.utc))} {remote_ip} {request.method} {url} "
            f"{response.status_code} - {format_response_time(latency)}"
        )
        logger.bind(status=response.status_code, latency=latency).info(
            f"Response status: {response.status_code}"
        )

        response.headers["X-Trace-ID"] = trace_id
        return response


@app.exception_handler(RequestValidationFailed)
async def validation_failed_handler(request: Request, exc: RequestValidationFailed):
    logger.bind(details=[d.to_dict() for d in exc.error.details]).warning(
        f"Validation failed on {request.method} {request.url.path}"
    )
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=exc.endpoint, error_type="validation_error").inc()
    return JSONResponse(
        status_code=400,
        content={
            "status": "error",
            "message": "Validation error",
            "details": [d.to_dict() for d in exc.error.details],
        },
    )


async def read_json_body(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return None
    try:
        return json.loads(body)
    except ValueError:
        ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=request.url.path, error_type="malformed_json").inc()
        raise HTTPException(status_code=400, detail="Malformed JSON body")


def validate_request(schema: Type[BaseModel], source: str):
    """Build a dependency validating ``source`` ("body" or "params") against ``schema``."""

    async def dependency(request: Request) -> dict:
        if source == "body":
            raw = await read_json_body(request)
        else:
            raw = dict(request.path_params)

        result = validate(schema, raw)
        if isinstance(result, Err):
            route = request.scope.get("route")
            raise RequestValidationFailed(result.error, getattr(route, "path", request.url.path))
        return result.value

    return dependency


def get_store() -> UserStore:
    return users_store


def not_found(user_id: Optional[str], endpoint: str, error: NotFound) -> HTTPException:
    logger.bind(error=error.kind).warning(f"User {user_id} not found")
    ERROR_COUNT.labels(service=SERVICE_NAME, endpoint=endpoint, error_type="not_found").inc()
    return HTTPException(status_code=app.state.not_found_status, detail="User not found")


@app.get("/metrics")
async def metrics():
    """Endpoint /metrics compatible Prometheus"""
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


@app.get("/health")
async def health():
    """Health check endpoint"""
    return {"status": "healthy", "service": SERVICE_NAME}


@app.get("/users", response_model=List[User])
async def get_users(store: UserStore = Depends(get_store)):
    logger.info("Fetching all users")
    return crud.list_users(store)


@app.post("/user", response_model=User, status_code=201)
async def create_user(
    payload: dict = Depends(validate_request(UserCreate, "body")),
    store: UserStore = Depends(get_store),
):
    logger.info(f"Creating user: {payload['firstName']} {payload['lastName']}")
    return crud.create_user(store, payload)


@app.get("/user/{id}", response_model=User)
async def get_user(
    params: dict = Depends(validate_request(UserIdParams, "params")),
    store: UserStore = Depends(get_store),
):
    logger.info(f"Fetching user {params['id']}")
    result = crud.get_user_by_id(store, params["id"])
    if isinstance(result, Err):
        raise not_found(params["id"], "/user/{id}", result.error)
    return result.value


@app.patch("/user/{id}", response_model=User)
async def update_user(
    params: dict = Depends(validate_request(UserIdParams, "params")),
    changes: dict = Depends(validate_request(UserUpdate, "body")),
    store: UserStore = Depends(get_store),
):
    logger.bind(fields=sorted(changes)).info(f"Updating user {params['id']}")
    result = crud.update_user(store, params["id"], changes)
    if isinstance(result, Err):
        raise not_found(params["id"], "/user/{id}", result.error)
    return result.value


@app.delete("/user/{id}", response_model=User)
async def delete_user(
    params: dict = Depends(validate_request(UserIdParams, "params")),
    store: UserStore = Depends(get_store),
):
    logger.info(f"Deleting user {params['id']}")
    result = crud.delete_user(store, params["id"])
    if isinstance(result, Err):
        raise not_found(params["id"], "/user/{id}", result.error)
    return result.value


def run():
    logger.info(f"Starting Users Service on port {config.PORT}")
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    run()
