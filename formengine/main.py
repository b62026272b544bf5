import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.applications import Starlette
from starlette.routing import Mount

from formengine.config import get_settings
from formengine.exceptions import (
    ActionInFlightError,
    AdapterError,
    AnswerValidationError,
    ConflictError,
    GateError,
    NotFound,
    SchemaError,
)
from formengine.mcp_server import mcp
from formengine.models.common import ErrorResponse
from formengine.routers.forms import router as forms_router

# --- FastAPI app ---

api = FastAPI(title="Formengine", version="0.1.0")
api.include_router(forms_router)


@api.get("/api/status")
def api_status() -> dict:
    settings = get_settings()
    return {"store_backend": settings.store_backend, "ready": True}


# --- Exception handlers ---

def _error(status_code: int, error_code: str, exc: Exception, **extra) -> JSONResponse:
    body = ErrorResponse(error_code=error_code, message=str(exc), **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@api.exception_handler(SchemaError)
async def schema_error_handler(request: Request, exc: SchemaError):
    return _error(422, "schema_error", exc, violations=exc.violations)


@api.exception_handler(AnswerValidationError)
async def answer_validation_error_handler(request: Request, exc: AnswerValidationError):
    return _error(422, "validation_error", exc, violations=[v.message for v in exc.violations])


@api.exception_handler(GateError)
async def gate_error_handler(request: Request, exc: GateError):
    state = exc.state.value if exc.state is not None else None
    return _error(403, "gate_closed", exc, state=state)


@api.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return _error(404, "not_found", exc)


@api.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return _error(409, "conflict", exc)


@api.exception_handler(AdapterError)
async def adapter_error_handler(request: Request, exc: AdapterError):
    return _error(502, "adapter_error", exc)


@api.exception_handler(ActionInFlightError)
async def in_flight_error_handler(request: Request, exc: ActionInFlightError):
    return _error(429, "in_flight", exc)


# --- Starlette root app ---

mcp_app = mcp.http_app(path="/", stateless_http=True)

app = Starlette(
    routes=[
        Mount("/mcp", app=mcp_app),
        Mount("/", app=api),
    ],
    lifespan=mcp_app.lifespan,
)


def run():
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "formengine.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
