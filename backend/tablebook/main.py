import logging
from typing import Awaitable, Callable

from fastapi import FastAPI, Request, Response

from .config import get_settings
from .routers import availability, promotions, reservations
from .utils.trace import TRACE_HEADER, bind_trace_id, new_trace_id

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Tablebook API")


async def trace_id_middleware(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    trace_id = request.headers.get(TRACE_HEADER) or new_trace_id()
    bind_trace_id(trace_id)
    try:
        response = await call_next(request)
    finally:
        bind_trace_id(None)
    response.headers[TRACE_HEADER] = trace_id
    return response


app.middleware("http")(trace_id_middleware)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


app.include_router(availability.router)
app.include_router(promotions.router)
app.include_router(reservations.router)
