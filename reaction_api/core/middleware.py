import time
import uuid
import logging
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from reaction_api.core.trace import set_trace_id
from reaction_api.services.identity_service import client_ip_from_headers

alog = logging.getLogger("access")

TRACE_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        # принимаем trace_id от балансировщика, иначе генерируем свой
        trace_id = request.headers.get(TRACE_HEADER) or str(uuid.uuid4())
        set_trace_id(trace_id)
        start = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers[TRACE_HEADER] = trace_id
            return response
        finally:
            alog.info(
                "access",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "query": str(request.url.query),
                    "status": status,
                    "latency_ms": int((time.perf_counter() - start) * 1000),
                    "client_ip": client_ip_from_headers(
                        request.headers,
                        request.client.host if request.client else None,
                    ),
                },
            )
