import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from ..core.log_config import logger

class TimingMiddleware(BaseHTTPMiddleware):
    """Logs how long each request took and reports it in X-Process-Time."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        
        response = await call_next(request)
        
        elapsed_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{elapsed_time:.4f}"
        # Polling GETs arrive every few seconds per client; keep them out of INFO
        log = logger.debug if request.method == "GET" else logger.info
        log(f"{request.method} {request.url.path} -> {response.status_code} in {elapsed_time:.4f} seconds.")
        
        return response
