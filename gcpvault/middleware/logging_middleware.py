import time

from gcpvault.util.logger import log


class LoggingMiddleware:
    def process_request(self, req, resp):
        req.context.start_time = time.monotonic()

    def process_response(self, req, resp, resource, req_succeeded):
        start = getattr(req.context, "start_time", None)
        duration_ms = (time.monotonic() - start) * 1000 if start is not None else 0.0
        status = resp.status if isinstance(resp.status, int) else str(resp.status).split(" ", 1)[0]
        level = "ERROR" if not req_succeeded else "INFO"
        log(
            "Request completed",
            level,
            status=status,
            method=req.method,
            path=req.path,
            query=req.query_string,
            ip=req.remote_addr,
            user_agent=f'"{req.user_agent or ""}"',
            duration=f"{duration_ms:.1f}ms",
        )
