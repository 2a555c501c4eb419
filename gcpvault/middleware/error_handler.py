import json
import traceback

import falcon

from gcpvault.util.logger import log


def handle_unexpected_error(req, resp, ex, params):
    """Last-resort handler: log the fault, answer a generic 500."""
    log(f"Unhandled exception while processing request: {ex!r}", "ERROR", method=req.method, path=req.path)
    log(traceback.format_exc(), "DEBUG")
    resp.status = falcon.HTTP_500
    resp.media = {"error": "Internal server error"}


def serialize_http_error(req, resp, exception):
    # falcon's own errors (unknown route, wrong method) use the same envelope as the resources
    body = {"error": exception.title}
    if exception.description:
        body["details"] = exception.description
    resp.text = json.dumps(body)
    resp.content_type = falcon.MEDIA_JSON
