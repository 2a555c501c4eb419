import json

import falcon

from gcpvault.util.logger import log


class BaseResource:
    def require_name(self, name):
        if not name:
            raise falcon.HTTPBadRequest(description="Roleset name is required")
        return name

    def parse_request_body(self, req):
        body_raw = req.bounded_stream.read()
        if not body_raw:
            raise falcon.HTTPBadRequest(description="Missing body")
        try:
            return json.loads(body_raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            log(f"Invalid body: {str(e)}", "ERROR")
            raise falcon.HTTPBadRequest(description="Invalid JSON body")

    def set_response(self, resp, status, message, data=None):
        resp.status = status
        resp.media = {"message": message}
        if data is not None:
            resp.media["data"] = data

    def handle_error(self, resp, status, error_message, details=None):
        if details:
            log(f"Error: {error_message}: {details}", "ERROR")
        else:
            log(f"Error: {error_message}", "ERROR")
        resp.status = status
        resp.media = {"error": error_message}
        if details:
            resp.media["details"] = details
