import json

import falcon

from gcpvault.resources.base_resource import BaseResource
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import VaultGatewayError

TOKEN_TIMEOUT = 30


class TokenResource(BaseResource):
    def __init__(self, gcp_secrets_service: GcpSecretsServiceProtocol):
        self.gcp_secrets_service = gcp_secrets_service

    def on_post(self, req, resp):
        self.handle_error(resp, falcon.HTTP_400, "Roleset name is required")

    def on_post_item(self, req, resp, name):
        try:
            self.require_name(name)
            ttl = self.parse_ttl(req)
            token = self.gcp_secrets_service.get_token(name, ttl, timeout=TOKEN_TIMEOUT)
            self.set_response(resp, falcon.HTTP_200, "Access token generated successfully", token.to_dict())
        except falcon.HTTPBadRequest as e:
            self.handle_error(resp, falcon.HTTP_400, e.description)
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_500, "Failed to generate access token", str(e))

    def parse_ttl(self, req):
        # ttl is optional, an unreadable body just means no override
        try:
            body = json.loads(req.bounded_stream.read() or b"{}")
        except (json.JSONDecodeError, UnicodeDecodeError):
            return ""
        ttl = body.get("ttl") if isinstance(body, dict) else None
        return ttl if isinstance(ttl, str) else ""
