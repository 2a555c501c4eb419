import falcon

from gcpvault.resources.base_resource import BaseResource
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import VaultGatewayError

KEY_TIMEOUT = 30


class KeyResource(BaseResource):
    def __init__(self, gcp_secrets_service: GcpSecretsServiceProtocol):
        self.gcp_secrets_service = gcp_secrets_service

    def on_post(self, req, resp):
        self.handle_error(resp, falcon.HTTP_400, "Roleset name is required")

    def on_post_item(self, req, resp, name):
        try:
            self.require_name(name)
            key = self.gcp_secrets_service.get_service_account_key(name, timeout=KEY_TIMEOUT)
            self.set_response(resp, falcon.HTTP_200, "Service account key generated successfully", key.to_dict())
        except falcon.HTTPBadRequest as e:
            self.handle_error(resp, falcon.HTTP_400, e.description)
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_500, "Failed to generate service account key", str(e))
