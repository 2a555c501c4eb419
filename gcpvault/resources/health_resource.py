import falcon

from gcpvault.resources.base_resource import BaseResource
from gcpvault.services.gcp_secrets_service import HEALTH_TIMEOUT
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import VaultGatewayError


class HealthResource(BaseResource):
    def __init__(self, gcp_secrets_service: GcpSecretsServiceProtocol):
        self.gcp_secrets_service = gcp_secrets_service

    def on_get(self, req, resp):
        try:
            self.gcp_secrets_service.health_check(timeout=HEALTH_TIMEOUT)
            self.set_response(resp, falcon.HTTP_200, "Service is healthy")
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_503, "Service unavailable", str(e))
