import falcon
from cerberus import Validator

from gcpvault.dto.gcp import SECRET_TYPES, RolesetRequest
from gcpvault.resources.base_resource import BaseResource
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import VaultGatewayError
from gcpvault.util.logger import log

CREATE_TIMEOUT = 30
LIST_TIMEOUT = 15
DELETE_TIMEOUT = 15

ROLESET_SCHEMA = {
    'project': {'type': 'string', 'required': True, 'empty': False},
    'secret_type': {'type': 'string', 'required': True, 'allowed': list(SECRET_TYPES)},
    'token_scopes': {
        'type': ['string', 'list'],
        'nullable': True,
        'schema': {'type': 'string', 'empty': False},
    },
    'bindings': {
        'type': 'dict',
        'nullable': True,
        'keysrules': {'type': 'string', 'empty': False},
        'valuesrules': {'type': 'list', 'schema': {'type': 'string', 'empty': False}},
    },
    'ttl': {'type': 'string', 'nullable': True},
    'max_ttl': {'type': 'string', 'nullable': True},
}


class RolesetResource(BaseResource):
    """/api/v1/rolesets and /api/v1/rolesets/{name}."""

    def __init__(self, gcp_secrets_service: GcpSecretsServiceProtocol):
        self.gcp_secrets_service = gcp_secrets_service

    def on_get(self, req, resp):
        try:
            rolesets = self.gcp_secrets_service.list_rolesets(timeout=LIST_TIMEOUT)
            self.set_response(resp, falcon.HTTP_200, "Rolesets retrieved successfully", {
                "rolesets": rolesets,
                "count": len(rolesets),
            })
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_500, "Failed to list rolesets", str(e))

    def on_post(self, req, resp):
        self.handle_error(resp, falcon.HTTP_400, "Roleset name is required")

    def on_delete(self, req, resp):
        self.handle_error(resp, falcon.HTTP_400, "Roleset name is required")

    def on_post_item(self, req, resp, name):
        try:
            self.require_name(name)
            body = self.parse_request_body(req)
            request = self.validate_body(body)
            self.gcp_secrets_service.create_roleset(name, request, timeout=CREATE_TIMEOUT)
            self.set_response(resp, falcon.HTTP_201, "Roleset created successfully", {"name": name})
        except falcon.HTTPBadRequest as e:
            self.handle_error(resp, falcon.HTTP_400, e.description)
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_500, "Failed to create roleset", str(e))

    def on_delete_item(self, req, resp, name):
        try:
            self.require_name(name)
            self.gcp_secrets_service.delete_roleset(name, timeout=DELETE_TIMEOUT)
            self.set_response(resp, falcon.HTTP_200, "Roleset deleted successfully", {"name": name})
        except falcon.HTTPBadRequest as e:
            self.handle_error(resp, falcon.HTTP_400, e.description)
        except VaultGatewayError as e:
            self.handle_error(resp, falcon.HTTP_500, "Failed to delete roleset", str(e))

    def validate_body(self, body):
        if not isinstance(body, dict):
            raise falcon.HTTPBadRequest(description="Body must be a JSON object")
        v = Validator(ROLESET_SCHEMA, purge_unknown=True)
        if not v.validate(body):
            log(f"Invalid roleset body: {v.errors}", "ERROR")
            raise falcon.HTTPBadRequest(description=f"Invalid body: {v.errors}")
        return RolesetRequest.from_body(v.document)
