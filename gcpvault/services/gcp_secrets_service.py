import json
from typing import Any, Dict, List, Optional

import hvac
import hvac.exceptions
import requests
import urllib3

from gcpvault.dto.gcp import (
    ACCESS_TOKEN,
    RolesetRequest,
    ServiceAccountKeyResult,
    TokenResult,
    decode_roleset_names,
)
from gcpvault.dto.settings import Settings
from gcpvault.services.protocol.gcp_secrets_service_protocol import GcpSecretsServiceProtocol
from gcpvault.util.errors import EngineNotReadyError, VaultGatewayError
from gcpvault.util.logger import log

MOUNT_PATH = "gcp"
MOUNT_DESCRIPTION = "GCP secrets engine for managing access tokens and service account keys"
HEALTH_TIMEOUT = 5

UPSTREAM_ERRORS = (hvac.exceptions.VaultError, requests.exceptions.RequestException)


def create_vault_client(settings: Settings) -> hvac.Client:
    """Build the single hvac client shared by every request."""
    vault = settings.vault
    if vault.skip_verify:
        urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)
        log("TLS verification for Vault is disabled", "WARNING")

    client = hvac.Client(
        url=vault.address,
        token=vault.token,
        namespace=vault.namespace,
        verify=not vault.skip_verify,
        timeout=vault.timeout,
    )
    try:
        authenticated = client.is_authenticated()
    except UPSTREAM_ERRORS as e:
        raise VaultGatewayError(f"Failed to reach Vault at {vault.address}: {e}") from e
    if not authenticated:
        raise VaultGatewayError("Failed to authenticate with Vault")
    return client


def render_bindings(bindings: Dict[str, List[str]]) -> str:
    """Render resource -> roles as the JSON bindings document the GCP engine parses."""
    return json.dumps({
        "resource": {
            resource: {"roles": sorted(set(roles))}
            for resource, roles in bindings.items()
        }
    }, sort_keys=True)


def _unwrap(response: Any) -> Any:
    # hvac >= 2 returns the whole envelope, older versions only the data
    if isinstance(response, dict) and isinstance(response.get("data"), dict):
        return response["data"]
    return response


class GcpSecretsService(GcpSecretsServiceProtocol):
    def __init__(self, client: hvac.Client, settings: Settings):
        self.client = client
        self.settings = settings

    def initialize(self) -> None:
        """Enable the GCP secrets engine at gcp/ unless it is already mounted."""
        log("Initializing Vault GCP secrets engine...")
        try:
            mounts = _unwrap(self.client.sys.list_mounted_secrets_engines()) or {}
        except UPSTREAM_ERRORS as e:
            raise VaultGatewayError(f"failed to list mounts: {e}") from e

        if any(path.rstrip("/") == MOUNT_PATH for path in mounts):
            log(f"GCP secrets engine already enabled at {MOUNT_PATH}")
            return

        log("Enabling GCP secrets engine...")
        try:
            self.client.sys.enable_secrets_engine(
                backend_type="gcp",
                path=MOUNT_PATH,
                description=MOUNT_DESCRIPTION,
            )
        except UPSTREAM_ERRORS as e:
            if "path is already in use" in str(e):
                log(f"GCP secrets engine already enabled at {MOUNT_PATH}")
                return
            raise VaultGatewayError(f"failed to enable GCP secrets engine: {e}") from e
        log("GCP secrets engine enabled successfully")

    def configure_engine(self) -> None:
        log("Configuring GCP secrets engine...")
        gcp = self.settings.gcp
        config_data: Dict[str, Any] = {
            "ttl": gcp.default_ttl,
            "max_ttl": gcp.max_ttl,
            "disable_automated_rotation": gcp.disable_automated_rotation,
        }

        if gcp.service_account_path:
            try:
                with open(gcp.service_account_path, "r") as credentials_file:
                    config_data["credentials"] = credentials_file.read()
            except OSError as e:
                raise VaultGatewayError(f"failed to read service account file: {e}") from e

        self._request("post", f"{MOUNT_PATH}/config", "configure GCP engine",
                      self.settings.vault.timeout, json=config_data)
        log("GCP secrets engine configured successfully")

    def health_check(self, timeout: float = HEALTH_TIMEOUT) -> None:
        """Raise unless Vault answers its health probe as initialized and unsealed."""
        try:
            response = self.client.adapter.get("/v1/sys/health", raise_exception=False, timeout=timeout)
            health = response if isinstance(response, dict) else response.json()
        except (ValueError,) + UPSTREAM_ERRORS as e:
            raise VaultGatewayError(f"vault health check failed: {e}") from e

        initialized = health.get("initialized", False)
        sealed = health.get("sealed", True)
        if not initialized or sealed:
            raise EngineNotReadyError(f"vault is not ready: initialized={initialized}, sealed={sealed}")

    def create_roleset(self, name: str, request: RolesetRequest, timeout: float) -> None:
        log("Creating GCP roleset...", roleset=name)
        data: Dict[str, Any] = {
            "project": request.project,
            "secret_type": request.secret_type,
        }

        if request.token_scopes:
            data["token_scopes"] = request.token_scopes
        elif request.secret_type == ACCESS_TOKEN:
            data["token_scopes"] = list(self.settings.gcp.default_token_scopes)

        if request.bindings:
            data["bindings"] = render_bindings(request.bindings)

        if request.ttl:
            data["ttl"] = request.ttl

        if request.max_ttl:
            data["max_ttl"] = request.max_ttl

        self._request("post", f"{MOUNT_PATH}/roleset/{name}", "create roleset", timeout, json=data)
        log("GCP roleset created successfully", roleset=name)

    def get_token(self, roleset_name: str, ttl: str, timeout: float) -> TokenResult:
        log("Generating GCP access token...", roleset=roleset_name)
        path = f"{MOUNT_PATH}/token/{roleset_name}"
        if ttl:
            secret = self._request("post", path, "get access token", timeout, json={"ttl": ttl})
        else:
            secret = self._read(path, "get access token", timeout)

        if not secret or secret.get("data") is None:
            raise VaultGatewayError("no token data returned")

        token = TokenResult.from_vault(secret["data"])
        log("GCP access token generated successfully", roleset=roleset_name)
        return token

    def get_service_account_key(self, roleset_name: str, timeout: float) -> ServiceAccountKeyResult:
        log("Generating GCP service account key...", roleset=roleset_name)
        secret = self._read(f"{MOUNT_PATH}/key/{roleset_name}", "get service account key", timeout)

        if not secret or secret.get("data") is None:
            raise VaultGatewayError("no key data returned")

        key = ServiceAccountKeyResult.from_vault(secret["data"])
        log("GCP service account key generated successfully", roleset=roleset_name)
        return key

    def list_rolesets(self, timeout: float) -> List[str]:
        log("Listing GCP rolesets...", "DEBUG")
        secret = self._read(f"{MOUNT_PATH}/roleset", "list rolesets", timeout, params={"list": True})

        if not secret or secret.get("data") is None:
            return []

        return decode_roleset_names(secret["data"])

    def delete_roleset(self, name: str, timeout: float) -> None:
        log("Deleting GCP roleset...", roleset=name)
        self._request("delete", f"{MOUNT_PATH}/roleset/{name}", "delete roleset", timeout)
        log("GCP roleset deleted successfully", roleset=name)

    def _read(self, path: str, action: str, timeout: float, **kwargs) -> Optional[Dict[str, Any]]:
        # Vault answers 404 for a path with nothing behind it
        try:
            return self._request("get", path, action, timeout, **kwargs)
        except VaultGatewayError as e:
            if isinstance(e.__cause__, hvac.exceptions.InvalidPath):
                return None
            raise

    def _request(self, method: str, path: str, action: str, timeout: float, **kwargs) -> Optional[Dict[str, Any]]:
        """One logical call against Vault; returns the JSON body, or None for an empty (204) answer."""
        try:
            response = self.client.adapter.request(method, f"/v1/{path}", timeout=timeout, **kwargs)
        except UPSTREAM_ERRORS as e:
            raise VaultGatewayError(f"failed to {action}: {e}") from e
        return response if isinstance(response, dict) else None
