import hvac.exceptions
import pytest

from gcpvault.dto.settings import GcpSettings, Settings
from gcpvault.services.gcp_secrets_service import GcpSecretsService


class NoContent:
    """Stands in for the requests.Response hvac hands back on a 204."""
    status_code = 204


class FakeSys:
    def __init__(self, vault):
        self.vault = vault

    def list_mounted_secrets_engines(self):
        self.vault.calls.append(("list_mounts",))
        if self.vault.list_mounts_error:
            raise self.vault.list_mounts_error
        return {"data": {path: {"type": kind} for path, kind in self.vault.mounts.items()}}

    def enable_secrets_engine(self, backend_type, path=None, description=None, **kwargs):
        self.vault.calls.append(("enable", backend_type, path, description))
        if self.vault.enable_error:
            raise self.vault.enable_error
        if f"{path}/" in self.vault.mounts:
            raise hvac.exceptions.InvalidRequest(f"path is already in use at {path}/")
        self.vault.mounts[f"{path}/"] = backend_type


class FakeAdapter:
    def __init__(self, vault):
        self.vault = vault

    def get(self, url, **kwargs):
        return self.request("get", url, **kwargs)

    def request(self, method, url, **kwargs):
        self.vault.requests.append((method, url, kwargs))
        path = url[len("/v1/"):]
        key = (method, path)
        if key in self.vault.responses:
            response = self.vault.responses[key]
            if isinstance(response, Exception):
                raise response
            return response
        return self.vault.handle(method, path, kwargs.get("json"), kwargs.get("params"))


class FakeVault:
    """In-memory Vault answering the calls the GCP secrets service makes."""

    def __init__(self, mounts=None):
        self.mounts = dict(mounts) if mounts is not None else {"sys/": "system", "secret/": "kv"}
        self.rolesets = {}
        self.config = None
        self.health = {"initialized": True, "sealed": False, "version": "1.15.0"}
        self.responses = {}
        self.calls = []
        self.requests = []
        self.list_mounts_error = None
        self.enable_error = None
        self.sys = FakeSys(self)
        self.adapter = FakeAdapter(self)

    def is_authenticated(self):
        return True

    def handle(self, method, path, body, params):
        if path == "sys/health":
            return self.health
        if path == "gcp/config" and method == "post":
            self.config = body
            return NoContent()
        if path == "gcp/roleset" and method == "get" and params == {"list": True}:
            if not self.rolesets:
                raise hvac.exceptions.InvalidPath()
            return {"data": {"keys": sorted(self.rolesets)}}
        if path.startswith("gcp/roleset/"):
            name = path[len("gcp/roleset/"):]
            if method == "post":
                self.rolesets[name] = body
                return NoContent()
            if method == "delete":
                self.rolesets.pop(name, None)
                return NoContent()
        if path.startswith("gcp/token/"):
            name = path[len("gcp/token/"):]
            self._require_roleset(name, "access_token")
            ttl = (body or {}).get("ttl", "3600s")
            return {"data": {"token": f"ya29.{name}", "token_ttl": ttl, "expires_at_seconds": 1700003600}}
        if path.startswith("gcp/key/"):
            name = path[len("gcp/key/"):]
            self._require_roleset(name, "service_account_key")
            return {"data": {
                "private_key_data": "eyJ0eXBlIjoic2VydmljZV9hY2NvdW50In0=",
                "key_algorithm": "KEY_ALG_RSA_2048",
                "key_type": "TYPE_GOOGLE_CREDENTIALS_FILE",
                "key_id": f"{name}-key",
            }}
        raise hvac.exceptions.InvalidPath(f"no handler for {method} {path}")

    def _require_roleset(self, name, secret_type):
        roleset = self.rolesets.get(name)
        if roleset is None:
            raise hvac.exceptions.InvalidRequest(f"role set '{name}' does not exist")
        if roleset["secret_type"] != secret_type:
            raise hvac.exceptions.InvalidRequest(f"role set '{name}' cannot generate {secret_type}")


@pytest.fixture
def settings():
    return Settings(gcp=GcpSettings(project_id="test-project"))


@pytest.fixture
def vault():
    return FakeVault()


@pytest.fixture
def service(vault, settings):
    return GcpSecretsService(vault, settings)
