from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8080


@dataclass(frozen=True)
class VaultSettings:
    address: str = "http://127.0.0.1:8200"
    token: Optional[str] = None
    namespace: Optional[str] = None
    skip_verify: bool = False
    timeout: float = 30.0


@dataclass(frozen=True)
class GcpSettings:
    project_id: Optional[str] = None
    service_account_path: Optional[str] = None
    default_token_scopes: Tuple[str, ...] = ("https://www.googleapis.com/auth/cloud-platform",)
    default_ttl: str = "3600s"
    max_ttl: str = "7200s"
    disable_automated_rotation: bool = False


@dataclass(frozen=True)
class Settings:
    server: ServerSettings = ServerSettings()
    vault: VaultSettings = VaultSettings()
    gcp: GcpSettings = GcpSettings()
    log_level: str = "INFO"

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Settings":
        """Build settings from a normalized (validated, defaulted) config document."""
        server, vault, gcp = document["server"], document["vault"], document["gcp"]
        return cls(
            server=ServerSettings(host=server["host"], port=server["port"]),
            vault=VaultSettings(
                address=vault["address"],
                token=vault.get("token") or None,
                namespace=vault.get("namespace") or None,
                skip_verify=vault["skip_verify"],
                timeout=vault["timeout"],
            ),
            gcp=GcpSettings(
                project_id=gcp.get("project_id") or None,
                service_account_path=gcp.get("service_account_path") or None,
                default_token_scopes=tuple(gcp["default_token_scopes"]),
                default_ttl=gcp["default_ttl"],
                max_ttl=gcp["max_ttl"],
                disable_automated_rotation=gcp["disable_automated_rotation"],
            ),
            log_level=document["log"]["level"],
        )
