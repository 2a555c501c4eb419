from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Union

from gcpvault.util.errors import MalformedResponseError

ACCESS_TOKEN = "access_token"
SERVICE_ACCOUNT_KEY = "service_account_key"
SECRET_TYPES = (ACCESS_TOKEN, SERVICE_ACCOUNT_KEY)


def _field(data: Dict[str, Any], name: str, kind):
    value = data.get(name)
    # bool is an int subclass, never a valid number here
    if value is None or isinstance(value, bool) or not isinstance(value, kind):
        raise MalformedResponseError(f"malformed Vault response: field '{name}' missing or not {kind}")
    return value


@dataclass
class RolesetRequest:
    project: str
    secret_type: str
    token_scopes: Optional[Union[str, List[str]]] = None
    bindings: Optional[Dict[str, List[str]]] = None
    ttl: Optional[str] = None
    max_ttl: Optional[str] = None

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "RolesetRequest":
        """Build from an already validated request body."""
        return cls(
            project=body["project"],
            secret_type=body["secret_type"],
            token_scopes=body.get("token_scopes"),
            bindings=body.get("bindings"),
            ttl=body.get("ttl"),
            max_ttl=body.get("max_ttl"),
        )


@dataclass(frozen=True)
class TokenResult:
    token: str
    token_ttl: str
    expires_at_seconds: int

    @classmethod
    def from_vault(cls, data: Dict[str, Any]) -> "TokenResult":
        token_ttl = data.get("token_ttl")
        # Vault reports the ttl as seconds; keep it a duration string
        if isinstance(token_ttl, int) and not isinstance(token_ttl, bool):
            token_ttl = f"{token_ttl}s"
        return cls(
            token=_field(data, "token", str),
            token_ttl=_field({"token_ttl": token_ttl}, "token_ttl", str),
            expires_at_seconds=int(_field(data, "expires_at_seconds", (int, float))),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ServiceAccountKeyResult:
    private_key_data: str
    key_algorithm: str
    key_type: str
    key_id: str

    @classmethod
    def from_vault(cls, data: Dict[str, Any]) -> "ServiceAccountKeyResult":
        return cls(
            private_key_data=_field(data, "private_key_data", str),
            key_algorithm=_field(data, "key_algorithm", str),
            key_type=_field(data, "key_type", str),
            key_id=_field(data, "key_id", str),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def decode_roleset_names(data: Dict[str, Any]) -> List[str]:
    keys = data.get("keys")
    if keys is None:
        return []
    if not isinstance(keys, list) or not all(isinstance(key, str) for key in keys):
        raise MalformedResponseError("malformed Vault response: 'keys' is not a list of strings")
    return list(keys)
