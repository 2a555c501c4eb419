from typing import Protocol, List

from gcpvault.dto.gcp import RolesetRequest, ServiceAccountKeyResult, TokenResult

class GcpSecretsServiceProtocol(Protocol):
    def initialize(self) -> None:
        ...

    def configure_engine(self) -> None:
        ...

    def health_check(self, timeout: float = 5) -> None:
        ...

    def create_roleset(self, name: str, request: RolesetRequest, timeout: float) -> None:
        ...

    def list_rolesets(self, timeout: float) -> List[str]:
        ...

    def delete_roleset(self, name: str, timeout: float) -> None:
        ...

    def get_token(self, roleset_name: str, ttl: str, timeout: float) -> TokenResult:
        ...

    def get_service_account_key(self, roleset_name: str, timeout: float) -> ServiceAccountKeyResult:
        ...
