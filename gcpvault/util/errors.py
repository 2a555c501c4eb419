class ConfigError(Exception):
    """Settings could not be loaded or did not validate."""


class VaultGatewayError(Exception):
    """A call to Vault failed or returned something unusable."""


class MalformedResponseError(VaultGatewayError):
    """Vault answered, but a field was missing or had the wrong type."""


class EngineNotReadyError(VaultGatewayError):
    """Vault reported itself as sealed or not initialized."""
