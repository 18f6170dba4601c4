"""Error taxonomy shared by services and routes.

Routes translate these into ``{"error": message}`` bodies; see
``asset_ops.app.errors`` for the status mapping.
"""


class AssetOpsError(Exception):
    """Base class for all expected failures in the asset backend."""


class ConfigurationError(AssetOpsError):
    """A weight or threshold in system_settings is missing or unparseable."""


class NotFoundError(AssetOpsError):
    """A referenced asset, pin or matrix does not exist."""

    def __init__(self, entity: str, identifier: str):
        self.entity = entity
        self.identifier = identifier
        super().__init__(f"{entity} not found: {identifier}")


class ConflictError(AssetOpsError):
    """A unique identity already exists."""


class ValidationError(AssetOpsError):
    """The caller supplied malformed input."""


class StorageError(AssetOpsError):
    """A persistence read or write failed."""


class PinterestAPIError(AssetOpsError):
    """The Pinterest API returned a non-success response."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Pinterest API Error ({status_code}): {body}")
