# services/errors.py
"""
Exception hierarchy shared by every component.

Each error carries a short public message (safe to return to a client) and the
HTTP status the API layer answers with. Diagnostic detail from third parties is
kept on `raw_body` and only ever written to logs or entity metadata.
"""


class ReactShareError(Exception):
    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# --- (a) Authentication ---

class Unauthorized(ReactShareError):
    status_code = 401
    default_message = "Unauthorized"


# --- (b) Missing or not owned, collapsed into one outward signal ---

class NotFoundOrDenied(ReactShareError):
    status_code = 404
    default_message = "Not found"


class AccountNotFound(NotFoundOrDenied):
    default_message = "No active account connected for this provider"


# --- (c) Configuration ---

class ConfigurationError(ReactShareError):
    status_code = 503
    default_message = "Service is not configured"


# --- (d) Third-party APIs ---

class UpstreamProviderError(ReactShareError):
    status_code = 502
    default_message = "Provider request failed"

    def __init__(self, message: str = None, raw_body=None, provider: str = None):
        super().__init__(message)
        self.raw_body = raw_body
        self.provider = provider


class TokenRefreshError(UpstreamProviderError):
    default_message = "Failed to refresh provider token"


class PublishError(UpstreamProviderError):
    default_message = "Provider rejected the upload"


# --- (e) Transient I/O ---

class TransientIOError(ReactShareError):
    status_code = 503
    default_message = "Temporary storage or network failure"


class DownloadError(TransientIOError):
    default_message = "Failed to download video"


class BlobStoreError(TransientIOError):
    default_message = "Object storage request failed"


class BlobNotFound(BlobStoreError):
    default_message = "Stored object not found"


class RecordStoreError(TransientIOError):
    default_message = "Database request failed"


class RelationMissingError(RecordStoreError):
    """The queried table does not exist. Callers of optional features treat it as empty."""
    default_message = "Relation does not exist"


# --- Client mistakes ---

class InvalidRequest(ReactShareError):
    status_code = 400
    default_message = "Invalid request"


class MediaNotReady(InvalidRequest):
    status_code = 409
    default_message = "Media has not finished uploading"


class CapabilityNotSupported(InvalidRequest):
    default_message = "Provider does not support this operation"


class EndpointNotDefined(CapabilityNotSupported):
    default_message = "Provider does not define this endpoint"


class UnknownProvider(InvalidRequest):
    default_message = "Unknown provider"


class ProviderUnavailable(InvalidRequest):
    default_message = "Provider is not available"


class PublishInProgress(InvalidRequest):
    status_code = 409
    default_message = "A publish for this reaction and provider is already in progress"
