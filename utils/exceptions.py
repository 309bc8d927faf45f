"""
Exception hierarchy for the AI gateway.
Every error carries a stable code so API clients can react to the failure reason.
"""


class GatewayError(Exception):
    """Base exception for gateway operations."""

    code: str = "gateway_error"
    http_status: int = 500

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code

    def to_dict(self) -> dict:
        """Serialize error for API responses."""
        return {"error": self.code, "message": self.message}


class GatewayValidationError(GatewayError):
    """Malformed configuration or input, rejected before any network call."""
    code = "validation_error"
    http_status = 400


class InvalidInputError(GatewayValidationError):
    """Input rejected by the credential crypto layer."""
    code = "invalid_input"


class PathSyntaxError(GatewayValidationError):
    """Path expression outside the supported addressing grammar."""
    code = "invalid_path"


class CredentialMissingError(GatewayValidationError):
    """No usable secret could be resolved for the call."""
    code = "credential_missing"


class ConfigNotFoundError(GatewayError):
    code = "not_found"
    http_status = 404


class AuthFailureError(GatewayError):
    """Upstream rejected the credential (401/403)."""
    code = "auth_failure"
    http_status = 401


class RateLimitedError(GatewayError):
    """Upstream asked us to back off (429)."""
    code = "rate_limited"
    http_status = 429


class UpstreamTimeoutError(GatewayError):
    code = "timeout"
    http_status = 504


class UpstreamHTTPError(GatewayError):
    """Upstream answered with a non-success status not classified elsewhere."""
    code = "upstream_http_error"
    http_status = 502

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"AI API returned HTTP {status_code}")
        self.status_code = status_code

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status_code"] = self.status_code
        return data


class NetworkError(GatewayError):
    code = "network_error"
    http_status = 502


class MalformedResponseError(GatewayError):
    """Upstream body could not be parsed."""
    code = "malformed_response"
    http_status = 502


class NoContentExtractedError(GatewayError):
    """Upstream body parsed but the configured content path yielded nothing."""
    code = "no_content"
    http_status = 502


class DecryptionFailedError(GatewayError):
    code = "decryption_failed"
    http_status = 400


class PayloadTooLargeError(GatewayError):
    """Plaintext exceeds the RSA-OAEP capacity of the key."""
    code = "payload_too_large"
    http_status = 413
