"""Custom exception classes for sd-jwt-tool."""

class SdJwtToolError(Exception):
    """Base class for tool-specific errors."""
    def __init__(self, message: str, error_code: str = "ToolError"):
        self.message = message
        self.error_code = error_code
        super().__init__(f"[{error_code}] {message}")

class ConfigurationError(SdJwtToolError):
    """Error related to configuration or environment setup."""
    def __init__(self, message: str):
        super().__init__(message, error_code="ConfigurationError")

class InvalidInputError(SdJwtToolError):
    """Error for invalid input data."""
    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidInput")

class DidError(SdJwtToolError):
    """Error related to DID resolution."""
    def __init__(self, message: str):
        super().__init__(message, error_code="DidError")

class KeyNotFoundError(SdJwtToolError):
    """Error when a required cryptographic key is not found."""
    def __init__(self, message: str):
        super().__init__(message, error_code="KeyNotFound")

class InvalidKeyFormatError(SdJwtToolError):
    """Error when a key is found but is in an invalid format."""
    def __init__(self, message: str):
        super().__init__(message, error_code="InvalidKeyFormat")

class SdJwtError(SdJwtToolError):
    """Error related to SD-JWT processing."""
    def __init__(self, message: str):
        super().__init__(message, error_code="SdJwtError")

class UnsupportedAlgorithmError(SdJwtError):
    """The _sd_alg hash algorithm is not supported."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "UnsupportedAlgorithm"

class MalformedDisclosureError(SdJwtError):
    """A disclosure could not be decoded or has the wrong shape."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "MalformedDisclosure"

class DuplicateClaimError(SdJwtError):
    """A disclosed claim name already exists in the reconstructed object."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "DuplicateClaim"

class MalformedSdJwtError(SdJwtError):
    """The compact SD-JWT or its payload structure is invalid."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "MalformedSdJwt"

class MaxDepthExceededError(SdJwtError):
    """The payload nests deeper than the expander allows."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "MaxDepthExceeded"

class JwtError(SdJwtToolError):
    """Error related to JWT signing, decoding or verification."""
    def __init__(self, message: str):
        super().__init__(message, error_code="JwtError")

class InvalidJwtError(JwtError):
    """The JWT is not a well-formed compact JWS."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "InvalidJwt"

class SigningError(JwtError):
    """Error while producing a JWS signature."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "SigningError"

class SignatureError(JwtError):
    """Error related to cryptographic signature failure."""
    def __init__(self, message: str = "Signature verification failed"):
        super().__init__(message)
        self.error_code = "InvalidSignature"

class ExpiredJwtError(JwtError):
    """The JWT is expired or not yet valid."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "InvalidTime"

class AudienceMismatchError(JwtError):
    """The JWT audience does not match the expected audience."""
    def __init__(self, message: str):
        super().__init__(message)
        self.error_code = "InvalidAudience"
