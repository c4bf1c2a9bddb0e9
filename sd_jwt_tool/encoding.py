"""Base64url helpers shared by the disclosure codec and the JWT provider."""

import base64


def b64url_encode(data: bytes) -> str:
    """Base64url-encodes bytes without padding."""
    return base64.urlsafe_b64encode(data).decode('ascii').rstrip('=')


def _b64decode(data: str) -> bytes:
    """Base64url decoding that tolerates missing padding."""
    padded = data + '=' * (4 - len(data) % 4) if len(data) % 4 else data
    standard = padded.replace('-', '+').replace('_', '/')
    return base64.b64decode(standard, validate=True)


def encode_base64url(text: str) -> str:
    """Base64url-encodes UTF-8 text without padding."""
    return b64url_encode(text.encode('utf-8'))


def decode_base64url(data: str) -> str:
    """Decodes base64url text back to a UTF-8 string."""
    return _b64decode(data).decode('utf-8')
