"""Compact SD-JWT serialization: <JWT>~<Disclosure 1>~...~<Disclosure N>~<optional KB-JWT>"""

from typing import List, Optional

from .constants import SD_JWT_SEPARATOR
from .errors import MalformedSdJwtError
from .schemas import SplitSdJwt


def form_sd_jwt(jwt: str, disclosures: List[str], kb_jwt: Optional[str] = None) -> str:
    """
    Joins a JWT, its disclosures and an optional key binding JWT.

    The disclosure list is always wrapped in separators, so an SD-JWT without
    disclosures or key binding JWT is '<JWT>~~'.
    """
    return jwt + SD_JWT_SEPARATOR + SD_JWT_SEPARATOR.join(disclosures) + SD_JWT_SEPARATOR + (kb_jwt or '')


def split_sd_jwt(sd_jwt: str) -> SplitSdJwt:
    """
    Splits a compact SD-JWT into the JWT, the disclosures and the key binding JWT.

    '<JWT>~' and '<JWT>~~' both carry no disclosures. Any other empty segment
    is kept and fails later as a malformed disclosure.

    Raises:
        MalformedSdJwtError: If the input contains no '~' separator.
    """
    if not isinstance(sd_jwt, str) or SD_JWT_SEPARATOR not in sd_jwt:
        raise MalformedSdJwtError(f"Invalid SD-JWT format: missing '{SD_JWT_SEPARATOR}' separator")

    parts = sd_jwt.split(SD_JWT_SEPARATOR)
    kb_jwt = parts.pop() or None
    jwt, *disclosures = parts
    if disclosures == ['']:
        disclosures = []
    return SplitSdJwt(jwt=jwt, disclosures=disclosures, kb_jwt=kb_jwt)
