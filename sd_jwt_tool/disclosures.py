"""Disclosure encoding, decoding and hashing."""

import json
import logging
import secrets
import binascii
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives import hashes

from .constants import DEFAULT_SD_ALG, MINIMUM_SALT_LENGTH
from .encoding import b64url_encode, encode_base64url, decode_base64url
from .errors import UnsupportedAlgorithmError, MalformedDisclosureError, InvalidInputError
from .schemas import Disclosable, ObjectPropertyClaim, ArrayElementClaim

logger = logging.getLogger(__name__)

def create_salt(length: int = MINIMUM_SALT_LENGTH) -> str:
    """Returns `length` random bytes as base64url text."""
    if length < MINIMUM_SALT_LENGTH:
        raise InvalidInputError(f"Salt length must be at least {MINIMUM_SALT_LENGTH} bytes, got {length}.")
    return b64url_encode(secrets.token_bytes(length))


def hash_disclosure(disclosure: str, sd_alg: str = DEFAULT_SD_ALG) -> str:
    """
    Hashes a disclosure with the given _sd_alg.

    The digest is computed over the ASCII bytes of the base64url disclosure
    string itself, not over the decoded claim.

    Args:
        disclosure: The base64url-encoded disclosure.
        sd_alg: The hash algorithm identifier. Only 'sha-256' is supported.

    Returns:
        The base64url-encoded digest, without padding.

    Raises:
        UnsupportedAlgorithmError: If sd_alg is not supported.
    """
    if sd_alg != DEFAULT_SD_ALG:
        raise UnsupportedAlgorithmError(f"Unsupported sd_alg: {sd_alg}")
    hasher = hashes.Hash(hashes.SHA256())
    hasher.update(disclosure.encode('utf-8'))
    return b64url_encode(hasher.finalize())


def _decode_disclosure(disclosure: str) -> List[Any]:
    try:
        decoded = json.loads(decode_base64url(disclosure))
    except (binascii.Error, ValueError, RecursionError) as e:
        # json.JSONDecodeError and UnicodeDecodeError are both ValueErrors
        raise MalformedDisclosureError(f"Could not decode disclosure: {e}")

    if not isinstance(decoded, list):
        raise MalformedDisclosureError(f"Invalid disclosure format, expected a JSON array: {decoded!r}")
    if len(decoded) not in (2, 3):
        raise MalformedDisclosureError(f"Decoded disclosure array length {len(decoded)} is not supported")
    if not isinstance(decoded[0], str):
        raise MalformedDisclosureError("Disclosure salt must be a string")
    if len(decoded) == 3 and not isinstance(decoded[1], str):
        raise MalformedDisclosureError("Object property disclosure key must be a string")
    return decoded


def parse_disclosure(disclosure: str, sd_alg: str = DEFAULT_SD_ALG) -> Disclosable:
    """
    Parses a base64url disclosure into a Disclosable.

    A two-element array becomes an ArrayElementClaim, a three-element array
    an ObjectPropertyClaim with fields in [salt, key, value] order.

    Raises:
        MalformedDisclosureError: If the disclosure is not a base64url JSON
                                  array of length 2 or 3.
        UnsupportedAlgorithmError: If sd_alg is not supported.
    """
    digest = hash_disclosure(disclosure, sd_alg)
    decoded = _decode_disclosure(disclosure)

    if len(decoded) == 2:
        claim = ArrayElementClaim(salt=decoded[0], value=decoded[1])
    else:
        claim = ObjectPropertyClaim(salt=decoded[0], key=decoded[1], value=decoded[2])

    return Disclosable(
        disclosure=disclosure,
        digest=digest,
        decoded_disclosure=decoded,
        claim=claim
    )


def _spec_stringify(elements: List[Any]) -> str:
    """Element-wise compact JSON joined with ', ', as in the published SD-JWT examples."""
    return "[" + ", ".join(json.dumps(e, separators=(',', ':'), ensure_ascii=False) for e in elements) + "]"


def _to_disclosure(elements: List[Any], spec_compat_stringify: bool = False) -> str:
    if spec_compat_stringify:
        stringified = _spec_stringify(elements)
    else:
        stringified = json.dumps(elements, separators=(',', ':'), ensure_ascii=False)
    return encode_base64url(stringified)


def create_object_property_disclosable(
    key: str,
    value: Any,
    salt: Optional[str] = None,
    sd_alg: str = DEFAULT_SD_ALG,
    spec_compat_stringify: bool = False
) -> Disclosable:
    """
    Creates an object property disclosure for `key: value`.

    Args:
        key: The claim name.
        value: Any JSON value.
        salt: Optional fixed salt, useful for reproducing test vectors.
              A fresh salt is generated when omitted.
        sd_alg: Hash algorithm for the digest.
        spec_compat_stringify: Serialize with ', ' separators between the
                               array elements.
    """
    if salt is None:
        salt = create_salt()
    disclosure = _to_disclosure([salt, key, value], spec_compat_stringify)
    return parse_disclosure(disclosure, sd_alg)


def create_array_element_disclosable(
    value: Any,
    salt: Optional[str] = None,
    sd_alg: str = DEFAULT_SD_ALG,
    spec_compat_stringify: bool = False
) -> Disclosable:
    """Creates an array element disclosure for `value`. See create_object_property_disclosable."""
    if salt is None:
        salt = create_salt()
    disclosure = _to_disclosure([salt, value], spec_compat_stringify)
    return parse_disclosure(disclosure, sd_alg)


def build_digest_disclosable_map(disclosures: List[str], sd_alg: str = DEFAULT_SD_ALG) -> Dict[str, Disclosable]:
    """
    Builds the digest -> Disclosable lookup used to reconstruct a payload.

    Identical digests are not deduplicated; the last disclosure wins.
    """
    digest_map: Dict[str, Disclosable] = {}
    for disclosure in disclosures:
        disclosable = parse_disclosure(disclosure, sd_alg)
        existing = digest_map.get(disclosable.digest)
        if existing is not None and existing.disclosure != disclosable.disclosure:
            logger.warning(f"Digest collision between distinct disclosures: {disclosable.digest}")
        digest_map[disclosable.digest] = disclosable
    logger.debug(f"Built digest map with {len(digest_map)} entries from {len(disclosures)} disclosures")
    return digest_map
