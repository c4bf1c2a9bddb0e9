"""Issuer key lookup and DID document handling for SD-JWT signing and verification."""

import os
import json
import logging
from typing import Dict, Any, List, Optional

from jwcrypto import jwk
import multibase

from .constants import (
    SD_JWT_SECRET_PREFIX,
    DID_KEY_PREFIX,
    DID_CONTEXT_V1,
    ED25519_VERIFICATION_KEY_TYPE,
    MULTICODEC_ED25519_PUB_HEADER,
    MULTIBASE_BASE58BTC_PREFIX,
)
from .encoding import b64url_encode, _b64decode
from .errors import DidError, KeyNotFoundError, InvalidKeyFormatError, ConfigurationError

logger = logging.getLogger(__name__)

def sanitize_did_for_env(did: str) -> str:
    """Maps a DID onto an environment variable suffix: ':' and '.' become '_'."""
    if not isinstance(did, str):
        raise TypeError("DID must be a string")
    return did.replace(":", "_").replace(".", "_")

def get_private_jwk_from_env(did: str) -> Dict[str, Any]:
    """
    Loads the signing key of an issuer DID from SD_JWT_SECRET_<sanitized did>.

    The variable holds the private JWK as JSON, e.g.
    SD_JWT_SECRET_did_key_z6Mk...='{"kty": "OKP", "crv": "Ed25519", "x": ..., "d": ...}'

    Raises:
        ConfigurationError: If no variable name can be derived from the DID.
        KeyNotFoundError: If the variable is unset.
        InvalidKeyFormatError: If the value is not JSON or lacks 'kty'/'d'.
    """
    try:
        env_var_name = SD_JWT_SECRET_PREFIX + sanitize_did_for_env(did)
    except TypeError as e:
        raise ConfigurationError(f"Cannot derive the secret variable name for DID {did}: {e}")
    logger.info(f"Looking up issuer key in {env_var_name}")

    raw_value = os.getenv(env_var_name)
    if raw_value is None:
        raise KeyNotFoundError(f"Secret environment variable '{env_var_name}' not found for DID '{did}'.")

    try:
        private_jwk = json.loads(raw_value)
    except json.JSONDecodeError:
        raise InvalidKeyFormatError(f"Failed to parse JSON from environment variable '{env_var_name}'.")

    if not isinstance(private_jwk, dict) or not private_jwk.keys() >= {"kty", "d"}:
        raise InvalidKeyFormatError(f"'{env_var_name}' does not hold a private JWK (needs 'kty' and 'd').")
    logger.debug(f"Loaded {private_jwk['kty']} key from {env_var_name}")
    return private_jwk


def did_key_from_public_jwk(public_jwk: Dict[str, Any]) -> str:
    """
    Derives the did:key identifier of an Ed25519 JWK.

    Private members of the JWK are ignored.

    Raises:
        InvalidKeyFormatError: If the JWK is not an Ed25519 OKP key.
    """
    if public_jwk.get("kty") != "OKP" or public_jwk.get("crv") != "Ed25519" or "x" not in public_jwk:
        raise InvalidKeyFormatError("did:key derivation requires an OKP Ed25519 JWK with an 'x' component.")
    pub_bytes = _b64decode(public_jwk["x"])
    if len(pub_bytes) != 32:
        raise InvalidKeyFormatError(f"Public key has incorrect length: {len(pub_bytes)} bytes (expected 32).")

    public_key_multibase = multibase.encode('base58btc', MULTICODEC_ED25519_PUB_HEADER + pub_bytes).decode('ascii')
    return f"{DID_KEY_PREFIX}{public_key_multibase}"


def get_public_key_bytes_from_multibase(multibase_key: str) -> bytes:
    """Decodes a 'z...' publicKeyMultibase value into the raw 32 byte Ed25519 key."""
    if not multibase_key.startswith(MULTIBASE_BASE58BTC_PREFIX):
        raise DidError(f"Unsupported multibase encoding for '{multibase_key}': only base58btc ('z') keys are accepted.")

    try:
        key_bytes = multibase.decode(multibase_key)
    except Exception as e:
        raise DidError(f"Could not decode multibase key '{multibase_key}': {e}")

    header, public_key_bytes = key_bytes[:2], key_bytes[2:]
    if header != MULTICODEC_ED25519_PUB_HEADER:
        raise DidError(f"Unsupported key type: multicodec header {header.hex()} is not ed25519-pub (ed01).")
    if len(public_key_bytes) != 32:
        raise DidError(f"Ed25519 public key must be 32 bytes, got {len(public_key_bytes)}.")
    return public_key_bytes


def get_public_key_bytes_from_did(did: str) -> bytes:
    """
    Returns the Ed25519 public key embedded in a did:key identifier.

    Raises:
        DidError: If the DID is not a did:key or the key is not Ed25519.
    """
    if not did.startswith(DID_KEY_PREFIX):
        raise DidError(f"Invalid DID format: '{did}' is not a {DID_KEY_PREFIX} identifier.")
    return get_public_key_bytes_from_multibase(did[len(DID_KEY_PREFIX):])


def resolve_did(did: str) -> Dict[str, Any]:
    """
    Builds the DID document of a did:key issuer.

    The single Ed25519 verification method is listed under both
    'authentication' and 'assertionMethod'. A fragment on the input is ignored.

    Raises:
        DidError: For DID methods other than did:key or malformed keys.
    """
    did = did.split('#')[0]
    if not did.startswith(DID_KEY_PREFIX):
        raise DidError(f"Unsupported DID method for '{did}'. Only {DID_KEY_PREFIX} can be resolved locally.")

    # raises DidError for malformed keys
    get_public_key_bytes_from_did(did)
    fingerprint = did[len(DID_KEY_PREFIX):]
    vm_id = f"{did}#{fingerprint}"

    did_document = {
        "@context": DID_CONTEXT_V1,
        "id": did,
        "verificationMethod": [
            {
                "id": vm_id,
                "type": ED25519_VERIFICATION_KEY_TYPE,
                "controller": did,
                "publicKeyMultibase": fingerprint
            }
        ],
        "authentication": [vm_id],
        "assertionMethod": [vm_id]
    }

    logger.debug(f"Resolved {did} to a single-key DID document")
    return did_document


class DidKeyResolver:
    """Resolver for did:key identifiers; documents are derived locally."""

    def resolve(self, did: str) -> Dict[str, Any]:
        return resolve_did(did)


def public_jwk_from_verification_method(verification_method: Dict[str, Any]) -> jwk.JWK:
    """
    Builds a public JWK from a DID document verification method.

    Supports 'publicKeyJwk' entries and Ed25519 'publicKeyMultibase' entries.

    Raises:
        InvalidKeyFormatError: If the method carries no usable key material.
    """
    if "publicKeyJwk" in verification_method:
        try:
            return jwk.JWK(**verification_method["publicKeyJwk"])
        except Exception as e:
            raise InvalidKeyFormatError(f"Invalid publicKeyJwk in {verification_method.get('id')}: {e}")

    if "publicKeyMultibase" in verification_method:
        try:
            public_key_bytes = get_public_key_bytes_from_multibase(verification_method["publicKeyMultibase"])
        except DidError as e:
            raise InvalidKeyFormatError(f"Invalid publicKeyMultibase in {verification_method.get('id')}: {e.message}")
        return jwk.JWK(kty='OKP', crv='Ed25519', x=b64url_encode(public_key_bytes))

    raise InvalidKeyFormatError(f"Verification method {verification_method.get('id')} has no supported public key.")


def get_verification_methods(
    did_document: Dict[str, Any],
    proof_purpose: Optional[str] = None,
    kid: Optional[str] = None
) -> List[Dict[str, Any]]:
    """
    Lists the verification methods of a DID document usable for a proof purpose.

    Args:
        did_document: The resolved DID document.
        proof_purpose: A verification relationship such as 'assertionMethod'.
                       All verification methods are returned when omitted.
        kid: Optional key id (JWS header 'kid') restricting the result.
    """
    methods = {vm["id"]: vm for vm in did_document.get("verificationMethod", []) if isinstance(vm, dict) and "id" in vm}

    if proof_purpose:
        candidates = []
        for entry in did_document.get(proof_purpose, []):
            if isinstance(entry, str) and entry in methods:
                candidates.append(methods[entry])
            elif isinstance(entry, dict):
                candidates.append(entry)
    else:
        candidates = list(methods.values())

    if kid:
        candidates = [vm for vm in candidates if vm.get("id") == kid or vm.get("id", "").endswith(kid)]
    return candidates
