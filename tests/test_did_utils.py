"""Unit tests for did_utils module"""

import json
import pytest
from unittest.mock import patch
import multibase

from sd_jwt_tool.did_utils import (
    sanitize_did_for_env,
    get_private_jwk_from_env,
    did_key_from_public_jwk,
    get_public_key_bytes_from_did,
    resolve_did,
    DidKeyResolver,
    public_jwk_from_verification_method,
    get_verification_methods,
)
from sd_jwt_tool.constants import (
    SD_JWT_SECRET_PREFIX,
    DID_KEY_PREFIX,
    MULTIBASE_BASE58BTC_PREFIX,
    ED25519_VERIFICATION_KEY_TYPE,
)
from sd_jwt_tool.encoding import _b64decode
from sd_jwt_tool.errors import KeyNotFoundError, InvalidKeyFormatError, DidError, ConfigurationError


ISSUER_DID = "did:key:z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK"
ISSUER_ENV_VAR = f"{SD_JWT_SECRET_PREFIX}did_key_z6MkhaXgBZDvotDkL5257faiztiGiC2QtKLGpbnnEGta2doK"

def test_sanitize_did_for_env():
    assert SD_JWT_SECRET_PREFIX + sanitize_did_for_env(ISSUER_DID) == ISSUER_ENV_VAR
    assert sanitize_did_for_env("did:web:issuer.example.com") == "did_web_issuer_example_com"

    with pytest.raises(TypeError):
        sanitize_did_for_env(None)

@patch('sd_jwt_tool.did_utils.os.getenv')
def test_get_private_jwk_from_env(mock_getenv):
    issuer_jwk = {"kty": "OKP", "crv": "Ed25519", "x": "public-part", "d": "private-part"}
    mock_getenv.return_value = json.dumps(issuer_jwk)

    assert get_private_jwk_from_env(ISSUER_DID) == issuer_jwk
    mock_getenv.assert_called_once_with(ISSUER_ENV_VAR)

def test_get_private_jwk_from_real_env(monkeypatch, ed25519_key_material):
    did = ed25519_key_material['did']
    monkeypatch.setenv(f"SD_JWT_SECRET_{sanitize_did_for_env(did)}", json.dumps(ed25519_key_material['private_jwk']))

    assert get_private_jwk_from_env(did) == ed25519_key_material['private_jwk']

@pytest.mark.parametrize("env_value,error_class,fragment", [
    (None, KeyNotFoundError, "not found"),
    ("{ truncated", InvalidKeyFormatError, "Failed to parse JSON"),
    (json.dumps({"kty": "OKP", "x": "public-only"}), InvalidKeyFormatError, "private JWK"),
    (json.dumps(["kty", "d"]), InvalidKeyFormatError, "private JWK"),
])
def test_get_private_jwk_from_env_errors(monkeypatch, env_value, error_class, fragment):
    if env_value is None:
        monkeypatch.delenv(ISSUER_ENV_VAR, raising=False)
    else:
        monkeypatch.setenv(ISSUER_ENV_VAR, env_value)

    with pytest.raises(error_class) as excinfo:
        get_private_jwk_from_env(ISSUER_DID)

    assert fragment in str(excinfo.value)
    assert ISSUER_ENV_VAR in str(excinfo.value)

def test_get_private_jwk_from_env_missing_names_did(monkeypatch):
    monkeypatch.delenv(ISSUER_ENV_VAR, raising=False)

    with pytest.raises(KeyNotFoundError) as excinfo:
        get_private_jwk_from_env(ISSUER_DID)

    assert ISSUER_DID in str(excinfo.value)
    assert excinfo.value.error_code == "KeyNotFound"

@patch('sd_jwt_tool.did_utils.sanitize_did_for_env')
def test_get_private_jwk_from_env_bad_did(mock_sanitize):
    mock_sanitize.side_effect = TypeError("DID must be a string")

    with pytest.raises(ConfigurationError):
        get_private_jwk_from_env(ISSUER_DID)

def test_did_key_from_public_jwk(ed25519_key_material):
    did = ed25519_key_material['did']

    assert did.startswith(DID_KEY_PREFIX)
    assert did.replace(DID_KEY_PREFIX, '').startswith(MULTIBASE_BASE58BTC_PREFIX + "6Mk")

    public_jwk = {k: v for k, v in ed25519_key_material['private_jwk'].items() if k != 'd'}
    assert did_key_from_public_jwk(public_jwk) == did
    assert get_public_key_bytes_from_did(did) == _b64decode(public_jwk['x'])

def test_did_key_from_public_jwk_rejects_other_keys(p256_issuer):
    with pytest.raises(InvalidKeyFormatError):
        did_key_from_public_jwk(p256_issuer['private_jwk'])

def test_get_public_key_bytes_from_did_invalid_prefix():
    """Test error when did:key prefix is invalid"""
    with pytest.raises(DidError) as excinfo:
        get_public_key_bytes_from_did("did:invalid:z6MkhNotAValidPrefix")
    assert "Invalid DID format" in str(excinfo.value)

def test_get_public_key_bytes_from_did_invalid_multibase():
    """Test error when multibase prefix is invalid"""
    with pytest.raises(DidError) as excinfo:
        get_public_key_bytes_from_did(f"{DID_KEY_PREFIX}y6MkInvalidMultibasePrefix")
    assert "Unsupported multibase encoding" in str(excinfo.value)

def test_get_public_key_bytes_from_did_invalid_multicodec():
    """Test error when multicodec header is not Ed25519"""
    # secp256k1 public key multicodec header
    encoded = multibase.encode('base58btc', b'\xe7\x01' + b'\x02' * 33).decode('ascii')

    with pytest.raises(DidError) as excinfo:
        get_public_key_bytes_from_did(f"{DID_KEY_PREFIX}{encoded}")
    assert "Unsupported key type" in str(excinfo.value)

def test_resolve_did(ed25519_key_material):
    did = ed25519_key_material['did']
    multibase_key = did[len(DID_KEY_PREFIX):]

    did_document = resolve_did(f"{did}#{multibase_key}")

    assert did_document["id"] == did
    vm = did_document["verificationMethod"][0]
    assert vm["id"] == f"{did}#{multibase_key}"
    assert vm["type"] == ED25519_VERIFICATION_KEY_TYPE
    assert vm["controller"] == did
    assert vm["publicKeyMultibase"] == multibase_key
    assert did_document["assertionMethod"] == [vm["id"]]
    assert did_document["authentication"] == [vm["id"]]
    assert DidKeyResolver().resolve(did) == did_document

def test_resolve_did_unsupported_method():
    with pytest.raises(DidError) as excinfo:
        resolve_did("did:web:example.com")
    assert "Unsupported DID method" in str(excinfo.value)

def test_public_jwk_from_verification_method(ed25519_key_material, p256_issuer):
    did_document = resolve_did(ed25519_key_material['did'])
    key = public_jwk_from_verification_method(did_document["verificationMethod"][0])
    assert json.loads(key.export_public())["x"] == ed25519_key_material['private_jwk']["x"]

    vm = p256_issuer['resolver'].resolve(p256_issuer['did'])["verificationMethod"][0]
    key = public_jwk_from_verification_method(vm)
    assert json.loads(key.export_public())["crv"] == "P-256"

    with pytest.raises(InvalidKeyFormatError):
        public_jwk_from_verification_method({"id": "did:example:123#key-1", "type": "Unknown"})

    with pytest.raises(InvalidKeyFormatError):
        public_jwk_from_verification_method({"id": "did:example:123#key-1", "publicKeyMultibase": "zBadKey"})

def test_get_verification_methods(p256_issuer):
    did = p256_issuer['did']
    did_document = p256_issuer['resolver'].resolve(did)

    assert [vm["id"] for vm in get_verification_methods(did_document)] == [f"{did}#keys-1"]
    assert len(get_verification_methods(did_document, "assertionMethod")) == 1
    assert get_verification_methods(did_document, "capabilityDelegation") == []
    assert get_verification_methods(did_document, "authentication") == []
    assert len(get_verification_methods(did_document, "assertionMethod", kid="#keys-1")) == 1
    assert get_verification_methods(did_document, kid="#keys-2") == []

def test_get_verification_methods_embedded():
    embedded = {"id": "did:example:123#embedded", "publicKeyJwk": {"kty": "OKP", "crv": "Ed25519", "x": "abc"}}
    did_document = {"id": "did:example:123", "verificationMethod": [], "assertionMethod": [embedded]}

    assert get_verification_methods(did_document, "assertionMethod") == [embedded]
