"""Configuration for pytest"""

import json
import pytest
import logging
from jwcrypto import jwk

from sd_jwt_tool.did_utils import did_key_from_public_jwk
from sd_jwt_tool.errors import DidError

@pytest.fixture(autouse=True)
def setup_logging():
    logging.basicConfig(
        level=logging.DEBUG,
        format='%(levelname)s - %(name)s - %(message)s'
    )

    logging.getLogger('jwcrypto').setLevel(logging.WARNING)

    return logging.getLogger()

@pytest.fixture
def ed25519_key_material():
    """An Ed25519 private JWK and its did:key"""
    key = jwk.JWK.generate(kty='OKP', crv='Ed25519')
    private_jwk = json.loads(key.export_private())
    return {
        'did': did_key_from_public_jwk(private_jwk),
        'private_jwk': private_jwk,
    }

class StaticResolver:
    """Resolver returning fixed DID documents, for keys that are not did:key"""

    def __init__(self, documents):
        self.documents = documents
        self.calls = []

    def resolve(self, did):
        self.calls.append(did)
        if did not in self.documents:
            raise DidError(f"DID document not found: {did}")
        return self.documents[did]

@pytest.fixture
def p256_issuer():
    """A P-256 issuer with a did:example DID document resolved by a StaticResolver"""
    did = "did:example:issuer"
    key = jwk.JWK.generate(kty='EC', crv='P-256')
    public_jwk = json.loads(key.export_public())
    did_document = {
        "@context": "https://www.w3.org/ns/did/v1",
        "id": did,
        "verificationMethod": [
            {
                "id": f"{did}#keys-1",
                "type": "JsonWebKey2020",
                "controller": did,
                "publicKeyJwk": public_jwk,
            }
        ],
        "assertionMethod": [f"{did}#keys-1"],
        "capabilityDelegation": [f"{did}#some-key-that-does-not-exist"],
    }
    return {
        'did': did,
        'private_jwk': json.loads(key.export_private()),
        'resolver': StaticResolver({did: did_document}),
    }
