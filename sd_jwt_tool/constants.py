"""Shared constants for the sd-jwt-tool."""

SD_JWT_SECRET_PREFIX: str = "SD_JWT_SECRET_"

DEFAULT_SD_ALG: str = "sha-256"
MINIMUM_SALT_LENGTH: int = 16

SD_DIGESTS_KEY: str = "_sd"
SD_ALG_KEY: str = "_sd_alg"
ARRAY_DIGEST_KEY: str = "..."
SD_JWT_SEPARATOR: str = "~"

MAX_EXPANSION_DEPTH: int = 64

DID_KEY_PREFIX: str = "did:key:"
MULTICODEC_ED25519_PUB_HEADER: bytes = b'\xed\x01'
MULTIBASE_BASE58BTC_PREFIX: str = "z"
DID_CONTEXT_V1: str = "https://www.w3.org/ns/did/v1"
ED25519_VERIFICATION_KEY_TYPE: str = "Ed25519VerificationKey2020"

DEFAULT_JWT_TYPE: str = "JWT"
DEFAULT_SKEW_TIME: int = 300

# JWK (kty, crv) -> default JWS algorithm
JWK_DEFAULT_ALGS = {
    ("OKP", "Ed25519"): "EdDSA",
    ("EC", "P-256"): "ES256",
    ("EC", "secp256k1"): "ES256K",
    ("EC", "P-384"): "ES384",
}
SUPPORTED_JWT_ALGS = frozenset(JWK_DEFAULT_ALGS.values())

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
