"""Pydantic models for input validation and output structuring."""

from typing import Dict, Any, Optional, Literal, Union, List
from pydantic import BaseModel, ConfigDict, Field

from .constants import DEFAULT_SD_ALG, DEFAULT_SKEW_TIME

class InputSchema(BaseModel):
    func_name: Literal["issue", "decode", "verify", "hash-disclosure"]

    func_input_data: Dict[str, Any] = Field(default_factory=dict)

class ObjectPropertyClaim(BaseModel):
    """Cleartext form of an object property disclosure: [salt, key, value]."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["object_property"] = "object_property"
    salt: str
    key: str
    value: Any = None

class ArrayElementClaim(BaseModel):
    """Cleartext form of an array element disclosure: [salt, value]."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["array_element"] = "array_element"
    salt: str
    value: Any = None

SdClaim = Union[ObjectPropertyClaim, ArrayElementClaim]

class Disclosable(BaseModel):
    """A disclosure together with its digest and decoded claim."""
    model_config = ConfigDict(frozen=True)

    disclosure: str = Field(..., description="The base64url-encoded disclosure as sent on the wire.")
    digest: str = Field(..., description="Base64url digest of the disclosure string.")
    decoded_disclosure: List[Any] = Field(..., description="The JSON array the disclosure decodes to.")
    claim: SdClaim = Field(..., discriminator="kind")

class SplitSdJwt(BaseModel):
    """Parsed view of the compact <jwt>~<disclosures>~<kb-jwt> format."""
    jwt: str
    disclosures: List[str] = Field(default_factory=list)
    kb_jwt: Optional[str] = None

class SdJwtOptions(BaseModel):
    """Signing options for SD-JWT issuance."""
    issuer: str = Field(..., description="Issuer DID, written to the 'iss' claim.")
    signer: Dict[str, Any] = Field(..., description="The issuer's private key in JWK format.")
    alg: Optional[str] = Field(None, description="JWS algorithm; derived from the key when omitted.")
    expires_in: Optional[int] = Field(None, description="Seconds until expiry, added to 'nbf' or 'iat'.")
    canonicalize: bool = Field(False, description="Serialize the payload with sorted keys.")
    disclosures: List[str] = Field(default_factory=list)
    kb_jwt: Optional[str] = None

class VerifyPolicies(BaseModel):
    """Switches for the individual JWT claim checks."""
    now: Optional[int] = None
    exp: bool = True
    nbf: bool = True
    iat: bool = True
    aud: bool = True

class JwtVerifyOptions(BaseModel):
    """Options passed through to the JWT verifier."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    resolver: Optional[Any] = Field(None, description="Object with a resolve(did) -> DID document method.")
    audience: Optional[str] = None
    skew_time: int = DEFAULT_SKEW_TIME
    proof_purpose: Optional[str] = Field(None, description="Verification relationship to draw keys from, e.g. 'assertionMethod'.")
    policies: VerifyPolicies = Field(default_factory=VerifyPolicies)

class JwtDecoded(BaseModel):
    """Structurally decoded (unverified) JWT."""
    header: Dict[str, Any]
    payload: Dict[str, Any]
    signature: str
    data: str

class SdJwtDecoded(JwtDecoded):
    """Decoded SD-JWT with disclosures applied to the payload."""
    disclosures: List[str] = Field(default_factory=list)
    kb_jwt: Optional[str] = None

class JwtVerified(BaseModel):
    """Result of a successful signature verification."""
    verified: bool
    payload: Dict[str, Any]
    issuer: str
    signer: Dict[str, Any] = Field(..., description="The verification method that validated the signature.")
    jwt: str

class SdJwtPayloadHelperResult(BaseModel):
    """Payload and disclosables produced by sd_jwt_payload_helper."""
    sd_jwt_payload: Dict[str, Any]
    disclosables: List[Disclosable]

class IssueOutput(BaseModel):
    """Output data for the 'issue' function."""
    sd_jwt: str = Field(..., description="The compact SD-JWT including all disclosures.")
    disclosures: List[str] = Field(..., description="The disclosures appended to the SD-JWT.")
    sd_alg: str = DEFAULT_SD_ALG

class ErrorOutput(BaseModel):
    """Standardized error output format."""
    error: str = Field(..., description="A short error code or category.")
    message: str = Field(..., description="A human-readable description of the error.")
