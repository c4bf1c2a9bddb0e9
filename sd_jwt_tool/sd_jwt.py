"""SD-JWT issuance, decoding and verification."""

import json
import logging
from typing import Dict, Any, Optional, Union

from .constants import DEFAULT_SD_ALG, SD_ALG_KEY, SD_DIGESTS_KEY, ARRAY_DIGEST_KEY
from .disclosures import (
    build_digest_disclosable_map,
    create_object_property_disclosable,
    create_array_element_disclosable,
)
from .errors import UnsupportedAlgorithmError, InvalidInputError
from .expand import expand_disclosures
from .jwt_utils import JwtProvider, default_jwt_provider
from .schemas import (
    SdJwtOptions,
    JwtVerifyOptions,
    SdJwtDecoded,
    JwtVerified,
    SdJwtPayloadHelperResult,
)
from .serialization import form_sd_jwt, split_sd_jwt

logger = logging.getLogger(__name__)

def create_sd_jwt(
    payload: Dict[str, Any],
    options: Union[SdJwtOptions, Dict[str, Any]],
    header: Optional[Dict[str, Any]] = None,
    jwt_provider: Optional[JwtProvider] = None
) -> str:
    """
    Issues an SD-JWT: signs the payload and appends the disclosures from options.

    Args:
        payload: The SD-JWT payload; must carry '_sd_alg' set to 'sha-256'.
        options: Signing options (issuer, signer, alg, expires_in, canonicalize)
                 plus the disclosures and an optional key binding JWT.
        header: Extra JWS protected header fields.
        jwt_provider: The JWT signer; defaults to the jwcrypto provider.

    Returns:
        The compact SD-JWT, '<JWT>~<Disclosure 1>~...~<Disclosure N>~<KB-JWT>'.

    Raises:
        UnsupportedAlgorithmError: If '_sd_alg' is missing or unsupported.
    """
    if payload.get(SD_ALG_KEY) != DEFAULT_SD_ALG:
        raise UnsupportedAlgorithmError(f"Unsupported sd_alg: {payload.get(SD_ALG_KEY)}")
    if not isinstance(options, SdJwtOptions):
        options = SdJwtOptions.model_validate(options)

    provider = jwt_provider or default_jwt_provider
    jwt = provider.sign(payload, options, header)
    logger.info(f"Issued SD-JWT with {len(options.disclosures)} disclosures")
    return form_sd_jwt(jwt, options.disclosures, options.kb_jwt)


def decode_sd_jwt(sd_jwt: str, recurse: bool = True, jwt_provider: Optional[JwtProvider] = None) -> SdJwtDecoded:
    """
    Decodes an SD-JWT without verifying its signature and applies the disclosures.

    Checks performed:
    - the '_sd_alg' hash algorithm is supported
    - disclosures are well formed (arrays of length 2 or 3)
    - a disclosure never overwrites a claim already present

    '_sd' and '_sd_alg' are removed from the returned payload. Digests without
    a matching disclosure are ignored.

    Args:
        sd_jwt: The compact SD-JWT.
        recurse: Whether to apply disclosures inside nested objects and
                 disclosed values.
        jwt_provider: Structural JWT decoder; defaults to the jwcrypto provider.
    """
    split = split_sd_jwt(sd_jwt)
    provider = jwt_provider or default_jwt_provider
    decoded_jwt = provider.decode(split.jwt)

    sd_alg = decoded_jwt.payload.get(SD_ALG_KEY) or DEFAULT_SD_ALG
    if sd_alg != DEFAULT_SD_ALG:
        raise UnsupportedAlgorithmError(f"Unsupported sd_alg: {sd_alg}")

    digest_map = build_digest_disclosable_map(split.disclosures, sd_alg)
    # TODO: reject SD-JWTs in which a digest appears more than once in the payload
    # TODO: reject 'nbf', 'iat' and 'exp' when they are selectively disclosed instead of cleartext
    converted = expand_disclosures(decoded_jwt.payload, digest_map, recurse)
    converted.pop(SD_ALG_KEY, None)

    if split.kb_jwt:
        # TODO: verify the key binding JWT against the 'cnf' key, nonce and audience
        logger.debug("Key binding JWT present; it is passed through without verification")

    return SdJwtDecoded(
        header=decoded_jwt.header,
        payload=converted,
        signature=decoded_jwt.signature,
        data=decoded_jwt.data,
        disclosures=split.disclosures,
        kb_jwt=split.kb_jwt
    )


def verify_sd_jwt(
    sd_jwt: str,
    options: Optional[Union[JwtVerifyOptions, Dict[str, Any]]] = None,
    jwt_provider: Optional[JwtProvider] = None
) -> JwtVerified:
    """
    Verifies the SD-JWT signature and returns the reconstructed payload.

    The JWT signature is checked by the JWT provider; the payload of the
    result is replaced by decode_sd_jwt(sd_jwt, recurse=False).payload.
    Errors from the verifier are propagated unchanged.
    """
    if options is None:
        options = JwtVerifyOptions()
    elif not isinstance(options, JwtVerifyOptions):
        options = JwtVerifyOptions.model_validate(options)

    split = split_sd_jwt(sd_jwt)
    provider = jwt_provider or default_jwt_provider
    verified = provider.verify(split.jwt, options)
    decoded = decode_sd_jwt(sd_jwt, False, provider)
    return verified.model_copy(update={"payload": decoded.payload})


def sd_jwt_payload_helper(
    sd_claims: Dict[str, Any],
    clear_claims: Dict[str, Any],
    sd_alg: str = DEFAULT_SD_ALG,
    spec_compat_stringify: bool = False
) -> SdJwtPayloadHelperResult:
    """
    Builds a flat SD-JWT payload for issuers.

    Every non-list value in sd_claims becomes an object property disclosure
    referenced from the top-level '_sd'. Every list value stays in place with
    each element replaced by a '{"...": digest}' array element placeholder.
    Nested selective disclosure has to be assembled with
    create_object_property_disclosable / create_array_element_disclosable.
    """
    overlap = set(sd_claims) & set(clear_claims)
    if overlap:
        raise InvalidInputError(f"Claims cannot be both cleartext and selectively disclosable: {sorted(overlap)}")

    sd_digests = []
    array_claims: Dict[str, Any] = {}
    disclosables = []

    for key, value in sd_claims.items():
        if isinstance(value, list):
            element_disclosables = [
                create_array_element_disclosable(element, sd_alg=sd_alg, spec_compat_stringify=spec_compat_stringify)
                for element in value
            ]
            disclosables.extend(element_disclosables)
            array_claims[key] = [{ARRAY_DIGEST_KEY: d.digest} for d in element_disclosables]
        else:
            disclosable = create_object_property_disclosable(
                key, value, sd_alg=sd_alg, spec_compat_stringify=spec_compat_stringify
            )
            disclosables.append(disclosable)
            sd_digests.append(disclosable.digest)

    sd_jwt_payload = {
        SD_ALG_KEY: sd_alg,
        SD_DIGESTS_KEY: sd_digests,
        **json.loads(json.dumps(clear_claims)),
        **array_claims,
    }
    logger.debug(f"Built SD-JWT payload with {len(disclosables)} disclosables")
    return SdJwtPayloadHelperResult(sd_jwt_payload=sd_jwt_payload, disclosables=disclosables)
