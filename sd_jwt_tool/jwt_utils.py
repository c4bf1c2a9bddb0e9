"""JWT signing, decoding and verification used by the SD-JWT orchestrators."""

import json
import time
import logging
import binascii
from typing import Dict, Any, Optional, Protocol, Union

from jwcrypto import jwk, jws

from .constants import DEFAULT_JWT_TYPE, JWK_DEFAULT_ALGS, SUPPORTED_JWT_ALGS
from .did_utils import DidKeyResolver, get_verification_methods, public_jwk_from_verification_method
from .encoding import decode_base64url
from .errors import (
    InvalidJwtError,
    SigningError,
    SignatureError,
    ExpiredJwtError,
    AudienceMismatchError,
    InvalidKeyFormatError,
)
from .schemas import SdJwtOptions, JwtVerifyOptions, JwtDecoded, JwtVerified

logger = logging.getLogger(__name__)

class JwtProvider(Protocol):
    """Capability interface for the JWT operations the SD-JWT layer depends on."""

    def sign(self, payload: Dict[str, Any], options: SdJwtOptions, header: Optional[Dict[str, Any]] = None) -> str:
        ...

    def decode(self, token: str) -> JwtDecoded:
        ...

    def verify(self, token: str, options: JwtVerifyOptions) -> JwtVerified:
        ...


def _load_private_key(private_jwk: Union[Dict[str, Any], jwk.JWK]) -> jwk.JWK:
    if isinstance(private_jwk, jwk.JWK):
        key = private_jwk
    else:
        if 'd' not in private_jwk:
            raise InvalidKeyFormatError("Private JWK must contain 'd' component.")
        try:
            key = jwk.JWK(**private_jwk)
        except Exception as e:
            raise InvalidKeyFormatError(f"Failed to load private JWK: {e}")
    if not key.has_private:
        raise InvalidKeyFormatError("JWK does not contain a private key.")
    return key


def default_alg_for_key(key: jwk.JWK) -> str:
    """Returns the JWS algorithm matching a key's type and curve."""
    key_params = json.loads(key.export_public())
    alg = JWK_DEFAULT_ALGS.get((key_params.get('kty'), key_params.get('crv')))
    if alg is None:
        raise InvalidKeyFormatError(
            f"Unsupported key type for signing: kty={key_params.get('kty')}, crv={key_params.get('crv')}"
        )
    return alg


class JwcryptoJwtProvider:
    """JwtProvider backed by jwcrypto JWS and DID document resolution."""

    def sign(self, payload: Dict[str, Any], options: SdJwtOptions, header: Optional[Dict[str, Any]] = None) -> str:
        """
        Signs a payload as a compact JWS.

        'iat' defaults to the current time and 'iss' is set from the issuer.
        With expires_in, 'exp' is computed from 'nbf' when present, else from the
        current time. A payload 'iat' does not move 'exp'.

        Raises:
            SigningError: If signing fails.
            InvalidKeyFormatError: If the JWK is invalid.
        """
        if not options.issuer:
            raise SigningError("No issuer specified for JWT signing.")
        logger.info(f"Signing JWT for issuer {options.issuer}")

        key = _load_private_key(options.signer)
        header = dict(header or {})
        alg = options.alg or header.get('alg') or default_alg_for_key(key)
        if alg not in SUPPORTED_JWT_ALGS:
            raise SigningError(f"Unsupported JWT algorithm: {alg}")

        now = int(time.time())
        timestamps: Dict[str, Any] = {"iat": now}
        if options.expires_in is not None:
            base = payload.get("nbf") if isinstance(payload.get("nbf"), int) else now
            timestamps["exp"] = base + options.expires_in
        full_payload = {**timestamps, **payload, "iss": options.issuer}

        protected_header = {"typ": DEFAULT_JWT_TYPE, **header, "alg": alg}

        try:
            payload_bytes = json.dumps(
                full_payload,
                separators=(',', ':'),
                sort_keys=options.canonicalize,
                ensure_ascii=False
            ).encode('utf-8')
            jws_token = jws.JWS(payload_bytes)
            jws_token.allowed_algs = [alg]
            jws_token.add_signature(key, None, json.dumps(protected_header, separators=(',', ':')))
            signed_jwt = jws_token.serialize(compact=True)
        except (TypeError, ValueError) as e:
            raise SigningError(f"Failed to serialize JWT payload: {e}")
        except Exception as e:
            logger.exception("JWT signing failed.")
            raise SigningError(f"Failed to sign JWT: {e}")

        logger.info("Successfully signed JWT.")
        return signed_jwt

    def decode(self, token: str) -> JwtDecoded:
        """
        Decodes a compact JWS without verifying its signature.

        Raises:
            InvalidJwtError: If the token is not three base64url JSON parts.
        """
        parts = token.split('.') if isinstance(token, str) else []
        if len(parts) != 3:
            raise InvalidJwtError("Invalid JWT format: must have three parts")

        try:
            header = json.loads(decode_base64url(parts[0]))
            payload = json.loads(decode_base64url(parts[1]))
        except (binascii.Error, ValueError, RecursionError) as format_err:
            logger.error(f"Failed to decode/parse JWT header or payload: {format_err}")
            raise InvalidJwtError(f"Invalid JWT format: {format_err}")

        if not isinstance(header, dict) or not isinstance(payload, dict):
            raise InvalidJwtError("Invalid JWT format: header and payload must be JSON objects")

        return JwtDecoded(
            header=header,
            payload=payload,
            signature=parts[2],
            data=f"{parts[0]}.{parts[1]}"
        )

    def verify(self, token: str, options: JwtVerifyOptions) -> JwtVerified:
        """
        Verifies a JWT signed by the DID in its 'iss' claim.

        The issuer DID is resolved with options.resolver (did:key by default)
        and the signature is checked against the verification methods listed
        under options.proof_purpose, narrowed by the header 'kid'.

        Raises:
            InvalidJwtError: If the token is malformed or uses an unsupported algorithm.
            DidError: If the issuer cannot be resolved.
            SignatureError: If no verification method validates the signature.
            ExpiredJwtError: If exp/nbf/iat checks fail.
            AudienceMismatchError: If the audience check fails.
        """
        logger.info("Verifying JWT.")
        decoded = self.decode(token)
        header, payload = decoded.header, decoded.payload

        alg = header.get("alg")
        if alg not in SUPPORTED_JWT_ALGS:
            raise InvalidJwtError(f"Unsupported JWT algorithm: {alg}")
        issuer = payload.get("iss")
        if not isinstance(issuer, str):
            raise InvalidJwtError("JWT payload missing valid 'iss' (issuer) claim.")

        resolver = options.resolver or DidKeyResolver()
        did_document = resolver.resolve(issuer.split('#')[0])
        candidates = get_verification_methods(did_document, options.proof_purpose, header.get("kid"))
        if not candidates:
            raise SignatureError(f"No verification method found for issuer {issuer}")

        signer = None
        for verification_method in candidates:
            try:
                public_key = public_jwk_from_verification_method(verification_method)
            except InvalidKeyFormatError as e:
                logger.warning(f"Skipping verification method: {e.message}")
                continue

            jws_token = jws.JWS()
            jws_token.allowed_algs = [alg]
            try:
                jws_token.deserialize(token)
            except jws.InvalidJWSObject as e:
                raise InvalidJwtError(f"Invalid JWT format or deserialization error: {e}")
            try:
                jws_token.verify(public_key)
            except jws.InvalidJWSSignature:
                logger.debug(f"Signature did not verify with {verification_method.get('id')}")
                continue
            signer = verification_method
            break

        if signer is None:
            logger.warning("JWT signature verification failed for all candidate keys.")
            raise SignatureError("Invalid JWT signature: signature verification failed")
        logger.debug(f"Signature verified with {signer.get('id')}")

        self._check_claims(payload, options)

        logger.info("JWT signature verification successful.")
        return JwtVerified(verified=True, payload=payload, issuer=issuer, signer=signer, jwt=token)

    @staticmethod
    def _check_claims(payload: Dict[str, Any], options: JwtVerifyOptions) -> None:
        policies = options.policies
        now = policies.now if policies.now is not None else int(time.time())
        skew = options.skew_time

        nbf = payload.get("nbf")
        iat = payload.get("iat")
        exp = payload.get("exp")
        # iat is only checked when there is no nbf
        if isinstance(nbf, (int, float)):
            if policies.nbf and nbf > now + skew:
                raise ExpiredJwtError(f"JWT not valid before nbf: {nbf}")
        elif policies.iat and isinstance(iat, (int, float)):
            if iat > now + skew:
                raise ExpiredJwtError(f"JWT not valid yet (issued in the future) iat: {iat}")
        if policies.exp and isinstance(exp, (int, float)):
            if exp <= now - skew:
                raise ExpiredJwtError(f"JWT has expired: exp: {exp} < now: {now}")

        if policies.aud and "aud" in payload:
            audiences = payload["aud"] if isinstance(payload["aud"], list) else [payload["aud"]]
            if options.audience is None:
                raise AudienceMismatchError("JWT audience is required but no expected audience was configured")
            if options.audience not in audiences:
                raise AudienceMismatchError(f"JWT audience does not match: {options.audience}")


default_jwt_provider = JwcryptoJwtProvider()
