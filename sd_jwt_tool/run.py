#!/usr/bin/env python3
"""Main entry point for the SD-JWT utility tool."""

import argparse
import json
import logging
import sys
from typing import Dict, Any, Optional, Union

from pydantic import ValidationError

from .constants import DEFAULT_SD_ALG, EXIT_SUCCESS, EXIT_FAILURE
from .did_utils import get_private_jwk_from_env, DidKeyResolver
from .disclosures import hash_disclosure
from .errors import SdJwtToolError, InvalidInputError, KeyNotFoundError
from .schemas import InputSchema, IssueOutput, ErrorOutput, SdJwtOptions, JwtVerifyOptions
from .sd_jwt import create_sd_jwt, decode_sd_jwt, verify_sd_jwt, sd_jwt_payload_helper

logger = logging.getLogger(__name__)

def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="SD-JWT Utility Tool")
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    subparsers = parser.add_subparsers(dest='command', required=True, help='Command to execute')

    issue_parser = subparsers.add_parser('issue', help='Issue an SD-JWT')
    key_group = issue_parser.add_mutually_exclusive_group(required=True)
    key_group.add_argument('--key', help='File containing private key (JWK)')
    key_group.add_argument('--agent-did', help='DID to use for key retrieval from environment')
    issue_parser.add_argument('--claims', required=True, help='File containing the cleartext claims')
    issue_parser.add_argument('--sd-claims', help='File containing the selectively disclosable claims')
    issue_parser.add_argument('--issuer-did', help='DID of the issuer (if different from agent-did)')
    issue_parser.add_argument('--expires-in', type=int, help='Lifetime of the SD-JWT in seconds')
    issue_parser.add_argument('--spec-compat', action='store_true',
                              help='Serialize disclosures like the published SD-JWT examples')
    issue_parser.add_argument('--output', '-o', help='Output file for the issued SD-JWT')

    decode_parser = subparsers.add_parser('decode', help='Decode an SD-JWT without verifying it')
    decode_parser.add_argument('sd_jwt', help='The compact SD-JWT')
    decode_parser.add_argument('--no-recurse', action='store_true',
                               help='Only apply disclosures at the top level of the payload')

    verify_parser = subparsers.add_parser('verify', help='Verify an SD-JWT signed by a did:key issuer')
    verify_parser.add_argument('sd_jwt', help='The compact SD-JWT')
    verify_parser.add_argument('--audience', help='Expected audience')

    hash_parser = subparsers.add_parser('hash-disclosure', help='Compute the digest of a disclosure')
    hash_parser.add_argument('disclosure', help='The base64url-encoded disclosure')

    return parser.parse_args(argv)


def load_json_file(file_path: str) -> Dict[str, Any]:
    """Load and parse a JSON file."""
    try:
        with open(file_path, 'r') as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.error(f"Failed to load JSON from {file_path}: {e}")
        raise InvalidInputError(f"Failed to load JSON from {file_path}: {e}")


def write_json_file(data: Dict[str, Any], file_path: str) -> None:
    """Write data to a JSON file."""
    try:
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)
        logger.info(f"Data written to {file_path}")
    except OSError as e:
        logger.error(f"Failed to write to {file_path}: {e}")
        raise InvalidInputError(f"Failed to write to {file_path}: {e}")


def _load_claims(claims_input: Union[str, Dict[str, Any], None]) -> Dict[str, Any]:
    if claims_input is None:
        return {}
    if isinstance(claims_input, dict):
        return claims_input
    if isinstance(claims_input, str):
        claims = load_json_file(claims_input)
        if not isinstance(claims, dict):
            raise InvalidInputError(f"Claims in {claims_input} must be a JSON object.")
        return claims
    raise InvalidInputError("Invalid claims input type. Expected file path (str) or object (dict).")


def issue_sd_jwt(
    claims_input: Union[str, Dict[str, Any]],
    sd_claims_input: Union[str, Dict[str, Any], None] = None,
    agent_did: Optional[str] = None,
    key_file: Optional[str] = None,
    issuer_did: Optional[str] = None,
    expires_in: Optional[int] = None,
    spec_compat: bool = False,
    output_file: Optional[str] = None
) -> Dict[str, Any]:
    """Issue an SD-JWT from cleartext and selectively disclosable claims."""
    if agent_did:
        try:
            private_jwk = get_private_jwk_from_env(agent_did)
        except KeyNotFoundError as e:
            raise InvalidInputError(f"Failed to retrieve private key for agent DID: {e.message}")
        if not issuer_did:
            issuer_did = agent_did
    elif key_file:
        private_jwk = load_json_file(key_file)
    else:
        raise InvalidInputError("Missing both 'agent_did' (env-based key) and 'key' (file path).")

    if not issuer_did:
        raise InvalidInputError("Issuer DID ('agent_did' or 'issuer_did') is required for issuing.")

    clear_claims = _load_claims(claims_input)
    sd_claims = _load_claims(sd_claims_input)

    helper = sd_jwt_payload_helper(sd_claims, clear_claims, DEFAULT_SD_ALG, spec_compat)
    disclosures = [d.disclosure for d in helper.disclosables]

    options = SdJwtOptions(
        issuer=issuer_did,
        signer=private_jwk,
        expires_in=expires_in,
        disclosures=disclosures
    )
    sd_jwt = create_sd_jwt(helper.sd_jwt_payload, options)
    result = IssueOutput(sd_jwt=sd_jwt, disclosures=disclosures).model_dump()

    if output_file:
        write_json_file(result, output_file)
    return result


def decode_sd_jwt_command(sd_jwt: str, recurse: bool = True) -> Dict[str, Any]:
    """Decode an SD-JWT and return the reconstructed payload."""
    decoded = decode_sd_jwt(sd_jwt.strip(), recurse)
    return decoded.model_dump(exclude_none=True)


def verify_sd_jwt_command(sd_jwt: str, audience: Optional[str] = None) -> Dict[str, Any]:
    """Verify an SD-JWT issued by a did:key issuer."""
    options = JwtVerifyOptions(resolver=DidKeyResolver(), audience=audience)
    verified = verify_sd_jwt(sd_jwt.strip(), options)
    return verified.model_dump(exclude_none=True)


def run(*args, **kwargs) -> Dict[str, Any]:
    """
    Process a command based on arguments passed by a worker runtime.

    Args:
        *args: Optionally a single dict with 'func_name' and 'func_input_data'.
        **kwargs: Either 'func_name'/'func_input_data' directly, or nested
                  under 'module_run' (optionally under its 'inputs').

    Returns:
        Dict containing the result of the operation

    Raises:
        InvalidInputError: If required inputs are missing.
        SdJwtToolError: If the operation fails.
    """
    logger.info("EXECUTING SD-JWT-TOOL")

    logger.debug(f"Received args: {args}")
    logger.debug(f"Received kwargs: {kwargs}")

    input_payload = None

    if 'func_name' in kwargs:
        input_payload = kwargs
        logger.debug("Found inputs directly in kwargs")

    elif 'module_run' in kwargs and isinstance(kwargs['module_run'], dict):
        module_run_dict = kwargs['module_run']
        if isinstance(module_run_dict.get('inputs'), dict) and 'func_name' in module_run_dict['inputs']:
            input_payload = module_run_dict['inputs']
            logger.debug("Found inputs nested under kwargs['module_run']['inputs']")
        elif 'func_name' in module_run_dict:
            input_payload = module_run_dict
            logger.debug("Found inputs nested directly under kwargs['module_run']")

    elif args and isinstance(args[0], dict) and 'func_name' in args[0]:
        input_payload = args[0]
        logger.debug("Found inputs as first positional arg (args[0])")

    if input_payload is None:
        raise InvalidInputError("Missing 'func_name' parameter in input payload")

    try:
        inputs = InputSchema.model_validate(input_payload)
    except ValidationError as e:
        raise InvalidInputError(f"Unknown function or invalid input: {e.errors()[0]['msg']}")

    func_name = inputs.func_name
    params = inputs.func_input_data
    logger.info(f"Executing function: {func_name}")

    if func_name == 'issue':
        if not params.get('agent_did') and not params.get('key'):
            raise InvalidInputError("Missing both 'agent_did' and 'key' in func_input_data for issue")
        if 'claims' not in params:
            raise InvalidInputError("Missing 'claims' parameter in func_input_data for issue")
        return issue_sd_jwt(
            claims_input=params['claims'],
            sd_claims_input=params.get('sd_claims'),
            agent_did=params.get('agent_did'),
            key_file=params.get('key'),
            issuer_did=params.get('issuer_did'),
            expires_in=params.get('expires_in'),
            spec_compat=bool(params.get('spec_compat', False)),
            output_file=params.get('output')
        )

    elif func_name == 'decode':
        sd_jwt = params.get('sd_jwt')
        if not sd_jwt:
            raise InvalidInputError("Missing 'sd_jwt' parameter in func_input_data for decode")
        return decode_sd_jwt_command(sd_jwt, recurse=params.get('recurse', True))

    elif func_name == 'verify':
        sd_jwt = params.get('sd_jwt')
        if not sd_jwt:
            raise InvalidInputError("Missing 'sd_jwt' parameter in func_input_data for verify")
        return verify_sd_jwt_command(sd_jwt, audience=params.get('audience'))

    else:
        disclosure = params.get('disclosure')
        if not disclosure:
            raise InvalidInputError("Missing 'disclosure' parameter in func_input_data for hash-disclosure")
        return {"disclosure": disclosure, "digest": hash_disclosure(disclosure, params.get('sd_alg', DEFAULT_SD_ALG))}


def main(argv=None) -> int:
    """Command-line entry point."""
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == 'issue':
            result = issue_sd_jwt(
                claims_input=args.claims,
                sd_claims_input=args.sd_claims,
                agent_did=args.agent_did,
                key_file=args.key,
                issuer_did=args.issuer_did,
                expires_in=args.expires_in,
                spec_compat=args.spec_compat,
                output_file=args.output
            )

        elif args.command == 'decode':
            result = decode_sd_jwt_command(args.sd_jwt, recurse=not args.no_recurse)

        elif args.command == 'verify':
            result = verify_sd_jwt_command(args.sd_jwt, audience=args.audience)

        else:
            result = {"disclosure": args.disclosure, "digest": hash_disclosure(args.disclosure)}

        print(json.dumps(result, indent=2))
        return EXIT_SUCCESS

    except SdJwtToolError as e:
        print(json.dumps(ErrorOutput(error=e.error_code, message=e.message).model_dump(), indent=2))
        return EXIT_FAILURE
    except Exception as e:
        print(json.dumps({"error": "UnexpectedError", "message": str(e)}, indent=2))
        logger.exception("Unexpected error occurred")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
