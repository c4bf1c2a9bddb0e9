"""Reconstruction of SD-JWT payloads from digests and revealed disclosures."""

import json
import logging
from typing import Dict, Any, List

from .constants import SD_DIGESTS_KEY, ARRAY_DIGEST_KEY, MAX_EXPANSION_DEPTH
from .errors import DuplicateClaimError, MalformedDisclosureError, MalformedSdJwtError, MaxDepthExceededError
from .schemas import Disclosable, ObjectPropertyClaim, ArrayElementClaim

logger = logging.getLogger(__name__)

def _check_depth(depth: int) -> None:
    if depth > MAX_EXPANSION_DEPTH:
        raise MaxDepthExceededError(f"Payload nesting exceeds the maximum depth of {MAX_EXPANSION_DEPTH}")


def _expand_value(value: Any, disclosable_map: Dict[str, Disclosable], recurse: bool, depth: int) -> Any:
    """Expands a disclosed value when recursing; otherwise returns a copy of it."""
    if not recurse:
        return json.loads(json.dumps(value))
    if isinstance(value, list):
        return _expand_array_elements(value, disclosable_map, recurse, depth + 1)
    if isinstance(value, dict):
        return _expand_object(value, disclosable_map, recurse, depth + 1)
    return value


def _expand_object(
    payload: Dict[str, Any],
    disclosable_map: Dict[str, Disclosable],
    recurse: bool,
    depth: int
) -> Dict[str, Any]:
    _check_depth(depth)
    # Deep copy of the input; cleartext claims are present before any disclosure is applied
    wip = json.loads(json.dumps(payload))

    for key, value in payload.items():
        if key == SD_DIGESTS_KEY:
            if not isinstance(value, list):
                raise MalformedSdJwtError(f"'{SD_DIGESTS_KEY}' must be an array of digests")
            for digest in value:
                if not isinstance(digest, str) or digest not in disclosable_map:
                    # not revealed by the holder
                    continue
                claim = disclosable_map[digest].claim
                if not isinstance(claim, ObjectPropertyClaim):
                    raise MalformedDisclosureError(
                        f"Digest {digest} in '{SD_DIGESTS_KEY}' must reference an object property disclosure"
                    )
                if claim.key in wip:
                    raise DuplicateClaimError(f"Duplicate key in disclosure: '{claim.key}'")
                wip[claim.key] = _expand_value(claim.value, disclosable_map, recurse, depth)
                logger.debug(f"Disclosed claim '{claim.key}' at depth {depth}")
            del wip[SD_DIGESTS_KEY]
        elif isinstance(value, list):
            wip[key] = _expand_array_elements(value, disclosable_map, recurse, depth + 1)
        elif recurse and isinstance(value, dict):
            wip[key] = _expand_object(value, disclosable_map, recurse, depth + 1)

    return wip


def _expand_array_elements(
    elements: List[Any],
    disclosable_map: Dict[str, Disclosable],
    recurse: bool,
    depth: int
) -> List[Any]:
    _check_depth(depth)
    mapped = []
    for element in elements:
        if isinstance(element, dict) and ARRAY_DIGEST_KEY in element:
            digest = element[ARRAY_DIGEST_KEY]
            disclosable = disclosable_map.get(digest) if isinstance(digest, str) else None
            if disclosable is None:
                continue
            claim = disclosable.claim
            if not isinstance(claim, ArrayElementClaim):
                raise MalformedDisclosureError(
                    f"Digest {digest} in an array must reference an array element disclosure"
                )
            mapped.append(_expand_value(claim.value, disclosable_map, recurse, depth))
        elif isinstance(element, dict):
            if recurse:
                mapped.append(_expand_object(element, disclosable_map, recurse, depth + 1))
            else:
                mapped.append(json.loads(json.dumps(element)))
        elif isinstance(element, list):
            mapped.append(json.loads(json.dumps(element)))
        else:
            mapped.append(element)
    return mapped


def expand_disclosures(
    payload: Dict[str, Any],
    disclosable_map: Dict[str, Disclosable],
    recurse: bool = True
) -> Dict[str, Any]:
    """
    Replaces disclosure digests in a payload with the revealed claims.

    Digests listed under '_sd' become object properties and '{"...": digest}'
    array entries become array elements. Digests without a matching
    disclosure are dropped. The input payload is not modified; '_sd_alg' is
    left in place for the caller to remove.

    Args:
        payload: The (decoded) JWT payload.
        disclosable_map: Digest lookup from build_digest_disclosable_map.
        recurse: Whether to descend into nested objects, array elements and
                 disclosed values. Arrays directly under a processed object
                 are always expanded.

    Returns:
        A new dict with the disclosures applied and '_sd' removed.

    Raises:
        DuplicateClaimError: If a disclosed claim name already exists.
        MalformedDisclosureError: If a digest references the wrong kind of disclosure.
        MaxDepthExceededError: If the payload nests too deeply.
    """
    return _expand_object(payload, disclosable_map, recurse, 0)
