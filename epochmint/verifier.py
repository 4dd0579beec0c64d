"""
Proof-of-work verification for EpochMint

A solution is a signature over the claimant's signed-message hash. The
solver is free to sign with any key; the digest binds that key's address,
the claimant and the challenge:

    digest = sha256(signer || claimant || challenge)

and must be at or below the target. Checks run cheapest first:
1. The signed-message hash matches the claimant and challenge
2. A signer can be recovered from the signature
3. The digest is at or below the target
"""

import logging

from .crypto_utils import (
    Signature, signed_message_hash, recover_signer, solution_digest, digest_to_int
)
from .exceptions import IncorrectMessage, HighHash, VerificationError

logger = logging.getLogger(__name__)


def verify_or_fail(challenge: bytes, target: int, message_hash: bytes,
                   signature: Signature, claimant: str) -> bytes:
    """
    Verify a solution, raising on the first failed check.

    Args:
        challenge: Challenge the solution was computed for
        target: Highest acceptable digest
        message_hash: Signed-message hash supplied by the caller
        signature: Solver's signature over message_hash
        claimant: Address the reward is bound to

    Returns:
        The solution digest

    Raises:
        IncorrectMessage: message_hash does not match claimant and challenge
        SignatureRecoveryError: the signature is malformed
        HighHash: the digest is above target
    """
    expected = signed_message_hash(claimant, challenge)
    if message_hash != expected:
        raise IncorrectMessage(
            f"Signed message hash does not match claimant {claimant} and the challenge"
        )

    signer = recover_signer(message_hash, signature)
    digest = solution_digest(signer, claimant, challenge)

    digest_value = digest_to_int(digest)
    if digest_value > target:
        raise HighHash(digest_value, target)

    return digest


def verify(challenge: bytes, target: int, message_hash: bytes,
           signature: Signature, claimant: str) -> bool:
    """
    Check a solution without raising.

    Meant for solvers testing a candidate against an arbitrary challenge and
    target before submitting it.
    """
    try:
        verify_or_fail(challenge, target, message_hash, signature, claimant)
    except (VerificationError, ValueError) as e:
        logger.debug(f"Solution rejected: {e}")
        return False
    return True
