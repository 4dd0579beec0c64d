"""
Tests for proof-of-work verification
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from epochmint.crypto_utils import (
    Signature, sha256_digest, signed_message_hash, solution_digest, digest_to_int
)
from epochmint.exceptions import (
    IncorrectMessage, HighHash, SignatureRecoveryError, VerificationError
)
from epochmint.verifier import verify, verify_or_fail
from epochmint.wallet import Wallet

MAX_UINT256 = 2 ** 256 - 1


class TestVerifier(unittest.TestCase):
    """Test solution verification."""

    def setUp(self):
        self.claimant = Wallet.generate("claimant")
        self.solver = Wallet.generate("solver")
        self.challenge = sha256_digest(b"challenge")
        self.message_hash = signed_message_hash(self.claimant.address, self.challenge)
        self.signature = self.solver.sign_digest(self.message_hash)
        self.digest = solution_digest(self.solver.address, self.claimant.address, self.challenge)
        self.value = digest_to_int(self.digest)

    def test_target_equal_to_digest_passes(self):
        """The comparison is inclusive."""
        digest = verify_or_fail(self.challenge, self.value, self.message_hash,
                                self.signature, self.claimant.address)
        self.assertEqual(digest, self.digest)
        self.assertTrue(verify(self.challenge, self.value, self.message_hash,
                               self.signature, self.claimant.address))

    def test_target_below_digest_fails(self):
        with self.assertRaises(HighHash) as ctx:
            verify_or_fail(self.challenge, self.value - 1, self.message_hash,
                           self.signature, self.claimant.address)
        self.assertEqual(ctx.exception.digest, self.value)
        self.assertEqual(ctx.exception.target, self.value - 1)
        self.assertFalse(verify(self.challenge, self.value - 1, self.message_hash,
                                self.signature, self.claimant.address))

    def test_max_target_accepts_any_signer(self):
        self.assertTrue(verify(self.challenge, MAX_UINT256, self.message_hash,
                               self.signature, self.claimant.address))

    def test_stale_challenge(self):
        """A message hash for another challenge is rejected."""
        other = sha256_digest(b"other challenge")
        with self.assertRaises(IncorrectMessage):
            verify_or_fail(other, MAX_UINT256, self.message_hash,
                           self.signature, self.claimant.address)

    def test_other_claimant(self):
        """A solution cannot be redirected to a different claimant."""
        thief = Wallet.generate("thief")
        with self.assertRaises(IncorrectMessage):
            verify_or_fail(self.challenge, MAX_UINT256, self.message_hash,
                           self.signature, thief.address)
        self.assertFalse(verify(self.challenge, MAX_UINT256, self.message_hash,
                                self.signature, thief.address))

    def test_mixed_case_claimant(self):
        """Claimant spelling does not change the bound message."""
        upper = "0x" + self.claimant.address[2:].upper()
        self.assertTrue(verify(self.challenge, MAX_UINT256, self.message_hash,
                               self.signature, upper))

    def test_malformed_signature(self):
        """An unrecoverable signature fails fast."""
        bad = Signature(99, self.signature.r, self.signature.s)
        with self.assertRaises(SignatureRecoveryError):
            verify_or_fail(self.challenge, MAX_UINT256, self.message_hash,
                           bad, self.claimant.address)
        self.assertFalse(verify(self.challenge, MAX_UINT256, self.message_hash,
                                bad, self.claimant.address))

    def test_message_checked_before_signature(self):
        """A wrong message is reported even when the signature is also bad."""
        bad = Signature(27, 0, 0)
        with self.assertRaises(IncorrectMessage):
            verify_or_fail(self.challenge, MAX_UINT256, b"\x00" * 32,
                           bad, self.claimant.address)

    def test_invalid_claimant_address(self):
        """verify treats a malformed claimant as a failed check."""
        self.assertFalse(verify(self.challenge, MAX_UINT256, self.message_hash,
                                self.signature, "not-an-address"))

    def test_errors_share_a_base(self):
        for exc in (IncorrectMessage, HighHash, SignatureRecoveryError):
            self.assertTrue(issubclass(exc, VerificationError))


if __name__ == '__main__':
    unittest.main()
