"""
Tests for the solution miners
"""

import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from epochmint import config
from epochmint.crypto_utils import sha256_digest, signed_message_hash
from epochmint.distributor import MiningDistributor
from epochmint.host import HostChain
from epochmint.ledger import MemoryLedger
from epochmint.miner import SolutionMiner, MultiThreadedSolutionMiner
from epochmint.verifier import verify
from epochmint.wallet import Wallet

EASY_TARGET = 2 ** 256 - 1


class TestSolutionMiner(unittest.TestCase):
    """Test single-threaded mining."""

    def setUp(self):
        self.claimant = Wallet.generate("claimant")
        self.challenge = sha256_digest(b"challenge")

    def test_solve_easy_target(self):
        miner = SolutionMiner(self.claimant.address)
        result = miner.solve(self.challenge, EASY_TARGET)

        self.assertTrue(result.success)
        self.assertEqual(result.attempts, 1)
        self.assertEqual(result.message_hash,
                         signed_message_hash(self.claimant.address, self.challenge))
        self.assertTrue(verify(self.challenge, EASY_TARGET, result.message_hash,
                               result.signature, self.claimant.address))
        self.assertEqual(miner.get_stats()['solutions_found'], 1)

    def test_solve_moderate_target(self):
        """Roughly one key in sixteen clears a 2**252 target."""
        result = SolutionMiner(self.claimant.address).solve(self.challenge, 2 ** 252)
        self.assertTrue(result.success)
        self.assertLessEqual(int.from_bytes(result.digest, 'big'), 2 ** 252)

    def test_attempt_budget(self):
        miner = SolutionMiner(self.claimant.address)
        result = miner.solve(self.challenge, 0, max_attempts=3)
        self.assertFalse(result.success)
        self.assertEqual(result.attempts, 3)
        self.assertEqual(miner.get_stats()['total_attempts'], 3)
        self.assertFalse(miner.is_mining)

    def test_single_thread_stats(self):
        miner = SolutionMiner(self.claimant.address)
        self.assertEqual(miner.get_stats()['threads'], 1)
        multi = MultiThreadedSolutionMiner(self.claimant.address, num_threads=1)
        self.assertEqual(multi.get_stats()['threads'], 1)

    def test_claim_args(self):
        result = SolutionMiner(self.claimant.address).solve(self.challenge, EASY_TARGET)
        message_hash, v, r, s = result.claim_args()
        self.assertEqual(message_hash, result.message_hash)
        self.assertEqual((v, r, s), (result.signature.v, result.signature.r, result.signature.s))
        self.assertEqual(result.to_dict()['signer'], result.signer)


class TestMultiThreadedSolutionMiner(unittest.TestCase):
    """Test multi-threaded mining."""

    def setUp(self):
        self.claimant = Wallet.generate("claimant")
        self.challenge = sha256_digest(b"challenge")

    def test_solve(self):
        miner = MultiThreadedSolutionMiner(self.claimant.address, num_threads=2)
        result = miner.solve(self.challenge, 2 ** 254)
        self.assertTrue(result.success)
        self.assertTrue(verify(self.challenge, 2 ** 254, result.message_hash,
                               result.signature, self.claimant.address))

    def test_attempt_budget_shared(self):
        """Threads draw from one attempt budget."""
        miner = MultiThreadedSolutionMiner(self.claimant.address, num_threads=2)
        result = miner.solve(self.challenge, 0, max_attempts=5)
        self.assertFalse(result.success)
        self.assertEqual(result.attempts, 5)


class TestContinuousMining(unittest.TestCase):
    """Test mining and claiming epoch after epoch."""

    def test_mine_and_claim(self):
        host = HostChain()
        ledger = MemoryLedger()
        owner, alice = Wallet.generate("owner"), Wallet.generate("alice")
        distributor = MiningDistributor(ledger, host, owner.address, max_target=EASY_TARGET)
        ledger.mint(distributor.address, 1000 * config.UNIT)

        def submit(result):
            host.advance()
            distributor.claim(alice.address, *result.claim_args())
            return True

        miner = SolutionMiner(alice.address)
        results = miner.mine_continuous(distributor.get_mining_target_and_challenge,
                                        num_solutions=3, verbose=False, callback=submit)

        self.assertEqual(len(results), 3)
        self.assertTrue(all(r.success for r in results))
        self.assertEqual(distributor.epoch_count(), 4)
        self.assertEqual(ledger.balance_of(alice.address), 3 * config.MINING_REWARD)

    def test_callback_can_stop(self):
        miner = SolutionMiner(Wallet.generate().address)
        results = miner.mine_continuous(lambda: (EASY_TARGET, bytes(32)), num_solutions=5,
                                        verbose=False, callback=lambda result: False)
        self.assertEqual(len(results), 1)


if __name__ == '__main__':
    unittest.main()
