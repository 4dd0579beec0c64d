"""
Tests for deployment persistence and the command line interface
"""

import io
import os
import sys
import shutil
import tempfile
import unittest
from contextlib import redirect_stdout

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from epochmint import config, events
from epochmint.cli import main
from epochmint.miner import SolutionMiner
from epochmint.state import Deployment
from epochmint.wallet import Wallet

EASY_TARGET = 2 ** 256 - 1


class TestDeployment(unittest.TestCase):
    """Test saving and restoring a deployment."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.path = os.path.join(self.test_dir, "deployment.json")
        self.owner = Wallet.generate("owner")
        self.alice = Wallet.generate("alice")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def claim(self, deployment: Deployment):
        target, challenge = deployment.distributor.get_mining_target_and_challenge()
        result = SolutionMiner(self.alice.address).solve(challenge, target)
        deployment.host.advance()
        return deployment.distributor.claim(self.alice.address, *result.claim_args())

    def test_create_funds_distributor(self):
        deployment = Deployment.create(self.owner.address, 500 * config.UNIT)
        self.assertEqual(deployment.ledger.balance_of(deployment.distributor.address),
                         500 * config.UNIT)
        self.assertEqual(deployment.distributor.owner, self.owner.address)

    def test_save_and_load(self):
        deployment = Deployment.create(self.owner.address, 500 * config.UNIT,
                                       max_target=EASY_TARGET, blocks_per_readjustment=2)
        deployment.distributor.set_burn_block_start(self.owner.address, 3)
        self.claim(deployment)
        self.claim(deployment)
        deployment.save(self.path)

        loaded = Deployment.load(self.path)
        self.assertEqual(loaded.to_dict(), deployment.to_dict())
        self.assertEqual(loaded.distributor.epoch_count(), 3)
        self.assertEqual(loaded.distributor.get_challenge_number(),
                         deployment.distributor.get_challenge_number())
        self.assertEqual(loaded.distributor.burn_block_start(), 3)
        self.assertFalse(os.path.exists(self.path + ".tmp"))

    def test_claims_continue_after_reload(self):
        deployment = Deployment.create(self.owner.address, 500 * config.UNIT,
                                       max_target=EASY_TARGET)
        self.claim(deployment)
        deployment.save(self.path)

        loaded = Deployment.load(self.path)
        receipt = self.claim(loaded)
        self.assertEqual(receipt.epoch, 3)
        self.assertEqual(loaded.distributor.tokens_minted(), 2 * config.MINING_REWARD)
        self.assertEqual(loaded.ledger.balance_of(self.alice.address), 2 * config.MINING_REWARD)


class TestCLI(unittest.TestCase):
    """Test the command line interface end to end."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.state = os.path.join(self.test_dir, "deployment.json")
        self.wallet_dir = os.path.join(self.test_dir, "wallets")

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def run_cli(self, *argv) -> tuple:
        out = io.StringIO()
        with redirect_stdout(out):
            code = main(['--state', self.state, '--wallet-dir', self.wallet_dir] + list(argv))
        return code, out.getvalue()

    def deploy(self):
        self.assertEqual(self.run_cli('wallet', 'create', 'owner', '-p', '')[0], 0)
        self.assertEqual(self.run_cli('wallet', 'create', 'alice', '-p', '')[0], 0)
        code, _ = self.run_cli('init', '--owner', 'owner', '--funding', '1000',
                               '--max-target-bits', '256', '--blocks-per-readjustment', '2',
                               '--target-blocks-per-period', '10')
        self.assertEqual(code, 0)

    def test_wallet_commands(self):
        self.run_cli('wallet', 'create', 'carol', '-p', 'secret')
        code, output = self.run_cli('wallet', 'list')
        self.assertEqual(code, 0)
        self.assertIn('carol', output)

        code, output = self.run_cli('wallet', 'info', 'carol', '-p', 'secret')
        self.assertEqual(code, 0)
        self.assertIn('Address', output)

        code, output = self.run_cli('wallet', 'info', 'carol', '-p', 'wrong')
        self.assertEqual(code, 1)
        self.assertIn('Error', output)

    def test_init_refuses_to_overwrite(self):
        self.deploy()
        code, _ = self.run_cli('init', '--owner', 'owner')
        self.assertEqual(code, 1)
        code, _ = self.run_cli('init', '--owner', 'owner', '--force')
        self.assertEqual(code, 0)

    def test_commands_need_a_deployment(self):
        code, output = self.run_cli('status')
        self.assertEqual(code, 1)
        self.assertIn('epochmint init', output)

    def test_mine_and_status(self):
        self.deploy()
        code, _ = self.run_cli('mine', '--wallet', 'alice', '--count', '2', '-q')
        self.assertEqual(code, 0)

        deployment = Deployment.load(self.state)
        alice = Wallet.load('alice', '', self.wallet_dir)
        self.assertEqual(deployment.distributor.epoch_count(), 3)
        self.assertEqual(deployment.ledger.balance_of(alice.address), 2 * config.MINING_REWARD)
        self.assertEqual(deployment.host.height, 2)

        code, output = self.run_cli('status')
        self.assertEqual(code, 0)
        self.assertIn('Epoch: 3', output)

        code, output = self.run_cli('events', '--name', events.MINT)
        self.assertEqual(code, 0)
        self.assertIn('2 event(s)', output)

    def test_mine_budget_exhausted(self):
        self.deploy()
        self.run_cli('admin', '--wallet', 'owner', '-p', '', 'set-target', '0')
        code, output = self.run_cli('mine', '--wallet', 'alice', '--max-attempts', '2', '-q')
        self.assertEqual(code, 1)
        self.assertIn('Attempt budget exhausted', output)

    def test_verify_command(self):
        self.deploy()
        deployment = Deployment.load(self.state)
        alice = Wallet.load('alice', '', self.wallet_dir)
        target, challenge = deployment.distributor.get_mining_target_and_challenge()
        result = SolutionMiner(alice.address).solve(challenge, target)

        argv = ['verify', '--claimant', alice.address, '--challenge', challenge.hex(),
                '--target', hex(target), '--message-hash', result.message_hash.hex(),
                '--v', str(result.signature.v), '--r', hex(result.signature.r),
                '--s', hex(result.signature.s)]
        code, output = self.run_cli(*argv)
        self.assertEqual(code, 0)
        self.assertIn('VALID', output)

        argv[argv.index('--target') + 1] = '0'
        code, output = self.run_cli(*argv)
        self.assertEqual(code, 1)
        self.assertIn('INVALID', output)

    def test_admin_commands(self):
        self.deploy()
        code, output = self.run_cli('admin', '--wallet', 'alice', '-p', '', 'enable-burning')
        self.assertEqual(code, 1)
        self.assertIn('not the owner', output)

        code, _ = self.run_cli('admin', '--wallet', 'owner', '-p', '', 'set-target', '0x10')
        self.assertEqual(code, 0)
        code, _ = self.run_cli('admin', '--wallet', 'owner', '-p', '', 'set-burn-block-start', '5')
        self.assertEqual(code, 0)
        code, _ = self.run_cli('admin', '--wallet', 'owner', '-p', '', 'enable-burning')
        self.assertEqual(code, 0)

        distributor = Deployment.load(self.state).distributor
        self.assertEqual(distributor.get_mining_target(), 2 ** 16)
        self.assertEqual(distributor.burn_block_start(), 5)
        self.assertTrue(distributor.burning_enabled())

        code, _ = self.run_cli('admin', '--wallet', 'owner', '-p', '', 'set-burn-block-start', 'never')
        self.assertEqual(code, 0)
        self.assertIsNone(Deployment.load(self.state).distributor.burn_block_start())

    def test_admin_transfer_erc20(self):
        """The owner can send distributor tokens to an address."""
        self.deploy()
        recipient = Wallet.generate().address
        code, _ = self.run_cli('admin', '--wallet', 'owner', '-p', '',
                               'transfer-erc20', recipient, '1000')
        self.assertEqual(code, 0)

        deployment = Deployment.load(self.state)
        self.assertEqual(deployment.ledger.balance_of(recipient), 1000)
        self.assertEqual(deployment.ledger.balance_of(deployment.distributor.address),
                         1000 * config.UNIT - 1000)

        code, output = self.run_cli('admin', '--wallet', 'owner', '-p', '',
                                    'transfer-erc20', recipient, str(10 ** 30))
        self.assertEqual(code, 1)
        self.assertIn('refused', output)

        code, _ = self.run_cli('admin', '--wallet', 'alice', '-p', '',
                               'transfer-erc20', recipient, '1')
        self.assertEqual(code, 1)
        self.assertEqual(Deployment.load(self.state).ledger.balance_of(recipient), 1000)

    def test_chain_advance(self):
        self.deploy()
        code, _ = self.run_cli('chain', 'advance', '--blocks', '5')
        self.assertEqual(code, 0)
        self.assertEqual(Deployment.load(self.state).host.height, 5)


if __name__ == '__main__':
    unittest.main()
