#!/usr/bin/env python3
"""
EpochMint Command Line Interface

Proof-of-work reward distribution:
- Every successful claim pays a fixed reward and opens a new epoch
- Solutions are signatures whose digest falls at or below the mining target
- The target readjusts every few epochs to hold the intended epoch rate

Usage:
    epochmint init --owner <wallet> [--funding=<tokens>] [--max-target-bits=<n>]
    epochmint status
    epochmint wallet create <name> [--password=<pwd>]
    epochmint wallet info <name>
    epochmint wallet list
    epochmint mine --wallet <name> [--count=<n>] [--threads=<n>]
    epochmint verify --claimant <addr> --challenge <hex> --target <int> ...
    epochmint events [--name=<event>]
    epochmint chain advance [--blocks=<n>]
    epochmint admin --wallet <owner> <setter> [value] [amount]
"""

import os
import sys
import getpass
import logging
import argparse
from typing import Optional

from epochmint import config
from epochmint.crypto_utils import Signature, normalize_address
from epochmint.exceptions import EpochMintError, WalletError
from epochmint.miner import SolutionMiner, MultiThreadedSolutionMiner
from epochmint.state import Deployment, DEFAULT_STATE_PATH
from epochmint.verifier import verify
from epochmint.wallet import Wallet, list_wallets, read_wallet_file, DEFAULT_WALLET_DIR


def setup_logging(log_file: Optional[str] = None, verbose: bool = False) -> logging.Logger:
    """Setup logging configuration."""
    logger = logging.getLogger('epochmint')
    logger.setLevel(logging.DEBUG)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO if verbose else logging.WARNING)
    console_format = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_format)
    logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_format = logging.Formatter(
            '%(asctime)s [%(levelname)s] [%(name)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler.setFormatter(file_format)
        logger.addHandler(file_handler)

    return logger


def print_header():
    """Print the EpochMint header."""
    print("""
╔═══════════════════════════════════════════════════════════╗
║                        EpochMint                          ║
║       Proof-of-work gated token reward distribution       ║
╚═══════════════════════════════════════════════════════════╝
    """)


def parse_int(value: str) -> int:
    """Parse a decimal or 0x-prefixed integer."""
    return int(value, 0)


def _unlock_wallet(name: str, password: Optional[str], wallet_dir: str) -> Wallet:
    data = read_wallet_file(name, wallet_dir)
    if data is None:
        raise WalletError(f"No such wallet: {name}")
    if password is None:
        password = ""
        if data.get('kdf_salt'):
            password = getpass.getpass(f"Password for wallet {name}: ")
    return Wallet.load(name, password, wallet_dir)


def _load_deployment(path: str) -> Deployment:
    try:
        return Deployment.load(path)
    except FileNotFoundError:
        raise EpochMintError(f"No deployment at {path}, run 'epochmint init' first")


def cmd_init(args):
    """Deploy a new distributor."""
    if os.path.exists(args.state) and not args.force:
        print(f"Deployment already exists at {args.state} (use --force to replace)")
        return 1

    data = read_wallet_file(args.owner, args.wallet_dir)
    owner = data['address'] if data else normalize_address(args.owner)

    deployment = Deployment.create(
        owner=owner,
        funding=args.funding * config.UNIT,
        min_target=2 ** args.min_target_bits,
        max_target=2 ** args.max_target_bits,
        blocks_per_readjustment=args.blocks_per_readjustment,
        difficulty_denominator=args.denominator,
        target_blocks_per_diff_period=args.target_blocks_per_period
    )
    deployment.save(args.state)

    print_header()
    print(f"✅ Distributor deployed at {deployment.distributor.address}")
    print(f"   Owner: {owner}")
    print(f"   Funding: {deployment.ledger.format_amount(args.funding * config.UNIT)}")
    print(f"   State: {args.state}")
    return 0


def cmd_status(args):
    """Show distributor status."""
    deployment = _load_deployment(args.state)
    distributor = deployment.distributor
    ledger = deployment.ledger

    print(f"\n📦 Host chain: height {deployment.host.height}, "
          f"timestamp {deployment.host.timestamp}")
    print(f"\n📋 Distributor:")
    for key, value in distributor.get_info().items():
        if key in ('Reward', 'Tokens minted', 'Balance'):
            value = ledger.format_amount(value)
        print(f"   {key}: {value}")
    return 0


def cmd_wallet_create(args):
    """Create a new wallet."""
    password = args.password
    if password is None:
        password = getpass.getpass("Enter password (or press enter for none): ")

    wallet = Wallet.create(args.name, password, args.wallet_dir)
    print(f"\n✅ Wallet created: {wallet.name}")
    print(f"   Address: {wallet.address}")
    return 0


def cmd_wallet_info(args):
    """Show wallet info."""
    wallet = _unlock_wallet(args.name, args.password, args.wallet_dir)
    print(f"\n📁 Wallet Info:")
    for key, value in wallet.get_info().items():
        print(f"   {key}: {value}")

    try:
        deployment = Deployment.load(args.state)
    except FileNotFoundError:
        return 0
    balance = deployment.ledger.balance_of(wallet.address)
    print(f"   Balance: {deployment.ledger.format_amount(balance)}")
    return 0


def cmd_wallet_list(args):
    """List all wallets."""
    wallets = list_wallets(args.wallet_dir)
    if not wallets:
        print("No wallets found. Create one with: epochmint wallet create <name>")
        return 0

    print(f"\n📁 Wallets ({len(wallets)}):")
    for name in wallets:
        data = read_wallet_file(name, args.wallet_dir)
        print(f"   {name}: {data['address']}")
    return 0


def cmd_mine(args):
    """Solve challenges and claim the rewards."""
    deployment = _load_deployment(args.state)
    distributor = deployment.distributor
    wallet = _unlock_wallet(args.wallet, args.password, args.wallet_dir)

    if args.threads > 1:
        miner = MultiThreadedSolutionMiner(wallet.address, num_threads=args.threads)
    else:
        miner = SolutionMiner(wallet.address)

    receipts = []

    def submit(result):
        # The claim lands in the next host block
        deployment.host.advance()
        receipt = distributor.claim(wallet.address, *result.claim_args())
        deployment.save(args.state)
        receipts.append(receipt)
        print(f"\n💰 Claimed {deployment.ledger.format_amount(receipt.reward)} "
              f"at block {receipt.block}, epoch {receipt.epoch} opened")
        if receipt.retargeted:
            print(f"   Target readjusted, difficulty now {distributor.get_mining_difficulty()}")
        if receipt.burned:
            print(f"   Burned {deployment.ledger.format_amount(receipt.burned)}")
        return True

    try:
        results = miner.mine_continuous(
            distributor.get_mining_target_and_challenge,
            num_solutions=args.count,
            max_attempts=args.max_attempts,
            verbose=not args.quiet,
            callback=submit
        )
    except KeyboardInterrupt:
        print("\n\n⏹️  Mining stopped by user")
        miner.stop()
        results = []

    print(f"\n📊 Session Summary:")
    print(f"   Claims settled: {len(receipts)}")
    print(f"   Keys tried: {sum(r.attempts for r in results):,}")
    balance = deployment.ledger.balance_of(wallet.address)
    print(f"   Wallet balance: {deployment.ledger.format_amount(balance)}")

    if results and not results[-1].success:
        print(f"   Attempt budget exhausted without a solution")
        return 1
    return 0


def cmd_verify(args):
    """Check a solution without submitting it."""
    valid = verify(
        bytes.fromhex(args.challenge),
        args.target,
        bytes.fromhex(args.message_hash),
        Signature(args.v, args.r, args.s),
        args.claimant
    )
    print("VALID" if valid else "INVALID")
    return 0 if valid else 1


def cmd_events(args):
    """List distributor events."""
    deployment = _load_deployment(args.state)
    events = deployment.distributor.events
    selected = events.filter(args.name) if args.name else list(events)
    for event in selected:
        details = ", ".join(f"{k}={v}" for k, v in event.args.items())
        print(f"   [{event.block}] {event.name}({details})")
    print(f"\n{len(selected)} event(s)")
    return 0


def cmd_chain_advance(args):
    """Produce host blocks."""
    deployment = _load_deployment(args.state)
    block = deployment.host.advance(args.blocks)
    deployment.save(args.state)
    print(f"📦 Host chain at height {block.height}, timestamp {block.timestamp}")
    return 0


def cmd_admin(args):
    """Run an owner-only operation."""
    deployment = _load_deployment(args.state)
    distributor = deployment.distributor
    wallet = _unlock_wallet(args.wallet, args.password, args.wallet_dir)
    caller = wallet.address

    if args.admin_cmd == 'set-target':
        target = distributor.set_mining_target(caller, parse_int(args.value))
        print(f"Mining target set to {target:#x}")
    elif args.admin_cmd == 'set-blocks-per-readjustment':
        distributor.set_blocks_per_readjustment(caller, parse_int(args.value))
        print(f"Blocks per readjustment set to {args.value}")
    elif args.admin_cmd == 'set-denominator':
        distributor.set_difficulty_denominator(caller, parse_int(args.value))
        print(f"Difficulty denominator set to {args.value}")
    elif args.admin_cmd == 'set-target-blocks-per-period':
        distributor.set_target_blocks_per_diff_period(caller, parse_int(args.value))
        print(f"Target blocks per period set to {args.value}")
    elif args.admin_cmd == 'set-burn-block-start':
        block = None if args.value == 'never' else parse_int(args.value)
        distributor.set_burn_block_start(caller, block)
        print(f"Burn block start set to {args.value}")
    elif args.admin_cmd == 'enable-burning':
        distributor.set_burning_enabled(caller)
        print("Burning enabled")
    elif args.admin_cmd == 'disable-burning':
        distributor.set_burning_disabled(caller)
        print("Burning disabled")
    elif args.admin_cmd == 'burn-tokens':
        amount = parse_int(args.value)
        if not distributor.burn_tokens(caller, amount):
            print(f"Ledger refused burn of {amount}")
            return 1
        print(f"Burned {deployment.ledger.format_amount(amount)}")
    elif args.admin_cmd == 'transfer-erc20':
        amount = parse_int(args.amount)
        if not distributor.transfer_erc20(caller, deployment.ledger, args.value, amount):
            print(f"Ledger refused transfer of {amount}")
            return 1
        print(f"Sent {deployment.ledger.format_amount(amount)} to {args.value}")
    elif args.admin_cmd == 'transfer-ownership':
        distributor.transfer_ownership(caller, args.value)
        print(f"Ownership transferred to {distributor.owner}")

    deployment.save(args.state)
    return 0


ADMIN_COMMANDS = {
    'set-target': 'Set the mining target (clamped into bounds)',
    'set-blocks-per-readjustment': 'Set epochs between retargets',
    'set-denominator': 'Set the retarget step denominator',
    'set-target-blocks-per-period': 'Set intended host blocks per period',
    'set-burn-block-start': 'Set burn activation block (or "never")',
    'enable-burning': 'Turn burning on',
    'disable-burning': 'Turn burning off',
    'burn-tokens': 'Burn distributor tokens (base units)',
    'transfer-erc20': 'Send distributor tokens (base units) to an address',
    'transfer-ownership': 'Hand ownership to another address',
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="EpochMint - proof-of-work gated token reward distribution",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--state', type=str, default=DEFAULT_STATE_PATH,
                        help='Deployment state file')
    parser.add_argument('--wallet-dir', type=str, default=DEFAULT_WALLET_DIR,
                        help='Wallet directory')
    parser.add_argument('--log-file', type=str, default=None,
                        help='Write debug log to this file')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Show info-level log messages')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    # Init command
    init_parser = subparsers.add_parser('init', help='Deploy a new distributor')
    init_parser.add_argument('--owner', required=True,
                             help='Owner wallet name or address')
    init_parser.add_argument('--funding', type=int, default=1_000_000,
                             help='Whole tokens minted to the distributor')
    init_parser.add_argument('--min-target-bits', type=int, default=16,
                             help='Minimum target as a power of two')
    init_parser.add_argument('--max-target-bits', type=int, default=220,
                             help='Maximum (initial) target as a power of two')
    init_parser.add_argument('--blocks-per-readjustment', type=int,
                             default=config.BLOCKS_PER_READJUSTMENT,
                             help='Epochs between retargets')
    init_parser.add_argument('--target-blocks-per-period', type=int,
                             default=config.TARGET_BLOCKS_PER_DIFF_PERIOD,
                             help='Intended host blocks per readjustment period')
    init_parser.add_argument('--denominator', type=int, default=config.DIFFICULTY_DENOMINATOR,
                             help='Retarget step denominator')
    init_parser.add_argument('--force', action='store_true',
                             help='Replace an existing deployment')

    subparsers.add_parser('status', help='Show distributor status')

    # Wallet commands
    wallet_parser = subparsers.add_parser('wallet', help='Wallet commands')
    wallet_sub = wallet_parser.add_subparsers(dest='wallet_cmd')

    create_parser = wallet_sub.add_parser('create', help='Create a new wallet')
    create_parser.add_argument('name', help='Wallet name')
    create_parser.add_argument('--password', '-p', type=str, default=None,
                               help='Wallet password')

    info_parser = wallet_sub.add_parser('info', help='Show wallet info')
    info_parser.add_argument('name', help='Wallet name')
    info_parser.add_argument('--password', '-p', type=str, default=None,
                             help='Wallet password')

    wallet_sub.add_parser('list', help='List all wallets')

    # Mine command
    mine_parser = subparsers.add_parser('mine', help='Solve challenges and claim rewards')
    mine_parser.add_argument('--wallet', '-w', type=str, required=True,
                             help='Wallet receiving the rewards')
    mine_parser.add_argument('--password', '-p', type=str, default=None,
                             help='Wallet password')
    mine_parser.add_argument('--count', '-c', type=int, default=1,
                             help='Number of claims (0 = infinite)')
    mine_parser.add_argument('--threads', '-t', type=int, default=1,
                             help='Number of mining threads')
    mine_parser.add_argument('--max-attempts', type=int, default=0,
                             help='Keys to try per challenge (0 = no limit)')
    mine_parser.add_argument('--quiet', '-q', action='store_true',
                             help='Hide miner progress')

    # Verify command
    verify_parser = subparsers.add_parser('verify', help='Check a solution off-chain')
    verify_parser.add_argument('--claimant', required=True, help='Claimant address')
    verify_parser.add_argument('--challenge', required=True, help='Challenge (hex)')
    verify_parser.add_argument('--target', required=True, type=parse_int, help='Target')
    verify_parser.add_argument('--message-hash', required=True, help='Signed message hash (hex)')
    verify_parser.add_argument('--v', required=True, type=parse_int, help='Signature v')
    verify_parser.add_argument('--r', required=True, type=parse_int, help='Signature r')
    verify_parser.add_argument('--s', required=True, type=parse_int, help='Signature s')

    # Events command
    events_parser = subparsers.add_parser('events', help='List distributor events')
    events_parser.add_argument('--name', type=str, default=None, help='Only this event name')

    # Chain commands
    chain_parser = subparsers.add_parser('chain', help='Host chain commands')
    chain_sub = chain_parser.add_subparsers(dest='chain_cmd')
    advance_parser = chain_sub.add_parser('advance', help='Produce host blocks')
    advance_parser.add_argument('--blocks', '-b', type=int, default=1,
                                help='Number of blocks')

    # Admin commands
    admin_parser = subparsers.add_parser('admin', help='Owner-only operations')
    admin_parser.add_argument('--wallet', '-w', type=str, required=True,
                              help='Owner wallet')
    admin_parser.add_argument('--password', '-p', type=str, default=None,
                              help='Wallet password')
    admin_sub = admin_parser.add_subparsers(dest='admin_cmd')
    for name, help_text in ADMIN_COMMANDS.items():
        sub = admin_sub.add_parser(name, help=help_text)
        if name == 'transfer-erc20':
            sub.add_argument('value', help='Recipient address')
            sub.add_argument('amount', help='Amount in base units')
        elif name not in ('enable-burning', 'disable-burning'):
            sub.add_argument('value', help='New value')

    return parser


def main(argv=None):
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_file, args.verbose)

    handlers = {
        'init': cmd_init,
        'status': cmd_status,
        'mine': cmd_mine,
        'verify': cmd_verify,
        'events': cmd_events,
    }

    try:
        if args.command in handlers:
            return handlers[args.command](args)
        elif args.command == 'wallet':
            if args.wallet_cmd == 'create':
                return cmd_wallet_create(args)
            elif args.wallet_cmd == 'info':
                return cmd_wallet_info(args)
            elif args.wallet_cmd == 'list':
                return cmd_wallet_list(args)
            else:
                parser.print_help()
        elif args.command == 'chain':
            if args.chain_cmd == 'advance':
                return cmd_chain_advance(args)
            else:
                parser.print_help()
        elif args.command == 'admin':
            if args.admin_cmd:
                return cmd_admin(args)
            else:
                parser.print_help()
        else:
            print_header()
            parser.print_help()
    except (EpochMintError, ValueError) as e:
        print(f"❌ Error: {e}")
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
