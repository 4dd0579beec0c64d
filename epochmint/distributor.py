"""
Mining distributor for EpochMint

The distributor pays a fixed reward from its ledger balance to whoever
submits a valid proof-of-work solution for the live challenge.

Claim flow:
1. Verify the solution against the live challenge and target, bound to the
   caller's address
2. Refuse claims inside the duplicate window of the current epoch
3. Account the reward and check the distributor can fund it
4. Open the next epoch (retargeting on readjustment boundaries)
5. Transfer the reward, then burn BURN_AMOUNT if burning is on

Steps 1-5 are all-or-nothing, except the burn: it runs after the transfer has
landed and a failed burn leaves the claim settled.
"""

import copy
import logging
import threading
from contextlib import contextmanager
from typing import Optional, Dict, Any, Tuple
from dataclasses import dataclass, asdict

from . import config
from . import events
from .auth import OwnerAuthority
from .crypto_utils import Signature, normalize_address
from .difficulty import DifficultyState, BurnState, mining_difficulty, clamp
from .epoch import EpochState, start_new_epoch
from .events import EventLog
from .exceptions import DuplicateSolution, InsufficientBalance, TransferFailed
from .host import HostChain
from .ledger import TokenLedger
from .verifier import verify, verify_or_fail

logger = logging.getLogger(__name__)


@dataclass
class ClaimReceipt:
    """Outcome of a settled claim."""
    claimant: str
    reward: int
    epoch: int
    new_challenge: bytes
    digest: bytes
    block: int
    retargeted: bool = False
    burned: int = 0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['new_challenge'] = self.new_challenge.hex()
        data['digest'] = self.digest.hex()
        return data


class MiningDistributor:
    """
    Proof-of-work gated reward distributor.

    Features:
    - Self-adjusting mining target
    - Fresh challenge per epoch
    - Optional burn once difficulty collapses below its watermark
    - Owner-gated administration
    - Serialized, all-or-nothing claims
    """

    def __init__(self, ledger: TokenLedger, host: HostChain, owner: str,
                 address: str = config.DISTRIBUTOR_ADDRESS,
                 mining_reward: int = config.MINING_REWARD,
                 burn_amount: int = config.BURN_AMOUNT,
                 min_target: int = config.MIN_TARGET,
                 max_target: int = config.MAX_TARGET,
                 blocks_per_readjustment: int = config.BLOCKS_PER_READJUSTMENT,
                 difficulty_denominator: int = config.DIFFICULTY_DENOMINATOR,
                 target_blocks_per_diff_period: int = config.TARGET_BLOCKS_PER_DIFF_PERIOD,
                 duplicate_window: int = config.DUPLICATE_WINDOW):
        """
        Deploy a distributor.

        Args:
            ledger: Ledger holding the distributable tokens
            host: Host chain supplying height, hashes and time
            owner: Address allowed to call administrative operations
            address: Ledger account of the distributor
            mining_reward: Reward per successful claim
            burn_amount: Amount burned per claim while burning
            min_target: Hardest allowed target
            max_target: Easiest allowed target (and the initial target)
            blocks_per_readjustment: Epochs between retargets
            difficulty_denominator: Retarget step divisor
            target_blocks_per_diff_period: Intended host blocks per period
            duplicate_window: Minimum time units between epochs
        """
        if not 0 < min_target <= max_target:
            raise ValueError("Targets must satisfy 0 < min_target <= max_target")
        for name, value in (('blocks_per_readjustment', blocks_per_readjustment),
                            ('difficulty_denominator', difficulty_denominator),
                            ('target_blocks_per_diff_period', target_blocks_per_diff_period),
                            ('duplicate_window', duplicate_window)):
            if value <= 0:
                raise ValueError(f"{name} must be positive")
        if mining_reward < 0 or burn_amount < 0:
            raise ValueError("Reward and burn amounts must not be negative")

        self.ledger = ledger
        self.host = host
        self.address = normalize_address(address)
        self.authority = OwnerAuthority(owner)
        self.mining_reward = mining_reward
        self.burn_amount = burn_amount
        self.duplicate_window = duplicate_window

        self.difficulty = DifficultyState(
            current_target=max_target,
            period_start_block=host.height,
            retarget_interval_epochs=blocks_per_readjustment,
            retarget_denominator=difficulty_denominator,
            target_blocks_per_period=target_blocks_per_diff_period,
            min_target=min_target,
            max_target=max_target
        )
        self.burn = BurnState()
        self.epoch = EpochState()
        self._tokens_minted = 0
        self.events = EventLog()
        self._lock = threading.RLock()

        start_new_epoch(self.epoch, self.difficulty, self.burn, self.host)
        logger.info(f"Distributor {self.address} deployed at block {host.height}, "
                    f"owner {self.authority.owner}")

    # -------------------------------------------------------------------------
    # Atomic execution
    # -------------------------------------------------------------------------

    def _snapshot(self) -> tuple:
        return (
            copy.deepcopy(self.difficulty),
            copy.deepcopy(self.burn),
            copy.deepcopy(self.epoch),
            self._tokens_minted,
            len(self.events),
            self.authority.owner,
        )

    def _restore(self, snapshot: tuple):
        (self.difficulty, self.burn, self.epoch,
         self._tokens_minted, event_count, owner) = snapshot
        self.events.truncate(event_count)
        self.authority = OwnerAuthority(owner)

    @contextmanager
    def _atomic(self):
        """Serialize a call and roll back every state change if it raises."""
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield
            except BaseException:
                self._restore(snapshot)
                raise

    def _emit(self, name: str, **args):
        self.events.emit(name, self.host.height, **args)

    def _emit_burn_transition(self, was_enabled: bool):
        if self.burn.burn_enabled and not was_enabled:
            self._emit(events.BURNING_ENABLED)
        elif was_enabled and not self.burn.burn_enabled:
            self._emit(events.BURNING_DISABLED)

    # -------------------------------------------------------------------------
    # Claims
    # -------------------------------------------------------------------------

    def claim(self, caller: str, message_hash: bytes, v: int, r: int, s: int) -> ClaimReceipt:
        """
        Claim the reward for a solved challenge.

        Args:
            caller: Address submitting the claim (receives the reward)
            message_hash: Signed-message hash for caller and the live challenge
            v, r, s: Solver's signature over message_hash

        Returns:
            ClaimReceipt for the settled claim

        Raises:
            IncorrectMessage, SignatureRecoveryError, HighHash: bad solution
            DuplicateSolution: epoch already claimed in this time unit
            InsufficientBalance: distributor cannot fund the reward
            TransferFailed: ledger refused the reward transfer
        """
        with self._atomic():
            caller = normalize_address(caller)
            digest = verify_or_fail(
                self.epoch.challenge,
                self.difficulty.current_target,
                message_hash,
                Signature(v, r, s),
                caller
            )

            duration = self.host.timestamp - self.epoch.last_epoch_timestamp
            if duration < self.duplicate_window:
                raise DuplicateSolution(
                    f"Epoch {self.epoch.epoch_counter} opened {duration}s ago "
                    f"(window {self.duplicate_window}s)"
                )

            self._tokens_minted += self.mining_reward

            balance = self.ledger.balance_of(self.address)
            if balance < self.mining_reward:
                raise InsufficientBalance(balance, self.mining_reward)

            was_burning = self.burn.burn_enabled
            retargeted = start_new_epoch(self.epoch, self.difficulty, self.burn, self.host)
            self._emit_burn_transition(was_burning)

            if not self.ledger.transfer(self.address, caller, self.mining_reward):
                raise TransferFailed(f"Ledger refused reward transfer to {caller}")

            burned = self._burn_after_claim(balance)

            self._emit(
                events.MINT,
                to=caller,
                reward=self.mining_reward,
                epoch=self.epoch.epoch_counter,
                new_challenge=self.epoch.challenge.hex()
            )
            logger.info(f"Epoch {self.epoch.epoch_counter - 1} claimed by {caller} "
                        f"at block {self.host.height}")

            return ClaimReceipt(
                claimant=caller,
                reward=self.mining_reward,
                epoch=self.epoch.epoch_counter,
                new_challenge=self.epoch.challenge,
                digest=digest,
                block=self.host.height,
                retargeted=retargeted,
                burned=burned
            )

    def _burn_after_claim(self, balance: int) -> int:
        """Burn BURN_AMOUNT if enabled and affordable. Never raises."""
        if not self.burn.burn_enabled:
            return 0
        if balance - self.mining_reward - self.burn_amount <= 0:
            return 0
        try:
            burned = self.ledger.burn(self.address, self.burn_amount)
        except Exception as e:
            logger.warning(f"Burn of {self.burn_amount} failed, claim stays settled: {e}")
            return 0
        if not burned:
            logger.warning(f"Ledger refused burn of {self.burn_amount}, claim stays settled")
            return 0
        return self.burn_amount

    def verify_mining_solution(self, challenge: bytes, test_target: int, message_hash: bytes,
                               v: int, r: int, s: int, claimant: str) -> bool:
        """Check a solution against any challenge and target. No state change."""
        return verify(challenge, test_target, message_hash, Signature(v, r, s), claimant)

    # -------------------------------------------------------------------------
    # Administration (owner only)
    # -------------------------------------------------------------------------

    def set_mining_target(self, caller: str, target: int) -> int:
        """Set the mining target, clamped into [min_target, max_target]."""
        with self._atomic():
            self.authority.require(caller)
            self.difficulty.current_target = clamp(
                target, self.difficulty.min_target, self.difficulty.max_target
            )
            self._emit(events.MINING_TARGET_SET, target=self.difficulty.current_target)
            return self.difficulty.current_target

    def set_blocks_per_readjustment(self, caller: str, epochs: int):
        with self._atomic():
            self.authority.require(caller)
            if epochs <= 0:
                raise ValueError("Blocks per readjustment must be positive")
            self.difficulty.retarget_interval_epochs = epochs
            self._emit(events.BLOCKS_PER_READJUSTMENT_SET, blocks=epochs)

    def set_difficulty_denominator(self, caller: str, denominator: int):
        with self._atomic():
            self.authority.require(caller)
            if denominator <= 0:
                raise ValueError("Difficulty denominator must be positive")
            self.difficulty.retarget_denominator = denominator
            self._emit(events.DIFFICULTY_DENOMINATOR_SET, denominator=denominator)

    def set_target_blocks_per_diff_period(self, caller: str, blocks: int):
        with self._atomic():
            self.authority.require(caller)
            if blocks <= 0:
                raise ValueError("Target blocks per period must be positive")
            self.difficulty.target_blocks_per_period = blocks
            self._emit(events.TARGET_BLOCKS_PER_DIFF_PERIOD_SET, blocks=blocks)

    def set_burn_block_start(self, caller: str, block: Optional[int]):
        """Set the host height after which burn hysteresis runs (None = never)."""
        with self._atomic():
            self.authority.require(caller)
            if block is not None and block < 0:
                raise ValueError("Burn block start must not be negative")
            self.burn.burn_activation_block = block
            self._emit(events.BURN_BLOCK_START_SET, block_start=block)

    def set_burning_enabled(self, caller: str):
        with self._atomic():
            self.authority.require(caller)
            self.burn.burn_enabled = True
            self._emit(events.BURNING_ENABLED)

    def set_burning_disabled(self, caller: str):
        with self._atomic():
            self.authority.require(caller)
            self.burn.burn_enabled = False
            self._emit(events.BURNING_DISABLED)

    def transfer_erc20(self, caller: str, token_ledger: TokenLedger, to: str, amount: int) -> bool:
        """Move tokens the distributor holds on any ledger to another account."""
        with self._atomic():
            self.authority.require(caller)
            return token_ledger.transfer(self.address, to, amount)

    def burn_tokens(self, caller: str, amount: int) -> bool:
        """Destroy tokens from the distributor's own holdings."""
        with self._atomic():
            self.authority.require(caller)
            return self.ledger.burn(self.address, amount)

    def transfer_ownership(self, caller: str, new_owner: str):
        with self._atomic():
            previous = self.authority.transfer_ownership(caller, new_owner)
            self._emit(events.OWNERSHIP_TRANSFERRED,
                       previous_owner=previous, new_owner=self.authority.owner)

    # -------------------------------------------------------------------------
    # Read surface
    # -------------------------------------------------------------------------

    @property
    def owner(self) -> str:
        return self.authority.owner

    def get_mining_target(self) -> int:
        return self.difficulty.current_target

    def get_mining_difficulty(self) -> int:
        return mining_difficulty(self.difficulty.max_target, self.difficulty.current_target)

    def get_challenge_number(self) -> bytes:
        return self.epoch.challenge

    def get_mining_target_and_challenge(self) -> Tuple[int, bytes]:
        """Read target and challenge together so they belong to one epoch."""
        with self._lock:
            return self.difficulty.current_target, self.epoch.challenge

    def epoch_count(self) -> int:
        return self.epoch.epoch_counter

    def get_mining_reward(self) -> int:
        return self.mining_reward

    def tokens_minted(self) -> int:
        return self._tokens_minted

    def blocks_per_readjustment(self) -> int:
        return self.difficulty.retarget_interval_epochs

    def difficulty_denominator(self) -> int:
        return self.difficulty.retarget_denominator

    def target_blocks_per_diff_period(self) -> int:
        return self.difficulty.target_blocks_per_period

    def burn_block_start(self) -> Optional[int]:
        return self.burn.burn_activation_block

    def burning_enabled(self) -> bool:
        return self.burn.burn_enabled

    def max_difficulty_observed(self) -> int:
        return self.burn.max_observed_difficulty

    def get_info(self) -> Dict[str, Any]:
        """Get distributor information."""
        return {
            'Address': self.address,
            'Owner': self.owner,
            'Epoch': self.epoch_count(),
            'Challenge': self.get_challenge_number().hex(),
            'Target': hex(self.get_mining_target()),
            'Difficulty': self.get_mining_difficulty(),
            'Reward': self.mining_reward,
            'Tokens minted': self.tokens_minted(),
            'Balance': self.ledger.balance_of(self.address),
            'Blocks per readjustment': self.blocks_per_readjustment(),
            'Difficulty denominator': self.difficulty_denominator(),
            'Target blocks per period': self.target_blocks_per_diff_period(),
            'Burn block start': self.burn_block_start(),
            'Burning enabled': self.burning_enabled(),
            'Max difficulty observed': self.max_difficulty_observed(),
        }

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'address': self.address,
                'owner': self.owner,
                'mining_reward': self.mining_reward,
                'burn_amount': self.burn_amount,
                'duplicate_window': self.duplicate_window,
                'tokens_minted': self._tokens_minted,
                'difficulty': self.difficulty.to_dict(),
                'burn': self.burn.to_dict(),
                'epoch': self.epoch.to_dict(),
                'events': self.events.to_list(),
            }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], ledger: TokenLedger,
                  host: HostChain) -> 'MiningDistributor':
        """Rebuild a distributor from to_dict output without redeploying it."""
        distributor = cls.__new__(cls)
        distributor.ledger = ledger
        distributor.host = host
        distributor.address = normalize_address(data['address'])
        distributor.authority = OwnerAuthority(data['owner'])
        distributor.mining_reward = data['mining_reward']
        distributor.burn_amount = data['burn_amount']
        distributor.duplicate_window = data.get('duplicate_window', config.DUPLICATE_WINDOW)
        distributor._tokens_minted = data['tokens_minted']
        distributor.difficulty = DifficultyState.from_dict(data['difficulty'])
        distributor.burn = BurnState.from_dict(data['burn'])
        distributor.epoch = EpochState.from_dict(data['epoch'])
        distributor.events = EventLog.from_list(data.get('events', []))
        distributor._lock = threading.RLock()
        return distributor

    def __repr__(self) -> str:
        return (f"MiningDistributor(epoch={self.epoch_count()}, "
                f"difficulty={self.get_mining_difficulty()}, "
                f"minted={self._tokens_minted}, burning={self.burning_enabled()})")
