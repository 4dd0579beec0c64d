"""
Epoch and challenge management for EpochMint

Each successful claim closes the current epoch. The next challenge is the
hash of the block before the one the claim executes in: unknown until that
block existed, public by the time anyone can submit against it.
"""

import logging
from typing import Dict, Any
from dataclasses import dataclass

from .difficulty import DifficultyState, BurnState, retarget
from .host import HostChain, ZERO_HASH

logger = logging.getLogger(__name__)


@dataclass
class EpochState:
    """
    Current epoch.

    Attributes:
        epoch_counter: Number of epochs opened so far (1 after construction)
        challenge: 32-byte value solvers must bind into their digest
        last_epoch_timestamp: Host timestamp at which this epoch opened
    """
    epoch_counter: int = 0
    challenge: bytes = ZERO_HASH
    last_epoch_timestamp: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'epoch_counter': self.epoch_counter,
            'challenge': self.challenge.hex(),
            'last_epoch_timestamp': self.last_epoch_timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EpochState':
        return cls(
            epoch_counter=data['epoch_counter'],
            challenge=bytes.fromhex(data['challenge']),
            last_epoch_timestamp=data['last_epoch_timestamp']
        )


def start_new_epoch(epoch: EpochState, difficulty: DifficultyState,
                    burn: BurnState, host: HostChain) -> bool:
    """
    Open the next epoch.

    Args:
        epoch: Epoch state to advance in place
        difficulty: Difficulty state, retargeted on readjustment boundaries
        burn: Burn state, passed through to the retarget
        host: Host chain supplying height, timestamp and block hashes

    Returns:
        True if this epoch triggered a retarget
    """
    epoch.epoch_counter += 1

    retargeted = epoch.epoch_counter % difficulty.retarget_interval_epochs == 0
    if retargeted:
        retarget(difficulty, burn, host.height)

    epoch.last_epoch_timestamp = host.timestamp
    epoch.challenge = host.block_hash(host.height - 1)

    logger.debug(f"Epoch {epoch.epoch_counter} opened at block {host.height}, "
                 f"challenge {epoch.challenge.hex()}")
    return retargeted
