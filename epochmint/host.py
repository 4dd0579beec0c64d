"""
Host chain for EpochMint

The distributor runs inside a host execution environment that supplies a
monotonic block height, the hashes of recent blocks and a block timestamp.
HostChain is a small local stand-in for that environment:
- Blocks are appended with strictly increasing height and timestamp
- Only the most recent BLOCKHASH_WINDOW ancestors have an addressable hash
- Anything older, the current block, or a future block hashes to zero
"""

import json
from typing import List, Optional, Dict, Any
from dataclasses import dataclass, asdict

from . import config
from .crypto_utils import sha256

ZERO_HASH = bytes(32)


@dataclass
class Block:
    """
    A host block.

    Attributes:
        height: Block height
        timestamp: Whole-second Unix timestamp
        previous_hash: Hex hash of the parent block
        hash: Hex hash of this block
    """
    height: int
    timestamp: int
    previous_hash: str
    hash: str = ""

    def __post_init__(self):
        if not self.hash:
            self.hash = self.compute_hash()

    def compute_header(self) -> str:
        """Compute the block header for hashing."""
        header_data = {
            'height': self.height,
            'timestamp': self.timestamp,
            'previous_hash': self.previous_hash,
        }
        return json.dumps(header_data, sort_keys=True)

    def compute_hash(self) -> str:
        return sha256(self.compute_header())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        return cls(**data)


class HostChain:
    """
    Source of block height, block hash and timestamp.

    Calls into the distributor are assumed to execute inside the latest block.
    """

    def __init__(self, genesis_timestamp: int = config.GENESIS_TIMESTAMP,
                 block_time: int = config.BLOCK_TIME,
                 blockhash_window: int = config.BLOCKHASH_WINDOW):
        self.block_time = block_time
        self.blockhash_window = blockhash_window
        genesis = Block(
            height=0,
            timestamp=genesis_timestamp,
            previous_hash=sha256(config.GENESIS_MESSAGE)
        )
        self.blocks: List[Block] = [genesis]

    @property
    def latest(self) -> Block:
        return self.blocks[-1]

    @property
    def height(self) -> int:
        """Height of the block calls currently execute in."""
        return self.latest.height

    @property
    def timestamp(self) -> int:
        """Timestamp of the block calls currently execute in."""
        return self.latest.timestamp

    def advance(self, count: int = 1, timestamp: Optional[int] = None) -> Block:
        """
        Append blocks to the chain.

        Args:
            count: Number of blocks to produce
            timestamp: Timestamp of the last produced block (defaults to
                block_time seconds per block)

        Returns:
            The new latest block
        """
        if count < 1:
            raise ValueError("count must be at least 1")

        final_timestamp = timestamp
        if final_timestamp is None:
            final_timestamp = self.timestamp + self.block_time * count
        if final_timestamp < self.timestamp + count:
            raise ValueError("Block timestamps must strictly increase")

        start_timestamp = self.timestamp
        for i in range(1, count + 1):
            if i == count:
                block_timestamp = final_timestamp
            elif timestamp is None:
                block_timestamp = start_timestamp + self.block_time * i
            else:
                block_timestamp = start_timestamp + i
            block = Block(
                height=self.height + 1,
                timestamp=block_timestamp,
                previous_hash=self.latest.hash
            )
            self.blocks.append(block)

        # Keep the addressable window plus the current block
        if len(self.blocks) > self.blockhash_window + 1:
            self.blocks = self.blocks[-(self.blockhash_window + 1):]

        return self.latest

    def block_hash(self, height: int) -> bytes:
        """
        Get the hash of an ancestor block.

        Returns 32 zero bytes for the current block, future blocks, negative
        heights and ancestors older than the window.
        """
        if height < 0 or height >= self.height:
            return ZERO_HASH
        if height < self.height - self.blockhash_window:
            return ZERO_HASH
        for block in reversed(self.blocks):
            if block.height == height:
                return bytes.fromhex(block.hash)
        return ZERO_HASH

    def to_dict(self) -> Dict[str, Any]:
        return {
            'block_time': self.block_time,
            'blockhash_window': self.blockhash_window,
            'blocks': [block.to_dict() for block in self.blocks],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HostChain':
        host = cls.__new__(cls)
        host.block_time = data.get('block_time', config.BLOCK_TIME)
        host.blockhash_window = data.get('blockhash_window', config.BLOCKHASH_WINDOW)
        host.blocks = [Block.from_dict(b) for b in data['blocks']]
        return host

    def __repr__(self) -> str:
        return f"HostChain(height={self.height}, timestamp={self.timestamp})"
