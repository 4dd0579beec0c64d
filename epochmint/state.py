"""
Deployment persistence for EpochMint

A deployment is everything the CLI needs between runs: the host chain, the
token ledger and the distributor, saved together as one JSON document.
"""

import os
import json
import logging
from pathlib import Path
from typing import Dict, Any

from . import config
from .distributor import MiningDistributor
from .host import HostChain
from .ledger import MemoryLedger

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = os.path.join(os.path.expanduser(config.DATA_DIR), config.STATE_FILENAME)


class Deployment:
    """Host chain, ledger and distributor that live and persist together."""

    def __init__(self, host: HostChain, ledger: MemoryLedger, distributor: MiningDistributor):
        self.host = host
        self.ledger = ledger
        self.distributor = distributor

    @classmethod
    def create(cls, owner: str, funding: int, **distributor_options) -> 'Deployment':
        """
        Start a fresh host chain and ledger, deploy a distributor and fund it.

        Args:
            owner: Administrative owner address
            funding: Tokens minted to the distributor
            **distributor_options: Keyword overrides for MiningDistributor

        Returns:
            New Deployment
        """
        host = HostChain()
        ledger = MemoryLedger()
        distributor = MiningDistributor(ledger, host, owner, **distributor_options)
        if funding:
            ledger.mint(distributor.address, funding)
        return cls(host, ledger, distributor)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'host': self.host.to_dict(),
            'ledger': self.ledger.to_dict(),
            'distributor': self.distributor.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Deployment':
        host = HostChain.from_dict(data['host'])
        ledger = MemoryLedger.from_dict(data['ledger'])
        distributor = MiningDistributor.from_dict(data['distributor'], ledger, host)
        return cls(host, ledger, distributor)

    def save(self, filepath: str = DEFAULT_STATE_PATH):
        """Save deployment to file."""
        Path(filepath).parent.mkdir(parents=True, exist_ok=True)
        tmp_path = filepath + ".tmp"
        with open(tmp_path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        os.replace(tmp_path, filepath)
        logger.debug(f"Deployment saved to {filepath}")

    @classmethod
    def load(cls, filepath: str = DEFAULT_STATE_PATH) -> 'Deployment':
        """Load deployment from file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def __repr__(self) -> str:
        return f"Deployment({self.host!r}, {self.distributor!r})"
