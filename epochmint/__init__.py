"""
EpochMint - Proof-of-work gated token reward distribution
"""

__version__ = "1.0.0"
__author__ = "EpochMint Team"

from .distributor import MiningDistributor, ClaimReceipt
from .host import HostChain
from .ledger import TokenLedger, MemoryLedger
from .miner import SolutionMiner, MultiThreadedSolutionMiner
from .wallet import Wallet

__all__ = ['MiningDistributor', 'ClaimReceipt', 'HostChain', 'TokenLedger',
           'MemoryLedger', 'SolutionMiner', 'MultiThreadedSolutionMiner', 'Wallet']
