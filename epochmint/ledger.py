"""
Token ledger capability for EpochMint

The distributor never keeps balances itself. It holds a reference to a ledger
that can report a balance, move tokens and destroy tokens; MemoryLedger is the
reference implementation used by the CLI and the tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Any

from . import config
from .crypto_utils import normalize_address
from .exceptions import LedgerError

logger = logging.getLogger(__name__)


class TokenLedger(ABC):
    """Interface the distributor consumes for value transfer."""

    @abstractmethod
    def balance_of(self, owner: str) -> int:
        """Get the balance held by owner."""

    @abstractmethod
    def transfer(self, sender: str, to: str, amount: int) -> bool:
        """Move amount from sender to to. Returns False if refused."""

    @abstractmethod
    def burn(self, owner: str, amount: int) -> bool:
        """Destroy amount from owner's holdings. Returns False if refused."""


class MemoryLedger(TokenLedger):
    """
    In-memory fungible token ledger.

    Balances are integers in base units; addresses are normalized so that
    mixed-case spellings share one account.
    """

    def __init__(self, symbol: str = "EMT", decimals: int = config.DECIMALS):
        self.symbol = symbol
        self.decimals = decimals
        self.balances: Dict[str, int] = {}
        self.total_supply = 0

    @staticmethod
    def _check_amount(amount: int):
        if not isinstance(amount, int) or amount < 0:
            raise LedgerError(f"Invalid amount: {amount!r}")

    @staticmethod
    def _account(address: str) -> str:
        try:
            return normalize_address(address)
        except ValueError as e:
            raise LedgerError(str(e)) from e

    def balance_of(self, owner: str) -> int:
        return self.balances.get(self._account(owner), 0)

    def mint(self, to: str, amount: int):
        """Create new tokens (used to fund the distributor)."""
        self._check_amount(amount)
        account = self._account(to)
        self.balances[account] = self.balances.get(account, 0) + amount
        self.total_supply += amount
        logger.debug(f"Minted {amount} {self.symbol} to {account}")

    def transfer(self, sender: str, to: str, amount: int) -> bool:
        self._check_amount(amount)
        source = self._account(sender)
        destination = self._account(to)
        if self.balances.get(source, 0) < amount:
            logger.debug(f"Transfer of {amount} refused: {source} underfunded")
            return False
        self.balances[source] -= amount
        self.balances[destination] = self.balances.get(destination, 0) + amount
        return True

    def burn(self, owner: str, amount: int) -> bool:
        self._check_amount(amount)
        account = self._account(owner)
        if self.balances.get(account, 0) < amount:
            logger.debug(f"Burn of {amount} refused: {account} underfunded")
            return False
        self.balances[account] -= amount
        self.total_supply -= amount
        return True

    def format_amount(self, amount: int) -> str:
        """Render base units as a decimal token amount."""
        whole, frac = divmod(amount, 10 ** self.decimals)
        return f"{whole}.{frac:0{self.decimals}d} {self.symbol}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol,
            'decimals': self.decimals,
            'balances': dict(self.balances),
            'total_supply': self.total_supply,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MemoryLedger':
        ledger = cls(data.get('symbol', "EMT"), data.get('decimals', config.DECIMALS))
        ledger.balances = {k: int(v) for k, v in data.get('balances', {}).items()}
        ledger.total_supply = int(data.get('total_supply', sum(ledger.balances.values())))
        return ledger

    def __repr__(self) -> str:
        return f"MemoryLedger({self.symbol}, accounts={len(self.balances)}, supply={self.total_supply})"
