"""
Single-owner authorization for EpochMint administrative operations
"""

import logging

from .crypto_utils import normalize_address
from .exceptions import AuthorizationError

logger = logging.getLogger(__name__)


class OwnerAuthority:
    """Gates administrative calls to one designated owner address."""

    def __init__(self, owner: str):
        self._owner = normalize_address(owner)

    @property
    def owner(self) -> str:
        return self._owner

    def is_owner(self, caller: str) -> bool:
        try:
            return normalize_address(caller) == self._owner
        except ValueError:
            return False

    def require(self, caller: str):
        """Raise AuthorizationError unless caller is the owner."""
        if not self.is_owner(caller):
            logger.debug(f"Rejected administrative call from {caller}")
            raise AuthorizationError(f"{caller} is not the owner")

    def transfer_ownership(self, caller: str, new_owner: str) -> str:
        """
        Hand ownership to a new address.

        Returns:
            The previous owner
        """
        self.require(caller)
        previous = self._owner
        self._owner = normalize_address(new_owner)
        logger.info(f"Ownership transferred from {previous} to {self._owner}")
        return previous
