"""
EpochMint exceptions

Every error aborts the call that raised it with no state change. Callers that
want to retry resubmit against the current challenge.

Exception hierarchy:
- EpochMintError: base for everything raised by this package
  - VerificationError: the submitted solution was rejected
    - IncorrectMessage
    - SignatureRecoveryError
    - HighHash
  - DuplicateSolution
  - InsufficientBalance
  - TransferFailed
  - AuthorizationError
  - LedgerError
  - WalletError
"""


class EpochMintError(Exception):
    """Base exception for EpochMint operations."""
    pass


class VerificationError(EpochMintError):
    """Raised when a proof-of-work solution fails verification."""
    pass


class IncorrectMessage(VerificationError):
    """
    Raised when the signed-message hash does not match the expected one.

    The expected hash binds the claimant address and the live challenge, so a
    solution computed for someone else or for an old challenge lands here.
    """
    pass


class SignatureRecoveryError(VerificationError):
    """Raised when no signer can be recovered from a malformed signature."""
    pass


class HighHash(VerificationError):
    """Raised when the solution digest is above the mining target."""

    def __init__(self, digest: int, target: int):
        super().__init__(f"Digest {digest:#x} exceeds target {target:#x}")
        self.digest = digest
        self.target = target


class DuplicateSolution(EpochMintError):
    """
    Raised when a claim arrives inside the duplicate window of the last epoch.

    Two claims in the same host time unit would share a challenge, so the
    second one is refused.
    """
    pass


class InsufficientBalance(EpochMintError):
    """Raised when the distributor cannot fund the reward."""

    def __init__(self, balance: int, required: int):
        super().__init__(f"Distributor balance {balance} is below reward {required}")
        self.balance = balance
        self.required = required


class TransferFailed(EpochMintError):
    """Raised when the ledger refuses the reward transfer."""
    pass


class AuthorizationError(EpochMintError):
    """Raised when a non-owner calls an administrative operation."""
    pass


class LedgerError(EpochMintError):
    """Raised by ledgers for malformed requests (negative amounts, bad accounts)."""
    pass


class WalletError(EpochMintError):
    """Raised when a wallet cannot be loaded or unlocked."""
    pass
