"""
Cryptographic utilities for EpochMint
Uses SHA-256 for message and solution digests and secp256k1 (ecdsa) for
signer recovery
"""

import hashlib
from dataclasses import dataclass
from typing import Union, Dict, Any

from ecdsa import SECP256k1, VerifyingKey
from ecdsa.ecdsa import InvalidPointError
from ecdsa.errors import MalformedPointError
from ecdsa.numbertheory import SquareRootError

from . import config
from .exceptions import SignatureRecoveryError


def sha256(data: Union[str, bytes]) -> str:
    """Compute SHA-256 hash of data."""
    if isinstance(data, str):
        data = data.encode('utf-8')
    return hashlib.sha256(data).hexdigest()


def sha256_digest(data: bytes) -> bytes:
    """Compute the raw 32-byte SHA-256 digest of data."""
    return hashlib.sha256(data).digest()


@dataclass(frozen=True)
class Signature:
    """
    A recoverable secp256k1 signature.

    Attributes:
        v: Recovery id, 27/28 (0/1 also accepted)
        r: Signature r value
        s: Signature s value
    """
    v: int
    r: int
    s: int

    def to_dict(self) -> Dict[str, Any]:
        return {'v': self.v, 'r': hex(self.r), 's': hex(self.s)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Signature':
        return cls(v=int(data['v']), r=int(data['r'], 16), s=int(data['s'], 16))


def address_from_public_key(public_key: bytes) -> str:
    """
    Convert a raw 64-byte public key (x || y) to an address.

    The address is the last 20 bytes of the key's SHA-256 hash.
    """
    return "0x" + sha256_digest(public_key)[-config.ADDRESS_LENGTH:].hex()


def address_to_bytes(address: str) -> bytes:
    """Decode a 0x-prefixed address into its 20 raw bytes."""
    if not isinstance(address, str) or not address.lower().startswith("0x"):
        raise ValueError(f"Invalid address: {address!r}")
    try:
        raw = bytes.fromhex(address[2:])
    except ValueError:
        raise ValueError(f"Invalid address: {address!r}")
    if len(raw) != config.ADDRESS_LENGTH:
        raise ValueError(f"Address must be {config.ADDRESS_LENGTH} bytes: {address!r}")
    return raw


def normalize_address(address: str) -> str:
    """Return the canonical lower-case form of an address."""
    return "0x" + address_to_bytes(address).hex()


def signed_message_hash(claimant: str, challenge: bytes) -> bytes:
    """
    Build the hash a solver must sign for a claimant and challenge.

    sha256(prefix || "52" || claimant || challenge)
    """
    payload = address_to_bytes(claimant) + challenge
    length = str(len(payload)).encode('ascii')
    return sha256_digest(config.SIGNED_MESSAGE_PREFIX + length + payload)


def solution_digest(signer: str, claimant: str, challenge: bytes) -> bytes:
    """Compute the proof-of-work digest sha256(signer || claimant || challenge)."""
    return sha256_digest(address_to_bytes(signer) + address_to_bytes(claimant) + challenge)


def digest_to_int(digest: bytes) -> int:
    """Read a digest as an unsigned big-endian integer."""
    return int.from_bytes(digest, 'big')


def meets_target(digest: bytes, target: int) -> bool:
    """Check if a digest is at or below the mining target."""
    return digest_to_int(digest) <= target


def recover_signer(message_hash: bytes, signature: Signature) -> str:
    """
    Recover the address that produced a signature over message_hash.

    Args:
        message_hash: The 32-byte hash that was signed
        signature: Recoverable signature

    Returns:
        Signer address

    Raises:
        SignatureRecoveryError: if the signature is malformed
    """
    if signature.v in (27, 28):
        recovery_index = signature.v - 27
    elif signature.v in (0, 1):
        recovery_index = signature.v
    else:
        raise SignatureRecoveryError(f"Invalid recovery id v={signature.v}")

    order = SECP256k1.order
    if not 0 < signature.r < order or not 0 < signature.s < order:
        raise SignatureRecoveryError("Signature r/s outside the curve order")
    if len(message_hash) != 32:
        raise SignatureRecoveryError("Message hash must be 32 bytes")

    raw_signature = signature.r.to_bytes(32, 'big') + signature.s.to_bytes(32, 'big')
    try:
        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            raw_signature,
            message_hash,
            curve=SECP256k1,
            hashfunc=hashlib.sha256
        )
    except (SquareRootError, InvalidPointError, MalformedPointError) as e:
        raise SignatureRecoveryError(f"Cannot recover signer: {e}") from e

    return address_from_public_key(candidates[recovery_index].to_string())
