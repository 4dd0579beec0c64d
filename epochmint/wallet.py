"""
EpochMint Wallet - Key management and claim signing
"""

import os
import json
import hashlib
import secrets
import time
from pathlib import Path
from typing import Optional, Dict, Any, List, Tuple

from argon2.low_level import hash_secret_raw, Type
from ecdsa import SigningKey, SECP256k1
from ecdsa.util import sigencode_string_canonize

from . import config
from .crypto_utils import (
    Signature, address_from_public_key, recover_signer, signed_message_hash
)
from .exceptions import SignatureRecoveryError, WalletError


DEFAULT_WALLET_DIR = os.path.join(os.path.expanduser(config.DATA_DIR), config.WALLET_DIRNAME)


def generate_keypair() -> Tuple[str, str]:
    """
    Generate a new secp256k1 keypair.

    Returns:
        Tuple of (private_key_hex, public_key_hex)
    """
    sk = SigningKey.generate(curve=SECP256k1)
    vk = sk.get_verifying_key()
    return sk.to_string().hex(), vk.to_string().hex()


def public_key_for(private_key_hex: str) -> str:
    """Derive the raw public key (hex) for a private key."""
    sk = SigningKey.from_string(bytes.fromhex(private_key_hex), curve=SECP256k1)
    return sk.get_verifying_key().to_string().hex()


def sign_digest(private_key_hex: str, digest: bytes) -> Signature:
    """
    Sign a 32-byte digest with a recoverable signature.

    Uses deterministic RFC 6979 nonces and low-s normalization. The recovery
    id is found by recovering both candidates and keeping the one that matches
    the signing key.

    Args:
        private_key_hex: Private key as hex string
        digest: Hash to sign

    Returns:
        Signature with v in {27, 28}
    """
    sk = SigningKey.from_string(bytes.fromhex(private_key_hex), curve=SECP256k1)
    raw = sk.sign_digest_deterministic(
        digest,
        hashfunc=hashlib.sha256,
        sigencode=sigencode_string_canonize
    )
    r = int.from_bytes(raw[:32], 'big')
    s = int.from_bytes(raw[32:], 'big')
    address = address_from_public_key(sk.get_verifying_key().to_string())

    for v in (27, 28):
        signature = Signature(v, r, s)
        if recover_signer(digest, signature) == address:
            return signature
    raise SignatureRecoveryError("Signature does not recover to the signing key")


def _derive_sealing_key(password: str, salt: bytes) -> bytes:
    """Stretch a wallet password into a 32-byte key with Argon2id."""
    return hash_secret_raw(
        secret=password.encode('utf-8'),
        salt=salt,
        time_cost=config.WALLET_KDF_TIME_COST,
        memory_cost=config.WALLET_KDF_MEMORY_COST,
        parallelism=config.WALLET_KDF_PARALLELISM,
        hash_len=32,
        type=Type.ID
    )


def _xor(data: bytes, key: bytes) -> bytes:
    return bytes(a ^ b for a, b in zip(data, key))


class Wallet:
    """
    EpochMint Wallet - a claimant identity.

    The wallet's address is the account rewards are paid to and the identity
    a solution is bound to. The key file stores the private key sealed with an
    Argon2id-derived key when a password is given.
    """

    def __init__(self, name: str, private_key: str, public_key: str, address: str):
        self.name = name
        self._private_key = private_key
        self.public_key = public_key
        self.address = address

    @classmethod
    def generate(cls, name: str = "") -> 'Wallet':
        """Create an unsaved wallet with a fresh keypair."""
        private_key, public_key = generate_keypair()
        address = address_from_public_key(bytes.fromhex(public_key))
        return cls(name, private_key, public_key, address)

    @classmethod
    def create(cls, name: str, password: str = "",
               wallet_dir: str = DEFAULT_WALLET_DIR) -> 'Wallet':
        """
        Create and save a new wallet.

        Args:
            name: Wallet name
            password: Password to seal the private key (optional)
            wallet_dir: Directory to store wallet file

        Returns:
            New Wallet instance
        """
        filepath = os.path.join(wallet_dir, f"{name}.wallet")
        if os.path.exists(filepath):
            raise WalletError(f"Wallet already exists: {name}")
        wallet = cls.generate(name)
        wallet.save(wallet_dir, password)
        return wallet

    def save(self, wallet_dir: str = DEFAULT_WALLET_DIR, password: str = ""):
        """Save wallet to disk."""
        Path(wallet_dir).mkdir(parents=True, exist_ok=True)

        salt = ""
        if password:
            salt_bytes = secrets.token_bytes(config.WALLET_KDF_SALT_LEN)
            sealing_key = _derive_sealing_key(password, salt_bytes)
            stored_key = _xor(bytes.fromhex(self._private_key), sealing_key).hex()
            salt = salt_bytes.hex()
        else:
            stored_key = self._private_key

        data = {
            'name': self.name,
            'address': self.address,
            'public_key': self.public_key,
            'encrypted_private_key': stored_key,
            'kdf_salt': salt,
            'created_at': time.time()
        }

        filepath = os.path.join(wallet_dir, f"{self.name}.wallet")
        with open(filepath, 'w') as f:
            json.dump(data, f, indent=2)

    @classmethod
    def load(cls, name: str, password: str = "",
             wallet_dir: str = DEFAULT_WALLET_DIR) -> 'Wallet':
        """Load wallet from disk."""
        filepath = os.path.join(wallet_dir, f"{name}.wallet")
        if not os.path.exists(filepath):
            raise WalletError(f"No such wallet: {name}")

        with open(filepath, 'r') as f:
            data = json.load(f)

        stored_key = data['encrypted_private_key']
        if data.get('kdf_salt'):
            if not password:
                raise WalletError(f"Wallet {name} is password protected")
            sealing_key = _derive_sealing_key(password, bytes.fromhex(data['kdf_salt']))
            private_key = _xor(bytes.fromhex(stored_key), sealing_key).hex()
        else:
            private_key = stored_key

        if public_key_for(private_key) != data['public_key']:
            raise WalletError(f"Incorrect password for wallet {name}")

        return cls(
            name=data['name'],
            private_key=private_key,
            public_key=data['public_key'],
            address=data['address']
        )

    def sign_digest(self, digest: bytes) -> Signature:
        """Sign a digest with the wallet's private key."""
        return sign_digest(self._private_key, digest)

    def claim_message_hash(self, challenge: bytes) -> bytes:
        """The signed-message hash a solver must sign to pay this wallet."""
        return signed_message_hash(self.address, challenge)

    def get_info(self) -> Dict[str, Any]:
        """Get wallet information."""
        return {
            'Name': self.name,
            'Address': self.address,
            'Public Key': self.public_key[:32] + "...",
        }

    def __repr__(self) -> str:
        return f"Wallet({self.name}, {self.address})"


def list_wallets(wallet_dir: str = DEFAULT_WALLET_DIR) -> List[str]:
    """List all wallet names in the wallet directory."""
    wallet_path = Path(wallet_dir)
    if not wallet_path.exists():
        return []
    return sorted(f.stem for f in wallet_path.glob("*.wallet"))


def read_wallet_file(name: str, wallet_dir: str = DEFAULT_WALLET_DIR) -> Optional[Dict[str, Any]]:
    """Read a wallet file without unlocking it."""
    filepath = os.path.join(wallet_dir, f"{name}.wallet")
    if not os.path.exists(filepath):
        return None
    with open(filepath, 'r') as f:
        return json.load(f)
