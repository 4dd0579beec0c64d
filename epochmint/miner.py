"""
EpochMint Miner - Off-chain solution search

The claimant's signed-message hash is fixed by the claimant address and the
challenge, so the only free variable is the key that signs it. The miner
draws throw-away signing keys until

    sha256(signer || claimant || challenge) <= target

Mining flow:
1. Read the live (target, challenge) pair from the distributor
2. Search signing keys until one produces a digest at or below the target
3. Self-check the solution with the verifier before handing it back
4. The caller submits it with MiningDistributor.claim
"""

import time
import threading
import multiprocessing
from typing import Optional, Dict, Any, Callable, List
from dataclasses import dataclass

from .crypto_utils import (
    Signature, address_from_public_key, normalize_address, signed_message_hash,
    solution_digest, meets_target
)
from .verifier import verify
from .wallet import generate_keypair, sign_digest


@dataclass
class MiningResult:
    """Result of one solution search."""
    success: bool
    claimant: str = ""
    challenge: bytes = b""
    target: int = 0
    message_hash: bytes = b""
    signature: Optional[Signature] = None
    signer: str = ""
    digest: bytes = b""
    attempts: int = 0
    hash_rate: float = 0.0
    elapsed_time: float = 0.0

    def claim_args(self) -> tuple:
        """Arguments for MiningDistributor.claim after the caller address."""
        return (self.message_hash, self.signature.v, self.signature.r, self.signature.s)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'claimant': self.claimant,
            'challenge': self.challenge.hex(),
            'target': hex(self.target),
            'message_hash': self.message_hash.hex(),
            'signature': self.signature.to_dict() if self.signature else None,
            'signer': self.signer,
            'digest': self.digest.hex(),
            'attempts': self.attempts,
            'hash_rate': self.hash_rate,
            'elapsed_time': self.elapsed_time,
        }


def try_signing_key(claimant: str, challenge: bytes, target: int,
                    message_hash: bytes) -> Optional[MiningResult]:
    """Draw one signing key and return a result if it solves the challenge."""
    private_key, public_key = generate_keypair()
    signer = address_from_public_key(bytes.fromhex(public_key))
    digest = solution_digest(signer, claimant, challenge)
    if not meets_target(digest, target):
        return None
    return MiningResult(
        success=True,
        claimant=claimant,
        challenge=challenge,
        target=target,
        message_hash=message_hash,
        signature=sign_digest(private_key, message_hash),
        signer=signer,
        digest=digest
    )


class SolutionMiner:
    """
    Single-threaded solution miner.

    Features:
    - Searches throw-away signing keys for one claimant
    - Attempt budget and external stop
    - Self-checks every solution with the verifier
    """

    def __init__(self, claimant: str):
        """
        Initialize the miner.

        Args:
            claimant: Address the solutions pay out to
        """
        self.claimant = normalize_address(claimant)
        self.num_threads = 1

        # Mining state
        self.is_mining = False
        self.total_attempts = 0
        self.start_time = 0.0
        self.solutions_found = 0

        # Threading
        self._stop_event = threading.Event()
        self._lock = threading.Lock()

    def solve(self, challenge: bytes, target: int, max_attempts: int = 0,
              verbose: bool = False) -> MiningResult:
        """
        Search for a solution to one challenge.

        Args:
            challenge: Live challenge
            target: Live mining target
            max_attempts: Give up after this many keys (0 = no limit)
            verbose: Print progress information

        Returns:
            MiningResult (success=False if the budget ran out or mining stopped)
        """
        self._stop_event.clear()
        self.is_mining = True
        self.start_time = time.time()
        message_hash = signed_message_hash(self.claimant, challenge)

        if verbose:
            print(f"\n⛏️  Mining for {self.claimant}")
            print(f"   Challenge: {challenge.hex()}")
            print(f"   Target: {target:#x}")

        result = None
        attempts = 0
        while not self._stop_event.is_set():
            if max_attempts and attempts >= max_attempts:
                break
            attempts += 1
            result = try_signing_key(self.claimant, challenge, target, message_hash)
            if result:
                break

            if verbose and attempts % 100 == 0:
                elapsed = time.time() - self.start_time
                rate = attempts / elapsed if elapsed > 0 else 0
                print(f"\r   Mining... {attempts:,} keys, {rate:.2f} keys/s", end="", flush=True)

        self.total_attempts += attempts
        return self._finish(result, challenge, target, message_hash, attempts, verbose)

    def _finish(self, result: Optional[MiningResult], challenge: bytes, target: int,
                message_hash: bytes, attempts: int, verbose: bool) -> MiningResult:
        elapsed = time.time() - self.start_time
        rate = attempts / elapsed if elapsed > 0 else 0.0
        self.is_mining = False

        if result is None:
            return MiningResult(success=False, claimant=self.claimant, challenge=challenge,
                                target=target, message_hash=message_hash,
                                attempts=attempts, hash_rate=rate, elapsed_time=elapsed)

        # Never hand back something the distributor would reject
        if not verify(challenge, target, result.message_hash, result.signature, self.claimant):
            raise RuntimeError("Miner produced a solution that fails verification")

        result.attempts = attempts
        result.hash_rate = rate
        result.elapsed_time = elapsed
        self.solutions_found += 1

        if verbose:
            print(f"\n✅ Solution found!")
            print(f"   Signer: {result.signer}")
            print(f"   Digest: {result.digest.hex()}")
            print(f"   Attempts: {attempts:,}")
            print(f"   Time: {elapsed:.2f}s")
            print(f"   Rate: {rate:.2f} keys/s")

        return result

    def mine_continuous(self, next_work: Callable[[], tuple], num_solutions: int = 0,
                        max_attempts: int = 0, verbose: bool = True,
                        callback: Optional[Callable[[MiningResult], bool]] = None) -> List[MiningResult]:
        """
        Solve challenge after challenge.

        Args:
            next_work: Returns the live (target, challenge) pair
            num_solutions: Number of solutions to find (0 = infinite)
            max_attempts: Per-challenge attempt budget (0 = no limit)
            verbose: Print progress
            callback: Called after each solution (e.g. to submit the claim);
                return False to stop

        Returns:
            List of MiningResults
        """
        results = []
        found = 0
        while num_solutions == 0 or found < num_solutions:
            target, challenge = next_work()
            result = self.solve(challenge, target, max_attempts=max_attempts, verbose=verbose)
            results.append(result)
            if not result.success:
                break
            found += 1
            if callback and not callback(result):
                break
        return results

    def stop(self):
        """Stop mining."""
        self.is_mining = False
        self._stop_event.set()

    def get_stats(self) -> Dict[str, Any]:
        """Get mining statistics."""
        elapsed = time.time() - self.start_time if self.start_time else 0
        return {
            'is_mining': self.is_mining,
            'claimant': self.claimant,
            'threads': self.num_threads,
            'solutions_found': self.solutions_found,
            'total_attempts': self.total_attempts,
            'elapsed_time': elapsed,
        }


class MultiThreadedSolutionMiner(SolutionMiner):
    """
    Multi-threaded solution miner for multi-core CPUs.

    Every thread draws its own keys; the first solution wins.
    """

    def __init__(self, claimant: str, num_threads: int = 0):
        super().__init__(claimant)
        if num_threads <= 0:
            num_threads = multiprocessing.cpu_count()
        self.num_threads = max(1, min(num_threads, multiprocessing.cpu_count()))
        self._threads: List[threading.Thread] = []
        self._found_result: Optional[MiningResult] = None
        self._attempts = 0

    def _mine_thread(self, challenge: bytes, target: int, message_hash: bytes,
                     max_attempts: int):
        """Mining thread worker."""
        while not self._stop_event.is_set():
            with self._lock:
                if max_attempts and self._attempts >= max_attempts:
                    self._stop_event.set()
                    return
                self._attempts += 1

            result = try_signing_key(self.claimant, challenge, target, message_hash)
            if result:
                with self._lock:
                    if self._found_result is None:
                        self._found_result = result
                self._stop_event.set()
                return

    def solve(self, challenge: bytes, target: int, max_attempts: int = 0,
              verbose: bool = False) -> MiningResult:
        """Search for a solution using multiple threads."""
        self._stop_event.clear()
        self._found_result = None
        self._attempts = 0
        self.is_mining = True
        self.start_time = time.time()
        message_hash = signed_message_hash(self.claimant, challenge)

        if verbose:
            print(f"\n⛏️  Mining for {self.claimant} (multi-threaded)")
            print(f"   Threads: {self.num_threads}")
            print(f"   Challenge: {challenge.hex()}")
            print(f"   Target: {target:#x}")

        self._threads = []
        for _ in range(self.num_threads):
            t = threading.Thread(
                target=self._mine_thread,
                args=(challenge, target, message_hash, max_attempts)
            )
            t.daemon = True
            t.start()
            self._threads.append(t)

        # Monitor progress
        while not self._stop_event.wait(0.5):
            if verbose:
                elapsed = time.time() - self.start_time
                rate = self._attempts / elapsed if elapsed > 0 else 0
                print(f"\r   Mining... {self._attempts:,} keys, {rate:.2f} keys/s", end="", flush=True)

        for t in self._threads:
            t.join(timeout=5.0)

        self.total_attempts += self._attempts
        return self._finish(self._found_result, challenge, target, message_hash,
                            self._attempts, verbose)
