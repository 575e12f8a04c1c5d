"""
signer.py – Key holder for EIP-712 signing.

A Signer owns one secp256k1 private key for its lifetime together with the
chain id the key signs for.  It does exactly one cryptographic thing: sign a
32-byte digest and return the 65-byte recoverable signature (r ‖ s ‖ v) as a
0x-prefixed hex string.  Everything that builds digests lives in signing.py.

The key never leaves the process and never appears in repr() or in error
messages.
"""

from __future__ import annotations

from eth_account import Account
from eth_account.signers.local import LocalAccount

from .exceptions import SigningFailure

_DIGEST_LEN = 32


class Signer:
    """
    Parameters
    ----------
    private_key : hex private key, with or without a leading ``0x``
    chain_id    : EVM chain id the signatures are bound to (137 = Polygon)

    Thread safety
    -------------
    Immutable after construction; sign() can be called concurrently.
    """

    def __init__(self, private_key: str, chain_id: int) -> None:
        if not private_key or chain_id is None or int(chain_id) <= 0:
            raise ValueError("Private key and chain ID must be provided")

        key = private_key if private_key.startswith("0x") else "0x" + private_key
        try:
            self._account: LocalAccount = Account.from_key(key)
        except Exception as exc:
            raise ValueError(f"Invalid private key ({type(exc).__name__})") from None

        self._chain_id = int(chain_id)

    @property
    def address(self) -> str:
        """Checksummed address derived from the key."""
        return self._account.address

    @property
    def chain_id(self) -> int:
        return self._chain_id

    def sign(self, digest: bytes) -> str:
        """Sign a 32-byte digest; returns ``0x`` + 130 hex chars (r ‖ s ‖ v, v ∈ {27, 28})."""
        if len(digest) != _DIGEST_LEN:
            raise SigningFailure(f"digest must be {_DIGEST_LEN} bytes, got {len(digest)}")
        try:
            signed = self._account.unsafe_sign_hash(digest)
        except Exception as exc:
            raise SigningFailure(f"ECDSA signing failed: {type(exc).__name__}") from None
        return "0x" + bytes(signed.signature).hex()

    def __repr__(self) -> str:
        return f"Signer(address={self.address!r}, chain_id={self._chain_id})"
