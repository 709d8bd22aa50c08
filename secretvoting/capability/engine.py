# secretvoting/capability/engine.py
"""Capability interface of the homomorphic-encryption engine.

The voting core never sees ciphertext. It holds `Handle` references issued by
the engine and forwards them back for arithmetic and permission changes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Handle:
    """Opaque reference to an engine-owned encrypted value."""

    index: int

    def __int__(self):
        return self.index


class EncryptedValueCapability(ABC):

    @abstractmethod
    def constant(self, value: int) -> Handle:
        """Encrypt a public constant (trivial encryption)."""

    @abstractmethod
    def add(self, a: Handle, b: Handle) -> Handle:
        pass

    @abstractmethod
    def equals(self, a: Handle, b: Handle) -> Handle:
        """Return an encrypted boolean for `a == b`."""

    @abstractmethod
    def select(self, cond: Handle, if_true: Handle, if_false: Handle) -> Handle:
        pass

    @abstractmethod
    def import_external(self, encrypted_input, caller: str) -> Handle:
        """Verify the input proof and bring an external ciphertext into the arena.

        Raises ProofVerificationFailed when the proof does not verify or is not
        bound to `caller` and this engine's contract.
        """

    @abstractmethod
    def allow(self, handle: Handle, identity: str) -> None:
        """Persistent decrypt permission."""

    @abstractmethod
    def allow_transient(self, handle: Handle, identity: str) -> None:
        """Decrypt permission that lapses when the current call scope closes."""

    @abstractmethod
    def make_publicly_decryptable(self, handle: Handle) -> None:
        """Irrevocably let anyone decrypt `handle`."""

    @abstractmethod
    def call_scope(self):
        """Context manager delimiting one call; re-entrant.

        Transient grants made inside the scope lapse when the outermost scope
        exits. Scopes of different threads must not interleave.
        """
