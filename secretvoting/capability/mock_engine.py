# secretvoting/capability/mock_engine.py
"""In-memory reference engine for local runs and tests.

This is a simulator of the encrypted-value capability, not an FHE scheme:
plaintexts live inside the engine, callers only ever hold `Handle` objects.
What it does enforce is everything the voting core relies on:

- encrypted inputs are AES-256-GCM ciphertexts carrying an Ed25519-signed
  input proof bound to (ciphertext, contract, user, upper bound);
- decryption goes through the access-control list (persistent grants,
  transient grants limited to the open call scope, public marking);
- user decryption needs a signed, unexpired DecryptionCredential that covers
  this engine's contract address.

Usage:
    engine = InMemoryEngine(contract_address="0xabc...")
    enc = engine.encrypt_input(1, user=alice.address, upper_bound=3)
    handle = engine.import_external(enc, caller=alice.address)
"""

import base64
import hashlib
import json
import os
import threading
import time
from collections import Counter, defaultdict
from contextlib import contextmanager
from dataclasses import dataclass

from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from secretvoting.capability.engine import EncryptedValueCapability, Handle
from secretvoting.encryption.digital_signatures import (
    DecryptionCredential,
    DigitalSignatureService,
)
from secretvoting.errors import ProofVerificationFailed

# uint8 ballot inputs
DEFAULT_INPUT_BOUND = 256


class DecryptionError(Exception):
    """Base exception for decryption-related failures."""
    pass


class DecryptionDenied(DecryptionError):
    """Raised when the ACL holds no permission for the requester on a handle."""
    pass


class InvalidCredential(DecryptionError):
    """Raised when a decryption credential is forged, expired or out of scope."""
    pass


@dataclass(frozen=True)
class InputProof:
    contract_address: str
    user_address: str
    upper_bound: int
    signature: str

    def statement(self, ciphertext: bytes) -> bytes:
        return json.dumps({
            "ciphertext": hashlib.sha256(ciphertext).hexdigest(),
            "contract_address": self.contract_address,
            "user_address": self.user_address,
            "upper_bound": self.upper_bound,
        }, sort_keys=True).encode()


@dataclass(frozen=True)
class EncryptedInput:
    ciphertext: bytes
    proof: InputProof

    def to_dict(self) -> dict:
        return {
            "ciphertext": self.ciphertext.hex(),
            "proof": {
                "contract_address": self.proof.contract_address,
                "user_address": self.proof.user_address,
                "upper_bound": self.proof.upper_bound,
                "signature": self.proof.signature,
            },
        }

    @classmethod
    def from_dict(cls, data: dict) -> "EncryptedInput":
        proof = data["proof"]
        return cls(
            ciphertext=bytes.fromhex(data["ciphertext"]),
            proof=InputProof(
                contract_address=str(proof["contract_address"]),
                user_address=str(proof["user_address"]),
                upper_bound=int(proof["upper_bound"]),
                signature=str(proof["signature"]),
            ),
        )


class InMemoryEngine(EncryptedValueCapability):
    def __init__(self, contract_address: str, clock=None):
        self.contract_address = contract_address
        self.clock = clock or (lambda: int(time.time()))
        self.op_counts = Counter()

        self._values = []
        self._persistent = defaultdict(set)  # handle index -> identities
        self._transient = defaultdict(set)
        self._public = set()
        self._depth = 0
        # held for the whole of an open call scope
        self._lock = threading.RLock()

        self._input_key = AESGCM.generate_key(bit_length=256)
        self._input_verifier = Ed25519PrivateKey.generate()
        self._credentials = DigitalSignatureService()

    # --- arena -----------------------------------------------------------

    def _new(self, value: int) -> Handle:
        self._values.append(int(value))
        return Handle(len(self._values) - 1)

    def _value(self, handle: Handle) -> int:
        if not isinstance(handle, Handle) or not 0 <= handle.index < len(self._values):
            raise ValueError(f"Unknown handle: {handle!r}")
        return self._values[handle.index]

    def __len__(self):
        return len(self._values)

    # --- homomorphic operations ------------------------------------------

    def constant(self, value: int) -> Handle:
        self.op_counts["constant"] += 1
        return self._new(value)

    def add(self, a: Handle, b: Handle) -> Handle:
        self.op_counts["add"] += 1
        return self._new(self._value(a) + self._value(b))

    def equals(self, a: Handle, b: Handle) -> Handle:
        self.op_counts["equals"] += 1
        return self._new(1 if self._value(a) == self._value(b) else 0)

    def select(self, cond: Handle, if_true: Handle, if_false: Handle) -> Handle:
        self.op_counts["select"] += 1
        chosen = if_true if self._value(cond) else if_false
        return self._new(self._value(chosen))

    # --- inputs ----------------------------------------------------------

    def encrypt_input(self, value: int, user: str, upper_bound: int = DEFAULT_INPUT_BOUND) -> EncryptedInput:
        """Client side: encrypt `value` and prove it lies in [0, upper_bound)."""
        if not 0 <= value < upper_bound:
            raise ValueError("Cannot prove a value outside [0, upper_bound)")
        nonce = os.urandom(12)
        ciphertext = nonce + AESGCM(self._input_key).encrypt(nonce, int(value).to_bytes(4, "big"), None)
        unsigned = InputProof(self.contract_address, user, int(upper_bound), "")
        signature = self._input_verifier.sign(unsigned.statement(ciphertext))
        proof = InputProof(self.contract_address, user, int(upper_bound),
                           base64.b64encode(signature).decode())
        return EncryptedInput(ciphertext=ciphertext, proof=proof)

    def import_external(self, encrypted_input: EncryptedInput, caller: str) -> Handle:
        proof = encrypted_input.proof
        if proof.contract_address != self.contract_address:
            raise ProofVerificationFailed("Input proof is bound to another contract")
        if proof.user_address != caller:
            raise ProofVerificationFailed("Input proof is bound to another user")
        try:
            self._input_verifier.public_key().verify(
                base64.b64decode(proof.signature),
                proof.statement(encrypted_input.ciphertext),
            )
        except (InvalidSignature, ValueError) as e:
            raise ProofVerificationFailed(f"Invalid input proof: {e}")

        ciphertext = encrypted_input.ciphertext
        try:
            plaintext = AESGCM(self._input_key).decrypt(ciphertext[:12], ciphertext[12:], None)
        except InvalidTag as e:
            raise ProofVerificationFailed(f"Ciphertext authentication failed: {e}")
        self.op_counts["import"] += 1
        return self._new(int.from_bytes(plaintext, "big"))

    # --- access control --------------------------------------------------

    def allow(self, handle: Handle, identity: str) -> None:
        self._value(handle)
        self._persistent[handle.index].add(identity)

    def allow_transient(self, handle: Handle, identity: str) -> None:
        self._value(handle)
        self._transient[handle.index].add(identity)

    def make_publicly_decryptable(self, handle: Handle) -> None:
        self._value(handle)
        self._public.add(handle.index)

    def is_allowed(self, handle: Handle, identity: str) -> bool:
        if identity in self._persistent.get(handle.index, ()):
            return True
        return self._depth > 0 and identity in self._transient.get(handle.index, ())

    def is_publicly_decryptable(self, handle: Handle) -> bool:
        return handle.index in self._public

    @contextmanager
    def call_scope(self):
        with self._lock:
            self._depth += 1
            try:
                yield self
            finally:
                self._depth -= 1
                if self._depth == 0:
                    self._transient.clear()

    # --- decryption (consumer side) ---------------------------------------

    def user_decrypt(self, handle: Handle, credential: DecryptionCredential) -> int:
        if not self._credentials.verify_decryption_request(credential):
            raise InvalidCredential("Decryption credential signature is invalid")
        if not credential.is_valid(self.clock()):
            raise InvalidCredential("Decryption credential is outside its validity window")
        if self.contract_address not in credential.contract_addresses:
            raise InvalidCredential("Decryption credential does not cover this contract")
        with self._lock:
            value = self._value(handle)
            if not self.is_allowed(handle, credential.user_address):
                raise DecryptionDenied(f"{credential.user_address} may not decrypt handle {handle.index}")
        return value

    def public_decrypt(self, handle: Handle) -> int:
        with self._lock:
            value = self._value(handle)
            if not self.is_publicly_decryptable(handle):
                raise DecryptionDenied(f"Handle {handle.index} is not publicly decryptable")
        return value
