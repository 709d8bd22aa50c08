from secretvoting.capability.engine import EncryptedValueCapability, Handle
from secretvoting.capability.mock_engine import (
    DecryptionDenied,
    DecryptionError,
    EncryptedInput,
    InMemoryEngine,
    InputProof,
    InvalidCredential,
)

__all__ = [
    "DecryptionDenied",
    "DecryptionError",
    "EncryptedInput",
    "EncryptedValueCapability",
    "Handle",
    "InMemoryEngine",
    "InputProof",
    "InvalidCredential",
]
