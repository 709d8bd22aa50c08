# secretvoting/encryption/digital_signatures.py

import base64
import hashlib
import json
import time
from dataclasses import dataclass, asdict
from typing import List, Optional
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from cryptography.hazmat.primitives import serialization

# Ed25519 signed decryption requests: the requester authorizes a key pair to
# decrypt handles of a set of contracts for a validity window.

SECONDS_PER_DAY = 86400
DEFAULT_DURATION_DAYS = 365


def address_from_public_key(public_key) -> str:
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw)
    return "0x" + hashlib.sha256(raw).hexdigest()[-40:]


@dataclass
class DecryptionCredential:
    user_address: str
    public_key: str
    contract_addresses: List[str]
    start_timestamp: int
    duration_days: int
    signature: str = ""

    def message(self) -> dict:
        return {
            "public_key": self.public_key,
            "contract_addresses": sorted(self.contract_addresses),
            "start_timestamp": self.start_timestamp,
            "duration_days": self.duration_days,
        }

    @property
    def expires_at(self) -> int:
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def is_valid(self, now: Optional[int] = None) -> bool:
        if now is None:
            now = int(time.time())
        return self.start_timestamp <= now < self.expires_at

    def remaining_validity(self, now: Optional[int] = None) -> int:
        if now is None:
            now = int(time.time())
        return max(0, self.expires_at - now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "DecryptionCredential":
        return cls(
            user_address=data["user_address"],
            public_key=data["public_key"],
            contract_addresses=list(data["contract_addresses"]),
            start_timestamp=int(data["start_timestamp"]),
            duration_days=int(data["duration_days"]),
            signature=data.get("signature", ""),
        )


class DigitalSignatureService:
    def __init__(self):
        self.private_key = None
        self.public_key = None

    def generate_keypair(self):
        self.private_key = Ed25519PrivateKey.generate()
        self.public_key = self.private_key.public_key()
        return self.get_public_key_pem()

    def load_private_key(self, pem_str: str):
        self.private_key = serialization.load_pem_private_key(pem_str.encode(), password=None)
        self.public_key = self.private_key.public_key()

    def get_public_key_pem(self) -> str:
        if not self.public_key:
            raise ValueError("No public key available")
        pem = self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo)
        return pem.decode()

    def get_private_key_pem(self) -> str:
        if not self.private_key:
            raise ValueError("No private key available")
        pem = self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption())
        return pem.decode()

    @property
    def address(self) -> str:
        if not self.public_key:
            raise ValueError("No public key available")
        return address_from_public_key(self.public_key)

    def sign_decryption_request(self, contract_addresses, start_timestamp=None,
                                duration_days=DEFAULT_DURATION_DAYS) -> DecryptionCredential:
        if not self.private_key:
            raise ValueError("No private key available")
        if start_timestamp is None:
            start_timestamp = int(time.time())
        credential = DecryptionCredential(
            user_address=self.address,
            public_key=self.get_public_key_pem(),
            contract_addresses=list(contract_addresses),
            start_timestamp=int(start_timestamp),
            duration_days=int(duration_days),
        )
        payload = json.dumps(credential.message(), sort_keys=True).encode()
        credential.signature = base64.b64encode(self.private_key.sign(payload)).decode()
        return credential

    def verify_decryption_request(self, credential: DecryptionCredential) -> bool:
        """Check the signature and that the signing key belongs to `user_address`.

        The validity window is checked separately against the caller's clock.
        """
        try:
            public_key = serialization.load_pem_public_key(credential.public_key.encode())
            if address_from_public_key(public_key) != credential.user_address:
                return False
            payload = json.dumps(credential.message(), sort_keys=True).encode()
            public_key.verify(base64.b64decode(credential.signature), payload)
            return True
        except Exception:
            return False

    # --- login challenges ---------------------------------------------------

    @staticmethod
    def login_message(address: str, nonce: str, contract_address: str) -> bytes:
        return json.dumps({
            "address": address,
            "contract_address": contract_address,
            "nonce": nonce,
        }, sort_keys=True).encode()

    def sign_login_challenge(self, nonce: str, contract_address: str) -> str:
        """Answer a server-issued nonce, proving possession of the private key."""
        if not self.private_key:
            raise ValueError("No private key available")
        message = self.login_message(self.address, nonce, contract_address)
        return base64.b64encode(self.private_key.sign(message)).decode()

    def verify_login_challenge(self, credential: DecryptionCredential, nonce: str,
                               contract_address: str, signature: str) -> bool:
        try:
            public_key = serialization.load_pem_public_key(credential.public_key.encode())
            if address_from_public_key(public_key) != credential.user_address:
                return False
            message = self.login_message(credential.user_address, nonce, contract_address)
            public_key.verify(base64.b64decode(signature), message)
            return True
        except Exception:
            return False
