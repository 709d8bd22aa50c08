# secretvoting/security/token_manager.py
import secrets
from datetime import timedelta
from flask_jwt_extended import create_access_token, get_jwt_identity
from flask import current_app, Flask

from secretvoting.encryption.digital_signatures import DecryptionCredential, DigitalSignatureService


# JWT-based API tokens. A token's subject is the account identity every
# voting call is made as; it is issued against a signed account credential
# plus a fresh answer to a single-use server challenge.
class TokenManager:
    def __init__(self, app: Flask = None):
        self.signatures = DigitalSignatureService()
        self.challenge_ttl = 300
        self._challenges = {}  # nonce -> (address, expires_at)
        if app:
            self.init_app(app)

    def init_app(self, app: Flask):
        app.config.setdefault("JWT_SECRET_KEY", "change_this_secret_key")
        app.config.setdefault("JWT_ACCESS_TOKEN_EXPIRES", timedelta(hours=1))
        app.config.setdefault("AUTH_CHALLENGE_TTL", 300)
        self.challenge_ttl = int(app.config["AUTH_CHALLENGE_TTL"])

    def generate_token(self, identity: str, expires_in: int = None) -> str:
        expires_delta = timedelta(seconds=expires_in) if expires_in else None
        if expires_delta is None:
            return create_access_token(identity=identity)
        return create_access_token(identity=identity, expires_delta=expires_delta)

    def issue_challenge(self, address: str, now: int) -> dict:
        for nonce, (_, expires_at) in list(self._challenges.items()):
            if expires_at <= now:
                self._challenges.pop(nonce, None)
        nonce = secrets.token_hex(16)
        expires_at = now + self.challenge_ttl
        self._challenges[nonce] = (address, expires_at)
        return {"nonce": nonce, "expires_at": expires_at}

    def token_for_credential(self, credential: DecryptionCredential, contract_address: str,
                             now: int, nonce: str, signature: str):
        """Return a token for the credential's account, or None if it does not check out.

        The nonce is consumed whether or not the rest of the login succeeds.
        """
        challenge = self._challenges.pop(nonce, None)
        if challenge is None:
            current_app.logger.warning("Rejected login with unknown or spent nonce for %s",
                                       credential.user_address)
            return None
        address, expires_at = challenge
        if address != credential.user_address or now >= expires_at:
            current_app.logger.warning("Rejected login with stale or foreign nonce for %s",
                                       credential.user_address)
            return None
        if not self.signatures.verify_decryption_request(credential):
            current_app.logger.warning("Rejected credential with bad signature for %s", credential.user_address)
            return None
        if not credential.is_valid(now) or contract_address not in credential.contract_addresses:
            current_app.logger.warning("Rejected stale or out-of-scope credential for %s", credential.user_address)
            return None
        if not self.signatures.verify_login_challenge(credential, nonce, contract_address, signature):
            current_app.logger.warning("Rejected bad challenge answer for %s", credential.user_address)
            return None
        return self.generate_token(credential.user_address)

    def get_identity(self):
        """Account the current request is made as, or None without a token."""
        return get_jwt_identity()
