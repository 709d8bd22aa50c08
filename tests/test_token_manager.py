# tests/test_token_manager.py
import pytest
from flask import Flask
from flask_jwt_extended import JWTManager, decode_token, jwt_required

from conftest import CONTRACT, credential
from secretvoting.security.token_manager import TokenManager


@pytest.fixture
def app():
    app = Flask(__name__)
    app.config['TESTING'] = True
    app.config['JWT_SECRET_KEY'] = "test_secret_with_enough_length_for_hs256"
    app.config['AUTH_CHALLENGE_TTL'] = 60
    JWTManager(app)
    return app


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture
def token_manager(app):
    return TokenManager(app)


def _login(token_manager, account, clock, contract=CONTRACT, cred=None):
    challenge = token_manager.issue_challenge(account.address, clock.now)
    signature = account.sign_login_challenge(challenge['nonce'], contract)
    return token_manager.token_for_credential(
        cred or credential(account, clock), contract, clock.now, challenge['nonce'], signature)


def test_generate_token(app, token_manager):
    with app.app_context():
        token = token_manager.generate_token("0xuser1", expires_in=5)
        assert isinstance(token, str)
        assert decode_token(token)["sub"] == "0xuser1"


def test_get_identity(token_manager, app, client):
    with app.app_context():
        token = token_manager.generate_token("0xuser3", expires_in=60)

    @app.route("/whoami")
    @jwt_required(optional=True)
    def whoami():
        return token_manager.get_identity() or "No identity", 200

    rv = client.get("/whoami", headers={"Authorization": f"Bearer {token}"})
    assert rv.data.decode() == "0xuser3"
    assert client.get("/whoami").data.decode() == "No identity"


def test_challenge_expiry(app, token_manager, clock):
    challenge = token_manager.issue_challenge("0xabc", clock.now)
    assert challenge['expires_at'] == clock.now + 60
    assert len(challenge['nonce']) == 32
    assert token_manager.issue_challenge("0xabc", clock.now)['nonce'] != challenge['nonce']


def test_token_for_credential(app, token_manager, clock, alice):
    with app.app_context():
        token = _login(token_manager, alice, clock)
        assert decode_token(token)["sub"] == alice.address


def test_replayed_login_is_refused(app, token_manager, clock, alice):
    challenge = token_manager.issue_challenge(alice.address, clock.now)
    signature = alice.sign_login_challenge(challenge['nonce'], CONTRACT)
    cred = credential(alice, clock)
    with app.app_context():
        assert token_manager.token_for_credential(
            cred, CONTRACT, clock.now, challenge['nonce'], signature) is not None
        assert token_manager.token_for_credential(
            cred, CONTRACT, clock.now, challenge['nonce'], signature) is None


def test_captured_credential_without_key_is_refused(app, token_manager, clock, alice, bob):
    stolen = credential(alice, clock)
    challenge = token_manager.issue_challenge(alice.address, clock.now)
    # bob holds alice's credential but not her key
    signature = bob.sign_login_challenge(challenge['nonce'], CONTRACT)
    with app.app_context():
        assert token_manager.token_for_credential(
            stolen, CONTRACT, clock.now, challenge['nonce'], signature) is None


def test_expired_or_foreign_nonce_is_refused(app, token_manager, clock, alice, bob):
    with app.app_context():
        challenge = token_manager.issue_challenge(alice.address, clock.now)
        signature = alice.sign_login_challenge(challenge['nonce'], CONTRACT)
        clock.advance(60)
        assert token_manager.token_for_credential(
            credential(alice, clock), CONTRACT, clock.now, challenge['nonce'], signature) is None

        # nonce issued to bob cannot be answered by alice
        challenge = token_manager.issue_challenge(bob.address, clock.now)
        signature = alice.sign_login_challenge(challenge['nonce'], CONTRACT)
        assert token_manager.token_for_credential(
            credential(alice, clock), CONTRACT, clock.now, challenge['nonce'], signature) is None

        assert token_manager.token_for_credential(
            credential(alice, clock), CONTRACT, clock.now, "never-issued", signature) is None


def test_token_for_rejected_credentials(app, token_manager, clock, alice, bob):
    with app.app_context():
        # signed for another contract
        other = alice.sign_decryption_request(["0x" + "00" * 20], start_timestamp=clock.now)
        assert _login(token_manager, alice, clock, cred=other) is None

        # not yet valid
        early = alice.sign_decryption_request([CONTRACT], start_timestamp=clock.now + 1)
        assert _login(token_manager, alice, clock, cred=early) is None

        # claims an address its key does not control
        forged = credential(bob, clock)
        forged.user_address = alice.address
        assert _login(token_manager, alice, clock, cred=forged) is None
