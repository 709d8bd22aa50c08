import pytest

from secretvoting.authentication.rbac import AuthorizationContext
from secretvoting.capability.mock_engine import InMemoryEngine
from secretvoting.core.registry import DisclosureStrategy
from secretvoting.encryption.digital_signatures import DigitalSignatureService
from secretvoting.voting import SecretVoting

CONTRACT = "0x" + "ab" * 20
START = 1_700_000_000


class FrozenClock:
    """Stand-in for the ledger clock, in whole seconds."""
    def __init__(self, start):
        self.now = start

    def advance(self, seconds):
        self.now += seconds

    def __call__(self):
        return self.now


def make_account():
    account = DigitalSignatureService()
    account.generate_keypair()
    return account


def cast(voting, account, proposal_id, option):
    proposal = voting.get_proposal(proposal_id)
    encrypted = voting.engine.encrypt_input(option, user=account.address, upper_bound=proposal.option_count)
    voting.vote(proposal_id, encrypted, caller=account.address)


def credential(account, clock):
    return account.sign_decryption_request([CONTRACT], start_timestamp=clock.now)


@pytest.fixture
def clock():
    return FrozenClock(START)


@pytest.fixture
def owner():
    return make_account()


@pytest.fixture
def alice():
    return make_account()


@pytest.fixture
def bob():
    return make_account()


@pytest.fixture
def carol():
    return make_account()


@pytest.fixture
def engine(clock):
    return InMemoryEngine(contract_address=CONTRACT, clock=clock)


@pytest.fixture
def voting(engine, owner, clock):
    return SecretVoting(engine, AuthorizationContext(owner=owner.address), clock=clock)


@pytest.fixture
def make_proposal(voting, owner):
    def _make(strategy=DisclosureStrategy.PUBLIC_AFTER_END, option_count=3, duration=100, min_quorum=1):
        return voting.create_proposal(
            "Budget", "Where should the Q3 budget go?", option_count, duration,
            strategy, min_quorum, caller=owner.address)
    return _make
