import pytest

from conftest import CONTRACT, credential
from secretvoting import create_app
from secretvoting.capability.engine import Handle


@pytest.fixture
def app(voting, owner):
    return create_app(config={
        'TESTING': True,
        'JWT_SECRET_KEY': 'test_secret_with_enough_length_for_hs256',
        'VOTING_CONTRACT_ADDRESS': CONTRACT,
        'VOTING_OWNER': owner.address,
        'AUDIT_LOG_DIR': '',
        'RATELIMIT_ENABLED': False,
    }, voting=voting)


@pytest.fixture
def client(app):
    with app.test_client() as client:
        yield client


def _login_body(client, account, clock):
    nonce = client.post('/auth/challenge', json={'address': account.address}).get_json()['nonce']
    return {
        'credential': credential(account, clock).to_dict(),
        'nonce': nonce,
        'signature': account.sign_login_challenge(nonce, CONTRACT),
    }


@pytest.fixture
def login(client, clock):
    def _login(account):
        rv = client.post('/auth/token', json=_login_body(client, account, clock))
        assert rv.status_code == 200
        assert rv.get_json()['identity'] == account.address
        return {'Authorization': f"Bearer {rv.get_json()['access_token']}"}
    return _login


PROPOSAL = {
    'title': 'Budget',
    'description': 'Where should the Q3 budget go?',
    'option_count': 3,
    'duration': 100,
}


def _ballot(engine, account, option, upper_bound=3):
    return engine.encrypt_input(option, user=account.address, upper_bound=upper_bound).to_dict()


def test_token_rejects_bad_credential(client, clock, alice, bob):
    body = _login_body(client, alice, clock)
    forged = credential(bob, clock).to_dict()
    forged['user_address'] = alice.address
    rv = client.post('/auth/token', json={**body, 'credential': forged})
    assert rv.status_code == 401

    rv = client.post('/auth/token', json={**body, 'credential': {'user_address': alice.address}})
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'InvalidParameters'

    rv = client.post('/auth/token', json={'credential': credential(alice, clock).to_dict()})
    assert rv.status_code == 400

    rv = client.post('/auth/challenge', json={'address': 'not an address'})
    assert rv.status_code == 400


def test_replayed_login_is_refused(client, clock, alice):
    body = _login_body(client, alice, clock)
    assert client.post('/auth/token', json=body).status_code == 200
    assert client.post('/auth/token', json=body).status_code == 401


def test_captured_credential_cannot_log_in(client, clock, alice, bob):
    nonce = client.post('/auth/challenge', json={'address': alice.address}).get_json()['nonce']
    rv = client.post('/auth/token', json={
        'credential': credential(alice, clock).to_dict(),
        'nonce': nonce,
        'signature': bob.sign_login_challenge(nonce, CONTRACT),
    })
    assert rv.status_code == 401


def test_app_without_owner_address_refuses_to_start(monkeypatch):
    monkeypatch.delenv('VOTING_OWNER', raising=False)
    with pytest.raises(RuntimeError, match="VOTING_OWNER"):
        create_app(config={'AUDIT_LOG_DIR': ''})
    with pytest.raises(RuntimeError, match="VOTING_OWNER"):
        create_app(config={'AUDIT_LOG_DIR': '', 'VOTING_OWNER': 'owner'})


def test_app_builds_its_own_instance(owner):
    app = create_app(config={
        'JWT_SECRET_KEY': 'test_secret_with_enough_length_for_hs256',
        'VOTING_OWNER': owner.address,
        'AUDIT_LOG_DIR': '',
    })
    assert app.extensions['secretvoting'].auth.is_owner(owner.address)


def test_create_and_read_proposal(client, login, owner, alice):
    rv = client.post('/proposals', json=PROPOSAL, headers=login(owner))
    assert rv.status_code == 201
    assert rv.get_json() == {'proposal_id': 0}

    listing = client.get('/proposals').get_json()
    assert listing['count'] == 1
    assert listing['proposals'][0]['strategy'] == 'PUBLIC_AFTER_END'

    view = client.get('/proposals/0', headers=login(alice)).get_json()
    assert view['status'] == 'active'
    assert view['turnout'] == 0
    assert view['has_voted'] is False
    assert 'has_voted' not in client.get('/proposals/0').get_json()


def test_write_routes_need_a_token(client):
    assert client.post('/proposals', json=PROPOSAL).status_code == 401
    assert client.post('/proposals/0/vote', json={}).status_code == 401


def test_create_requires_proposer(client, login, alice):
    rv = client.post('/proposals', json=PROPOSAL, headers=login(alice))
    assert rv.status_code == 403
    assert rv.get_json()['error'] == 'Unauthorized'


def test_create_rejects_bad_parameters(client, login, owner):
    headers = login(owner)
    rv = client.post('/proposals', json={**PROPOSAL, 'option_count': 11}, headers=headers)
    assert rv.status_code == 400
    rv = client.post('/proposals', data='not json', headers=headers)
    assert rv.status_code == 400


def test_vote_and_finalize_flow(client, login, engine, clock, owner, alice, bob):
    client.post('/proposals', json=PROPOSAL, headers=login(owner))
    alice_headers = login(alice)

    rv = client.post('/proposals/0/vote', json=_ballot(engine, alice, 2), headers=alice_headers)
    assert rv.status_code == 200

    rv = client.post('/proposals/0/vote', json=_ballot(engine, alice, 1), headers=alice_headers)
    assert rv.status_code == 409
    assert rv.get_json()['error'] == 'AlreadyVoted'

    # ballot bound to alice but submitted by bob
    rv = client.post('/proposals/0/vote', json=_ballot(engine, alice, 0), headers=login(bob))
    assert rv.status_code == 422

    rv = client.post('/proposals/0/vote', json=_ballot(engine, bob, 3, upper_bound=4), headers=login(bob))
    assert rv.status_code == 400
    assert rv.get_json()['error'] == 'InvalidOption'

    rv = client.post('/proposals/0/finalize', headers=alice_headers)
    assert rv.status_code == 409
    assert rv.get_json()['error'] == 'NotEnded'

    clock.advance(101)
    assert client.post('/proposals/0/finalize', headers=alice_headers).status_code == 200

    tally = client.get('/proposals/0/tally').get_json()
    assert [engine.public_decrypt(Handle(h)) for h in tally['options']] == [0, 0, 1]
    assert engine.public_decrypt(Handle(tally['total'])) == 1


def test_unknown_proposal(client, login, alice):
    assert client.get('/proposals/7').status_code == 404
    assert client.get('/proposals/7/tally').status_code == 404
    assert client.post('/proposals/7/finalize', headers=login(alice)).status_code == 404


def test_grant_and_roles(client, login, engine, clock, owner, alice, bob):
    owner_headers = login(owner)
    client.post('/proposals', json={**PROPOSAL, 'strategy': 'OWNER_ONLY'}, headers=owner_headers)

    rv = client.post('/proposals/0/grants', json={'account': bob.address}, headers=login(alice))
    assert rv.status_code == 403

    rv = client.post('/roles/administrators', json={'account': alice.address}, headers=owner_headers)
    assert rv.get_json() == {'account': alice.address, 'administrator': True}

    rv = client.post('/proposals/0/grants', json={'account': bob.address}, headers=login(alice))
    assert rv.status_code == 200
    total = Handle(client.get('/proposals/0/tally').get_json()['total'])
    assert engine.user_decrypt(total, credential(bob, clock)) == 0

    rv = client.post('/roles/proposers', json={'account': bob.address, 'enabled': True}, headers=login(alice))
    assert rv.status_code == 200
    assert client.post('/proposals', json=PROPOSAL, headers=login(bob)).status_code == 201

    rv = client.post('/roles/owner', json={'new_owner': 'not an account'}, headers=owner_headers)
    assert rv.status_code == 400
    rv = client.post('/roles/owner', json={'new_owner': alice.address}, headers=owner_headers)
    assert rv.get_json() == {'owner': alice.address}
    rv = client.post('/roles/administrators', json={'account': bob.address}, headers=owner_headers)
    assert rv.status_code == 403
