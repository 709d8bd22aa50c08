# secretvoting/routes.py

# JSON API over the voting instance. Every write is made as the JWT subject;
# role and lifecycle rules are enforced by the voting core, not here.

import logging

from flask import Blueprint, current_app, jsonify, request
from flask_jwt_extended import jwt_required

from secretvoting import limiter
from secretvoting.encryption.digital_signatures import DecryptionCredential
from secretvoting.errors import InvalidParameters, VotingError
from secretvoting.security.input_validator import InputValidator

logger = logging.getLogger(__name__)

api = Blueprint('api', __name__)
validator = InputValidator()


def _voting():
    return current_app.extensions['secretvoting']


def _tokens():
    return current_app.extensions['secretvoting.tokens']


def _caller():
    return _tokens().get_identity()


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidParameters("Request body must be a JSON object")
    return data


def _proposal_view(voting, proposal, identity=None):
    view = proposal.to_dict()
    view['status'] = voting.status(proposal.id).value
    view['turnout'] = voting.turnout(proposal.id)
    if identity:
        view['has_voted'] = voting.has_voted(proposal.id, identity)
    return view


@api.errorhandler(VotingError)
def handle_voting_error(error):
    return jsonify({'error': type(error).__name__, 'message': str(error)}), error.status_code


@api.route('/auth/challenge', methods=['POST'])
def issue_challenge():
    address = validator.require_identity(_json_body().get('address'), field='address')
    return jsonify(_tokens().issue_challenge(address, _voting().clock()))


@api.route('/auth/token', methods=['POST'])
def issue_token():
    data = _json_body()
    try:
        credential = DecryptionCredential.from_dict(data.get('credential') or {})
    except (KeyError, TypeError, ValueError):
        raise InvalidParameters("Malformed credential")
    nonce, signature = data.get('nonce'), data.get('signature')
    if not isinstance(nonce, str) or not isinstance(signature, str):
        raise InvalidParameters("A nonce and its signature are required")
    token = _tokens().token_for_credential(
        credential, current_app.config['VOTING_CONTRACT_ADDRESS'], _voting().clock(),
        nonce, signature)
    if token is None:
        return jsonify({'error': 'Unauthorized', 'message': 'Invalid credential'}), 401
    return jsonify({'access_token': token, 'identity': credential.user_address})


@api.route('/proposals', methods=['GET'])
def list_proposals():
    voting = _voting()
    return jsonify({
        'count': voting.proposal_count,
        'proposals': [_proposal_view(voting, p) for p in voting.list_proposals()],
    })


@api.route('/proposals', methods=['POST'])
@jwt_required()
def create_proposal():
    caller = _caller()
    data = validator.validate_proposal_data(_json_body())
    proposal_id = _voting().create_proposal(
        data['title'], data['description'], data['option_count'], data['duration'],
        data['strategy'], data['min_quorum'], caller=caller)
    return jsonify({'proposal_id': proposal_id}), 201


@api.route('/proposals/<int:proposal_id>', methods=['GET'])
@jwt_required(optional=True)
def get_proposal(proposal_id):
    voting = _voting()
    proposal = voting.get_proposal(proposal_id)
    return jsonify(_proposal_view(voting, proposal, _caller()))


@api.route('/proposals/<int:proposal_id>/vote', methods=['POST'])
@jwt_required()
@limiter.limit(lambda: current_app.config['VOTE_RATE_LIMIT'])
def vote(proposal_id):
    caller = _caller()
    encrypted_input = validator.validate_vote_data(_json_body())
    _voting().vote(proposal_id, encrypted_input, caller=caller)
    return jsonify({'message': 'Vote cast successfully', 'proposal_id': proposal_id})


@api.route('/proposals/<int:proposal_id>/finalize', methods=['POST'])
@jwt_required()
def finalize(proposal_id):
    _voting().finalize_proposal(proposal_id, caller=_caller())
    return jsonify({'message': 'Proposal finalized', 'proposal_id': proposal_id})


@api.route('/proposals/<int:proposal_id>/tally', methods=['GET'])
def tally(proposal_id):
    voting = _voting()
    proposal = voting.get_proposal(proposal_id)
    return jsonify({
        'proposal_id': proposal_id,
        'options': [int(voting.get_option_tally(proposal_id, i)) for i in range(proposal.option_count)],
        'total': int(voting.get_total_tally(proposal_id)),
    })


@api.route('/proposals/<int:proposal_id>/grants', methods=['POST'])
@jwt_required()
def grant(proposal_id):
    account = validator.require_identity(_json_body().get('account'))
    _voting().grant_decryption_permission(proposal_id, account, caller=_caller())
    return jsonify({'message': 'Decryption permission granted', 'account': account})


@api.route('/roles/proposers', methods=['POST'])
@jwt_required()
def set_proposer():
    data = _json_body()
    account = validator.require_identity(data.get('account'))
    _voting().set_proposer(account, bool(data.get('enabled', True)), caller=_caller())
    return jsonify({'account': account, 'proposer': bool(data.get('enabled', True))})


@api.route('/roles/administrators', methods=['POST'])
@jwt_required()
def set_administrator():
    data = _json_body()
    account = validator.require_identity(data.get('account'))
    _voting().set_administrator(account, bool(data.get('enabled', True)), caller=_caller())
    return jsonify({'account': account, 'administrator': bool(data.get('enabled', True))})


@api.route('/roles/owner', methods=['POST'])
@jwt_required()
def transfer_ownership():
    new_owner = validator.require_identity(_json_body().get('new_owner'), field='new_owner')
    _voting().transfer_ownership(new_owner, caller=_caller())
    logger.info("Ownership transferred to %s", new_owner)
    return jsonify({'owner': new_owner})
