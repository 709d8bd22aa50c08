# secretvoting/__init__.py

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

from secretvoting.config import load_config

__version__ = "0.1.0"

jwt = JWTManager()
limiter = Limiter(key_func=get_remote_address)


def create_app(config=None, voting=None):
    """Build the JSON API around a SecretVoting instance.

    Without `voting`, a fresh instance backed by the in-memory engine is
    created from VOTING_CONTRACT_ADDRESS and VOTING_OWNER.
    """
    from secretvoting.audit.audit_logger import AuditLogger
    from secretvoting.authentication.rbac import AuthorizationContext
    from secretvoting.capability.mock_engine import InMemoryEngine
    from secretvoting.routes import api
    from secretvoting.security.input_validator import InputValidator
    from secretvoting.security.token_manager import TokenManager
    from secretvoting.voting import SecretVoting

    app = Flask(__name__)
    app.config.update(load_config(config))

    if voting is None:
        owner = app.config['VOTING_OWNER']
        if not isinstance(owner, str) or not InputValidator().patterns['address'].match(owner):
            raise RuntimeError(
                f"VOTING_OWNER must be set to a 0x account address, got {owner!r}")
        audit_dir = app.config['AUDIT_LOG_DIR']
        engine = InMemoryEngine(contract_address=app.config['VOTING_CONTRACT_ADDRESS'])
        voting = SecretVoting(
            engine,
            AuthorizationContext(owner=owner),
            clock=engine.clock,
            audit_logger=AuditLogger(log_dir=audit_dir) if audit_dir else None,
        )
    app.extensions['secretvoting'] = voting
    app.extensions['secretvoting.tokens'] = TokenManager(app)

    jwt.init_app(app)
    limiter.init_app(app)
    app.register_blueprint(api)
    return app
