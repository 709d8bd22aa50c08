# secretvoting/config.py

import os
from datetime import timedelta


def _int_env(name, default):
    return int(os.environ.get(name, default))


def load_config(overrides=None):
    """Flask configuration from the environment, with `overrides` on top."""
    config = {
        'SECRET_KEY': os.environ.get('SECRET_KEY', 'change-me-in-production'),
        'JWT_SECRET_KEY': os.environ.get('JWT_SECRET_KEY', 'change-me-in-production-jwt-secret'),
        'JWT_ACCESS_TOKEN_EXPIRES': timedelta(minutes=_int_env('JWT_ACCESS_TOKEN_MINUTES', 30)),
        'JWT_TOKEN_LOCATION': ['headers'],
        # Identity of the voting instance; decryption credentials must name it.
        'VOTING_CONTRACT_ADDRESS': os.environ.get(
            'VOTING_CONTRACT_ADDRESS', '0x' + '5ec7e7' * 6 + '0bad'),
        # Required when the app builds its own voting instance: a 0x account address.
        'VOTING_OWNER': os.environ.get('VOTING_OWNER'),
        'AUTH_CHALLENGE_TTL': _int_env('AUTH_CHALLENGE_TTL', 300),
        'VOTE_RATE_LIMIT': os.environ.get('VOTE_RATE_LIMIT', '30/minute'),
        'RATELIMIT_ENABLED': os.environ.get('RATELIMIT_ENABLED', '1') not in ('0', 'false', 'False'),
        # Empty disables the on-disk audit trail.
        'AUDIT_LOG_DIR': os.environ.get('AUDIT_LOG_DIR', 'logs'),
    }
    if overrides:
        config.update(overrides)
    return config
