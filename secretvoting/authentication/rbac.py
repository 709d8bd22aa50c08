# secretvoting/authentication/rbac.py

from enum import Enum
from functools import wraps
import logging

from secretvoting.errors import InvalidParameters, Unauthorized

# Role-Based Access Control over an explicit, per-instance authorization
# context. Nothing here is process-global.

logger = logging.getLogger(__name__)


class Role(Enum):
    OWNER = "owner"
    ADMINISTRATOR = "administrator"
    PROPOSER = "proposer"
    VOTER = "voter"


class Permission(Enum):
    VOTE = "vote"
    CREATE_PROPOSAL = "create_proposal"
    GRANT_DECRYPTION = "grant_decryption"
    MANAGE_PROPOSERS = "manage_proposers"
    MANAGE_ADMINISTRATORS = "manage_administrators"
    TRANSFER_OWNERSHIP = "transfer_ownership"


# Role -> Permissions mapping
ROLE_PERMISSIONS = {
    Role.VOTER: [
        Permission.VOTE,
    ],
    Role.PROPOSER: [
        Permission.VOTE,
        Permission.CREATE_PROPOSAL,
    ],
    Role.ADMINISTRATOR: [
        Permission.VOTE,
        Permission.CREATE_PROPOSAL,
        Permission.GRANT_DECRYPTION,
        Permission.MANAGE_PROPOSERS,
    ],
    Role.OWNER: [
        Permission.VOTE,
        Permission.CREATE_PROPOSAL,
        Permission.GRANT_DECRYPTION,
        Permission.MANAGE_PROPOSERS,
        Permission.MANAGE_ADMINISTRATORS,
        Permission.TRANSFER_OWNERSHIP,
    ],
}


class AuthorizationContext:
    """Owner, administrators and proposers of one voting instance."""

    def __init__(self, owner, administrators=(), proposers=()):
        if not owner:
            raise InvalidParameters("An owner is required")
        self.owner = owner
        self.administrators = set(administrators)
        self.proposers = set(proposers)

    def is_owner(self, account):
        return account == self.owner

    def is_administrator(self, account):
        return account in self.administrators

    def is_proposer(self, account):
        return account in self.proposers

    def roles_of(self, account):
        roles = [Role.VOTER]
        if self.is_proposer(account):
            roles.append(Role.PROPOSER)
        if self.is_administrator(account):
            roles.append(Role.ADMINISTRATOR)
        if self.is_owner(account):
            roles.append(Role.OWNER)
        return roles

    def has_permission(self, account, permission):
        if isinstance(permission, str):
            permission = Permission(permission)
        return any(permission in ROLE_PERMISSIONS[role] for role in self.roles_of(account))

    def require(self, account, permission):
        if not self.has_permission(account, permission):
            perm_str = permission.value if isinstance(permission, Enum) else str(permission)
            logger.warning("Denied %s to %s", perm_str, account)
            raise Unauthorized(f"{account} is not allowed to {perm_str}")

    def can_create_proposals(self, account):
        return self.has_permission(account, Permission.CREATE_PROPOSAL)

    def can_grant(self, proposal_owner, account):
        return account == proposal_owner or self.has_permission(account, Permission.GRANT_DECRYPTION)

    def set_proposer(self, account, enabled, caller):
        self.require(caller, Permission.MANAGE_PROPOSERS)
        if enabled:
            self.proposers.add(account)
        else:
            self.proposers.discard(account)

    def set_administrator(self, account, enabled, caller):
        self.require(caller, Permission.MANAGE_ADMINISTRATORS)
        if enabled:
            self.administrators.add(account)
        else:
            self.administrators.discard(account)

    def transfer_ownership(self, new_owner, caller):
        self.require(caller, Permission.TRANSFER_OWNERSHIP)
        if not new_owner:
            raise InvalidParameters("New owner is required")
        self.owner = new_owner


# Decorator for methods of objects carrying an `auth` context; the caller
# must be passed as the `caller` keyword argument.
def require_permission(permission):
    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            if "caller" not in kwargs:
                raise TypeError(f"{func.__name__}() requires a caller keyword argument")
            self.auth.require(kwargs["caller"], permission)
            return func(self, *args, **kwargs)
        return wrapper
    return decorator
