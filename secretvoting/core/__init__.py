from secretvoting.core.disclosure import DisclosureManager
from secretvoting.core.guard import VoteGuard
from secretvoting.core.registry import (
    DisclosureStrategy,
    Proposal,
    ProposalRegistry,
    ProposalStatus,
    status,
)
from secretvoting.core.tally import EncryptedTally, TallyStore

__all__ = [
    "DisclosureManager",
    "DisclosureStrategy",
    "EncryptedTally",
    "Proposal",
    "ProposalRegistry",
    "ProposalStatus",
    "TallyStore",
    "VoteGuard",
    "status",
]
