# secretvoting/voting.py
"""Entry points of the confidential voting instance.

Each public method is one call: it runs inside the engine's call scope,
evaluates every precondition before its first write and either completes or
raises a `VotingError` leaving state untouched.

Usage:
    engine = InMemoryEngine(contract_address=CONTRACT)
    voting = SecretVoting(engine, AuthorizationContext(owner="0x..."))
    pid = voting.create_proposal("Budget", "Q3 budget", 3, 3600,
                                 DisclosureStrategy.PUBLIC_AFTER_END, 1, caller=owner)
    voting.vote(pid, engine.encrypt_input(0, user=alice, upper_bound=3), caller=alice)
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from secretvoting.authentication.rbac import AuthorizationContext, Permission, require_permission
from secretvoting.capability.engine import EncryptedValueCapability, Handle
from secretvoting.core.disclosure import DisclosureManager
from secretvoting.core.guard import VoteGuard
from secretvoting.core.registry import Proposal, ProposalRegistry, ProposalStatus, status
from secretvoting.core.tally import TallyStore
from secretvoting.errors import (
    AlreadyFinalized,
    AlreadyVoted,
    Ended,
    InvalidOption,
    NotEnded,
    NotStarted,
    Unauthorized,
)

logger = logging.getLogger(__name__)


@dataclass
class Event:
    name: str
    data: dict = field(default_factory=dict)


class SecretVoting:
    def __init__(self, engine: EncryptedValueCapability, auth: AuthorizationContext,
                 clock=None, audit_logger=None):
        self.engine = engine
        self.auth = auth
        self.clock = clock or (lambda: int(time.time()))
        self.audit_logger = audit_logger

        self.registry = ProposalRegistry()
        self.tallies = TallyStore(engine)
        self.guard = VoteGuard()
        self.disclosure = DisclosureManager(engine, self.tallies)
        self.events: List[Event] = []
        self._voted_flags: Dict[Tuple[int, str], Handle] = {}
        # one writer at a time across every entry point
        self._lock = threading.RLock()

    @contextmanager
    def _call(self):
        with self._lock, self.engine.call_scope():
            yield

    def _emit(self, name, actor=None, **data):
        self.events.append(Event(name, data))
        if self.audit_logger is not None:
            self.audit_logger.log_event(name, data, actor=actor)

    # --- proposals -------------------------------------------------------

    @require_permission(Permission.CREATE_PROPOSAL)
    def create_proposal(self, title, description, option_count, duration, strategy,
                        min_quorum, *, caller) -> int:
        with self._call():
            proposal = self.registry.create(
                title, description, option_count, duration, strategy, min_quorum,
                owner=caller, now=self.clock())
            self.tallies.open(proposal.id, proposal.option_count)
            self._emit(
                "ProposalCreated", actor=caller,
                proposal_id=proposal.id, owner=caller, title=proposal.title,
                option_count=proposal.option_count,
                start_time=proposal.start_time, end_time=proposal.end_time)
        return proposal.id

    def get_proposal(self, proposal_id) -> Proposal:
        return self.registry.get(proposal_id)

    @property
    def proposal_count(self) -> int:
        return self.registry.count

    def list_proposals(self) -> List[Proposal]:
        return self.registry.list()

    def status(self, proposal_id) -> ProposalStatus:
        return status(self.registry.get(proposal_id), self.clock())

    # --- voting ----------------------------------------------------------

    def vote(self, proposal_id, encrypted_input, *, caller) -> None:
        """Cast one encrypted ballot for `caller`.

        Checks, in order: proposal exists, voting window open, caller has not
        voted, the input's proven range fits the options, the input proof
        verifies. A rejected call performs no encrypted operation on the tally.
        """
        with self._call():
            proposal = self.registry.get(proposal_id)
            phase = status(proposal, self.clock())
            if phase is ProposalStatus.UPCOMING:
                raise NotStarted(f"Voting on proposal {proposal_id} has not started")
            if phase is not ProposalStatus.ACTIVE:
                raise Ended(f"Voting on proposal {proposal_id} has ended")
            if self.guard.has_voted(proposal_id, caller):
                logger.warning("Duplicate vote attempt on proposal %d by %s", proposal_id, caller)
                raise AlreadyVoted(f"{caller} already voted on proposal {proposal_id}")
            if encrypted_input.proof.upper_bound > proposal.option_count:
                raise InvalidOption(
                    f"Ballot range {encrypted_input.proof.upper_bound} exceeds "
                    f"{proposal.option_count} options")
            choice = self.engine.import_external(encrypted_input, caller)

            self.guard.mark_voted(proposal_id, caller)
            self.tallies.apply_vote(proposal_id, choice)
            flag = self.engine.constant(1)
            self.engine.allow(flag, caller)
            self._voted_flags[(proposal_id, caller)] = flag
            self.disclosure.on_vote(proposal, caller)
            self._emit("VoteCast", actor=caller, proposal_id=proposal_id, voter=caller)

    def has_voted(self, proposal_id, voter) -> bool:
        self.registry.get(proposal_id)
        return self.guard.has_voted(proposal_id, voter)

    def get_has_voted(self, proposal_id, voter) -> Optional[Handle]:
        """Encrypted participation flag, decryptable by the voter only."""
        self.registry.get(proposal_id)
        return self._voted_flags.get((proposal_id, voter))

    def turnout(self, proposal_id) -> int:
        self.registry.get(proposal_id)
        return self.guard.turnout(proposal_id)

    # --- tallies ---------------------------------------------------------

    def get_option_tally(self, proposal_id, option_index) -> Handle:
        self.registry.get(proposal_id)
        return self.tallies.option_tally(proposal_id, option_index)

    def get_total_tally(self, proposal_id) -> Handle:
        self.registry.get(proposal_id)
        return self.tallies.total_tally(proposal_id)

    # --- finalize & disclosure ---------------------------------------------

    def finalize_proposal(self, proposal_id, *, caller=None) -> None:
        with self._call():
            proposal = self.registry.get(proposal_id)
            if proposal.finalized:
                raise AlreadyFinalized(f"Proposal {proposal_id} is already finalized")
            if not self.clock() > proposal.end_time:
                raise NotEnded(f"Voting on proposal {proposal_id} is still open")
            self.registry.mark_finalized(proposal_id)
            self.disclosure.on_finalize(proposal)
            logger.info("Proposal %d finalized (%s)", proposal_id, proposal.strategy.name)
            self._emit("ProposalFinalized", actor=caller, proposal_id=proposal_id)

    def grant_decryption_permission(self, proposal_id, account, *, caller) -> None:
        with self._call():
            proposal = self.registry.get(proposal_id)
            if not self.auth.can_grant(proposal.owner, caller):
                logger.warning("Denied decryption grant on proposal %d to %s", proposal_id, caller)
                raise Unauthorized(f"{caller} may not grant decryption on proposal {proposal_id}")
            self.disclosure.grant(proposal, account)
            self._emit("DecryptionGranted", actor=caller, proposal_id=proposal_id, account=account)

    # --- roles -----------------------------------------------------------

    def set_proposer(self, account, enabled, *, caller) -> None:
        with self._lock:
            self.auth.set_proposer(account, enabled, caller)
            self._emit("ProposerUpdated", actor=caller, account=account, enabled=bool(enabled))

    def set_administrator(self, account, enabled, *, caller) -> None:
        with self._lock:
            self.auth.set_administrator(account, enabled, caller)
            self._emit("AdministratorUpdated", actor=caller, account=account, enabled=bool(enabled))

    def transfer_ownership(self, new_owner, *, caller) -> None:
        with self._lock:
            previous = self.auth.owner
            self.auth.transfer_ownership(new_owner, caller)
            self._emit("OwnershipTransferred", actor=caller, previous_owner=previous, new_owner=new_owner)
