# secretvoting/core/disclosure.py
"""Who may decrypt a proposal's tally, and from when.

    Strategy          During voting                    At finalize
    PUBLIC_AFTER_END  nothing                          public decryption of all counters
    OWNER_ONLY        nothing                          persistent grant to the proposal owner
    QUALIFIED_ONLY    transient grant to the voter     nothing (explicit grants only)

Grants are idempotent on the engine side, so no grant state is kept here.
"""

import logging

from secretvoting.capability.engine import EncryptedValueCapability
from secretvoting.core.registry import DisclosureStrategy, Proposal
from secretvoting.core.tally import TallyStore

logger = logging.getLogger(__name__)


class DisclosureManager:
    def __init__(self, engine: EncryptedValueCapability, tallies: TallyStore):
        self.engine = engine
        self.tallies = tallies
        self._on_vote = {
            DisclosureStrategy.PUBLIC_AFTER_END: self._nothing,
            DisclosureStrategy.OWNER_ONLY: self._nothing,
            DisclosureStrategy.QUALIFIED_ONLY: self._grant_transient_to_voter,
        }
        self._on_finalize = {
            DisclosureStrategy.PUBLIC_AFTER_END: self._publish,
            DisclosureStrategy.OWNER_ONLY: self._grant_owner,
            DisclosureStrategy.QUALIFIED_ONLY: self._nothing,
        }
        self._check_tables()

    def _check_tables(self):
        for table in (self._on_vote, self._on_finalize):
            missing = set(DisclosureStrategy) - set(table)
            if missing:
                raise RuntimeError(f"No disclosure handler for {sorted(s.name for s in missing)}")

    def on_vote(self, proposal: Proposal, voter: str) -> None:
        self._on_vote[proposal.strategy](proposal, voter)

    def on_finalize(self, proposal: Proposal) -> None:
        self._on_finalize[proposal.strategy](proposal, proposal.owner)

    def grant(self, proposal: Proposal, account: str) -> None:
        """Standing access for `account`; the only route for QUALIFIED_ONLY results."""
        for handle in self.tallies.handles(proposal.id):
            self.engine.allow(handle, account)
        logger.info("Granted decryption of proposal %d to %s", proposal.id, account)

    def _nothing(self, proposal, actor):
        pass

    def _grant_transient_to_voter(self, proposal, voter):
        for handle in self.tallies.handles(proposal.id):
            self.engine.allow_transient(handle, voter)

    def _publish(self, proposal, actor):
        for handle in self.tallies.handles(proposal.id):
            self.engine.make_publicly_decryptable(handle)
        logger.info("Tally of proposal %d is now publicly decryptable", proposal.id)

    def _grant_owner(self, proposal, owner):
        self.grant(proposal, owner)
