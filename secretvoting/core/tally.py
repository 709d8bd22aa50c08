# secretvoting/core/tally.py
"""Encrypted per-option counters and the vote aggregation algorithm.

The choice is never compared in plaintext. For every option `i` the store
computes `select(choice == i, 1, 0)` under encryption and adds it into
counter `i`, so each vote touches every counter exactly once and the total
once. Cost is linear in the option count: there is no encrypted primitive
that increments only the i-th of N counters.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from secretvoting.capability.engine import EncryptedValueCapability, Handle
from secretvoting.errors import InvalidOption, NotFound

logger = logging.getLogger(__name__)


@dataclass
class EncryptedTally:
    options: List[Handle]
    total: Handle

    def handles(self) -> List[Handle]:
        return list(self.options) + [self.total]


class TallyStore:
    def __init__(self, engine: EncryptedValueCapability):
        self.engine = engine
        self._tallies: Dict[int, EncryptedTally] = {}

    def open(self, proposal_id: int, option_count: int) -> EncryptedTally:
        zeros = [self.engine.constant(0) for _ in range(option_count)]
        tally = EncryptedTally(options=zeros, total=self.engine.constant(0))
        self._tallies[proposal_id] = tally
        return tally

    def get(self, proposal_id: int) -> EncryptedTally:
        try:
            return self._tallies[proposal_id]
        except KeyError:
            raise NotFound(f"No tally for proposal {proposal_id}") from None

    def apply_vote(self, proposal_id: int, choice: Handle) -> EncryptedTally:
        """Fold one imported, range-checked choice into the tally.

        Callers must have run every precondition first; nothing here can fail
        halfway for a valid choice handle.
        """
        tally = self.get(proposal_id)
        engine = self.engine
        one = engine.constant(1)
        zero = engine.constant(0)
        for i, counter in enumerate(tally.options):
            is_choice = engine.equals(choice, engine.constant(i))
            increment = engine.select(is_choice, one, zero)
            tally.options[i] = engine.add(counter, increment)
        tally.total = engine.add(tally.total, one)
        logger.debug("Folded one ballot into proposal %d (%d counters)", proposal_id, len(tally.options))
        return tally

    def option_tally(self, proposal_id: int, option_index: int) -> Handle:
        tally = self.get(proposal_id)
        if isinstance(option_index, bool) or not isinstance(option_index, int) \
                or not 0 <= option_index < len(tally.options):
            raise InvalidOption(f"Option {option_index} does not exist on proposal {proposal_id}")
        return tally.options[option_index]

    def total_tally(self, proposal_id: int) -> Handle:
        return self.get(proposal_id).total

    def handles(self, proposal_id: int) -> List[Handle]:
        return self.get(proposal_id).handles()
