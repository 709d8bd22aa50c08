# secretvoting/core/registry.py

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List

from secretvoting.errors import InvalidParameters, NotFound

logger = logging.getLogger(__name__)

MIN_OPTIONS = 2
MAX_OPTIONS = 10
MAX_DURATION = 365 * 24 * 60 * 60


class DisclosureStrategy(Enum):
    PUBLIC_AFTER_END = 0
    OWNER_ONLY = 1
    QUALIFIED_ONLY = 2


class ProposalStatus(Enum):
    UPCOMING = "upcoming"
    ACTIVE = "active"
    ENDED = "ended"
    FINALIZED = "finalized"


@dataclass
class Proposal:
    id: int
    title: str
    description: str
    start_time: int
    end_time: int
    option_count: int
    owner: str
    strategy: DisclosureStrategy
    min_quorum: int
    finalized: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "option_count": self.option_count,
            "owner": self.owner,
            "strategy": self.strategy.name,
            "min_quorum": self.min_quorum,
            "finalized": self.finalized,
        }


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def status(proposal: Proposal, now: int) -> ProposalStatus:
    """Lifecycle phase of `proposal` at time `now`. Never stored."""
    if proposal.finalized:
        return ProposalStatus.FINALIZED
    if now < proposal.start_time:
        return ProposalStatus.UPCOMING
    if now > proposal.end_time:
        return ProposalStatus.ENDED
    return ProposalStatus.ACTIVE


def parse_strategy(value) -> DisclosureStrategy:
    """Accept an enum member, its numeric value or its name."""
    if isinstance(value, DisclosureStrategy):
        return value
    if not (_is_int(value) or isinstance(value, str)):
        raise InvalidParameters(f"Unknown disclosure strategy: {value!r}")
    try:
        if isinstance(value, str) and not value.isdigit():
            return DisclosureStrategy[value.strip().upper()]
        return DisclosureStrategy(int(value))
    except (KeyError, ValueError, TypeError):
        raise InvalidParameters(f"Unknown disclosure strategy: {value!r}")


class ProposalRegistry:
    def __init__(self):
        self._proposals: List[Proposal] = []

    @property
    def count(self) -> int:
        return len(self._proposals)

    def validate(self, title, description, option_count, duration, strategy, min_quorum):
        if not isinstance(title, str) or not title.strip():
            raise InvalidParameters("Title is required")
        if not isinstance(description, str) or not description.strip():
            raise InvalidParameters("Description is required")
        if not _is_int(option_count) or not MIN_OPTIONS <= option_count <= MAX_OPTIONS:
            raise InvalidParameters(f"Option count must be between {MIN_OPTIONS} and {MAX_OPTIONS}")
        if not _is_int(duration) or not 0 < duration <= MAX_DURATION:
            raise InvalidParameters("Duration must be positive and at most 365 days")
        if not _is_int(min_quorum) or min_quorum < 1:
            raise InvalidParameters("Minimum quorum must be at least 1")
        return parse_strategy(strategy)

    def create(self, title, description, option_count, duration, strategy, min_quorum,
               owner: str, now: int) -> Proposal:
        strategy = self.validate(title, description, option_count, duration, strategy, min_quorum)
        proposal = Proposal(
            id=len(self._proposals),
            title=title,
            description=description,
            start_time=now,
            end_time=now + duration,
            option_count=option_count,
            owner=owner,
            strategy=strategy,
            min_quorum=min_quorum,
        )
        self._proposals.append(proposal)
        logger.info("Proposal %d registered (%d options, %s)", proposal.id, option_count, strategy.name)
        return proposal

    def get(self, proposal_id) -> Proposal:
        if not _is_int(proposal_id) or not 0 <= proposal_id < len(self._proposals):
            raise NotFound(f"Proposal {proposal_id} does not exist")
        return self._proposals[proposal_id]

    def list(self) -> List[Proposal]:
        return list(self._proposals)

    def mark_finalized(self, proposal_id: int) -> Proposal:
        proposal = self.get(proposal_id)
        proposal.finalized = True
        return proposal

