# secretvoting/core/guard.py

from typing import Set, Tuple

from secretvoting.errors import AlreadyVoted

# Plaintext participation record. It shows that an identity voted on a
# proposal, never what it chose; entries are never cleared.


class VoteGuard:
    def __init__(self):
        self._voted: Set[Tuple[int, str]] = set()

    def has_voted(self, proposal_id: int, voter: str) -> bool:
        return (proposal_id, voter) in self._voted

    def check(self, proposal_id: int, voter: str) -> None:
        if self.has_voted(proposal_id, voter):
            raise AlreadyVoted(f"{voter} already voted on proposal {proposal_id}")

    def mark_voted(self, proposal_id: int, voter: str) -> None:
        self.check(proposal_id, voter)
        self._voted.add((proposal_id, voter))

    def turnout(self, proposal_id: int) -> int:
        return sum(1 for pid, _ in self._voted if pid == proposal_id)
