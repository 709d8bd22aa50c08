# secretvoting/errors.py
"""Errors raised by the voting core.

Every check that can fail runs before the first write of a call, so catching
one of these means the state of the system is exactly what it was before the
call.

Exception hierarchy:
- VotingError: Base class for all voting failures
  - InvalidParameters: Bad proposal parameters or vote payload
    - InvalidOption: Option index outside the proposal's option range
  - Unauthorized: Caller lacks the role required for the operation
  - NotFound: Unknown proposal id
  - NotStarted / Ended: Vote outside the active window
  - AlreadyVoted: Voter already cast a ballot on this proposal
  - ProofVerificationFailed: Encrypted input rejected by the engine
  - NotEnded / AlreadyFinalized: Finalize preconditions
"""


class VotingError(Exception):
    """Base exception for voting-core failures."""

    status_code = 400


class InvalidParameters(VotingError):
    """Raised when proposal parameters or a vote payload are invalid."""
    pass


class InvalidOption(InvalidParameters):
    """Raised when a ballot's option range does not fit the proposal."""
    pass


class Unauthorized(VotingError):
    """Raised when the caller's role does not permit the operation."""

    status_code = 403


class NotFound(VotingError):
    """Raised for an unknown proposal id."""

    status_code = 404


class NotStarted(VotingError):
    """Raised when voting on a proposal before its start time."""

    status_code = 409


class Ended(VotingError):
    """Raised when voting on a proposal after its end time."""

    status_code = 409


class AlreadyVoted(VotingError):
    """Raised when the same identity votes twice on one proposal."""

    status_code = 409


class ProofVerificationFailed(VotingError):
    """Raised when the engine rejects the proof attached to an encrypted input."""

    status_code = 422


class NotEnded(VotingError):
    """Raised when finalizing a proposal whose voting window is still open."""

    status_code = 409


class AlreadyFinalized(VotingError):
    """Raised when finalizing a proposal twice."""

    status_code = 409
