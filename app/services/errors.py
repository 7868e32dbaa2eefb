"""Battle service exceptions.

Every failure a battle operation can report is a distinct subclass so the
routers can map each one to its own status code. None of them is fatal.
"""


class BattleError(Exception):
    """Base class for recoverable battle operation failures."""


class BattleNotFoundError(BattleError):
    """The battle, or a card referenced inside it, does not exist."""


class BattleForbiddenError(BattleError):
    """The acting user lacks the role this operation needs."""


class InvalidStateError(BattleError):
    """The operation is not valid for the battle's current state.

    Also raised when a concurrent transition got there first; callers should
    refresh the battle rather than retry blindly.
    """


class InvalidTargetError(BattleError):
    """A battle request names the requester or an unknown user."""


class DuplicateRequestError(BattleError):
    """A pending or active battle already exists between the two users."""


class DuplicatePlayError(BattleError):
    """The player already played a card in the open round."""


class TransientUnavailableError(BattleError):
    """The store did not answer in time. Safe to retry."""
