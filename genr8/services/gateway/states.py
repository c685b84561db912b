"""
Generation lifecycle as seen by the gateway.

UNPAID -> PAID -> VERIFIED -> DISPATCHED -> COMPLETED | FAILED.
TIMEOUT is only ever reported by a poller; the gateway never enters it.
"""
import enum

from genr8.services.errors import InvalidTransition


class GenerationState(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    VERIFIED = "verified"
    DISPATCHED = "dispatched"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


ALLOWED_TRANSITIONS: dict[GenerationState, frozenset[GenerationState]] = {
    GenerationState.UNPAID: frozenset({GenerationState.PAID}),
    GenerationState.PAID: frozenset({GenerationState.VERIFIED}),
    GenerationState.VERIFIED: frozenset({GenerationState.DISPATCHED}),
    GenerationState.DISPATCHED: frozenset({GenerationState.COMPLETED, GenerationState.FAILED}),
    GenerationState.COMPLETED: frozenset(),
    GenerationState.FAILED: frozenset(),
    GenerationState.TIMEOUT: frozenset(),
}


class GenerationFlow:
    """Tracks one request through the lifecycle and rejects illegal jumps."""

    def __init__(self, state: GenerationState = GenerationState.UNPAID) -> None:
        self.state = state
        self.history = [state]

    def advance(self, target: GenerationState) -> GenerationState:
        if target not in ALLOWED_TRANSITIONS[self.state]:
            raise InvalidTransition(self.state.value, target.value)
        self.state = target
        self.history.append(target)
        return target
