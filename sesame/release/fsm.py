from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import TypeVar

from sesame.core.result import Err, Ok, Result
from sesame.release.errors import PhaseFailure

S = TypeVar("S")


@dataclass(frozen=True, slots=True)
class StepAdvance[S]:
    state: S


@dataclass(frozen=True, slots=True)
class StepFinish:
    pass


StepOutcome = StepAdvance[S] | StepFinish
StepHandler = Callable[[S], Result[StepOutcome[S], PhaseFailure]]
OnTransition = Callable[[S, S], None]
GetStep = Callable[[S], str]


FINISH = StepFinish()


def advance[S](state: S) -> StepAdvance[S]:
    return StepAdvance(state=state)


def run_state_machine(
    *,
    initial_state: S,
    get_step: GetStep[S],
    handlers: Mapping[str, StepHandler[S]],
    on_transition: OnTransition[S] | None = None,
) -> Result[S, PhaseFailure]:
    """Run handlers until one finishes; return the last state reached."""
    current = initial_state

    while True:
        step = get_step(current)
        handler = handlers.get(step)
        if handler is None:
            raise RuntimeError(f"no handler for step: {step}")

        outcome = handler(current)
        if isinstance(outcome, Err):
            return outcome

        if isinstance(outcome.value, StepFinish):
            return Ok(current)

        previous, current = current, outcome.value.state
        if on_transition is not None:
            on_transition(previous, current)
