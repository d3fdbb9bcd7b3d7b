"""Minimal state-machine runner shared by every workflow.

A machine is a pure ``transition(state, event)`` function plus an effectful
``invoke(state)`` that performs the single side effect of the current step.
``run_machine`` awaits one invoke at a time, turns its outcome into an event
and feeds it back through ``transition`` until a final step is reached.
The current step is mirrored in a ``transitions`` machine whose states are
the members of the machine's step enum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, NoReturn, TypeVar

from transitions import Machine as StepMachine

from ai_git.errors import UserCancelled

logger = logging.getLogger(__name__)

S = TypeVar("S")
O = TypeVar("O")


@dataclass(frozen=True)
class Done:
    """The step's actor completed; ``output`` is its return value."""

    output: Any = None


@dataclass(frozen=True)
class Failed:
    """The step's actor raised."""

    error: BaseException


@dataclass(frozen=True)
class Cancelled:
    """The user dismissed a prompt during the step."""


Event = Done | Failed | Cancelled


def unhandled(event: Event, step: object) -> NoReturn:
    """Escalate an event the current step has no route for."""
    if isinstance(event, Failed):
        raise event.error
    if isinstance(event, Cancelled):
        raise UserCancelled()
    raise RuntimeError(f"Unexpected completion in step {step!s}")


class StepTracker:
    """Follows a workflow's step through a ``transitions`` state machine.

    Every member of the step enum is a state and each move goes through the
    ``to_<STEP>`` auto-transition, so a step outside the enum is rejected.
    """

    def __init__(self, name: str, initial: Enum) -> None:
        self.name = name
        self.history: list[Enum] = [initial]
        # StepMachine sets this to the initial state during construction.
        self.state: Enum = initial
        self._machine = StepMachine(
            model=self,
            states=list(type(initial)),
            initial=initial,
            auto_transitions=True,
            after_state_change="_record",
        )

    def move_to(self, step: Enum) -> None:
        self.trigger(f"to_{step.name}")

    def _record(self) -> None:
        self.history.append(self.state)


class Machine(Generic[S, O]):
    """Base class for workflow machines.

    States are frozen dataclasses with a ``step`` attribute; subclasses
    list their terminal steps in ``final_steps``.
    """

    name = "machine"
    final_steps: frozenset = frozenset()

    def initial_state(self) -> S:
        raise NotImplementedError

    def transition(self, state: S, event: Event) -> S:
        raise NotImplementedError

    async def invoke(self, state: S) -> Any:
        raise NotImplementedError

    def output(self, state: S) -> O:
        raise NotImplementedError

    def is_final(self, state: S) -> bool:
        return getattr(state, "step") in self.final_steps


async def run_machine(machine: Machine[S, O]) -> O:
    """Drive ``machine`` from its initial state to a final one."""
    state = machine.initial_state()
    tracker = StepTracker(machine.name, getattr(state, "step"))
    logger.debug("%s: start in %s", machine.name, tracker.state)

    while not machine.is_final(state):
        event: Event
        try:
            result = await machine.invoke(state)
        except UserCancelled:
            event = Cancelled()
        except Exception as exc:
            event = Failed(exc)
        else:
            event = Done(result)

        next_state = machine.transition(state, event)
        tracker.move_to(getattr(next_state, "step"))
        logger.debug("%s: %s --%s--> %s", machine.name, tracker.history[-2], type(event).__name__, tracker.state)
        state = next_state

    return machine.output(state)


__all__ = [
    "Done",
    "Failed",
    "Cancelled",
    "Event",
    "Machine",
    "StepTracker",
    "run_machine",
    "unhandled",
]
