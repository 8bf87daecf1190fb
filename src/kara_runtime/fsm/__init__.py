"""State machine programs and their step-by-step engine."""

from .engine import (
    DEFAULT_FSM_MAX_STEPS,
    FSMRun,
    FSMRunResult,
    FSMStepResult,
    find_matching_transition,
    step,
    transition_matches,
    validate_fsm_program,
)
from .model import STOP_STATE_ID, FSMProgram, State, Transition, create_empty_fsm

__all__ = [
    "DEFAULT_FSM_MAX_STEPS",
    "STOP_STATE_ID",
    "FSMProgram",
    "FSMRun",
    "FSMRunResult",
    "FSMStepResult",
    "State",
    "Transition",
    "create_empty_fsm",
    "find_matching_transition",
    "step",
    "transition_matches",
    "validate_fsm_program",
]
