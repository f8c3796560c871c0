"""Pure state transitions for the generation workflow.

``reduce`` maps the current :class:`WorkflowState` and an action to a
:class:`Transition`: the next state, at most one effect for the controller to
execute, and an optional error to surface.  Nothing here performs I/O.

Per submission the phases are ``IDLE -> VALIDATING -> SUBMITTING -> IDLE``.
Validation failures return straight to ``IDLE`` without an effect.  A
``SubmitPrompt`` that arrives while ``SUBMITTING`` is dropped.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Tuple, Union

from modules.errors import EmptyPrompt, GalleryAppError, InvalidPosition, MissingCredential
from modules.services.history_service import GenerationRecord


class Phase(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"


@dataclass(frozen=True, slots=True)
class WorkflowState:
    records: Tuple[GenerationRecord, ...] = ()
    last_image_url: Optional[str] = None
    phase: Phase = Phase.IDLE
    pending_prompt: Optional[str] = None


# Actions -----------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class GalleryLoaded:
    records: Tuple[GenerationRecord, ...]


@dataclass(frozen=True, slots=True)
class SubmitPrompt:
    prompt: str
    credential: str


@dataclass(frozen=True, slots=True)
class GenerationSucceeded:
    url: str


@dataclass(frozen=True, slots=True)
class GenerationErrored:
    error: GalleryAppError


@dataclass(frozen=True, slots=True)
class DeleteRecord:
    position: int


Action = Union[GalleryLoaded, SubmitPrompt, GenerationSucceeded, GenerationErrored, DeleteRecord]


# Effects -----------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class InvokeInference:
    prompt: str
    credential: str


@dataclass(frozen=True, slots=True)
class AppendRecord:
    record: GenerationRecord


@dataclass(frozen=True, slots=True)
class RemoveRecord:
    position: int


Effect = Union[InvokeInference, AppendRecord, RemoveRecord]


@dataclass(frozen=True, slots=True)
class Transition:
    state: WorkflowState
    effect: Optional[Effect] = None
    error: Optional[GalleryAppError] = None


def validate_submission(prompt: str, credential: str) -> Optional[GalleryAppError]:
    """Return the validation error for a submission, if any."""
    if not (prompt or "").strip():
        return EmptyPrompt()
    if not (credential or "").strip():
        return MissingCredential()
    return None


def _submit(state: WorkflowState, action: SubmitPrompt) -> Transition:
    if state.phase is Phase.SUBMITTING:
        return Transition(state)

    validating = replace(state, phase=Phase.VALIDATING)
    error = validate_submission(action.prompt, action.credential)
    if error is not None:
        return Transition(replace(validating, phase=Phase.IDLE), error=error)

    submitting = replace(validating, phase=Phase.SUBMITTING, pending_prompt=action.prompt)
    return Transition(submitting, effect=InvokeInference(action.prompt, action.credential))


def _succeeded(state: WorkflowState, action: GenerationSucceeded) -> Transition:
    if state.phase is not Phase.SUBMITTING or state.pending_prompt is None:
        return Transition(state)
    record = GenerationRecord(prompt=state.pending_prompt, url=action.url)
    done = replace(state, phase=Phase.IDLE, pending_prompt=None, last_image_url=action.url)
    return Transition(done, effect=AppendRecord(record))


def _errored(state: WorkflowState, action: GenerationErrored) -> Transition:
    return Transition(replace(state, phase=Phase.IDLE, pending_prompt=None), error=action.error)


def _delete(state: WorkflowState, action: DeleteRecord) -> Transition:
    if action.position < 0 or action.position >= len(state.records):
        return Transition(state, error=InvalidPosition(action.position, len(state.records)))
    return Transition(state, effect=RemoveRecord(action.position))


def reduce(state: WorkflowState, action: Action) -> Transition:
    """Apply ``action`` to ``state``."""
    if isinstance(action, GalleryLoaded):
        return Transition(replace(state, records=tuple(action.records)))
    if isinstance(action, SubmitPrompt):
        return _submit(state, action)
    if isinstance(action, GenerationSucceeded):
        return _succeeded(state, action)
    if isinstance(action, GenerationErrored):
        return _errored(state, action)
    if isinstance(action, DeleteRecord):
        return _delete(state, action)
    raise TypeError(f"Unknown action: {action!r}")
