"""
Form state and its transitions.

The draft record, the error map, the set of touched fields and whether a
submission was already attempted live together in one immutable
``FormState``. Every user event is a plain function returning the next
state; nothing is mutated in place.
"""

from dataclasses import dataclass, field, replace

from formatters import format_field
from schema import FIELDS, FIELDS_BY_ID, MARITAL_SINGLE, empty_record
from validation import status_for, validate_form


@dataclass(frozen=True)
class FormState:
    record: dict = field(default_factory=empty_record)
    errors: dict = field(default_factory=dict)
    touched: frozenset = frozenset()
    submitted: bool = False


def initial_state() -> FormState:
    return FormState()


def reset_state() -> FormState:
    """State after a successful submission: nothing carried over."""
    return initial_state()


def _revalidated(state: FormState) -> FormState:
    if not state.submitted:
        return state
    return replace(state, errors=validate_form(state.record))


def change_field(state: FormState, field_id: str, value) -> FormState:
    if field_id not in FIELDS_BY_ID:
        raise KeyError(f"Unknown form field: {field_id}")

    record = dict(state.record)
    previous = record.get(field_id)
    record[field_id] = format_field(field_id, value, previous=previous, record=record)

    # the key value is only meaningful for the type it was typed under
    if field_id == "payment_key_type":
        record["payment_key"] = ""

    if field_id == "marital_status" and value == MARITAL_SINGLE:
        record["marital_attachment"] = None

    next_state = replace(state, record=record, touched=state.touched | {field_id})
    return _revalidated(next_state)


def blur_field(state: FormState, field_id: str) -> FormState:
    return _revalidated(replace(state, touched=state.touched | {field_id}))


def attempt_submit(state: FormState) -> FormState:
    """Mark everything touched and compute the full error map."""
    return replace(
        state,
        submitted=True,
        touched=frozenset(f["id"] for f in FIELDS),
        errors=validate_form(state.record),
    )


def visible_errors(state: FormState) -> dict:
    return {k: v for k, v in state.errors.items() if k in state.touched}


def status_message(state: FormState) -> tuple[str, str]:
    if not state.submitted:
        return "", ""
    return status_for(state.errors)
