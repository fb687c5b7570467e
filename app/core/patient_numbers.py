"""Clinic-scoped patient number sequence."""

import re

PATIENT_NUMBER_PREFIX = "P"
PATIENT_NUMBER_WIDTH = 6
FIRST_PATIENT_NUMBER = f"{PATIENT_NUMBER_PREFIX}{1:0{PATIENT_NUMBER_WIDTH}d}"

_NON_DIGITS = re.compile(r"\D")


def next_patient_number(last_number: str | None) -> str:
    """
    Compute the patient number following ``last_number``.

    Args:
        last_number: Number of the clinic's most recently created patient

    Returns:
        ``P`` followed by the incremented, zero-padded sequence value
    """
    digits = _NON_DIGITS.sub("", last_number or "")
    if not digits:
        return FIRST_PATIENT_NUMBER

    return f"{PATIENT_NUMBER_PREFIX}{int(digits) + 1:0{PATIENT_NUMBER_WIDTH}d}"
