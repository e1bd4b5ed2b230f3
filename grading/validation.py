"""
grading/validation.py - Raw Score Validation

Checks a candidate score against its component ceiling. Pure functions:
nothing here touches the database or the entry being edited.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional

# Raw components of every score entry, in sheet order
COMPONENTS = ('test1', 'test2', 'exam')

COMPONENT_LABELS = {
    'test1': 'Test 1',
    'test2': 'Test 2',
    'exam': 'Exam',
}

DEFAULT_WARNING_MARK = 40


@dataclass
class ValidationResult:
    """Outcome of validating one raw score"""

    value: Optional[float] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self):
        return not self.errors


def format_score(value):
    """Render a score without a trailing .0 (18.0 -> '18', 17.5 -> '17.5')"""
    if value is None:
        return ''
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def is_blank(raw_value):
    return raw_value is None or (isinstance(raw_value, str) and not raw_value.strip())


def parse_score(raw_value):
    """
    Parse a raw score into a float

    Returns None for blank input and NaN for anything that is not a number,
    so that callers can tell "not entered" apart from "entered as 0".
    """
    if is_blank(raw_value):
        return None
    if isinstance(raw_value, bool):
        return math.nan
    try:
        return float(str(raw_value).strip())
    except (TypeError, ValueError):
        return math.nan


def validate_score(raw_value, field_name, max_score, warning_mark=DEFAULT_WARNING_MARK):
    """
    Validate a single component score

    Args:
        raw_value: Number or string as typed into the score sheet (blank = not entered)
        field_name: Label used in messages, e.g. "test1" or "Test 1"
        max_score: Ceiling for this component (from Subject.max_scores)
        warning_mark: Percentage of the ceiling below which a warning is added

    Returns:
        ValidationResult: value is the parsed float (None when blank)
    """
    value = parse_score(raw_value)
    result = ValidationResult(value=value)

    if value is None:
        return result

    if math.isnan(value) or math.isinf(value) or value < 0 or value > max_score:
        result.value = None
        result.errors.append(f"{field_name} must be between 0 and {format_score(max_score)}")
        return result

    if max_score > 0 and (value / max_score) * 100 < warning_mark:
        result.warnings.append(f"{field_name} score is below pass mark ({format_score(warning_mark)})")

    return result


def validate_entry(values, max_scores, student_name=None, warning_mark=DEFAULT_WARNING_MARK):
    """
    Validate all components of one student's scores

    Args:
        values: dict with any of 'test1', 'test2', 'exam'
        max_scores: dict of ceilings keyed the same way

    Returns:
        tuple: (parsed values dict, errors list, warnings list)
    """
    parsed = {}
    errors = []
    warnings = []
    prefix = f"{student_name}: " if student_name else ""

    for component in COMPONENTS:
        result = validate_score(
            values.get(component),
            COMPONENT_LABELS[component],
            max_scores[component],
            warning_mark=warning_mark
        )
        parsed[component] = result.value
        errors.extend(prefix + message for message in result.errors)
        warnings.extend(prefix + message for message in result.warnings)

    return parsed, errors, warnings
