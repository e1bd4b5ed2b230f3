"""
grading/csv_reconcile.py - CSV Bulk Import/Export

Two sheet layouts are understood:

    name layout:  student_name,test1_score,test2_score,exam_score
    id layout:    student_id,student_name,test1,test2,exam

Parsing goes through the csv module, so quoted names with embedded commas
work. Rows are reconciled against the cohort roster before anything is
written; rows that match nobody are reported, never dropped silently.
"""

import csv
import io
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .aggregation import recalculate_cohort
from .errors import CsvFormatError, ImportCancelled
from .validation import COMPONENTS, DEFAULT_WARNING_MARK, format_score, validate_entry

logger = logging.getLogger(__name__)

LAYOUTS = {
    'name': ['student_name', 'test1_score', 'test2_score', 'exam_score'],
    'id': ['student_id', 'student_name', 'test1', 'test2', 'exam'],
}

# Accepted header spellings per score component
COMPONENT_HEADERS = {
    'test1': ('test1', 'test1_score'),
    'test2': ('test2', 'test2_score'),
    'exam': ('exam', 'exam_score'),
}


@dataclass
class CsvRow:
    """One data row of an uploaded sheet"""

    line_number: int
    student_id: str
    student_name: str
    cells: Dict[str, str]

    @property
    def label(self):
        return self.student_name or self.student_id or '(blank)'


@dataclass
class ParsedSheet:
    headers: List[str]
    layout: str
    rows: List[CsvRow] = field(default_factory=list)


@dataclass
class ImportResult:
    """What an import did to the roster"""

    updated: list = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    matched_count: int = 0
    rows_read: int = 0
    applied: bool = True

    @property
    def skipped_count(self):
        return self.rows_read - len(self.updated)


def normalize_name(value):
    return ' '.join((value or '').split()).lower()


def normalize_id(value):
    return (value or '').strip().lower()


def _find_column(headers, candidates):
    for candidate in candidates:
        if candidate in headers:
            return headers.index(candidate)
    return None


def parse_csv(text, max_rows=None):
    """
    Parse pasted or uploaded CSV text into typed rows

    Raises:
        CsvFormatError: Empty input, missing columns, a row with the wrong
            number of fields, or more than max_rows data rows
    """
    if text is None or not text.strip():
        raise CsvFormatError("CSV data is empty.")

    reader = csv.reader(io.StringIO(text.lstrip('\ufeff'), newline=''), skipinitialspace=True)

    try:
        raw_headers = next(reader)
    except csv.Error as e:
        raise CsvFormatError(f"Could not read CSV header: {e}") from e

    headers = [header.strip().lower() for header in raw_headers]

    id_col = _find_column(headers, ('student_id',))
    name_col = _find_column(headers, ('student_name',))
    component_cols = {
        component: _find_column(headers, aliases)
        for component, aliases in COMPONENT_HEADERS.items()
    }

    missing = []
    if id_col is None and name_col is None:
        missing.append('student_name or student_id')
    missing.extend(
        ' or '.join(COMPONENT_HEADERS[component])
        for component, col in component_cols.items() if col is None
    )
    if missing:
        raise CsvFormatError(f"Missing required columns: {', '.join(missing)}")

    sheet = ParsedSheet(headers=headers, layout='id' if id_col is not None else 'name')

    try:
        for values in reader:
            if not any(value.strip() for value in values):
                continue

            if len(values) != len(headers):
                raise CsvFormatError(
                    f"Row {reader.line_num}: expected {len(headers)} fields, found {len(values)}"
                )

            if max_rows is not None and len(sheet.rows) >= max_rows:
                raise CsvFormatError(f"CSV has more than {max_rows} data rows.")

            sheet.rows.append(CsvRow(
                line_number=reader.line_num,
                student_id=values[id_col].strip() if id_col is not None else '',
                student_name=values[name_col].strip() if name_col is not None else '',
                cells={component: values[col] for component, col in component_cols.items()}
            ))
    except csv.Error as e:
        raise CsvFormatError(f"Row {reader.line_num}: {e}") from e

    return sheet


def _match_row(row, layout, by_id, by_name):
    """Roster entry for a row: (entry or None, error message or None)"""
    if layout == 'id':
        return by_id.get(normalize_id(row.student_id)), None

    candidates = by_name.get(normalize_name(row.student_name), [])
    if len(candidates) > 1:
        return None, (
            f"'{row.student_name}' matches {len(candidates)} students; "
            f"use the student_id layout to tell them apart"
        )
    return (candidates[0] if candidates else None), None


def import_csv(text, roster, max_scores, scale, strict=False, should_cancel=None,
               warning_mark=DEFAULT_WARNING_MARK, max_rows=None):
    """
    Reconcile a CSV sheet against the cohort roster and apply its scores

    Args:
        text: CSV text in either layout
        roster: Score entries of the cohort, in roster order
        max_scores: Component ceilings of the subject
        scale: Active grade scale
        strict: If True, any row error means nothing is applied
        should_cancel: Optional callable polled between rows
        max_rows: Optional limit on data rows

    Returns:
        ImportResult

    Raises:
        CsvFormatError: The sheet itself is malformed
        ImportCancelled: should_cancel() returned True; nothing was applied
    """
    sheet = parse_csv(text, max_rows=max_rows)
    result = ImportResult(rows_read=len(sheet.rows))

    by_id = {normalize_id(entry.student_id): entry for entry in roster}
    by_name = {}
    for entry in roster:
        by_name.setdefault(normalize_name(entry.student_name), []).append(entry)

    planned = []
    seen = {}

    for index, row in enumerate(sheet.rows):
        if should_cancel is not None and should_cancel():
            raise ImportCancelled(
                f"Import cancelled after {index} of {len(sheet.rows)} rows; no scores were changed."
            )

        entry, match_error = _match_row(row, sheet.layout, by_id, by_name)
        if match_error:
            result.errors.append(f"Row {row.line_number}: {match_error}")
            continue
        if entry is None:
            result.warnings.append(f"Row {row.line_number}: no student matching '{row.label}' in roster")
            continue

        if id(entry) in seen:
            result.errors.append(
                f"Row {row.line_number}: {entry.student_name} already appears on row {seen[id(entry)]}"
            )
            continue
        seen[id(entry)] = row.line_number
        result.matched_count += 1

        parsed, row_errors, _ = validate_entry(
            row.cells, max_scores, student_name=entry.student_name, warning_mark=warning_mark
        )
        if row_errors:
            result.errors.extend(f"Row {row.line_number}: {message}" for message in row_errors)
            continue

        planned.append((entry, parsed))

    for message in result.warnings:
        logger.warning("CSV import: %s", message)

    if strict and result.errors:
        logger.info("Strict CSV import rejected: %d error(s)", len(result.errors))
        result.applied = False
        return result

    for entry, parsed in planned:
        for component in COMPONENTS:
            setattr(entry, component, parsed[component])
        result.updated.append(entry)

    recalculate_cohort(roster, max_scores, scale)

    logger.info(
        "CSV import: %d row(s) read, %d matched, %d applied, %d error(s)",
        result.rows_read, result.matched_count, len(result.updated), len(result.errors)
    )
    return result


def _write_sheet(header, rows):
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(header)
    writer.writerows(rows)
    return output.getvalue()


def _check_layout(layout):
    if layout not in LAYOUTS:
        raise CsvFormatError(f"Unknown CSV layout '{layout}'. Choose one of: {', '.join(sorted(LAYOUTS))}")


def export_csv(entries, layout='name'):
    """
    Raw scores of a cohort as CSV, one row per entry in roster order

    Derived fields (total, grade, rank) are never exported; unset scores
    are left blank.
    """
    _check_layout(layout)
    rows = []
    for entry in entries:
        scores = [format_score(getattr(entry, component)) for component in COMPONENTS]
        if layout == 'id':
            rows.append([entry.student_id, entry.student_name] + scores)
        else:
            rows.append([entry.student_name] + scores)
    return _write_sheet(LAYOUTS[layout], rows)


def template_csv(students, layout='name'):
    """
    Blank score sheet for a class

    Args:
        students: iterable of (student_id, student_name) pairs
    """
    _check_layout(layout)
    rows = []
    for student_id, student_name in students:
        if layout == 'id':
            rows.append([student_id, student_name, '', '', ''])
        else:
            rows.append([student_name, '', '', ''])
    return _write_sheet(LAYOUTS[layout], rows)
