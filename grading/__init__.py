"""
grading - Shared score compilation engine

Every screen that records or reports scores goes through these functions,
so there is one definition of total, average, grade and position.
"""

from .aggregation import compute_derived, compute_ranks, max_total, recalculate_cohort
from .compilation import compile_class_results, summarize_class_results
from .csv_reconcile import export_csv, import_csv, parse_csv, template_csv
from .errors import (
    CsvFormatError,
    GradingError,
    ImportCancelled,
    ScoreValidationError,
    StaleCohortError,
    UnknownStudentError,
    UnknownSubjectError,
)
from .scales import get_scale, grade_for
from .statistics import compute_statistics
from .validation import COMPONENTS, validate_entry, validate_score

__all__ = [
    'COMPONENTS',
    'CsvFormatError',
    'GradingError',
    'ImportCancelled',
    'ScoreValidationError',
    'StaleCohortError',
    'UnknownStudentError',
    'UnknownSubjectError',
    'compile_class_results',
    'compute_derived',
    'compute_ranks',
    'compute_statistics',
    'export_csv',
    'get_scale',
    'grade_for',
    'import_csv',
    'max_total',
    'parse_csv',
    'recalculate_cohort',
    'summarize_class_results',
    'template_csv',
    'validate_entry',
    'validate_score',
]
