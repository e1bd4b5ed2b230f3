"""
grading/errors.py - Exceptions raised by the grading engine and cohort service
"""


class GradingError(ValueError):
    """Base class for every grading failure the callers are expected to handle"""
    status_code = 400

    def __init__(self, message, errors=None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors) if errors else [message]


class ScoreValidationError(GradingError):
    """A raw score was rejected; nothing was recorded"""


class CsvFormatError(GradingError):
    """The uploaded CSV cannot be read (bad header, bad row shape, too many rows)"""


class ImportCancelled(GradingError):
    """The caller asked an in-flight import to stop"""
    status_code = 409


class UnknownStudentError(GradingError):
    status_code = 404


class UnknownSubjectError(GradingError):
    status_code = 404


class StaleCohortError(GradingError):
    """The cohort changed since the caller last read it"""
    status_code = 409

    def __init__(self, expected_version, current_version):
        super().__init__(
            f"Cohort was modified by someone else (you have version {expected_version}, "
            f"current is {current_version}). Reload and try again."
        )
        self.expected_version = expected_version
        self.current_version = current_version
