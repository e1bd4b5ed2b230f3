"""
services.py - Cohort Service
The operations the score-entry screens call. Collaborators (persistence,
roster, notifications) are injected so the grading rules stay in one place.
"""

import logging
from datetime import datetime

from flask import current_app
from sqlalchemy.orm.exc import StaleDataError

from extensions import db
from models import Cohort, ScoreEntry, Student, Subject
from grading import (
    COMPONENTS,
    GradingError,
    ScoreValidationError,
    StaleCohortError,
    UnknownStudentError,
    UnknownSubjectError,
    compile_class_results,
    compute_statistics,
    export_csv,
    get_scale,
    import_csv,
    summarize_class_results,
    template_csv,
    validate_score,
)
from grading.validation import COMPONENT_LABELS

logger = logging.getLogger(__name__)


class ScoreRepository:
    """
    Persistence collaborator backed by Flask-SQLAlchemy
    """

    def get_subject(self, code):
        subject = Subject.query.filter_by(code=code).first()
        if subject is None:
            raise UnknownSubjectError(f"Subject '{code}' not found.")
        return subject

    def find_cohort(self, subject_id, class_name, term, session):
        return Cohort.query.filter_by(
            subject_id=subject_id,
            class_name=class_name,
            term=term,
            session=session
        ).first()

    def load_cohort(self, subject_id, class_name, term, session):
        """Score entries of a cohort in insertion order (empty if it does not exist)"""
        cohort = self.find_cohort(subject_id, class_name, term, session)
        return list(cohort.entries) if cohort else []

    def load_cohorts_for_class(self, class_name, term, session):
        return Cohort.query.filter_by(
            class_name=class_name,
            term=term,
            session=session
        ).order_by(Cohort.subject_id).all()

    def get_or_create_cohort(self, subject, class_name, term, session):
        cohort = self.find_cohort(subject.id, class_name, term, session)
        if cohort is None:
            cohort = Cohort(subject=subject, class_name=class_name, term=term, session=session)
            db.session.add(cohort)
            logger.info("Created cohort %s %s (%s %s)", subject.code, class_name, session, term)
        return cohort

    def save_score_record(self, entry):
        entry.updated_at = datetime.utcnow()
        db.session.add(entry)
        return True

    def commit(self):
        db.session.commit()

    def rollback(self):
        db.session.rollback()


class RosterProvider:
    """
    Roster collaborator: active students of a class in roster order
    """

    def get_students_by_class(self, class_name):
        return Student.query.filter_by(
            class_name=class_name,
            is_active=True
        ).order_by(Student.full_name, Student.id).all()


class Notifier:
    """
    Fire-and-forget event dispatcher

    Handlers run synchronously; a failing handler is logged and never
    reaches the caller that produced the event.
    """

    def __init__(self):
        self._handlers = []

    def subscribe(self, handler):
        self._handlers.append(handler)
        return handler

    def notify(self, event):
        logger.info("Event %s: %s", event.get('type'), event)
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("Notification handler %r failed for %s", handler, event.get('type'))


class CohortService:
    """
    Score entry, calculation, CSV import/export and statistics for cohorts
    """

    def __init__(self, repository, roster, notifier, scale_name=None, pass_mark=50,
                 warning_mark=40, strict_import=False, export_layout='name', max_rows=None):
        self.repository = repository
        self.roster = roster
        self.notifier = notifier
        self.scale = get_scale(scale_name)
        self.pass_mark = pass_mark
        self.warning_mark = warning_mark
        self.strict_import = strict_import
        self.export_layout = export_layout
        self.max_rows = max_rows

    @classmethod
    def from_app(cls, app=None):
        """Service wired with the default collaborators and the app's grading settings"""
        app = app or current_app
        return cls(
            ScoreRepository(),
            RosterProvider(),
            app.extensions['score_notifier'],
            scale_name=app.config['GRADE_SCALE'],
            pass_mark=app.config['PASS_MARK'],
            warning_mark=app.config['SCORE_WARNING_MARK'],
            strict_import=app.config['CSV_IMPORT_STRICT'],
            export_layout=app.config['CSV_EXPORT_LAYOUT'],
            max_rows=app.config['CSV_MAX_ROWS']
        )

    # ------------------------------------------------------------------
    # Cohort lifecycle
    # ------------------------------------------------------------------

    def open_cohort(self, subject_code, class_name, session, term):
        """
        Load a cohort, creating it and any missing roster entries on the way

        Students already in the cohort keep their scores; newly enrolled
        students are appended, so existing positions keep their tie order.
        """
        subject = self.repository.get_subject(subject_code)
        cohort = self.repository.get_or_create_cohort(subject, class_name, term, session)
        created = cohort.id is None

        known = {entry.student_id for entry in cohort.entries}
        added = 0
        for student in self.roster.get_students_by_class(class_name):
            if student.student_number in known:
                continue
            cohort.entries.append(ScoreEntry(
                student_id=student.student_number,
                student_name=student.full_name
            ))
            added += 1

        if added or created:
            cohort.recalculate(self.scale)
            self._commit(cohort)
            logger.debug("Cohort %s: %d roster student(s) added", cohort.id, added)

        return cohort

    def check_version(self, cohort, expected_version):
        if expected_version is None or expected_version == '':
            return
        try:
            expected_version = int(expected_version)
        except (TypeError, ValueError):
            raise GradingError("version must be an integer") from None
        if expected_version != cohort.version:
            raise StaleCohortError(expected_version, cohort.version)

    def _commit(self, cohort):
        expected = cohort.version
        try:
            self.repository.commit()
        except StaleDataError as e:
            self.repository.rollback()
            raise StaleCohortError(expected, cohort.version) from e

    def _save(self, cohort, entries):
        for entry in entries:
            self.repository.save_score_record(entry)
        cohort.touch()
        self._commit(cohort)

    # ------------------------------------------------------------------
    # Operations exposed to the score-entry screens
    # ------------------------------------------------------------------

    def update_score(self, cohort, student_id, field, value, expected_version=None):
        """
        Record one raw score and recompute the cohort

        Invalid input is rejected and nothing is stored.

        Returns:
            tuple: (ScoreEntry, list of warnings)
        """
        self.check_version(cohort, expected_version)

        if field not in COMPONENTS:
            raise ScoreValidationError(
                f"Unknown score field '{field}'. Expected one of: {', '.join(COMPONENTS)}"
            )

        entry = cohort.find_entry(student_id)
        if entry is None:
            raise UnknownStudentError(f"Student '{student_id}' is not in this class.")

        result = validate_score(
            value,
            COMPONENT_LABELS[field],
            cohort.subject.max_scores[field],
            warning_mark=self.warning_mark
        )
        if not result.is_valid:
            errors = [f"{entry.student_name}: {message}" for message in result.errors]
            logger.info("Rejected %s=%r for %s: %s", field, value, student_id, errors[0])
            raise ScoreValidationError(errors[0], errors=errors)

        setattr(entry, field, result.value)
        cohort.recalculate(self.scale)
        self._save(cohort, [entry])

        warnings = [f"{entry.student_name}: {message}" for message in result.warnings]
        return entry, warnings

    def perform_calculations(self, cohort, expected_version=None, submitted_by=None):
        """
        Recompute every entry and position, then announce the compiled result

        submitted_by, when given, is recorded on the cohort as the person who
        compiled it.

        Returns:
            list: ranked entries
        """
        self.check_version(cohort, expected_version)

        if submitted_by:
            cohort.submitted_by = submitted_by
        ranked = cohort.recalculate(self.scale)
        self._save(cohort, cohort.entries)

        statistics = self.class_statistics(cohort)
        logger.info(
            "Compiled %s %s (%s %s): %d ranked, class average %s",
            cohort.subject.code, cohort.class_name, cohort.session, cohort.term,
            len(ranked), statistics['average']
        )
        self.notifier.notify({
            'type': 'results_compiled',
            'cohort_id': cohort.id,
            'subject': cohort.subject.code,
            'class_name': cohort.class_name,
            'session': cohort.session,
            'term': cohort.term,
            'submitted_by': cohort.submitted_by,
            'statistics': statistics
        })
        return ranked

    def import_csv(self, cohort, text, strict=None, should_cancel=None, expected_version=None):
        """
        Apply a CSV sheet to the cohort

        Returns:
            ImportResult
        """
        self.check_version(cohort, expected_version)

        result = import_csv(
            text,
            cohort.entries,
            cohort.subject.max_scores,
            self.scale,
            strict=self.strict_import if strict is None else strict,
            should_cancel=should_cancel,
            warning_mark=self.warning_mark,
            max_rows=self.max_rows
        )

        if result.applied:
            self._save(cohort, result.updated)
        return result

    def export_csv(self, cohort, layout=None):
        return export_csv(cohort.entries, layout=layout or self.export_layout)

    def template_csv(self, class_name, layout=None):
        students = self.roster.get_students_by_class(class_name)
        return template_csv(
            [(student.student_number, student.full_name) for student in students],
            layout=layout or self.export_layout
        )

    def class_statistics(self, cohort):
        return compute_statistics(cohort.entries, pass_mark=self.pass_mark, scale=self.scale)

    def compile_class(self, class_name, session, term):
        """
        Cross-subject result sheet for a class

        Returns:
            dict: {'subjects': [...], 'results': [...], 'summary': {...}}
        """
        cohorts = self.repository.load_cohorts_for_class(class_name, term, session)
        subjects = [cohort.subject for cohort in cohorts]
        averages = {
            cohort.subject.code: {entry.student_id: entry.average for entry in cohort.entries}
            for cohort in cohorts
        }

        students = [
            {
                'student_id': student.student_number,
                'student_name': student.full_name,
                'subjects': {
                    subject.code: averages[subject.code].get(student.student_number)
                    for subject in subjects
                }
            }
            for student in self.roster.get_students_by_class(class_name)
        ]

        results = compile_class_results(
            students,
            {subject.code: subject.units for subject in subjects},
            self.scale
        )
        return {
            'subjects': [subject.to_dict() for subject in subjects],
            'results': results,
            'summary': summarize_class_results(results, [subject.code for subject in subjects], self.scale)
        }
