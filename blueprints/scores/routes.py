"""
blueprints/scores/routes.py - Score Entry Blueprint
JSON endpoints behind the score-entry screens: single edits, recalculation,
CSV import/export and class statistics for one cohort.

A cohort is selected with the query parameters subject, class, session and
term; session and term default to the current academic calendar.
"""

import logging

from flask import Blueprint, request, jsonify, make_response
from werkzeug.utils import secure_filename

from config import Config
from extensions import db
from grading import CsvFormatError, GradingError
from services import CohortService

logger = logging.getLogger(__name__)

# Initialize the blueprint for score-entry routes
scores_bp = Blueprint('scores', __name__)


@scores_bp.errorhandler(GradingError)
def handle_grading_error(error):
    """Answer every grading failure as JSON with its own status code"""
    db.session.rollback()
    return jsonify({
        'success': False,
        'error': error.message,
        'errors': error.errors
    }), error.status_code


def _scope():
    """(subject, class, session, term) from the query string"""
    subject_code = request.args.get('subject', '').strip()
    class_name = request.args.get('class', '').strip()

    missing = [name for name, value in (('subject', subject_code), ('class', class_name)) if not value]
    if missing:
        raise GradingError(f"Missing query parameter(s): {', '.join(missing)}")

    session = request.args.get('session', '').strip() or Config.get_current_session()
    term = request.args.get('term', '').strip() or Config.get_current_term()
    return subject_code, class_name, session, term


def _open_cohort(service):
    return service.open_cohort(*_scope())


def _expected_version(data=None):
    """Version the client last saw, from the JSON body or the query string"""
    if data and data.get('version') is not None:
        try:
            return int(data['version'])
        except (TypeError, ValueError):
            raise GradingError("version must be an integer") from None
    return request.args.get('version', type=int)


def _cohort_payload(service, cohort):
    return {
        'cohort_id': cohort.id,
        'subject': cohort.subject.to_dict(),
        'class_name': cohort.class_name,
        'session': cohort.session,
        'term': cohort.term,
        'version': cohort.version,
        'submitted_by': cohort.submitted_by,
        'entries': [entry.to_dict() for entry in cohort.entries],
        'statistics': service.class_statistics(cohort)
    }


def _flag(name, default=None):
    value = request.args.get(name)
    if value is None:
        return default
    return value.strip().lower() in ['1', 'true', 'yes', 'on']


@scores_bp.route('/cohort', methods=['GET'])
def get_cohort():
    """
    Score sheet of one cohort with derived fields and statistics
    """
    service = CohortService.from_app()
    cohort = _open_cohort(service)

    payload = _cohort_payload(service, cohort)
    payload['success'] = True
    return jsonify(payload)


@scores_bp.route('/cohort/score', methods=['POST'])
def update_score():
    """
    API endpoint to update a single raw score.
    Body: {"student_id": "GRA001", "field": "test1", "value": 18, "version": 3}
    """
    data = request.get_json(silent=True) or {}
    student_id = str(data.get('student_id', '')).strip()
    field = str(data.get('field', '')).strip()

    if not student_id or not field:
        raise GradingError("student_id and field are required")

    service = CohortService.from_app()
    cohort = _open_cohort(service)

    entry, warnings = service.update_score(
        cohort, student_id, field, data.get('value'),
        expected_version=_expected_version(data)
    )

    return jsonify({
        'success': True,
        'entry': entry.to_dict(),
        'warnings': warnings,
        'version': cohort.version,
        'entries': [e.to_dict() for e in cohort.entries],
        'statistics': service.class_statistics(cohort)
    })


@scores_bp.route('/cohort/calculate', methods=['POST'])
def perform_calculations():
    """
    Recompute totals, grades and positions for the whole cohort
    Body: {"version": 3, "submitted_by": "Mrs. Adeyemi"} (both optional)
    """
    data = request.get_json(silent=True) or {}
    service = CohortService.from_app()
    cohort = _open_cohort(service)

    ranked = service.perform_calculations(
        cohort,
        expected_version=_expected_version(data),
        submitted_by=str(data.get('submitted_by') or '').strip() or None
    )

    payload = _cohort_payload(service, cohort)
    payload.update({
        'success': True,
        'ranking': [
            {'rank': entry.rank, 'student_id': entry.student_id, 'total': entry.total}
            for entry in ranked
        ]
    })
    return jsonify(payload)


def _uploaded_csv_text():
    """CSV text from a multipart upload, a JSON body or a raw text body"""
    if 'csv_file' in request.files:
        file = request.files['csv_file']
        if not file or file.filename == '':
            raise CsvFormatError("No file selected.")

        extension = file.filename.rsplit('.', 1)[-1].lower() if '.' in file.filename else ''
        if extension not in Config.CSV_ALLOWED_EXTENSIONS:
            raise CsvFormatError("Please upload a CSV file.")

        try:
            return file.stream.read().decode('utf-8-sig')
        except UnicodeDecodeError as e:
            raise CsvFormatError("CSV file must be UTF-8 encoded.") from e

    data = request.get_json(silent=True)
    if data is not None:
        text = data.get('csv', '') if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise CsvFormatError("'csv' must be the CSV text as a string.")
        return text

    return request.get_data(as_text=True)


@scores_bp.route('/cohort/import', methods=['POST'])
def import_scores():
    """
    Bulk score import from CSV
    Query: strict=1 rejects the whole file when any row has an error
    """
    text = _uploaded_csv_text()
    service = CohortService.from_app()
    cohort = _open_cohort(service)

    result = service.import_csv(
        cohort, text,
        strict=_flag('strict'),
        expected_version=_expected_version(request.get_json(silent=True))
    )

    if result.applied and result.updated:
        logger.info(
            "Imported scores for %d student(s) into cohort %s",
            len(result.updated), cohort.id
        )

    payload = _cohort_payload(service, cohort)
    payload.update({
        'success': result.applied,
        'updated': [entry.student_id for entry in result.updated],
        'errors': result.errors,
        'warnings': result.warnings,
        'matched_count': result.matched_count,
        'rows_read': result.rows_read,
        'skipped_count': result.skipped_count
    })
    return jsonify(payload), (200 if result.applied else 400)


def _csv_response(content, filename):
    response = make_response(content)
    response.headers['Content-Disposition'] = f'attachment; filename={secure_filename(filename)}'
    response.headers['Content-Type'] = 'text/csv'
    return response


@scores_bp.route('/cohort/export', methods=['GET'])
def export_scores():
    """Export raw scores of a cohort (no totals, grades or positions)"""
    service = CohortService.from_app()
    cohort = _open_cohort(service)

    content = service.export_csv(cohort, layout=request.args.get('layout'))
    return _csv_response(content, f"{cohort.subject.code}_{cohort.class_name}_scores.csv")


@scores_bp.route('/cohort/statistics', methods=['GET'])
def class_statistics():
    service = CohortService.from_app()
    cohort = _open_cohort(service)

    return jsonify({
        'success': True,
        'version': cohort.version,
        'statistics': service.class_statistics(cohort)
    })


@scores_bp.route('/template', methods=['GET'])
def download_template():
    """Blank score sheet for every active student of a class"""
    class_name = request.args.get('class', '').strip()
    if not class_name:
        raise GradingError("Missing query parameter(s): class")

    service = CohortService.from_app()
    content = service.template_csv(class_name, layout=request.args.get('layout'))
    return _csv_response(content, f"{class_name}_score_template.csv")
