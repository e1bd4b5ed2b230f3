"""
blueprints/results/routes.py - Result Compilation Blueprint
Class result sheet across all subjects: overall average, GPA and position.
"""

from flask import Blueprint, request, jsonify

from config import Config
from extensions import db
from grading import GradingError
from services import CohortService

results_bp = Blueprint('results', __name__)


@results_bp.errorhandler(GradingError)
def handle_grading_error(error):
    db.session.rollback()
    return jsonify({
        'success': False,
        'error': error.message,
        'errors': error.errors
    }), error.status_code


@results_bp.route('/class', methods=['GET'])
def class_results():
    """
    Compiled results of a class
    Query: class (required), session, term
    """
    class_name = request.args.get('class', '').strip()
    if not class_name:
        raise GradingError("Missing query parameter(s): class")

    session = request.args.get('session', '').strip() or Config.get_current_session()
    term = request.args.get('term', '').strip() or Config.get_current_term()

    compiled = CohortService.from_app().compile_class(class_name, session, term)

    return jsonify({
        'success': True,
        'class_name': class_name,
        'session': session,
        'term': term,
        'subjects': compiled['subjects'],
        'results': compiled['results'],
        'summary': compiled['summary']
    })
