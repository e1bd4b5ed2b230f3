import pytest

from app import create_app
from extensions import db
from models import ScoreEntry, Student, Subject
from services import CohortService

SESSION = '2025/2026'
TERM = 'First Term'
CLASS_NAME = 'JSS1A'


@pytest.fixture
def app():
    app = create_app('testing')
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def runner(app):
    return app.test_cli_runner()


@pytest.fixture
def subject(app):
    subject = Subject(code='MTH', name='Mathematics', units=2, max_test1=20, max_test2=20, max_exam=60)
    db.session.add(subject)
    db.session.commit()
    return subject


@pytest.fixture
def roster(app):
    students = [
        Student(student_number='GRA001', full_name='Alice Johnson', class_name=CLASS_NAME),
        Student(student_number='GRA002', full_name='Bob Smith', class_name=CLASS_NAME),
        Student(student_number='GRA003', full_name='Carol White', class_name=CLASS_NAME),
    ]
    db.session.add_all(students)
    db.session.commit()
    return students


@pytest.fixture
def service(app):
    return CohortService.from_app(app)


@pytest.fixture
def cohort(service, subject, roster):
    return service.open_cohort('MTH', CLASS_NAME, SESSION, TERM)


@pytest.fixture
def make_entry():
    """Unsaved score entries for engine tests"""
    def _make(student_id, student_name, test1=None, test2=None, exam=None):
        return ScoreEntry(
            student_id=student_id,
            student_name=student_name,
            test1=test1,
            test2=test2,
            exam=exam
        )
    return _make


@pytest.fixture
def max_scores():
    return {'test1': 20, 'test2': 20, 'exam': 60}


@pytest.fixture
def scenario(make_entry):
    """Alice 18/17/52, Bob 19/18/54, Carol 16/16/48"""
    return [
        make_entry('GRA001', 'Alice Johnson', 18, 17, 52),
        make_entry('GRA002', 'Bob Smith', 19, 18, 54),
        make_entry('GRA003', 'Carol White', 16, 16, 48),
    ]
