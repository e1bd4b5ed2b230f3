"""
models.py - Database Models for the score book
Subjects, class roster, cohorts and per-student score entries
"""

from extensions import db
from datetime import datetime

from config import Config
from grading.aggregation import recalculate_cohort
from grading.validation import COMPONENTS


class Subject(db.Model):
    """
    Subject Master List
    Defines the ceiling of each score component (applies to every class)
    """
    __tablename__ = 'subject'

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(20), unique=True, nullable=False, index=True)  # "MTH"
    name = db.Column(db.String(200), nullable=False)  # "Mathematics"
    units = db.Column(db.Integer, nullable=False, default=1)  # Weight in GPA

    # Component ceilings, commonly 20/20/60 so that a full total is 100
    max_test1 = db.Column(db.Float, nullable=False, default=Config.DEFAULT_MAX_SCORES['test1'])
    max_test2 = db.Column(db.Float, nullable=False, default=Config.DEFAULT_MAX_SCORES['test2'])
    max_exam = db.Column(db.Float, nullable=False, default=Config.DEFAULT_MAX_SCORES['exam'])

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    cohorts = db.relationship('Cohort', backref='subject', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<Subject {self.code} - {self.name}>'

    @property
    def max_scores(self):
        """Component ceilings as a dict keyed test1/test2/exam"""
        scores = {
            'test1': self.max_test1,
            'test2': self.max_test2,
            'exam': self.max_exam
        }
        # Unsaved subjects have not received their column defaults yet
        return {
            component: Config.DEFAULT_MAX_SCORES[component] if value is None else value
            for component, value in scores.items()
        }

    @property
    def max_total(self):
        return sum(self.max_scores.values())

    def to_dict(self):
        return {
            'id': self.id,
            'code': self.code,
            'name': self.name,
            'units': self.units,
            'max_scores': self.max_scores,
            'max_total': self.max_total
        }


class Student(db.Model):
    """
    Student - One row of the class roster
    """
    __tablename__ = 'student'

    id = db.Column(db.Integer, primary_key=True)
    student_number = db.Column(db.String(50), unique=True, nullable=False, index=True)  # "GRA001"
    full_name = db.Column(db.String(200), nullable=False)
    class_name = db.Column(db.String(50), nullable=False, index=True)  # "JSS1A"
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f'<Student {self.student_number} - {self.full_name}>'


class Cohort(db.Model):
    """
    Cohort - All score entries for one subject, class, session and term

    version is bumped by SQLAlchemy on every update of this row; a writer
    holding an older version gets a StaleDataError instead of silently
    overwriting someone else's edit.
    """
    __tablename__ = 'cohort'
    __table_args__ = (
        db.UniqueConstraint('subject_id', 'class_name', 'session', 'term', name='uq_cohort_scope'),
    )

    id = db.Column(db.Integer, primary_key=True)
    subject_id = db.Column(db.Integer, db.ForeignKey('subject.id'), nullable=False, index=True)
    class_name = db.Column(db.String(50), nullable=False)
    session = db.Column(db.String(20), nullable=False)  # "2025/2026"
    term = db.Column(db.String(20), nullable=False)  # "First Term"

    version = db.Column(db.Integer, nullable=False)
    submitted_by = db.Column(db.String(100), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    entries = db.relationship(
        'ScoreEntry',
        backref='cohort',
        order_by='ScoreEntry.id',
        cascade='all, delete-orphan'
    )

    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f'<Cohort {self.subject_id} {self.class_name} ({self.session} {self.term}) v{self.version}>'

    def find_entry(self, student_id):
        for entry in self.entries:
            if entry.student_id == student_id:
                return entry
        return None

    def recalculate(self, scale):
        """Recompute derived fields and positions of every entry"""
        return recalculate_cohort(self.entries, self.subject.max_scores, scale)

    def touch(self):
        """Mark the cohort row dirty so the version is bumped on commit"""
        self.updated_at = datetime.utcnow()


class ScoreEntry(db.Model):
    """
    ScoreEntry - One student's raw scores and derived results in a cohort

    A component left as None was never entered; that is different from 0.
    """
    __tablename__ = 'score_entry'
    __table_args__ = (
        db.UniqueConstraint('cohort_id', 'student_id', name='uq_score_entry_student'),
    )

    id = db.Column(db.Integer, primary_key=True)
    cohort_id = db.Column(db.Integer, db.ForeignKey('cohort.id'), nullable=False, index=True)

    # Roster snapshot
    student_id = db.Column(db.String(50), nullable=False, index=True)  # Student.student_number
    student_name = db.Column(db.String(200), nullable=False)

    # Raw scores
    test1 = db.Column(db.Float, nullable=True)
    test2 = db.Column(db.Float, nullable=True)
    exam = db.Column(db.Float, nullable=True)

    # Derived (see grading.aggregation)
    total = db.Column(db.Float, nullable=True)
    average = db.Column(db.Float, nullable=True)
    grade = db.Column(db.String(2), nullable=True)
    rank = db.Column(db.Integer, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<ScoreEntry {self.student_id} total={self.total} rank={self.rank}>'

    def get_scores(self):
        return {component: getattr(self, component) for component in COMPONENTS}

    def to_dict(self):
        data = {
            'student_id': self.student_id,
            'student_name': self.student_name,
        }
        data.update(self.get_scores())
        data.update({
            'total': self.total,
            'average': self.average,
            'grade': self.grade,
            'rank': self.rank
        })
        return data


class SystemSettings(db.Model):
    """
    System-wide settings stored in database
    Operator overrides for the date-based session and term (flask set-calendar)
    """
    __tablename__ = 'system_settings'

    id = db.Column(db.Integer, primary_key=True)
    setting_key = db.Column(db.String(100), unique=True, nullable=False, index=True)
    setting_value = db.Column(db.String(200), nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    updated_by = db.Column(db.String(100), nullable=True)

    def __repr__(self):
        return f'<SystemSettings {self.setting_key}={self.setting_value}>'

    @staticmethod
    def _find(key):
        return SystemSettings.query.filter_by(setting_key=key).first()

    @staticmethod
    def get_setting(key, default=None):
        """Stored value of a setting, or default when it was never set"""
        setting = SystemSettings._find(key)
        return setting.setting_value if setting else default

    @staticmethod
    def set_setting(key, value, updated_by=None):
        """Create or overwrite a setting and commit"""
        setting = SystemSettings._find(key) or SystemSettings(setting_key=key)
        setting.setting_value = value
        setting.updated_by = updated_by
        db.session.add(setting)
        db.session.commit()
        return setting

    @staticmethod
    def delete_setting(key):
        """Remove an override so the value is computed from the date again"""
        setting = SystemSettings._find(key)
        if setting is None:
            return False
        db.session.delete(setting)
        db.session.commit()
        return True
