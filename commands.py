"""
commands.py - Flask CLI commands
Populate the database with a demo roster, subjects and scores, and pin
the academic session and term.

Usage: flask --app app seed-demo [--clear] [--seed 7]
       flask --app app set-calendar [--session 2025/2026] [--term "First Term"] [--reset]
"""

import random

import click
from flask.cli import with_appcontext

from config import Config
from extensions import db
from models import Cohort, ScoreEntry, Student, Subject, SystemSettings
from services import CohortService

DEMO_CLASS = 'JSS1A'

DEMO_SUBJECTS = [
    {'code': 'MTH', 'name': 'Mathematics', 'units': 2},
    {'code': 'ENG', 'name': 'English Language', 'units': 2},
    {'code': 'BSC', 'name': 'Basic Science', 'units': 1},
]

DEMO_STUDENTS = [
    ('GRA001', 'Alice Johnson'),
    ('GRA002', 'Bob Smith'),
    ('GRA003', 'Carol Adeyemi'),
    ('GRA004', 'David Okafor'),
    ('GRA005', 'Esther Bello'),
    ('GRA006', 'Femi Ogunleye'),
    ('GRA007', 'Grace Nwosu'),
    ('GRA008', 'Hassan Musa'),
]


def clear_data():
    ScoreEntry.query.delete()
    Cohort.query.delete()
    Student.query.delete()
    Subject.query.delete()
    db.session.commit()


def seed_demo_data(seed=7, session=None, term=None):
    """
    Create the demo class and score every subject for it

    Returns:
        dict: counts of created rows
    """
    rng = random.Random(seed)
    session = session or Config.get_current_session()
    term = term or Config.get_current_term()

    for code, name in DEMO_STUDENTS:
        if not Student.query.filter_by(student_number=code).first():
            db.session.add(Student(student_number=code, full_name=name, class_name=DEMO_CLASS))

    for data in DEMO_SUBJECTS:
        if not Subject.query.filter_by(code=data['code']).first():
            db.session.add(Subject(**data))

    db.session.commit()

    service = CohortService.from_app()
    entries = 0
    for data in DEMO_SUBJECTS:
        cohort = service.open_cohort(data['code'], DEMO_CLASS, session, term)
        max_scores = cohort.subject.max_scores
        for entry in cohort.entries:
            entry.test1 = float(rng.randint(int(max_scores['test1'] * 0.4), int(max_scores['test1'])))
            entry.test2 = float(rng.randint(int(max_scores['test2'] * 0.4), int(max_scores['test2'])))
            entry.exam = float(rng.randint(int(max_scores['exam'] * 0.3), int(max_scores['exam'])))
            entries += 1
        service.perform_calculations(cohort)

    return {
        'students': len(DEMO_STUDENTS),
        'subjects': len(DEMO_SUBJECTS),
        'entries': entries,
        'session': session,
        'term': term
    }


@click.command('seed-demo')
@click.option('--clear', is_flag=True, help='Delete existing subjects, roster and scores first.')
@click.option('--seed', default=7, show_default=True, help='Random seed for the demo scores.')
@with_appcontext
def seed_demo_command(clear, seed):
    """Create a demo class with scored subjects."""
    db.create_all()
    if clear:
        click.echo("Clearing existing data...")
        clear_data()

    summary = seed_demo_data(seed=seed)

    click.echo(f"Created {summary['students']} students in {DEMO_CLASS}")
    click.echo(f"Scored {summary['subjects']} subjects ({summary['entries']} entries)")
    click.echo(f"Session {summary['session']}, {summary['term']}")


TERMS = ['First Term', 'Second Term', 'Third Term']


def _check_session(ctx, param, value):
    if value is None:
        return value
    start, _, end = value.partition('/')
    if not (start.isdigit() and end.isdigit() and int(end) == int(start) + 1):
        raise click.BadParameter("expected two consecutive years, e.g. 2025/2026")
    return value


@click.command('set-calendar')
@click.option('--session', callback=_check_session, help='Academic session to use instead of the date-based one.')
@click.option('--term', type=click.Choice(TERMS), help='Term to use instead of the date-based one.')
@click.option('--reset', is_flag=True, help='Remove both overrides and follow the calendar again.')
@click.option('--by', 'updated_by', help='Name recorded with the change.')
@with_appcontext
def set_calendar_command(session, term, reset, updated_by):
    """Show or override the current academic session and term."""
    if reset:
        for key in ('current_session', 'current_term'):
            SystemSettings.delete_setting(key)
        click.echo("Calendar overrides removed.")
    if session:
        SystemSettings.set_setting('current_session', session, updated_by=updated_by)
    if term:
        SystemSettings.set_setting('current_term', term, updated_by=updated_by)

    click.echo(f"Session {Config.get_current_session()}, {Config.get_current_term()}")


def register_commands(app):
    app.cli.add_command(seed_demo_command)
    app.cli.add_command(set_calendar_command)
