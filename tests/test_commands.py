from commands import DEMO_CLASS, seed_demo_data
from config import Config
from models import Cohort, ScoreEntry, Student, Subject, SystemSettings


def test_seed_demo_command(runner):
    result = runner.invoke(args=['seed-demo', '--seed', '3'])

    assert result.exit_code == 0, result.output
    assert f'Created 8 students in {DEMO_CLASS}' in result.output
    assert 'Scored 3 subjects (24 entries)' in result.output

    assert Student.query.count() == 8
    assert Subject.query.count() == 3
    assert Cohort.query.count() == 3
    assert ScoreEntry.query.filter(ScoreEntry.rank.isnot(None)).count() == 24


def test_seed_is_repeatable(app):
    seed_demo_data(seed=11, session='2025/2026', term='First Term')
    first = sorted((e.student_id, e.total) for e in ScoreEntry.query.all())

    result = app.test_cli_runner().invoke(args=['seed-demo', '--clear', '--seed', '11'])
    assert result.exit_code == 0, result.output
    assert 'Clearing existing data...' in result.output

    # The command uses the current calendar, so only compare totals
    second = sorted((e.student_id, e.total) for e in ScoreEntry.query.all())
    assert second == first


def test_every_demo_cohort_is_fully_ranked(app):
    seed_demo_data(seed=5, session='2025/2026', term='Second Term')

    for cohort in Cohort.query.all():
        ranks = sorted(entry.rank for entry in cohort.entries)
        assert ranks == list(range(1, 9))
        assert all(entry.grade for entry in cohort.entries)


def test_set_calendar_pins_session_and_term(runner):
    result = runner.invoke(args=['set-calendar', '--session', '2030/2031', '--term', 'Second Term', '--by', 'registrar'])

    assert result.exit_code == 0, result.output
    assert 'Session 2030/2031, Second Term' in result.output
    assert Config.get_current_session() == '2030/2031'
    assert SystemSettings.query.filter_by(setting_key='current_term').one().updated_by == 'registrar'


def test_set_calendar_reset_follows_the_date_again(runner):
    runner.invoke(args=['set-calendar', '--term', 'Third Term'])
    result = runner.invoke(args=['set-calendar', '--reset'])

    assert result.exit_code == 0, result.output
    assert 'Calendar overrides removed.' in result.output
    assert SystemSettings.query.count() == 0
    assert Config.get_current_term() == Config._auto_calculate_term()


def test_set_calendar_rejects_a_malformed_session(runner):
    result = runner.invoke(args=['set-calendar', '--session', '2030-31'])

    assert result.exit_code != 0
    assert 'consecutive years' in result.output
    assert SystemSettings.query.count() == 0
