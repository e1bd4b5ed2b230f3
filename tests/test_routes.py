import io

import pytest

from conftest import CLASS_NAME, SESSION, TERM

SHEET = """student_name,test1_score,test2_score,exam_score
Alice Johnson,18,17,52
Bob Smith,19,18,54
Carol White,16,16,48
"""


@pytest.fixture
def scope(subject, roster):
    return {'subject': 'MTH', 'class': CLASS_NAME, 'session': SESSION, 'term': TERM}


def post_score(client, scope, student_id, field, value, version=None):
    body = {'student_id': student_id, 'field': field, 'value': value}
    if version is not None:
        body['version'] = version
    return client.post('/scores/cohort/score', query_string=scope, json=body)


def test_index(client):
    data = client.get('/').get_json()
    assert data['grade_scale'] == 'five_band'
    assert data['pass_mark'] == 50


def test_get_cohort_lists_roster(client, scope):
    response = client.get('/scores/cohort', query_string=scope)
    data = response.get_json()

    assert response.status_code == 200
    assert data['version'] == 1
    assert data['subject']['code'] == 'MTH'
    assert [entry['student_name'] for entry in data['entries']] == ['Alice Johnson', 'Bob Smith', 'Carol White']
    assert data['statistics']['count'] == 0


def test_missing_scope_is_a_bad_request(client, subject):
    response = client.get('/scores/cohort', query_string={'subject': 'MTH'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Missing query parameter(s): class'


def test_unknown_subject_is_not_found(client, scope):
    response = client.get('/scores/cohort', query_string=dict(scope, subject='XYZ'))
    assert response.status_code == 404
    assert response.get_json()['success'] is False


def test_update_score(client, scope):
    response = post_score(client, scope, 'GRA001', 'exam', 52, version=1)
    data = response.get_json()

    assert response.status_code == 200
    assert data['entry']['exam'] == 52
    assert data['entry']['total'] == 52
    assert data['entry']['rank'] == 1
    assert data['warnings'] == []
    assert data['version'] == 2


def test_update_score_rejects_out_of_range_value(client, scope):
    response = post_score(client, scope, 'GRA001', 'test1', 21)
    data = response.get_json()

    assert response.status_code == 400
    assert data['error'] == 'Alice Johnson: Test 1 must be between 0 and 20'

    entries = client.get('/scores/cohort', query_string=scope).get_json()['entries']
    assert entries[0]['test1'] is None


def test_update_score_requires_student_and_field(client, scope):
    response = client.post('/scores/cohort/score', query_string=scope, json={'value': 3})
    assert response.status_code == 400


def test_stale_version_is_a_conflict(client, scope):
    assert post_score(client, scope, 'GRA001', 'test1', 10, version=1).status_code == 200

    response = post_score(client, scope, 'GRA002', 'test1', 12, version=1)
    assert response.status_code == 409
    assert 'current is 2' in response.get_json()['error']


def test_non_numeric_version_is_a_bad_request(client, scope):
    response = client.post('/scores/cohort/calculate', query_string=scope, json={'version': 'latest'})
    assert response.status_code == 400
    assert response.get_json()['error'] == 'version must be an integer'


def test_calculate_returns_ranking(client, scope):
    client.post('/scores/cohort/import', query_string=scope, json={'csv': SHEET})

    response = client.post(
        '/scores/cohort/calculate',
        query_string=scope,
        json={'version': 2, 'submitted_by': 'Mrs. Adeyemi'}
    )
    data = response.get_json()

    assert response.status_code == 200
    assert data['submitted_by'] == 'Mrs. Adeyemi'
    assert [row['student_id'] for row in data['ranking']] == ['GRA002', 'GRA001', 'GRA003']
    assert data['statistics']['average'] == 86.0


def test_import_json_body(client, scope):
    response = client.post('/scores/cohort/import', query_string=scope, json={'csv': SHEET})
    data = response.get_json()

    assert response.status_code == 200
    assert data['success'] is True
    assert data['updated'] == ['GRA001', 'GRA002', 'GRA003']
    assert data['matched_count'] == data['rows_read'] == 3
    assert data['statistics']['pass_rate'] == 100.0


def test_import_file_upload_reports_unmatched_rows(client, scope):
    payload = (SHEET + 'Zed Unknown,1,1,1\n').encode('utf-8-sig')
    response = client.post(
        '/scores/cohort/import',
        query_string=scope,
        data={'csv_file': (io.BytesIO(payload), 'scores.csv')},
        content_type='multipart/form-data'
    )
    data = response.get_json()

    assert response.status_code == 200
    assert data['matched_count'] == 3
    assert data['rows_read'] == 4
    assert data['skipped_count'] == 1
    assert data['warnings'] == ["Row 5: no student matching 'Zed Unknown' in roster"]


def test_import_rejects_non_csv_upload(client, scope):
    response = client.post(
        '/scores/cohort/import',
        query_string=scope,
        data={'csv_file': (io.BytesIO(b'data'), 'scores.xlsx')},
        content_type='multipart/form-data'
    )
    assert response.status_code == 400
    assert response.get_json()['error'] == 'Please upload a CSV file.'


def test_import_with_bad_header_fails_fast(client, scope):
    response = client.post('/scores/cohort/import', query_string=scope, json={'csv': 'name,score\nAlice,3\n'})
    assert response.status_code == 400
    assert 'Missing required columns' in response.get_json()['error']


def test_import_rejects_csv_that_is_not_text(client, scope):
    response = client.post('/scores/cohort/import', query_string=scope, json={'csv': 123})
    assert response.status_code == 400
    assert response.get_json()['error'] == "'csv' must be the CSV text as a string."


def test_strict_import_rejects_whole_file(client, scope):
    bad = SHEET.replace('Carol White,16,16,48', 'Carol White,16,16,61')
    response = client.post('/scores/cohort/import', query_string=dict(scope, strict='1'), json={'csv': bad})
    data = response.get_json()

    assert response.status_code == 400
    assert data['success'] is False
    assert data['errors'] == ['Row 4: Carol White: Exam must be between 0 and 60']
    assert all(entry['total'] is None for entry in data['entries'])


def test_export_is_csv(client, scope):
    client.post('/scores/cohort/import', query_string=scope, json={'csv': SHEET})

    response = client.get('/scores/cohort/export', query_string=scope)
    assert response.status_code == 200
    assert response.headers['Content-Type'].startswith('text/csv')
    assert 'MTH_JSS1A_scores.csv' in response.headers['Content-Disposition']
    assert response.get_data(as_text=True) == SHEET


def test_statistics_endpoint(client, scope):
    client.post('/scores/cohort/import', query_string=scope, json={'csv': SHEET})

    stats = client.get('/scores/cohort/statistics', query_string=scope).get_json()['statistics']
    assert (stats['highest'], stats['lowest']) == (91, 80)


def test_template_download(client, roster):
    response = client.get('/scores/template', query_string={'class': CLASS_NAME, 'layout': 'id'})
    lines = response.get_data(as_text=True).splitlines()

    assert response.status_code == 200
    assert lines[0] == 'student_id,student_name,test1,test2,exam'
    assert lines[1] == 'GRA001,Alice Johnson,,,'


def test_class_results(client, scope):
    client.post('/scores/cohort/import', query_string=scope, json={'csv': SHEET})

    response = client.get('/results/class', query_string={'class': CLASS_NAME, 'session': SESSION, 'term': TERM})
    data = response.get_json()

    assert response.status_code == 200
    assert [subject['code'] for subject in data['subjects']] == ['MTH']
    bob = next(row for row in data['results'] if row['student_id'] == 'GRA002')
    assert bob['position'] == 1
    assert bob['grade'] == 'A'

    summary = data['summary']
    assert summary['class_average'] == 86.0
    assert summary['subject_averages'] == {'MTH': 86.0}
    assert summary['grade_distribution']['A'] == 3


def test_class_results_for_a_class_without_scores(client, roster):
    data = client.get('/results/class', query_string={'class': CLASS_NAME, 'session': SESSION, 'term': TERM}).get_json()

    assert data['results'][0]['position'] is None
    assert data['summary']['class_average'] == 0
    assert data['summary']['subject_averages'] == {}


def test_class_results_requires_class(client):
    assert client.get('/results/class').status_code == 400


def test_unknown_route_is_json_404(client):
    response = client.get('/nowhere')
    assert response.status_code == 404
    assert response.get_json() == {'success': False, 'error': 'Not found'}
