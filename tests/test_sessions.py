from datetime import datetime
import pytest
from therapy_api.routers.sessions import month_range


def schedule(client, author, patient, session_date, session_type='Individual'):
    return client.post('/api/sessions/create', headers=author['headers'], json={
        'patient_id': patient['patient_id'], 'session_date': session_date, 'type': session_type})


def timeline(client, viewer, patient, query=''):
    return client.get(f"/api/sessions/timeline?patient_id={patient['patient_id']}{query}",
                      headers=viewer['headers'])


@pytest.mark.parametrize('month, year, last', [
    (2, 2024, datetime(2024, 2, 29, 23, 59, 59, 999999)),
    (2, 2023, datetime(2023, 2, 28, 23, 59, 59, 999999)),
    (12, 2024, datetime(2024, 12, 31, 23, 59, 59, 999999)),
])
def test_month_range(month, year, last):
    assert month_range(month, year) == (datetime(year, month, 1), last)


class TestSessions:

    def test_create_normalizes_type(self, client, doctor, patient):
        resp = schedule(client, doctor, patient, '2024-03-05T15:00:00', session_type='  Family ')
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['type'] == 'family'
        assert data['status'] == 'scheduled'

    @pytest.mark.parametrize('payload, message', [
        ({}, 'All fields are required'),
        ({'session_date': '2024-03-05', 'type': 'individual'}, 'All fields are required'),
        ({'patient_id': True, 'session_date': '2024-03-05', 'type': '   '}, 'Session type cannot be empty'),
    ])
    def test_invalid_session(self, client, doctor, patient, payload, message):
        if payload.get('patient_id'):
            payload['patient_id'] = patient['patient_id']
        resp = client.post('/api/sessions/create', headers=doctor['headers'], json=payload)
        assert resp.status_code == 400
        assert resp.get_json()['message'] == message

    def test_create_requires_primary_doctor(self, client, other_doctor, patient):
        assert schedule(client, other_doctor, patient, '2024-03-05').status_code == 403

    def test_types_are_distinct_per_doctor(self, client, doctor, other_doctor, patient):
        schedule(client, doctor, patient, '2024-03-05', 'individual')
        schedule(client, doctor, patient, '2024-03-12', 'Individual')
        schedule(client, doctor, patient, '2024-03-19', 'couples')

        assert client.get('/api/sessions/types', headers=doctor['headers']).get_json()['data'] == \
            ['couples', 'individual']
        assert client.get('/api/sessions/types', headers=other_doctor['headers']).get_json()['data'] == []

    def test_timeline_order_and_filters(self, client, doctor, patient):
        schedule(client, doctor, patient, '2024-03-20', 'couples')
        schedule(client, doctor, patient, '2024-03-01', 'individual')
        schedule(client, doctor, patient, '2024-04-02', 'individual')

        dates = [s['session_date'][:10] for s in timeline(client, doctor, patient).get_json()['data']]
        assert dates == ['2024-03-01', '2024-03-20', '2024-04-02']

        march = timeline(client, doctor, patient, '&month=3&year=2024').get_json()['data']
        assert len(march) == 2

        individual = timeline(client, doctor, patient, '&session_type=Individual').get_json()['data']
        assert [s['session_date'][:10] for s in individual] == ['2024-03-01', '2024-04-02']

        ranged = timeline(client, doctor, patient, '&start_date=2024-03-15&end_date=2024-04-30').get_json()['data']
        assert len(ranged) == 2

    def test_timeline_requires_patient(self, client, doctor):
        resp = client.get('/api/sessions/timeline', headers=doctor['headers'])
        assert resp.status_code == 400

    def test_timeline_invalid_month(self, client, doctor, patient):
        assert timeline(client, doctor, patient, '&month=13&year=2024').status_code == 400

    @pytest.mark.parametrize('year', [-5, 10000, 99999999])
    def test_timeline_year_out_of_range(self, client, doctor, patient, year):
        resp = timeline(client, doctor, patient, f'&month=3&year={year}')
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'year must be between 1 and 9999'

    def test_patient_cannot_schedule(self, client, patient):
        assert schedule(client, patient, patient, '2024-03-05').status_code == 403
