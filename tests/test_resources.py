import io
import pytest


def upload_link(client, author, title='Breathing exercises'):
    return client.post('/api/resource/upload', headers=author['headers'],
                       json={'title': title, 'external_url': 'https://example.org/breathing'})


class TestUpload:

    def test_external_link(self, client, doctor):
        resp = upload_link(client, doctor)
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['file_type'] == 'url'
        assert data['file_url'] == 'https://example.org/breathing'
        assert data['is_global'] is False

    def test_file_upload_and_download(self, client, doctor):
        resp = client.post('/api/resource/upload', headers=doctor['headers'],
                           content_type='multipart/form-data',
                           data={
                               'title': 'Sleep hygiene',
                               'is_global': 'true',
                               'file': (io.BytesIO(b'%PDF-1.4 sleep tips'), 'sleep tips.pdf', 'application/pdf')
                           })
        assert resp.status_code == 201
        data = resp.get_json()['data']
        assert data['file_type'] == 'pdf'
        assert data['is_global'] is True
        assert data['file_url'].startswith('/api/resource/files/')
        assert data['file_url'].endswith('sleep_tips.pdf')

        download = client.get(data['file_url'], headers=doctor['headers'])
        assert download.status_code == 200
        assert download.data == b'%PDF-1.4 sleep tips'

    def test_unsupported_file_type(self, client, doctor):
        resp = client.post('/api/resource/upload', headers=doctor['headers'],
                           content_type='multipart/form-data',
                           data={'title': 'Script', 'file': (io.BytesIO(b'echo'), 'run.sh', 'text/x-shellscript')})
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Unsupported file type'

    def test_nothing_to_store(self, client, doctor):
        resp = client.post('/api/resource/upload', headers=doctor['headers'], json={'title': 'Empty'})
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'No file or external URL provided'

    def test_title_required(self, client, doctor):
        resp = client.post('/api/resource/upload', headers=doctor['headers'],
                           json={'external_url': 'https://example.org'})
        assert resp.status_code == 400

    @pytest.mark.parametrize('payload, message', [
        ({'title': ['Breathing'], 'external_url': 'https://example.org'}, 'Title is required'),
        ({'title': 'Breathing', 'external_url': ['https://example.org']}, 'external_url must be a string'),
    ])
    def test_non_string_fields_are_rejected(self, client, db, doctor, payload, message):
        resp = client.post('/api/resource/upload', headers=doctor['headers'], json=payload)
        assert resp.status_code == 400
        assert resp.get_json()['message'] == message
        assert db.resources.count_documents({}) == 0

    def test_body_must_be_an_object(self, client, doctor):
        resp = client.post('/api/resource/upload', headers=doctor['headers'], json=['Breathing'])
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Request body must be a JSON object'

    def test_patient_cannot_upload(self, client, patient):
        assert upload_link(client, patient).status_code == 403


class TestAssignment:

    def test_assign_and_list(self, client, doctor, patient):
        first = upload_link(client, doctor, 'First').get_json()['data']
        second = upload_link(client, doctor, 'Second').get_json()['data']
        for resource in (first, second):
            resp = client.post('/api/resource/assign', headers=doctor['headers'],
                               json={'patient_id': patient['patient_id'], 'resource_id': resource['_id']})
            assert resp.status_code == 201

        data = client.get(f"/api/resource/{patient['patient_id']}", headers=patient['headers']).get_json()['data']
        assert {r['title'] for r in data} == {'First', 'Second'}

    def test_no_resources_is_an_empty_list(self, client, patient):
        resp = client.get(f"/api/resource/{patient['patient_id']}", headers=patient['headers'])
        assert resp.status_code == 200
        assert resp.get_json()['data'] == []

    def test_non_primary_doctor_cannot_assign(self, client, doctor, other_doctor, patient):
        resource = upload_link(client, doctor).get_json()['data']
        resp = client.post('/api/resource/assign', headers=other_doctor['headers'],
                           json={'patient_id': patient['patient_id'], 'resource_id': resource['_id']})
        assert resp.status_code == 403

    def test_admin_may_assign(self, client, admin, patient):
        resource = upload_link(client, admin).get_json()['data']
        resp = client.post('/api/resource/assign', headers=admin['headers'],
                           json={'patient_id': patient['patient_id'], 'resource_id': resource['_id']})
        assert resp.status_code == 201

    def test_unknown_resource(self, client, doctor, patient):
        resp = client.post('/api/resource/assign', headers=doctor['headers'],
                           json={'patient_id': patient['patient_id'], 'resource_id': '64b000000000000000000000'})
        assert resp.status_code == 404
