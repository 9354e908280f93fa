import pytest
from therapy_api.models.user import Role
from therapy_api.utils.errors import Forbidden, Conflict
from therapy_api.utils.grants import create_grant, check_and_log_access, revoke_grant
from therapy_api.models.sharing import SharingGrant, PermissionLevel, DuplicateGrant
from therapy_api.utils.mongo_utils import create_indexes


def share(client, owner, patient, target, level='read-only'):
    return client.post(f"/api/share/patients/share/{patient['patient_id']}", headers=owner['headers'],
                       json={'shared_with_doctor_id': target['id'], 'permission_level': level})


def view(client, viewer, patient):
    return client.get(f"/api/share/patients/{patient['patient_id']}", headers=viewer['headers'])


class TestGrantStore:

    def test_grant_then_view_appends_two_log_entries(self, app, db, doctor, other_doctor, patient):
        with app.app_context():
            grant = create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'read-only')
            assert len(grant['access_logs']) == 1

            level = check_and_log_access(patient['patient_id'], other_doctor['id'])

        assert level is PermissionLevel.READ_ONLY
        stored = db.patient_profile_access.find_one({'_id': grant['_id']})
        assert [entry['action'] for entry in stored['access_logs']] == ['shared_profile', 'viewed_profile']
        assert stored['access_logs'][1]['who'] == other_doctor['id']

    def test_view_without_grant_is_forbidden(self, app, other_doctor, patient):
        with app.app_context():
            with pytest.raises(Forbidden):
                check_and_log_access(patient['patient_id'], other_doctor['id'])

    def test_second_active_grant_conflicts(self, app, doctor, other_doctor, patient):
        with app.app_context():
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'read-only')
            with pytest.raises(Conflict):
                create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'full')

    def test_non_primary_doctor_cannot_share(self, app, make_account, other_doctor, patient):
        third = make_account(Role.DOCTOR)
        with app.app_context():
            with pytest.raises(Forbidden):
                create_grant(patient['patient_id'], other_doctor['id'], third['id'], 'read-only')

    def test_revoked_grant_no_longer_authorizes(self, app, db, doctor, other_doctor, patient):
        with app.app_context():
            grant = create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'contribute')
            revoke_grant(patient['patient_id'], other_doctor['id'], doctor['id'])
            with pytest.raises(Forbidden):
                check_and_log_access(patient['patient_id'], other_doctor['id'])

        stored = db.patient_profile_access.find_one({'_id': grant['_id']})
        assert stored['state'] == 'revoked'
        assert stored['revoked_at'] is not None
        assert stored['access_logs'][-1]['action'] == 'revoked_access'

    def test_regrant_after_revoke_is_allowed(self, app, db, doctor, other_doctor, patient):
        with app.app_context():
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'read-only')
            revoke_grant(patient['patient_id'], other_doctor['id'], doctor['id'])
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'full')
            assert check_and_log_access(patient['patient_id'], other_doctor['id']) is PermissionLevel.FULL
        assert db.patient_profile_access.count_documents({}) == 2


class TestActiveGrantIndex:

    @pytest.fixture
    def indexed(self, app, db):
        with app.app_context():
            create_indexes(db)
        return db

    def test_second_active_insert_is_rejected(self, app, indexed, doctor, other_doctor, patient):
        with app.app_context():
            SharingGrant.insert(patient['patient_id'], doctor['id'], other_doctor['id'], PermissionLevel.READ_ONLY)
            with pytest.raises(DuplicateGrant):
                SharingGrant.insert(patient['patient_id'], doctor['id'], other_doctor['id'], PermissionLevel.FULL)
        assert indexed.patient_profile_access.count_documents({'state': 'active'}) == 1

    def test_conflict_when_lookup_misses_existing_grant(self, app, indexed, monkeypatch,
                                                         doctor, other_doctor, patient):
        with app.app_context():
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'read-only')
            monkeypatch.setattr(SharingGrant, 'find_active', staticmethod(lambda *args, **kwargs: None))
            with pytest.raises(Conflict):
                create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'full')
        assert indexed.patient_profile_access.count_documents({'state': 'active'}) == 1

    def test_revoked_grants_do_not_block_regrant(self, app, indexed, doctor, other_doctor, patient):
        with app.app_context():
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'read-only')
            revoke_grant(patient['patient_id'], other_doctor['id'], doctor['id'])
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'full')
            revoke_grant(patient['patient_id'], other_doctor['id'], doctor['id'])
            create_grant(patient['patient_id'], doctor['id'], other_doctor['id'], 'contribute')
        assert indexed.patient_profile_access.count_documents({}) == 3
        assert indexed.patient_profile_access.count_documents({'state': 'active'}) == 1


class TestShareRoutes:

    def test_share_and_view(self, client, doctor, other_doctor, patient):
        resp = share(client, doctor, patient, other_doctor)
        assert resp.status_code == 201
        assert resp.get_json()['data']['state'] == 'active'

        resp = view(client, other_doctor, patient)
        assert resp.status_code == 200
        body = resp.get_json()
        assert body['message'] == 'Access granted.'
        assert body['permissionLevel'] == 'read-only'
        assert body['profile']['_id'] == patient['patient_id']

    def test_duplicate_share_returns_409(self, client, doctor, other_doctor, patient):
        assert share(client, doctor, patient, other_doctor).status_code == 201
        resp = share(client, doctor, patient, other_doctor)
        assert resp.status_code == 409
        assert resp.get_json()['error'] == 'conflict'

    def test_body_must_be_an_object(self, client, db, doctor, other_doctor, patient):
        resp = client.post(f"/api/share/patients/share/{patient['patient_id']}", headers=doctor['headers'],
                           json=[other_doctor['id'], 'full'])
        assert resp.status_code == 400
        assert resp.get_json()['message'] == 'Request body must be a JSON object'
        assert db.patient_profile_access.count_documents({}) == 0

    def test_invalid_permission_level(self, client, doctor, other_doctor, patient):
        resp = share(client, doctor, patient, other_doctor, level='owner')
        assert resp.status_code == 400

    def test_target_must_be_a_doctor(self, client, doctor, make_account, patient):
        someone = make_account(Role.PATIENT)
        resp = share(client, doctor, patient, someone)
        assert resp.status_code == 404
        assert resp.get_json()['message'] == 'Doctor not found'

    def test_unknown_patient(self, client, doctor, other_doctor):
        resp = client.post('/api/share/patients/share/64b000000000000000000000', headers=doctor['headers'],
                           json={'shared_with_doctor_id': other_doctor['id'], 'permission_level': 'full'})
        assert resp.status_code == 404

    def test_full_grant_holder_can_reshare(self, client, make_account, doctor, other_doctor, patient):
        third = make_account(Role.DOCTOR)
        assert share(client, doctor, patient, other_doctor, level='full').status_code == 201
        assert share(client, other_doctor, patient, third).status_code == 201
        assert view(client, third, patient).status_code == 200

    def test_read_only_holder_cannot_reshare(self, client, make_account, doctor, other_doctor, patient):
        third = make_account(Role.DOCTOR)
        assert share(client, doctor, patient, other_doctor).status_code == 201
        resp = share(client, other_doctor, patient, third)
        assert resp.status_code == 403
        assert resp.get_json()['message'] == 'You do not have permission to share this patient profile.'

    def test_revoke_route(self, client, doctor, other_doctor, patient):
        share(client, doctor, patient, other_doctor)
        resp = client.post(f"/api/share/patients/{patient['patient_id']}/revoke", headers=doctor['headers'],
                           json={'shared_with_doctor_id': other_doctor['id']})
        assert resp.status_code == 200
        assert resp.get_json()['data']['state'] == 'revoked'
        assert view(client, other_doctor, patient).status_code == 403

    def test_unrelated_doctor_cannot_revoke(self, client, make_account, doctor, other_doctor, patient):
        third = make_account(Role.DOCTOR)
        share(client, doctor, patient, other_doctor)
        resp = client.post(f"/api/share/patients/{patient['patient_id']}/revoke", headers=third['headers'],
                           json={'shared_with_doctor_id': other_doctor['id']})
        assert resp.status_code == 403

    def test_revoke_without_active_grant(self, client, doctor, other_doctor, patient):
        resp = client.post(f"/api/share/patients/{patient['patient_id']}/revoke", headers=doctor['headers'],
                           json={'shared_with_doctor_id': other_doctor['id']})
        assert resp.status_code == 404

    def test_grants_listing_is_primary_only(self, client, doctor, other_doctor, patient):
        share(client, doctor, patient, other_doctor)
        view(client, other_doctor, patient)

        resp = client.get(f"/api/share/patients/{patient['patient_id']}/grants", headers=doctor['headers'])
        assert resp.status_code == 200
        grants = resp.get_json()['data']
        assert len(grants) == 1
        assert len(grants[0]['access_logs']) == 2

        resp = client.get(f"/api/share/patients/{patient['patient_id']}/grants", headers=other_doctor['headers'])
        assert resp.status_code == 403
