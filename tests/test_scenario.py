"""
端到端场景测试：患者注册、选择治疗师、临床笔记，以及与第二位医生共享档案
"""


def register(client, email, role, full_name):
    resp = client.post('/api/auth/register', json={
        'email': email, 'password': 'pa55word', 'confirmPassword': 'pa55word',
        'role': role, 'full_name': full_name
    })
    assert resp.status_code == 201
    login = client.post('/api/auth/login', json={'email': email, 'password': 'pa55word'})
    data = login.get_json()['data']
    return data['user']['id'], {'Authorization': f"Bearer {data['token']}"}


def test_care_flow_with_shared_profile(client, db):
    primary_id, primary = register(client, 'primary@example.com', 'doctor', 'Dr. Primary')
    second_id, second = register(client, 'second@example.com', 'doctor', 'Dr. Second')
    _, patient = register(client, 'pat@example.com', 'patient', 'Pat Client')

    resp = client.patch('/api/patient/assign-therapist', headers=patient, json={'therapist_id': primary_id})
    patient_id = resp.get_json()['data']['_id']

    resp = client.post('/api/notes', headers=primary, json={'patient_id': patient_id, 'content': 'Intake done'})
    assert resp.status_code == 201

    resp = client.get(f'/api/patient/{patient_id}/history', headers=second)
    assert resp.status_code == 403

    resp = client.get(f'/api/share/patients/{patient_id}', headers=second)
    assert resp.status_code == 403

    resp = client.post(f'/api/share/patients/share/{patient_id}', headers=primary,
                       json={'shared_with_doctor_id': second_id, 'permission_level': 'read-only'})
    assert resp.status_code == 201

    resp = client.get(f'/api/share/patients/{patient_id}', headers=second)
    assert resp.status_code == 200
    assert resp.get_json()['permissionLevel'] == 'read-only'

    grant = db.patient_profile_access.find_one({'patient_id': patient_id})
    views = [entry for entry in grant['access_logs'] if entry['action'] == 'viewed_profile']
    assert len(views) == 1
    assert views[0]['who'] == second_id

    # 只读授权不会让第二位医生成为主治医生
    resp = client.post('/api/notes', headers=second, json={'patient_id': patient_id, 'content': 'Hello'})
    assert resp.status_code == 403
