"""
公共测试夹具：连接内存MongoDB的应用，以及各角色的账户
"""
import itertools
import mongomock
import pytest
from therapy_api import create_app
from therapy_api.models.user import User, Role
from therapy_api.models.profiles import Patient, Doctor
from therapy_api.utils.jwt_utils import generate_token
from therapy_api.utils.mongo_utils import mongo

PASSWORD = 'Secret123!'


@pytest.fixture
def app(tmp_path, monkeypatch):
    app = create_app('testing')
    app.config['UPLOAD_FOLDER'] = str(tmp_path / 'uploads')

    client = mongomock.MongoClient()
    monkeypatch.setattr(mongo, 'cx', client)
    monkeypatch.setattr(mongo, 'db', client['therapy_test'])
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db(app):
    return mongo.db


@pytest.fixture
def make_account(app):
    """
    插入用户（及其角色资料）并为其签发令牌

    返回:
        dict: 包含 ``id``、``email``、``role``、``token``、``headers``，
        患者另有 ``patient_id``（患者记录ID）
    """
    counter = itertools.count(1)

    def _make(role, therapist=None, full_name=None):
        n = next(counter)
        email = f'{role.value}{n}@example.com'
        with app.app_context():
            user_doc = User.build(email, PASSWORD, role, full_name or f'{role.value.title()} {n}')
            user_id = str(User.insert(user_doc))
            account = {'id': user_id, 'email': email, 'role': role}

            if role is Role.PATIENT:
                patient_doc = Patient.build(user_id)
                if therapist is not None:
                    patient_doc['therapist_id'] = therapist['id']
                account['patient_id'] = str(Patient.insert(patient_doc))
            elif role is Role.DOCTOR:
                Doctor.insert(Doctor.build(user_id, {'specialization': 'CBT'}))

            account['token'] = generate_token(user_id, role)

        account['headers'] = {'Authorization': f"Bearer {account['token']}"}
        return account

    return _make


@pytest.fixture
def doctor(make_account):
    return make_account(Role.DOCTOR, full_name='Dr. Primary')


@pytest.fixture
def other_doctor(make_account):
    return make_account(Role.DOCTOR, full_name='Dr. Second')


@pytest.fixture
def patient(make_account, doctor):
    return make_account(Role.PATIENT, therapist=doctor, full_name='Pat Client')


@pytest.fixture
def admin(make_account):
    return make_account(Role.ADMIN)
