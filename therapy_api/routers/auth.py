from flask import Blueprint, jsonify, current_app
from pymongo.errors import DuplicateKeyError
from ..models.user import User, Role
from ..models.profiles import Patient, Doctor
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, Conflict, InvalidCredential, NotFound, get_json_body
from ..utils.jwt_utils import generate_token, current_principal
from ..utils.log_utils import log_security, log_user
from ..utils.mongo_utils import mongo_transaction, id_str, format_mongo_doc
from ..utils.validators import validate_registration

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')

def _build_profile(role, user_id, data):
    if role is Role.PATIENT:
        return Patient, Patient.build(user_id, data)
    return Doctor, Doctor.build(user_id, data)

def register_user(data):
    """
    将用户及其角色资料作为一个整体写入

    启用事务时两次插入一起提交；未启用事务时，资料写入失败会删除已创建的用户，
    不会留下没有资料的用户。

    参数:
        data (dict): 注册请求数据

    返回:
        dict: 创建的用户文档
    """
    values, error = validate_registration(data)
    if error:
        raise ValidationError(error)

    if User.find_by_email(values['email']):
        raise Conflict('User already exists')

    user_doc = User.build(values['email'], values['password'], values['role'], values['full_name'])

    try:
        with mongo_transaction() as session:
            user_id = User.insert(user_doc, session=session)
            profile_model, profile_doc = _build_profile(values['role'], user_id, data)
            try:
                profile_model.insert(profile_doc, session=session)
            except Exception:
                if session is None:
                    User.collection().delete_one({'_id': user_id})
                raise
    except DuplicateKeyError:
        raise Conflict('User already exists')

    user_doc['_id'] = user_id
    return user_doc

# 用户注册
@auth_bp.route('/register', methods=['POST'])
def register():
    data = get_json_body()
    user_doc = register_user(data)

    log_user(f"New {user_doc['role']} registered: {user_doc['email']}",
             details={'role': user_doc['role']}, user_id=id_str(user_doc['_id']))

    return jsonify({
        'success': True,
        'message': 'Registration successful',
        'data': {
            'user': User.to_dict(user_doc)
        }
    }), 201

# 用户登录
@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    email = data.get('email')
    password = data.get('password')

    if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
        raise ValidationError('Email and password are required')

    user = User.find_by_email(email)
    if not User.verify_password(user, password):
        log_security('Failed login attempt', details={'email': email})
        # 邮箱不存在与密码错误返回相同的结果
        raise InvalidCredential('Invalid credentials')

    user_id = id_str(user['_id'])
    token = generate_token(user_id, user['role'])
    log_security('User logged in', user_id=user_id)
    current_app.logger.info(f"User {user_id} logged in")

    return jsonify({
        'success': True,
        'message': 'Login successful',
        'data': {
            'token': token,
            'expires_in': current_app.config['JWT_EXPIRATION_DELTA'],
            'user': User.to_dict(user)
        }
    })

# 获取当前用户信息
@auth_bp.route('/me', methods=['GET'])
@permission_required(Operation.VIEW_ACCOUNT)
def me():
    principal = current_principal()
    user = User.get(principal.id)
    if not user:
        raise NotFound('User not found')

    data = {'user': User.to_dict(user)}
    if principal.is_patient:
        patient = Patient.find_by_user(principal.id)
        data['patient'] = Patient.to_dict(patient) if patient else None
    elif principal.is_doctor:
        doctor = Doctor.find_by_user(principal.id)
        data['doctor'] = format_mongo_doc(doctor) if doctor else None

    return jsonify({'success': True, 'data': data})
