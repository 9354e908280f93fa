from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
import enum
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str


class Role(enum.Enum):
    DOCTOR = "doctor"
    PATIENT = "patient"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value):
        """将令牌或请求中的字符串解析为Role，无法识别时返回None"""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


# 允许自行注册的角色
REGISTRABLE_ROLES = (Role.DOCTOR, Role.PATIENT)


class User:
    """
    用户账户，存储在 ``users`` 集合中
    """

    @staticmethod
    def collection():
        return get_mongo_db().users

    @staticmethod
    def build(email, password, role, full_name):
        return {
            'email': email.lower(),
            'password_hash': generate_password_hash(password),
            'role': role.value,
            'full_name': full_name,
            'created_at': datetime.now()
        }

    @staticmethod
    def insert(user_doc, session=None):
        result = User.collection().insert_one(user_doc, session=session)
        return result.inserted_id

    @staticmethod
    def get(user_id):
        object_id = to_object_id(user_id)
        if object_id is None:
            return None
        return User.collection().find_one({'_id': object_id})

    @staticmethod
    def find_by_email(email):
        if not email:
            return None
        return User.collection().find_one({'email': email.lower()})

    @staticmethod
    def verify_password(user_doc, password):
        if not user_doc or not password:
            return False
        return check_password_hash(user_doc['password_hash'], password)

    @staticmethod
    def has_role(user_doc, role):
        return bool(user_doc) and user_doc.get('role') == role.value

    @staticmethod
    def to_dict(user_doc):
        return {
            'id': id_str(user_doc['_id']),
            'email': user_doc.get('email'),
            'role': user_doc.get('role'),
            'full_name': user_doc.get('full_name'),
            'created_at': user_doc['created_at'].isoformat() if user_doc.get('created_at') else None
        }
