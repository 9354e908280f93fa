from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import wraps
from flask import request, current_app, g
import jwt
from ..models.user import Role
from .errors import Unauthenticated, InvalidCredential


@dataclass(frozen=True)
class Principal:
    id: str
    role: Role

    @property
    def is_doctor(self):
        return self.role is Role.DOCTOR

    @property
    def is_patient(self):
        return self.role is Role.PATIENT

    @property
    def is_admin(self):
        return self.role is Role.ADMIN


def generate_token(user_id, role, expires_in=None):
    """
    为用户签发访问令牌

    参数:
        user_id (str): 用户ID（存入 ``sub`` 声明）
        role (Role): 角色或角色字符串
        expires_in (int): 有效期（秒），默认为 JWT_EXPIRATION_DELTA

    返回:
        str: 编码后的JWT字符串
    """
    if expires_in is None:
        expires_in = current_app.config['JWT_EXPIRATION_DELTA']
    role_value = role.value if isinstance(role, Role) else role
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'role': role_value,
        'iat': now,
        'exp': now + timedelta(seconds=expires_in)
    }
    return jwt.encode(
        payload,
        current_app.config['JWT_SECRET_KEY'],
        algorithm=current_app.config.get('JWT_ALGORITHM', 'HS256')
    )


def extract_bearer_token(auth_header):
    """从 ``Authorization`` 请求头中取出令牌，没有则返回None"""
    if not auth_header or not auth_header.startswith('Bearer '):
        return None
    token = auth_header[len('Bearer '):].strip()
    return token or None


def decode_token(token):
    """
    校验令牌并构建其携带的 Principal

    签名错误、令牌过期或声明中缺少有效的用户ID/角色时抛出 InvalidCredential。
    """
    try:
        payload = jwt.decode(
            token,
            current_app.config['JWT_SECRET_KEY'],
            algorithms=[current_app.config.get('JWT_ALGORITHM', 'HS256')]
        )
    except jwt.ExpiredSignatureError:
        raise InvalidCredential('Token has expired')
    except jwt.InvalidTokenError as e:
        current_app.logger.info(f"Rejected token: {str(e)}")
        raise InvalidCredential()

    user_id = payload.get('sub')
    role = Role.parse(payload.get('role'))
    if not user_id or role is None:
        raise InvalidCredential()
    return Principal(id=str(user_id), role=role)


def verify_request_token():
    """认证当前请求，并将 principal 挂到 ``g`` 上"""
    token = extract_bearer_token(request.headers.get('Authorization'))
    if token is None:
        raise Unauthenticated()
    principal = decode_token(token)
    g.principal = principal
    return principal


def current_principal():
    return g.get('principal')


def jwt_required(fn):
    """
    路由装饰器：请求未携带有效令牌时拒绝访问
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_request_token()
        return fn(*args, **kwargs)
    return wrapper
