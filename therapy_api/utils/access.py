"""
角色权限模块，定义各角色可以执行的操作

每条策略都显式列出所有角色，新增角色时必须为每个操作确定其权限（导入时检查）。
"""
import enum
from functools import wraps
from ..models.user import Role
from .errors import Forbidden
from .jwt_utils import jwt_required, current_principal


class Operation(enum.Enum):
    VIEW_ACCOUNT = 'view_account'
    ASSIGN_THERAPIST = 'assign_therapist'
    MANAGE_HISTORY = 'manage_history'
    CREATE_NOTE = 'create_note'
    READ_NOTES = 'read_notes'
    CREATE_METRIC = 'create_metric'
    UPDATE_METRIC = 'update_metric'
    READ_PROGRESS = 'read_progress'
    READ_PATIENT_PROGRESS = 'read_patient_progress'
    READ_OWN_PROGRESS = 'read_own_progress'
    MANAGE_QUESTIONS = 'manage_questions'
    READ_ASSIGNED_QUESTIONS = 'read_assigned_questions'
    SUBMIT_ANSWER = 'submit_answer'
    READ_ANSWER_HISTORY = 'read_answer_history'
    READ_QUESTION_ANSWERS = 'read_question_answers'
    MANAGE_RESOURCES = 'manage_resources'
    READ_RESOURCES = 'read_resources'
    MANAGE_PAYMENTS = 'manage_payments'
    READ_PAYMENTS = 'read_payments'
    MANAGE_SESSIONS = 'manage_sessions'
    SHARE_PROFILE = 'share_profile'
    VIEW_SHARED_PROFILE = 'view_shared_profile'
    REQUEST_SUGGESTIONS = 'request_suggestions'


POLICIES = {
    Operation.VIEW_ACCOUNT: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: True},
    Operation.ASSIGN_THERAPIST: {Role.DOCTOR: False, Role.PATIENT: True, Role.ADMIN: False},
    Operation.MANAGE_HISTORY: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.CREATE_NOTE: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.READ_NOTES: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: True},
    Operation.CREATE_METRIC: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.UPDATE_METRIC: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.READ_PROGRESS: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: False},
    Operation.READ_PATIENT_PROGRESS: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.READ_OWN_PROGRESS: {Role.DOCTOR: False, Role.PATIENT: True, Role.ADMIN: False},
    Operation.MANAGE_QUESTIONS: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.READ_ASSIGNED_QUESTIONS: {Role.DOCTOR: False, Role.PATIENT: True, Role.ADMIN: False},
    Operation.SUBMIT_ANSWER: {Role.DOCTOR: False, Role.PATIENT: True, Role.ADMIN: False},
    Operation.READ_ANSWER_HISTORY: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: False},
    Operation.READ_QUESTION_ANSWERS: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.MANAGE_RESOURCES: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: True},
    Operation.READ_RESOURCES: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: True},
    Operation.MANAGE_PAYMENTS: {Role.DOCTOR: False, Role.PATIENT: False, Role.ADMIN: True},
    Operation.READ_PAYMENTS: {Role.DOCTOR: True, Role.PATIENT: True, Role.ADMIN: True},
    Operation.MANAGE_SESSIONS: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.SHARE_PROFILE: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.VIEW_SHARED_PROFILE: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
    Operation.REQUEST_SUGGESTIONS: {Role.DOCTOR: True, Role.PATIENT: False, Role.ADMIN: False},
}


def _check_policies():
    for operation in Operation:
        table = POLICIES.get(operation)
        if table is None:
            raise RuntimeError(f"No access policy for {operation.value}")
        missing = set(Role) - set(table)
        if missing:
            names = ', '.join(sorted(role.value for role in missing))
            raise RuntimeError(f"Access policy {operation.value} does not cover: {names}")


_check_policies()


def has_role(principal, *roles):
    return principal is not None and principal.role in roles


def is_doctor(principal):
    return has_role(principal, Role.DOCTOR)


def is_patient(principal):
    return has_role(principal, Role.PATIENT)


def is_allowed(principal, operation):
    if principal is None:
        return False
    return POLICIES[operation][principal.role]


def allowed_roles(operation):
    return [role.value for role, allowed in POLICIES[operation].items() if allowed]


def permission_required(operation):
    """
    路由装饰器：先验证身份，再检查操作的角色策略

    先校验令牌，没有凭证的请求在角色检查之前即以未认证拒绝。

    参数:
        operation (Operation): 需要检查的操作
    """
    def decorator(f):
        @wraps(f)
        @jwt_required
        def decorated_function(*args, **kwargs):
            if not is_allowed(current_principal(), operation):
                roles = ' or '.join(allowed_roles(operation))
                raise Forbidden(f'Access denied. Only {roles} users can perform this action.')
            return f(*args, **kwargs)
        return decorated_function
    return decorator
