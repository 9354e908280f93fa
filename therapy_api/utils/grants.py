"""
共享授权操作：谁可以共享患者档案、谁可以查看，以及每次查看留下的访问日志
"""
from ..models.user import User, Role
from ..models.sharing import SharingGrant, PermissionLevel, GrantState, DuplicateGrant
from .errors import ValidationError, Forbidden, NotFound, Conflict
from .log_utils import log_access
from .mongo_utils import id_str
from .ownership import load_patient_or_404, is_primary_doctor_of


def can_share(patient_doc, doctor_id):
    """主治医生，或持有有效 full 授权的医生"""
    if is_primary_doctor_of(patient_doc, doctor_id):
        return True
    return SharingGrant.has_active_level(patient_doc['_id'], doctor_id, PermissionLevel.FULL)


def create_grant(patient_id, sharing_doctor_id, target_doctor_id, permission_level):
    """
    与其他医生共享患者档案

    返回:
        dict: 新的授权文档，访问日志中包含 ``shared_profile`` 记录
    """
    level = PermissionLevel.parse(permission_level)
    if level is None:
        levels = ', '.join(p.value for p in PermissionLevel)
        raise ValidationError(f'permission_level must be one of: {levels}')
    if not target_doctor_id:
        raise ValidationError('shared_with_doctor_id is required')

    patient = load_patient_or_404(patient_id)
    if not can_share(patient, sharing_doctor_id):
        raise Forbidden('You do not have permission to share this patient profile.')

    target_id = id_str(target_doctor_id)
    if target_id == id_str(sharing_doctor_id):
        raise ValidationError('Cannot share a patient profile with yourself')
    if not User.has_role(User.get(target_id), Role.DOCTOR):
        raise NotFound('Doctor not found')

    if SharingGrant.find_active(patient['_id'], target_id):
        raise Conflict('This patient profile is already shared with that doctor')

    try:
        grant = SharingGrant.insert(patient['_id'], sharing_doctor_id, target_id, level)
    except DuplicateGrant:
        raise Conflict('This patient profile is already shared with that doctor')
    log_access('Patient profile shared', details={
        'patient_id': id_str(patient['_id']),
        'shared_with_doctor_id': target_id,
        'permission_level': level.value
    }, user_id=id_str(sharing_doctor_id))
    return grant


def check_and_log_access(patient_id, requesting_doctor_id):
    """
    校验医生对共享档案的查看权限并记录访问

    返回:
        PermissionLevel: 医生有效授权的权限级别

    异常:
        Forbidden: 医生没有有效授权
    """
    grant = SharingGrant.log_view(patient_id, requesting_doctor_id)
    if grant is None:
        raise Forbidden('Access denied. You do not have permission to view this profile.')
    return PermissionLevel(grant['permission_level'])


def revoke_grant(patient_id, target_doctor_id, revoking_doctor_id):
    """主治医生或发起共享的医生可以撤销有效授权"""
    if not target_doctor_id:
        raise ValidationError('shared_with_doctor_id is required')

    patient = load_patient_or_404(patient_id)
    grant = SharingGrant.find_active(patient['_id'], target_doctor_id)
    if not grant:
        raise NotFound('No active grant found for this doctor')

    if not (is_primary_doctor_of(patient, revoking_doctor_id)
            or grant.get('sharing_doctor_id') == id_str(revoking_doctor_id)):
        raise Forbidden('You do not have permission to revoke this grant.')

    revoked = SharingGrant.revoke(patient['_id'], target_doctor_id, revoking_doctor_id)
    if revoked is None:
        raise NotFound('No active grant found for this doctor')

    log_access('Patient profile access revoked', details={
        'patient_id': id_str(patient['_id']),
        'shared_with_doctor_id': id_str(target_doctor_id)
    }, user_id=id_str(revoking_doctor_id))
    return revoked


def list_grants(patient_id, state=None):
    return SharingGrant.find_for_patient(patient_id, state)


def parse_grant_state(value):
    if value is None:
        return None
    try:
        return GrantState(value)
    except ValueError:
        raise ValidationError('state must be active or revoked')
