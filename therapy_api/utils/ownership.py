"""
用户与患者记录之间的归属检查

所有ID都以规范字符串形式比较。
"""
from ..models.profiles import Patient
from .errors import NotFound, Forbidden
from .mongo_utils import id_str


def is_primary_doctor_of(patient_doc, doctor_id):
    """仅当记录的主治医生为 ``doctor_id`` 时返回True"""
    if not patient_doc:
        return False
    therapist_id = id_str(patient_doc.get('therapist_id'))
    if not therapist_id or not doctor_id:
        return False
    return therapist_id == id_str(doctor_id)


def is_primary_doctor(patient_id, doctor_id):
    """加载患者记录并检查其主治医生"""
    return is_primary_doctor_of(Patient.get(patient_id), doctor_id)


def is_patient_self(patient_doc, user_id):
    if not patient_doc or not user_id:
        return False
    return id_str(patient_doc.get('user_id')) == id_str(user_id)


def load_patient_or_404(patient_id):
    patient = Patient.get(patient_id)
    if not patient:
        raise NotFound('Patient not found')
    return patient


def require_primary_doctor(patient_id, principal, message='Access denied'):
    """
    加载患者记录并确认当前用户是其主治医生

    返回:
        dict: 患者文档

    异常:
        NotFound: 患者不存在
        Forbidden: 当前用户不是主治医生
    """
    patient = load_patient_or_404(patient_id)
    if not is_primary_doctor_of(patient, principal.id):
        raise Forbidden(message)
    return patient


def can_read_patient_data(patient_doc, principal):
    """主治医生，或患者本人查看自己的数据"""
    if principal.is_doctor:
        return is_primary_doctor_of(patient_doc, principal.id)
    if principal.is_patient:
        return is_patient_self(patient_doc, principal.id)
    return False
