from flask import Blueprint, jsonify
from ..models.user import User, Role
from ..models.profiles import Patient
from ..models.history import PatientHistory
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc
from ..utils.ownership import require_primary_doctor
from ..utils.validators import is_blank

patient_bp = Blueprint('patient', __name__, url_prefix='/api/patient')

# 选择主治医生
@patient_bp.route('/assign-therapist', methods=['PATCH'])
@permission_required(Operation.ASSIGN_THERAPIST)
def assign_therapist():
    data = get_json_body()
    therapist_id = data.get('therapist_id')
    if is_blank(therapist_id):
        raise ValidationError('Therapist ID is required')

    doctor = User.get(therapist_id)
    if not User.has_role(doctor, Role.DOCTOR):
        raise NotFound('Doctor not found')

    principal = current_principal()
    patient = Patient.assign_therapist(principal.id, therapist_id)
    if not patient:
        raise NotFound('Patient profile not found')

    log_record('Primary doctor assigned', details={
        'patient_id': str(patient['_id']),
        'therapist_id': str(therapist_id)
    })

    return jsonify({
        'success': True,
        'message': 'Therapist assigned successfully',
        'data': Patient.to_dict(patient)
    })

# 获取患者病史
@patient_bp.route('/<patient_id>/history', methods=['GET'])
@permission_required(Operation.MANAGE_HISTORY)
def get_history(patient_id):
    require_primary_doctor(patient_id, current_principal())

    history = PatientHistory.get(patient_id)
    if not history:
        raise NotFound('No history found for this patient')

    return jsonify({
        'success': True,
        'data': format_mongo_doc(history)
    })

# 创建或覆盖患者病史
@patient_bp.route('/<patient_id>/history', methods=['POST'])
@permission_required(Operation.MANAGE_HISTORY)
def save_history(patient_id):
    data = get_json_body()
    history_text = data.get('history_text')
    if not isinstance(history_text, str) or is_blank(history_text):
        raise ValidationError('History text is required')

    require_primary_doctor(patient_id, current_principal())

    history = PatientHistory.save(patient_id, history_text)
    log_record('Patient history saved', details={'patient_id': patient_id})

    return jsonify({
        'success': True,
        'message': 'Patient history saved successfully',
        'data': format_mongo_doc(history)
    })
