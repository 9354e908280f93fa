from flask import Blueprint, request, jsonify
from ..models.profiles import Patient
from ..utils.access import permission_required, Operation
from ..utils.errors import NotFound, get_json_body
from ..utils.grants import create_grant, check_and_log_access, revoke_grant, list_grants, parse_grant_state
from ..utils.jwt_utils import current_principal
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs
from ..utils.ownership import require_primary_doctor

share_bp = Blueprint('share', __name__, url_prefix='/api/share')

# 与其他医生共享患者档案
@share_bp.route('/patients/share/<patient_id>', methods=['POST'])
@permission_required(Operation.SHARE_PROFILE)
def share_patient_profile(patient_id):
    data = get_json_body()
    grant = create_grant(
        patient_id,
        current_principal().id,
        data.get('shared_with_doctor_id'),
        data.get('permission_level', 'read-only')
    )

    return jsonify({
        'success': True,
        'message': 'Patient profile shared successfully.',
        'data': format_mongo_doc(grant)
    }), 201

# 查看共享给当前医生的患者档案
@share_bp.route('/patients/<patient_id>', methods=['GET'])
@permission_required(Operation.VIEW_SHARED_PROFILE)
def get_shared_profile(patient_id):
    level = check_and_log_access(patient_id, current_principal().id)

    patient = Patient.get(patient_id)
    if not patient:
        raise NotFound('Patient profile not found.')

    return jsonify({
        'success': True,
        'message': 'Access granted.',
        'permissionLevel': level.value,
        'profile': Patient.to_dict(patient)
    })

# 撤销医生的访问权限
@share_bp.route('/patients/<patient_id>/revoke', methods=['POST'])
@permission_required(Operation.SHARE_PROFILE)
def revoke_patient_access(patient_id):
    data = get_json_body()
    grant = revoke_grant(patient_id, data.get('shared_with_doctor_id'), current_principal().id)

    return jsonify({
        'success': True,
        'message': 'Access revoked successfully.',
        'data': format_mongo_doc(grant)
    })

# 患者档案的授权及访问日志
@share_bp.route('/patients/<patient_id>/grants', methods=['GET'])
@permission_required(Operation.SHARE_PROFILE)
def get_patient_grants(patient_id):
    state = parse_grant_state(request.args.get('state'))
    require_primary_doctor(patient_id, current_principal())

    return jsonify({
        'success': True,
        'data': format_mongo_docs(list_grants(patient_id, state))
    })
