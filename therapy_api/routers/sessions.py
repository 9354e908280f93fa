import calendar
from datetime import datetime, MINYEAR, MAXYEAR
from flask import Blueprint, request, jsonify
from ..models.sessions import TherapySession
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs
from ..utils.ownership import require_primary_doctor
from ..utils.validators import is_blank, parse_datetime

sessions_bp = Blueprint('sessions', __name__, url_prefix='/api/sessions')

def month_range(month, year):
    """返回某月的第一个和最后一个时刻"""
    last_day = calendar.monthrange(year, month)[1]
    return (datetime(year, month, 1),
            datetime(year, month, last_day, 23, 59, 59, 999999))

def _timeline_range(args):
    month = args.get('month', type=int)
    year = args.get('year', type=int)
    if month and year:
        if not 1 <= month <= 12:
            raise ValidationError('month must be between 1 and 12')
        if not MINYEAR <= year <= MAXYEAR:
            raise ValidationError(f'year must be between {MINYEAR} and {MAXYEAR}')
        return month_range(month, year)

    if args.get('start_date') and args.get('end_date'):
        start = parse_datetime(args['start_date'])
        end = parse_datetime(args['end_date'])
        if start is None or end is None:
            raise ValidationError('start_date and end_date must be valid dates')
        return start, end

    return None

# 安排会话
@sessions_bp.route('/create', methods=['POST'])
@permission_required(Operation.MANAGE_SESSIONS)
def create_session():
    data = get_json_body()
    patient_id = data.get('patient_id')
    session_date = data.get('session_date')
    session_type = data.get('type')

    if not patient_id or not session_date or not session_type:
        raise ValidationError('All fields are required')
    if not isinstance(session_type, str) or is_blank(session_type):
        raise ValidationError('Session type cannot be empty')

    parsed_date = parse_datetime(session_date)
    if parsed_date is None:
        raise ValidationError('session_date must be a valid date')

    principal = current_principal()
    require_primary_doctor(str(patient_id), principal)

    session = TherapySession.create(patient_id, principal.id, parsed_date, session_type)
    log_record('Therapy session scheduled', details={'session_id': str(session['_id'])})

    return jsonify({
        'success': True,
        'data': format_mongo_doc(session)
    }), 201

# 医生使用过的会话类型（去重）
@sessions_bp.route('/types', methods=['GET'])
@permission_required(Operation.MANAGE_SESSIONS)
def get_session_types():
    return jsonify({
        'success': True,
        'data': TherapySession.types_for_doctor(current_principal().id)
    })

# 按日期顺序获取患者的会话
@sessions_bp.route('/timeline', methods=['GET'])
@permission_required(Operation.MANAGE_SESSIONS)
def get_patient_timeline():
    patient_id = request.args.get('patient_id')
    if is_blank(patient_id):
        raise ValidationError('Patient ID is required.')

    require_primary_doctor(patient_id, current_principal())

    sessions = TherapySession.timeline(
        patient_id,
        date_range=_timeline_range(request.args),
        session_type=request.args.get('session_type')
    )

    return jsonify({
        'success': True,
        'data': format_mongo_docs(sessions)
    })
