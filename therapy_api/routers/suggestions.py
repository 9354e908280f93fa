import time
from datetime import datetime, timedelta
from flask import Blueprint, request, jsonify, current_app
from ..models.ai_log import AIInteractionLog, AI_MODEL_VERSION, generate_request_id
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, Forbidden, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_error
from ..utils.mongo_utils import id_str
from ..utils.ownership import load_patient_or_404, is_primary_doctor_of, require_primary_doctor
from ..utils.progress_analysis import (
    gather_patient_context, generate_placeholder_suggestions,
    data_quality_score, requires_human_review
)
from ..utils.validators import is_blank

suggestions_bp = Blueprint('suggestions', __name__, url_prefix='/api/suggestions')

MAX_HISTORY_PAGE = 100
MAX_ANALYTICS_DAYS = 3650

def _interaction_metadata():
    return {
        'user_agent': request.user_agent.string if request.user_agent else None,
        'ip_address': request.remote_addr,
        'source': 'web_dashboard',
        'interaction_type': 'manual_request'
    }

def _request_data(request_id, context, context_parameters):
    context_parameters = context_parameters if isinstance(context_parameters, dict) else {}
    return {
        'request_id': request_id,
        'metrics': context['recent_metrics'],
        'patient_history': context['patient_history'],
        'context_parameters': {
            'therapy_duration': context['therapy_duration'],
            'previous_sessions': context['previous_sessions'],
            'current_medications': context_parameters.get('current_medications', []),
            'therapy_goals': context_parameters.get('therapy_goals', []),
            'risk_factors': context_parameters.get('risk_factors', [])
        }
    }

# 为患者生成占位建议
@suggestions_bp.route('/ai', methods=['POST'])
@permission_required(Operation.REQUEST_SUGGESTIONS)
def generate_ai_suggestions():
    started = time.monotonic()
    data = get_json_body()
    patient_id = data.get('patient_id')
    if is_blank(patient_id):
        raise ValidationError('Patient ID is required')

    doctor_id = current_principal().id
    patient = load_patient_or_404(str(patient_id))
    if not is_primary_doctor_of(patient, doctor_id):
        raise Forbidden('Access denied. You are not assigned to this patient.')

    request_id = generate_request_id()
    session_id = data.get('session_id')
    try:
        context = gather_patient_context(patient)
        response = generate_placeholder_suggestions(context, data.get('analysis_type', 'comprehensive'))
    except Exception as e:
        AIInteractionLog.create(
            patient_id, doctor_id,
            request_data={'request_id': request_id},
            response_data={'processing_time_ms': int((time.monotonic() - started) * 1000),
                           'ai_model_version': AI_MODEL_VERSION},
            metadata=_interaction_metadata(),
            status='error',
            session_id=session_id,
            error_details={
                'error_code': 'PROCESSING_ERROR',
                'error_message': str(e)
            }
        )
        log_error('Suggestion generation failed', exception=e, details={'request_id': request_id})
        raise

    processing_time = int((time.monotonic() - started) * 1000)
    flags = {
        'ready_for_ai_analysis': True,
        'data_quality_score': data_quality_score(context),
        'requires_human_review': requires_human_review(response)
    }

    AIInteractionLog.create(
        patient_id, doctor_id,
        request_data=_request_data(request_id, context, data.get('context_parameters')),
        response_data={
            'suggestions': response['suggestions'],
            'analysis_summary': response['analysis_summary'],
            'processing_time_ms': processing_time,
            'ai_model_version': AI_MODEL_VERSION
        },
        metadata=_interaction_metadata(),
        ai_flags=flags,
        session_id=session_id
    )
    current_app.logger.info(f"Suggestion request {request_id} served in {processing_time} ms")

    return jsonify({
        'success': True,
        'request_id': request_id,
        'data': {
            'suggestions': response['suggestions'],
            'analysis_summary': response['analysis_summary'],
            'patient_context_summary': {
                'total_metrics': len(context['recent_metrics']),
                'therapy_duration_days': context['therapy_duration'],
                'last_session_date': context['last_session_date'],
                'risk_level': response['analysis_summary']['overall_risk_level']
            }
        },
        'metadata': {
            'processing_time_ms': processing_time,
            'timestamp': datetime.now().isoformat(),
            'requires_human_review': flags['requires_human_review'],
            'data_quality_score': flags['data_quality_score']
        }
    })

# 患者的建议历史
@suggestions_bp.route('/logs/<patient_id>', methods=['GET'])
@permission_required(Operation.REQUEST_SUGGESTIONS)
def get_ai_interaction_history(patient_id):
    doctor_id = current_principal().id
    require_primary_doctor(patient_id, current_principal())

    limit = min(max(request.args.get('limit', 10, type=int), 1), MAX_HISTORY_PAGE)
    offset = max(request.args.get('offset', 0, type=int), 0)
    logs, total = AIInteractionLog.history(patient_id, doctor_id, limit=limit, offset=offset)

    return jsonify({
        'success': True,
        'data': {
            'logs': [AIInteractionLog.to_client(log) for log in logs],
            'pagination': {
                'total': total,
                'limit': limit,
                'offset': offset,
                'has_more': offset + limit < total
            }
        }
    })

# 当前医生的建议使用统计
@suggestions_bp.route('/analytics', methods=['GET'])
@permission_required(Operation.REQUEST_SUGGESTIONS)
def get_ai_analytics():
    doctor_id = current_principal().id
    days = request.args.get('days', 30, type=int)
    if not 0 < days <= MAX_ANALYTICS_DAYS:
        raise ValidationError(f'days must be between 1 and {MAX_ANALYTICS_DAYS}')

    end_date = datetime.now()
    start_date = end_date - timedelta(days=days)

    return jsonify({
        'success': True,
        'data': {
            'total_interactions': AIInteractionLog.count_since(doctor_id, start_date),
            'period_days': days,
            'status_breakdown': AIInteractionLog.stats(id_str(doctor_id), start_date, end_date),
            'period_start': start_date.isoformat(),
            'period_end': end_date.isoformat()
        }
    })
