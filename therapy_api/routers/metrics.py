from datetime import datetime
from flask import Blueprint, request, jsonify
from ..models.metrics import ProgressMetric
from ..models.profiles import Patient
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Forbidden
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs, id_str
from ..utils.ownership import load_patient_or_404, is_primary_doctor_of, can_read_patient_data
from ..utils.progress_analysis import chart_data, detailed_report
from ..utils.validators import (
    validate_progress_metric, validate_metric_update, parse_datetime, parse_period, is_blank
)

metrics_bp = Blueprint('metrics', __name__, url_prefix='/api/progress-metrics')

def _create_one(item, doctor_id):
    """创建单条指标，返回 (文档, None) 或 (None, 错误信息)"""
    values, error = validate_progress_metric(item)
    if error:
        return None, error

    patient = Patient.get(values['patient_id'])
    if not patient:
        return None, 'Patient not found'
    if not is_primary_doctor_of(patient, doctor_id):
        return None, 'Access denied - Patient not assigned to this doctor'

    return ProgressMetric.create(values, doctor_id), None

def _date_filter(period, start_date, end_date):
    if start_date and end_date:
        start = parse_datetime(start_date)
        end = parse_datetime(end_date)
        if start is None or end is None:
            raise ValidationError('startDate and endDate must be valid dates')
        return {'$gte': start, '$lte': end}
    try:
        return {'$gte': parse_period(period)}
    except (ValueError, OverflowError):
        raise ValidationError('period is out of range')

def build_progress_report(patient_id, metric_type=None, period='30d', report_format='detailed',
                          start_date=None, end_date=None):
    """为当前用户有权查看的患者生成进度报告"""
    if is_blank(patient_id):
        raise ValidationError('Patient ID is required')

    patient = load_patient_or_404(patient_id)
    if not can_read_patient_data(patient, current_principal()):
        raise Forbidden('Access denied')

    date_filter = _date_filter(period, start_date, end_date)
    metrics = ProgressMetric.find_for_patient(patient_id, date_filter, metric_type)

    if not metrics:
        return jsonify({
            'success': True,
            'message': 'No progress data found for the specified criteria',
            'data': {
                'metrics': [],
                'summary': {},
                'chartData': []
            }
        })

    if report_format == 'chart':
        data = chart_data(metrics)
    else:
        data = detailed_report(metrics)

    return jsonify({
        'success': True,
        'data': data,
        'metadata': {
            'totalRecords': len(metrics),
            'dateRange': {
                'start': date_filter['$gte'],
                'end': date_filter.get('$lte') or datetime.now()
            },
            'patient': patient_id,
            'metricType': metric_type or 'all'
        }
    })

# 记录单条或批量指标
@metrics_bp.route('', methods=['POST'])
@permission_required(Operation.CREATE_METRIC)
def create_progress_metrics():
    payload = request.get_json(silent=True)
    is_batch = isinstance(payload, list)
    items = payload if is_batch else [payload]
    doctor_id = current_principal().id

    created = []
    errors = []
    for index, item in enumerate(items):
        metric, error = _create_one(item, doctor_id)
        if error:
            errors.append({'index': index, 'error': error})
        else:
            created.append(metric)

    if not created:
        raise ValidationError('No metrics were created', details=errors)

    log_record(f'{len(created)} progress metric(s) recorded',
               details={'metric_ids': [id_str(m['_id']) for m in created]})

    response = {
        'success': True,
        'message': f'{len(created)} metric(s) created successfully',
        'data': format_mongo_docs(created) if is_batch else format_mongo_doc(created[0])
    }
    if errors:
        response['warnings'] = errors

    return jsonify(response), 201

# 更新指标
@metrics_bp.route('/<metric_id>', methods=['PATCH'])
@permission_required(Operation.UPDATE_METRIC)
def update_progress_metric(metric_id):
    changes, error = validate_metric_update(request.get_json(silent=True))
    if error:
        raise ValidationError(error)

    metric = ProgressMetric.get(metric_id)
    if not metric:
        raise NotFound('Progress metric not found')

    if id_str(metric.get('doctor_id')) != current_principal().id:
        raise Forbidden('Access denied - You can only update metrics you created')

    updated = ProgressMetric.update(metric['_id'], changes)
    log_record('Progress metric updated', details={'metric_id': metric_id})

    return jsonify({
        'success': True,
        'message': 'Progress metric updated successfully',
        'data': format_mongo_doc(updated)
    })

# 进度报告，例如 ?patient=ID&type=anxiety&period=30d&format=chart
@metrics_bp.route('/report', methods=['GET'])
@permission_required(Operation.READ_PROGRESS)
def get_progress_report():
    return build_progress_report(
        request.args.get('patient'),
        metric_type=request.args.get('type'),
        period=request.args.get('period', '30d'),
        report_format=request.args.get('format', 'detailed'),
        start_date=request.args.get('startDate'),
        end_date=request.args.get('endDate')
    )

# 患者的详细报告
@metrics_bp.route('/patient/<patient_id>', methods=['GET'])
@permission_required(Operation.READ_PATIENT_PROGRESS)
def get_patient_metrics(patient_id):
    return build_progress_report(
        patient_id,
        metric_type=request.args.get('type'),
        period=request.args.get('period', '30d'),
        report_format='detailed',
        start_date=request.args.get('startDate'),
        end_date=request.args.get('endDate')
    )

# 某一指标类型的图表数据
@metrics_bp.route('/chart/<patient_id>/<metric_type>', methods=['GET'])
@permission_required(Operation.READ_PROGRESS)
def get_metric_chart(patient_id, metric_type):
    return build_progress_report(
        patient_id,
        metric_type=metric_type,
        period=request.args.get('period', '30d'),
        report_format='chart',
        start_date=request.args.get('startDate'),
        end_date=request.args.get('endDate')
    )

# 当前患者自己的进度
@metrics_bp.route('/my-progress', methods=['GET'])
@permission_required(Operation.READ_OWN_PROGRESS)
def get_my_progress():
    patient = Patient.find_by_user(current_principal().id)
    if not patient:
        raise NotFound('Patient profile not found')

    return build_progress_report(
        str(patient['_id']),
        metric_type=request.args.get('type'),
        period=request.args.get('period', '30d'),
        report_format=request.args.get('format', 'detailed'),
        start_date=request.args.get('startDate'),
        end_date=request.args.get('endDate')
    )
