"""
请求数据校验

校验函数返回 ``(value, error)``：成功时为清洗后的数据和None，失败时为None和第一条错误信息。
"""
import re
from datetime import datetime
from dateutil.relativedelta import relativedelta
from ..models.user import Role, REGISTRABLE_ROLES
from ..models.metrics import (
    METRIC_TYPES, ASSESSMENT_METHODS, DEFAULT_ASSESSMENT_METHOD,
    METRIC_MIN_VALUE, METRIC_MAX_VALUE, METRIC_NOTES_MAX_LENGTH
)
from ..models.payments import PAYMENT_METHODS, PAYMENT_STATUSES, DEFAULT_CURRENCY, DEFAULT_PAYMENT_STATUS

EMAIL_RE = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
PERIOD_RE = re.compile(r'^(\d+)([dmy])$')


def is_blank(value):
    return value is None or (isinstance(value, str) and value.strip() == '')


def parse_datetime(value):
    """解析ISO格式的日期/时间字符串，datetime原样返回，失败时返回None"""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).replace(tzinfo=None)
    except ValueError:
        return None


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_registration(data):
    if not data:
        return None, 'All fields are required'

    required = ('email', 'password', 'confirmPassword', 'role', 'full_name')
    if any(is_blank(data.get(field)) for field in required):
        return None, 'All fields are required'
    for field in required:
        if not isinstance(data[field], str):
            return None, f'{field} must be a string'

    if not EMAIL_RE.match(data['email']):
        return None, 'Invalid email format'

    if data['password'] != data['confirmPassword']:
        return None, 'Passwords do not match'

    role = Role.parse(data['role'])
    if role not in REGISTRABLE_ROLES:
        return None, 'Invalid role specified'

    return {
        'email': data['email'].strip(),
        'password': data['password'],
        'full_name': data['full_name'].strip(),
        'role': role
    }, None


def validate_progress_metric(data):
    if not isinstance(data, dict):
        return None, 'Metric must be an object'

    if is_blank(data.get('patient_id')):
        return None, 'patient_id is required'

    metric_type = data.get('metric_type')
    if metric_type not in METRIC_TYPES:
        return None, f"metric_type must be one of: {', '.join(METRIC_TYPES)}"

    metric_value = data.get('metric_value')
    if not _is_number(metric_value) or not METRIC_MIN_VALUE <= metric_value <= METRIC_MAX_VALUE:
        return None, f'metric_value must be a number between {METRIC_MIN_VALUE} and {METRIC_MAX_VALUE}'

    value = {
        'patient_id': str(data['patient_id']),
        'metric_type': metric_type,
        'metric_value': metric_value,
        'assessment_method': data.get('assessment_method') or DEFAULT_ASSESSMENT_METHOD
    }

    if value['assessment_method'] not in ASSESSMENT_METHODS:
        return None, f"assessment_method must be one of: {', '.join(ASSESSMENT_METHODS)}"

    if data.get('measurement_date') is not None:
        measurement_date = parse_datetime(data['measurement_date'])
        if measurement_date is None:
            return None, 'measurement_date must be a valid date'
        value['measurement_date'] = measurement_date
    else:
        value['measurement_date'] = datetime.now()

    notes = data.get('notes')
    if notes is not None:
        if not isinstance(notes, str) or len(notes) > METRIC_NOTES_MAX_LENGTH:
            return None, f'notes must be a string of at most {METRIC_NOTES_MAX_LENGTH} characters'
        value['notes'] = notes

    if data.get('session_id') is not None:
        value['session_id'] = str(data['session_id'])

    return value, None


def validate_metric_update(data):
    if not isinstance(data, dict):
        return None, 'Request body must be an object'

    allowed = {'metric_value', 'notes', 'assessment_method'}
    unknown = set(data) - allowed
    if unknown:
        return None, f"Fields not allowed: {', '.join(sorted(unknown))}"

    value = {}
    if 'metric_value' in data:
        metric_value = data['metric_value']
        if not _is_number(metric_value) or not METRIC_MIN_VALUE <= metric_value <= METRIC_MAX_VALUE:
            return None, f'metric_value must be a number between {METRIC_MIN_VALUE} and {METRIC_MAX_VALUE}'
        value['metric_value'] = metric_value

    if 'notes' in data:
        notes = data['notes']
        if notes is not None and (not isinstance(notes, str) or len(notes) > METRIC_NOTES_MAX_LENGTH):
            return None, f'notes must be a string of at most {METRIC_NOTES_MAX_LENGTH} characters'
        value['notes'] = notes

    if 'assessment_method' in data:
        if data['assessment_method'] not in ASSESSMENT_METHODS:
            return None, f"assessment_method must be one of: {', '.join(ASSESSMENT_METHODS)}"
        value['assessment_method'] = data['assessment_method']

    return value, None


def validate_payment(data):
    if not isinstance(data, dict):
        return None, 'Request body must be an object'

    for field in ('patient_id', 'doctor_id', 'invoice_id', 'service'):
        if is_blank(data.get(field)):
            return None, f'{field} is required'

    amount = data.get('amount')
    if not _is_number(amount) or amount <= 0:
        return None, 'amount must be a positive number'

    payment_date = parse_datetime(data.get('payment_date'))
    if payment_date is None:
        return None, 'payment_date must be a valid date'

    if data.get('payment_method') not in PAYMENT_METHODS:
        return None, f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}"

    status = data.get('status') or DEFAULT_PAYMENT_STATUS
    if status not in PAYMENT_STATUSES:
        return None, f"status must be one of: {', '.join(PAYMENT_STATUSES)}"

    notes = data.get('notes')
    if notes is not None and not isinstance(notes, str):
        return None, 'notes must be a string'

    return {
        'patient_id': str(data['patient_id']),
        'doctor_id': str(data['doctor_id']),
        'invoice_id': str(data['invoice_id']),
        'amount': amount,
        'currency': data.get('currency') or DEFAULT_CURRENCY,
        'service': data['service'],
        'payment_date': payment_date,
        'payment_method': data['payment_method'],
        'status': status,
        'notes': notes
    }, None


def parse_period(period, now=None):
    """
    计算报告时间窗口的起点，例如 ``30d``、``3m`` 或 ``1y``

    无法识别的值按30天处理。
    """
    now = now or datetime.now()
    match = PERIOD_RE.match(period or '')
    if not match:
        return now - relativedelta(days=30)

    amount, unit = int(match.group(1)), match.group(2)
    if unit == 'd':
        return now - relativedelta(days=amount)
    if unit == 'm':
        return now - relativedelta(months=amount)
    return now - relativedelta(years=amount)
