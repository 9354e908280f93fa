from flask import Blueprint, request, jsonify
from ..models.payments import Payment, DuplicateInvoice, PAYMENT_STATUSES, PAYMENT_METHODS
from ..models.profiles import Patient
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Conflict, Forbidden
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs, id_str
from ..utils.validators import validate_payment, parse_datetime

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')

MAX_PAGE_SIZE = 100

def _own_patient_id(principal):
    patient = Patient.find_by_user(principal.id)
    return id_str(patient['_id']) if patient else None

def _can_view(payment, principal):
    if principal.is_admin:
        return True
    if principal.is_doctor:
        return payment.get('doctor_id') == principal.id
    if principal.is_patient:
        return payment.get('patient_id') == _own_patient_id(principal)
    return False

def _list_filters(args, principal):
    filters = {}
    for field in ('patient_id', 'doctor_id'):
        if args.get(field):
            filters[field] = args[field]

    status = args.get('status')
    if status:
        if status not in PAYMENT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PAYMENT_STATUSES)}")
        filters['status'] = status

    payment_method = args.get('payment_method')
    if payment_method:
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
        filters['payment_method'] = payment_method

    date_range = {}
    for param, operator in (('from_date', '$gte'), ('to_date', '$lte')):
        if args.get(param):
            value = parse_datetime(args[param])
            if value is None:
                raise ValidationError(f'{param} must be a valid date')
            date_range[operator] = value
    if date_range:
        filters['payment_date'] = date_range

    # 医生和患者只能看到自己的支付记录
    if principal.is_doctor:
        filters['doctor_id'] = principal.id
    elif principal.is_patient:
        filters['patient_id'] = _own_patient_id(principal)

    return filters

# 记录支付
@payments_bp.route('', methods=['POST'])
@permission_required(Operation.MANAGE_PAYMENTS)
def create_payment():
    values, error = validate_payment(request.get_json(silent=True))
    if error:
        raise ValidationError(error)

    try:
        payment = Payment.create(values, current_principal().id)
    except DuplicateInvoice:
        raise Conflict('Invoice ID already exists')

    log_record('Payment recorded', details={'payment_id': str(payment['_id']), 'invoice_id': values['invoice_id']})

    return jsonify({
        'success': True,
        'message': 'Payment created successfully',
        'data': format_mongo_doc(payment)
    }), 201

# 按条件分页获取支付列表
@payments_bp.route('', methods=['GET'])
@permission_required(Operation.READ_PAYMENTS)
def list_payments():
    page = max(request.args.get('page', 1, type=int), 1)
    limit = min(max(request.args.get('limit', 20, type=int), 1), MAX_PAGE_SIZE)
    filters = _list_filters(request.args, current_principal())

    payments, total = Payment.search(
        filters,
        page=page,
        limit=limit,
        sort_by=request.args.get('sort_by', 'payment_date'),
        sort_order=request.args.get('sort_order', 'desc')
    )

    return jsonify({
        'success': True,
        'data': format_mongo_docs(payments),
        'pagination': {
            'total': total,
            'page': page,
            'limit': limit,
            'pages': (total + limit - 1) // limit
        }
    })

# 获取支付详情
@payments_bp.route('/<payment_id>', methods=['GET'])
@permission_required(Operation.READ_PAYMENTS)
def get_payment(payment_id):
    payment = Payment.get(payment_id)
    if not payment:
        raise NotFound('Payment not found')
    if not _can_view(payment, current_principal()):
        raise Forbidden('Access denied')

    return jsonify({
        'success': True,
        'data': format_mongo_doc(payment)
    })

# 更新支付记录
@payments_bp.route('/<payment_id>', methods=['PUT'])
@permission_required(Operation.MANAGE_PAYMENTS)
def update_payment(payment_id):
    values, error = validate_payment(request.get_json(silent=True))
    if error:
        raise ValidationError(error)

    try:
        payment = Payment.update(payment_id, values)
    except DuplicateInvoice:
        raise Conflict('Invoice ID already exists')
    if not payment:
        raise NotFound('Payment not found')

    log_record('Payment updated', details={'payment_id': payment_id})

    return jsonify({
        'success': True,
        'message': 'Payment updated successfully',
        'data': format_mongo_doc(payment)
    })

# 删除支付记录（软删除，保留文档）
@payments_bp.route('/<payment_id>', methods=['DELETE'])
@permission_required(Operation.MANAGE_PAYMENTS)
def delete_payment(payment_id):
    if not Payment.soft_delete(payment_id):
        raise NotFound('Payment not found')

    log_record('Payment deleted', details={'payment_id': payment_id})

    return jsonify({
        'success': True,
        'message': 'Payment deleted successfully'
    })
