from flask import Blueprint, jsonify
from ..models.profiles import Patient
from ..models.questions import Question, QuestionAssignment, AssignmentStatus, DuplicateAssignment
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Conflict, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs, id_str
from ..utils.ownership import require_primary_doctor
from ..utils.validators import is_blank

questions_bp = Blueprint('questions', __name__, url_prefix='/api/questions')

def _with_questions(assignments):
    """将分配记录与题目内容合并"""
    questions = Question.get_many([a['question_id'] for a in assignments])
    result = []
    for assignment in assignments:
        question = questions.get(assignment['question_id'])
        item = format_mongo_doc(assignment)
        item['question_text'] = question['question_text'] if question else None
        item['is_global'] = question.get('is_global', False) if question else None
        result.append(item)
    return result

# 创建题目
@questions_bp.route('/upload-question', methods=['POST'])
@permission_required(Operation.MANAGE_QUESTIONS)
def create_question():
    data = get_json_body()
    question_text = data.get('question_text')
    if not isinstance(question_text, str) or is_blank(question_text):
        raise ValidationError('Question text is required')

    is_global = data.get('is_global', False)
    if not isinstance(is_global, bool):
        raise ValidationError('is_global must be a boolean')

    question = Question.create(question_text.strip(), current_principal().id, is_global)

    return jsonify({
        'success': True,
        'data': format_mongo_doc(question)
    }), 201

# 为患者分配题目
@questions_bp.route('/assign', methods=['POST'])
@permission_required(Operation.MANAGE_QUESTIONS)
def assign_question():
    data = get_json_body()
    patient_id = data.get('patient_id')
    question_id = data.get('question_id')
    if is_blank(patient_id) or is_blank(question_id):
        raise ValidationError('patient_id and question_id are required')

    if not Question.get(question_id):
        raise NotFound('Question not found')
    require_primary_doctor(str(patient_id), current_principal())

    try:
        assignment = QuestionAssignment.create(patient_id, question_id, current_principal().id)
    except DuplicateAssignment:
        raise Conflict('Question already assigned to this patient')

    log_record('Question assigned', details={'patient_id': id_str(patient_id), 'question_id': id_str(question_id)})

    return jsonify({
        'success': True,
        'data': format_mongo_doc(assignment)
    }), 201

# 医生可分配的题目
@questions_bp.route('', methods=['GET'])
@permission_required(Operation.MANAGE_QUESTIONS)
def list_questions():
    questions = Question.visible_to(current_principal().id)
    return jsonify({
        'success': True,
        'data': format_mongo_docs(questions)
    })

# 当前患者被分配的题目
@questions_bp.route('/patient', methods=['GET'])
@permission_required(Operation.READ_ASSIGNED_QUESTIONS)
def get_my_questions():
    patient = Patient.find_by_user(current_principal().id)
    if not patient:
        raise NotFound('Patient not found')

    assignments = QuestionAssignment.find_for_patient(patient['_id'])
    return jsonify({
        'success': True,
        'data': _with_questions(assignments)
    })

# 某位患者被分配的题目
@questions_bp.route('/<patient_id>', methods=['GET'])
@permission_required(Operation.MANAGE_QUESTIONS)
def get_patient_questions(patient_id):
    require_primary_doctor(patient_id, current_principal())

    assignments = QuestionAssignment.find_for_patient(patient_id)
    return jsonify({
        'success': True,
        'data': _with_questions(assignments)
    })

# 修改分配状态
@questions_bp.route('/update-status', methods=['PUT'])
@permission_required(Operation.MANAGE_QUESTIONS)
def update_assignment_status():
    data = get_json_body()
    assignment_id = data.get('assignment_id')
    if is_blank(assignment_id):
        raise ValidationError('assignment_id is required')

    try:
        status = AssignmentStatus(data.get('status'))
    except ValueError:
        statuses = ', '.join(s.value for s in AssignmentStatus)
        raise ValidationError(f'status must be one of: {statuses}')

    assignment = QuestionAssignment.get(str(assignment_id))
    if not assignment:
        raise NotFound('Assignment not found')
    require_primary_doctor(assignment['patient_id'], current_principal())

    updated = QuestionAssignment.set_status(assignment['_id'], status)

    return jsonify({
        'success': True,
        'message': 'Assignment status updated',
        'data': format_mongo_doc(updated)
    })
