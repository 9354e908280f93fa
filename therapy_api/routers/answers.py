from flask import Blueprint, jsonify
from ..models.user import User
from ..models.profiles import Patient
from ..models.questions import Question, QuestionAssignment, Answer
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Forbidden, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs
from ..utils.ownership import load_patient_or_404, can_read_patient_data, is_primary_doctor_of
from ..utils.validators import is_blank

answers_bp = Blueprint('answers', __name__, url_prefix='/api/answer')

# 回答已分配的题目
@answers_bp.route('/submit-answer', methods=['POST'])
@permission_required(Operation.SUBMIT_ANSWER)
def submit_answer():
    data = get_json_body()
    question_id = data.get('question_id')
    answer_text = data.get('answer_text')

    patient = Patient.find_by_user(current_principal().id)
    if not patient:
        raise NotFound('Patient not found')

    if not isinstance(answer_text, str) or is_blank(answer_text):
        raise ValidationError('Answer cannot be empty')

    patient_id = str(patient['_id'])
    if is_blank(question_id) or not QuestionAssignment.find(patient_id, question_id):
        raise Forbidden('Question not assigned to this patient')

    answer = Answer.create(question_id, patient_id, answer_text)
    QuestionAssignment.mark_answered(patient_id, question_id)
    log_record('Answer submitted', details={'patient_id': patient_id, 'question_id': str(question_id)})

    return jsonify({
        'success': True,
        'message': 'Answer submitted',
        'data': format_mongo_doc(answer)
    }), 201

# 获取患者的回答
@answers_bp.route('/history/<patient_id>', methods=['GET'])
@permission_required(Operation.READ_ANSWER_HISTORY)
def get_answer_history(patient_id):
    patient = load_patient_or_404(patient_id)
    if not can_read_patient_data(patient, current_principal()):
        raise Forbidden('Access denied')

    answers = Answer.find_for_patient(patient_id)
    questions = Question.get_many([a['question_id'] for a in answers])

    result = format_mongo_docs(answers)
    for item in result:
        question = questions.get(item['question_id'])
        item['question_text'] = question['question_text'] if question else None

    return jsonify({
        'success': True,
        'data': result
    })

# 获取医生名下患者对某题目的回答
@answers_bp.route('/question/<question_id>', methods=['GET'])
@permission_required(Operation.READ_QUESTION_ANSWERS)
def get_answers_by_question(question_id):
    if not Question.get(question_id):
        raise NotFound('Question not found')

    doctor_id = current_principal().id
    result = []
    patients = {}
    for answer in Answer.find_for_question(question_id):
        patient_id = answer['patient_id']
        if patient_id not in patients:
            patients[patient_id] = Patient.get(patient_id)
        patient = patients[patient_id]
        if not is_primary_doctor_of(patient, doctor_id):
            continue

        user = User.get(patient.get('user_id'))
        item = format_mongo_doc(answer)
        item['patient_name'] = user.get('full_name') if user else None
        result.append(item)

    return jsonify({
        'success': True,
        'data': result
    })
