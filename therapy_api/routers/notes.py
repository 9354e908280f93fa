from flask import Blueprint, jsonify
from ..models.user import User, Role
from ..models.notes import Note
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Forbidden, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs
from ..utils.ownership import load_patient_or_404, is_primary_doctor_of
from ..utils.sanitize import render_note_content
from ..utils.validators import is_blank

notes_bp = Blueprint('notes', __name__, url_prefix='/api/notes')

# 创建临床笔记
@notes_bp.route('', methods=['POST'])
@permission_required(Operation.CREATE_NOTE)
def create_note():
    data = get_json_body()
    patient_id = data.get('patient_id')
    content = data.get('content')
    if is_blank(patient_id) or not isinstance(content, str) or is_blank(content):
        raise ValidationError('Patient ID and content are required')

    patient = load_patient_or_404(str(patient_id))
    if not User.has_role(User.get(patient.get('user_id')), Role.PATIENT):
        raise NotFound('Patient not found')

    principal = current_principal()
    if not is_primary_doctor_of(patient, principal.id):
        raise Forbidden('Access denied. You are not assigned to this patient.')

    note = Note.create(patient['_id'], principal.id, render_note_content(content))
    log_record('Clinical note created', details={
        'patient_id': str(patient['_id']),
        'note_id': str(note['_id'])
    })

    return jsonify({
        'success': True,
        'message': 'Note created successfully',
        'data': format_mongo_doc(note)
    }), 201

# 获取患者的笔记列表
@notes_bp.route('/<patient_id>', methods=['GET'])
@permission_required(Operation.READ_NOTES)
def get_patient_notes(patient_id):
    notes = Note.find_for_patient(patient_id)
    if not notes:
        raise NotFound('No notes found for this patient')

    authors = {}
    for note in notes:
        doctor_id = note.get('doctor_id')
        if doctor_id not in authors:
            doctor = User.get(doctor_id)
            authors[doctor_id] = doctor.get('full_name') if doctor else None

    result = format_mongo_docs(notes)
    for item in result:
        item['doctor_name'] = authors.get(item.get('doctor_id'))

    return jsonify({
        'success': True,
        'data': result
    })
