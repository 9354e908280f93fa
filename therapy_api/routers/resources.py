from flask import Blueprint, request, jsonify, current_app, send_from_directory
from ..models.resources import Resource, ResourceAssignment
from ..utils.access import permission_required, Operation
from ..utils.errors import ValidationError, NotFound, Forbidden, get_json_body
from ..utils.jwt_utils import current_principal
from ..utils.log_utils import log_record
from ..utils.mongo_utils import format_mongo_doc, format_mongo_docs
from ..utils.ownership import load_patient_or_404, is_primary_doctor_of
from ..utils.storage import save_uploaded_file, allowed_mimetype, upload_folder
from ..utils.validators import is_blank

resource_bp = Blueprint('resource', __name__, url_prefix='/api/resource')

def _form_flag(value):
    # multipart 表单中的布尔值为字符串
    return value is True or (isinstance(value, str) and value.lower() == 'true')

# 上传文件或登记外部链接
@resource_bp.route('/upload', methods=['POST'])
@permission_required(Operation.MANAGE_RESOURCES)
def upload_resource():
    data = request.form if request.form else get_json_body()
    title = data.get('title')
    if not isinstance(title, str) or is_blank(title):
        raise ValidationError('Title is required')

    external_url = data.get('external_url')
    if external_url is not None and not isinstance(external_url, str):
        raise ValidationError('external_url must be a string')
    upload = request.files.get('file')

    if not is_blank(external_url):
        file_url, file_type = external_url.strip(), 'url'
    elif upload and upload.filename:
        if not allowed_mimetype(upload.mimetype):
            raise ValidationError('Unsupported file type')
        saved = save_uploaded_file(upload)
        file_url, file_type = saved['file_url'], saved['file_type']
        current_app.logger.info(f"Stored resource file {saved['saved_name']} ({saved['size']} bytes)")
    else:
        raise ValidationError('No file or external URL provided')

    resource = Resource.create(
        title=title.strip(),
        file_url=file_url,
        file_type=file_type,
        uploaded_by=current_principal().id,
        description=data.get('description'),
        is_global=_form_flag(data.get('is_global'))
    )
    log_record('Resource uploaded', details={'resource_id': str(resource['_id']), 'file_type': file_type})

    return jsonify({
        'success': True,
        'data': format_mongo_doc(resource)
    }), 201

# 为患者分配资源
@resource_bp.route('/assign', methods=['POST'])
@permission_required(Operation.MANAGE_RESOURCES)
def assign_resource():
    data = get_json_body()
    patient_id = data.get('patient_id')
    resource_id = data.get('resource_id')
    if is_blank(patient_id) or is_blank(resource_id):
        raise ValidationError('patient_id and resource_id are required')

    if not Resource.get(resource_id):
        raise NotFound('Resource not found')

    principal = current_principal()
    patient = load_patient_or_404(str(patient_id))
    if principal.is_doctor and not is_primary_doctor_of(patient, principal.id):
        raise Forbidden('Access denied')

    assignment = ResourceAssignment.create(patient_id, resource_id, principal.id)

    return jsonify({
        'success': True,
        'data': format_mongo_doc(assignment)
    }), 201

# 获取分配给患者的资源
@resource_bp.route('/<patient_id>', methods=['GET'])
@permission_required(Operation.READ_RESOURCES)
def get_patient_resources(patient_id):
    resources = ResourceAssignment.resources_for_patient(patient_id)
    return jsonify({
        'success': True,
        'data': format_mongo_docs(resources)
    })

# 下载已存储的文件
@resource_bp.route('/files/<filename>', methods=['GET'])
@permission_required(Operation.READ_RESOURCES)
def get_resource_file(filename):
    return send_from_directory(upload_folder(), filename)
