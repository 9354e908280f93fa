"""
上传资源文件的本地存储

调用方只使用返回的访问路径（``file_url``）和类型标签。
"""
import os
import uuid
from datetime import datetime
from flask import current_app, url_for
from werkzeug.utils import secure_filename


def upload_folder():
    folder = current_app.config['UPLOAD_FOLDER']
    os.makedirs(folder, exist_ok=True)
    return folder


def allowed_mimetype(mimetype):
    return mimetype in current_app.config['ALLOWED_UPLOAD_MIMETYPES']


def file_type_for(mimetype):
    """根据上传文件的MIME类型返回资源类型标签"""
    if mimetype.startswith('image/'):
        return 'image'
    if mimetype.startswith('video/'):
        return 'video'
    if mimetype == 'application/pdf':
        return 'pdf'
    return None


def save_uploaded_file(file):
    """
    以唯一文件名保存上传的文件

    返回:
        dict: 包含 ``file_url``、``file_type``、``saved_name``、``original_name`` 和 ``size``，
        文件缺失或类型不允许时返回None
    """
    if not file or not file.filename or not allowed_mimetype(file.mimetype):
        return None

    original_filename = secure_filename(file.filename)
    unique_filename = f"{uuid.uuid4().hex}_{datetime.now().strftime('%Y%m%d%H%M%S')}_{original_filename}"
    filepath = os.path.join(upload_folder(), unique_filename)
    file.save(filepath)

    return {
        'file_url': url_for('resource.get_resource_file', filename=unique_filename),
        'file_type': file_type_for(file.mimetype),
        'saved_name': unique_filename,
        'original_name': original_filename,
        'size': os.path.getsize(filepath)
    }
