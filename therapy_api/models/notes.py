from datetime import datetime
from ..utils.mongo_utils import get_mongo_db, id_str


class Note:
    """临床笔记（``notes``），``content`` 以净化后的HTML存储"""

    @staticmethod
    def collection():
        return get_mongo_db().notes

    @staticmethod
    def create(patient_id, doctor_id, content):
        doc = {
            'patient_id': id_str(patient_id),
            'doctor_id': id_str(doctor_id),
            'content': content,
            'created_at': datetime.now()
        }
        doc['_id'] = Note.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_for_patient(patient_id):
        """获取患者的笔记，按时间倒序"""
        return list(Note.collection().find({'patient_id': id_str(patient_id)}).sort('created_at', -1))
