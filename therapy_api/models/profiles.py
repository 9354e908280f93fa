from datetime import datetime
from pymongo import ReturnDocument
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str, format_mongo_doc


# 注册时各角色可接受的资料字段
PATIENT_FIELDS = ('date_of_birth', 'gender')
DOCTOR_FIELDS = ('specialization', 'bio')


class Patient:
    """患者记录（``patients``），``therapist_id`` 为主治医生的用户ID"""

    @staticmethod
    def collection():
        return get_mongo_db().patients

    @staticmethod
    def build(user_id, data=None):
        data = data or {}
        doc = {
            'user_id': id_str(user_id),
            'therapist_id': None,
            'created_at': datetime.now()
        }
        for field in PATIENT_FIELDS:
            if data.get(field) is not None:
                doc[field] = data[field]
        return doc

    @staticmethod
    def insert(patient_doc, session=None):
        result = Patient.collection().insert_one(patient_doc, session=session)
        return result.inserted_id

    @staticmethod
    def get(patient_id):
        object_id = to_object_id(patient_id)
        if object_id is None:
            return None
        return Patient.collection().find_one({'_id': object_id})

    @staticmethod
    def find_by_user(user_id):
        if not user_id:
            return None
        return Patient.collection().find_one({'user_id': id_str(user_id)})

    @staticmethod
    def assign_therapist(user_id, doctor_user_id):
        """设置主治医生，返回更新后的记录或None"""
        return Patient.collection().find_one_and_update(
            {'user_id': id_str(user_id)},
            {'$set': {'therapist_id': id_str(doctor_user_id), 'updated_at': datetime.now()}},
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def to_dict(patient_doc):
        return format_mongo_doc(patient_doc)


class Doctor:
    """医生资料（``doctors``）"""

    @staticmethod
    def collection():
        return get_mongo_db().doctors

    @staticmethod
    def build(user_id, data=None):
        data = data or {}
        doc = {
            'user_id': id_str(user_id),
            'created_at': datetime.now()
        }
        for field in DOCTOR_FIELDS:
            if data.get(field) is not None:
                doc[field] = data[field]
        return doc

    @staticmethod
    def insert(doctor_doc, session=None):
        result = Doctor.collection().insert_one(doctor_doc, session=session)
        return result.inserted_id

    @staticmethod
    def find_by_user(user_id):
        if not user_id:
            return None
        return Doctor.collection().find_one({'user_id': id_str(user_id)})
