from datetime import datetime
import enum
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str


class AssignmentStatus(enum.Enum):
    ASSIGNED = "assigned"
    ANSWERED = "answered"
    CLOSED = "closed"


class DuplicateAssignment(Exception):
    pass


class Question:
    """问卷题目（``questions``）"""

    @staticmethod
    def collection():
        return get_mongo_db().questions

    @staticmethod
    def create(question_text, created_by, is_global=False):
        doc = {
            'question_text': question_text,
            'is_global': bool(is_global),
            'created_by': id_str(created_by),
            'created_at': datetime.now()
        }
        doc['_id'] = Question.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def get(question_id):
        object_id = to_object_id(question_id)
        if object_id is None:
            return None
        return Question.collection().find_one({'_id': object_id})

    @staticmethod
    def get_many(question_ids):
        object_ids = [oid for oid in (to_object_id(qid) for qid in question_ids) if oid is not None]
        if not object_ids:
            return {}
        return {str(q['_id']): q for q in Question.collection().find({'_id': {'$in': object_ids}})}

    @staticmethod
    def visible_to(doctor_id):
        """医生自己创建的题目以及所有全局题目"""
        query = {'$or': [{'created_by': id_str(doctor_id)}, {'is_global': True}]}
        return list(Question.collection().find(query).sort('created_at', -1))


class QuestionAssignment:
    """分配给患者的题目（``patient_question_assignments``）"""

    @staticmethod
    def collection():
        return get_mongo_db().patient_question_assignments

    @staticmethod
    def create(patient_id, question_id, assigned_by):
        key = {'patient_id': id_str(patient_id), 'question_id': id_str(question_id)}
        if QuestionAssignment.collection().find_one(key):
            raise DuplicateAssignment()

        doc = dict(key)
        doc.update({
            'status': AssignmentStatus.ASSIGNED.value,
            'assigned_by': id_str(assigned_by),
            'assigned_at': datetime.now()
        })
        try:
            doc['_id'] = QuestionAssignment.collection().insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise DuplicateAssignment()
        return doc

    @staticmethod
    def get(assignment_id):
        object_id = to_object_id(assignment_id)
        if object_id is None:
            return None
        return QuestionAssignment.collection().find_one({'_id': object_id})

    @staticmethod
    def find(patient_id, question_id):
        return QuestionAssignment.collection().find_one({
            'patient_id': id_str(patient_id),
            'question_id': id_str(question_id)
        })

    @staticmethod
    def find_for_patient(patient_id):
        return list(QuestionAssignment.collection()
                    .find({'patient_id': id_str(patient_id)})
                    .sort('assigned_at', -1))

    @staticmethod
    def set_status(assignment_id, status):
        object_id = to_object_id(assignment_id)
        if object_id is None:
            return None
        return QuestionAssignment.collection().find_one_and_update(
            {'_id': object_id},
            {'$set': {'status': status.value, 'updated_at': datetime.now()}},
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def mark_answered(patient_id, question_id):
        QuestionAssignment.collection().update_one(
            {'patient_id': id_str(patient_id), 'question_id': id_str(question_id)},
            {'$set': {'status': AssignmentStatus.ANSWERED.value, 'updated_at': datetime.now()}}
        )


class Answer:
    """患者的回答（``answers``）"""

    @staticmethod
    def collection():
        return get_mongo_db().answers

    @staticmethod
    def create(question_id, patient_id, answer_text):
        doc = {
            'question_id': id_str(question_id),
            'patient_id': id_str(patient_id),
            'answer_text': answer_text,
            'answered_at': datetime.now()
        }
        doc['_id'] = Answer.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def find_for_patient(patient_id):
        return list(Answer.collection().find({'patient_id': id_str(patient_id)}).sort('answered_at', -1))

    @staticmethod
    def find_for_question(question_id):
        return list(Answer.collection().find({'question_id': id_str(question_id)}).sort('answered_at', -1))
