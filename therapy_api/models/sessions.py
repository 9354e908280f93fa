from datetime import datetime
import enum
from ..utils.mongo_utils import get_mongo_db, id_str


class SessionStatus(enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def normalize_session_type(session_type):
    return session_type.strip().lower()


class TherapySession:
    """治疗会话（``sessions``）"""

    @staticmethod
    def collection():
        return get_mongo_db().sessions

    @staticmethod
    def create(patient_id, doctor_id, session_date, session_type, status=SessionStatus.SCHEDULED):
        now = datetime.now()
        doc = {
            'patient_id': id_str(patient_id),
            'doctor_id': id_str(doctor_id),
            'session_date': session_date,
            'type': normalize_session_type(session_type),
            'status': status.value,
            'created_at': now,
            'updated_at': now
        }
        doc['_id'] = TherapySession.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def types_for_doctor(doctor_id):
        return sorted(TherapySession.collection().distinct('type', {'doctor_id': id_str(doctor_id)}))

    @staticmethod
    def timeline(patient_id, date_range=None, session_type=None):
        """按时间顺序获取患者的会话"""
        query = {'patient_id': id_str(patient_id)}
        if date_range:
            query['session_date'] = {'$gte': date_range[0], '$lte': date_range[1]}
        if session_type:
            query['type'] = normalize_session_type(session_type)
        return list(TherapySession.collection().find(query).sort('session_date', 1))
