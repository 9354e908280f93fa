from datetime import datetime
import random
import string
import time
from ..utils.mongo_utils import get_mongo_db, id_str

AI_MODEL_VERSION = 'placeholder-v1.0'


def generate_request_id():
    """生成请求ID，格式为 ``ai_req_<毫秒时间戳>_<9位随机字符>``"""
    suffix = ''.join(random.choices(string.ascii_lowercase + string.digits, k=9))
    return f'ai_req_{int(time.time() * 1000)}_{suffix}'


class AIInteractionLog:
    """AI建议请求及其占位响应记录（``ai_interaction_logs``）"""

    @staticmethod
    def collection():
        return get_mongo_db().ai_interaction_logs

    @staticmethod
    def create(patient_id, doctor_id, request_data, response_data, metadata,
               status='success', ai_flags=None, session_id=None, error_details=None):
        request_data = dict(request_data)
        request_data.setdefault('request_id', generate_request_id())
        now = datetime.now()
        doc = {
            'request_id': request_data['request_id'],
            'patient_id': id_str(patient_id),
            'doctor_id': id_str(doctor_id),
            'session_id': id_str(session_id),
            'request_data': request_data,
            'response_data': response_data,
            'interaction_metadata': metadata,
            'status': status,
            'ai_flags': ai_flags or {},
            'error_details': error_details,
            'created_at': now,
            'updated_at': now
        }
        doc['_id'] = AIInteractionLog.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def history(patient_id, doctor_id, limit=10, offset=0):
        """
        分页获取患者的AI交互日志

        返回:
            tuple: (按时间倒序的日志列表, 总数)
        """
        query = {'patient_id': id_str(patient_id), 'doctor_id': id_str(doctor_id)}
        logs = list(AIInteractionLog.collection()
                    .find(query)
                    .sort('created_at', -1)
                    .skip(offset)
                    .limit(limit))
        return logs, AIInteractionLog.collection().count_documents(query)

    @staticmethod
    def stats(doctor_id, start_date, end_date):
        """按状态统计交互次数和平均处理时间"""
        pipeline = [
            {'$match': {
                'doctor_id': id_str(doctor_id),
                'created_at': {'$gte': start_date, '$lte': end_date}
            }},
            {'$group': {
                '_id': '$status',
                'count': {'$sum': 1},
                'avg_processing_time': {'$avg': '$response_data.processing_time_ms'}
            }}
        ]
        return [
            {'status': row['_id'], 'count': row['count'], 'avg_processing_time': row['avg_processing_time']}
            for row in AIInteractionLog.collection().aggregate(pipeline)
        ]

    @staticmethod
    def count_since(doctor_id, start_date):
        return AIInteractionLog.collection().count_documents({
            'doctor_id': id_str(doctor_id),
            'created_at': {'$gte': start_date}
        })

    @staticmethod
    def to_client(log_doc):
        response = log_doc.get('response_data') or {}
        flags = log_doc.get('ai_flags') or {}
        return {
            'request_id': log_doc.get('request_id'),
            'suggestions': response.get('suggestions', []),
            'analysis_summary': response.get('analysis_summary'),
            'timestamp': log_doc.get('created_at'),
            'status': log_doc.get('status'),
            'requires_human_review': flags.get('requires_human_review')
        }
