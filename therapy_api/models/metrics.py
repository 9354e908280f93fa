from datetime import datetime
from pymongo import ReturnDocument
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str

METRIC_TYPES = (
    'anxiety', 'depression', 'mood', 'energy', 'sleep_quality',
    'stress', 'focus', 'motivation', 'social_interaction',
    'self_esteem', 'therapy_engagement', 'medication_adherence',
    'physical_activity', 'emotional_regulation', 'cognitive_function'
)

ASSESSMENT_METHODS = ('self_report', 'clinical_observation', 'standardized_test', 'questionnaire')
DEFAULT_ASSESSMENT_METHOD = 'clinical_observation'

METRIC_MIN_VALUE = 0
METRIC_MAX_VALUE = 10
METRIC_NOTES_MAX_LENGTH = 500


def severity_level(metric_value):
    """根据0-10的指标值计算严重程度"""
    if metric_value is None:
        return None
    if metric_value <= 1:
        return 'minimal'
    if metric_value <= 3:
        return 'mild'
    if metric_value <= 5:
        return 'moderate'
    if metric_value <= 7:
        return 'severe'
    return 'extreme'


class ProgressMetric:
    """进度指标记录（``progress_metrics``）"""

    @staticmethod
    def collection():
        return get_mongo_db().progress_metrics

    @staticmethod
    def create(values, doctor_id):
        now = datetime.now()
        doc = dict(values)
        doc['patient_id'] = id_str(values['patient_id'])
        doc['doctor_id'] = id_str(doctor_id)
        doc['severity_level'] = severity_level(doc['metric_value'])
        doc['created_at'] = now
        doc['updated_at'] = now
        doc['_id'] = ProgressMetric.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def get(metric_id):
        object_id = to_object_id(metric_id)
        if object_id is None:
            return None
        return ProgressMetric.collection().find_one({'_id': object_id})

    @staticmethod
    def update(metric_id, changes):
        changes = dict(changes)
        if 'metric_value' in changes:
            changes['severity_level'] = severity_level(changes['metric_value'])
        changes['updated_at'] = datetime.now()
        return ProgressMetric.collection().find_one_and_update(
            {'_id': to_object_id(metric_id)},
            {'$set': changes},
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def find_for_patient(patient_id, date_filter=None, metric_type=None):
        """获取患者的指标记录，按时间倒序"""
        query = {'patient_id': id_str(patient_id)}
        if date_filter:
            query['measurement_date'] = date_filter
        if metric_type:
            query['metric_type'] = metric_type
        return list(ProgressMetric.collection().find(query).sort('measurement_date', -1))
