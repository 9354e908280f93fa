from datetime import datetime
from pymongo import ReturnDocument
from ..utils.mongo_utils import get_mongo_db, id_str


class PatientHistory:
    """
    患者病史文本（``patient_histories``），每位患者一个文档

    保存时覆盖已有文档的文本，并发保存以最后一次写入为准
    """

    @staticmethod
    def collection():
        return get_mongo_db().patient_histories

    @staticmethod
    def get(patient_id):
        return PatientHistory.collection().find_one({'patient_id': id_str(patient_id)})

    @staticmethod
    def save(patient_id, history_text):
        now = datetime.now()
        return PatientHistory.collection().find_one_and_update(
            {'patient_id': id_str(patient_id)},
            {
                '$set': {'history_text': history_text, 'updated_at': now},
                '$setOnInsert': {'created_at': now}
            },
            upsert=True,
            return_document=ReturnDocument.AFTER
        )
