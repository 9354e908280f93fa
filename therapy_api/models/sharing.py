"""
患者档案共享授权模块

授权状态只能从 ``active`` 变为 ``revoked``，不可恢复。
同一患者与同一被共享医生之间最多存在一个有效授权。
每个授权带有只追加的 ``access_logs`` 列表，元素为 ``{who, when, action, details}``。
"""
from datetime import datetime
import enum
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from ..utils.mongo_utils import get_mongo_db, id_str


class PermissionLevel(enum.Enum):
    READ_ONLY = "read-only"
    CONTRIBUTE = "contribute"
    FULL = "full"

    @classmethod
    def parse(cls, value):
        try:
            return cls(value)
        except ValueError:
            return None


class DuplicateGrant(Exception):
    pass


class GrantState(enum.Enum):
    ACTIVE = "active"
    REVOKED = "revoked"


class AccessAction(enum.Enum):
    SHARED_PROFILE = "shared_profile"
    VIEWED_PROFILE = "viewed_profile"
    REVOKED_ACCESS = "revoked_access"


def access_log_entry(who, action, details=''):
    return {
        'who': id_str(who),
        'when': datetime.now(),
        'action': action.value,
        'details': details
    }


class SharingGrant:
    """共享授权文档（``patient_profile_access``）"""

    @staticmethod
    def collection():
        return get_mongo_db().patient_profile_access

    @staticmethod
    def _active_query(patient_id, shared_with_doctor_id):
        return {
            'patient_id': id_str(patient_id),
            'shared_with_doctor_id': id_str(shared_with_doctor_id),
            'state': GrantState.ACTIVE.value
        }

    @staticmethod
    def find_active(patient_id, shared_with_doctor_id):
        return SharingGrant.collection().find_one(
            SharingGrant._active_query(patient_id, shared_with_doctor_id)
        )

    @staticmethod
    def has_active_level(patient_id, doctor_id, level):
        query = SharingGrant._active_query(patient_id, doctor_id)
        query['permission_level'] = level.value
        return SharingGrant.collection().find_one(query) is not None

    @staticmethod
    def insert(patient_id, sharing_doctor_id, shared_with_doctor_id, level):
        now = datetime.now()
        doc = {
            'patient_id': id_str(patient_id),
            'sharing_doctor_id': id_str(sharing_doctor_id),
            'shared_with_doctor_id': id_str(shared_with_doctor_id),
            'permission_level': level.value,
            'state': GrantState.ACTIVE.value,
            'access_logs': [access_log_entry(
                sharing_doctor_id,
                AccessAction.SHARED_PROFILE,
                f'Shared with doctor {id_str(shared_with_doctor_id)} with {level.value} access.'
            )],
            'created_at': now,
            'updated_at': now,
            'revoked_at': None
        }
        try:
            doc['_id'] = SharingGrant.collection().insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise DuplicateGrant()
        return doc

    @staticmethod
    def log_view(patient_id, doctor_id):
        """
        在医生的有效授权上追加一条 ``viewed_profile`` 记录

        查找与追加为同一个原子更新，每次查看都必然留下日志。

        返回:
            dict: 更新后的授权，没有有效授权时为None
        """
        return SharingGrant.collection().find_one_and_update(
            SharingGrant._active_query(patient_id, doctor_id),
            {
                '$push': {'access_logs': access_log_entry(
                    doctor_id, AccessAction.VIEWED_PROFILE, 'Accessed patient profile data.'
                )},
                '$set': {'updated_at': datetime.now()}
            },
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def revoke(patient_id, shared_with_doctor_id, revoked_by):
        now = datetime.now()
        return SharingGrant.collection().find_one_and_update(
            SharingGrant._active_query(patient_id, shared_with_doctor_id),
            {
                '$set': {
                    'state': GrantState.REVOKED.value,
                    'revoked_at': now,
                    'updated_at': now
                },
                '$push': {'access_logs': access_log_entry(
                    revoked_by, AccessAction.REVOKED_ACCESS,
                    f'Revoked access for doctor {id_str(shared_with_doctor_id)}.'
                )}
            },
            return_document=ReturnDocument.AFTER
        )

    @staticmethod
    def find_for_patient(patient_id, state=None):
        query = {'patient_id': id_str(patient_id)}
        if state is not None:
            query['state'] = state.value
        return list(SharingGrant.collection().find(query).sort('created_at', -1))
