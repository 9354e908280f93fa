from datetime import datetime
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str


class Resource:
    """治疗资源（``resources``）：上传的文件或外部链接"""

    @staticmethod
    def collection():
        return get_mongo_db().resources

    @staticmethod
    def create(title, file_url, file_type, uploaded_by, description=None, is_global=False):
        doc = {
            'title': title,
            'description': description,
            'file_url': file_url,
            'file_type': file_type,
            'uploaded_by': id_str(uploaded_by),
            'is_global': bool(is_global),
            'created_at': datetime.now()
        }
        doc['_id'] = Resource.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def get(resource_id):
        object_id = to_object_id(resource_id)
        if object_id is None:
            return None
        return Resource.collection().find_one({'_id': object_id})


class ResourceAssignment:
    """分配给患者的资源（``patient_resource_assignments``）"""

    @staticmethod
    def collection():
        return get_mongo_db().patient_resource_assignments

    @staticmethod
    def create(patient_id, resource_id, assigned_by):
        doc = {
            'patient_id': id_str(patient_id),
            'resource_id': id_str(resource_id),
            'assigned_by': id_str(assigned_by),
            'assigned_at': datetime.now()
        }
        doc['_id'] = ResourceAssignment.collection().insert_one(doc).inserted_id
        return doc

    @staticmethod
    def resources_for_patient(patient_id):
        """获取分配给患者的资源，按分配时间倒序"""
        assignments = list(ResourceAssignment.collection()
                           .find({'patient_id': id_str(patient_id)})
                           .sort('assigned_at', -1))
        object_ids = [to_object_id(a['resource_id']) for a in assignments]
        by_id = {
            str(r['_id']): r
            for r in Resource.collection().find({'_id': {'$in': [oid for oid in object_ids if oid]}})
        }
        return [by_id[a['resource_id']] for a in assignments if a['resource_id'] in by_id]
