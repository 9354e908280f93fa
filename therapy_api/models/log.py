from datetime import datetime
from enum import Enum
from ..utils.mongo_utils import get_mongo_db


class LogType(Enum):
    """系统日志类型"""
    SYSTEM = 'system'
    SECURITY = 'security'
    USER = 'user'
    RECORD = 'record'
    ACCESS = 'access'
    ERROR = 'error'

    def __str__(self):
        return self.value


class SystemLog:
    """
    系统活动日志，存储在 ``system_logs`` 集合中
    """

    @staticmethod
    def create_log(log_type, message, details=None, user_id=None, ip_address=None, user_agent=None):
        """
        插入一条新的日志记录

        返回:
            ObjectId: 创建的日志ID
        """
        log_data = {
            'log_type': str(log_type),
            'message': message,
            'details': details or {},
            'user_id': user_id,
            'ip_address': ip_address,
            'user_agent': user_agent,
            'created_at': datetime.now()
        }
        result = get_mongo_db().system_logs.insert_one(log_data)
        return result.inserted_id
