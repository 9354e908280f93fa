from contextlib import contextmanager
from flask import current_app, g
from flask.json.provider import DefaultJSONProvider
from flask_pymongo import PyMongo
from bson.objectid import ObjectId
from bson.errors import InvalidId
import datetime

mongo = PyMongo()


def get_mongo_db():
    """
    获取当前应用上下文的MongoDB数据库
    """
    if 'mongo_db' not in g:
        g.mongo_db = mongo.db
    return g.mongo_db


def init_mongo(app):
    """
    为Flask应用初始化MongoDB并创建索引
    """
    mongo.init_app(app)

    # 处理 jsonify() 中的 ObjectId 和 datetime
    app.json = MongoJSONProvider(app)

    if not app.config.get('MONGO_CREATE_INDEXES', True):
        return

    with app.app_context():
        create_indexes(mongo.db)


def create_indexes(db):
    """为API查询的所有集合创建索引"""
    db.users.create_index('email', unique=True)
    db.doctors.create_index('user_id', unique=True)
    db.patients.create_index('user_id', unique=True)
    db.patients.create_index('therapist_id')

    db.notes.create_index([('patient_id', 1), ('created_at', -1)])
    db.patient_histories.create_index('patient_id', unique=True)

    # 报告按患者、类型和日期范围查询
    db.progress_metrics.create_index([
        ('patient_id', 1),
        ('metric_type', 1),
        ('measurement_date', -1)
    ])
    db.progress_metrics.create_index([('doctor_id', 1), ('measurement_date', -1)])
    db.progress_metrics.create_index('session_id')

    # 同一患者与医生之间最多一个有效授权
    db.patient_profile_access.create_index(
        [('patient_id', 1), ('shared_with_doctor_id', 1)],
        unique=True,
        partialFilterExpression={'state': 'active'}
    )
    db.patient_profile_access.create_index([('patient_id', 1), ('state', 1)])

    db.patient_question_assignments.create_index(
        [('patient_id', 1), ('question_id', 1)], unique=True
    )
    db.answers.create_index('patient_id')
    db.answers.create_index('question_id')
    db.patient_resource_assignments.create_index('patient_id')

    db.payments.create_index('invoice_id', unique=True)
    db.payments.create_index([('patient_id', 1), ('doctor_id', 1)])
    db.payments.create_index('status')
    db.payments.create_index('payment_date')

    db.sessions.create_index([('patient_id', 1), ('session_date', 1)])
    db.sessions.create_index('doctor_id')

    db.ai_interaction_logs.create_index([('patient_id', 1), ('created_at', -1)])
    db.ai_interaction_logs.create_index([('doctor_id', 1), ('created_at', -1)])
    db.ai_interaction_logs.create_index('request_id', unique=True)

    db.system_logs.create_index('log_type')
    db.system_logs.create_index('created_at')


@contextmanager
def mongo_transaction():
    """
    在一个MongoDB事务中执行一组写操作

    产出客户端会话，写操作需通过 ``session=`` 传入；未启用事务时产出None
    （单机服务器不支持事务）。代码块正常结束时提交，出现异常时回滚。
    """
    if not current_app.config.get('MONGO_TRANSACTIONS', True):
        yield None
        return

    with mongo.cx.start_session() as session:
        with session.start_transaction():
            yield session


def to_object_id(id_value):
    """将字符串ID转换为ObjectId，格式错误时返回None"""
    if isinstance(id_value, ObjectId):
        return id_value
    if not id_value or not isinstance(id_value, str):
        return None
    try:
        return ObjectId(id_value)
    except (InvalidId, TypeError):
        return None


def id_str(value):
    """ID的规范字符串形式（ObjectId、str 或 None）"""
    if value is None:
        return None
    return str(value)


class MongoJSONProvider(DefaultJSONProvider):
    """处理MongoDB类型的JSON提供器"""

    @staticmethod
    def default(obj):
        if isinstance(obj, ObjectId):
            return str(obj)
        if isinstance(obj, (datetime.datetime, datetime.date)):
            return obj.isoformat()
        return DefaultJSONProvider.default(obj)


def format_mongo_doc(doc):
    """
    格式化MongoDB文档用于JSON响应（ObjectId 和 datetime 转为字符串），
    递归处理嵌套的字典和列表
    """
    if not doc:
        return doc

    if isinstance(doc, dict):
        result = {}
        for key, value in doc.items():
            if isinstance(value, ObjectId):
                result[key] = str(value)
            elif isinstance(value, (datetime.datetime, datetime.date)):
                result[key] = value.isoformat()
            elif isinstance(value, dict):
                result[key] = format_mongo_doc(value)
            elif isinstance(value, list):
                result[key] = format_mongo_docs(value)
            else:
                result[key] = value
        return result
    elif isinstance(doc, ObjectId):
        return str(doc)
    elif isinstance(doc, (datetime.datetime, datetime.date)):
        return doc.isoformat()
    else:
        return doc


def format_mongo_docs(docs):
    """
    格式化MongoDB文档列表（或其他值）用于JSON响应
    """
    if not docs:
        return docs

    return [format_mongo_doc(item) for item in docs]
