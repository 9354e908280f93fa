from datetime import datetime
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError
from ..utils.mongo_utils import get_mongo_db, to_object_id, id_str

PAYMENT_METHODS = ('Cash', 'UPI', 'Card', 'Bank Transfer')
PAYMENT_STATUSES = ('Pending', 'Paid', 'Failed')
DEFAULT_CURRENCY = 'INR'
DEFAULT_PAYMENT_STATUS = 'Paid'

SORTABLE_FIELDS = ('payment_date', 'amount', 'created_at', 'status')


class DuplicateInvoice(Exception):
    pass


class Payment:
    """
    支付记录（``payments``）

    删除的支付记录保留文档并标记 ``deleted: True``，所有查询都会排除这些记录
    """

    @staticmethod
    def collection():
        return get_mongo_db().payments

    @staticmethod
    def _invoice_taken(invoice_id, exclude_id=None):
        query = {'invoice_id': invoice_id}
        if exclude_id is not None:
            query['_id'] = {'$ne': exclude_id}
        return Payment.collection().find_one(query) is not None

    @staticmethod
    def create(values, created_by):
        # 生产环境由唯一索引保证，未建索引时依靠此查询
        if Payment._invoice_taken(values['invoice_id']):
            raise DuplicateInvoice(values['invoice_id'])

        now = datetime.now()
        doc = dict(values)
        doc.update({
            'created_by': id_str(created_by),
            'deleted': False,
            'created_at': now,
            'updated_at': now
        })
        try:
            doc['_id'] = Payment.collection().insert_one(doc).inserted_id
        except DuplicateKeyError:
            raise DuplicateInvoice(values['invoice_id'])
        return doc

    @staticmethod
    def get(payment_id):
        object_id = to_object_id(payment_id)
        if object_id is None:
            return None
        return Payment.collection().find_one({'_id': object_id, 'deleted': False})

    @staticmethod
    def update(payment_id, values):
        object_id = to_object_id(payment_id)
        if object_id is None:
            return None
        if Payment._invoice_taken(values['invoice_id'], exclude_id=object_id):
            raise DuplicateInvoice(values['invoice_id'])

        changes = dict(values)
        changes['updated_at'] = datetime.now()
        try:
            return Payment.collection().find_one_and_update(
                {'_id': object_id, 'deleted': False},
                {'$set': changes},
                return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError:
            raise DuplicateInvoice(values['invoice_id'])

    @staticmethod
    def soft_delete(payment_id):
        object_id = to_object_id(payment_id)
        if object_id is None:
            return False
        result = Payment.collection().update_one(
            {'_id': object_id, 'deleted': False},
            {'$set': {'deleted': True, 'updated_at': datetime.now()}}
        )
        return result.modified_count == 1

    @staticmethod
    def search(filters, page=1, limit=20, sort_by='payment_date', sort_order='desc'):
        """
        分页获取未删除的支付记录

        返回:
            tuple: (支付记录列表, 总数)
        """
        query = {'deleted': False}
        query.update(filters)

        if sort_by not in SORTABLE_FIELDS:
            sort_by = 'payment_date'
        direction = 1 if sort_order == 'asc' else -1

        cursor = (Payment.collection().find(query)
                  .sort(sort_by, direction)
                  .skip((page - 1) * limit)
                  .limit(limit))
        payments = list(cursor)
        total = Payment.collection().count_documents(query)
        return payments, total
