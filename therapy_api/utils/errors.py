"""
错误类型模块，所有路由共用

每种错误渲染为 ``{"success": false, "message": ..., "error": <kind>}``，
并使用该类型对应的HTTP状态码。
"""


class APIError(Exception):
    status_code = 500
    kind = 'internal_error'
    default_message = 'Server error'

    def __init__(self, message=None, details=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.details = details

    def to_dict(self):
        data = {
            'success': False,
            'message': self.message,
            'error': self.kind
        }
        if self.details is not None:
            data['details'] = self.details
        return data


class Unauthenticated(APIError):
    """没有凭证，或凭证不是 Bearer 格式"""
    status_code = 401
    kind = 'unauthenticated'
    default_message = 'Authentication required'


class InvalidCredential(APIError):
    """令牌签名、过期时间或声明校验失败"""
    status_code = 401
    kind = 'invalid_credential'
    default_message = 'Invalid Token'


class Forbidden(APIError):
    status_code = 403
    kind = 'forbidden'
    default_message = 'Access denied'


class ValidationError(APIError):
    status_code = 400
    kind = 'validation_error'
    default_message = 'Invalid request'


class NotFound(APIError):
    status_code = 404
    kind = 'not_found'
    default_message = 'Not found'


class Conflict(APIError):
    status_code = 409
    kind = 'conflict'
    default_message = 'Resource already exists'


class InternalError(APIError):
    pass


def get_json_body():
    """获取JSON请求体（dict），请求体缺失或无法解析时视为空"""
    from flask import request

    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def register_error_handlers(app):
    """将已知错误渲染为JSON，隐藏意外异常的细节"""
    from flask import jsonify
    from werkzeug.exceptions import HTTPException

    @app.errorhandler(APIError)
    def handle_api_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def handle_http_exception(error):
        return jsonify({
            'success': False,
            'message': error.description,
            'error': error.name.lower().replace(' ', '_')
        }), error.code

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        app.logger.exception(f"Unhandled error: {str(error)}")
        body = InternalError().to_dict()
        if app.debug:
            body['details'] = str(error)
        return jsonify(body), 500
