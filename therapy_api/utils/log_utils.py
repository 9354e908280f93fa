"""
日志工具模块，包含写入系统日志集合的日志记录辅助函数
"""
from datetime import datetime
from flask import request, current_app, has_request_context
from ..models.log import SystemLog, LogType
from .jwt_utils import current_principal


def log_activity(log_type, message, details=None, user_id=None):
    """
    记录系统活动的通用函数

    参数:
        log_type (LogType): 日志类型
        message (str): 日志消息
        details (dict): 详细信息
        user_id (str): 用户ID，如果为None则使用当前认证用户

    返回:
        ObjectId: 创建的日志ID，记录失败时为None
    """
    try:
        ip_address = None
        user_agent = None
        if has_request_context():
            principal = current_principal()
            if user_id is None and principal is not None:
                user_id = principal.id
            ip_address = request.remote_addr
            if request.user_agent:
                user_agent = request.user_agent.string

        details = dict(details or {})
        details.setdefault('timestamp', datetime.now().isoformat())

        return SystemLog.create_log(
            log_type=log_type,
            message=message,
            details=details,
            user_id=user_id,
            ip_address=ip_address,
            user_agent=user_agent
        )
    except Exception as e:
        current_app.logger.error(f"Failed to write activity log: {str(e)}")
        return None


def log_error(error_message, exception=None, details=None, user_id=None):
    error_details = dict(details or {})

    if exception:
        error_details['exception'] = str(exception)
        error_details['exception_type'] = exception.__class__.__name__

    return log_activity(LogType.ERROR, error_message, error_details, user_id)


def log_security(message, details=None, user_id=None):
    """记录安全相关日志（认证与授权）"""
    return log_activity(LogType.SECURITY, message, details, user_id)


def log_user(message, details=None, user_id=None):
    """记录用户相关日志"""
    return log_activity(LogType.USER, message, details, user_id)


def log_record(message, details=None, user_id=None):
    """记录临床数据写入日志"""
    return log_activity(LogType.RECORD, message, details, user_id)


def log_access(message, details=None, user_id=None):
    """记录档案共享与访问日志"""
    return log_activity(LogType.ACCESS, message, details, user_id)
