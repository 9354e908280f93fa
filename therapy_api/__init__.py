import logging
import os
from flask import Flask
from flask_cors import CORS
from .config.config import config
from .utils.errors import register_error_handlers
from .utils.mongo_utils import init_mongo

def create_app(config_name="development"):
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    app.config['SYSTEM_VERSION'] = '1.0.0'
    app.logger.setLevel(getattr(logging, str(app.config.get('LOG_LEVEL', 'INFO')).upper(), logging.INFO))

    # 初始化扩展
    init_mongo(app)
    CORS(app)
    register_error_handlers(app)

    # 注册蓝图
    from .routers.main import main_bp
    from .routers.auth import auth_bp
    from .routers.patient import patient_bp
    from .routers.notes import notes_bp
    from .routers.metrics import metrics_bp
    from .routers.questions import questions_bp
    from .routers.answers import answers_bp
    from .routers.resources import resource_bp
    from .routers.payments import payments_bp
    from .routers.sessions import sessions_bp
    from .routers.share import share_bp
    from .routers.suggestions import suggestions_bp

    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(patient_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(metrics_bp)
    app.register_blueprint(questions_bp)
    app.register_blueprint(answers_bp)
    app.register_blueprint(resource_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(sessions_bp)
    app.register_blueprint(share_bp)
    app.register_blueprint(suggestions_bp)

    # 确保上传目录存在
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    if app.config.get('CREATE_DEFAULT_ADMIN', True):
        with app.app_context():
            init_default_admin(app)

    return app

def init_default_admin(app):
    """初始化默认管理员账户（仅当不存在管理员时）"""
    from .models.user import User, Role

    if User.collection().find_one({'role': Role.ADMIN.value}):
        return

    admin_email = app.config.get('DEFAULT_ADMIN_EMAIL', 'admin@example.com')
    admin_password = app.config.get('DEFAULT_ADMIN_PASSWORD', 'admin123456')
    admin_name = app.config.get('DEFAULT_ADMIN_NAME', 'System Administrator')

    try:
        User.insert(User.build(admin_email, admin_password, Role.ADMIN, admin_name))
        app.logger.info(f"Created default admin account: {admin_email}")
    except Exception as e:
        app.logger.error(f"Failed to create default admin: {str(e)}")
