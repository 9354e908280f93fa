import os
from dotenv import load_dotenv

# 从 .env 加载环境变量
load_dotenv()


def _env_flag(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ('true', '1', 't', 'yes')


class Config:
    # Flask 配置
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev_key_for_testing')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # MongoDB 配置
    MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017/therapy_practice')
    MONGO_CREATE_INDEXES = _env_flag('MONGO_CREATE_INDEXES', True)
    # 多文档事务需要副本集
    MONGO_TRANSACTIONS = _env_flag('MONGO_TRANSACTIONS', True)

    # JWT 配置
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY', 'jwt_dev_key')
    JWT_ALGORITHM = 'HS256'
    JWT_EXPIRATION_DELTA = int(os.environ.get('JWT_EXPIRATION_DELTA', 24 * 60 * 60))  # 1天

    # 文件上传配置
    UPLOAD_FOLDER = os.environ.get(
        'UPLOAD_FOLDER',
        os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'uploads')
    )
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25MB
    ALLOWED_UPLOAD_MIMETYPES = {
        'application/pdf', 'image/jpeg', 'image/png', 'image/webp', 'video/mp4'
    }

    # 默认管理员账户
    DEFAULT_ADMIN_EMAIL = os.environ.get('DEFAULT_ADMIN_EMAIL', 'admin@example.com')
    DEFAULT_ADMIN_PASSWORD = os.environ.get('DEFAULT_ADMIN_PASSWORD', 'admin123456')
    DEFAULT_ADMIN_NAME = os.environ.get('DEFAULT_ADMIN_NAME', 'System Administrator')

    @staticmethod
    def init_app(app):
        pass


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')
    MONGO_URI = os.environ.get('DEV_MONGO_URI', 'mongodb://localhost:27017/therapy_practice_dev')
    MONGO_TRANSACTIONS = _env_flag('MONGO_TRANSACTIONS', False)


class TestingConfig(Config):
    TESTING = True
    MONGO_URI = os.environ.get('TEST_MONGO_URI', 'mongodb://localhost:27017/therapy_practice_test')
    MONGO_CREATE_INDEXES = False
    MONGO_TRANSACTIONS = False
    JWT_SECRET_KEY = 'test-jwt-secret-key'
    CREATE_DEFAULT_ADMIN = False


class ProductionConfig(Config):
    MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017/therapy_practice')


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
