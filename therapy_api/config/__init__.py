from .config import config, Config, DevelopmentConfig, TestingConfig, ProductionConfig
