import os
from dotenv import load_dotenv
from therapy_api import create_app

# 加载环境变量
load_dotenv()

# 配置名称，默认为开发环境
config_name = os.getenv('FLASK_ENV', 'development')

app = create_app(config_name)

if __name__ == "__main__":
    host = os.getenv('HOST', '0.0.0.0')
    port = int(os.getenv('PORT', 5000))
    debug = str(os.getenv('FLASK_DEBUG', config_name == 'development')).lower() in ('true', '1', 't')

    app.run(host=host, port=port, debug=debug)
