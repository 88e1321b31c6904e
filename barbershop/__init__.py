from flask import Flask
from flask_cors import CORS

from .audit import audit_event, record_system_log
from .cli import register_commands
from .config import Config
from .extensions import db
from .routes import register_routes


def create_app(config_object=None):
    app = Flask(__name__, instance_relative_config=True)

    if config_object:
        app.config.from_object(config_object)
    else:
        app.config.from_object(Config)
        app.config.from_envvar("APP_SETTINGS", silent=True)

    db.init_app(app)

    CORS(app,
         origins=app.config.get("CORS_ORIGINS", "*"),
         supports_credentials=True,
         allow_headers=["Content-Type", "Authorization"],
         methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )

    audit_event.connect(record_system_log)
    register_routes(app)
    register_commands(app)

    return app
