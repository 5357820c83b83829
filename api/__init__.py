import logging
from types import SimpleNamespace

from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import DEV_JWT_REFRESH_SECRET, DEV_JWT_SECRET, get_config
from .errors import register_error_handlers
from models.account_store import AccountStore
from models.db_storage import DBStorage
from utils.security import ACCESS, REFRESH, PasswordHasher, RedactingFilter, TokenCodec

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0",
    "info": {
        "title": "User Auth API",
        "version": "1.0.0",
        "description": "REST API for users and authentication (access / refresh tokens).",
    },
    "basePath": "/",
    "schemes": ["http", "https"],
    "securityDefinitions": {
        "Bearer": {
            "type": "apiKey",
            "name": "Authorization",
            "in": "header",
            "description": "Enter the token with the `Bearer ` prefix, e.g. \"Bearer abcde12345\"."
        }
    }
}

SWAGGER_CONFIG = {
    "headers": [],
    "specs": [
        {
            "endpoint": "apispec_1",
            "route": "/swagger.json",
            "rule_filter": lambda rule: True,
            "model_filter": lambda tag: True,
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def configure_logging(app: Flask) -> None:
    """Set the level from LOG_LEVEL and keep credentials out of every handler's output."""
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    root.setLevel(level)
    for handler in root.handlers + app.logger.handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())


def _check_secrets(app: Flask) -> None:
    if app.config.get("DEBUG") or app.config.get("TESTING"):
        return
    if app.config["JWT_SECRET"] in (DEV_JWT_SECRET, DEV_JWT_REFRESH_SECRET) or \
            app.config["JWT_REFRESH_SECRET"] in (DEV_JWT_SECRET, DEV_JWT_REFRESH_SECRET):
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must be set outside development")
    if app.config["JWT_SECRET"] == app.config["JWT_REFRESH_SECRET"]:
        raise RuntimeError("JWT_SECRET and JWT_REFRESH_SECRET must differ")


def create_app(config_name: str | None = None, storage: DBStorage | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.

    Every collaborator (storage, hasher, token codecs, session service,
    identity verifier) is built here and passed to the blueprints; nothing
    is looked up from globals at request time.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    _check_secrets(app)
    configure_logging(app)

    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)
    register_error_handlers(app)

    from .services.session_service import SessionService
    from utils.decorators import IdentityVerifier

    if storage is None:
        storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
    storage.reload()

    accounts = AccountStore(storage)
    hasher = PasswordHasher(
        time_cost=app.config["ARGON2_TIME_COST"],
        memory_cost=app.config["ARGON2_MEMORY_COST"],
        parallelism=app.config["ARGON2_PARALLELISM"],
    )
    access_codec = TokenCodec(
        app.config["JWT_SECRET"],
        ACCESS,
        app.config["JWT_ACCESS_TOKEN_EXPIRES"],
        algorithm=app.config["JWT_ALGORITHM"],
        issuer=app.config["JWT_ISSUER"],
    )
    refresh_codec = TokenCodec(
        app.config["JWT_REFRESH_SECRET"],
        REFRESH,
        app.config["JWT_REFRESH_TOKEN_EXPIRES"],
        algorithm=app.config["JWT_ALGORITHM"],
        issuer=app.config["JWT_ISSUER"],
    )
    sessions = SessionService(
        accounts,
        hasher,
        access_codec,
        refresh_codec,
        rotate_refresh_tokens=app.config["REFRESH_TOKEN_ROTATION"],
    )
    verifier = IdentityVerifier(accounts, access_codec)

    app.extensions["user_auth"] = SimpleNamespace(
        storage=storage,
        accounts=accounts,
        hasher=hasher,
        access_codec=access_codec,
        refresh_codec=refresh_codec,
        sessions=sessions,
        verifier=verifier,
    )

    from .health import create_health_blueprint
    from .auth import create_auth_blueprint
    from .users import create_users_blueprint
    from .cli import register_commands

    app.register_blueprint(create_health_blueprint(storage), url_prefix="/api/v1")
    app.register_blueprint(create_auth_blueprint(sessions, verifier, accounts), url_prefix="/api/v1/auth")
    app.register_blueprint(create_users_blueprint(accounts, sessions, hasher, verifier), url_prefix="/api/v1")
    register_commands(app)

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        storage.close()

    @app.route("/")
    def root():
        return {
            "message": "Welcome to User Auth API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
