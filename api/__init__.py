import click
from flask import Flask
from flasgger import Swagger
from flask_cors import CORS

from .config import get_config
from .errors import register_error_handlers
from models.db_storage import DBStorage
from repositories import build_repositories
from services.auth_service import AuthSessionManager
from utils.rate_limit import FixedWindowLimiter
from utils.security import CredentialHasher
from utils.tokens import TokenIssuer

# Minimal Swagger config: exposes /swagger.json and UI at /apidocs
SWAGGER_TEMPLATE = {
    "swagger": "2.0.0",
    "info": {
        "title": "To-Do API",
        "version": "1.0.0",
        "description": "Authentication and session endpoints of the to-do API.",
    },
    "basePath": "/",  # blueprints are mounted under /api/v1
    "schemes": ["http"],
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
            "rule_filter": lambda rule: True,   # include all endpoints
            "model_filter": lambda tag: True,   # include all models
        }
    ],
    "static_url_path": "/flasgger_static",
    "swagger_ui": True,
    "specs_route": "/apidocs/",
}


def build_auth_manager(config, storage: DBStorage | None = None) -> AuthSessionManager:
    """Wire hasher, issuer and the configured storage variant into a session manager."""
    users, tokens = build_repositories(config["DB_BACKEND"], storage)
    hasher = CredentialHasher(
        time_cost=config["ARGON2_TIME_COST"],
        memory_cost=config["ARGON2_MEMORY_COST"],
        parallelism=config["ARGON2_PARALLELISM"],
    )
    issuer = TokenIssuer(
        access_secret=config["ACCESS_TOKEN_SECRET"],
        refresh_secret=config["REFRESH_TOKEN_SECRET"],
        access_ttl=config["ACCESS_TOKEN_EXPIRES"],
        refresh_ttl=config["REFRESH_TOKEN_EXPIRES"],
        algorithm=config["JWT_ALGORITHM"],
        issuer=config["JWT_ISSUER"],
        audience=config["JWT_AUDIENCE"],
    )
    return AuthSessionManager(users=users, tokens=tokens, hasher=hasher, issuer=issuer)


def create_app(config_name: str | None = None, overrides: dict | None = None) -> Flask:
    """
    Application factory: creates and configures the Flask app.
    The storage handle and the session manager are built exactly once here
    and kept in app.extensions.
    """
    app = Flask(__name__)

    # Load configuration (reads .env via get_config)
    app.config.from_object(get_config(config_name))
    if overrides:
        app.config.update(overrides)

    # Cross-Origin Resource Sharing: enable for dev, configurable for prod
    CORS(app, resources={r"/*": {"origins": app.config.get("CORS_ORIGINS", "*")}})

    # Swagger UI and JSON
    Swagger(app, template=SWAGGER_TEMPLATE, config=SWAGGER_CONFIG)

    # Register global error handlers that return the uniform error envelope
    register_error_handlers(app)

    storage = None
    if app.config["DB_BACKEND"] == "sql":
        storage = DBStorage(app.config["DATABASE_URL"], echo=app.config.get("SQL_ECHO", False))
        storage.reload()
    app.extensions["db_storage"] = storage
    app.extensions["auth_manager"] = build_auth_manager(app.config, storage)
    app.extensions["rate_limiter"] = FixedWindowLimiter(app.config["RATE_LIMIT_WINDOW"].total_seconds())

    from .health import bp as health_bp
    from .auth import bp as auth_bp

    app.register_blueprint(health_bp, url_prefix="/api/v1")
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")

    # Ensure the DB session is removed at the end of each request/app context
    @app.teardown_appcontext
    def remove_session(exception=None):
        if storage is not None:
            storage.close()

    @app.cli.command("sweep-tokens")
    def sweep_tokens():
        """Delete refresh tokens whose expiry has passed."""
        removed = app.extensions["auth_manager"].sweep_expired_tokens()
        click.echo(f"Removed {removed} expired refresh token(s)")

    @app.route("/")
    def root():
        return {
            "message": "Welcome to the To-Do API",
            "docs": "/apidocs/",
            "health": "/api/v1/health",
        }, 200

    return app
