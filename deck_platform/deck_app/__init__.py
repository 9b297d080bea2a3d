"""deck_app package: application factory and blueprint registration."""

from __future__ import annotations

import os
from time import perf_counter

import click
from flask import Flask, g, request
from flask_jwt_extended import JWTManager
from sqlalchemy import event, inspect

from config import resolve_config
from .blueprints import BLUEPRINTS
from .extensions import cors, db, jwt, limiter, migrate
from .logging_config import assign_request_id, configure_logging
from .metrics import record_request
from .utils import hash_password


def create_app(config_name: str | None = None) -> Flask:
    """Application factory used by both CLI and runtime servers."""

    app = Flask(__name__)
    _configure_app(app, config_name)
    configure_logging(app)
    _register_extensions(app)
    _register_hooks(app)
    _register_blueprints(app)
    _register_shellcontext(app)
    _register_cli(app)
    _register_bootstrap(app)
    _register_request_hooks(app)

    return app


def _configure_app(app: Flask, config_name: str | None) -> None:
    env_name = config_name or os.getenv("FLASK_CONFIG")
    config_obj = resolve_config(env_name)
    app.config.from_object(config_obj)


def _register_extensions(app: Flask) -> None:
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    _configure_jwt(jwt)
    _configure_sqlite_engine(app)
    cors.init_app(
        app,
        resources={r"/api/*": {"origins": app.config.get("CORS_ORIGINS", "*")}},
        supports_credentials=True,
    )
    limiter.default_limits = app.config.get("RATE_LIMIT_DEFAULTS", [])
    limiter.init_app(app)


def _register_hooks(app: Flask) -> None:
    from .services.hook_dispatcher import build_hook_dispatcher

    app.extensions["hook_dispatcher"] = build_hook_dispatcher(app.config)


def _register_blueprints(app: Flask) -> None:
    for blueprint, prefix in BLUEPRINTS:
        app.register_blueprint(blueprint, url_prefix=prefix)


def _register_shellcontext(app: Flask) -> None:
    # Lazy import inside function to avoid circular dependencies.
    from . import models

    @app.shell_context_processor
    def shell_context():
        return {
            "db": db,
            "User": models.User,
            "Deck": models.Deck,
            "CommunityDeck": models.CommunityDeck,
        }


def _configure_jwt(jwt_manager: JWTManager) -> None:
    from flask import jsonify

    from .models import User

    @jwt_manager.user_lookup_loader
    def user_lookup_callback(_jwt_header, jwt_data):
        identity = jwt_data.get("sub")
        if identity is None:
            return None
        try:
            identity_int = int(identity)
        except (TypeError, ValueError):
            return None
        return db.session.get(User, identity_int)

    @jwt_manager.user_lookup_error_loader
    def user_lookup_error_callback(_jwt_header, _jwt_data):
        return jsonify({"message": "User not found"}), 401

    @jwt_manager.expired_token_loader
    def expired_token_callback(jwt_header, jwt_data):
        return jsonify({"message": "Token has expired"}), 401

    @jwt_manager.invalid_token_loader
    def invalid_token_callback(error_string):
        return jsonify({"message": "Invalid token", "error": error_string}), 401

    @jwt_manager.unauthorized_loader
    def missing_token_callback(error_string):
        return jsonify({"message": "Missing authorization token"}), 401


def _register_bootstrap(app: Flask) -> None:
    @app.before_request
    def ensure_root_admin():
        if not app.config.get("_SCHEMA_READY"):
            try:
                _ensure_schema(app)
                app.config["_SCHEMA_READY"] = True
            except Exception as exc:  # pragma: no cover - defensive logging
                app.logger.debug("Schema bootstrap skipped: %s", exc)
                app.config["_SCHEMA_READY"] = False
                return

        if app.config.get("_ROOT_ADMIN_READY"):
            return

        try:
            _ensure_root_admin(app)
            app.config["_ROOT_ADMIN_READY"] = True
        except Exception as exc:  # pragma: no cover - defensive logging
            app.logger.debug("Root admin bootstrap skipped: %s", exc)
            app.config["_ROOT_ADMIN_READY"] = False


def _register_request_hooks(app: Flask) -> None:
    @app.before_request
    def start_request():
        assign_request_id()
        g.request_started_at = perf_counter()

    @app.after_request
    def finalize(response):
        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id
        started = getattr(g, "request_started_at", None)
        latency = perf_counter() - started if started else 0.0
        endpoint = request.endpoint or request.path
        record_request(request.method, endpoint, response.status_code, latency)
        return response


def _configure_sqlite_engine(app: Flask) -> None:
    uri = app.config.get("SQLALCHEMY_DATABASE_URI", "")
    if not uri.startswith("sqlite"):
        return
    busy_timeout_ms = int(app.config.get("SQLITE_BUSY_TIMEOUT_MS", 15000))

    with app.app_context():
        engine = db.engine

        @event.listens_for(engine, "connect")
        def _set_sqlite_pragmas(dbapi_connection, connection_record):  # pragma: no cover
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute(f"PRAGMA busy_timeout={busy_timeout_ms};")
                cursor.execute("PRAGMA synchronous=NORMAL;")
            finally:
                cursor.close()


def _ensure_schema(app: Flask) -> None:
    with app.app_context():
        db.create_all()


def _ensure_root_admin(app: Flask) -> None:
    from .models import User

    with app.app_context():
        inspector = inspect(db.engine)
        if not inspector.has_table("users"):
            return
        if User.query.filter_by(is_root=True).first():
            return

        username = app.config["ROOT_ADMIN_USERNAME"].lower()
        root = User(
            email=app.config["ROOT_ADMIN_EMAIL"].lower(),
            username=username,
            display_name=username,
            password_hash=hash_password(app.config["ROOT_ADMIN_PASSWORD"]),
            role="admin",
            is_root=True,
        )
        db.session.add(root)
        db.session.commit()


def _register_cli(app: Flask) -> None:
    @app.cli.command("seed-users")
    @click.option(
        "--skip-learner",
        is_flag=True,
        default=False,
        help="Skip creating the sample learner account.",
    )
    def seed_users(skip_learner: bool) -> None:
        """Seed the root admin and a sample learner for local testing."""

        from .models import User

        created = []
        with app.app_context():
            _ensure_schema(app)
            if not User.query.filter_by(is_root=True).first():
                _ensure_root_admin(app)
                created.append("root")

            if not skip_learner:
                learner_email = app.config["SEED_USER_EMAIL"].lower()
                learner_username = app.config["SEED_USER_USERNAME"].lower()
                if not User.query.filter_by(email=learner_email).first():
                    db.session.add(
                        User(
                            email=learner_email,
                            username=learner_username,
                            display_name=learner_username,
                            password_hash=hash_password(app.config["SEED_USER_PASSWORD"]),
                            role="user",
                            is_root=False,
                        )
                    )
                    db.session.commit()
                    created.append("learner")

            if created:
                click.echo(f"Seeded accounts: {', '.join(created)}")
            else:
                click.echo("Seed users already exist; nothing to do.")

    @app.cli.group("decks")
    def decks_group():
        """Community publishing commands."""

    @decks_group.command("publish")
    @click.option("--deck-id", type=int, required=True, help="Owned deck to publish.")
    @click.option("--user-id", type=int, required=True, help="Owner of the deck.")
    @click.option("--category", required=True)
    @click.option("--subtopic", required=True)
    def publish_command(deck_id: int, user_id: int, category: str, subtopic: str):
        """Publish or refresh a deck in the community catalog."""

        from .services import publication_service
        from .services.errors import ContentError

        with app.app_context():
            user = _cli_user(user_id)
            try:
                community_deck, outcome = publication_service.publish(
                    user, deck_id, {"category": category, "subtopic": subtopic}
                )
            except ContentError as exc:
                raise click.ClickException(_describe_error(exc)) from exc
            click.echo(
                f"Deck {deck_id} {outcome}: community deck {community_deck.id} "
                f"at version {community_deck.version}."
            )

    @decks_group.command("import")
    @click.option("--community-deck-id", type=int, required=True)
    @click.option("--user-id", type=int, required=True, help="User receiving the copy.")
    def import_command(community_deck_id: int, user_id: int):
        """Import a community deck into a user's library, or resync it."""

        from .services import import_service
        from .services.errors import ContentError

        with app.app_context():
            user = _cli_user(user_id)
            try:
                deck, outcome = import_service.import_or_sync(user, community_deck_id)
            except ContentError as exc:
                raise click.ClickException(_describe_error(exc)) from exc
            click.echo(f"Community deck {community_deck_id} {outcome} as deck {deck.id}.")


def _cli_user(user_id: int):
    from .models import User

    user = db.session.get(User, user_id)
    if user is None:
        raise click.ClickException(f"User {user_id} not found.")
    return user


def _describe_error(exc) -> str:
    message = exc.payload.get("message")
    return f"{exc.code}: {message}" if message else exc.code
