import logging
import os

from dotenv import load_dotenv
from flask import Blueprint, Flask, g, jsonify, request
from werkzeug.exceptions import HTTPException, InternalServerError

import auth
import services
from auth import login_required
from logging_setup import setup_logging
from model import db
from payloads import (
    CategoryCreate,
    CategoryUpdate,
    Login,
    Registration,
    SubtaskCreate,
    SubtaskUpdate,
    TaskCreate,
    TaskUpdate,
    UserUpdate,
)
from projector import project_user
from task_filters import TaskFilter

logger = logging.getLogger(__name__)

api = Blueprint("api", __name__)

DEFAULT_TOKEN_MAX_AGE = 7 * 24 * 3600


def _json_body():
    return request.get_json(silent=True)


def _actor_id():
    return g.current_user.id


# Auth routes
@api.route("/auth/register", methods=["POST"])
def register():
    return jsonify(auth.register(Registration.from_json(_json_body()))), 201


@api.route("/auth/login", methods=["POST"])
def login():
    return jsonify(auth.login(Login.from_json(_json_body())))


@api.route("/auth/me")
@login_required
def me():
    return jsonify(project_user(g.current_user))


# Task routes
@api.route("/tasks", methods=["POST"])
@login_required
def create_task():
    return jsonify(services.create_task(TaskCreate.from_json(_json_body()), _actor_id())), 201


@api.route("/tasks")
@login_required
def list_tasks():
    task_filter = TaskFilter.from_args(request.args, _actor_id())
    return jsonify(services.list_tasks(task_filter))


@api.route("/tasks/stats/summary")
@login_required
def task_stats():
    return jsonify(services.get_task_stats(_actor_id()))


@api.route("/tasks/<int:task_id>")
@login_required
def get_task(task_id):
    return jsonify(services.get_task(task_id, _actor_id()))


@api.route("/tasks/<int:task_id>", methods=["PATCH"])
@login_required
def update_task(task_id):
    payload = TaskUpdate.from_json(_json_body())
    return jsonify(services.update_task(task_id, payload, _actor_id()))


@api.route("/tasks/<int:task_id>", methods=["DELETE"])
@login_required
def delete_task(task_id):
    services.delete_task(task_id, _actor_id())
    return "", 204


@api.route("/tasks/<int:task_id>/toggle-complete", methods=["POST"])
@login_required
def toggle_task(task_id):
    return jsonify(services.toggle_task(task_id, _actor_id()))


# Category routes
@api.route("/categories", methods=["POST"])
@login_required
def create_category():
    payload = CategoryCreate.from_json(_json_body())
    return jsonify(services.create_category(payload, _actor_id())), 201


@api.route("/categories")
@login_required
def list_categories():
    return jsonify(services.list_categories(_actor_id()))


@api.route("/categories/<int:category_id>")
@login_required
def get_category(category_id):
    return jsonify(services.get_category(category_id, _actor_id()))


@api.route("/categories/<int:category_id>", methods=["PATCH"])
@login_required
def update_category(category_id):
    payload = CategoryUpdate.from_json(_json_body())
    return jsonify(services.update_category(category_id, payload, _actor_id()))


@api.route("/categories/<int:category_id>", methods=["DELETE"])
@login_required
def delete_category(category_id):
    services.delete_category(category_id, _actor_id())
    return "", 204


# Subtask routes
@api.route("/subtasks", methods=["POST"])
@login_required
def create_subtask():
    payload = SubtaskCreate.from_json(_json_body())
    return jsonify(services.create_subtask(payload, _actor_id())), 201


@api.route("/subtasks/<int:subtask_id>", methods=["PATCH"])
@login_required
def update_subtask(subtask_id):
    payload = SubtaskUpdate.from_json(_json_body())
    return jsonify(services.update_subtask(subtask_id, payload, _actor_id()))


@api.route("/subtasks/<int:subtask_id>", methods=["DELETE"])
@login_required
def delete_subtask(subtask_id):
    services.delete_subtask(subtask_id, _actor_id())
    return "", 204


@api.route("/subtasks/<int:subtask_id>/toggle-complete", methods=["POST"])
@login_required
def toggle_subtask(subtask_id):
    return jsonify(services.toggle_subtask(subtask_id, _actor_id()))


# User routes
@api.route("/users/<int:user_id>")
@login_required
def get_user(user_id):
    return jsonify(services.get_user(user_id, _actor_id()))


@api.route("/users/<int:user_id>", methods=["PATCH"])
@login_required
def update_user(user_id):
    payload = UserUpdate.from_json(_json_body())
    return jsonify(services.update_user(user_id, payload, _actor_id()))


@api.route("/users/<int:user_id>", methods=["DELETE"])
@login_required
def delete_user(user_id):
    services.delete_user(user_id, _actor_id())
    return "", 204


# Error handlers
def handle_http_error(error):
    response = jsonify(
        {"statusCode": error.code, "error": error.name, "message": error.description}
    )
    response.status_code = error.code
    return response


def handle_unexpected_error(error):
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    db.session.rollback()
    return handle_http_error(InternalServerError())


def create_app(test_config=None):
    # Load environment variables
    load_dotenv()

    # Flask setup
    app = Flask(__name__, instance_relative_config=True)

    if test_config is None:
        secret = os.getenv("FLASK_SECRET_KEY")
        if not secret:
            raise RuntimeError("FLASK_SECRET_KEY not set in .env")
        app.secret_key = secret

        # Ensure instance folder exists
        os.makedirs(app.instance_path, exist_ok=True)

        # SQLite unless a database URL is given
        app.config["SQLALCHEMY_DATABASE_URI"] = os.getenv(
            "DATABASE_URL", "sqlite:///" + os.path.join(app.instance_path, "tasks.db")
        )
        app.config["TOKEN_MAX_AGE"] = int(os.getenv("TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE))
        app.config["TOKEN_EXPIRES_IN"] = os.getenv("TOKEN_EXPIRES_IN", "7d")
        app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()
    else:
        app.config.setdefault("TOKEN_MAX_AGE", DEFAULT_TOKEN_MAX_AGE)
        app.config.setdefault("TOKEN_EXPIRES_IN", "7d")
        app.config.setdefault("LOG_LEVEL", "INFO")
        app.config.update(test_config)

    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.json.sort_keys = False

    setup_logging(app.config["LOG_LEVEL"])

    # Initialize SQLAlchemy
    db.init_app(app)

    app.register_blueprint(api)
    app.register_error_handler(HTTPException, handle_http_error)
    app.register_error_handler(Exception, handle_unexpected_error)

    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        db.create_all()
        logger.info("Database tables created")

    logger.info("App ready db=%s", app.config["SQLALCHEMY_DATABASE_URI"].split(":", 1)[0])
    return app


# Init DB
if __name__ == "__main__":
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(debug=True)
