"""
Account registration, login and bearer-token identity.

Tokens are signed with the app secret through itsdangerous and carry the
user's id, email and username. Request handlers decorated with
``login_required`` find the authenticated user on ``g.current_user``.
"""

import functools
import logging

from flask import current_app, g, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy import select
from werkzeug.exceptions import BadRequest, Unauthorized
from werkzeug.security import check_password_hash, generate_password_hash

import services
from model import User, db
from projector import project_user

logger = logging.getLogger(__name__)

TOKEN_SALT = "auth-token"


def _serializer():
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=TOKEN_SALT)


def issue_token(user):
    return _serializer().dumps(
        {"userId": user.id, "email": user.email, "username": user.username}
    )


def _auth_response(user):
    return {
        "user": project_user(user),
        "token": issue_token(user),
        "expiresIn": current_app.config["TOKEN_EXPIRES_IN"],
    }


def load_user_from_token(token):
    try:
        payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
    except SignatureExpired:
        raise Unauthorized("Token has expired")
    except BadSignature:
        raise Unauthorized("Invalid token")

    user = db.session.get(User, payload.get("userId"))
    if user is None:
        raise Unauthorized("User no longer exists")
    return user


def login_required(view):
    @functools.wraps(view)
    def wrapped(*args, **kwargs):
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token:
            raise Unauthorized("Missing bearer token")
        g.current_user = load_user_from_token(token.strip())
        return view(*args, **kwargs)

    return wrapped


def register(payload):
    if payload.password != payload.password_confirm:
        raise BadRequest("Passwords do not match")
    services.ensure_user_field_free(User.email, payload.email, "Email")
    services.ensure_user_field_free(User.username, payload.username, "Username")

    user = User(
        email=payload.email,
        username=payload.username,
        password=generate_password_hash(payload.password),
    )
    db.session.add(user)
    services.commit_or_conflict("Email or username already exists")
    logger.info("User registered id=%s username=%s", user.id, user.username)
    return _auth_response(user)


def login(payload):
    user = db.session.scalar(select(User).where(User.email == payload.email))
    if user is None or not check_password_hash(user.password, payload.password):
        logger.warning("Failed login for %s", payload.email)
        raise Unauthorized("Invalid credentials")
    return _auth_response(user)
