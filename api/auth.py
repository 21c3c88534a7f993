"""
Authentication blueprint (mounted under /api/v1):
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/profile
- PUT  /auth/profile (PATCH also accepted)
- GET  /auth/verify

The routes only parse the request and serialize the result; all session
rules live in services.auth_service.AuthSessionManager, which the app
factory stores in app.extensions["auth_manager"].
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, g, current_app

from models.schemas.user import (
    UserRegisterSchema,
    UserLoginSchema,
    RefreshTokenSchema,
    ProfileUpdateSchema,
)
from services.auth_service import AuthSessionManager
from utils.decorators import jwt_required, rate_limited

bp = Blueprint("auth", __name__)

register_schema = UserRegisterSchema()
login_schema = UserLoginSchema()
refresh_schema = RefreshTokenSchema()
profile_update_schema = ProfileUpdateSchema()


def get_auth_manager() -> AuthSessionManager:
    return current_app.extensions["auth_manager"]


@bp.post("/register")
@rate_limited("AUTH_RATE_LIMIT")
def register():
    """
    register a new user.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            first_name: { type: string }
            last_name: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    data = register_schema.load(payload)
    user = get_auth_manager().register(
        email=data["email"],
        password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
    )
    return jsonify({"data": user}), 201


@bp.post("/login")
@rate_limited("LOGIN_RATE_LIMIT")
def login():
    """
    Login: return access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
    """
    payload = request.get_json(silent=True) or {}
    data = login_schema.load(payload)
    session = get_auth_manager().login(data["email"], data["password"])
    return jsonify({"data": session}), 200


@bp.post("/refresh")
@rate_limited("AUTH_RATE_LIMIT")
def refresh():
    """
    Use refresh token to obtain new access and refresh tokens (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns a new token pair)
      401:
        description: Invalid, expired or revoked refresh token
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)
    session = get_auth_manager().refresh(data["refresh_token"])
    return jsonify({"data": session}), 200


@bp.post("/logout")
@rate_limited("AUTH_RATE_LIMIT")
def logout():
    """
    logout: revokes the refresh token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      204:
        description: ""
    """
    payload = request.get_json(silent=True) or {}
    data = refresh_schema.load(payload)
    get_auth_manager().logout(data["refresh_token"])
    return ("", 204)


@bp.get("/profile")
@rate_limited("AUTH_RATE_LIMIT")
@jwt_required()
def get_profile():
    """
    Get current user profile.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User not found
    """
    user = get_auth_manager().get_profile(g.access_token)
    return jsonify({"data": user}), 200


@bp.route("/profile", methods=["PUT", "PATCH"])
@rate_limited("AUTH_RATE_LIMIT")
@jwt_required()
def update_profile():
    """
    Update current user profile.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             first_name: { type: string }
             last_name: { type: string }
             password: { type: string }
             is_active: { type: boolean }
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      422:
        description: Validation error
    """
    payload = request.get_json(silent=True) or {}
    patch = profile_update_schema.load(payload)
    user = get_auth_manager().update_profile(g.access_token, patch)
    return jsonify({"data": user}), 200


@bp.get("/verify")
@rate_limited("AUTH_RATE_LIMIT")
@jwt_required()
def verify():
    """
    Verify current authentication status.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Authenticated
      401:
        description: Unauthorized
    """
    result = get_auth_manager().verify(g.access_token)
    return jsonify({"data": result}), 200
