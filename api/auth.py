"""
Authentication blueprint:
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- GET  /auth/me

The implementation:
- argon2 password hashing and HS256 JWTs (via utils.security)
- short-lived access tokens in the response body, a long-lived refresh token
  in an http-only cookie scoped to the auth path
- only the SHA-256 fingerprint of the refresh token is stored on the user row
- refresh tokens may also be posted in the body as {"refresh_token": "..."}
"""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from api.errors import auth_error_response
from api.services.session_service import SessionService
from models.account_store import AccountStore
from models.schemas.auth import LoginSchema, RefreshSchema
from models.schemas.user import AccountSummarySchema, UserOutSchema
from utils.decorators import IdentityVerifier
from utils.results import AuthError

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
summary_schema = AccountSummarySchema()
user_out_schema = UserOutSchema()


def _set_refresh_cookie(response, token: str):
    cfg = current_app.config
    response.set_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=int(cfg["JWT_REFRESH_TOKEN_EXPIRES"].total_seconds()),
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg.get("COOKIE_DOMAIN"),
        secure=cfg["COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["COOKIE_SAMESITE"],
    )


def _clear_refresh_cookie(response):
    cfg = current_app.config
    response.delete_cookie(
        cfg["REFRESH_COOKIE_NAME"],
        path=cfg["REFRESH_COOKIE_PATH"],
        domain=cfg.get("COOKIE_DOMAIN"),
        secure=cfg["COOKIE_SECURE"],
        httponly=True,
        samesite=cfg["COOKIE_SAMESITE"],
    )


def _token_body(sessions: SessionService, access_token: str) -> dict:
    return {
        "access_token": access_token,
        "token_type": "bearer",
        "expires_in": sessions.access_codec.expires_in,
    }


def create_auth_blueprint(
    sessions: SessionService, verifier: IdentityVerifier, accounts: AccountStore
) -> Blueprint:
    bp = Blueprint("auth", __name__, url_prefix="/auth")

    @bp.post("/login")
    def login():
        """
        Login: returns an access token; the refresh token is set as a cookie
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
                 identifier: { type: string, description: username or email }
                 password: { type: string }
        responses:
          200:
            description: OK (returns access token and user summary)
          401:
            description: Invalid credentials or account not active
          422:
            description: Validation error
        """
        data = login_schema.load(request.get_json(silent=True) or {})
        result = sessions.login(data["identifier"], data["password"])
        if not result.ok:
            return auth_error_response(result.error)

        body = _token_body(sessions, result.value.access_token)
        body["user"] = summary_schema.dump(result.value.account)
        response = jsonify({"data": body})
        _set_refresh_cookie(response, result.value.refresh_token)
        return response, 200

    @bp.post("/refresh")
    def refresh():
        """
        Exchange a refresh token (body or cookie) for a new access token
        ---
        tags:
          - Auth
        consumes:
          - application/json
        parameters:
          -  in: body
             name: body
             required: false
             schema:
               type: object
               properties:
                 refresh_token: { type: string }
        responses:
          200:
            description: OK (returns a new access token)
          401:
            description: Invalid refresh token
        """
        data = refresh_schema.load(request.get_json(silent=True) or {})
        token = data.get("refresh_token") or request.cookies.get(current_app.config["REFRESH_COOKIE_NAME"])
        if not token:
            return auth_error_response(AuthError.INVALID_REFRESH_TOKEN)

        result = sessions.refresh(token)
        if not result.ok:
            return auth_error_response(result.error)

        response = jsonify({"data": _token_body(sessions, result.value.access_token)})
        if result.value.refresh_token:
            _set_refresh_cookie(response, result.value.refresh_token)
        return response, 200

    @bp.post("/logout")
    @verifier.login_required
    def logout():
        """
        Logout: drops the stored refresh token fingerprint and clears the cookie
        ---
        tags:
          - Auth
        security:
          - Bearer: []
        responses:
          200:
            description: Logged out
          401:
            description: Unauthorized
        """
        sessions.logout(g.identity.account_id)
        response = jsonify({"message": "Logged out successfully"})
        _clear_refresh_cookie(response)
        return response, 200

    @bp.get("/me")
    @verifier.login_required
    def me():
        """
        Current user
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
        """
        user = accounts.get(g.identity.account_id)
        return jsonify({"data": user_out_schema.dump(user)}), 200

    return bp
