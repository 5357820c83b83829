from __future__ import annotations

from flask import Blueprint, abort, g, jsonify, request

from api.services.session_service import SessionService
from models.account_store import AccountStore
from models.schemas.user import UserCreateSchema, UserOutSchema, UserUpdateSchema
from models.user import Role, Status
from utils.decorators import IdentityVerifier
from utils.security import PasswordHasher

ADMINS = (Role.ADMIN, Role.SUPER_ADMIN)

user_create_schema = UserCreateSchema()
user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def create_users_blueprint(
    accounts: AccountStore,
    sessions: SessionService,
    hasher: PasswordHasher,
    verifier: IdentityVerifier,
) -> Blueprint:
    bp = Blueprint("users", __name__)

    def _get_or_404(user_id: str):
        user = accounts.get(user_id)
        if not user or user.status == Status.DELETED:
            abort(404)
        return user

    def _forbid_touching_super_admin(user):
        if user.role == Role.SUPER_ADMIN and g.identity.role != Role.SUPER_ADMIN.value:
            abort(403, description="Only a super admin can modify a super admin")

    @bp.get("/users")
    @verifier.login_required
    def list_users():
        """
        List users
        ---
        tags:
          - Users
        security:
          - Bearer: []
        responses:
          200: { description: OK }
          401: { description: Unauthorized }
        """
        return jsonify({"data": user_list_out_schema.dump(accounts.list())}), 200

    @bp.get("/users/<user_id>")
    @verifier.login_required
    def get_user(user_id: str):
        """
        Get a user by id
        ---
        tags:
          - Users
        security:
          - Bearer: []
        parameters:
          - in: path
            name: user_id
            type: string
            required: true
        responses:
          200: { description: OK }
          404: { description: Not found }
        """
        return jsonify({"data": user_out_schema.dump(_get_or_404(user_id))}), 200

    @bp.post("/users")
    @verifier.roles_required(ADMINS)
    def create_user():
        """
        Create a user - admin
        ---
        tags:
          - Users
        security:
          - Bearer: []
        consumes:
          - application/json
        parameters:
          - in: body
            name: body
            schema:
              type: object
              properties:
                username: { type: string }
                email: { type: string }
                password: { type: string }
                name: { type: string }
                role: { type: string, enum: [USER, ADMIN, SUPER_ADMIN] }
        responses:
          201: { description: Created }
          403: { description: Forbidden }
          409: { description: Username or email taken }
          422: { description: Validation error }
        """
        data = user_create_schema.load(request.get_json(silent=True) or {})
        if accounts.exists(username=data["username"], email=data["email"]):
            abort(409, description="Username or email already registered")
        if data["role"] == Role.SUPER_ADMIN and g.identity.role != Role.SUPER_ADMIN.value:
            abort(403, description="Only a super admin can create a super admin")

        user = accounts.create(
            username=data["username"],
            email=data["email"],
            password_hash=hasher.hash(data["password"]),
            name=data.get("name"),
            role=data["role"],
            status=data["status"],
            phone_number=data.get("phone_number"),
        )
        return jsonify({"data": user_out_schema.dump(user)}), 201

    @bp.patch("/users/<user_id>")
    @verifier.roles_required(ADMINS)
    def update_user(user_id: str):
        """
        Update a user (partial) - admin. A new password revokes all sessions.
        ---
        tags:
          - Users
        security:
          - Bearer: []
        parameters:
          - in: path
            name: user_id
            type: string
            required: true
          - in: body
            name: body
            schema:
              type: object
              properties:
                username: { type: string }
                email: { type: string }
                password: { type: string }
                name: { type: string }
                role: { type: string }
                status: { type: string, enum: [ACTIVE, INACTIVE] }
        responses:
          200: { description: OK }
          403: { description: Forbidden }
          404: { description: Not found }
          409: { description: Username or email taken }
          422: { description: Validation error }
        """
        user = _get_or_404(user_id)
        _forbid_touching_super_admin(user)
        data = user_update_schema.load(request.get_json(silent=True) or {})
        if accounts.exists(username=data.get("username"), email=data.get("email"), exclude_id=user.id):
            abort(409, description="Username or email already registered")
        if data.get("role") == Role.SUPER_ADMIN and g.identity.role != Role.SUPER_ADMIN.value:
            abort(403, description="Only a super admin can grant super admin")

        password = data.pop("password", None)
        if data:
            accounts.update(user.id, **data)
        if password:
            sessions.change_password(user.id, password)
        return jsonify({"data": user_out_schema.dump(accounts.get(user.id))}), 200

    @bp.delete("/users/<user_id>")
    @verifier.roles_required([Role.SUPER_ADMIN])
    def delete_user(user_id: str):
        """
        Soft delete a user (status DELETED, all sessions revoked) - super admin
        ---
        tags:
          - Users
        security:
          - Bearer: []
        parameters:
          - in: path
            name: user_id
            type: string
            required: true
        responses:
          204: { description: Deleted }
          404: { description: Not found }
        """
        user = _get_or_404(user_id)
        accounts.bump_refresh_version(user.id, status=Status.DELETED)
        return ("", 204)

    @bp.post("/users/<user_id>/sessions/revoke")
    @verifier.roles_required(ADMINS)
    def revoke_sessions(user_id: str):
        """
        Log a user out everywhere - admin
        ---
        tags:
          - Users
        security:
          - Bearer: []
        parameters:
          - in: path
            name: user_id
            type: string
            required: true
        responses:
          200: { description: Sessions revoked }
          403: { description: Forbidden }
          404: { description: Not found }
        """
        user = _get_or_404(user_id)
        _forbid_touching_super_admin(user)
        sessions.revoke_all_sessions(user.id)
        return jsonify({"message": "Sessions revoked"}), 200

    return bp
