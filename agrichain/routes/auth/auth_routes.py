# agrichain/routes/auth/auth_routes.py

from __future__ import annotations

from flask import Blueprint, jsonify
from flask_jwt_extended import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_jwt,
    get_jwt_identity,
    jwt_required,
)
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt import InvalidTokenError

from agrichain.models.user_models import UserType
from agrichain.routes.helpers import error_response, json_payload, preferences, unauthorized
from agrichain.preferences import has_seen_onboarding
from agrichain.services.database_service import DatabaseService
from agrichain.state.sessions import sessions

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------
def _claims(user) -> dict:
    """Safe subset of profile data embedded in the JWT."""
    return {"role": user.userType, "name": user.name, "email": user.email}


def _issue_tokens(user) -> dict:
    return {
        "access_token": create_access_token(identity=user.id, additional_claims=_claims(user)),
        "refresh_token": create_refresh_token(identity=user.id, additional_claims=_claims(user)),
    }


def _session_response(session, status: int):
    state = session.state
    user = state.current_user
    return jsonify({
        "user": user.model_dump(mode="json"),
        "isFirstTime": not has_seen_onboarding(preferences(), user.id),
        "state": state.snapshot(),
        **_issue_tokens(user),
    }), status


# -------------------------------------------------------------------
# Sign up / sign in / sign out
# -------------------------------------------------------------------
@auth_bp.post("/signup")
def signup():
    data = json_payload()

    if not data.get("agreeToTerms") or not data.get("agreeToPrivacy"):
        return error_response("Please accept the terms and privacy policy")
    if data.get("confirmPassword") is not None and data.get("confirmPassword") != data.get("password"):
        return error_response("Passwords do not match")

    try:
        user_type = UserType((data.get("userType") or "").strip().lower())
    except ValueError:
        return error_response("Invalid user type provided.")

    session = sessions.open()
    state = session.state
    ok = state.sign_up(
        first_name=data.get("firstName", ""),
        last_name=data.get("lastName", ""),
        email=data.get("email", ""),
        password=data.get("password", ""),
        user_type=user_type,
        phone=data.get("phone", ""),
        aadhaar_number=data.get("aadhaarNumber", ""),
        pan_number=data.get("panNumber", ""),
        location=(data.get("location") or "").strip() or None,
    )
    if not ok:
        state.dispose()
        return error_response(state.error or "Sign up failed")
    if state.current_user is None:
        state.dispose()
        return error_response(state.error or "Sign up failed", 500)

    sessions.adopt(state.current_user.id, session)
    return _session_response(session, 201)


@auth_bp.post("/login")
def login():
    data = json_payload()

    session = sessions.open()
    state = session.state
    if not state.sign_in(email=data.get("email", ""), password=data.get("password", "")):
        state.dispose()
        return error_response(state.error or "Sign in failed", 401)
    if state.current_user is None:
        # account exists but the profile never showed up
        state.dispose()
        return error_response(state.error or "User profile not found", 404)

    sessions.adopt(state.current_user.id, session)
    return _session_response(session, 200)


@auth_bp.post("/logout")
@jwt_required()
def logout():
    """Revoke the presented access token (and the refresh token, when sent) and drop the session."""
    uid = get_jwt_identity()
    refresh_claims = None
    refresh_token = json_payload().get("refresh_token")
    if refresh_token:
        try:
            refresh_claims = decode_token(refresh_token)
        except (InvalidTokenError, JWTExtendedException):
            return error_response("Invalid refresh token")

    database = DatabaseService()
    database.revoke_token(get_jwt()["jti"], uid)
    if refresh_claims and refresh_claims.get("sub") == uid and refresh_claims.get("type") == "refresh":
        database.revoke_token(refresh_claims["jti"], uid, "refresh")

    sessions.close(uid)
    return jsonify({"success": True})


@auth_bp.post("/refresh")
@jwt_required(refresh=True)
def refresh():
    claims = get_jwt()
    extra = {k: claims.get(k) for k in ("role", "name", "email")}
    return jsonify({"access_token": create_access_token(identity=get_jwt_identity(), additional_claims=extra)})


@auth_bp.get("/me")
@jwt_required()
def me():
    with sessions.session_for(get_jwt_identity()) as state:
        if state is None or state.current_user is None:
            return unauthorized()
        kyc = DatabaseService().get_kyc_for_user(state.current_user.id)
        return jsonify({
            "user": state.current_user.model_dump(mode="json"),
            "kycStatus": kyc.get("kycStatus") if kyc else None,
        })


@auth_bp.patch("/me")
@jwt_required()
def update_me():
    data = json_payload()
    fields = {"firstName": "first_name", "lastName": "last_name", "phone": "phone", "location": "location"}
    changes = {arg: data[key] for key, arg in fields.items() if data.get(key) is not None}
    if any(not isinstance(v, str) for v in changes.values()):
        return error_response("Profile fields must be strings")

    with sessions.session_for(get_jwt_identity()) as state:
        if state is None or state.current_user is None:
            return unauthorized()
        if not state.update_profile(**changes):
            return error_response(state.error or "Failed to update profile")
        return jsonify({"user": state.current_user.model_dump(mode="json")})
