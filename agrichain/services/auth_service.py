# agrichain/services/auth_service.py

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from flask_bcrypt import Bcrypt

from agrichain import validators
from agrichain.models.common import generate_id, now_utc
from agrichain.models.user_models import AuthIdentity, UserType
from agrichain.services.database_service import DatabaseService

ACCOUNTS = "auth_accounts"

bcrypt = Bcrypt()

AUTH_ERROR_MESSAGES = {
    "weak-password": "The password provided is too weak.",
    "email-already-in-use": "An account already exists for this email.",
    "invalid-email": "Invalid email address format.",
    "operation-not-allowed": "Email/password accounts are not enabled.",
    "user-not-found": "No account found for this email.",
    "wrong-password": "Incorrect password.",
    "user-disabled": "This account has been disabled.",
    "invalid-argument": "Please check the details you entered.",
}

USER_ID_PREFIX = {
    UserType.farmer.value: "FRM",
    UserType.buyer.value: "BUY",
}

AuthListener = Callable[[Optional[AuthIdentity]], None]


class AuthError(Exception):
    def __init__(self, code: str, message: Optional[str] = None):
        self.code = code
        self.message = message or AUTH_ERROR_MESSAGES.get(code, "Authentication failed. Please try again.")
        super().__init__(self.message)


class AuthResult:
    def __init__(self, success: bool, message: Optional[str] = None, identity: Optional[AuthIdentity] = None):
        self.success = success
        self.message = message
        self.identity = identity

    def __repr__(self):
        return f"AuthResult(success={self.success!r}, message={self.message!r})"


def _norm(v: Optional[str]) -> str:
    return (v or "").strip()


def _norm_email(v: Optional[str]) -> str:
    return (v or "").strip().lower()


def generate_user_id(user_type: str) -> Optional[str]:
    prefix = USER_ID_PREFIX.get((user_type or "").strip().lower())
    if not prefix:
        return None
    return generate_id(prefix)


class AuthService:
    """
    Email/password identity provider over the `auth_accounts` collection.

    Holds the identity of one client session and notifies subscribers of
    every identity change (sign-up, sign-in, restore, sign-out).
    """

    def __init__(self, db=None, database_service: Optional[DatabaseService] = None):
        self._database = database_service or DatabaseService(db)
        self._current: Optional[AuthIdentity] = None
        self._listeners: List[AuthListener] = []

    @property
    def accounts(self):
        return self._database.db[ACCOUNTS]

    @property
    def current_user(self) -> Optional[AuthIdentity]:
        return self._current

    # ------------------------------------------------------------
    # Identity stream
    # ------------------------------------------------------------
    def auth_state_changes(self, listener: AuthListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, identity: Optional[AuthIdentity]) -> None:
        self._current = identity
        for listener in list(self._listeners):
            listener(identity)

    @staticmethod
    def _identity(account: Dict[str, Any]) -> AuthIdentity:
        return AuthIdentity(
            uid=account["uid"],
            email=account.get("email", ""),
            display_name=account.get("displayName", ""),
        )

    # ------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------
    def create_account(self, email: str, password: str, user_type: str, display_name: str = "") -> AuthIdentity:
        email = _norm_email(email)
        if validators.validate_email(email):
            raise AuthError("invalid-email")
        if validators.validate_signup_password(password):
            raise AuthError("weak-password")
        if self.accounts.find_one({"email": email}):
            raise AuthError("email-already-in-use")

        uid = generate_user_id(user_type)
        if not uid:
            raise AuthError("invalid-argument", "Invalid user type provided.")

        account = {
            "uid": uid,
            "email": email,
            "password": bcrypt.generate_password_hash(password).decode("utf-8"),
            "displayName": display_name,
            "disabled": False,
            "createdAt": now_utc(),
        }
        self.accounts.insert_one(account)
        return self._identity(account)

    def sign_up(
        self,
        first_name: str,
        last_name: str,
        email: str,
        password: str,
        user_type,
        phone: str,
        aadhaar_number: str = "",
        pan_number: str = "",
        location: Optional[str] = None,
    ) -> AuthResult:
        """
        Create the account, its profile document and optional KYC record,
        then emit the new identity.
        """
        user_type = getattr(user_type, "value", user_type) or ""
        form = {
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "phone": phone,
            "password": password,
        }
        message = validators.validate_signup(form)
        if message:
            return AuthResult(False, message)

        first_name, last_name = _norm(first_name), _norm(last_name)
        name = f"{first_name} {last_name}"
        try:
            identity = self.create_account(email, password, user_type, display_name=name)
        except AuthError as e:
            return AuthResult(False, e.message)

        now = now_utc()
        user_data = {
            "id": identity.uid,
            "authUid": identity.uid,
            "firstName": first_name,
            "lastName": last_name,
            "name": name,
            "email": identity.email,
            "phone": _norm(phone),
            "userType": user_type,
            "location": location,
            "isActive": True,
            "createdAt": now.isoformat(),
            "updatedAt": now.isoformat(),
            "walletAddress": "",
            "walletBalance": 0.0,
            "metadata": {},
        }
        if not self._database.create_user(user_data):
            self.accounts.delete_one({"uid": identity.uid})
            return AuthResult(False, "Failed to create user document")

        aadhaar_number, pan_number = _norm(aadhaar_number), _norm(pan_number).upper()
        kyc_provided = bool(aadhaar_number or pan_number)
        if kyc_provided:
            self._database.create_kyc_data({
                "id": f"kyc_{identity.uid}_{int(now.timestamp() * 1000)}",
                "userId": identity.uid,
                "aadhaarNumber": aadhaar_number,
                "panNumber": pan_number,
                "kycStatus": validators.kyc_status(aadhaar_number, pan_number),
                "aadhaarVerified": 0,
                "panVerified": 0,
                "digiLockerVerified": 0,
                "createdAt": now.isoformat(),
                "updatedAt": now.isoformat(),
            })

        self._database.log_security_event(identity.uid, "user_registered", {
            "email": identity.email,
            "user_type": user_type,
            "kyc_provided": str(kyc_provided).lower(),
            "timestamp": now.isoformat(),
        })

        print(f"✅ Account created: {identity.uid} ({user_type})")
        self._emit(identity)
        return AuthResult(True, identity=identity)

    def sign_in(self, email: str, password: str) -> AuthResult:
        email = _norm_email(email)
        message = validators.validate_email(email) or validators.validate_login_password(password)
        if message:
            return AuthResult(False, message)

        account = self.accounts.find_one({"email": email})
        if not account:
            return AuthResult(False, AUTH_ERROR_MESSAGES["user-not-found"])
        if account.get("disabled"):
            return AuthResult(False, AUTH_ERROR_MESSAGES["user-disabled"])
        if not bcrypt.check_password_hash(account["password"], password):
            return AuthResult(False, AUTH_ERROR_MESSAGES["wrong-password"])

        identity = self._identity(account)
        self._emit(identity)
        return AuthResult(True, identity=identity)

    def restore(self, uid: str) -> Optional[AuthIdentity]:
        """Re-attach an existing account (token-authenticated request) to this session."""
        account = self.accounts.find_one({"uid": uid})
        if not account or account.get("disabled"):
            return None
        identity = self._identity(account)
        self._emit(identity)
        return identity

    def sign_out(self) -> None:
        if self._current is not None:
            self._emit(None)
