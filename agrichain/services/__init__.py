from agrichain.services.auth_service import AuthError, AuthResult, AuthService
from agrichain.services.database_service import DatabaseService, DatabaseServiceError

__all__ = [
    "AuthError",
    "AuthResult",
    "AuthService",
    "DatabaseService",
    "DatabaseServiceError",
]
