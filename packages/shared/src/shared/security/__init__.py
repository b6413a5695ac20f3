from shared.security.jwt_utils import AuthTokenPayload, JWTManager, TokenError
from shared.security.passwords import generate_otp, hash_password, verify_password
from shared.security.sanitize import validate_search_input

__all__ = [
    "AuthTokenPayload",
    "JWTManager",
    "TokenError",
    "generate_otp",
    "hash_password",
    "validate_search_input",
    "verify_password",
]
