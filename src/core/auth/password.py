import bcrypt

from src.core.exceptions import ValidationError

# bcrypt only hashes the first 72 bytes and refuses longer input
MAX_PASSWORD_BYTES = 72
PASSWORD_TOO_LONG = f"Password must be at most {MAX_PASSWORD_BYTES} bytes."


def check_password_length(plain_password: str) -> str:
    """Pydantic validator body: reject passwords bcrypt cannot hash."""
    if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(PASSWORD_TOO_LONG)
    return plain_password


def hash_password(plain_password: str) -> str:
    if len(plain_password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(PASSWORD_TOO_LONG, field="password")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(plain_password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Invalid stored hash, or a password bcrypt refuses to hash
        return False
