# backend/bodymap/core/security.py
import bcrypt
import uuid


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(plain_password.encode('utf-8'), hashed_password.encode('utf-8'))


def fresh_id() -> str:
    """Return a new opaque identifier for concept state."""
    return str(uuid.uuid4())
