import jwt
from datetime import datetime, timedelta

JWT_ALGORITHM = "HS256"


def create_access_token(user_id, role, secret, expires_in_minutes=60):
    """
    Generate a JWT access token for a user.
    """
    payload = {
        "user_id": str(user_id),
        "role": role,
        "exp": datetime.utcnow() + timedelta(minutes=expires_in_minutes),
        "iat": datetime.utcnow()
    }

    token = jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)
    return token


def decode_token(token, secret):
    """
    Verify and decode a JWT token.
    Returns payload dict if valid, or None if invalid/expired.
    """
    try:
        decoded = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
        return decoded
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
