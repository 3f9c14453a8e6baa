# Utils/auth_decorator.py
from functools import wraps
from flask import request, current_app
from Utils.jwt_utils import decode_token
from Utils.identity import Caller
from Utils.appError import AuthMissingError, AuthInvalidError, ForbiddenError


def _bearer_token():
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    try:
        token_type, token_val = auth_header.split(" ")
    except ValueError:
        return None
    if token_type.lower() == "bearer" and token_val:
        return token_val
    return None


def token_required(f):
    """Ensure that a valid JWT is present and pass the resulting Caller to the view."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = _bearer_token()
        if not token:
            raise AuthMissingError()

        decoded = decode_token(token, current_app.config["JWT_SECRET"])
        if not decoded:
            raise AuthInvalidError()

        caller = Caller.from_claims(decoded)
        if caller is None:
            raise AuthInvalidError()

        return f(caller, *args, **kwargs)

    return decorated


def roles_required(*allowed_roles):
    """
    Restrict access to callers with specific roles.
    Example:
        @roles_required("admin")
        def order_stats(caller): ...
    """
    def wrapper(f):
        @wraps(f)
        @token_required
        def decorated(caller, *args, **kwargs):
            if caller.role.value not in allowed_roles:
                raise ForbiddenError(
                    f"Access denied. Requires role(s): {', '.join(allowed_roles)}"
                )
            return f(caller, *args, **kwargs)

        return decorated
    return wrapper
