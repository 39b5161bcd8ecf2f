from schemas import AuthContext
from security import create_access_token


def ctx_for(user) -> AuthContext:
    return AuthContext(user_id=user.id, role=user.role)


def auth_headers(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}
