from enum import Enum
from typing import Optional

from schemas import Session


class Access(str, Enum):
    ALLOWED = "allowed"
    FORBIDDEN = "forbidden"


HOME_PATHS = {"admin": "/admin", "owner": "/owner", "user": "/user"}
LOGIN_PATH = "/login"


def check_access(session: Optional[Session], required_role: str) -> Access:
    """Client-side role check run before a screen fetches anything.

    Advisory only: the server validates every request again, and a 401/403
    it returns later wins over whatever this concluded.
    """
    if session is None or session.user.role != required_role:
        return Access.FORBIDDEN
    return Access.ALLOWED


def home_path(session: Optional[Session]) -> str:
    if session is None:
        return LOGIN_PATH
    return HOME_PATHS.get(session.user.role, LOGIN_PATH)
