from access_gate import Access, check_access, home_path
from conftest import make_session


def test_missing_session_is_forbidden():
    assert check_access(None, "user") is Access.FORBIDDEN


def test_role_must_match_exactly():
    assert check_access(make_session("admin"), "admin") is Access.ALLOWED
    assert check_access(make_session("admin"), "owner") is Access.FORBIDDEN
    assert check_access(make_session("user"), "admin") is Access.FORBIDDEN


def test_home_path_per_role():
    assert home_path(None) == "/login"
    assert home_path(make_session("user")) == "/user"
    assert home_path(make_session("owner")) == "/owner"
    assert home_path(make_session("admin")) == "/admin"
