import asyncio

import httpx

from conftest import PASSWORD
from error_normalizer import FIX_FIELDS_SUMMARY, TRANSPORT_SUMMARY
from main import RatingsApp
from view_sync import ScreenState


def test_login_starts_session_and_routes_by_role(stub_app):
    async def scenario():
        assert stub_app.home_path() == "/login"
        session = await stub_app.login("owner@example.com", PASSWORD)
        assert session.user.role == "owner"
        assert stub_app.session is session
        assert stub_app.home_path() == "/owner"
        await stub_app.aclose()

    asyncio.run(scenario())


def test_bad_credentials_surface_server_message(stub_app):
    async def scenario():
        assert await stub_app.login("owner@example.com", "wrong-password") is None
        assert stub_app.session is None
        assert stub_app.error_summary == "Invalid email or password"
        await stub_app.aclose()

    asyncio.run(scenario())


def test_login_validates_before_network(stub_app, stub_db):
    async def scenario():
        assert await stub_app.login("not-an-email", "") is None
        assert set(stub_app.field_errors) == {"email", "password"}
        await stub_app.aclose()

    asyncio.run(scenario())
    assert stub_db.requests == []


def test_signup_creates_session(stub_app, stub_db):
    async def scenario():
        session = await stub_app.signup(
            {"name": "  Dana Newcomer ", "email": "dana@example.com", "password": "Secret@123", "address": " 9 Elm "}
        )
        assert session.user.role == "user"
        assert stub_app.home_path() == "/user"
        screen = await stub_app.open_screen()
        assert screen.state is ScreenState.READY
        await stub_app.aclose()

    asyncio.run(scenario())
    created = stub_db.users[6]
    assert created["name"] == "Dana Newcomer"
    assert created["address"] == "9 Elm"


def test_signup_server_field_errors(stub_app):
    async def scenario():
        fields = {"name": "Alice Again", "email": "alice@example.com", "password": "Secret@123"}
        assert await stub_app.signup(fields) is None
        assert stub_app.field_errors == {"email": "Email already registered"}
        assert stub_app.error_summary == FIX_FIELDS_SUMMARY
        await stub_app.aclose()

    asyncio.run(scenario())


def test_logout_tears_down_open_screens(stub_app):
    async def scenario():
        await stub_app.login("alice@example.com", PASSWORD)
        screen = await stub_app.open_screen()
        stub_app.logout()
        assert stub_app.session is None
        assert screen.torn_down
        assert stub_app.screens == []
        assert stub_app.home_path() == "/login"
        await stub_app.aclose()

    asyncio.run(scenario())


def test_unreachable_server():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        app = RatingsApp(base_url="http://nowhere", transport=httpx.MockTransport(handler))
        assert await app.login("alice@example.com", PASSWORD) is None
        assert app.error_summary == TRANSPORT_SUMMARY
        assert app.field_errors == {}
        assert not app.submitting
        await app.aclose()

    asyncio.run(scenario())
