import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from access_gate import home_path
from api_client import ApiClient, ApiError, TransportFailure
from error_normalizer import NormalizedError, normalize_exception, normalize_malformed_response
from form_validation import ValidationErrorMap, prepare, validate
from schemas import LoginRequest, Session, SignupRequest
from screens import AdminDashboardScreen, OwnerDashboardScreen, UserStoresScreen
from view_sync import ViewSynchronizer

logger = logging.getLogger(__name__)

AUTH_LOGIN = "/api/auth/login"
AUTH_SIGNUP = "/api/auth/signup"

SCREENS = {
    "user": UserStoresScreen,
    "owner": OwnerDashboardScreen,
    "admin": AdminDashboardScreen,
}


class RatingsApp:
    """Client shell: owns the session and hands it to every screen it opens.

    The session exists between a successful login/signup and logout. Screens
    receive it at construction; nothing reads it from global state.
    """

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.session: Optional[Session] = None
        self.api = ApiClient(base_url=base_url, token_getter=self._token, transport=transport)
        self.screens: List[ViewSynchronizer] = []
        self.field_errors: ValidationErrorMap = {}
        self.last_error: Optional[NormalizedError] = None
        self.submitting = False

    def _token(self) -> Optional[str]:
        return self.session.token if self.session else None

    @property
    def error_summary(self) -> Optional[str]:
        return self.last_error.summary if self.last_error else None

    def home_path(self) -> str:
        return home_path(self.session)

    # Auth

    async def _authenticate(self, path: str, form_kind: str, request_model, fields: Dict[str, Any], fallback: str) -> Optional[Session]:
        self.last_error = None
        self.field_errors = validate(form_kind, fields)
        if self.field_errors:
            return None

        payload = prepare(form_kind, fields)
        logger.debug("%s request for %s", form_kind, payload.get("email"))
        self.submitting = True
        try:
            body = await self.api.post(path, json=request_model.model_validate(payload).model_dump())
            session = Session.model_validate(body)
        except (ApiError, TransportFailure) as exc:
            self.last_error = normalize_exception(exc, fallback)
            self.field_errors = dict(self.last_error.error_map)
            logger.warning("%s failed: %s", form_kind, self.last_error.summary)
            return None
        except ValidationError as exc:
            self.last_error = normalize_malformed_response(fallback, str(exc))
            return None
        finally:
            self.submitting = False

        self.start_session(session)
        return session

    async def login(self, email: str, password: str) -> Optional[Session]:
        return await self._authenticate(
            AUTH_LOGIN, "login", LoginRequest, {"email": email, "password": password}, fallback="Login failed",
        )

    async def signup(self, fields: Dict[str, Any]) -> Optional[Session]:
        fields = {"address": "", "role": "user", **fields}
        return await self._authenticate(AUTH_SIGNUP, "signup", SignupRequest, fields, fallback="Signup failed")

    def start_session(self, session: Session) -> None:
        if self.session is not None:
            self.logout()
        self.session = session
        logger.info("Signed in as %s (%s)", session.user.email, session.user.role)

    def logout(self) -> None:
        for screen in self.screens:
            screen.unmount()
        self.screens = []
        if self.session is not None:
            logger.info("Signed out %s", self.session.user.email)
        self.session = None
        self.field_errors = {}
        self.last_error = None

    # Screens

    def build_screen(self, role: Optional[str] = None) -> ViewSynchronizer:
        role = role or (self.session.role if self.session else "user")
        if role not in SCREENS:
            raise ValueError(f"Unknown role: {role}")
        screen = SCREENS[role](self.api, self.session)
        self.screens.append(screen)
        return screen

    async def open_screen(self, role: Optional[str] = None) -> ViewSynchronizer:
        """Build and mount the screen for ``role`` (default: the session's own)."""
        screen = self.build_screen(role)
        await screen.mount()
        return screen

    def close_screen(self, screen: ViewSynchronizer) -> None:
        screen.unmount()
        if screen in self.screens:
            self.screens.remove(screen)

    async def aclose(self) -> None:
        self.logout()
        await self.api.aclose()
