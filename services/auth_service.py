# services/auth_service.py
import logging
from typing import Any, Dict, MutableMapping, Optional

from data_integrator import AuthStore
from domain.errors import AuthenticationError, AuthorizationError, ValidationError
from domain.models import ROLE_BILLER, ROLE_KITCHEN_MANAGER, ROLES, UserProfile

logger = logging.getLogger(__name__)

SESSION_KEY = "authenticated_user"

ROLE_LABELS = {
    ROLE_BILLER: "Biller",
    ROLE_KITCHEN_MANAGER: "Kitchen Manager",
}

# Which role may invoke which lifecycle operation.
PERMISSIONS: Dict[str, frozenset] = {
    "create_draft": frozenset({ROLE_BILLER}),
    "send_to_kitchen": frozenset({ROLE_BILLER}),
    "save_draft_with_ticket": frozenset({ROLE_BILLER}),
    "finalize_bill": frozenset({ROLE_BILLER}),
    "delete_draft": frozenset({ROLE_BILLER}),
    "view_history": frozenset({ROLE_BILLER}),
    "complete_active_order": frozenset({ROLE_KITCHEN_MANAGER}),
    "send_back_to_draft": frozenset({ROLE_KITCHEN_MANAGER}),
    "cancel_order": frozenset({ROLE_KITCHEN_MANAGER}),
    "view_active_orders": frozenset({ROLE_KITCHEN_MANAGER}),
    "manage_menu": frozenset(ROLES),
}


class SessionContext:
    """
    Explicit session object handed to every view.

    `storage` is any mutable mapping that survives reruns (Streamlit's
    st.session_state in the app, a plain dict in tests).
    """

    def __init__(self, storage: MutableMapping[str, Any]):
        self._storage = storage
        self.user: Optional[UserProfile] = None

    def load(self) -> Optional[UserProfile]:
        raw = self._storage.get(SESSION_KEY)
        if raw:
            try:
                self.user = UserProfile.from_dict(raw)
            except (KeyError, TypeError) as e:
                logger.error("Error reading stored session: %s", e)
                self._storage.pop(SESSION_KEY, None)
                self.user = None
        else:
            self.user = None
        return self.user

    def sign_in(self, profile: UserProfile) -> None:
        self.user = profile
        self._storage[SESSION_KEY] = profile.to_dict()

    def sign_out(self) -> None:
        if self.user:
            logger.info("User %s signed out", self.user.email)
        self.user = None
        self._storage.pop(SESSION_KEY, None)

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def role(self) -> Optional[str]:
        return self.user.role if self.user else None

    def can(self, operation: str) -> bool:
        return self.role in PERMISSIONS.get(operation, frozenset())


def require_permission(session: SessionContext, operation: str) -> UserProfile:
    if not session.is_authenticated:
        raise AuthorizationError("Please sign in first")
    if not session.can(operation):
        raise AuthorizationError(
            f"{ROLE_LABELS.get(session.role, session.role)} accounts cannot {operation.replace('_', ' ')}"
        )
    return session.user


class AuthService:

    def __init__(self, store: AuthStore):
        self.store = store

    def sign_in(self, email: str, password: str, expected_role: Optional[str] = None) -> UserProfile:
        email = (email or "").strip()
        if not email or not password:
            raise ValidationError("Email and password are required")

        logger.info("Attempting sign in for %s (expected role: %s)", email, expected_role)
        data = self.store.verify_user_password(email, password)
        if not data:
            logger.warning("Invalid credentials for %s", email)
            raise AuthenticationError("Invalid email or password")

        role = data.get("role")
        if role not in ROLES:
            raise AuthenticationError(f"Unknown role: {role}")

        if expected_role and role != expected_role:
            logger.warning("Role mismatch for %s: expected %s, got %s", email, expected_role, role)
            raise AuthorizationError(
                f"This account is not authorized as {ROLE_LABELS.get(expected_role, expected_role)}"
            )

        profile = UserProfile(
            id=str(data["user_id"]),
            email=data.get("email") or email,
            role=role,
            full_name=data.get("full_name"),
        )
        logger.info("Login successful for %s (%s)", profile.email, profile.role)
        return profile
