# jafpos/domain/errors.py

from typing import Iterable, Optional


class PosError(Exception):
    """Base class for errors surfaced to the person who triggered an action."""


class ValidationError(PosError):
    pass


class PersistenceError(PosError):
    pass


class OrderNotFoundError(PosError):
    def __init__(self, order_id: str):
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class InvalidTransitionError(PosError):
    pass


class DuplicateDraftError(PosError):
    def __init__(self, mobile_suffix: str):
        super().__init__(
            f"Order #{mobile_suffix} already exists in drafts. Cannot add duplicate."
        )
        self.mobile_suffix = mobile_suffix


class PartialWriteError(PosError):
    """
    A multi-step write failed halfway and could not be rolled back.
    The listed orders need manual correction.
    """

    def __init__(self, message: str, order_ids: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.order_ids = [order_id for order_id in (order_ids or []) if order_id]


class AuthenticationError(PosError):
    pass


class AuthorizationError(PosError):
    pass
