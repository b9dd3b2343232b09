# jafpos/services/order_lifecycle.py

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from data_integrator import BILL_ITEMS_TABLE, BILLS_TABLE, BillStore
from domain.errors import (
    DuplicateDraftError,
    InvalidTransitionError,
    OrderNotFoundError,
    PartialWriteError,
    PersistenceError,
    ValidationError,
)
from domain.models import (
    PAYMENT_MODES,
    STATUS_ACTIVE,
    STATUS_COMPLETED,
    STATUS_DRAFT,
    LineItem,
    Order,
    Receipt,
    sum_totals,
)
from services.change_feed import DELETE, INSERT, UPDATE, ChangeBus
from services.order_aggregator import diff, merge
from services.receipt_service import ReceiptRenderer

logger = logging.getLogger(__name__)

SENT_NEW_ORDER = "new_order"
SENT_SUPPLEMENTAL = "supplemental_order"
SENT_DRAFT_UPDATED = "draft_updated"

COMPLETED_CONVERTED = "converted"
COMPLETED_MERGED = "merged"
COMPLETED_PROMOTED = "promoted"


@dataclass
class SendResult:
    kind: str
    order: Order
    items_sent: List[LineItem]


@dataclass
class CompletionResult:
    kind: str
    draft: Order
    absorbed_order_id: Optional[str] = None


@dataclass
class FinalizedBill:
    order: Order
    receipt: Receipt


@dataclass
class TicketResult:
    order: Order
    receipt: Receipt


def normalize_items(items: List[LineItem]) -> List[LineItem]:
    """Collapse duplicate (food_item_id, unit_price) lines."""
    return merge([], items)


def validate_bill(order: Order) -> List[LineItem]:
    """
    Reject a bill before any write. Returns the normalized item list.
    """
    if not (order.mobile_suffix or "").strip():
        raise ValidationError("Mobile number required: enter the last digits of the mobile number")
    if not order.items:
        raise ValidationError("No items: add items to the bill")
    for item in order.items:
        if item.quantity <= 0:
            raise ValidationError(f"Quantity for {item.food_item_name} must be at least 1")
        if item.unit_price < 0:
            raise ValidationError(f"Price for {item.food_item_name} cannot be negative")
    return normalize_items(order.items)


class OrderLifecycleController:
    """
    Drives bills through draft -> active -> draft -> completed.

    Multi-step writes are not transactional on PostgREST. When a later step
    fails the earlier steps are undone; if undoing fails as well a
    PartialWriteError names the orders that need manual correction.
    """

    def __init__(
            self,
            store: BillStore,
            change_bus: Optional[ChangeBus] = None,
            renderer: Optional[ReceiptRenderer] = None,
    ):
        self.store = store
        self.change_bus = change_bus
        self.renderer = renderer or ReceiptRenderer()

    # ------------------------------------------------------------------
    # Biller
    # ------------------------------------------------------------------

    def create_draft(
            self,
            mobile_suffix: str,
            items: List[LineItem],
            customer_name: Optional[str] = None,
    ) -> Order:
        order = Order(
            mobile_suffix=(mobile_suffix or "").strip(),
            items=list(items),
            customer_name=customer_name or None,
            status=STATUS_DRAFT,
        )
        order.items = validate_bill(order)
        created = self._create(order)
        logger.info("Draft #%s created (%s items)", created.mobile_suffix, len(created.items))
        return created

    def send_to_kitchen(self, order: Order, editing_draft: Optional[Order] = None) -> SendResult:
        items = validate_bill(order)
        suffix = order.mobile_suffix.strip()

        if editing_draft is None:
            active = Order(
                mobile_suffix=suffix,
                items=items,
                customer_name=order.customer_name or None,
                status=STATUS_ACTIVE,
            )
            created = self._create(active)
            logger.info("Order #%s sent to kitchen", created.mobile_suffix)
            return SendResult(SENT_NEW_ORDER, created, created.items)

        if editing_draft.status != STATUS_DRAFT:
            raise InvalidTransitionError(f"Order #{editing_draft.display_suffix} is not a draft")

        delta = diff(editing_draft.items, items)
        if delta:
            supplemental = Order(
                mobile_suffix=suffix,
                items=delta,
                customer_name=order.customer_name or None,
                status=STATUS_ACTIVE,
                is_supplemental=True,
            )
            created = self._create(supplemental)
            logger.info(
                "Additional items for #%s sent to kitchen (%s lines, total %s)",
                suffix, len(delta), created.total,
            )
            return SendResult(SENT_SUPPLEMENTAL, created, created.items)

        updated = self._rewrite(
            editing_draft.id,
            self._bill_patch(order, items),
            items,
            previous_items=editing_draft.items,
        )
        logger.info("Draft #%s updated, nothing new for the kitchen", updated.mobile_suffix)
        return SendResult(SENT_DRAFT_UPDATED, updated, [])

    def save_draft_with_ticket(self, order: Order, editing_draft: Optional[Order] = None) -> TicketResult:
        """
        Save the bill as a draft and render the kitchen ticket (no amounts).
        """
        items = validate_bill(order)

        if editing_draft is None:
            saved = self._create(
                Order(
                    mobile_suffix=order.mobile_suffix.strip(),
                    items=items,
                    customer_name=order.customer_name or None,
                    status=STATUS_DRAFT,
                )
            )
        else:
            if editing_draft.status != STATUS_DRAFT:
                raise InvalidTransitionError(f"Order #{editing_draft.display_suffix} is not a draft")
            saved = self._rewrite(
                editing_draft.id,
                self._bill_patch(order, items),
                items,
                previous_items=editing_draft.items,
            )

        logger.info("Draft #%s saved with kitchen ticket", saved.mobile_suffix)
        return TicketResult(saved, self.renderer.render(saved, show_amounts=False))

    def finalize_bill(self, draft: Order, payment_mode: str) -> FinalizedBill:
        if payment_mode not in PAYMENT_MODES:
            raise ValidationError(f"Payment mode must be one of: {', '.join(PAYMENT_MODES)}")
        if not draft.id:
            raise ValidationError("Only a saved draft can be finalized")

        items = validate_bill(draft)
        stored = self._load(draft.id, expected_status=STATUS_DRAFT)

        patch = self._bill_patch(draft, items)
        patch.update({"status": STATUS_COMPLETED, "payment_mode": payment_mode})

        completed = self._rewrite(draft.id, patch, items, previous_items=stored.items)
        logger.info(
            "Bill #%s finalized: %s paid by %s",
            completed.mobile_suffix, completed.total, payment_mode,
        )
        return FinalizedBill(completed, self.renderer.render(completed, show_amounts=True))

    def delete_draft(self, draft_id: str) -> None:
        draft = self._load(draft_id, expected_status=STATUS_DRAFT)
        self._delete_order(draft)
        logger.info("Draft #%s deleted", draft.mobile_suffix)

    # ------------------------------------------------------------------
    # Kitchen
    # ------------------------------------------------------------------

    def complete_active_order(self, order_id: str) -> CompletionResult:
        """
        Kitchen marks an active order as prepared and hands it to the biller.
        """
        active = self._load(order_id, expected_status=STATUS_ACTIVE)
        existing = self.store.find_drafts(active.mobile_suffix)

        if not active.is_supplemental:
            if existing:
                logger.warning("Rejected completion of #%s: draft already exists", active.mobile_suffix)
                raise DuplicateDraftError(active.mobile_suffix)
            draft = self._update(active.id, {"status": STATUS_DRAFT})
            draft.items = active.items
            logger.info("Order #%s completed and sent to biller as draft", draft.mobile_suffix)
            return CompletionResult(COMPLETED_CONVERTED, draft)

        if not existing:
            draft = self._update(
                active.id,
                {
                    "status": STATUS_DRAFT,
                    "is_supplemental": False,
                    "mobile_last_digit": active.mobile_suffix,
                },
            )
            draft.items = active.items
            logger.info("Additional order #%s completed and became the draft", draft.mobile_suffix)
            return CompletionResult(COMPLETED_PROMOTED, draft)

        base = existing[0]
        draft = self._absorb(base, active)
        logger.info("Additional items merged into draft #%s", draft.mobile_suffix)
        return CompletionResult(COMPLETED_MERGED, draft, absorbed_order_id=active.id)

    def send_back_to_draft(self, order_id: str) -> Order:
        """
        Kitchen "Modify": return an active order to the biller unprepared.
        """
        active = self._load(order_id, expected_status=STATUS_ACTIVE)
        if active.is_supplemental:
            raise InvalidTransitionError(
                "Additional items cannot be sent back; cancel them so the biller can resend"
            )
        if self.store.find_drafts(active.mobile_suffix):
            logger.warning("Rejected send-back of #%s: draft already exists", active.mobile_suffix)
            raise DuplicateDraftError(active.mobile_suffix)

        draft = self._update(active.id, {"status": STATUS_DRAFT})
        draft.items = active.items
        logger.info("Order #%s sent back to biller for modifications", draft.mobile_suffix)
        return draft

    def cancel_order(self, order_id: str) -> Order:
        order = self._load(order_id)
        self._delete_order(order)
        logger.info("Order #%s cancelled", order.display_suffix)
        return order

    # ------------------------------------------------------------------
    # Write helpers
    # ------------------------------------------------------------------

    def _load(self, order_id: str, expected_status: Optional[str] = None) -> Order:
        order = self.store.get_bill(order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        if expected_status and order.status != expected_status:
            raise InvalidTransitionError(
                f"Order #{order.display_suffix} is {order.status}, expected {expected_status}"
            )
        return order

    @staticmethod
    def _bill_patch(order: Order, items: List[LineItem]) -> Dict[str, Any]:
        return {
            "customer_name": order.customer_name or None,
            "mobile_last_digit": order.mobile_suffix.strip(),
            "total": str(sum_totals(items)),
        }

    def _publish(self, table: str, change_kind: str) -> None:
        if self.change_bus:
            self.change_bus.publish(table, change_kind)

    def _compensate(self, undo: Callable[[], Any], description: str, order_ids: List[str], error: Exception) -> None:
        """
        Undo an earlier write after `error`. Raises PartialWriteError when
        the undo itself fails.
        """
        try:
            undo()
        except PersistenceError as undo_error:
            logger.error(
                "Could not roll back %s for %s after %s: %s",
                description, order_ids, error, undo_error,
            )
            raise PartialWriteError(
                f"{description} failed halfway and could not be rolled back; "
                f"orders {', '.join(order_ids)} need manual correction",
                order_ids=order_ids,
            ) from undo_error
        logger.warning("Rolled back %s for %s after: %s", description, order_ids, error)

    def _update(self, order_id: str, patch: Dict[str, Any]) -> Order:
        updated = self.store.update_bill(order_id, patch)
        self._publish(BILLS_TABLE, UPDATE)
        return updated

    def _create(self, order: Order) -> Order:
        created = self.store.insert_bill(order)
        try:
            created.items = self.store.insert_items(created.id, order.items)
        except PersistenceError as e:
            self._compensate(lambda: self.store.delete_bill(created.id), "create bill", [created.id], e)
            raise
        self._publish(BILLS_TABLE, INSERT)
        self._publish(BILL_ITEMS_TABLE, INSERT)
        return created

    def _replace_items(self, order_id: str, items: List[LineItem], previous_items: List[LineItem]) -> List[LineItem]:
        self.store.delete_items(order_id)
        try:
            stored = self.store.insert_items(order_id, items)
        except PersistenceError as e:
            self._compensate(
                lambda: self.store.insert_items(order_id, previous_items),
                "replace items", [order_id], e,
            )
            raise
        self._publish(BILL_ITEMS_TABLE, DELETE)
        self._publish(BILL_ITEMS_TABLE, INSERT)
        return stored

    def _restore_items(self, order_id: str, items: List[LineItem]) -> None:
        self.store.delete_items(order_id)
        self.store.insert_items(order_id, items)

    def _rewrite(
            self,
            order_id: str,
            patch: Dict[str, Any],
            items: List[LineItem],
            previous_items: List[LineItem],
    ) -> Order:
        """
        Replace a bill's items, then update the bill row.
        """
        stored_items = self._replace_items(order_id, items, previous_items)
        try:
            updated = self._update(order_id, patch)
        except PersistenceError as e:
            self._compensate(
                lambda: self._restore_items(order_id, previous_items),
                "update bill", [order_id], e,
            )
            raise
        updated.items = stored_items
        return updated

    def _delete_order(self, order: Order) -> None:
        self.store.delete_items(order.id)
        try:
            self.store.delete_bill(order.id)
        except PersistenceError as e:
            self._compensate(
                lambda: self.store.insert_items(order.id, order.items),
                "delete bill", [order.id], e,
            )
            raise
        self._publish(BILL_ITEMS_TABLE, DELETE)
        self._publish(BILLS_TABLE, DELETE)

    def _absorb(self, base: Order, supplemental: Order) -> Order:
        """
        Merge a supplemental order into its base draft, then delete it.
        """
        merged = merge(base.items, supplemental.items)
        draft = self._rewrite(
            base.id,
            {"total": str(sum_totals(merged))},
            merged,
            previous_items=base.items,
        )

        def restore_base() -> None:
            self._restore_items(base.id, base.items)
            self.store.update_bill(base.id, {"total": str(base.total)})

        try:
            self.store.delete_items(supplemental.id)
        except PersistenceError as e:
            self._compensate(restore_base, "merge additional items", [base.id, supplemental.id], e)
            raise

        try:
            self.store.delete_bill(supplemental.id)
        except PersistenceError as e:
            def restore_both() -> None:
                self.store.insert_items(supplemental.id, supplemental.items)
                restore_base()

            self._compensate(restore_both, "merge additional items", [base.id, supplemental.id], e)
            raise

        self._publish(BILL_ITEMS_TABLE, DELETE)
        self._publish(BILLS_TABLE, DELETE)
        return draft
