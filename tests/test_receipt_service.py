import io
from datetime import datetime, timezone

from docx import Document

from config import ReceiptSettings
from domain.models import LineItem, Order
from services.receipt_service import ReceiptRenderer, invoice_number

SETTINGS = ReceiptSettings(
    restaurant_name="TEST KITCHEN",
    address_lines=("1 MAIN ROAD", "CHENNAI"),
    phone="+91 00000 00000",
    company="Test Foods Pvt Ltd",
    currency_symbol="₹",
)


def _order(**kwargs):
    defaults = dict(
        id="3f2a9c1e-0000-4000-8000-000000000000",
        mobile_suffix="4821",
        customer_name="Meena",
        status="completed",
        payment_mode="cash",
        created_at=datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc),
        items=[
            LineItem("f-burger", "Burger", "120.00", 2),
            LineItem("f-fries", "Fries", "60.00", 1),
        ],
    )
    defaults.update(kwargs)
    return Order(**defaults)


def _text(receipt):
    doc = Document(io.BytesIO(receipt.content))
    paragraphs = [p.text for p in doc.paragraphs]
    cells = [[c.text for c in row.cells] for table in doc.tables for row in table.rows]
    return paragraphs, cells


def test_invoice_number():
    assert invoice_number(_order()) == "3F2A9C1E"
    assert invoice_number(_order(id=None)) == "DRAFT"


def test_bill_has_prices_and_payment():
    receipt = ReceiptRenderer(SETTINGS).render(_order(), show_amounts=True)
    paragraphs, cells = _text(receipt)

    assert receipt.filename == "Bill - 4821 - 3F2A9C1E.docx"
    assert "TEST KITCHEN" in paragraphs
    assert "Phone: +91 00000 00000" in paragraphs
    assert "Customer Name: Meena" in paragraphs
    assert "Cust Mobile No: ***4821" in paragraphs
    assert "Net Payable: ₹300.00" in paragraphs
    assert "Payment Mode: CASH" in paragraphs
    assert "THANK YOU, VISIT US AGAIN!" in paragraphs

    assert cells[0] == ["Sl", "Product", "Price", "Qty", "Amt"]
    assert cells[1] == ["1", "Burger", "120.00", "2", "240.00"]
    assert cells[2] == ["2", "Fries", "60.00", "1", "60.00"]


def test_kitchen_ticket_hides_amounts():
    order = _order(status="draft", payment_mode=None, customer_name=None, is_supplemental=True)
    receipt = ReceiptRenderer(SETTINGS).render(order, show_amounts=False)
    paragraphs, cells = _text(receipt)

    assert receipt.filename == "Ticket - 4821 (Additional) - 3F2A9C1E.docx"
    assert "Customer Name: Walk-in Customer" in paragraphs
    assert not any(p.startswith("Net Payable") for p in paragraphs)
    assert cells[0] == ["Sl", "Product", "Qty"]
    assert cells[1] == ["1", "Burger", "2"]


def test_unsaved_order_renders_without_barcode():
    receipt = ReceiptRenderer(SETTINGS).render(_order(id=None, created_at=None), show_amounts=False)
    doc = Document(io.BytesIO(receipt.content))

    assert receipt.filename.endswith("- DRAFT.docx")
    assert len(doc.inline_shapes) == 0


def test_saved_order_gets_a_barcode():
    receipt = ReceiptRenderer(SETTINGS).render(_order())
    doc = Document(io.BytesIO(receipt.content))
    assert len(doc.inline_shapes) == 1
