# jafpos/services/receipt_service.py

import io
import logging
from datetime import datetime
from typing import List

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Mm, Pt

from config import ReceiptSettings
from domain.models import Order, Receipt
from utils.barcode import barcode_png
from utils.formatting import format_amount, format_currency, mask_suffix

logger = logging.getLogger(__name__)

RECEIPT_WIDTH_MM = 58
RECEIPT_MARGIN_MM = 3
BARCODE_WIDTH_MM = 45


def invoice_number(order: Order) -> str:
    """
    Short human-facing invoice number derived from the bill id.
    """
    if not order.id:
        return "DRAFT"
    return order.id.replace("-", "")[:8].upper()


class ReceiptRenderer:
    """
    Render a bill as a printable .docx sized for a 58mm thermal printer.

    With `show_amounts=False` the document is a kitchen ticket: only
    products and quantities.
    """

    def __init__(self, settings: ReceiptSettings = None):
        self.settings = settings or ReceiptSettings()

    def render(self, order: Order, show_amounts: bool = True) -> Receipt:
        doc = Document()
        self._setup_page(doc)

        self._header(doc)
        self._separator(doc)
        self._bill_details(doc, order)
        self._separator(doc)
        self._items_table(doc, order, show_amounts)
        self._separator(doc)

        if show_amounts:
            self._totals(doc, order)
            self._separator(doc)

        self._footer(doc, order)

        buffer = io.BytesIO()
        doc.save(buffer)

        kind = "Bill" if show_amounts else "Ticket"
        filename = f"{kind} - {order.display_suffix} - {invoice_number(order)}.docx"
        logger.info('Rendered %s for order #%s', kind.lower(), order.display_suffix)

        return Receipt(filename=filename, content=buffer.getvalue())

    # ---------- layout ----------

    @staticmethod
    def _setup_page(doc: Document) -> None:
        section = doc.sections[0]
        section.page_width = Mm(RECEIPT_WIDTH_MM)
        section.left_margin = Mm(RECEIPT_MARGIN_MM)
        section.right_margin = Mm(RECEIPT_MARGIN_MM)
        section.top_margin = Mm(RECEIPT_MARGIN_MM)
        section.bottom_margin = Mm(RECEIPT_MARGIN_MM)

        normal = doc.styles["Normal"]
        normal.font.name = "Courier New"
        normal.font.size = Pt(8)

    @staticmethod
    def _centered(doc: Document, text: str, bold: bool = False, size: int = None):
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER
        run = p.add_run(text)
        run.bold = bold
        if size:
            run.font.size = Pt(size)
        return p

    @staticmethod
    def _separator(doc: Document) -> None:
        doc.add_paragraph("-" * 32)

    def _header(self, doc: Document) -> None:
        s = self.settings
        self._centered(doc, s.restaurant_name, bold=True, size=12)
        for line in s.address_lines:
            self._centered(doc, line)
        self._centered(doc, f"Phone: {s.phone}")
        if s.company:
            self._centered(doc, f"Company name: {s.company}")

    @staticmethod
    def _bill_details(doc: Document, order: Order) -> None:
        bill_date = (order.created_at or datetime.now()).astimezone().strftime("%d/%m/%Y")
        doc.add_paragraph(f"Invoice No/Date: {invoice_number(order)} / {bill_date}")
        doc.add_paragraph(f"Customer Name: {order.customer_name or 'Walk-in Customer'}")
        doc.add_paragraph(f"Cust Mobile No: {mask_suffix(order.display_suffix)}")

    @staticmethod
    def _items_table(doc: Document, order: Order, show_amounts: bool) -> None:
        headers: List[str] = ["Sl", "Product"]
        if show_amounts:
            headers.append("Price")
        headers.append("Qty")
        if show_amounts:
            headers.append("Amt")

        table = doc.add_table(rows=1, cols=len(headers))
        for cell, title in zip(table.rows[0].cells, headers):
            cell.text = title
            for run in cell.paragraphs[0].runs:
                run.bold = True

        for idx, item in enumerate(order.items, start=1):
            values = [str(idx), item.food_item_name]
            if show_amounts:
                values.append(format_amount(item.unit_price))
            values.append(str(item.quantity))
            if show_amounts:
                values.append(format_amount(item.total))

            for cell, value in zip(table.add_row().cells, values):
                cell.text = value

    def _totals(self, doc: Document, order: Order) -> None:
        p = doc.add_paragraph()
        p.alignment = WD_ALIGN_PARAGRAPH.RIGHT
        run = p.add_run(f"Net Payable: {format_currency(order.total, self.settings.currency_symbol)}")
        run.bold = True
        if order.payment_mode:
            p = doc.add_paragraph(f"Payment Mode: {order.payment_mode.upper()}")
            p.alignment = WD_ALIGN_PARAGRAPH.RIGHT

    def _footer(self, doc: Document, order: Order) -> None:
        if order.id:
            p = doc.add_paragraph()
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER
            p.add_run().add_picture(barcode_png(invoice_number(order)), width=Mm(BARCODE_WIDTH_MM))
        self._centered(doc, "THANK YOU, VISIT US AGAIN!", bold=True)
