# jafpos/utils/barcode.py

import io

from barcode import Code128
from barcode.writer import ImageWriter


def barcode_png(barcode_text: str) -> io.BytesIO:
    """
    Render a Code128 barcode for `barcode_text` as an in-memory PNG.
    The human-readable text is printed separately on the receipt.
    """
    if not barcode_text:
        raise ValueError("barcode_text must be a non-empty string")

    buffer = io.BytesIO()
    code = Code128(barcode_text, writer=ImageWriter())
    code.write(buffer, options={"write_text": False, "module_height": 8.0, "quiet_zone": 2.0})
    buffer.seek(0)
    return buffer
