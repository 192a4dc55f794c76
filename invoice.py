"""
Invoice PDF rendering with reportlab.
"""
from io import BytesIO
from typing import Optional

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

# column x positions, in points
COLUMNS = {"item": 50, "quantity": 270, "price": 340, "total": 430}
COLUMN_WIDTH = 70
ROW_HEIGHT = 25
BOTTOM_MARGIN = 60


def _money(value) -> str:
    return f"Rs.{float(value or 0):.2f}"


def _address_lines(address: Optional[dict]) -> list:
    if not address:
        return []
    lines = []
    name = " ".join(p for p in (address.get("firstName"), address.get("lastName")) if p)
    if name:
        lines.append(name)
    if address.get("address"):
        lines.append(address["address"])
    city_state_postal = [address[k] for k in ("city", "state", "zipCode") if address.get(k)]
    if city_state_postal:
        lines.append(", ".join(city_state_postal))
    if address.get("country"):
        lines.append(address["country"])
    return lines


def render_invoice(order: dict, address: Optional[dict] = None, user: Optional[dict] = None,
                   brand: str = "Fusion") -> bytes:
    """Render an order as a one-or-more page PDF and return the bytes."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    pdf.setTitle(f"Invoice {order['_id']}")
    width, height = letter
    center = width / 2
    y = height - 60

    pdf.setFont("Helvetica-Bold", 26)
    pdf.drawCentredString(center, y, brand)
    y -= 34
    pdf.setFont("Helvetica-Bold", 20)
    pdf.drawCentredString(center, y, "INVOICE")
    y -= 24

    created = order.get("createdAt")
    pdf.setFont("Helvetica", 10)
    pdf.drawCentredString(center, y, f"Order #: {order['_id']}")
    y -= 14
    if created is not None:
        pdf.drawCentredString(center, y, f"Date: {created.strftime('%d/%m/%Y')}")
        y -= 14
    pdf.drawCentredString(center, y, f"Status: {order.get('orderStatus', '')}")
    y -= 16
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawCentredString(center, y, f"Payment: {order.get('paymentStatus') or 'Pending'}")
    y -= 28

    pdf.setFont("Helvetica", 12)
    pdf.drawString(COLUMNS["item"], y, f"Email: {(user or {}).get('email') or 'Guest'}")
    y -= 20

    lines = _address_lines(address)
    if lines:
        pdf.setFont("Helvetica", 10)
        pdf.drawString(COLUMNS["item"], y, "Shipping Address:")
        y -= 14
        for line in lines:
            pdf.drawString(COLUMNS["item"] + 20, y, line)
            y -= 14
        y -= 10

    def header(y):
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(COLUMNS["item"], y, "ITEM")
        pdf.drawString(COLUMNS["quantity"], y, "QTY")
        pdf.drawRightString(COLUMNS["price"] + COLUMN_WIDTH, y, "PRICE")
        pdf.drawRightString(COLUMNS["total"] + COLUMN_WIDTH, y, "TOTAL")
        pdf.setFont("Helvetica", 10)
        return y - 20

    y = header(y - 10)
    for item in order.get("items", []):
        if y < BOTTOM_MARGIN:
            pdf.showPage()
            y = header(height - 60)
        price = float(item.get("price") or 0)
        quantity = int(item.get("quantity") or 0)
        pdf.drawString(COLUMNS["item"], y, str(item.get("name", ""))[:40])
        pdf.drawString(COLUMNS["quantity"], y, str(quantity))
        pdf.drawRightString(COLUMNS["price"] + COLUMN_WIDTH, y, _money(price))
        pdf.drawRightString(COLUMNS["total"] + COLUMN_WIDTH, y, _money(price * quantity))
        y -= ROW_HEIGHT

    if y < BOTTOM_MARGIN + 30:
        pdf.showPage()
        y = height - 60
    pdf.line(COLUMNS["item"], y + 10, COLUMNS["total"] + COLUMN_WIDTH, y + 10)
    pdf.setFont("Helvetica-Bold", 12)
    pdf.drawRightString(COLUMNS["price"] + COLUMN_WIDTH, y - 8, "Total:")
    pdf.drawRightString(COLUMNS["total"] + COLUMN_WIDTH, y - 8, _money(order.get("totalAmount")))

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
