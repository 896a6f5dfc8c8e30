# This project was developed with assistance from AI tools.
"""Letter-of-intent PDF rendering with pymupdf.

One US Letter page per letter: heading, parties, property, financial
terms, contingencies and signature blocks for buyer and seller.
"""

import logging
from decimal import Decimal

import fitz  # pymupdf

from ..core.errors import DependencyError

logger = logging.getLogger(__name__)

PAGE_WIDTH = 612
PAGE_HEIGHT = 792
MARGIN = 54

_CONTINGENCIES = (
    ("inspection_contingency", "Inspection"),
    ("financing_contingency", "Financing"),
    ("appraisal_contingency", "Appraisal"),
    ("sale_contingency", "Sale of buyer's home"),
)


def _money(value) -> str:
    if value in (None, ""):
        return "-"
    return f"${Decimal(str(value)):,.2f}"


class _Writer:
    """Top-down text cursor over a single page."""

    def __init__(self, page):
        self.page = page
        self.y = MARGIN

    def heading(self, text: str, size: float = 16) -> None:
        self.page.insert_textbox(
            fitz.Rect(MARGIN, self.y, PAGE_WIDTH - MARGIN, self.y + size + 10),
            text,
            fontsize=size,
            fontname="hebo",
            align=fitz.TEXT_ALIGN_CENTER,
        )
        self.y += size + 16

    def section(self, title: str) -> None:
        self.y += 6
        self.page.insert_text((MARGIN, self.y), title, fontsize=11, fontname="hebo")
        self.y += 16

    def line(self, label: str, value: str) -> None:
        self.page.insert_text((MARGIN + 8, self.y), f"{label}:", fontsize=10, fontname="helv")
        self.page.insert_text((MARGIN + 170, self.y), value, fontsize=10, fontname="helv")
        self.y += 14

    def paragraph(self, text: str, height: float = 42) -> None:
        self.page.insert_textbox(
            fitz.Rect(MARGIN + 8, self.y, PAGE_WIDTH - MARGIN, self.y + height),
            text,
            fontsize=9,
            fontname="helv",
        )
        self.y += height + 4


def render_letter(
    *,
    document_id: str,
    title: str,
    parties: dict,
    financial_terms: dict,
    terms: dict,
) -> bytes:
    """Render a letter of intent and return the PDF bytes.

    Raises DependencyError if pymupdf fails to produce the document.
    """
    try:
        doc = fitz.open()
        page = doc.new_page(width=PAGE_WIDTH, height=PAGE_HEIGHT)
        out = _Writer(page)

        out.heading(title.upper())
        out.page.insert_textbox(
            fitz.Rect(MARGIN, out.y, PAGE_WIDTH - MARGIN, out.y + 14),
            f"Document {document_id}",
            fontsize=8,
            color=(0.4, 0.4, 0.4),
            align=fitz.TEXT_ALIGN_CENTER,
        )
        out.y += 24

        buyer = parties.get("buyer", {})
        seller = parties.get("seller", {})
        prop = parties.get("property", {})

        out.section("Parties")
        out.line("Buyer", buyer.get("name") or buyer.get("user_id", "-"))
        out.line("Seller", seller.get("name") or seller.get("user_id", "-"))

        out.section("Property")
        out.line("Address", prop.get("address", "-"))
        if prop.get("county"):
            out.line("County", prop["county"])

        out.section("Financial Terms")
        out.line("Purchase price", _money(financial_terms.get("purchase_price")))
        out.line("Earnest money deposit", _money(financial_terms.get("earnest_money")))
        out.line("Financing", financial_terms.get("financing_type") or "-")
        if financial_terms.get("down_payment_percentage") is not None:
            out.line("Down payment", f"{financial_terms['down_payment_percentage']}%")
        out.line("Proposed closing", terms.get("proposed_closing_date") or "To be agreed")

        out.section("Contingencies")
        for key, label in _CONTINGENCIES:
            out.line(label, "Yes" if terms.get(key) else "No")

        if terms.get("additional_provisions"):
            out.section("Additional Provisions")
            out.paragraph(terms["additional_provisions"], height=70)

        out.section("Non-Binding Statement")
        out.paragraph(
            "This letter expresses the parties' intent to negotiate a purchase agreement "
            "on the terms above. It is not binding on either party until a purchase "
            "agreement is executed."
        )

        out.y = max(out.y + 20, PAGE_HEIGHT - 150)
        for label, party in (("Buyer", buyer), ("Seller", seller)):
            page.draw_line((MARGIN + 8, out.y), (MARGIN + 260, out.y))
            page.insert_text(
                (MARGIN + 8, out.y + 12),
                f"{label}: {party.get('name') or ''}",
                fontsize=9,
                fontname="helv",
            )
            page.insert_text((MARGIN + 300, out.y + 12), "Date:", fontsize=9, fontname="helv")
            out.y += 50

        pdf_bytes = doc.tobytes()
        doc.close()
    except (RuntimeError, ValueError) as exc:
        logger.exception("Failed to render letter %s", document_id)
        raise DependencyError(f"Could not render letter {document_id}") from exc
    return pdf_bytes
