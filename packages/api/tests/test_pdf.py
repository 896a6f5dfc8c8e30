# This project was developed with assistance from AI tools.
"""Tests for letter-of-intent PDF rendering."""

import fitz  # pymupdf

from src.services.pdf import _money, render_letter

_PARTIES = {
    "buyer": {"user_id": "b-1", "name": "Alice Buyer", "email": "alice@example.com"},
    "seller": {"user_id": "s-1", "name": "Bob Seller", "email": "bob@example.com"},
    "property": {"id": 10, "address": "12 Elm Street, Springfield, IL 62701", "county": "Sangamon"},
}


def test_money_formatting():
    assert _money("380000") == "$380,000.00"
    assert _money(None) == "-"


def test_render_letter_produces_single_page_pdf():
    pdf_bytes = render_letter(
        document_id="LOI-ABC",
        title="Letter of Intent to Purchase",
        parties=_PARTIES,
        financial_terms={"purchase_price": "380000", "earnest_money": "10000"},
        terms={"inspection_contingency": True, "additional_provisions": "Seller leaves the piano."},
    )
    assert pdf_bytes.startswith(b"%PDF")

    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    assert doc.page_count == 1
    text = doc[0].get_text()
    doc.close()
    assert "LOI-ABC" in text
    assert "Alice Buyer" in text
    assert "$380,000.00" in text
