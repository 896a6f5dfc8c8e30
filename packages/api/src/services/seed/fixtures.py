# This project was developed with assistance from AI tools.
"""Workflow task catalog.

One entry per checklist step, in lifecycle order. ``gating`` steps must be
completed before the transaction may leave their phase. ``manual`` steps have
no owning workflow operation and are the only ones a party may set by hand.
"""

import hashlib
import json

from db.enums import TransactionPhase

TASK_TEMPLATES: list[dict] = [
    # -- Under contract --
    {"code": "purchase_agreement_signed", "name": "E-sign Purchase Agreement",
     "phase": TransactionPhase.UNDER_CONTRACT, "gating": True},
    {"code": "earnest_money_deposited", "name": "Deposit earnest money",
     "phase": TransactionPhase.UNDER_CONTRACT, "gating": True},
    {"code": "home_inspection_completed", "name": "Complete home inspection",
     "phase": TransactionPhase.UNDER_CONTRACT, "gating": False},
    # -- Financing --
    {"code": "mortgage_application_submitted", "name": "Submit mortgage application",
     "phase": TransactionPhase.FINANCING, "gating": True},
    {"code": "appraisal_completed", "name": "Complete appraisal",
     "phase": TransactionPhase.FINANCING, "gating": True},
    {"code": "underwriting_clear_to_close", "name": "Underwriting clear to close",
     "phase": TransactionPhase.FINANCING, "gating": True},
    {"code": "loan_approved", "name": "Final loan approval",
     "phase": TransactionPhase.FINANCING, "gating": True},
    # -- Insurance --
    {"code": "homeowners_insurance_bound", "name": "Bind homeowner's insurance",
     "phase": TransactionPhase.INSURANCE, "gating": True},
    {"code": "title_insurance_ordered", "name": "Order title insurance",
     "phase": TransactionPhase.INSURANCE, "gating": False, "manual": True},
    # -- Closing disclosure --
    {"code": "closing_disclosure_received", "name": "Receive Closing Disclosure",
     "phase": TransactionPhase.CLOSING_DISCLOSURE, "gating": True},
    {"code": "closing_disclosure_reviewed", "name": "Review Closing Disclosure",
     "phase": TransactionPhase.CLOSING_DISCLOSURE, "gating": True},
    # -- Clear to close --
    {"code": "final_walk_through_completed", "name": "Final walk-through",
     "phase": TransactionPhase.CLEAR_TO_CLOSE, "gating": True},
    {"code": "closing_appointment_confirmed", "name": "Confirm closing appointment",
     "phase": TransactionPhase.CLEAR_TO_CLOSE, "gating": False},
    # -- Signing --
    {"code": "closing_documents_signed", "name": "Sign closing documents",
     "phase": TransactionPhase.SIGNING, "gating": True},
    {"code": "funds_confirmed", "name": "Confirm closing funds",
     "phase": TransactionPhase.SIGNING, "gating": True},
    # -- Funding --
    {"code": "loan_funded", "name": "Loan funded",
     "phase": TransactionPhase.FUNDING, "gating": True},
    {"code": "deed_recorded", "name": "Record deed with county",
     "phase": TransactionPhase.FUNDING, "gating": True},
    {"code": "keys_delivered", "name": "Deliver keys",
     "phase": TransactionPhase.FUNDING, "gating": True},
    # -- Moving --
    {"code": "possession_date_set", "name": "Set possession date",
     "phase": TransactionPhase.MOVING, "gating": True},
    {"code": "movers_scheduled", "name": "Schedule movers",
     "phase": TransactionPhase.MOVING, "gating": False},
    {"code": "utilities_transferred", "name": "Transfer utilities",
     "phase": TransactionPhase.MOVING, "gating": False},
    {"code": "address_change_filed", "name": "File change of address",
     "phase": TransactionPhase.MOVING, "gating": False},
]


def compute_catalog_hash() -> str:
    """Stable hash of the catalog, logged at seed time."""
    payload = json.dumps(
        [{**t, "phase": t["phase"].value} for t in TASK_TEMPLATES], sort_keys=True,
    )
    return hashlib.sha256(payload.encode()).hexdigest()[:12]
