# This project was developed with assistance from AI tools.
"""
SQLAdmin configuration for the back-office database UI

Access the admin panel at: http://localhost:8000/admin

When AUTH_DISABLED=false, requires admin credentials via login form.
When AUTH_DISABLED=true, admin panel is open (dev mode).
"""

from db import (
    Appraisal,
    ClosingAppointment,
    ClosingDiscrepancy,
    Contingency,
    EarnestMoneyDeposit,
    Funding,
    Inspection,
    InsurancePolicy,
    LetterOfIntent,
    Offer,
    Participant,
    Property,
    RecordingLog,
    RepairRequest,
    Task,
    Transaction,
    TransactionActivity,
    UnderwritingCondition,
    UnderwritingStatus,
)
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy import create_engine
from starlette.requests import Request
from starlette.responses import Response

from .core.config import settings


def _sync_url(url: str) -> str:
    """SQLAdmin requires a sync engine; derive it from the async DATABASE_URL."""
    return url.replace("+asyncpg", "").replace("+aiosqlite", "")


class AdminAuth(AuthenticationBackend):
    """Session-based auth gate for SQLAdmin.

    Credentials come from SQLADMIN_USER / SQLADMIN_PASSWORD.
    """

    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = form.get("username")
        password = form.get("password")
        if username == settings.SQLADMIN_USER and password == settings.SQLADMIN_PASSWORD:
            request.session.update({"admin_authenticated": True})
            return True
        return False

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> Response | bool:
        if settings.AUTH_DISABLED:
            return True
        return request.session.get("admin_authenticated", False)


class ParticipantAdmin(ModelView, model=Participant):
    column_list = [
        Participant.id,
        Participant.user_id,
        Participant.full_name,
        Participant.email,
        Participant.created_at,
    ]
    column_searchable_list = [Participant.full_name, Participant.email, Participant.user_id]
    column_sortable_list = [Participant.id, Participant.full_name, Participant.created_at]
    name = "Participant"
    name_plural = "Participants"
    icon = "fa-solid fa-user"


class PropertyAdmin(ModelView, model=Property):
    column_list = [
        Property.id,
        Property.street,
        Property.city,
        Property.state,
        Property.list_price,
        Property.status,
        Property.seller_id,
    ]
    column_searchable_list = [Property.street, Property.city, Property.zip_code]
    column_sortable_list = [Property.id, Property.list_price, Property.status]
    column_default_sort = [(Property.created_at, True)]
    name = "Property"
    name_plural = "Properties"
    icon = "fa-solid fa-house"


class OfferAdmin(ModelView, model=Offer):
    column_list = [
        Offer.id,
        Offer.property_id,
        Offer.buyer_id,
        Offer.offer_amount,
        Offer.financing_type,
        Offer.status,
        Offer.submitted_at,
    ]
    column_sortable_list = [Offer.id, Offer.offer_amount, Offer.status, Offer.submitted_at]
    column_default_sort = [(Offer.submitted_at, True)]
    name = "Offer"
    name_plural = "Offers"
    icon = "fa-solid fa-handshake"


class TransactionAdmin(ModelView, model=Transaction):
    column_list = [
        Transaction.id,
        Transaction.reference_code,
        Transaction.status,
        Transaction.phase,
        Transaction.progress,
        Transaction.purchase_price,
        Transaction.closing_date,
    ]
    column_searchable_list = [Transaction.reference_code, Transaction.buyer_id]
    column_sortable_list = [Transaction.id, Transaction.phase, Transaction.closing_date]
    column_default_sort = [(Transaction.created_at, True)]
    # Phase and status move only through the workflow services
    can_create = False
    can_delete = False
    form_excluded_columns = [Transaction.phase, Transaction.status, Transaction.progress]
    name = "Transaction"
    name_plural = "Transactions"
    icon = "fa-solid fa-file-signature"


class TaskAdmin(ModelView, model=Task):
    column_list = [
        Task.id,
        Task.code,
        Task.name,
        Task.phase,
        Task.position,
        Task.gating,
        Task.manual,
    ]
    column_sortable_list = [Task.position, Task.phase]
    column_default_sort = [(Task.position, False)]
    can_create = False
    can_delete = False
    name = "Task Template"
    name_plural = "Task Templates"
    icon = "fa-solid fa-list-check"


class EarnestMoneyAdmin(ModelView, model=EarnestMoneyDeposit):
    column_list = [
        EarnestMoneyDeposit.id,
        EarnestMoneyDeposit.transaction_id,
        EarnestMoneyDeposit.amount,
        EarnestMoneyDeposit.status,
        EarnestMoneyDeposit.phone_verified,
        EarnestMoneyDeposit.verified_at,
    ]
    can_create = False
    name = "Earnest Money"
    name_plural = "Earnest Money"
    icon = "fa-solid fa-money-bill-transfer"


class InspectionAdmin(ModelView, model=Inspection):
    column_list = [
        Inspection.id,
        Inspection.transaction_id,
        Inspection.inspector_name,
        Inspection.scheduled_date,
        Inspection.status,
    ]
    column_default_sort = [(Inspection.scheduled_date, True)]
    name = "Inspection"
    name_plural = "Inspections"
    icon = "fa-solid fa-magnifying-glass"


class RepairRequestAdmin(ModelView, model=RepairRequest):
    column_list = [
        RepairRequest.id,
        RepairRequest.transaction_id,
        RepairRequest.inspection_id,
        RepairRequest.status,
        RepairRequest.responded_at,
    ]
    name = "Repair Request"
    name_plural = "Repair Requests"
    icon = "fa-solid fa-screwdriver-wrench"


class ContingencyAdmin(ModelView, model=Contingency):
    column_list = [
        Contingency.id,
        Contingency.transaction_id,
        Contingency.contingency_type,
        Contingency.status,
        Contingency.deadline,
    ]
    column_sortable_list = [Contingency.deadline, Contingency.status]
    name = "Contingency"
    name_plural = "Contingencies"
    icon = "fa-solid fa-circle-question"


class AppraisalAdmin(ModelView, model=Appraisal):
    column_list = [
        Appraisal.id,
        Appraisal.transaction_id,
        Appraisal.status,
        Appraisal.purchase_price,
        Appraisal.appraised_value,
        Appraisal.appraisal_gap,
    ]
    name = "Appraisal"
    name_plural = "Appraisals"
    icon = "fa-solid fa-ruler-combined"


class UnderwritingStatusAdmin(ModelView, model=UnderwritingStatus):
    column_list = [
        UnderwritingStatus.id,
        UnderwritingStatus.transaction_id,
        UnderwritingStatus.status,
        UnderwritingStatus.pending_documents,
        UnderwritingStatus.clear_to_close_date,
    ]
    can_create = False
    name = "Underwriting"
    name_plural = "Underwriting"
    icon = "fa-solid fa-scale-balanced"


class UnderwritingConditionAdmin(ModelView, model=UnderwritingCondition):
    column_list = [
        UnderwritingCondition.id,
        UnderwritingCondition.transaction_id,
        UnderwritingCondition.title,
        UnderwritingCondition.status,
        UnderwritingCondition.issued_by,
        UnderwritingCondition.created_at,
    ]
    column_sortable_list = [UnderwritingCondition.id, UnderwritingCondition.status]
    column_default_sort = [(UnderwritingCondition.created_at, True)]
    name = "Condition"
    name_plural = "Conditions"
    icon = "fa-solid fa-clipboard-check"


class ClosingDiscrepancyAdmin(ModelView, model=ClosingDiscrepancy):
    column_list = [
        ClosingDiscrepancy.id,
        ClosingDiscrepancy.transaction_id,
        ClosingDiscrepancy.fee_item,
        ClosingDiscrepancy.difference,
        ClosingDiscrepancy.status,
    ]
    name = "Discrepancy"
    name_plural = "Discrepancies"
    icon = "fa-solid fa-triangle-exclamation"


class InsurancePolicyAdmin(ModelView, model=InsurancePolicy):
    column_list = [
        InsurancePolicy.id,
        InsurancePolicy.transaction_id,
        InsurancePolicy.carrier,
        InsurancePolicy.policy_number,
        InsurancePolicy.status,
    ]
    name = "Insurance Policy"
    name_plural = "Insurance Policies"
    icon = "fa-solid fa-umbrella"


class ClosingAppointmentAdmin(ModelView, model=ClosingAppointment):
    column_list = [
        ClosingAppointment.id,
        ClosingAppointment.transaction_id,
        ClosingAppointment.scheduled_at,
        ClosingAppointment.location,
        ClosingAppointment.buyer_confirmed,
    ]
    column_default_sort = [(ClosingAppointment.scheduled_at, False)]
    name = "Closing Appointment"
    name_plural = "Closing Appointments"
    icon = "fa-solid fa-calendar-check"


class FundingAdmin(ModelView, model=Funding):
    column_list = [
        Funding.id,
        Funding.transaction_id,
        Funding.status,
        Funding.recording_status,
        Funding.county_reference,
        Funding.funded_at,
    ]
    name = "Funding"
    name_plural = "Fundings"
    icon = "fa-solid fa-building-columns"


class RecordingLogAdmin(ModelView, model=RecordingLog):
    column_list = [
        RecordingLog.id,
        RecordingLog.transaction_id,
        RecordingLog.action,
        RecordingLog.status,
        RecordingLog.created_at,
    ]
    column_default_sort = [(RecordingLog.created_at, True)]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Recording Log"
    name_plural = "Recording Log"
    icon = "fa-solid fa-stamp"


class LetterOfIntentAdmin(ModelView, model=LetterOfIntent):
    column_list = [
        LetterOfIntent.id,
        LetterOfIntent.document_id,
        LetterOfIntent.status,
        LetterOfIntent.offer_id,
        LetterOfIntent.envelope_id,
        LetterOfIntent.created_at,
    ]
    column_searchable_list = [LetterOfIntent.document_id, LetterOfIntent.envelope_id]
    column_default_sort = [(LetterOfIntent.created_at, True)]
    can_create = False
    name = "Letter of Intent"
    name_plural = "Letters of Intent"
    icon = "fa-solid fa-envelope-open-text"


class TransactionActivityAdmin(ModelView, model=TransactionActivity):
    column_list = [
        TransactionActivity.id,
        TransactionActivity.created_at,
        TransactionActivity.transaction_id,
        TransactionActivity.actor_id,
        TransactionActivity.action,
    ]
    column_sortable_list = [TransactionActivity.id, TransactionActivity.created_at]
    column_default_sort = [(TransactionActivity.created_at, True)]
    can_create = False
    can_edit = False
    can_delete = False
    name = "Activity"
    name_plural = "Activity Log"
    icon = "fa-solid fa-clock-rotate-left"


_VIEWS = (
    ParticipantAdmin,
    PropertyAdmin,
    OfferAdmin,
    TransactionAdmin,
    TaskAdmin,
    EarnestMoneyAdmin,
    InspectionAdmin,
    RepairRequestAdmin,
    ContingencyAdmin,
    AppraisalAdmin,
    UnderwritingStatusAdmin,
    UnderwritingConditionAdmin,
    ClosingDiscrepancyAdmin,
    InsurancePolicyAdmin,
    ClosingAppointmentAdmin,
    FundingAdmin,
    RecordingLogAdmin,
    LetterOfIntentAdmin,
    TransactionActivityAdmin,
)


def setup_admin(app):
    """Set up SQLAdmin and mount it to the FastAPI app."""
    engine = create_engine(_sync_url(settings.DATABASE_URL), echo=False)
    auth_backend = AdminAuth(secret_key=settings.SQLADMIN_SECRET_KEY)
    admin = Admin(app, engine, title="Keystone Closings Admin", authentication_backend=auth_backend)
    for view in _VIEWS:
        admin.add_view(view)
    return admin
