# This project was developed with assistance from AI tools.
"""
Keystone Closings -- domain models

Real-estate closing lifecycle models: listings and offers, the transaction
aggregate with its task ledger, and the per-transaction records each closing
collaborator maintains (underwriting, closing disclosure, insurance,
walk-through, signing, funding/recording, moving preparation).
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)

from .database import Base
from .enums import (
    AppraisalResolution,
    AppraisalStatus,
    ContingencyStatus,
    ContingencyType,
    DiscrepancyStatus,
    DisclosureStatus,
    EarnestMoneyStatus,
    FeePaidBy,
    FinancingType,
    FundingStatus,
    FundMethod,
    InspectionStatus,
    InsuranceStatus,
    IssueSeverity,
    LetterStatus,
    LetterType,
    OfferStatus,
    PropertyStatus,
    RecordingStatus,
    RepairRequestStatus,
    RepairResponse,
    SignerRole,
    TaskStatus,
    TransactionPhase,
    TransactionStatus,
    UnderwritingConditionStatus,
    UnderwritingState,
    WalkThroughStatus,
)


def _transaction_fk(unique: bool = False) -> Column:
    return Column(
        Integer,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=False,
        unique=unique,
        index=True,
    )


# ---------------------------------------------------------------------------
# Participants, listings, offers
# ---------------------------------------------------------------------------


class Participant(Base):
    """Person known to the platform, keyed by identity-provider subject."""

    __tablename__ = "participants"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(200), nullable=False, default="")
    email = Column(String(255), nullable=False, default="")
    phone = Column(String(50), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Participant(user_id='{self.user_id}', email='{self.email}')>"


class Property(Base):
    """Listed property."""

    __tablename__ = "properties"

    id = Column(Integer, primary_key=True, autoincrement=True)
    seller_id = Column(String(255), nullable=False, index=True)
    street = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False, index=True)
    state = Column(String(2), nullable=False)
    zip_code = Column(String(10), nullable=False)
    county = Column(String(100), nullable=True)
    list_price = Column(Numeric(12, 2), nullable=False)
    minimum_offer = Column(Numeric(12, 2), nullable=True)
    bedrooms = Column(Integer, nullable=True)
    bathrooms = Column(Numeric(3, 1), nullable=True)
    square_feet = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(PropertyStatus, name="property_status", native_enum=False),
        nullable=False,
        default=PropertyStatus.ACTIVE,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Property(id={self.id}, city='{self.city}', status='{self.status}')>"


class Offer(Base):
    """Buyer offer on a property."""

    __tablename__ = "offers"
    __table_args__ = (
        Index(
            "uq_offers_one_accepted_per_property",
            "property_id",
            unique=True,
            postgresql_where=text("status = 'ACCEPTED'"),
            sqlite_where=text("status = 'ACCEPTED'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    property_id = Column(
        Integer, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    buyer_id = Column(String(255), nullable=False, index=True)
    seller_id = Column(String(255), nullable=False, index=True)
    offer_amount = Column(Numeric(12, 2), nullable=False)
    earnest_money = Column(Numeric(12, 2), nullable=True)
    financing_type = Column(
        Enum(FinancingType, name="financing_type", native_enum=False),
        nullable=True,
    )
    down_payment_percentage = Column(Numeric(5, 2), nullable=True)
    inspection_contingency = Column(Boolean, nullable=False, default=True)
    financing_contingency = Column(Boolean, nullable=False, default=True)
    appraisal_contingency = Column(Boolean, nullable=False, default=True)
    sale_contingency = Column(Boolean, nullable=False, default=False)
    proposed_closing_date = Column(Date, nullable=True)
    buyer_message = Column(Text, nullable=True)
    status = Column(
        Enum(OfferStatus, name="offer_status", native_enum=False),
        nullable=False,
        default=OfferStatus.PENDING,
        index=True,
    )
    counter_amount = Column(Numeric(12, 2), nullable=True)
    seller_response = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    withdrawn_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Offer(id={self.id}, property_id={self.property_id}, status='{self.status}')>"


# ---------------------------------------------------------------------------
# Transaction aggregate and task ledger
# ---------------------------------------------------------------------------


class Transaction(Base):
    """A property deal, created when an offer is accepted."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    reference_code = Column(String(32), unique=True, nullable=False)
    property_id = Column(
        Integer, ForeignKey("properties.id", ondelete="RESTRICT"), nullable=False, index=True,
    )
    offer_id = Column(
        Integer, ForeignKey("offers.id", ondelete="RESTRICT"), nullable=False, unique=True,
    )
    buyer_id = Column(String(255), nullable=False, index=True)
    seller_id = Column(String(255), nullable=False, index=True)
    agent_id = Column(String(255), nullable=True, index=True)
    lender_id = Column(String(255), nullable=True, index=True)
    title_officer_id = Column(String(255), nullable=True, index=True)
    purchase_price = Column(Numeric(12, 2), nullable=False)
    earnest_money = Column(Numeric(12, 2), nullable=True)
    commission = Column(Numeric(12, 2), nullable=True)
    status = Column(
        Enum(TransactionStatus, name="transaction_status", native_enum=False),
        nullable=False,
        default=TransactionStatus.PENDING,
    )
    phase = Column(
        Enum(TransactionPhase, name="transaction_phase", native_enum=False),
        nullable=False,
        default=TransactionPhase.UNDER_CONTRACT,
    )
    progress = Column(Integer, nullable=False, default=0)
    closing_date = Column(Date, nullable=True)
    phase_changed_at = Column(DateTime(timezone=True), nullable=True)
    funds_confirmed = Column(Boolean, nullable=False, default=False)
    fund_method = Column(Enum(FundMethod, name="fund_method", native_enum=False), nullable=True)
    funds_check_number = Column(String(50), nullable=True)
    funds_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<Transaction(id={self.id}, ref='{self.reference_code}', "
            f"phase='{self.phase}', status='{self.status}')>"
        )


class Task(Base):
    """Workflow step template.

    Only ``manual`` steps may be set by hand; every other step is completed by
    the workflow operation that owns it.
    """

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(64), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    phase = Column(
        Enum(TransactionPhase, name="transaction_phase", native_enum=False),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False)
    gating = Column(Boolean, nullable=False, default=True)
    manual = Column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return f"<Task(code='{self.code}', phase='{self.phase}')>"


class TaskValue(Base):
    """Per-transaction instance of a task."""

    __tablename__ = "task_values"
    __table_args__ = (
        UniqueConstraint("task_id", "transaction_id", name="uq_task_value_task_transaction"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False)
    transaction_id = _transaction_fk()
    status = Column(
        Enum(TaskStatus, name="task_status", native_enum=False),
        nullable=False,
        default=TaskStatus.PENDING,
    )
    notes = Column(Text, nullable=True)
    updated_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<TaskValue(task_id={self.task_id}, transaction_id={self.transaction_id}, "
            f"status='{self.status}')>"
        )


class TransactionActivity(Base):
    """Append-only activity log for a transaction."""

    __tablename__ = "transaction_activities"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    actor_id = Column(String(255), nullable=True)
    action = Column(String(100), nullable=False)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<TransactionActivity(transaction_id={self.transaction_id}, action='{self.action}')>"


# ---------------------------------------------------------------------------
# Under contract: earnest money, inspection, repairs, contingencies
# ---------------------------------------------------------------------------


class EarnestMoneyDeposit(Base):
    """Buyer's earnest money wire, verified by the title officer."""

    __tablename__ = "earnest_money_deposits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    amount = Column(Numeric(12, 2), nullable=True)
    status = Column(
        Enum(EarnestMoneyStatus, name="earnest_money_status", native_enum=False),
        nullable=False,
        default=EarnestMoneyStatus.PENDING,
    )
    phone_verified = Column(Boolean, nullable=False, default=False)
    phone_verified_at = Column(DateTime(timezone=True), nullable=True)
    phone_verified_by = Column(String(255), nullable=True)
    confirmation_number = Column(String(100), nullable=True)
    file_name = Column(String(255), nullable=True)
    storage_key = Column(String(500), nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(String(255), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<EarnestMoneyDeposit(transaction_id={self.transaction_id}, status='{self.status}')>"


class Inspection(Base):
    __tablename__ = "inspections"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    inspector_name = Column(String(200), nullable=False)
    inspector_company = Column(String(200), nullable=True)
    scheduled_date = Column(Date, nullable=False)
    inspection_fee = Column(Numeric(10, 2), nullable=True)
    status = Column(
        Enum(InspectionStatus, name="inspection_status", native_enum=False),
        nullable=False,
        default=InspectionStatus.SCHEDULED,
    )
    report_file_name = Column(String(255), nullable=True)
    report_storage_key = Column(String(500), nullable=True)
    summary = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Inspection(id={self.id}, status='{self.status}')>"


class RepairRequest(Base):
    """Buyer's repair request raised from a completed inspection."""

    __tablename__ = "repair_requests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    inspection_id = Column(
        Integer, ForeignKey("inspections.id", ondelete="CASCADE"), nullable=False, unique=True,
    )
    transaction_id = _transaction_fk()
    status = Column(
        Enum(RepairRequestStatus, name="repair_request_status", native_enum=False),
        nullable=False,
        default=RepairRequestStatus.PENDING,
    )
    buyer_notes = Column(Text, nullable=True)
    deadline_date = Column(Date, nullable=True)
    seller_response = Column(Text, nullable=True)
    negotiated_terms = Column(Text, nullable=True)
    requested_by = Column(String(255), nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class RepairItem(Base):
    __tablename__ = "repair_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    repair_request_id = Column(
        Integer, ForeignKey("repair_requests.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = Column(Text, nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    requested_action = Column(Text, nullable=True)
    seller_response = Column(
        Enum(RepairResponse, name="repair_response", native_enum=False), nullable=True,
    )
    counter_offer = Column(Text, nullable=True)


class Contingency(Base):
    """Contract contingency carried over from the accepted offer."""

    __tablename__ = "contingencies"
    __table_args__ = (
        UniqueConstraint("transaction_id", "contingency_type", name="uq_contingency_type"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    contingency_type = Column(
        Enum(ContingencyType, name="contingency_type", native_enum=False), nullable=False,
    )
    status = Column(
        Enum(ContingencyStatus, name="contingency_status", native_enum=False),
        nullable=False,
        default=ContingencyStatus.OPEN,
    )
    deadline = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    resolved_by = Column(String(255), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Contingency(type='{self.contingency_type}', status='{self.status}')>"


# ---------------------------------------------------------------------------
# Appraisal
# ---------------------------------------------------------------------------


class Appraisal(Base):
    __tablename__ = "appraisals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    status = Column(
        Enum(AppraisalStatus, name="appraisal_status", native_enum=False),
        nullable=False,
        default=AppraisalStatus.ORDERED,
    )
    purchase_price = Column(Numeric(12, 2), nullable=False)
    appraisal_cost = Column(Numeric(10, 2), nullable=False, default=500)
    appraiser_name = Column(String(200), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    appraised_value = Column(Numeric(12, 2), nullable=True)
    appraisal_gap = Column(Numeric(12, 2), nullable=True)
    report_reference = Column(String(100), nullable=True)
    appraiser_notes = Column(Text, nullable=True)
    resolution = Column(
        Enum(AppraisalResolution, name="appraisal_resolution", native_enum=False), nullable=True,
    )
    new_purchase_price = Column(Numeric(12, 2), nullable=True)
    ordered_by = Column(String(255), nullable=True)
    ordered_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Appraisal(transaction_id={self.transaction_id}, status='{self.status}')>"


# ---------------------------------------------------------------------------
# Underwriting
# ---------------------------------------------------------------------------


class UnderwritingStatus(Base):
    """Underwriting file state for a transaction's mortgage."""

    __tablename__ = "underwriting_status"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    status = Column(
        Enum(UnderwritingState, name="underwriting_state", native_enum=False),
        nullable=False,
        default=UnderwritingState.SUBMITTED,
    )
    pending_documents = Column(Integer, nullable=False, default=0)
    lender_id = Column(String(255), nullable=True)
    loan_amount = Column(Numeric(12, 2), nullable=True)
    clear_to_close_date = Column(DateTime(timezone=True), nullable=True)
    loan_approval_date = Column(DateTime(timezone=True), nullable=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<UnderwritingStatus(transaction_id={self.transaction_id}, status='{self.status}', "
            f"pending_documents={self.pending_documents})>"
        )


class UnderwritingCondition(Base):
    """Condition the underwriter requires before clear-to-close."""

    __tablename__ = "underwriting_conditions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    document_type = Column(String(100), nullable=True)
    status = Column(
        Enum(UnderwritingConditionStatus, name="underwriting_condition_status", native_enum=False),
        nullable=False,
        default=UnderwritingConditionStatus.PENDING,
    )
    issued_by = Column(String(255), nullable=True)
    satisfied_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<UnderwritingCondition(id={self.id}, status='{self.status}')>"


class UnderwritingDocument(Base):
    """Document submitted against the underwriting file."""

    __tablename__ = "underwriting_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    condition_id = Column(
        Integer, ForeignKey("underwriting_conditions.id", ondelete="SET NULL"), nullable=True,
    )
    document_type = Column(String(100), nullable=False)
    document_name = Column(String(255), nullable=False)
    storage_key = Column(String(500), nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    uploaded_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<UnderwritingDocument(id={self.id}, type='{self.document_type}')>"


# ---------------------------------------------------------------------------
# Loan estimate / closing disclosure
# ---------------------------------------------------------------------------


class LoanEstimate(Base):
    __tablename__ = "loan_estimates"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    loan_amount = Column(Numeric(12, 2), nullable=False)
    interest_rate = Column(Numeric(6, 3), nullable=False)
    term_months = Column(Integer, nullable=False, default=360)
    estimated_cash_to_close = Column(Numeric(12, 2), nullable=True)
    issued_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<LoanEstimate(transaction_id={self.transaction_id}, amount={self.loan_amount})>"


class LoanEstimateFee(Base):
    __tablename__ = "loan_estimate_fees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    loan_estimate_id = Column(
        Integer, ForeignKey("loan_estimates.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    paid_by = Column(Enum(FeePaidBy, name="fee_paid_by", native_enum=False), nullable=False)


class ClosingDisclosure(Base):
    """Closing Disclosure received for a transaction."""

    __tablename__ = "closing_disclosures"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    status = Column(
        Enum(DisclosureStatus, name="disclosure_status", native_enum=False),
        nullable=False,
        default=DisclosureStatus.PENDING_REVIEW,
    )
    file_name = Column(String(255), nullable=True)
    storage_key = Column(String(500), nullable=True)
    uploaded_by = Column(String(255), nullable=True)
    received_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    acknowledged_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<ClosingDisclosure(transaction_id={self.transaction_id}, status='{self.status}')>"


class ClosingFee(Base):
    __tablename__ = "closing_fees"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=True)
    amount = Column(Numeric(12, 2), nullable=False)
    paid_by = Column(Enum(FeePaidBy, name="fee_paid_by", native_enum=False), nullable=False)


class ClosingDiscrepancy(Base):
    """Difference between an estimated and an actual closing fee."""

    __tablename__ = "closing_discrepancies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    fee_item = Column(String(200), nullable=False)
    estimated_amount = Column(Numeric(12, 2), nullable=False)
    actual_amount = Column(Numeric(12, 2), nullable=False)
    difference = Column(Numeric(12, 2), nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(DiscrepancyStatus, name="discrepancy_status", native_enum=False),
        nullable=False,
        default=DiscrepancyStatus.OPEN,
    )
    resolution_notes = Column(Text, nullable=True)
    reported_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)


class WireInstructions(Base):
    __tablename__ = "wire_instructions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    bank_name = Column(String(200), nullable=False)
    account_name = Column(String(200), nullable=False)
    routing_number = Column(String(20), nullable=False)
    account_number_last4 = Column(String(4), nullable=False)
    reference = Column(String(100), nullable=True)
    verified = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Insurance, walk-through, closing appointment, signing
# ---------------------------------------------------------------------------


class InsurancePolicy(Base):
    __tablename__ = "insurance_policies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    carrier = Column(String(200), nullable=False)
    coverage_type = Column(String(50), nullable=False, default="HO-3")
    coverage_limit = Column(Numeric(12, 2), nullable=False)
    deductible = Column(Numeric(12, 2), nullable=True)
    annual_premium = Column(Numeric(12, 2), nullable=True)
    policy_number = Column(String(64), unique=True, nullable=False)
    effective_date = Column(Date, nullable=True)
    proof_storage_key = Column(String(500), nullable=True)
    status = Column(
        Enum(InsuranceStatus, name="insurance_status", native_enum=False),
        nullable=False,
        default=InsuranceStatus.PURCHASED,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class WalkThrough(Base):
    __tablename__ = "walk_throughs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(String(10), nullable=True)
    status = Column(
        Enum(WalkThroughStatus, name="walk_through_status", native_enum=False),
        nullable=False,
        default=WalkThroughStatus.SCHEDULED,
    )
    issues_found = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class WalkThroughItem(Base):
    __tablename__ = "walk_through_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    walk_through_id = Column(
        Integer, ForeignKey("walk_throughs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    category = Column(String(100), nullable=False)
    item = Column(String(255), nullable=False)
    checked = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)


class WalkThroughIssue(Base):
    __tablename__ = "walk_through_issues"

    id = Column(Integer, primary_key=True, autoincrement=True)
    walk_through_id = Column(
        Integer, ForeignKey("walk_throughs.id", ondelete="CASCADE"), nullable=False, index=True,
    )
    description = Column(Text, nullable=False)
    severity = Column(
        Enum(IssueSeverity, name="issue_severity", native_enum=False),
        nullable=False,
        default=IssueSeverity.MINOR,
    )
    resolved = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class ClosingAppointment(Base):
    """Scheduled signing appointment and the buyer's readiness checklist."""

    __tablename__ = "closing_appointments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    scheduled_at = Column(DateTime(timezone=True), nullable=False)
    location = Column(String(255), nullable=False)
    notes = Column(Text, nullable=True)
    scheduled_by = Column(String(255), nullable=True)
    buyer_confirmed = Column(Boolean, nullable=False, default=False)
    photo_id_ready = Column(Boolean, nullable=False, default=False)
    certified_funds_ready = Column(Boolean, nullable=False, default=False)
    proof_of_insurance_ready = Column(Boolean, nullable=False, default=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class SigningDocument(Base):
    """Closing package document awaiting a party's signature."""

    __tablename__ = "signing_documents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    name = Column(String(255), nullable=False)
    signer_role = Column(Enum(SignerRole, name="signer_role", native_enum=False), nullable=False)
    document_order = Column(Integer, nullable=False, default=0)
    signed = Column(Boolean, nullable=False, default=False)
    signed_at = Column(DateTime(timezone=True), nullable=True)
    signed_by = Column(String(255), nullable=True)


# ---------------------------------------------------------------------------
# Funding / recording
# ---------------------------------------------------------------------------


class Funding(Base):
    __tablename__ = "fundings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    status = Column(
        Enum(FundingStatus, name="funding_status", native_enum=False),
        nullable=False,
        default=FundingStatus.PENDING,
    )
    keys_delivered = Column(Boolean, nullable=False, default=False)
    documents_delivered = Column(Boolean, nullable=False, default=False)
    funded_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    recording_status = Column(
        Enum(RecordingStatus, name="recording_status", native_enum=False),
        nullable=False,
        default=RecordingStatus.NOT_STARTED,
    )
    county_reference = Column(String(100), nullable=True)
    recording_completed_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return (
            f"<Funding(transaction_id={self.transaction_id}, status='{self.status}', "
            f"recording='{self.recording_status}')>"
        )


class Disbursement(Base):
    __tablename__ = "disbursements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    payee = Column(String(200), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    method = Column(String(50), nullable=False, default="wire")
    status = Column(String(50), nullable=False, default="scheduled")
    disbursed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RecordingLog(Base):
    __tablename__ = "recording_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    action = Column(String(100), nullable=False)
    status = Column(String(50), nullable=False)
    county_reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Moving preparation
# ---------------------------------------------------------------------------


class MovingPreparation(Base):
    __tablename__ = "moving_preparations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk(unique=True)
    possession_date = Column(Date, nullable=True)
    possession_time = Column(String(10), nullable=True)
    moving_company = Column(String(200), nullable=True)
    moving_date = Column(Date, nullable=True)
    mover_confirmation = Column(String(100), nullable=True)
    new_address = Column(Text, nullable=True)
    address_change_effective = Column(Date, nullable=True)
    address_change_filed = Column(Boolean, nullable=False, default=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class UtilityTransfer(Base):
    __tablename__ = "utility_transfers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    transaction_id = _transaction_fk()
    utility_type = Column(String(50), nullable=False)
    provider = Column(String(200), nullable=False)
    account_number = Column(String(100), nullable=True)
    transfer_date = Column(Date, nullable=True)
    status = Column(String(50), nullable=False, default="scheduled")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


# ---------------------------------------------------------------------------
# Letter-of-Intent documents
# ---------------------------------------------------------------------------


class LetterOfIntent(Base):
    """LOI / Purchase Agreement stored as a document with embedded sub-objects."""

    __tablename__ = "letters_of_intent"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(40), unique=True, nullable=False, index=True)
    document_type = Column(
        Enum(LetterType, name="letter_type", native_enum=False),
        nullable=False,
        default=LetterType.LOI,
    )
    status = Column(
        Enum(LetterStatus, name="letter_status", native_enum=False),
        nullable=False,
        default=LetterStatus.DRAFT,
    )
    offer_id = Column(Integer, ForeignKey("offers.id", ondelete="SET NULL"), nullable=True, index=True)
    transaction_id = Column(
        Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=True, index=True,
    )
    created_by = Column(String(255), nullable=False)
    parties = Column(JSON, nullable=False, default=dict)
    financial_terms = Column(JSON, nullable=False, default=dict)
    terms = Column(JSON, nullable=False, default=dict)
    signatures = Column(JSON, nullable=False, default=dict)
    tracking = Column(JSON, nullable=False, default=dict)
    envelope_id = Column(String(100), nullable=True, unique=True)
    storage_key = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<LetterOfIntent(document_id='{self.document_id}', status='{self.status}')>"
