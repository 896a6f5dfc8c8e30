# This project was developed with assistance from AI tools.
"""
Domain enums for the real-estate closing lifecycle.

Shared domain types used by both SQLAlchemy models (db package)
and Pydantic schemas (api package). Every entity with a status vocabulary
declares its transition table here so the services validate against one
definition.
"""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    CLIENT = "client"
    AGENT = "agent"
    LENDER = "lender"
    TITLE_OFFICER = "title_officer"


class PartyRole(str, enum.Enum):
    """Role a participant plays on a specific transaction."""

    BUYER = "buyer"
    SELLER = "seller"
    AGENT = "agent"
    LENDER = "lender"
    TITLE_OFFICER = "title_officer"


class PropertyStatus(str, enum.Enum):
    ACTIVE = "active"
    UNDER_CONTRACT = "under_contract"
    SOLD = "sold"
    WITHDRAWN = "withdrawn"


class FinancingType(str, enum.Enum):
    CONVENTIONAL = "conventional"
    FHA = "fha"
    VA = "va"
    USDA = "usda"
    JUMBO = "jumbo"
    CASH = "cash"


class OfferStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    COUNTERED = "countered"
    WITHDRAWN = "withdrawn"
    TERMINATED = "terminated"

    @classmethod
    def live_statuses(cls) -> frozenset["OfferStatus"]:
        """Statuses where the seller can still act on the offer."""
        return frozenset({cls.PENDING, cls.COUNTERED})

    @classmethod
    def valid_transitions(cls) -> dict["OfferStatus", frozenset["OfferStatus"]]:
        """Allowed offer transitions.

        ``accepted -> terminated`` is only taken when the resulting
        transaction is cancelled.
        """
        return {
            cls.PENDING: frozenset({cls.ACCEPTED, cls.REJECTED, cls.COUNTERED, cls.WITHDRAWN}),
            cls.COUNTERED: frozenset({cls.ACCEPTED, cls.REJECTED, cls.WITHDRAWN}),
            cls.ACCEPTED: frozenset({cls.TERMINATED}),
            cls.REJECTED: frozenset(),
            cls.WITHDRAWN: frozenset(),
            cls.TERMINATED: frozenset(),
        }


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def terminal_statuses(cls) -> frozenset["TransactionStatus"]:
        return frozenset({cls.COMPLETED, cls.CANCELLED})

    @classmethod
    def valid_transitions(cls) -> dict["TransactionStatus", frozenset["TransactionStatus"]]:
        """Allowed transaction status transitions."""
        return {
            cls.PENDING: frozenset({cls.IN_PROGRESS, cls.ON_HOLD, cls.CANCELLED}),
            cls.IN_PROGRESS: frozenset({cls.ON_HOLD, cls.COMPLETED, cls.CANCELLED}),
            cls.ON_HOLD: frozenset({cls.PENDING, cls.IN_PROGRESS, cls.CANCELLED}),
            cls.COMPLETED: frozenset(),
            cls.CANCELLED: frozenset(),
        }


class TransactionPhase(str, enum.Enum):
    UNDER_CONTRACT = "under_contract"
    FINANCING = "financing"
    INSURANCE = "insurance"
    CLOSING_DISCLOSURE = "closing_disclosure"
    CLEAR_TO_CLOSE = "clear_to_close"
    SIGNING = "signing"
    FUNDING = "funding"
    MOVING = "moving"
    CLOSED = "closed"

    @classmethod
    def initial(cls) -> "TransactionPhase":
        return cls.UNDER_CONTRACT

    @classmethod
    def ordered(cls) -> list["TransactionPhase"]:
        """Phases in lifecycle order."""
        return list(cls)

    @property
    def position(self) -> int:
        return TransactionPhase.ordered().index(self)

    def next_phase(self) -> "TransactionPhase | None":
        phases = TransactionPhase.ordered()
        idx = phases.index(self)
        return phases[idx + 1] if idx + 1 < len(phases) else None


class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class UnderwritingState(str, enum.Enum):
    SUBMITTED = "submitted"
    CONDITIONS_REQUESTED = "conditions_requested"
    CLEAR_TO_CLOSE = "clear_to_close"
    APPROVED = "approved"

    @classmethod
    def valid_transitions(cls) -> dict["UnderwritingState", frozenset["UnderwritingState"]]:
        """Allowed underwriting transitions. A new condition reopens any state."""
        return {
            cls.SUBMITTED: frozenset({cls.CONDITIONS_REQUESTED}),
            cls.CONDITIONS_REQUESTED: frozenset({cls.CONDITIONS_REQUESTED, cls.CLEAR_TO_CLOSE}),
            cls.CLEAR_TO_CLOSE: frozenset({cls.CONDITIONS_REQUESTED, cls.APPROVED}),
            cls.APPROVED: frozenset({cls.CONDITIONS_REQUESTED}),
        }


class UnderwritingConditionStatus(str, enum.Enum):
    PENDING = "pending"
    SATISFIED = "satisfied"
    WAIVED = "waived"


class DisclosureStatus(str, enum.Enum):
    PENDING_REVIEW = "pending_review"
    ACKNOWLEDGED = "acknowledged"


class DiscrepancyStatus(str, enum.Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class FeePaidBy(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"
    LENDER = "lender"


class FundingStatus(str, enum.Enum):
    PENDING = "pending"
    REQUESTED = "requested"
    FUNDED = "funded"
    DISBURSED = "disbursed"
    COMPLETED = "completed"

    @classmethod
    def valid_transitions(cls) -> dict["FundingStatus", frozenset["FundingStatus"]]:
        return {
            cls.PENDING: frozenset({cls.REQUESTED, cls.FUNDED}),
            cls.REQUESTED: frozenset({cls.FUNDED}),
            cls.FUNDED: frozenset({cls.DISBURSED}),
            cls.DISBURSED: frozenset({cls.COMPLETED}),
            cls.COMPLETED: frozenset(),
        }


class RecordingStatus(str, enum.Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    REJECTED = "rejected"

    @classmethod
    def valid_transitions(cls) -> dict["RecordingStatus", frozenset["RecordingStatus"]]:
        return {
            cls.NOT_STARTED: frozenset({cls.IN_PROGRESS}),
            cls.IN_PROGRESS: frozenset({cls.COMPLETED, cls.REJECTED}),
            cls.REJECTED: frozenset({cls.IN_PROGRESS}),
            cls.COMPLETED: frozenset(),
        }


class FundMethod(str, enum.Enum):
    WIRE = "wire"
    CASHIERS_CHECK = "cashiers_check"


class InsuranceStatus(str, enum.Enum):
    PURCHASED = "purchased"
    PROOF_UPLOADED = "proof_uploaded"


class WalkThroughStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class IssueSeverity(str, enum.Enum):
    MINOR = "minor"
    MAJOR = "major"


class SignerRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"


class LetterType(str, enum.Enum):
    LOI = "loi"
    PURCHASE_AGREEMENT = "purchase_agreement"


class LetterStatus(str, enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    SIGNED = "signed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    COMPLETED = "completed"

    @classmethod
    def valid_transitions(cls) -> dict["LetterStatus", frozenset["LetterStatus"]]:
        return {
            cls.DRAFT: frozenset({cls.SENT, cls.EXPIRED}),
            cls.SENT: frozenset({cls.VIEWED, cls.SIGNED, cls.REJECTED, cls.EXPIRED}),
            cls.VIEWED: frozenset({cls.SIGNED, cls.REJECTED, cls.EXPIRED}),
            cls.SIGNED: frozenset({cls.ACCEPTED, cls.REJECTED, cls.COMPLETED}),
            cls.ACCEPTED: frozenset({cls.COMPLETED}),
            cls.REJECTED: frozenset(),
            cls.EXPIRED: frozenset(),
            cls.COMPLETED: frozenset(),
        }


class EarnestMoneyStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMATION_UPLOADED = "confirmation_uploaded"
    VERIFIED = "verified"
    REJECTED = "rejected"

    @classmethod
    def valid_transitions(cls) -> dict["EarnestMoneyStatus", frozenset["EarnestMoneyStatus"]]:
        """A rejected deposit may be re-uploaded; a verified one is final."""
        return {
            cls.PENDING: frozenset({cls.CONFIRMATION_UPLOADED}),
            cls.CONFIRMATION_UPLOADED: frozenset(
                {cls.CONFIRMATION_UPLOADED, cls.VERIFIED, cls.REJECTED}
            ),
            cls.REJECTED: frozenset({cls.CONFIRMATION_UPLOADED}),
            cls.VERIFIED: frozenset(),
        }


class InspectionStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"


class RepairRequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    NEGOTIATED = "negotiated"
    COMPLETED = "completed"

    @classmethod
    def valid_transitions(cls) -> dict["RepairRequestStatus", frozenset["RepairRequestStatus"]]:
        return {
            cls.PENDING: frozenset({cls.ACCEPTED, cls.REJECTED, cls.NEGOTIATED}),
            cls.NEGOTIATED: frozenset({cls.ACCEPTED, cls.REJECTED}),
            cls.ACCEPTED: frozenset({cls.COMPLETED}),
            cls.REJECTED: frozenset(),
            cls.COMPLETED: frozenset(),
        }


class RepairResponse(str, enum.Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    COUNTER = "counter"


class AppraisalStatus(str, enum.Enum):
    ORDERED = "ordered"
    SCHEDULED = "scheduled"
    APPROVED = "approved"
    LOW_APPRAISAL = "low_appraisal"
    CANCELLED = "cancelled"

    @classmethod
    def valid_transitions(cls) -> dict["AppraisalStatus", frozenset["AppraisalStatus"]]:
        """Allowed appraisal transitions. ``scheduled -> scheduled`` is a reschedule."""
        return {
            cls.ORDERED: frozenset({cls.SCHEDULED}),
            cls.SCHEDULED: frozenset({cls.SCHEDULED, cls.APPROVED, cls.LOW_APPRAISAL}),
            cls.LOW_APPRAISAL: frozenset({cls.APPROVED, cls.CANCELLED}),
            cls.APPROVED: frozenset(),
            cls.CANCELLED: frozenset(),
        }


class AppraisalResolution(str, enum.Enum):
    PROCEED_AS_IS = "proceed_as_is"
    PRICE_REDUCED = "price_reduced"
    BUYER_PAYS_DIFFERENCE = "buyer_pays_difference"
    CONTRACT_CANCELLED = "contract_cancelled"


class ContingencyType(str, enum.Enum):
    INSPECTION = "inspection"
    FINANCING = "financing"
    APPRAISAL = "appraisal"
    SALE_OF_HOME = "sale_of_home"


class ContingencyStatus(str, enum.Enum):
    OPEN = "open"
    SATISFIED = "satisfied"
    WAIVED = "waived"

    @classmethod
    def valid_transitions(cls) -> dict["ContingencyStatus", frozenset["ContingencyStatus"]]:
        return {
            cls.OPEN: frozenset({cls.SATISFIED, cls.WAIVED}),
            cls.SATISFIED: frozenset(),
            cls.WAIVED: frozenset(),
        }
