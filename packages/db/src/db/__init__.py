# This project was developed with assistance from AI tools.
__version__ = "0.1.0"

from .database import Base, DatabaseService, dialect_insert, get_db, get_db_service
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
    PartyRole,
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
    UserRole,
    WalkThroughStatus,
)
from .models import (
    Appraisal,
    ClosingAppointment,
    ClosingDiscrepancy,
    ClosingDisclosure,
    ClosingFee,
    Contingency,
    Disbursement,
    EarnestMoneyDeposit,
    Funding,
    Inspection,
    InsurancePolicy,
    LetterOfIntent,
    LoanEstimate,
    LoanEstimateFee,
    MovingPreparation,
    Offer,
    Participant,
    Property,
    RecordingLog,
    RepairItem,
    RepairRequest,
    SigningDocument,
    Task,
    TaskValue,
    Transaction,
    TransactionActivity,
    UnderwritingCondition,
    UnderwritingDocument,
    UnderwritingStatus,
    UtilityTransfer,
    WalkThrough,
    WalkThroughIssue,
    WalkThroughItem,
    WireInstructions,
)

__all__ = [
    "Base",
    "DatabaseService",
    "dialect_insert",
    "get_db",
    "get_db_service",
    "__version__",
    # Enums
    "AppraisalResolution",
    "AppraisalStatus",
    "ContingencyStatus",
    "ContingencyType",
    "DiscrepancyStatus",
    "DisclosureStatus",
    "EarnestMoneyStatus",
    "FeePaidBy",
    "FinancingType",
    "FundingStatus",
    "FundMethod",
    "InspectionStatus",
    "InsuranceStatus",
    "IssueSeverity",
    "LetterStatus",
    "LetterType",
    "OfferStatus",
    "PartyRole",
    "PropertyStatus",
    "RecordingStatus",
    "RepairRequestStatus",
    "RepairResponse",
    "SignerRole",
    "TaskStatus",
    "TransactionPhase",
    "TransactionStatus",
    "UnderwritingConditionStatus",
    "UnderwritingState",
    "UserRole",
    "WalkThroughStatus",
    # Models
    "Appraisal",
    "ClosingAppointment",
    "ClosingDiscrepancy",
    "ClosingDisclosure",
    "ClosingFee",
    "Contingency",
    "Disbursement",
    "EarnestMoneyDeposit",
    "Funding",
    "Inspection",
    "InsurancePolicy",
    "LetterOfIntent",
    "LoanEstimate",
    "LoanEstimateFee",
    "MovingPreparation",
    "Offer",
    "Participant",
    "Property",
    "RecordingLog",
    "RepairItem",
    "RepairRequest",
    "SigningDocument",
    "Task",
    "TaskValue",
    "Transaction",
    "TransactionActivity",
    "UnderwritingCondition",
    "UnderwritingDocument",
    "UnderwritingStatus",
    "UtilityTransfer",
    "WalkThrough",
    "WalkThroughIssue",
    "WalkThroughItem",
    "WireInstructions",
]
