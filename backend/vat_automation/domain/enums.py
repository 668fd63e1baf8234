"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class QuarterGroup(str, Enum):
    """VAT stagger: the calendar months in which a client's quarters end"""
    JAN_APR_JUL_OCT = "1_4_7_10"
    FEB_MAY_AUG_NOV = "2_5_8_11"
    MAR_JUN_SEP_DEC = "3_6_9_12"


class VatWorkflowStage(str, Enum):
    """Lifecycle stage of a VAT quarter"""
    WAITING_FOR_QUARTER_END = "WAITING_FOR_QUARTER_END"  # Created ahead of period end
    PAPERWORK_PENDING_CHASE = "PAPERWORK_PENDING_CHASE"
    PAPERWORK_CHASED = "PAPERWORK_CHASED"
    PAPERWORK_RECEIVED = "PAPERWORK_RECEIVED"
    WORK_IN_PROGRESS = "WORK_IN_PROGRESS"
    QUERIES_PENDING = "QUERIES_PENDING"
    REVIEW_PENDING_MANAGER = "REVIEW_PENDING_MANAGER"
    REVIEWED_BY_MANAGER = "REVIEWED_BY_MANAGER"
    REVIEW_PENDING_PARTNER = "REVIEW_PENDING_PARTNER"
    REVIEWED_BY_PARTNER = "REVIEWED_BY_PARTNER"
    EMAILED_TO_PARTNER = "EMAILED_TO_PARTNER"
    EMAILED_TO_CLIENT = "EMAILED_TO_CLIENT"
    CLIENT_APPROVED = "CLIENT_APPROVED"
    FILED_TO_HMRC = "FILED_TO_HMRC"
    CLIENT_BOOKKEEPING = "CLIENT_BOOKKEEPING"  # Legacy, kept for stored records


class UserRole(str, Enum):
    """Staff roles"""
    PARTNER = "PARTNER"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    SYSTEM = "SYSTEM"  # Reserved for automated actions


class EmailStatus(str, Enum):
    """Delivery status of a queued email"""
    PENDING = "PENDING"
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"


class EmailType(str, Enum):
    """Kinds of email queued by the automation"""
    VAT_QUARTER_TRANSITION = "VAT_QUARTER_TRANSITION"
    VAT_QUARTER_ASSIGNMENT = "VAT_QUARTER_ASSIGNMENT"
    VAT_QUARTER_CREATION = "VAT_QUARTER_CREATION"


class ActivityAction(str, Enum):
    """Activity log actions written by the automation"""
    VAT_QUARTER_AUTO_TRANSITIONED = "VAT_QUARTER_AUTO_TRANSITIONED"
    VAT_QUARTER_AUTO_ASSIGNED_POST_TRANSITION = "VAT_QUARTER_AUTO_ASSIGNED_POST_TRANSITION"
    VAT_QUARTER_AUTO_CREATED = "VAT_QUARTER_AUTO_CREATED"


class CreationAction(str, Enum):
    """Per-client outcome of a quarter creation run"""
    CREATED = "CREATED"
    SKIPPED = "SKIPPED"
