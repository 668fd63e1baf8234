"""Stage Rules - Allowed moves through the VAT workflow"""
from typing import List, Optional

from pydantic import BaseModel, Field

from ..domain.enums import VatWorkflowStage
from ..domain.errors import InvalidStageTransitionError
from ..utils.logger import get_logger

logger = get_logger(__name__)


VAT_WORKFLOW_STAGE_ORDER: List[VatWorkflowStage] = [
    VatWorkflowStage.WAITING_FOR_QUARTER_END,
    VatWorkflowStage.PAPERWORK_PENDING_CHASE,
    VatWorkflowStage.PAPERWORK_CHASED,
    VatWorkflowStage.PAPERWORK_RECEIVED,
    VatWorkflowStage.WORK_IN_PROGRESS,
    VatWorkflowStage.QUERIES_PENDING,
    VatWorkflowStage.REVIEW_PENDING_MANAGER,
    VatWorkflowStage.REVIEWED_BY_MANAGER,
    VatWorkflowStage.REVIEW_PENDING_PARTNER,
    VatWorkflowStage.REVIEWED_BY_PARTNER,
    VatWorkflowStage.EMAILED_TO_PARTNER,
    VatWorkflowStage.EMAILED_TO_CLIENT,
    VatWorkflowStage.CLIENT_APPROVED,
    VatWorkflowStage.FILED_TO_HMRC,
]

# Stages a quarter may be sent back to from anywhere later in the workflow
REGRESSION_ALLOWED_STAGES = frozenset({
    VatWorkflowStage.PAPERWORK_PENDING_CHASE,
    VatWorkflowStage.PAPERWORK_CHASED,
    VatWorkflowStage.PAPERWORK_RECEIVED,
    VatWorkflowStage.WORK_IN_PROGRESS,
})


class StageTransitionCheck(BaseModel):
    """Result of validating a stage move"""
    is_valid: bool
    is_skipping: bool = False
    skipped_stages: List[VatWorkflowStage] = Field(default_factory=list)
    message: Optional[str] = None


def _position(stage: VatWorkflowStage) -> int:
    try:
        return VAT_WORKFLOW_STAGE_ORDER.index(stage)
    except ValueError:
        return -1


def get_next_allowed_stages(current: VatWorkflowStage) -> List[VatWorkflowStage]:
    """The next stage forward plus any earlier stage that allows regression"""
    position = _position(current)
    if position < 0:
        return []

    allowed = []
    if position + 1 < len(VAT_WORKFLOW_STAGE_ORDER):
        allowed.append(VAT_WORKFLOW_STAGE_ORDER[position + 1])
    allowed.extend(
        stage for stage in VAT_WORKFLOW_STAGE_ORDER[:position]
        if stage in REGRESSION_ALLOWED_STAGES
    )
    return allowed


def validate_stage_transition(
    from_stage: Optional[VatWorkflowStage],
    to_stage: VatWorkflowStage
) -> StageTransitionCheck:
    """
    Classify a move between two stages

    A move from nothing (a new quarter) into any known stage is valid.
    Forward moves past the next stage are valid but flagged as skipping.
    """
    to_position = _position(to_stage)
    if to_position < 0:
        return StageTransitionCheck(is_valid=False, message=f"Unknown stage {to_stage.value}")

    if from_stage is None:
        return StageTransitionCheck(is_valid=True)

    from_position = _position(from_stage)
    if from_position < 0:
        return StageTransitionCheck(is_valid=False, message=f"Unknown stage {from_stage.value}")

    if from_position == to_position:
        return StageTransitionCheck(is_valid=False, message=f"Quarter is already in {to_stage.value}")

    if to_position < from_position:
        if to_stage in REGRESSION_ALLOWED_STAGES:
            return StageTransitionCheck(is_valid=True, message=f"Moving back to {to_stage.value}")
        return StageTransitionCheck(
            is_valid=False,
            message=f"Cannot move back from {from_stage.value} to {to_stage.value}"
        )

    skipped = VAT_WORKFLOW_STAGE_ORDER[from_position + 1:to_position]
    return StageTransitionCheck(
        is_valid=True,
        is_skipping=bool(skipped),
        skipped_stages=skipped,
        message=f"Skipping {len(skipped)} stage(s)" if skipped else None,
    )


def ensure_transition_allowed(
    from_stage: Optional[VatWorkflowStage],
    to_stage: VatWorkflowStage,
    allow_skip: bool = False
) -> StageTransitionCheck:
    """
    Validate a move, raising when it is not permitted

    Raises:
        InvalidStageTransitionError: invalid move, or a skip without ``allow_skip``
    """
    check = validate_stage_transition(from_stage, to_stage)
    details = {
        "from_stage": from_stage.value if from_stage else None,
        "to_stage": to_stage.value,
    }
    if not check.is_valid:
        raise InvalidStageTransitionError(check.message or "Invalid stage transition", details=details)
    if check.is_skipping and not allow_skip:
        details["skipped_stages"] = [stage.value for stage in check.skipped_stages]
        raise InvalidStageTransitionError(check.message or "Stage skip not allowed", details=details)
    return check
