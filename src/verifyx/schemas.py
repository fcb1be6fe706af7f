"""
Request and response models for the HTTP API
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from .models import (
    PropositionPanel,
    ValidatorCategory,
    ValidatorResult,
    VerificationReport,
)


class VerifyRequest(BaseModel):
    """Request model for the verify endpoint"""
    propositions: List[str] = Field(default_factory=list)
    session_id: Optional[str] = None


class SplitRequest(BaseModel):
    """Either field is accepted; ``answer`` wins when both are given"""
    answer: Optional[str] = None
    question: Optional[str] = None
    session_id: Optional[str] = None


class SplitResponse(BaseModel):
    success: bool = True
    propositions: List[str]
    text: str
    session_id: Optional[str] = None


class GenerateRequest(BaseModel):
    question: str


class GenerateResponse(BaseModel):
    success: bool = True
    question: str
    answer: str


class SubmittedValidator(BaseModel):
    """One validator outcome submitted for consensus analysis"""
    validator_id: Optional[int] = None
    name: str = ""
    category: ValidatorCategory = ValidatorCategory.COMPREHENSIVE
    success: bool
    is_true: bool = False
    confidence: int = 0
    reasoning: str = ""
    response_time: float = 0.0

    def to_result(self, position: int) -> ValidatorResult:
        return ValidatorResult(
            id=self.validator_id or position,
            name=self.name or f"Validator {position}",
            category=self.category,
            verdict=self.is_true if self.success else False,
            confidence=max(0, min(100, self.confidence)) if self.success else 0,
            reasoning=self.reasoning or "No reasoning provided",
            succeeded=self.success,
            response_time=self.response_time,
        )


class SubmittedPanel(BaseModel):
    proposition: str
    validators: List[SubmittedValidator] = Field(default_factory=list)

    def to_panel(self) -> PropositionPanel:
        return PropositionPanel(
            proposition=self.proposition,
            validators=[v.to_result(i) for i, v in enumerate(self.validators, start=1)],
        )


class ConsensusRequest(BaseModel):
    """Request model for the consensus endpoint"""
    results: List[SubmittedPanel]
    verification_id: Optional[str] = None


class ReportResponse(VerificationReport):
    success: bool = True


def report_response(report: VerificationReport) -> ReportResponse:
    return ReportResponse(**dict(report))
