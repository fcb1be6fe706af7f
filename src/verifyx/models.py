"""
Domain models shared by the orchestrator, aggregator and progress tracker
"""

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field


def round_half_up(value: float) -> int:
    """Nearest integer with .5 rounded up, unlike the built-in round()"""
    return math.floor(value + 0.5)


class ValidatorCategory(str, Enum):
    """Fixed taxonomy of validator perspectives"""

    LOGIC = "logic"
    FACT = "fact"
    CONTEXT = "context"
    COMPREHENSIVE = "comprehensive"


class ProgressStep(str, Enum):
    """Lifecycle steps of a verification session"""

    PENDING = "pending"
    VERIFYING = "verifying"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProgressStep.COMPLETED, ProgressStep.ERROR)


class ValidatorSpec(BaseModel):
    """One configured validator of the panel"""

    model_config = ConfigDict(frozen=True)

    name: str
    category: ValidatorCategory


class OracleVerdict(BaseModel):
    """A verdict parsed out of an oracle response"""

    model_config = ConfigDict(frozen=True)

    verdict: bool
    confidence: int = Field(ge=0, le=100)
    reasoning: str


class ValidatorResult(BaseModel):
    """Outcome of one validator applied to one proposition"""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    category: ValidatorCategory
    verdict: bool
    confidence: int = Field(ge=0, le=100)
    reasoning: str
    succeeded: bool
    response_time: float = 0.0

    @computed_field
    @property
    def decision(self) -> str:
        if not self.succeeded:
            return "failed"
        return "true" if self.verdict else "false"


class PropositionPanel(BaseModel):
    """A proposition together with its ordered validator results"""

    model_config = ConfigDict(frozen=True)

    proposition: str
    validators: List[ValidatorResult]

    @property
    def panel_size(self) -> int:
        return len(self.validators)


class Votes(BaseModel):
    model_config = ConfigDict(frozen=True)

    true: int = 0
    false: int = 0
    failed: int = 0

    @property
    def valid(self) -> int:
        return self.true + self.false


class ConsensusAnalysis(BaseModel):
    """Majority decision derived from a single panel"""

    model_config = ConfigDict(frozen=True)

    votes: Votes
    panel_size: int
    majority_threshold: int
    consensus_reached: bool
    consensus: bool
    tie: bool
    majority_strength: int
    average_confidence: int
    unanimity: bool
    agreement_level: int


class AnswerQuality(BaseModel):
    model_config = ConfigDict(frozen=True)

    verifiability: float
    reliability: float
    consistency: float
    overall_score: int


class ConsensusSummary(BaseModel):
    """Rollup over every panel of one verification"""

    model_config = ConfigDict(frozen=True)

    total_propositions: int
    consensus_reached: int
    unanimous_decisions: int
    strong_consensus: int
    true_consensus: int
    false_consensus: int
    no_consensus: int
    average_agreement_level: int
    average_confidence: int
    answer_quality: AnswerQuality


class ProgressSnapshot(BaseModel):
    """Latest known progress of a session"""

    model_config = ConfigDict(frozen=True)

    session_id: str
    step: ProgressStep
    progress: int = Field(ge=0, le=100)
    completed_units: int = 0
    total_units: int = 0
    message: str = ""
    timestamp: datetime


class PanelReport(BaseModel):
    """A panel together with its consensus analysis"""

    model_config = ConfigDict(frozen=True)

    proposition: str
    validators: List[ValidatorResult]
    analysis: ConsensusAnalysis


class VerificationReport(BaseModel):
    """Everything returned for one verification or consensus request"""

    model_config = ConfigDict(frozen=True)

    consensus_id: str
    session_id: Optional[str] = None
    results: List[PanelReport]
    summary: ConsensusSummary
    timestamp: datetime
