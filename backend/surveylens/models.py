"""
Single source of truth for all Pydantic models (survey inputs, analysis records,
LLM output schemas, API requests and responses).
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_validator

Priority = Literal["critical", "high", "medium", "low"]
RecommendationCategory = Literal["brand", "product", "pricing", "strategy", "geographic", "discontinue"]

DEMOGRAPHIC_FIELDS = ("age", "gender", "income", "location", "ethnicity")


# -----------------------------------------------------------------------------
# Survey Input Models
# -----------------------------------------------------------------------------


class Question(BaseModel):
    id: str
    text: str
    type: str = Field(..., description="'scale' | 'multiple_choice' | 'yes_no' | 'text_short' | 'text_long'")
    options: list[str] = []
    scale_min: int = 1
    scale_max: int = 10
    role: Optional[str] = Field(None, description="'purchase_intent' | 'price' | 'benefit'; drives the overview")


class SurveyAnswer(BaseModel):
    question_id: str
    value: Union[bool, int, float, str, list[str], None] = None


class Demographics(BaseModel):
    age: Optional[str] = None
    gender: Optional[str] = None
    income: Optional[str] = None
    location: Optional[str] = None
    ethnicity: Optional[str] = None


class SurveyResponse(BaseModel):
    id: str
    answers: list[SurveyAnswer] = []
    demographics: Demographics = Field(default_factory=Demographics)
    metadata: dict[str, Any] = {}

    def answer_for(self, question_id: str) -> Optional[SurveyAnswer]:
        """Return the first answer to question_id, or None if the respondent skipped it."""
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None


class SurveySection(BaseModel):
    id: str
    title: str
    description: str = ""
    questions: list[Question] = []


class SurveyDraft(BaseModel):
    """A generated survey: sections of questions plus display settings."""
    sections: list[SurveySection]
    settings: dict[str, Any] = {}

    @property
    def questions(self) -> list[Question]:
        return [q for section in self.sections for q in section.questions]


class ProductInfo(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    industry: Optional[str] = None
    target_audience: Optional[str] = None
    price_range: Optional[str] = None
    key_features: list[str] = []
    competitors: list[str] = []


# -----------------------------------------------------------------------------
# Question Analysis Models
# -----------------------------------------------------------------------------


class ConfidenceInterval(BaseModel):
    lower: float
    upper: float


class DistributionBucket(BaseModel):
    value: float
    count: int
    percentage: float


class ScaleStatistics(BaseModel):
    mean: float
    median: float
    mode: float
    std_dev: float
    variance: float
    confidence_interval: ConfidenceInterval
    distribution: list[DistributionBucket]


class OptionCount(BaseModel):
    option: str
    count: int
    percentage: float


class Significance(BaseModel):
    p_value: float
    significant: bool
    vs_overall: str


class DemographicGroup(BaseModel):
    value: str
    count: int
    percentage: float
    mean: Optional[float] = None
    significance: Optional[Significance] = None


class DemographicBreakdown(BaseModel):
    demographic: str
    field: str
    breakdown: list[DemographicGroup]


class QuestionAnalysis(BaseModel):
    question_id: str
    question_text: str
    question_type: str

    total_responses: int
    skipped: int
    completion_rate: float

    statistics: Optional[ScaleStatistics] = None
    breakdown: Optional[list[OptionCount]] = None

    by_demographic: list[DemographicBreakdown] = []
    insights: list[str] = []


# -----------------------------------------------------------------------------
# Survey-Level Models (overview, patterns, recommendations)
# -----------------------------------------------------------------------------


class Overview(BaseModel):
    avg_purchase_intent: float = 0.0
    optimal_price: Optional[float] = None
    top_benefit: Optional[str] = None
    sample_size: int = 0


class PatternSegment(BaseModel):
    name: str
    size: int
    purchase_intent: float
    lift: float


class Pattern(BaseModel):
    id: str
    type: Literal["demographic", "geographic", "psychographic", "behavioral"]
    title: str
    description: str
    confidence: float
    p_value: float
    sample_size: int
    segments: list[PatternSegment]
    impact: Priority
    lift: float


class SupportingData(BaseModel):
    insight_ids: list[str] = []
    pattern_ids: list[str] = []
    metrics: dict[str, float] = {}


class RecommendationAction(BaseModel):
    action: str
    timeline: str
    difficulty: Literal["easy", "medium", "hard"]
    estimated_impact: str


class ExpectedOutcome(BaseModel):
    metric: str
    current: float
    projected: float
    lift: float


class Recommendation(BaseModel):
    id: str
    category: RecommendationCategory
    priority: Priority

    title: str
    description: str
    reasoning: str

    supporting_data: SupportingData = Field(default_factory=SupportingData)
    actions: list[RecommendationAction] = []
    expected_outcome: list[ExpectedOutcome] = []

    timeline: str = ""
    difficulty: str = ""


# -----------------------------------------------------------------------------
# LLM Response Models (for structured output validation)
# -----------------------------------------------------------------------------


class PersonaDemographics(BaseModel):
    income: str = ""
    education: str = ""
    occupation: str = ""
    family_status: str = ""


class PersonaPsychographics(BaseModel):
    values: list[str] = []
    lifestyle: list[str] = []
    pain_points: list[str] = []
    goals: list[str] = []


class PersonaBehaviors(BaseModel):
    shopping_habits: str = ""
    brand_loyalty: str = ""
    influencers: str = ""
    decision_factors: list[str] = []


class PersonaDraft(BaseModel):
    """What the LLM returns for one persona; cluster metrics are filled in by us."""
    name: str
    age: int
    location: str
    archetype: str
    demographics: PersonaDemographics = Field(default_factory=PersonaDemographics)
    psychographics: PersonaPsychographics = Field(default_factory=PersonaPsychographics)
    key_quotes: list[str] = []
    behaviors: PersonaBehaviors = Field(default_factory=PersonaBehaviors)


class Persona(PersonaDraft):
    id: str
    purchase_intent: float
    price_point: float
    sample_size: int
    system_prompt: str
    generated_by: Literal["ai", "template"] = "ai"


class InsightEvidence(BaseModel):
    data_points: list[str] = []
    sample_size: int = 0
    confidence: float = 0.0


class MarketInsight(BaseModel):
    id: str
    type: str = "finding"  # 'opportunity' | 'risk' | 'strategy' | 'finding'
    category: str = "market"
    priority: Literal["high", "medium", "low"] = "medium"
    title: str
    summary: str
    evidence: InsightEvidence = Field(default_factory=InsightEvidence)


class MarketInsightList(BaseModel):
    insights: list[MarketInsight]

    @model_validator(mode="before")
    @classmethod
    def wrap_bare_list(cls, data: object) -> object:
        """Accept a bare JSON array from the LLM as well as {"insights": [...]}."""
        if isinstance(data, list):
            return {"insights": data}
        return data


class ExecutiveSummary(BaseModel):
    bottom_line: str
    launch_status: Literal["GO", "CAUTION", "NO-GO"]
    key_finding: str
    strategic_implications: list[str] = []
    recommended_actions: list[str] = []
    risks: list[str] = []
    confidence: float = 0.0


class SyntheticRespondent(BaseModel):
    """One simulated respondent: demographic brackets plus answers keyed by question id."""
    demographics: Demographics = Field(default_factory=Demographics)
    answers: dict[str, Union[bool, int, float, str, list[str], None]] = {}

    @field_validator("demographics", mode="before")
    @classmethod
    def stringify_demographics(cls, data: object) -> object:
        """LLMs sometimes return age or income as numbers."""
        if isinstance(data, dict):
            return {
                k: str(v) if isinstance(v, (int, float)) and not isinstance(v, bool) else v
                for k, v in data.items()
            }
        return data


class SyntheticRespondentBatch(BaseModel):
    respondents: list[SyntheticRespondent]

    @model_validator(mode="before")
    @classmethod
    def wrap_bare_list(cls, data: object) -> object:
        """Accept a bare JSON array from the LLM as well as {"respondents": [...]}."""
        if isinstance(data, list):
            return {"respondents": data}
        return data


# -----------------------------------------------------------------------------
# Request Models
# -----------------------------------------------------------------------------


class QuestionAnalysisRequest(BaseModel):
    questions: list[Question] = Field(..., min_length=1)
    responses: list[SurveyResponse]


class RecommendationRequest(BaseModel):
    insights: list[MarketInsight] = []
    patterns: list[Pattern] = []
    overview: Overview


class ProcessRequest(BaseModel):
    product_info: Optional[ProductInfo] = None
    survey: SurveyDraft
    responses: list[SurveyResponse]
    validation_goals: list[str] = []


class SurveyGenerateRequest(BaseModel):
    product_info: ProductInfo
    validation_goals: list[str] = []


class SimulationRequest(BaseModel):
    product_info: ProductInfo
    survey: SurveyDraft
    sample_size: int = Field(100, ge=1, le=500)


class PersonaChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class PersonaChatRequest(BaseModel):
    message: str = Field(..., min_length=1)
    conversation_history: list[PersonaChatMessage] = []


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class QuestionAnalysisResponse(BaseModel):
    questions: list[QuestionAnalysis]


class RecommendationResponse(BaseModel):
    recommendations: list[Recommendation]


class SurveyGenerateResponse(BaseModel):
    survey: SurveyDraft
    warning: Optional[str] = None


class SimulationResponse(BaseModel):
    test_id: str
    responses: list[SurveyResponse]
    warning: Optional[str] = None


class PersonaChatResponse(BaseModel):
    persona_id: str
    response: str
    warning: Optional[str] = None


class AnalysisResult(BaseModel):
    test_id: str
    status: Literal["completed", "failed"]
    completed_at: Optional[datetime] = None
    error: Optional[str] = None

    overview: Optional[Overview] = None
    questions: list[QuestionAnalysis] = []
    patterns: list[Pattern] = []
    recommendations: list[Recommendation] = []
    personas: list[Persona] = []
    insights: list[MarketInsight] = []
    executive_summary: Optional[ExecutiveSummary] = None
    warnings: list[str] = []
