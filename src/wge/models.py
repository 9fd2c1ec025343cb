"""Core data models for reports, wards, users, trucks, alerts and policies."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator


WasteType = Literal[
    "plastic",
    "organic",
    "mixed",
    "construction",
    "medical",
    "e-waste",
    "hazardous",
    "textile",
    "unclassified",
]

ReportStatus = Literal["reported", "verified", "assigned", "in-progress", "resolved", "rejected"]
TERMINAL_REPORT_STATUSES: frozenset[str] = frozenset({"resolved", "rejected"})

RiskLevel = Literal["low", "medium", "high", "critical"]
Urgency = Literal["LOW", "MEDIUM", "HIGH", "CRITICAL"]
UserRole = Literal["citizen", "ward-officer", "supervisor", "admin", "enforcement"]
TruckStatus = Literal["available", "assigned", "active"]
AlertType = Literal["OVERFLOW_RISK", "ILLEGAL_DUMPING"]

BudgetPriority = Literal["low", "medium", "high", "urgent"]
PolicyStatus = Literal[
    "generated", "under-review", "approved", "rejected", "implemented", "monitored"
]


class Collections:
    """Document-store collection names."""

    REPORTS = "waste_reports"
    WARDS = "wards"
    USERS = "users"
    TRUCKS = "trucks"
    POLICIES = "policy_recommendations"
    JOB_RUNS = "job_runs"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


def severity_bucket(severity_score: int) -> RiskLevel:
    """Map a 1-5 severity score onto the low/medium/high/critical buckets."""
    if severity_score <= 2:
        return "low"
    if severity_score == 3:
        return "medium"
    if severity_score == 4:
        return "high"
    return "critical"


class Document(BaseModel):
    """Base for anything stored in the document store."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str

    def to_document(self) -> dict[str, Any]:
        """JSON-safe dict suitable for the store."""
        return self.model_dump(mode="json")


# --------------------------------------------------------------------------
# Waste reports
# --------------------------------------------------------------------------


class ReportLocation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    coordinates: tuple[float, float]  # (longitude, latitude)
    ward_number: int = Field(ge=1, le=100)
    address: Optional[str] = None

    @field_validator("coordinates")
    @classmethod
    def _validate_coordinates(cls, value: tuple[float, float]) -> tuple[float, float]:
        lon, lat = value
        if not (-180 <= lon <= 180 and -90 <= lat <= 90):
            raise ValueError("coordinates must be (longitude, latitude) within valid ranges")
        return value

    @property
    def longitude(self) -> float:
        return self.coordinates[0]

    @property
    def latitude(self) -> float:
        return self.coordinates[1]


class Classification(BaseModel):
    model_config = ConfigDict(extra="ignore")

    waste_type: WasteType = "unclassified"
    severity_score: int = Field(default=1, ge=1, le=5)
    is_illegal_dumping: bool = False
    ai_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class StatusEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: ReportStatus
    timestamp: datetime
    actor: Optional[str] = None
    notes: Optional[str] = None


class ReportStatusState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: ReportStatus = "reported"
    history: list[StatusEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _current_matches_history(self) -> "ReportStatusState":
        if self.history and self.history[-1].status != self.current:
            raise ValueError("status.current must equal the last history entry's status")
        return self


class Assignment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    officer_id: Optional[str] = None
    team: Optional[str] = None
    truck_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    expected_completion_time: Optional[datetime] = None


class Resolution(BaseModel):
    model_config = ConfigDict(extra="ignore")

    resolved_at: Optional[UtcDatetime] = None
    resolved_by: Optional[str] = None
    waste_collected_kg: Optional[float] = Field(default=None, ge=0)
    action_taken: Optional[str] = None


class WasteReport(Document):
    """One citizen- or sensor-originated observation."""

    location: ReportLocation
    classification: Classification = Field(default_factory=Classification)
    status: ReportStatusState = Field(default_factory=ReportStatusState)
    assigned_to: Optional[Assignment] = None
    resolution: Optional[Resolution] = None
    reported_at: UtcDatetime

    @property
    def ward_number(self) -> int:
        return self.location.ward_number

    @property
    def is_open(self) -> bool:
        return self.status.current not in TERMINAL_REPORT_STATUSES

    @property
    def response_time_minutes(self) -> Optional[float]:
        """Minutes from report to resolution, when resolved."""
        if self.resolution is None or self.resolution.resolved_at is None:
            return None
        delta = self.resolution.resolved_at - self.reported_at
        return max(0.0, delta.total_seconds() / 60)


# --------------------------------------------------------------------------
# Wards
# --------------------------------------------------------------------------


class Demographics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    population: Optional[int] = None
    area_sq_km: Optional[float] = None


class CleanlinessFactors(BaseModel):
    report_frequency: float
    resolution_speed: float
    severity_factor: float
    resolution_rate: float


class CleanlinessSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore")

    score: float
    timestamp: datetime
    factors: Optional[CleanlinessFactors] = None


class CleanlinessIndex(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: float = Field(default=100.0, ge=0, le=100)
    history: list[CleanlinessSnapshot] = Field(default_factory=list)


class ActiveReports(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    by_status: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class OverflowRisk(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_level: RiskLevel = "low"
    probability: Optional[float] = Field(default=None, ge=0, le=100)
    estimated_overflow_time: Optional[datetime] = None
    predicted_at: Optional[datetime] = None


class Bins(BaseModel):
    model_config = ConfigDict(extra="ignore")

    total: int = 0
    capacity: float = 100.0


class Infrastructure(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bins: Bins = Field(default_factory=Bins)


class Performance(BaseModel):
    model_config = ConfigDict(extra="ignore")

    average_response_time: Optional[float] = None  # minutes


class Ward(Document):
    """One administrative unit; all derived fields are caches over the report log."""

    ward_number: int = Field(ge=1, le=100)
    name: str = ""
    zone: Optional[str] = None
    demographics: Demographics = Field(default_factory=Demographics)
    cleanliness_index: CleanlinessIndex = Field(default_factory=CleanlinessIndex)
    active_reports: ActiveReports = Field(default_factory=ActiveReports)
    overflow_risk: OverflowRisk = Field(default_factory=OverflowRisk)
    infrastructure: Infrastructure = Field(default_factory=Infrastructure)
    performance: Performance = Field(default_factory=Performance)
    current_load: float = Field(default=0.0, ge=0)

    @property
    def display_name(self) -> str:
        return self.name or f"Ward {self.ward_number}"


# --------------------------------------------------------------------------
# Users
# --------------------------------------------------------------------------


class CitizenMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reports_submitted: int = Field(default=0, ge=0)
    reports_verified: int = Field(default=0, ge=0)
    participation_score: float = Field(default=0.0, ge=0, le=10)


class OfficerMetrics(BaseModel):
    model_config = ConfigDict(extra="ignore")

    tasks_assigned: int = Field(default=0, ge=0)
    tasks_completed: int = Field(default=0, ge=0)
    efficiency: float = Field(default=0.0, ge=0, le=100)
    average_response_time: Optional[float] = None


class User(Document):
    name: str = ""
    role: UserRole = "citizen"
    citizen_metrics: CitizenMetrics = Field(default_factory=CitizenMetrics)
    officer_metrics: OfficerMetrics = Field(default_factory=OfficerMetrics)


# --------------------------------------------------------------------------
# Trucks and alerts
# --------------------------------------------------------------------------


class Truck(Document):
    name: str = ""
    status: TruckStatus = "available"
    assigned_ward: Optional[int] = None


class Alert(BaseModel):
    """Computed per pass, never persisted."""

    id: str
    type: AlertType
    severity: Urgency
    ward_number: int
    ward_name: str
    message: str
    created_at: datetime
    overflow_probability: Optional[float] = None
    hours_to_overflow: Optional[float] = None
    incident_count: Optional[int] = None
    assigned_truck: Optional[str] = None
    actions: list[str] = Field(default_factory=list)


# --------------------------------------------------------------------------
# Policy recommendations
# --------------------------------------------------------------------------


class PolicyContext(BaseModel):
    model_config = ConfigDict(extra="ignore")

    incident_count: int = 0
    timeframe: str = ""
    severity: RiskLevel = "medium"
    waste_types: list[str] = Field(default_factory=list)


class InfrastructureItem(BaseModel):
    type: str
    priority: RiskLevel
    estimated_cost: float
    expected_impact: str
    timeline: str


class EnforcementItem(BaseModel):
    action: str
    target: str = ""
    schedule: str = ""
    resources: str = ""


class AwarenessItem(BaseModel):
    campaign: str
    target_audience: str = ""
    channel: str = ""
    duration: str = ""


class EstimatedImpact(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reduction_in_complaints: float = 0.0  # percentage
    time_to_implement_days: Optional[int] = None


class RecommendationPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    infrastructure: list[InfrastructureItem] = Field(default_factory=list)
    enforcement: list[EnforcementItem] = Field(default_factory=list)
    awareness: list[AwarenessItem] = Field(default_factory=list)
    budget_priority: BudgetPriority = "medium"
    estimated_impact: EstimatedImpact = Field(default_factory=EstimatedImpact)


class PolicyStatusEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: PolicyStatus
    timestamp: datetime
    actor: Optional[str] = None
    notes: Optional[str] = None


class PolicyStatusState(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current: PolicyStatus = "generated"
    history: list[PolicyStatusEntry] = Field(default_factory=list)


class Milestone(BaseModel):
    milestone: str
    completed_at: datetime


class Implementation(BaseModel):
    model_config = ConfigDict(extra="ignore")

    progress: float = Field(default=0.0, ge=0, le=100)
    started_at: Optional[datetime] = None
    expected_completion_date: Optional[datetime] = None
    actual_completion_date: Optional[datetime] = None
    assigned_to: list[str] = Field(default_factory=list)
    budget_allocated: Optional[float] = None
    budget_spent: float = 0.0
    milestones_completed: list[Milestone] = Field(default_factory=list)


class PolicyReview(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reviewed_by: Optional[str] = None
    reviewed_at: Optional[datetime] = None
    decision: Literal["approved", "rejected", "needs-revision"]
    feedback: Optional[str] = None


class PolicyRecommendation(Document):
    ward_number: int = Field(ge=1, le=100)
    rule: str
    title: str
    description: str = ""
    reasoning: str = ""
    context: PolicyContext = Field(default_factory=PolicyContext)
    recommendations: RecommendationPayload = Field(default_factory=RecommendationPayload)
    budget: float = 0.0
    timeline: str = ""
    expected_impact: str = ""
    priority: int = Field(default=5, ge=1, le=10)
    priority_level: RiskLevel = "medium"
    status: PolicyStatusState = Field(default_factory=PolicyStatusState)
    review: Optional[PolicyReview] = None
    implementation: Implementation = Field(default_factory=Implementation)
    created_at: datetime
    updated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status.current not in {"rejected", "monitored"}
