"""
Domain models cached by the dashboard resources.
"""

from datetime import date, datetime, timezone
from typing import Generic, List, Literal, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")

ClientStatus = Literal["active", "inactive", "prospect"]
EntityType = Literal["individual", "business", "partnership", "trust"]
ProjectType = Literal["nexus_analysis", "vda", "tax_prep", "bookkeeping", "advisory"]
ProjectStatus = Literal["pending", "in_progress", "completed", "on_hold"]
RevenueType = Literal["returns", "on_call", "project"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Entity(BaseModel):
    """Base for records keyed by a server-assigned id."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime = Field(default_factory=_utcnow)


class Client(Entity):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    status: ClientStatus = "prospect"
    entity_type: EntityType = "individual"
    notes: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


class Project(Entity):
    client_id: str
    name: str
    type: ProjectType
    status: ProjectStatus = "pending"
    amount: Optional[float] = None
    estimated_hours: Optional[float] = None
    actual_hours: float = 0.0
    due_date: Optional[date] = None
    notes: Optional[str] = None
    updated_at: datetime = Field(default_factory=_utcnow)


class RevenueEntry(Entity):
    type: RevenueType
    amount: float
    month: int = Field(ge=1, le=12)
    year: int
    description: Optional[str] = None
    project_id: Optional[str] = None
    client_id: Optional[str] = None


class ClientStats(BaseModel):
    total: int = 0
    active: int = 0
    prospects: int = 0
    inactive: int = 0
    business_clients: int = 0
    individual_clients: int = 0
    recently_added: int = 0
    conversion_rate: float = 0.0


class ProjectStats(BaseModel):
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    on_hold: int = 0
    overdue: int = 0
    total_value: float = 0.0
    average_value: float = 0.0
    completion_rate: float = 0.0
    average_hours: float = 0.0


class RevenueStats(BaseModel):
    current_month: float = 0.0
    last_month: float = 0.0
    year_to_date: float = 0.0
    last_year: float = 0.0
    monthly_growth: float = 0.0
    yearly_growth: float = 0.0
    average_monthly: float = 0.0
    projected_yearly: float = 0.0
    target_progress: float = 0.0


class RevenueByType(BaseModel):
    returns: float = 0.0
    project: float = 0.0
    on_call: float = 0.0


class MonthlyRevenue(BaseModel):
    month: int
    year: int
    month_name: str
    total: float = 0.0
    returns: float = 0.0
    project: float = 0.0
    on_call: float = 0.0
    growth: float = 0.0


class PaginatedResponse(BaseModel, Generic[T]):
    data: List[T]
    total: int
    page: int
    limit: int
    total_pages: int
