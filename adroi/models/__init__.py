from adroi.models.models import (
    Campaign,
    CampaignMetric,
    Client,
    ClientNote,
    CommercialActivity,
    Contract,
    Deal,
    Goal,
    Insight,
    Organization,
    Project,
    Task,
    User,
)

__all__ = [
    "Campaign",
    "CampaignMetric",
    "Client",
    "ClientNote",
    "CommercialActivity",
    "Contract",
    "Deal",
    "Goal",
    "Insight",
    "Organization",
    "Project",
    "Task",
    "User",
]
