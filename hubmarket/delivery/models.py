"""
Delivery tracking models.

Inputs to goal derivation (inventory items and per-placement overrides) and
the computed delivery summaries. Nothing here is persisted; summaries are
recomputed on every read.
"""

from typing import Dict, List, Optional
from pydantic import AliasChoices, BaseModel, Field

from .channels import GoalType
from .pacing import PacingStatus

class DeliveryGoalOverride(BaseModel):
    """Explicit per-placement delivery goal."""
    goal_type: Optional[str] = Field(None, validation_alias=AliasChoices("goalType", "goal_type"))
    goal_value: Optional[float] = Field(None, validation_alias=AliasChoices("goalValue", "goal_value"))

    def is_impression_goal(self) -> bool:
        return self.goal_type == GoalType.IMPRESSIONS.value and bool(self.goal_value) and self.goal_value > 0

class ItemPricing(BaseModel):
    """Pricing block of an inventory item."""
    pricing_model: Optional[str] = Field(None, validation_alias=AliasChoices("pricingModel", "pricing_model"))

class InventoryItem(BaseModel):
    """One placement selected for a publication in a campaign."""
    item_path: str = Field(
        ...,
        validation_alias=AliasChoices("itemPath", "sourcePath", "item_path"),
        description="Placement identifier"
    )
    item_name: Optional[str] = Field(None, validation_alias=AliasChoices("itemName", "item_name"))
    channel: Optional[str] = None
    is_excluded: bool = Field(False, validation_alias=AliasChoices("isExcluded", "is_excluded"))
    current_frequency: Optional[float] = Field(
        None, validation_alias=AliasChoices("currentFrequency", "current_frequency")
    )
    quantity: Optional[float] = None
    monthly_impressions: Optional[float] = Field(
        None, validation_alias=AliasChoices("monthlyImpressions", "monthly_impressions")
    )
    delivery_goal: Optional[DeliveryGoalOverride] = Field(
        None, validation_alias=AliasChoices("deliveryGoal", "delivery_goal")
    )
    item_pricing: Optional[ItemPricing] = Field(
        None, validation_alias=AliasChoices("itemPricing", "item_pricing")
    )

    class Config:
        extra = "ignore"

class ChannelGoal(BaseModel):
    """Accumulated goal for one channel of one order."""
    channel: str
    goal: int = 0
    goal_type: GoalType
    volume_label: str
    placements: int = 0

class GoalSet(BaseModel):
    """Goals for every channel of one publication's inventory."""
    by_channel: Dict[str, ChannelGoal] = Field(default_factory=dict)
    total_expected_reports: int = 0

class ChannelActivity(BaseModel):
    """Aggregated performance entries for one (order, channel) group."""
    report_count: int = 0
    impressions: int = 0
    clicks: int = 0

class OrderActivity(BaseModel):
    """Everything the reconciler needs from the entry store for one order."""
    channels: Dict[str, ChannelActivity] = Field(default_factory=dict)
    newsletter_sends: int = 0

    @property
    def report_count(self) -> int:
        return sum(activity.report_count for activity in self.channels.values())

class ChannelDelivery(BaseModel):
    """Goal against delivered amount for one channel."""
    channel: str
    goal: int
    delivered: int
    delivery_percent: int
    goal_type: GoalType
    volume_label: str

class OrderDelivery(BaseModel):
    """Delivery summary of one insertion order."""
    order_id: str
    campaign_id: str
    publication_id: str
    status: str
    by_channel: Dict[str, ChannelDelivery] = Field(default_factory=dict)
    pacing_percent: int = 0
    pacing_status: PacingStatus = PacingStatus.AT_RISK
    expected_reports: int = 0
    reports_submitted: int = 0
    impressions: int = 0
    clicks: int = 0

class DeliveryRollup(BaseModel):
    """Delivery summary summed across several orders."""
    by_channel: Dict[str, ChannelDelivery] = Field(default_factory=dict)
    overall_percent: int = 0
    total_expected_reports: int = 0
    total_reports_submitted: int = 0
    impressions: int = 0
    clicks: int = 0
    orders: List[OrderDelivery] = Field(default_factory=list)
