"""
Channel normalization table.

Maps a channel identifier to whether it is digital, the unit its volume is
counted in and the kind of goal it carries. Goal derivation and delivered
amount derivation both resolve channels through ``channel_config`` so the
two sides of every ratio share a unit.
"""

from enum import Enum
from typing import Dict, Optional
from pydantic import BaseModel

class GoalType(str, Enum):
    """How a channel goal is expressed."""
    IMPRESSIONS = "impressions"
    FREQUENCY = "frequency"

DIGITAL_CHANNELS = frozenset({"website", "streaming"})
NEWSLETTER_CHANNEL = "newsletter"
DEFAULT_CHANNEL = "other"

VOLUME_LABELS: Dict[str, str] = {
    "newsletter": "Sends",
    "podcast": "Episodes",
    "radio": "Spots",
    "print": "Insertions",
}
DIGITAL_VOLUME_LABEL = "Impressions"
FALLBACK_VOLUME_LABEL = "Units"

class ChannelConfig(BaseModel):
    """Resolved configuration for one channel."""
    channel: str
    is_digital: bool
    volume_label: str
    goal_type: GoalType

    class Config:
        frozen = True

def normalize_channel(channel: Optional[str]) -> str:
    """Lowercase, trim and underscore a channel name; empty becomes ``other``."""
    if not channel:
        return DEFAULT_CHANNEL
    key = "_".join(str(channel).strip().lower().split())
    return key or DEFAULT_CHANNEL

def is_digital(channel: Optional[str]) -> bool:
    return normalize_channel(channel) in DIGITAL_CHANNELS

def is_newsletter(channel: Optional[str]) -> bool:
    return normalize_channel(channel) == NEWSLETTER_CHANNEL

def channel_config(channel: Optional[str]) -> ChannelConfig:
    """
    Resolve a channel to its configuration.

    Unknown channels resolve to a frequency goal counted in "Units".

    Args:
        channel: Raw channel value from an inventory item or performance entry

    Returns:
        ChannelConfig: Normalized channel key with its unit and goal type
    """
    key = normalize_channel(channel)
    if key in DIGITAL_CHANNELS:
        return ChannelConfig(
            channel=key,
            is_digital=True,
            volume_label=DIGITAL_VOLUME_LABEL,
            goal_type=GoalType.IMPRESSIONS,
        )
    return ChannelConfig(
        channel=key,
        is_digital=False,
        volume_label=VOLUME_LABELS.get(key, FALLBACK_VOLUME_LABEL),
        goal_type=GoalType.FREQUENCY,
    )
