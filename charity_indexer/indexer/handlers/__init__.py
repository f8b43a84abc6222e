"""
Event handlers (transformers) for charity contract events.
"""

from .campaign_handlers import CampaignHandlers
from .donation_handlers import DonationHandlers
from .funds_handlers import FundsHandlers
from .retired_handlers import RetiredHandlers

__all__ = [
    "CampaignHandlers",
    "DonationHandlers",
    "FundsHandlers",
    "RetiredHandlers",
]
