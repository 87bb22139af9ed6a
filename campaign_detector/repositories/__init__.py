"""Data access layer."""
from campaign_detector.repositories.base import BaseRepository
from campaign_detector.repositories.campaigns import CampaignRepository, SortOrder

__all__ = ["BaseRepository", "CampaignRepository", "SortOrder"]
