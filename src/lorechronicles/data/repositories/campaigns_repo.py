"""Repository for campaign definitions."""
from __future__ import annotations

from typing import Dict

from lorechronicles.core.types import DIFFICULTIES
from lorechronicles.data.errors import DataValidationError
from lorechronicles.data.repositories.base import RepositoryBase
from lorechronicles.domain.defs import CampaignDef


class CampaignsRepository(RepositoryBase[CampaignDef]):
    """Loads campaign headers from campaigns.json."""

    def __init__(self, base_path=None) -> None:
        super().__init__("campaigns.json", base_path)

    def _build(self, raw: dict[str, object]) -> Dict[str, CampaignDef]:
        campaigns: Dict[str, CampaignDef] = {}
        for campaign_id, payload in raw.items():
            context = f"campaign '{campaign_id}'"
            data = self._require_mapping(payload, context)
            difficulty = self._require_str(data.get("difficulty", "normal"), f"{context} difficulty")
            if difficulty not in DIFFICULTIES:
                raise DataValidationError(f"{context} difficulty '{difficulty}' is not one of {list(DIFFICULTIES)}.")
            campaigns[campaign_id] = CampaignDef(
                id=campaign_id,
                title=self._require_str(data.get("title"), f"{context} title"),
                start_node_id=self._optional_str(data.get("start_node_id"), f"{context} start_node_id"),
                permadeath=self._require_bool(data.get("permadeath", False), f"{context} permadeath"),
                difficulty=difficulty,  # type: ignore[arg-type]
                description=self._require_str(data.get("description", ""), f"{context} description"),
            )
        return campaigns
