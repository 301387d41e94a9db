"""Campaign definition structures."""
from __future__ import annotations

from dataclasses import dataclass

from lorechronicles.core.types import Difficulty


@dataclass(frozen=True, slots=True)
class CampaignDef:
    """Author-created campaign; immutable during play."""

    id: str
    title: str
    start_node_id: str | None
    permadeath: bool = False
    difficulty: Difficulty = "normal"
    description: str = ""
