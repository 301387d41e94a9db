"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import textwrap
from typing import Iterable, Sequence

from lorechronicles.services.inventory_service import (
    InventoryActionFailedEvent,
    InventoryEvent,
    ItemAddedEvent,
    ItemBrokenEvent,
    ItemEquippedEvent,
    ItemRemovedEvent,
    ItemUnequippedEvent,
)
from lorechronicles.services.navigator import NodeView
from lorechronicles.services.story_service import (
    CharacterFellEvent,
    CharacterPerishedEvent,
    NodeEnteredEvent,
    SessionCompletedEvent,
    StatCheckPassedEvent,
    StatsChangedEvent,
    StoryEvent,
    XpAccumulatedEvent,
)

TEXT_WIDTH = 72


def debug_enabled() -> bool:
    """Return True only when LORE_DEBUG is explicitly set to '1'."""
    return os.getenv("LORE_DEBUG") == "1"


def wrap_text(text: str, width: int = TEXT_WIDTH) -> list[str]:
    """Wrap narration on word boundaries, keeping blank-line paragraphs."""
    if not text:
        return [""]
    lines: list[str] = []
    for paragraph in text.split("\n"):
        if not paragraph.strip():
            lines.append("")
            continue
        lines.extend(textwrap.wrap(paragraph, width=width, break_long_words=False, break_on_hyphens=False))
    return lines


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")


def format_choice_lines(view: NodeView) -> list[str]:
    lines: list[str] = []
    for idx, choice in enumerate(view.choices, start=1):
        label = f"{idx}. {choice.text}"
        if not choice.availability.available:
            label += f"  [locked: {choice.availability.message}]"
        lines.append(label)
    return lines


def render_node_view(view: NodeView) -> None:
    render_heading(view.title or "Story")
    if debug_enabled():
        print(f"[{view.node_id} / {view.node_type}]")
    if view.npc_name:
        print(f"({view.npc_name})")
    for line in wrap_text(view.text):
        print(line)
    if view.choices:
        render_heading("Choices")
        for line in format_choice_lines(view):
            print(line)


def format_story_event(event: StoryEvent) -> str | None:
    """One display line per event; None for events with nothing to show."""
    if isinstance(event, StatCheckPassedEvent):
        return f"{event.stat.title()} check passed ({event.actual} vs {event.required})."
    if isinstance(event, StatsChangedEvent):
        parts = [f"{stat.title()} {delta:+d}" for stat, delta in event.changes.items()]
        return "Stats changed: " + ", ".join(parts)
    if isinstance(event, XpAccumulatedEvent):
        return f"+{event.amount} XP this session (Total: {event.session_total})."
    if isinstance(event, NodeEnteredEvent):
        return None
    if isinstance(event, SessionCompletedEvent):
        line = f"Adventure complete! Earned {event.breakdown.total} XP (now {event.new_xp})."
        if event.leveled_up:
            line += f" Level up! You are now level {event.new_level}."
        return line
    if isinstance(event, CharacterFellEvent):
        return (
            f"{event.character_name} has fallen: {event.cause} "
            f"(+{event.partial_xp} XP, legacy bonus {event.legacy.xp_bonus} XP)."
        )
    if isinstance(event, CharacterPerishedEvent):
        return f"{event.character_name} has perished forever: {event.cause}"
    return str(event)


def format_inventory_event(event: InventoryEvent) -> str:
    if isinstance(event, ItemAddedEvent):
        return f"Received {event.quantity}x {event.item_name} (Total: {event.total})."
    if isinstance(event, ItemRemovedEvent):
        return f"Lost {event.quantity}x {event.item_name} ({event.remaining} left)."
    if isinstance(event, ItemEquippedEvent):
        return f"Equipped {event.item_name} ({event.slot})."
    if isinstance(event, ItemUnequippedEvent):
        return f"Unequipped {event.item_name} ({event.slot})."
    if isinstance(event, ItemBrokenEvent):
        return f"{event.item_name} broke!"
    if isinstance(event, InventoryActionFailedEvent):
        return event.message
    return str(event)
