"""Console-driven UI loops for Lore Chronicles."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Literal, Sequence

from lorechronicles.config import EngineConfig, load_config
from lorechronicles.data.content_store import ContentStore
from lorechronicles.data.stores import GameStore, JsonFileGameStore
from lorechronicles.domain.character import Character
from lorechronicles.domain.defs import CampaignDef
from lorechronicles.integrations.http_interpreter import HttpActionInterpreter
from lorechronicles.presentation.cli.render import (
    format_story_event,
    render_bullet_lines,
    render_heading,
    render_menu,
    render_node_view,
)
from lorechronicles.services.errors import ExternalServiceError, LoreError, ReentrancyError
from lorechronicles.services.interpreter_service import FreeTextService
from lorechronicles.services.inventory_service import InventoryService
from lorechronicles.services.navigator import NodeView, StoryNavigator
from lorechronicles.services.session_guard import SessionGuard
from lorechronicles.services.session_service import SessionService
from lorechronicles.services.story_graph_validator import format_issue, validate_campaign_graph
from lorechronicles.services.story_service import ChoiceResult, StoryService

logger = logging.getLogger("lorechronicles.cli")

MenuAction = Literal["new_adventure", "continue", "create_character", "graveyard", "quit"]
LOCAL_USER_ID = "local-player"

_MENU_ACTIONS: Sequence[tuple[MenuAction, str]] = (
    ("new_adventure", "New Adventure"),
    ("continue", "Continue Adventure"),
    ("create_character", "Create Character"),
    ("graveyard", "Graveyard"),
    ("quit", "Quit"),
)


@dataclass(slots=True)
class Engine:
    content: ContentStore
    store: GameStore
    sessions: SessionService
    story: StoryService
    inventory: InventoryService
    free_text: FreeTextService
    interpreter: HttpActionInterpreter | None = None

    def close(self) -> None:
        """Release the interpreter's HTTP connection pool, if one was opened."""
        if self.interpreter is not None:
            self.interpreter.close()


def main(config: EngineConfig | None = None) -> None:
    """Start the interactive CLI session."""
    config = config or load_config()
    engine = build_engine(config)
    print("=== Lore Chronicles ===")
    _report_content_issues(engine.content)
    running = True
    try:
        while running:
            action = _main_menu_loop()
            try:
                running = _dispatch(engine, action)
            except LoreError as exc:
                logger.info("Action '%s' failed: %s", action, exc)
                print(f"! {exc}")
    finally:
        engine.close()
    print("Farewell, adventurer.")


def build_engine(config: EngineConfig, store: GameStore | None = None) -> Engine:
    """Wire repositories, store and services from configuration."""
    content = ContentStore.from_path(config.definitions_path)
    if store is None:
        store = JsonFileGameStore(config.store_path())
    navigator = StoryNavigator(content)
    guard = SessionGuard()
    interpreter = None
    if config.interpreter_enabled:
        interpreter = HttpActionInterpreter(
            config.interpreter_url,  # type: ignore[arg-type]
            api_key=config.interpreter_api_key,
            timeout=config.interpreter_timeout,
        )
    return Engine(
        content=content,
        store=store,
        sessions=SessionService(content, store, navigator=navigator, guard=guard),
        story=StoryService(
            content,
            store,
            navigator=navigator,
            guard=guard,
            death_cause_length=config.death_cause_length,
        ),
        inventory=InventoryService(content, store),
        free_text=FreeTextService(store, interpreter, guard=guard, history_window=config.history_window),
        interpreter=interpreter,
    )


def _report_content_issues(content: ContentStore) -> None:
    for campaign in content.list_campaigns():
        issues = validate_campaign_graph(campaign, content.nodes_for_campaign(campaign.id), content.items_by_id())
        for issue in issues:
            logger.warning("%s", format_issue(issue))
            if issue.is_error:
                print(format_issue(issue))


def _main_menu_loop() -> MenuAction:
    while True:
        render_menu("Main Menu", [label for _, label in _MENU_ACTIONS])
        index = _prompt_index(len(_MENU_ACTIONS))
        if index is not None:
            return _MENU_ACTIONS[index][0]


def _dispatch(engine: Engine, action: MenuAction) -> bool:
    if action == "quit":
        return False
    if action == "new_adventure":
        _start_adventure(engine)
    elif action == "continue":
        _continue_adventure(engine)
    elif action == "create_character":
        _create_character(engine)
    elif action == "graveyard":
        _show_graveyard(engine)
    return True


def _prompt_index(count: int, prompt: str = "Select an option: ") -> int | None:
    """Read a 1-based menu choice; None when the input is not a valid option."""
    raw = input(prompt).strip()
    try:
        index = int(raw) - 1
    except ValueError:
        print("Please enter a number.")
        return None
    if 0 <= index < count:
        return index
    print(f"Please enter a value between 1 and {count}.")
    return None


def _create_character(engine: Engine) -> Character | None:
    render_heading("New Character")
    name = input("Character name: ").strip()
    if not name:
        print("A character needs a name.")
        return None
    backstory = input("Backstory (optional): ").strip() or None
    character = engine.sessions.create_character(LOCAL_USER_ID, name, backstory=backstory)
    print(f"{character.name} is ready for adventure.")
    return character


def _pick_character(engine: Engine) -> Character | None:
    characters = engine.sessions.list_characters(LOCAL_USER_ID)
    if not characters:
        print("You have no living characters. Create one first.")
        return None
    render_menu("Choose Character", [f"{c.name} (Level {c.level}, {c.xp} XP)" for c in characters])
    index = _prompt_index(len(characters))
    return None if index is None else characters[index]


def _pick_campaign(engine: Engine) -> CampaignDef | None:
    campaigns = engine.content.list_campaigns()
    if not campaigns:
        print("No campaigns are available.")
        return None
    render_menu("Choose Campaign", [f"{c.title} [{c.difficulty}]" for c in campaigns])
    index = _prompt_index(len(campaigns))
    return None if index is None else campaigns[index]


def _start_adventure(engine: Engine) -> None:
    character = _pick_character(engine)
    if character is None:
        return
    campaign = _pick_campaign(engine)
    if campaign is None:
        return
    start = engine.sessions.start_session(campaign.id, character.id, LOCAL_USER_ID)
    _run_session(engine, start.session.id, start.node_view)


def _continue_adventure(engine: Engine) -> None:
    sessions = engine.sessions.list_sessions(LOCAL_USER_ID, active_only=True)
    if not sessions:
        print("No adventures in progress.")
        return
    labels = []
    for session in sessions:
        campaign = engine.content.get_campaign(session.campaign_id)
        character = engine.store.get_character(session.character_id)
        who = character.name if character else session.character_id
        labels.append(f"{campaign.title} with {who}")
    render_menu("Continue Adventure", labels)
    index = _prompt_index(len(sessions))
    if index is None:
        return
    session_id = sessions[index].id
    try:
        view = engine.sessions.resume_session(session_id)
    except ReentrancyError:
        print("That adventure has already ended.")
        return
    _run_session(engine, session_id, view)


def _show_graveyard(engine: Engine) -> None:
    fallen = engine.sessions.list_fallen(LOCAL_USER_ID)
    render_heading("Graveyard")
    if not fallen:
        print("No heroes have fallen. Yet.")
        return
    lines: List[str] = []
    for character in fallen:
        cause = character.death_context.cause if character.death_context else "unknown"
        where = f" in {character.death_context.campaign_title}" if character.death_context else ""
        lines.append(f"{character.name} (Level {character.level}) fell{where}: {cause}")
    render_bullet_lines(lines)


def _run_session(engine: Engine, session_id: str, view: NodeView) -> None:
    """Play a session until it completes or the player steps away."""
    while True:
        render_node_view(view)
        if not view.choices and not view.allows_free_text:
            print("The path ends here. Returning to main menu.")
            return
        extra = ["I = inventory", "Q = leave"]
        if view.allows_free_text:
            extra.insert(0, "F = free action")
        print(f"({', '.join(extra)})")
        raw = input("Select an option: ").strip()
        command = raw.upper()
        if command == "Q":
            print("Your progress is saved.")
            return
        if command == "I":
            _show_inventory(engine, session_id)
            continue
        if command == "F" and view.allows_free_text:
            _free_action(engine, session_id, view)
            view = engine.sessions.resume_session(session_id)
            continue
        try:
            index = int(raw) - 1
        except ValueError:
            print("Please enter a number.")
            continue
        if not 0 <= index < len(view.choices):
            print(f"Please enter a value between 1 and {len(view.choices)}.")
            continue
        choice = view.choices[index]
        if not choice.availability.available:
            print(choice.availability.message)
            continue
        try:
            result = engine.story.apply_choice(session_id, choice.choice_id)
        except LoreError as exc:
            logger.info("Choice %s failed on session %s: %s", choice.choice_id, session_id, exc)
            print(f"! {exc}")
            view = engine.sessions.resume_session(session_id)
            continue
        _handle_story_events(result)
        if result.session_status == "completed" or result.node_view is None:
            return
        view = result.node_view


def _handle_story_events(result: ChoiceResult) -> None:
    lines = [line for line in (format_story_event(event) for event in result.events) if line]
    if not lines:
        return
    print("\nEvents:")
    render_bullet_lines(lines)


def _free_action(engine: Engine, session_id: str, view: NodeView) -> None:
    prompt = view.free_text_prompt or "What do you do?"
    text = input(f"{prompt} ").strip()
    if not text:
        print("You hesitate and do nothing.")
        return
    if not engine.free_text.has_interpreter:
        engine.free_text.record_response(session_id, text)
        print("Your words are remembered.")
        return
    try:
        outcome = engine.free_text.submit_action(session_id, text)
    except ExternalServiceError as exc:
        print(f"The storyteller is unavailable: {exc}")
        return
    result = outcome.result
    if not outcome.applied:
        print(result.rejection_reason or result.interpretation)
        return
    print(result.outcome_narration)
    lines = [f"{stat.title()} {delta:+d}" for stat, delta in outcome.stat_changes.items()]
    if outcome.xp_gained:
        lines.append(f"+{outcome.xp_gained} XP")
    if result.stat_check.was_rolled:
        lines.append(f"{result.stat_check.stat.title()} check: {result.stat_check.result}")
    render_bullet_lines(lines)


def _show_inventory(engine: Engine, session_id: str) -> None:
    session = engine.sessions.get_session(session_id)
    inventory = engine.inventory.load(session.character_id)
    render_heading("Inventory")
    if not inventory.entries():
        print("Your pack is empty.")
        return
    lines = []
    for entry in inventory.entries():
        name = engine.content.get_item(entry.item_id).name
        label = f"{name} x{entry.quantity}"
        if entry.equipped_slot:
            label += f" (equipped: {entry.equipped_slot})"
        if entry.is_broken:
            label += " [broken]"
        lines.append(label)
    render_bullet_lines(lines)


__all__ = ["Engine", "build_engine", "main"]
