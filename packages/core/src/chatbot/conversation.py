"""Assembly of the conversation sent to a provider."""

from collections.abc import Iterable

from chatbot.models import Conversation, ConversationTurn, Role
from chatbot.sanitizer import sanitize_input

MAX_HISTORY_TURNS = 10


def build_conversation(
    system_instruction: str,
    history: Iterable[ConversationTurn],
    new_text: str,
    max_turns: int = MAX_HISTORY_TURNS,
) -> Conversation:
    """Build the outbound conversation for one user message.

    Only the last ``max_turns`` history turns are kept; older ones are
    dropped without summarizing.  Kept turns are sanitized again; a turn
    left empty still counts towards ``max_turns``.

    Args:
        system_instruction: Fixed preamble for the model.
        history: Prior turns in chronological order.
        new_text: The already-sanitized user message.
        max_turns: How many prior turns to keep.

    Returns:
        The conversation, ending with the new user turn.
    """
    recent = list(history)[-max_turns:] if max_turns > 0 else []

    turns = [
        ConversationTurn(role=turn.role, text=sanitize_input(turn.text))
        for turn in recent
    ]

    turns.append(ConversationTurn(role=Role.USER, text=new_text))
    return Conversation(system_instruction=system_instruction, turns=turns)
