"""
Prompt construction for memory-aware chat.

Two prompt dialects are supported: chat-completions (separate system and
user messages) and plain text completion (one ``inputs`` string). Both
teach the model the ``[MEMORY: fact | tag1, tag2, tag3]`` annotation.
"""

from datetime import date
from typing import Optional, Sequence

from mnemo.models.memory import Memory


def build_prompt_from_memories(memories: Sequence[Memory], question: str) -> str:
    """
    Prepend retrieved memories to the user's question.

    Args:
        memories: Context memories in retrieval order
        question: The user's message

    Returns:
        str: Prompt text, or the question unchanged when there is no context
    """
    if not memories:
        return question

    context = "\n".join(memory.content for memory in memories)
    return (
        f"\n\nRelevant memories:\n{context}"
        f"\n\nUser question: {question}"
        "\n\nAnswer naturally based on the memories above. "
        "Don't mention memory IDs, tags, or repeat the question back."
    )


def _format_date(today: date) -> str:
    return f"{today.strftime('%B')} {today.day}, {today.year}"


def _user_line(user_name: Optional[str]) -> str:
    if user_name and user_name.strip():
        return f"\nThe user's name is {user_name.strip()}."
    return ""


def build_system_prompt(
    assistant_name: str,
    user_name: Optional[str] = None,
    today: Optional[date] = None
) -> str:
    """
    System message for chat-completions providers.

    Args:
        assistant_name: Name the assistant uses for itself
        user_name: User's display name, if known
        today: Date used for age and "today" references (defaults to now)

    Returns:
        str: System prompt
    """
    current = _format_date(today or date.today())
    return f"""You are {assistant_name}, a helpful AI assistant that remembers personal information.{_user_line(user_name)}

**Response Guidelines:**
- CRITICAL: Always respond in the SAME language the user is using in their current message
- If user switches languages mid-conversation, switch immediately to match
- Be extremely concise - one sentence maximum unless asked for details
- Answer ONLY what was asked - don't volunteer extra information
- Don't mention memory IDs, tags, or technical details
- Don't repeat or acknowledge what the user just asked
- Don't use phrases like "yes", "you're asking about", "I can help with that"
- When recalling preferences, just state them: "You like X and Y"
- When calculating age from birthdate, use current date ({current})
- If user questions a number you provided, double-check your math before responding

**Memory Saving Rules:**
Save [MEMORY: fact | tag1, tag2, tag3] ONLY when user shares NEW information about themselves:
- Personal facts (name, age, location, job, relationships)
- Preferences they STATE (not things you infer)
- Goals, plans, important dates
- Experiences, stories, past events
- TODAY's activities (meals, events)

NEVER save:
- Information you already told them (if it came from existing memories, DON'T save again)
- Greetings or questions
- Things you inferred but they didn't explicitly state

Examples:
User: "I ate a sandwich and 2 eggs today"
Assistant: "Light meal! [MEMORY: User ate sandwich and 2 eggs on {current} | food, meal, daily]"

User: "I like pasta"
Assistant: "Got it! [MEMORY: User likes pasta | food, preference, italian]"

User: "Gosto de viajar"
Assistant: "Entendido! [MEMORY: User gosta de viajar | hobby, preferência, viagem]\""""


def build_completion_prompt(
    prompt: str,
    assistant_name: str,
    user_name: Optional[str] = None,
    today: Optional[date] = None
) -> str:
    """
    Single-string prompt for text completion providers.

    Args:
        prompt: User prompt (possibly already carrying memory context)
        assistant_name: Name the assistant uses for itself
        user_name: User's display name, if known
        today: Current date (defaults to now)

    Returns:
        str: Instructions, the user turn and the assistant cue
    """
    current = _format_date(today or date.today())
    instructions = f"""You are {assistant_name}, a polite, concise AI assistant designed to help users remember personal information.{_user_line(user_name)}
Today's date is {current}.

**CRITICAL RULES FOR MEMORY SAVING:**

Save [MEMORY: fact | tag1, tag2, tag3] for:
- Personal facts (name, age, location, job, relationships)
- Preferences (food, music, hobbies, dislikes)
- Goals, plans, important dates
- Experiences, stories, past events
- Skills, knowledge areas, expertise

DO NOT save for:
- Greetings, pleasantries
- Questions about time, weather, facts
- Requests for help or information
- Meta conversation about the chat itself
- Generic statements without personal context

**Examples:**
User: "I like pasta"
Assistant: "Nice! [MEMORY: User likes pasta | food, preference, italian]"

User: "My girlfriend is Carla"
Assistant: "That's nice! [MEMORY: User's girlfriend is named Carla | relationship, personal, name]"

User: "What time is it?"
Assistant: "I don't have access to real-time information, but you can check your device's clock."

User: "How do I cook pasta?"
Assistant: "Here's how to cook pasta: boil water, add salt, cook 8-10 minutes..."

Save memories ONLY for relevant personal information."""

    return f"{instructions}\n\nUser: {prompt}\n{assistant_name}:"
