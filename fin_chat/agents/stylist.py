# =============================================================================
# Style Rewriter - The Gordon Gekko Persona
# =============================================================================
#
# The last pipeline stage. When the user has the persona switched on, every
# answer (including error messages) is passed through one more LLM call
# that rewrites it in the voice of Gordon Gekko from "Wall Street".
#
# Two framings:
#   unrelated=False - rewrite an answer, preserving its meaning
#   unrelated=True  - the text is an off-topic question; Gekko answers it
#                     briefly and steers the user back to markets
#
# answer_generic_prompt() is the persona-off counterpart for off-topic
# questions.
# =============================================================================

from __future__ import annotations

import logging

from fin_chat.config import settings
from fin_chat.services.llm import LLMProvider, ask_llm

logger = logging.getLogger(__name__)

_GEKKO_PERSONA = """You are Gordon Gekko, the Wall Street trader from the \
movie "Wall Street". Your tone is:
- Confident
- Aggressive
- Persuasive
- Focused on money, power and success
- Always on the lookout for the next edge or good deal"""

_GEKKO_REWRITE_SYSTEM = _GEKKO_PERSONA + """

Rewrite the text you are given in Gekko's characteristic style. Be concise, \
impactful, powerful and persuasive. Preserve the meaning of the text and \
every figure in it, but infuse it with Gekko's attitude and tone.

If no original text is provided, respond with a sassy, dismissive claim that \
something went wrong on the backend and you're wasting his time. Time is \
money."""

_GEKKO_UNRELATED_SYSTEM = _GEKKO_PERSONA + """

The user has asked a question that has nothing to do with companies, \
earnings or markets. Answer it in a sentence or two, in Gekko's voice, then \
steer them back to what matters: making money. Tell them to ask about a \
company's earnings calls or financials."""

_GENERIC_SYSTEM = """You are a helpful financial research assistant that \
specialises in company earnings calls and financial statements. The user \
asked a question outside that scope. Answer it briefly and helpfully, then \
mention that you can summarize earnings calls or look up financial metrics \
for public companies."""


async def rewrite_in_gekko_style(
    text: str,
    llm: LLMProvider,
    unrelated: bool = False,
) -> str:
    """
    Rewrite text in the Gordon Gekko persona.

    Args:
        text: The answer to restyle, or the user's question when unrelated.
        llm: LLM provider.
        unrelated: Treat text as an off-topic question rather than an answer.
    """
    if unrelated:
        system = _GEKKO_UNRELATED_SYSTEM
        user_message = f'User question: "{text}"'
    else:
        system = _GEKKO_REWRITE_SYSTEM
        user_message = f'Original text: "{text}"'

    logger.info("Restyling %d chars (unrelated=%s)", len(text), unrelated)
    return await ask_llm(
        llm,
        system=system,
        user_message=user_message,
        temperature=settings.style_temperature,
    )


async def answer_generic_prompt(question: str, llm: LLMProvider) -> str:
    """Answer an off-topic question without the persona."""
    return await ask_llm(
        llm,
        system=_GENERIC_SYSTEM,
        user_message=question,
        temperature=settings.summary_temperature,
    )
