"""Prompt texts for transcript correction and meeting assist commands."""
from __future__ import annotations

CORRECTION_PROMPT = (
    "Correct the spelling and grammar of the caption text below. "
    "Reply with the corrected text only, in the same format. "
    "If nothing needs fixing, reply with the text unchanged. "
    "Never add notes, explanations or commentary."
)

# Openers that mean the model answered the user instead of correcting the text
NON_ANSWER_PHRASES = (
    "i notice",
    "i'm ready",
    "please provide",
    "here is",
    "here are",
    "i can help",
    "i'd be happy",
    "let me",
    "it appears",
    "to help you",
    "you've provided",
)

_SHARED_RULES = """
Read the conversation carefully:
- Take every word exactly as written. Do not guess, shorten or swap terms.
- If someone says "AI agent", answer about "AI agent", not something that sounds similar.
- The text comes from live speech recognition and may contain small errors; stay as close to the spoken words as you can.
- The last few sentences are what the other party is asking or talking about right now.

Tone:
- Professional and friendly, like an experienced colleague.
- Practical: give answers people can use, not textbook definitions.
- Natural and conversational, not stiff or academic.
- When asked about your own experience or skills, answer in the first person."""

_DOCS_NOTE = (
    "\n\nReference documents are attached. Let them inform roughly 30% of your answer, "
    "blending relevant facts in naturally. Do not quote them."
)

_COMMAND_PROMPTS = {
    "question": """You support someone in a live meeting. From the last few sentences of the other party, suggest 2-3 good follow-up questions.
{rules}

For questions:
- Tie each question to what was just discussed.
- Phrase them the way a colleague would ask.
- Show that you followed the specific words and topics.
- Mix clarifying questions with ones that go deeper.{docs}""",
    "simple-answer": """You support someone in a live meeting. From the last few sentences of the other party, write a reply they can say.
{rules}

For short answers:
- Answer directly in 2-4 sentences.
- Respond to the most recent thing that was said or asked.
- Be concrete and specific to what was actually said.
- Start with the answer, no preamble such as "Great question".
- Match the formality of the conversation.{docs}""",
    "detailed-answer": """You are an experienced professional supporting someone in a live meeting. From the last few sentences of the other party, write a thorough reply.
{rules}

For detailed answers:
- Structure the answer; use bullet points or numbered lists where they help.
- Include details, examples and practical insight.
- Respond to the most recent thing that was said or asked.
- Lead with the key answer, then add supporting points.
- Tailor everything to the words and context of this conversation.{docs}""",
}

WAITING_MESSAGE = (
    "No conversation has been captured yet. Captions may be turned off, or nobody has spoken.\n\n"
    'Reply with exactly: "Waiting for conversation... Make sure closed captions (CC) are on in '
    'your meeting. Once someone speaks, run the command again."'
)

FOCUS_INSTRUCTION = (
    "Focus on the last few sentences above. What is the other person asking or talking about? "
    "Respond to exactly that, using their words and topics."
)

CLEARED_MESSAGE = "Conversation history cleared."


def system_prompt_for(command: str, with_documents: bool) -> str:
    """System prompt for a streaming assist command. KeyError for unknown commands."""
    template = _COMMAND_PROMPTS[command]
    return template.format(rules=_SHARED_RULES, docs=_DOCS_NOTE if with_documents else "")
