"""Shared prompt templates for both inference backends.

The effective prompt is assembled once by the normalizer, so the local and the
remote backend always see the same wording (including the carried-over image
description on follow-up questions).
"""

# Used by the local backend when the client sent media without any text.
DEFAULT_DESCRIBE_PROMPT = (
    "Describe in detail what you see in the image. Be objective and concise."
)
DEFAULT_MEDIA_PROMPT = "Analyze the provided media."

# Appended to the local prompt when an audio clip was sent; Ollama has no
# audio modality.
AUDIO_PLACEHOLDER = "Audio: [audio data]."

_SEARCH_PROMPT = (
    'Based on the following web search results: "{search_results}". '
    'Answer the user\'s original question: "{question}". '
    "Synthesize the information clearly and directly."
)

_FOLLOWUP_PROMPT = "Image context: {description}. Question: {question}"


def build_search_prompt(search_results: str, question: str | None) -> str:
    """Rewrite a question into a synthesis instruction over search results."""
    return _SEARCH_PROMPT.format(
        search_results=search_results,
        question=question or "",
    )


def build_followup_prompt(description: str, question: str | None) -> str:
    """Prepend a previously computed image description to a follow-up question."""
    return _FOLLOWUP_PROMPT.format(
        description=description,
        question=question or "",
    )


def with_audio_placeholder(prompt: str) -> str:
    return f"{prompt} {AUDIO_PLACEHOLDER}"
