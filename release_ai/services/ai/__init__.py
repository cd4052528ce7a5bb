"""AI collaborator: Anthropic Messages API client and release features."""

from release_ai.services.ai.client import ANTHROPIC_API_URL, AiError, AnthropicClient
from release_ai.services.ai.features import (
    AssistContext,
    ValidationReport,
    VersionSuggestion,
    assist_reply,
    generate_notes,
    suggest_version,
    validate_changes,
)
from release_ai.services.ai.http import HttpClient, HttpError, MockHttpClient, RealHttpClient
from release_ai.services.ai.prompts import NOTES_FORMATS, NotesFormat

__all__ = [
    "ANTHROPIC_API_URL",
    "AiError",
    "AnthropicClient",
    "AssistContext",
    "HttpClient",
    "HttpError",
    "MockHttpClient",
    "NOTES_FORMATS",
    "NotesFormat",
    "RealHttpClient",
    "ValidationReport",
    "VersionSuggestion",
    "assist_reply",
    "generate_notes",
    "suggest_version",
    "validate_changes",
]
