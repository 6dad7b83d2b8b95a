"""Default prompt templates used by the content analysis workflows.

Updates: v0.2.0 - 2026-09-21 - Add prompt refinement template requesting JSON suggestions.
Updates: v0.1.0 - 2026-09-14 - Centralise title, tag, and folder templates.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

GENERATE_TITLE = """You are an expert at analyzing text and creating concise, descriptive titles.

Given the following content, generate a clear and specific title that captures the essence of \
what this prompt does or describes. The title should be:
- Brief (3-8 words)
- Descriptive and specific
- Action-oriented when appropriate
- Professional and clear

Content:
{content}

Respond with ONLY the title, nothing else."""

GENERATE_TAGS = """You are an expert at analyzing text and extracting relevant keywords and topics.

Given the following content, generate 3-5 relevant tags that categorize and describe this prompt. \
Tags should be:
- Single words or short phrases (1-3 words)
- Lowercase
- Technical terms, technologies, or domains mentioned
- Relevant for searching and filtering

Content:
{content}

Respond with a comma-separated list of tags, nothing else. \
Example: python, web server, flask, backend, api"""

SUGGEST_FOLDER = """You are an expert at organizing and categorizing content.

Given the following content and existing folder structure, suggest an appropriate folder path \
where this prompt should be stored. The folder path should:
- Follow the pattern: /Category/Subcategory/ (or /Category/ for top-level)
- Use existing folders when appropriate
- Create new folders only when the content doesn't fit existing categories
- Be specific and descriptive
- Use title case for folder names

Content:
{content}

Existing folders:
{existingFolders}

Respond with ONLY the folder path in the format: /Category/Subcategory/
If no existing folders match and you're suggesting a new one, respond with the new path.
If existing folders is empty, suggest a logical top-level folder."""

REFINE_PROMPT = """You are a meticulous prompt engineering assistant.

Review the prompt below and propose up to three improved versions. Each version should make the \
task clearer, add missing context or output structure, and remove ambiguity without changing the \
prompt's intent.

Prompt:
{content}

Respond with JSON only, using this shape:
{{"suggestions": [{{"content": "<improved prompt>", "explanation": "<why it is better>", \
"changes": ["<change 1>", "<change 2>"]}}]}}"""

_PLACEHOLDER_PATTERN = re.compile(r"(\{\{|\}\})|\{(\w+)\}")


def format_prompt(template: str, variables: Mapping[str, str]) -> str:
    """Substitute ``{name}`` placeholders, leaving unknown names untouched.

    Doubled braces (``{{`` and ``}}``) render as literal single braces.
    """

    def _replace(match: re.Match[str]) -> str:
        escaped, key = match.group(1), match.group(2)
        if escaped:
            return escaped[0]
        value = variables.get(key)
        return value if value is not None else match.group(0)

    return _PLACEHOLDER_PATTERN.sub(_replace, template)


__all__ = [
    "GENERATE_TAGS",
    "GENERATE_TITLE",
    "REFINE_PROMPT",
    "SUGGEST_FOLDER",
    "format_prompt",
]
