"""Prompt text for topic generation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from devtrain.db.models import ExperienceLevel


@dataclass(frozen=True)
class ParentTopic:
    id: uuid.UUID
    title: str
    description: str | None


@dataclass(frozen=True)
class GenerationContext:
    """Everything the model is told about the caller and the request."""

    technology: str
    experience_level: ExperienceLevel
    years_away: int
    parent: ParentTopic | None = None


_LEVEL_GUIDANCE = """\
- Beginner: Focus on fundamentals, syntax, basic patterns
- Intermediate: Include design patterns, best practices, common pitfalls
- Advanced: Emphasize architecture, advanced patterns, performance optimization
- Expert: Cover internals, trade-offs between approaches, recent ecosystem changes"""

_OUTPUT_FORMAT = """\
Return ONLY valid JSON (no markdown, no explanations):
{
  "topics": [
    {
      "title": "Topic Title",
      "description": "Detailed description",
      "leetcode_links": [
        {
          "title": "Problem Name",
          "url": "https://leetcode.com/problems/...",
          "difficulty": "Easy|Medium|Hard"
        }
      ]
    }
  ]
}"""


def build_system_prompt(context: GenerationContext) -> str:
    if context.parent is not None:
        scope = f'Generate subtopics for: "{context.parent.title}"'
    else:
        scope = "Generate root-level topics"

    return f"""You are an expert software development educator creating personalized learning topics.

RULES:
1. Generate 3-5 relevant topics for the given technology
2. Tailor content to user's experience level: {context.experience_level.value}
3. User has been away from development for {context.years_away} years
4. Each topic must have:
   - Clear, concise title (max 200 characters)
   - Detailed description explaining what will be covered (max 1000 characters)
   - 0-3 relevant LeetCode problems (with title, URL, difficulty)
5. {scope}
6. Focus on practical, hands-on skills
7. Order topics from fundamental to advanced

EXPERIENCE LEVEL GUIDANCE:
{_LEVEL_GUIDANCE}

OUTPUT FORMAT:
{_OUTPUT_FORMAT}"""


def build_user_prompt(context: GenerationContext) -> str:
    if context.parent is not None:
        description = context.parent.description or "Not provided"
        return (
            f'Generate subtopics for "{context.technology}" under the parent topic: "{context.parent.title}"\n'
            f"\n"
            f"Parent topic description: {description}\n"
            f"\n"
            f"Create 3-5 subtopics that dive deeper into this specific area."
        )

    return (
        f"Generate 3-5 root-level learning topics for {context.technology}.\n"
        f"\n"
        f"Focus on what a {context.experience_level.value} developer who has been away "
        f"for {context.years_away} years needs to refresh or learn."
    )
