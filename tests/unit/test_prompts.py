"""Unit tests for prompt construction."""

import uuid

from devtrain.ai.prompts import GenerationContext, ParentTopic, build_system_prompt, build_user_prompt
from devtrain.db.models import ExperienceLevel


def _context(parent: ParentTopic | None = None) -> GenerationContext:
    return GenerationContext(
        technology="Rust",
        experience_level=ExperienceLevel.ADVANCED,
        years_away=4,
        parent=parent,
    )


def test_system_prompt_root_level():
    prompt = build_system_prompt(_context())
    assert "experience level: advanced" in prompt
    assert "away from development for 4 years" in prompt
    assert "Generate root-level topics" in prompt
    assert '"topics"' in prompt


def test_system_prompt_for_subtopics_names_parent():
    parent = ParentTopic(id=uuid.uuid4(), title="Ownership", description=None)
    prompt = build_system_prompt(_context(parent))
    assert 'Generate subtopics for: "Ownership"' in prompt
    assert "Generate root-level topics" not in prompt


def test_user_prompt_root_level():
    prompt = build_user_prompt(_context())
    assert prompt.startswith("Generate 3-5 root-level learning topics for Rust.")
    assert "advanced developer who has been away for 4 years" in prompt


def test_user_prompt_subtopics_with_description():
    parent = ParentTopic(id=uuid.uuid4(), title="Ownership", description="Borrowing and lifetimes")
    prompt = build_user_prompt(_context(parent))
    assert 'under the parent topic: "Ownership"' in prompt
    assert "Parent topic description: Borrowing and lifetimes" in prompt


def test_user_prompt_subtopics_without_description():
    parent = ParentTopic(id=uuid.uuid4(), title="Ownership", description=None)
    assert "Parent topic description: Not provided" in build_user_prompt(_context(parent))
