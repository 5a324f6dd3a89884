"""Shared fixtures: packaged schemas and an in-memory text generator."""

from typing import List, Optional, Tuple

import pytest

from roadmap_cards.config import PACKAGED_SCHEMA_DIR
from roadmap_cards.llm_client import GenerationConfig
from roadmap_cards.schema_loader import BASE_SCHEMA_FILES, load_schema_file


class FakeGenerator:
    """Returns canned replies in order and records every prompt it was sent."""

    def __init__(self, replies: List[Optional[str]]):
        self.replies = list(replies)
        self.calls: List[Tuple[str, GenerationConfig]] = []

    async def generate(self, prompt, config):
        self.calls.append((prompt, config))
        if not self.replies:
            return None
        return self.replies.pop(0)


@pytest.fixture
def base_schemas():
    return {kind: load_schema_file(PACKAGED_SCHEMA_DIR / name) for kind, name in BASE_SCHEMA_FILES.items()}


@pytest.fixture
def model_schema(base_schemas):
    return base_schemas["model"]


@pytest.fixture
def dataset_schema(base_schemas):
    return base_schemas["dataset"]


@pytest.fixture
def fake_generator():
    return FakeGenerator
