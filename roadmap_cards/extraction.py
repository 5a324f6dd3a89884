from __future__ import annotations

import enum
import json
import logging
import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional

from . import DATASET, MODEL
from .errors import PipelineStageFailed
from .llm_client import TextGenerator
from .prompts import (
    CLASSIFY_CONFIG,
    EXTRACT_CONFIG,
    FIELD_LIST_LIMIT,
    SUMMARIZE_CONFIG,
    classify_prompt,
    extract_prompt,
    summarize_prompt,
)
from .schema_resolver import section_name
from .schema_utils import schema_field_names

logger = logging.getLogger(__name__)

DATASET_TOKEN = 'DATASET'


class PipelineState(enum.Enum):
    START = 'start'
    SUMMARIZED = 'summarized'
    CLASSIFIED = 'classified'
    EXTRACTED = 'extracted'
    DONE = 'done'
    FAILED = 'failed'


@dataclass(frozen=True)
class Classification:
    kind: str
    reasoning: str

    @property
    def label(self) -> str:
        return self.kind.upper()


@dataclass(frozen=True)
class ExtractionArtifact:
    """Everything produced so far by one `extract` call. Each stage adds one field."""

    raw_text: str
    summary: Optional[str] = None
    classification: Optional[Classification] = None
    structured: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class ExtractionOutcome:
    state: PipelineState
    artifact: ExtractionArtifact
    failure: Optional[PipelineStageFailed] = None

    @property
    def succeeded(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def structured(self) -> Optional[Dict[str, Any]]:
        return self.artifact.structured

    @property
    def card_kind(self) -> Optional[str]:
        classification = self.artifact.classification
        return classification.kind if classification else None

    def unwrap(self) -> Dict[str, Any]:
        """The `{Model: ...}` / `{Dataset: ...}` payload, or raise the stage failure."""
        if self.failure is not None:
            raise self.failure
        if not self.succeeded or self.artifact.structured is None:
            raise PipelineStageFailed(self.state.value, "pipeline did not complete")
        return self.artifact.structured


def strip_code_fences(text: str) -> str:
    """
    Strips Markdown fences (```json ... ```) if present,
    and returns the inner text.
    """
    s = text.strip()
    if s.startswith("```"):
        s = re.sub(r"^```[a-zA-Z]*\s*\n?", "", s)
        s = re.sub(r"\n?```\s*$", "", s)
    return s.strip()


def parse_classification(response: str) -> Classification:
    # Any response that does not name DATASET is a model card.
    kind = DATASET if DATASET_TOKEN in response else MODEL
    return Classification(kind=kind, reasoning=response)


def parse_structured(response: str, kind: str) -> Dict[str, Any]:
    """Parse the stage-3 reply; raises ValueError when it is not a usable card."""
    data = json.loads(strip_code_fences(response))
    key = section_name(kind)
    if not isinstance(data, dict) or not isinstance(data.get(key), dict):
        raise ValueError(f"response has no top-level '{key}' object")
    return data


class ExtractionPipeline:
    """Summarize, classify, then extract a ROADMAP card from document text.

    Stages run strictly in order; the first failure ends the run with
    `PipelineState.FAILED` and a `PipelineStageFailed` naming the stage.
    No stage is retried.
    """

    def __init__(self, generator: TextGenerator, schemas: Mapping[str, Mapping[str, Any]]):
        self.generator = generator
        self.schemas = schemas

    async def extract(self, raw_text: str) -> ExtractionOutcome:
        outcome = ExtractionOutcome(PipelineState.START, ExtractionArtifact(raw_text=raw_text))
        for step in (self.summarize, self.classify, self.extract_card):
            outcome = await step(outcome.artifact)
            if outcome.state is PipelineState.FAILED:
                logger.error("%s", outcome.failure)
                return outcome
        logger.info("Extraction complete: %s card", outcome.card_kind)
        return replace(outcome, state=PipelineState.DONE)

    async def summarize(self, artifact: ExtractionArtifact) -> ExtractionOutcome:
        logger.info("Stage 1: document analysis and summarization (%d characters)", len(artifact.raw_text))
        if not artifact.raw_text.strip():
            return self._fail(artifact, 'summarize', "document contains no text")
        summary = await self.generator.generate(summarize_prompt(artifact.raw_text), SUMMARIZE_CONFIG)
        if not summary:
            return self._fail(artifact, 'summarize', "no text returned")
        logger.debug("Summary preview: %s", summary[:200])
        return ExtractionOutcome(PipelineState.SUMMARIZED, replace(artifact, summary=summary))

    async def classify(self, artifact: ExtractionArtifact) -> ExtractionOutcome:
        logger.info("Stage 2: model vs dataset classification")
        response = await self.generator.generate(classify_prompt(artifact.summary or ''), CLASSIFY_CONFIG)
        if not response:
            return self._fail(artifact, 'classify', "no text returned")
        classification = parse_classification(response)
        logger.info("Classification: %s", classification.label)
        return ExtractionOutcome(PipelineState.CLASSIFIED, replace(artifact, classification=classification))

    async def extract_card(self, artifact: ExtractionArtifact) -> ExtractionOutcome:
        classification = artifact.classification
        kind = classification.kind
        logger.info("Stage 3: ROADMAP %s extraction", kind)
        field_names = schema_field_names(self.schemas.get(kind) or {}, kind, limit=FIELD_LIST_LIMIT)
        prompt = extract_prompt(artifact.summary or '', classification.label, field_names, artifact.raw_text)

        response = await self.generator.generate(prompt, EXTRACT_CONFIG)
        if not response:
            return self._fail(artifact, 'extract', "no text returned")
        try:
            structured = parse_structured(response, kind)
        except ValueError as exc:
            logger.debug("Unparseable stage 3 response: %s", response[:500])
            return self._fail(artifact, 'extract', str(exc))
        return ExtractionOutcome(PipelineState.EXTRACTED, replace(artifact, structured=structured))

    @staticmethod
    def _fail(artifact: ExtractionArtifact, stage: str, reason: str) -> ExtractionOutcome:
        return ExtractionOutcome(PipelineState.FAILED, artifact, PipelineStageFailed(stage, reason))
