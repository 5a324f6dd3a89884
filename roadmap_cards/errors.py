from __future__ import annotations

from dataclasses import dataclass


class CardBuilderError(Exception):
    """Base class for errors surfaced to the user as a short message."""


class UnknownCardKind(CardBuilderError):
    def __init__(self, value):
        super().__init__(f"Unknown card kind: {value!r}. Expected 'model' or 'dataset'.")
        self.value = value


class SchemaSectionMissing(CardBuilderError):
    def __init__(self, card_kind: str):
        super().__init__(f"No '{card_kind}' definition found in schema ($defs.{card_kind}).")
        self.card_kind = card_kind


class UpstreamUnavailable(CardBuilderError):
    """A collaborator (schema fetch, text generation, file read) could not be used."""

    def __init__(self, collaborator: str, detail: str = ""):
        message = f"{collaborator} unavailable"
        if detail:
            message += f": {detail}"
        super().__init__(message)
        self.collaborator = collaborator
        self.detail = detail


class UploadRejected(CardBuilderError):
    pass


class PipelineStageFailed(CardBuilderError):
    def __init__(self, stage: str, reason: str):
        super().__init__(f"Extraction failed at stage '{stage}': {reason}")
        self.stage = stage
        self.reason = reason


@dataclass(frozen=True)
class ConversionWarning:
    """Non-fatal anomaly recorded while converting between card formats."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"
