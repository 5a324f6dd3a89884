"""Declarative field tables between canonical ROADMAP cards and legacy TXT cards.

Every table is plain data, one per (card kind, direction). `converter.py`
interprets them; nothing here performs a conversion.

Legacy key spellings (including `partioning_scheme`) are those of the TXT
files in circulation and must not be corrected.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

TO_CANONICAL = 'to_canonical'
TO_LEGACY = 'to_legacy'

# Placeholder written by TXT exports for unknown technical details.
NOT_AVAILABLE = 'NA'
# Placeholder written by TXT exports when a dataset has no imaging details.
IMAGING_PLACEHOLDER = 'Image data'


@dataclass(frozen=True)
class FieldMapping:
    """Copy the first non-empty `source` path to `target` through `transform`."""

    source: Tuple[str, ...]
    target: str
    transform: str = 'identity'
    default: Any = ''


@dataclass(frozen=True)
class Section:
    key: str
    # None marks a lead paragraph written without a label.
    label: Optional[str] = None


@dataclass(frozen=True)
class FreeTextMapping:
    """Several legacy keys consolidated into one canonical free-text field."""

    field: str
    sections: Tuple[Section, ...]


@dataclass(frozen=True)
class ArrayMapping:
    """Element-wise mapping of a repeated structure."""

    source: str
    target: str
    items: Tuple[FieldMapping, ...]
    omit_when_empty: bool = False


@dataclass(frozen=True)
class GroupMapping:
    """Canonical object synthesized from several legacy keys."""

    target: str
    fields: Tuple[FieldMapping, ...]
    placeholder: Any = NOT_AVAILABLE
    omit_when_placeholder: bool = True


TableEntry = Union[FieldMapping, FreeTextMapping, ArrayMapping, GroupMapping]


def field(source: Union[str, Tuple[str, ...]], target: str, transform: str = 'identity', default: Any = '') -> FieldMapping:
    if isinstance(source, str):
        source = (source,)
    return FieldMapping(tuple(source), target, transform, default)


# --- Model -------------------------------------------------------------------

MODEL_COMMENTS = FreeTextMapping(
    'Comments',
    (
        Section('medical_task'),
        Section('model_code_availability', 'Code Availability'),
        Section('sustainability', 'Sustainability'),
        Section('time_to_train', 'Training Time'),
        Section('time_to_inference', 'Inference Time'),
        Section('hardware_requirements', 'Hardware'),
    ),
)

MODEL_TO_CANONICAL: Tuple[TableEntry, ...] = (
    field('model_name', 'Name'),
    field('content_code', 'Indexing code.Content', 'as_list', []),
    field('date_created', 'Date.Created'),
    field('license', 'License.Text'),
    field('funding', 'Funding'),
    MODEL_COMMENTS,
    field('model_architecture', 'Input'),
    field('use_case', 'Use.Intended', 'as_list', []),
    field('users', 'User.Intended', 'as_list', []),
    ArrayMapping(
        'results',
        'Results',
        (
            field(('result_description', 'result_name'), 'Result Information'),
            field('result_metric', 'Metric', 'as_list', []),
            field('result_value', 'Value'),
            field('result_decision_threshold', 'Decision Threshold'),
            field('result_subset_data', 'Subset'),
        ),
    ),
    field('caveats', 'Limitations'),
    GroupMapping(
        'Technical Details',
        (
            field('model_code_availability', 'Code Availability', default=NOT_AVAILABLE),
            field('sustainability', 'Sustainability', default=NOT_AVAILABLE),
            field('time_to_train', 'Training Time', default=NOT_AVAILABLE),
            field('time_to_inference', 'Inference Time', default=NOT_AVAILABLE),
            field('hardware_requirements', 'Hardware Requirements', default=NOT_AVAILABLE),
        ),
    ),
)

MODEL_TO_LEGACY: Tuple[TableEntry, ...] = (
    field('Name', 'model_name'),
    field('Indexing code.Content', 'content_code', default=[]),
    # Free text first: the Technical Details fields below override it when set.
    MODEL_COMMENTS,
    field('Date.Created', 'date_created'),
    field('License.Text', 'license'),
    field('Funding', 'funding'),
    field('Use.Intended', 'use_case', default=[]),
    field('User.Intended', 'users', default=[]),
    ArrayMapping(
        'Results',
        'results',
        (
            field('Result Information', 'result_name'),
            field('Metric', 'result_metric', 'as_scalar_or_list'),
            field('Value', 'result_value'),
            field('Decision Threshold', 'result_decision_threshold'),
            field('Result Information', 'result_description'),
            field('Subset', 'result_subset_data'),
        ),
    ),
    field('Limitations', 'caveats'),
    field('Technical Details.Code Availability', 'model_code_availability', default=NOT_AVAILABLE),
    field('Technical Details.Sustainability', 'sustainability', default=NOT_AVAILABLE),
    field('Technical Details.Training Time', 'time_to_train', default=NOT_AVAILABLE),
    field('Technical Details.Inference Time', 'time_to_inference', default=NOT_AVAILABLE),
    field('Technical Details.Hardware Requirements', 'hardware_requirements', default=NOT_AVAILABLE),
    field('Input', 'model_architecture'),
)

# --- Dataset -----------------------------------------------------------------

DATASET_COLLECTION = FreeTextMapping(
    'Collection process',
    (
        Section('collection_process'),
        Section('composition', 'Composition'),
        Section('partioning_scheme', 'Partitioning'),
    ),
)

DATASET_LABELING = FreeTextMapping(
    'Labeling',
    (
        Section('labeling'),
        Section('missing_information', 'Missing Information'),
        Section('noise', 'Noise Issues'),
        Section('relationships_between_instances', 'Instance Relationships'),
    ),
)

DATASET_CONFIDENTIALITY = FreeTextMapping(
    'Confidentiality',
    (
        Section('confidentiality'),
        Section('re_identification', 'Re-identification'),
    ),
)

DATASET_COMMENTS = FreeTextMapping(
    'Comments',
    (
        Section('motivation', 'Motivation'),
        Section('purpose', 'Purpose'),
        Section('external_data', 'External Data'),
        Section('dataset_availability', 'Availability'),
    ),
)

DATASET_TO_CANONICAL: Tuple[TableEntry, ...] = (
    field('dataset_name', 'Name'),
    field('imaging_details', 'Indexing code.Content', 'infer_content_codes', ['OT - Other']),
    field('number_of_instances', 'Composition.Number of instances', 'to_int', 0),
    field((), 'Composition.Data type', default=['Image']),
    field('representativeness', 'Composition.Sample Size Calculation'),
    field('representativeness', 'Composition.Representativeness.Sample type'),
    field('subpopulations', 'Composition.Representativeness.Population'),
    field('verification', 'Composition.Representativeness.Verification'),
    field('file_format', 'Imaging.File format', 'as_list', ['DICOM']),
    field('resolution', 'Imaging.Resolution'),
    field('burned_in_phi', 'Imaging.Burned-in PHI', default='Unknown'),
    field('imaging_details', 'Imaging.Pre-processing', 'join_imaging_details'),
    DATASET_COLLECTION,
    DATASET_LABELING,
    field('confidentiality', 'Ethical review'),
    DATASET_CONFIDENTIALITY,
    DATASET_COMMENTS,
    field('dataset_license', 'License.Text', default='Not specified'),
    ArrayMapping(
        'partitions',
        'Subsets',
        (
            field('subset_name', 'Subset name'),
            field('subset_description', 'Subset description'),
            field(('number_instances', 'patient_count'), 'Number of instances', 'as_text'),
            field('site_count', 'Site count', 'as_text'),
            field('patient_count', 'Patient count', 'as_text'),
            field('age', 'Age', default='Not specified'),
            field('sex', 'Sex', default='Not specified'),
            field('demographic', 'Demographic'),
            field('criterion', 'Criterion'),
        ),
        omit_when_empty=True,
    ),
)

DATASET_TO_LEGACY: Tuple[TableEntry, ...] = (
    field('Name', 'dataset_name'),
    field('Imaging.Pre-processing', 'imaging_details', 'split_semicolon', [IMAGING_PLACEHOLDER]),
    field('Imaging.File format', 'file_format', default=['DICOM']),
    field('Imaging.Resolution', 'resolution'),
    field('Imaging.Burned-in PHI', 'burned_in_phi', default='Unknown'),
    DATASET_LABELING,
    DATASET_COMMENTS,
    DATASET_CONFIDENTIALITY,
    DATASET_COLLECTION,
    field('Composition.Representativeness.Population', 'subpopulations'),
    field('Composition.Number of instances', 'number_of_instances', default=0),
    field(
        ('Composition.Representativeness.Sample type', 'Composition.Sample Size Calculation'),
        'representativeness',
    ),
    field('Composition.Representativeness.Verification', 'verification'),
    field('License.Text', 'dataset_license', default='Not specified'),
    ArrayMapping(
        'Subsets',
        'partitions',
        (
            field('Subset name', 'subset_name'),
            field('Subset description', 'subset_description'),
            field('Site count', 'site_count', default='1'),
            field(('Patient count', 'Number of instances'), 'patient_count'),
            field(('Number of instances', 'Patient count'), 'number_instances'),
            field('Age', 'age', default='Not specified'),
            field('Sex', 'sex', default='Not specified'),
            field('Demographic', 'demographic'),
            field('Criterion', 'criterion'),
        ),
    ),
)

TABLES = {
    ('model', TO_CANONICAL): MODEL_TO_CANONICAL,
    ('model', TO_LEGACY): MODEL_TO_LEGACY,
    ('dataset', TO_CANONICAL): DATASET_TO_CANONICAL,
    ('dataset', TO_LEGACY): DATASET_TO_LEGACY,
}

# Presence of these keys marks a legacy TXT card of the given kind.
LEGACY_NAME_KEYS = {
    'model': 'model_name',
    'dataset': 'dataset_name',
}


def mapping_rows(card_kind: str, direction: str) -> List[Tuple[str, str, str]]:
    """Flatten one table into (source, target, transform) rows for display."""
    rows: List[Tuple[str, str, str]] = []
    for entry in TABLES[(card_kind, direction)]:
        if isinstance(entry, FieldMapping):
            rows.append((' | '.join(entry.source) or '(constant)', entry.target, entry.transform))
        elif isinstance(entry, FreeTextMapping):
            for section in entry.sections:
                label = f"'{section.label}:' section" if section.label else 'lead paragraph'
                if direction == TO_CANONICAL:
                    rows.append((section.key, entry.field, label))
                else:
                    rows.append((entry.field, section.key, label))
        elif isinstance(entry, ArrayMapping):
            for item in entry.items:
                rows.append(
                    (
                        ' | '.join(f"{entry.source}[].{s}" for s in item.source),
                        f"{entry.target}[].{item.target}",
                        item.transform,
                    )
                )
        elif isinstance(entry, GroupMapping):
            for item in entry.fields:
                rows.append((' | '.join(item.source), f"{entry.target}.{item.target}", 'group'))
    return rows
