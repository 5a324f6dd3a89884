"""Instruction texts for the three extraction stages.

Kept separate from `extraction.py` so the wording can be reviewed and tuned
without touching the pipeline control flow.
"""
from __future__ import annotations

from typing import List

from .llm_client import GenerationConfig

SUMMARY_INPUT_BUDGET = 12000
EXCERPT_BUDGET = 8000
FIELD_LIST_LIMIT = 20

SUMMARIZE_CONFIG = GenerationConfig(temperature=0.3, max_output_tokens=2000)
CLASSIFY_CONFIG = GenerationConfig(temperature=0.1, max_output_tokens=500)
EXTRACT_CONFIG = GenerationConfig(temperature=0.1, max_output_tokens=3000)

ANALYSIS_CATEGORIES = (
    ("Identification and naming", "full name of the model, algorithm or dataset; abbreviations and versions; publication title and journal"),
    ("Clinical application and purpose", "imaging modality, target anatomy, clinical task, disease addressed, workflow integration points"),
    ("Technical methodology", "architecture family and specific model type, training procedure and hyperparameters, preprocessing, augmentation"),
    ("Data characteristics", "number of images, patients and cases; image specifications and formats; acquisition protocols; single or multi-center; demographics; prevalence"),
    ("Performance metrics", "every reported metric with its exact value, confidence intervals, significance, comparisons with readers or prior methods, subgroup results"),
    ("Validation and testing", "cross-validation scheme, internal and external test sets, prospective or retrospective design, reader studies"),
    ("Clinical users and deployment", "intended users, clinical setting, PACS or EMR integration, regulatory remarks"),
    ("Technical requirements", "hardware, processing time, software frameworks, real-time or batch use"),
    ("Limitations and biases", "stated limitations, demographic or institutional bias, generalizability, failure modes"),
    ("Regulatory and ethical", "IRB approval, de-identification, regulatory pathway, fairness and bias mitigation"),
)

ROADMAP_METRIC_NAMES = (
    "Area under the receiver operating characteristic curve",
    "Sensitivity",
    "Specificity",
    "Accuracy",
    "Precision",
    "Recall",
)

MODEL_EXTRACTION_RUBRIC = """Extract every piece of MODEL information the article reports.

IDENTIFICATION
- Name: full model name, abbreviations, version identifiers
- Comments: technical description covering architecture, novelty and clinical significance

CLINICAL APPLICATION
- Use -> Intended: every clinical application, imaging task and use case mentioned
- Target anatomy, imaging modality and disease focus, when stated

USERS
- User -> Intended: every intended user group (radiologists, residents, technologists, clinicians)

TECHNICAL SPECIFICATION
- Input: input requirements, image formats, resolution, preprocessing
- Output: what the model produces (classes, scores, masks, visualizations)

PERFORMANCE (one Results entry per metric)
- Create a separate Results entry for every individual metric, using the ROADMAP metric names
- Separate entries per test set (for example internal and external test)
- Separate entries per subgroup and per comparison group (model versus readers)
- Each entry carries the exact value, confidence interval and test set description
- A paper reporting AUC 0.95, sensitivity 92% and specificity 88% yields three Results entries
- One entry per unique metric and test set combination; merge repeated mentions

DEPLOYMENT AND LIMITATIONS
- Technical Details: code availability, training and inference time, hardware requirements
- Limitations: stated limitations, biases, generalizability concerns, regulatory status"""

DATASET_EXTRACTION_RUBRIC = """Extract every piece of DATASET information the article reports.

IDENTIFICATION
- Name: complete dataset name, abbreviations and release version
- Comments: purpose, scope, availability and clinical significance

COMPOSITION
- Composition -> Number of instances: exact counts of images, patients, studies or cases
- Composition -> Data type: images, annotations, metadata, clinical data
- Representativeness: population, sample type, demographics, disease distribution

IMAGING
- Imaging -> Modality, File format, Resolution
- Acquisition: scanners, protocols and quality or exclusion criteria go into Pre-processing

COLLECTION AND LABELING
- Collection process: acquisition methodology, contributing sites, time period, inclusion and exclusion rules
- Labeling: annotation guidelines, ground truth, inter-reader agreement, annotation tools
- Ethical review and Confidentiality: IRB approval, consent, de-identification

ACCESS
- License -> Text: licensing terms and usage restrictions
- Subsets: one entry per released partition with its name, size and demographics"""

MODEL_JSON_TEMPLATE = """{
  "Model": {
    "Name": "model name with version",
    "Comments": "technical description, novelty and clinical significance",
    "Indexing code": {"Content": ["CT - Computed Tomography"]},
    "Use": {"Intended": ["Detection"]},
    "User": {"Intended": ["Radiologist"]},
    "Input": "input requirements and preprocessing",
    "Output": "output description",
    "Results": [
      {
        "Metric": ["Area under the receiver operating characteristic curve"],
        "Value": "0.95 (95% CI: 0.93-0.97)",
        "Result Information": "test set and comparison context",
        "Subset": "test set or subgroup name"
      }
    ],
    "Technical Details": {
      "Code Availability": "repository or availability statement",
      "Training Time": "training duration",
      "Inference Time": "time per case",
      "Hardware Requirements": "GPU and memory requirements"
    },
    "Limitations": "limitations, biases and generalizability concerns"
  }
}"""

DATASET_JSON_TEMPLATE = """{
  "Dataset": {
    "Name": "dataset name with version",
    "Comments": "purpose, scope and availability",
    "Indexing code": {"Content": ["MR - Magnetic Resonance"]},
    "Composition": {
      "Number of instances": 1000,
      "Data type": ["Image"],
      "Sample Size Calculation": "how the sample size was chosen",
      "Representativeness": {"Population": "population description", "Sample type": "consecutive", "Verification": "verification method"}
    },
    "Imaging": {
      "Modality": ["Magnetic resonance imaging (MRI)"],
      "File format": ["DICOM"],
      "Resolution": "spatial resolution",
      "Burned-in PHI": "No",
      "Pre-processing": "acquisition protocol and preprocessing steps"
    },
    "Collection process": "collection methodology, sites and time period",
    "Labeling": "annotation methodology and inter-reader agreement",
    "Ethical review": "IRB approval and consent",
    "Confidentiality": "de-identification procedure",
    "License": {"Text": "license terms"},
    "Subsets": [
      {"Subset name": "training", "Subset description": "partition description", "Number of instances": "800"}
    ]
  }
}"""


def summarize_prompt(text: str) -> str:
    categories = "\n".join(
        f"{index}. {title.upper()}: {detail}" for index, (title, detail) in enumerate(ANALYSIS_CATEGORIES, start=1)
    )
    return f"""You are a radiologist and AI researcher analysing a published radiology AI journal article for ROADMAP (Radiology Ontology for AI Models, Datasets and Projects) card extraction.

Analyse the article below and report every available detail, organised under these categories:

{categories}

Report all quantitative data with exact values, keep names and abbreviations as written, use precise medical terminology and note standard information that is missing.

DOCUMENT TEXT:
\"\"\"{text[:SUMMARY_INPUT_BUDGET]}\"\"\"

STRUCTURED ANALYSIS:"""


def classify_prompt(summary: str) -> str:
    return f"""You classify radiology AI journal articles. Decide whether the summary below primarily describes an AI MODEL/ALGORITHM or a DATASET/DATABASE.

MODEL indicators: development, training or validation of an AI system; architecture; training methodology; performance metrics; comparison with radiologists; inference time or deployment.

DATASET indicators: creation or curation of a data collection; acquisition protocols; annotation methodology and inter-reader agreement; cohort statistics; quality control; multi-center harmonization; ground truth establishment.

HYBRID papers: classify by the primary contribution. A paper that proposes a model and releases its training data is a MODEL when the model is the main contribution; a paper that builds a dataset and reports baseline results is a DATASET when data creation is emphasised.

DOCUMENT SUMMARY:
\"\"\"{summary}\"\"\"

Give specific evidence for your decision, then answer on its own line in exactly this format:
CLASSIFICATION: MODEL or CLASSIFICATION: DATASET"""


def extract_prompt(summary: str, kind_label: str, field_names: List[str], original_text: str) -> str:
    """Stage 3 instruction. `kind_label` is 'MODEL' or 'DATASET'."""
    is_model = kind_label == 'MODEL'
    rubric = MODEL_EXTRACTION_RUBRIC if is_model else DATASET_EXTRACTION_RUBRIC
    template = MODEL_JSON_TEMPLATE if is_model else DATASET_JSON_TEMPLATE
    metric_names = ", ".join(f'"{name}"' for name in ROADMAP_METRIC_NAMES)
    return f"""You are a ROADMAP expert extracting structured card data from a radiology AI journal article.

DOCUMENT TYPE: {kind_label}
AVAILABLE ROADMAP SCHEMA FIELDS: {', '.join(field_names)}

{rubric}

EXTRACTION PRINCIPLES:
1. Precision: copy values, percentages and measurements exactly as published
2. Completeness: capture every available detail
3. Context: include confidence intervals, p-values and test set descriptions
4. Standardization: map the article's terminology onto the ROADMAP fields above
5. Individual metrics: one Results entry per metric, named with the exact ROADMAP metric names {metric_names}
6. Separate test sets: one entry per test set
7. Subgroup analyses: one entry per subgroup
8. No duplicates: each unique metric, test set and subgroup combination appears only once

DOCUMENT ANALYSIS SUMMARY:
\"\"\"{summary}\"\"\"

ORIGINAL ARTICLE TEXT (for exact values):
\"\"\"{original_text[:EXCERPT_BUDGET]}\"\"\"

Return ONLY valid JSON in this ROADMAP format:
{template}"""
