"""Core logic for the ROADMAP card builder.

The Gradio UI lives in `app.py`. This package contains pure functions that:
- resolve and simplify ROADMAP JSON Schemas into form-renderable schemas
- convert cards between the canonical nested shape and the legacy flat TXT shape
- drive the three-stage document extraction pipeline
- hold the editing session for one card
"""

MODEL = "model"
DATASET = "dataset"
CARD_KINDS = (MODEL, DATASET)
