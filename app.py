import asyncio
from functools import partial

import gradio as gr

from roadmap_cards import CARD_KINDS, MODEL
from roadmap_cards.config import settings
from roadmap_cards.handlers_editor import (
    create_card_handler,
    download_json_handler,
    download_txt_handler,
    legacy_mapping_frame,
    start_over_handler,
    update_field_handler,
    validate_handler,
)
from roadmap_cards.handlers_upload import check_connection_handler, load_card_file_handler, process_pdf_handler
from roadmap_cards.llm_client import GeminiClient
from roadmap_cards.logging_setup import setup_logging
from roadmap_cards.schema_loader import load_base_schemas
from roadmap_cards.schema_utils import build_tree_from_keys
from roadmap_cards.session import display_value

setup_logging(settings.log_level)
BASE_SCHEMAS = asyncio.run(load_base_schemas(settings.schema_dir))


def make_generator():
    return GeminiClient.from_settings(settings)


async def on_create(card_kind, schema_url):
    return await create_card_handler(card_kind, schema_url, BASE_SCHEMAS)


def on_load_card(file_obj):
    return load_card_file_handler(file_obj, BASE_SCHEMAS)


async def on_pdf(file_obj):
    return await process_pdf_handler(file_obj, BASE_SCHEMAS, make_generator)


async def on_check_connection():
    return await check_connection_handler(make_generator)


def bump(version):
    return (version or 0) + 1


def field_component(form_field, value, examples):
    label = f"{form_field.title} *" if form_field.required else form_field.title
    info = form_field.description
    if examples:
        info = f"{info} Examples: {', '.join(str(e) for e in examples)}".strip()
    shown = display_value(form_field, value)

    if form_field.checkbox:
        return gr.CheckboxGroup(choices=form_field.enum, value=shown, label=label, info=info)
    if form_field.multiselect:
        return gr.Dropdown(choices=form_field.enum, value=shown, multiselect=True, label=label, info=info)
    if form_field.enum:
        return gr.Dropdown(choices=form_field.enum, value=shown if shown in form_field.enum else None, label=label, info=info)
    if form_field.type in ("integer", "number"):
        return gr.Number(value=shown, precision=0 if form_field.type == "integer" else None, label=label, info=info)
    if form_field.type == "boolean":
        return gr.Checkbox(value=shown, label=label, info=info)
    if form_field.structured:
        return gr.Textbox(value=shown, lines=6, label=label, info=f"{info} JSON.".strip())
    if form_field.type == "array":
        return gr.Textbox(value=shown, lines=3, label=label, info=f"{info} One value per line.".strip())
    lines = 4 if form_field.format == "textarea" or form_field.simplified else 1
    return gr.Textbox(value=shown, lines=lines, label=label, info=info)


# --- UI Definition ---
with gr.Blocks(title="ROADMAP Card Builder") as demo:
    gr.Markdown("# ROADMAP Card Builder")
    gr.Markdown("Create, load or extract ROADMAP Model and Dataset cards, then validate and export them.")

    # State
    session_state = gr.State()
    form_version = gr.State(value=0)

    with gr.Tab("Card Editor"):
        with gr.Row():
            # Left Panel: Start & Form
            with gr.Column(scale=1):
                gr.Markdown("### 1. Start")
                card_kind_input = gr.Radio(choices=list(CARD_KINDS), value=MODEL, label="Card Type")
                schema_url_input = gr.Textbox(
                    label="Custom Schema URL (optional)",
                    placeholder="https://example.org/roadmap-model-schema.json",
                )
                create_btn = gr.Button("Create New Card", variant="primary")
                card_file_input = gr.File(label="Load Card (JSON or TXT)", file_types=[".json", ".txt"])
                pdf_input = gr.File(label="Extract from Journal Article (PDF)", file_types=[".pdf"])
                status_msg = gr.Textbox(label="Status", interactive=False, lines=3)
                schema_info = gr.Markdown()
                with gr.Accordion("Classification Reasoning", open=False):
                    reasoning_box = gr.Textbox(show_label=False, interactive=False, lines=6)

                gr.Markdown("### 2. Edit Fields")

                @gr.render(inputs=[session_state], triggers=[form_version.change])
                def render_form(session):
                    if session is None:
                        gr.Markdown("No card loaded.")
                        return

                    fields_by_path = {f.path: f for f in session.fields}
                    tree = build_tree_from_keys([f.path for f in session.fields])

                    def leaf_ui(path):
                        form_field = fields_by_path[path]
                        component = field_component(form_field, session.value_at(path), session.examples_for(path))
                        component.input(
                            fn=partial(update_field_handler, path),
                            inputs=[component, session_state],
                            outputs=[session_state, preview_json, status_msg],
                        )

                    def recursive_ui(node, label):
                        if isinstance(node, dict):
                            with gr.Accordion(label, open=False):
                                if "__self__" in node:
                                    leaf_ui(node["__self__"])
                                for k, v in node.items():
                                    if k == "__self__":
                                        continue
                                    recursive_ui(v, k)
                        else:
                            leaf_ui(node)

                    for k, v in tree.items():
                        recursive_ui(v, k)

            # Right Panel: Preview & Export
            with gr.Column(scale=1):
                gr.Markdown("### 3. Preview")
                preview_json = gr.JSON(label="Live Preview")

                gr.Markdown("### 4. Validate & Export")
                with gr.Row():
                    validate_btn = gr.Button("Validate")
                    download_json_btn = gr.Button("Download JSON", variant="primary")
                    download_txt_btn = gr.Button("Download TXT")
                    start_over_btn = gr.Button("Start Over", variant="stop")
                validation_msg = gr.Textbox(label="Validation", interactive=False, lines=7)
                download_output = gr.File(label="Download Result")

        create_btn.click(
            fn=on_create,
            inputs=[card_kind_input, schema_url_input],
            outputs=[session_state, preview_json, status_msg, schema_info],
        ).then(fn=bump, inputs=[form_version], outputs=[form_version])

        card_file_input.upload(
            fn=on_load_card,
            inputs=[card_file_input],
            outputs=[session_state, preview_json, status_msg, schema_info],
        ).then(fn=bump, inputs=[form_version], outputs=[form_version])

        pdf_input.upload(
            fn=on_pdf,
            inputs=[pdf_input],
            outputs=[session_state, preview_json, status_msg, schema_info, reasoning_box],
        ).then(fn=bump, inputs=[form_version], outputs=[form_version])

        validate_btn.click(fn=validate_handler, inputs=[session_state], outputs=[validation_msg])

        download_json_btn.click(
            fn=download_json_handler,
            inputs=[session_state],
            outputs=[download_output, status_msg],
        )

        download_txt_btn.click(
            fn=download_txt_handler,
            inputs=[session_state],
            outputs=[download_output, status_msg],
        )

        start_over_btn.click(
            fn=start_over_handler,
            inputs=[session_state],
            outputs=[session_state, preview_json, status_msg, schema_info],
        ).then(fn=bump, inputs=[form_version], outputs=[form_version])

    with gr.Tab("Field Mapping"):
        gr.Markdown("How legacy TXT keys map to canonical JSON fields, in both directions.")
        mapping_kind_input = gr.Radio(choices=list(CARD_KINDS), value=MODEL, label="Card Type")
        mapping_table = gr.Dataframe(
            value=legacy_mapping_frame(MODEL),
            interactive=False,
            label="Field Mapping",
        )
        mapping_kind_input.change(fn=legacy_mapping_frame, inputs=[mapping_kind_input], outputs=[mapping_table])

    with gr.Tab("Settings"):
        gr.Markdown(f"Text generation model: `{settings.gemini_model}`")
        check_btn = gr.Button("Test Gemini Connection")
        connection_status = gr.Textbox(label="Connection Status", interactive=False, lines=4)
        check_btn.click(fn=on_check_connection, inputs=[], outputs=[connection_status])

if __name__ == "__main__":
    demo.launch()
