import logging

import gradio as gr

from json_shadow_workbench.config import WorkbenchConfig
from json_shadow_workbench.handlers import (
    apply_corrections_handler,
    apply_filter_handler,
    build_final_handler,
    build_intermediate_handler,
    configure,
    detect_fields_handler,
    export_product_handler,
    extract_handler,
    extract_search_results_handler,
    final_page_handler,
    intermediate_page_handler,
    load_file_handler,
    one_click_final_handler,
    pick_candidate_handler,
    refresh_listing_handler,
    reset_expansion_handler,
    save_handler,
    select_row_handler,
    toggle_node_handler,
    update_node_handler,
)
from json_shadow_workbench.presentation import CHAR_FILTERS, LISTING_HEADERS

config = WorkbenchConfig.from_env()
logging.basicConfig(
    level=config.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
configure(config)

# --- UI Definition ---
with gr.Blocks(title="JSON Shadow Workbench") as demo:
    gr.Markdown("# JSON Shadow Workbench")
    gr.Markdown("Browse a JSON document by address, edit values in place, and build numbered field listings.")

    # State
    session_state = gr.State()

    with gr.Tab("Browse"):
        with gr.Row():
            # Left Panel: Import & Tree
            with gr.Column(scale=1):
                gr.Markdown("### 1. Import")
                file_input = gr.File(label="Upload JSON File", file_types=[".json"])
                status_msg = gr.Textbox(label="Status", interactive=False)

                gr.Markdown("### 2. Tree")
                with gr.Row():
                    filter_box = gr.Textbox(label="Search filter", placeholder="name, $.items, ...")
                    apply_filter_btn = gr.Button("Apply Filter")
                    reset_tree_btn = gr.Button("Show Expanded Tree")
                with gr.Row():
                    char_filter = gr.Radio(choices=list(CHAR_FILTERS), value="all", label="Preview characters")
                    hide_empty = gr.Checkbox(label="Hide empty values", value=False)
                    flatten = gr.Checkbox(label="Flatten", value=False)
                tree_table = gr.Dataframe(
                    headers=LISTING_HEADERS,
                    interactive=False,
                    wrap=True,
                    label="Nodes (click a row to select its address)",
                )
                search_table = gr.Dataframe(
                    headers=["Name", "Address", "Kind"],
                    interactive=False,
                    label="Search matches (case-insensitive)",
                )

            # Right Panel: Node editor
            with gr.Column(scale=1):
                gr.Markdown("### 3. Node")
                address_box = gr.Textbox(label="Address", value="$")
                with gr.Row():
                    toggle_btn = gr.Button("Expand / Collapse")
                    extract_btn = gr.Button("Extract")
                    extract_search_btn = gr.Button("Extract Search Results")
                node_text = gr.Code(label="Extracted JSON", language="json", interactive=False)
                new_value = gr.Textbox(label="New value (stored as text)", lines=3)
                update_btn = gr.Button("Update Node", variant="primary")

                gr.Markdown("### 4. Save")
                save_path = gr.Textbox(label="Save to (blank = original file)")
                save_btn = gr.Button("Save")

    with gr.Tab("Products"):
        with gr.Row():
            with gr.Column(scale=1):
                gr.Markdown("### 1. Intermediate product")
                leaf_only = gr.Checkbox(label="Leaf nodes only", value=False)
                build_intermediate_btn = gr.Button("Build Intermediate Product", variant="primary")
                intermediate_page = gr.Number(label="Page", value=1, precision=0, minimum=1)
                intermediate_pages = gr.Textbox(label="Pages", interactive=False)
                intermediate_text = gr.Code(label="Intermediate product", language="json", interactive=False)
                export_intermediate_btn = gr.Button("Export Intermediate Product")

            with gr.Column(scale=1):
                gr.Markdown("### 2. Final product")
                build_final_btn = gr.Button("Build Final Product", variant="primary")
                one_click_btn = gr.Button("One-Click Final Product")
                final_page = gr.Number(label="Page", value=1, precision=0, minimum=1)
                final_pages = gr.Textbox(label="Pages", interactive=False)
                final_text = gr.Code(label="Final product", language="json", interactive=False)
                export_final_btn = gr.Button("Export Final Product")
                download_output = gr.File(label="Download Result")

        gr.Markdown("### 3. Candidate fields")
        with gr.Row():
            detect_btn = gr.Button("Detect Candidate Fields")
            candidate_fields = gr.Dropdown(label="Candidate fields", choices=[], interactive=True)
        products_status = gr.Textbox(label="Status", interactive=False)

    with gr.Tab("Corrections"):
        gr.Markdown("Upload a `{seq: value}` file shaped like the final product to write values back.")
        corrections_file = gr.File(label="Corrections File", file_types=[".json"])
        write_back = gr.Checkbox(label="Save to the original file afterwards", value=True)
        apply_corrections_btn = gr.Button("Apply Corrections", variant="primary")
        corrections_status = gr.Textbox(label="Status", interactive=False)
        corrections_summary = gr.Textbox(label="Summary", interactive=False)

    listing_inputs = [session_state, char_filter, hide_empty, flatten]

    file_input.upload(
        fn=load_file_handler,
        inputs=[file_input, char_filter, hide_empty, flatten],
        outputs=[session_state, tree_table, status_msg, save_path],
    )

    for control in (char_filter, hide_empty, flatten):
        control.change(fn=refresh_listing_handler, inputs=listing_inputs, outputs=[tree_table])

    apply_filter_btn.click(
        fn=apply_filter_handler,
        inputs=[session_state, filter_box, char_filter, hide_empty, flatten],
        outputs=[tree_table, search_table, status_msg],
    )
    filter_box.submit(
        fn=apply_filter_handler,
        inputs=[session_state, filter_box, char_filter, hide_empty, flatten],
        outputs=[tree_table, search_table, status_msg],
    )

    reset_tree_btn.click(fn=reset_expansion_handler, inputs=listing_inputs, outputs=[tree_table, status_msg])

    tree_table.select(fn=select_row_handler, inputs=[tree_table], outputs=[address_box])
    search_table.select(fn=select_row_handler, inputs=[search_table], outputs=[address_box])

    toggle_btn.click(
        fn=toggle_node_handler,
        inputs=[session_state, address_box, char_filter, hide_empty, flatten],
        outputs=[tree_table, status_msg],
    )

    extract_btn.click(fn=extract_handler, inputs=[session_state, address_box], outputs=[node_text, status_msg])

    extract_search_btn.click(
        fn=extract_search_results_handler,
        inputs=[session_state, filter_box],
        outputs=[node_text, status_msg],
    )

    update_btn.click(
        fn=update_node_handler,
        inputs=[session_state, address_box, new_value, char_filter, hide_empty, flatten],
        outputs=[tree_table, status_msg],
    )

    save_btn.click(fn=save_handler, inputs=[session_state, save_path], outputs=[status_msg])

    build_intermediate_btn.click(
        fn=build_intermediate_handler,
        inputs=[session_state, filter_box, leaf_only],
        outputs=[intermediate_text, intermediate_pages, products_status],
    )
    intermediate_page.change(
        fn=intermediate_page_handler,
        inputs=[session_state, intermediate_page],
        outputs=[intermediate_text, intermediate_pages],
    )

    build_final_btn.click(
        fn=build_final_handler,
        inputs=[session_state],
        outputs=[final_text, final_pages, products_status],
    )
    one_click_btn.click(
        fn=one_click_final_handler,
        inputs=[session_state, filter_box, leaf_only],
        outputs=[intermediate_text, intermediate_pages, final_text, final_pages, products_status],
    )
    final_page.change(
        fn=final_page_handler,
        inputs=[session_state, final_page],
        outputs=[final_text, final_pages],
    )

    export_intermediate_btn.click(
        fn=lambda s: export_product_handler(s, 'intermediate'),
        inputs=[session_state],
        outputs=[download_output, products_status],
    )
    export_final_btn.click(
        fn=lambda s: export_product_handler(s, 'final'),
        inputs=[session_state],
        outputs=[download_output, products_status],
    )

    detect_btn.click(
        fn=detect_fields_handler,
        inputs=[session_state, leaf_only],
        outputs=[candidate_fields, products_status],
    )
    candidate_fields.change(fn=pick_candidate_handler, inputs=[candidate_fields], outputs=[filter_box])

    apply_corrections_btn.click(
        fn=apply_corrections_handler,
        inputs=[session_state, corrections_file, write_back, char_filter, hide_empty, flatten],
        outputs=[tree_table, corrections_status, corrections_summary],
    )

if __name__ == "__main__":
    demo.launch()
