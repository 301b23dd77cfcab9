"""vmx-caps Interactive Demo.

A Gradio web interface for inspecting the VMX capabilities in a CPUID dump.

Usage:
    cd /path/to/vmx-caps
    python demo/gradio_app.py

Features:
    - Paste a dump or load the bundled Braswell example
    - See the fixed-width feature report
    - See vendor, model and parse statistics
"""

import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from vmx_caps import VmxReport


DUMPS_DIR = Path(__file__).parent.parent / "dumps"


# =============================================================================
# Example Dumps
# =============================================================================

def load_example_dumps() -> dict:
    """Map example names to dump text for every bundled dump file."""
    examples = {}
    for path in sorted(DUMPS_DIR.glob("*.txt")):
        examples[path.stem] = path.read_text(encoding="utf-8", errors="replace")
    examples["Custom"] = ""
    return examples


EXAMPLE_DUMPS = load_example_dumps()


# =============================================================================
# Report Functions
# =============================================================================

def run_report(dump: str) -> tuple:
    """Build the report for a dump.

    Args:
        dump: CPUID dump text

    Returns:
        Tuple of (report_text, summary_text)
    """
    if not dump.strip():
        return "Error: No dump provided", ""

    report = VmxReport()
    report.load_dump(dump)
    report_text = report.render()

    summary = report.get_summary()
    summary_lines = [
        "DUMP SUMMARY",
        "=" * 40,
        f"Vendor: {summary['vendor']}",
        f"Model: {summary['model']}",
        f"CPUID leaves: {summary['cpuid_leaves']}",
        f"MSRs: {summary['msrs']}",
        f"Discarded lines: {summary['discarded_lines']}",
        f"Supported: {summary['yes']}  Unsupported: {summary['no']}",
    ]
    if summary['unknown']:
        summary_lines.append("\nNot in dump:")
        for name in summary['unknown']:
            summary_lines.append(f"  - {name}")

    return report_text, "\n".join(summary_lines)


def load_example(example_name: str) -> str:
    """Load an example dump."""
    return EXAMPLE_DUMPS.get(example_name, "")


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""
    default_example = next(iter(EXAMPLE_DUMPS))

    with gr.Blocks(title="vmx-caps Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # vmx-caps: VMX Capabilities from CPUID Dumps

        Paste an InstLatx64 CPUID dump to see which VT-x features the CPU reports.

        `Y` = supported, `N` = not supported, `?` = the dump lacks the capability MSR.
        """)

        with gr.Row():
            with gr.Column(scale=3):
                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_DUMPS.keys()),
                    value=default_example,
                    label="Load Example"
                )

                dump_input = gr.Textbox(
                    value=EXAMPLE_DUMPS[default_example],
                    label="CPUID Dump",
                    lines=20,
                    placeholder="Paste dump text here..."
                )

                run_button = gr.Button("Analyze Dump", variant="primary")

            with gr.Column(scale=2):
                report_output = gr.Textbox(
                    label="Report",
                    lines=9,
                    interactive=False
                )
                summary_output = gr.Textbox(
                    label="Summary",
                    lines=10,
                    interactive=False
                )

        with gr.Accordion("Feature Sources", open=False):
            gr.Markdown("""
            | Feature | MSR | Bit |
            |---------|-----|-----|
            | EPT | `IA32_VMX_PROCBASED_CTLS2` (0x48B) | 33 |
            | Unrestricted Guest | `IA32_VMX_PROCBASED_CTLS2` (0x48B) | 39 |
            | VMCS Shadowing | `IA32_VMX_PROCBASED_CTLS2` (0x48B) | 46 |
            | APIC-register virtualization | `IA32_VMX_PROCBASED_CTLS2` (0x48B) | 40 |
            | Virtual-interrupt delivery | `IA32_VMX_PROCBASED_CTLS2` (0x48B) | 41 |
            | VMX Preemption Timer | `IA32_VMX_PINBASED_CTLS` (0x481) | 38 |
            | Process posted interrupts | `IA32_VMX_PINBASED_CTLS` (0x481) | 39 |
            """)

        example_dropdown.change(
            fn=load_example,
            inputs=[example_dropdown],
            outputs=[dump_input]
        )

        run_button.click(
            fn=run_report,
            inputs=[dump_input],
            outputs=[report_output, summary_output]
        )

    return demo


# =============================================================================
# Main
# =============================================================================

if __name__ == "__main__":
    demo = create_demo()
    demo.launch(
        share=False,
        server_name="0.0.0.0",
        server_port=7861,
        show_error=True
    )
