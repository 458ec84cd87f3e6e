"""synacor-vm Interactive Demo.

A Gradio web interface for running program images on the virtual machine.

Usage:
    cd /path/to/synacor-vm
    python demo/gradio_app.py

Features:
    - Run a bundled example image or upload a .bin image
    - Provide the bytes the program will read with IN
    - See program output, halt reason and final registers
"""

import io
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import gradio as gr
from synacor_vm import Console, VirtualMachine, VMError, encode_words


R0, R1, R2 = 32768, 32769, 32770


def _hello_world():
    words = []
    for ch in "Hello, world!\n":
        words += [19, ord(ch)]          # out ch
    return words + [0]                  # halt


# =============================================================================
# Example Programs
# =============================================================================

EXAMPLE_PROGRAMS = {
    "Hello world": _hello_world(),

    # 5 + 6 via the stack, printed as a character code
    "Stack add": [
        2, 5,                           # push 5
        2, 6,                           # push 6
        3, R0,                          # pop r0
        3, R1,                          # pop r1
        9, R2, R0, R1,                  # add r2 r0 r1
        9, R2, R2, 54,                  # add r2 r2 54   ('A')
        19, R2,                         # out r2
        19, 10,                         # out '\n'
        0,                              # halt
    ],

    # Echo input bytes until a newline
    "Echo line": [
        20, R0,                         # 0: in r0
        19, R0,                         # 2: out r0
        4, R1, R0, 10,                  # 4: eq r1 r0 '\n'
        8, R1, 0,                       # 8: jf r1 0
        0,                              # 11: halt
    ],

    # Count down from 9, printing digits, via call/ret
    "Countdown": [
        1, R0, 9,                       # 0: set r0 9
        17, 14,                         # 3: call 14
        9, R0, R0, 32767,               # 5: add r0 r0 -1
        7, R0, 3,                       # 9: jt r0 3
        0,                              # 12: halt
        21,                             # 13: noop
        9, R1, R0, 48,                  # 14: add r1 r0 '0'
        19, R1,                         # 18: out r1
        19, 10,                         # 20: out '\n'
        18,                             # 22: ret
    ],
}


# =============================================================================
# Execution Functions
# =============================================================================

def run_program(example: str, upload, input_text: str, max_cycles: int) -> tuple:
    """Run an image and return results.

    Args:
        example: Name of a bundled example (used when nothing is uploaded)
        upload: Uploaded image file path, or None
        input_text: Bytes available to IN
        max_cycles: Maximum instructions to execute

    Returns:
        Tuple of (output_text, summary_text, registers_text)
    """
    output = io.BytesIO()
    console = Console(io.BytesIO(input_text.encode("latin-1", "replace")), output)
    vm = VirtualMachine(console=console, max_cycles=int(max_cycles))

    try:
        if upload is not None:
            vm.load_program(upload if isinstance(upload, str) else upload.name)
        else:
            vm.load_words(EXAMPLE_PROGRAMS[example])
    except VMError as e:
        return "", f"Error: {e}", ""

    error_msg = None
    try:
        vm.run()
    except VMError as e:
        error_msg = str(e)

    summary = vm.get_summary()
    summary_lines = [
        "EXECUTION SUMMARY",
        "=" * 40,
        f"Bytes loaded: {summary['bytes_loaded']}",
        f"Cycles:       {summary['cycles']}",
        f"Halt reason:  {summary['halt_reason']}",
        f"Output bytes: {summary['output_bytes']}",
        f"Stack depth:  {summary['stack_depth']}",
    ]
    if error_msg:
        summary_lines.append(f"\nFault: {error_msg}")

    reg_lines = [
        "FINAL REGISTERS",
        "=" * 30,
    ]
    for reg, value in summary["registers"].items():
        marker = " *" if value != 0 else ""
        reg_lines.append(f"  {reg}: {value:>6}{marker}")
    reg_lines.append(f"  PC: {summary['pc']:>6}")

    return output.getvalue().decode("latin-1"), "\n".join(summary_lines), "\n".join(reg_lines)


# =============================================================================
# Gradio Interface
# =============================================================================

def create_demo():
    """Create and return the Gradio demo interface."""

    with gr.Blocks(title="synacor-vm Demo", theme=gr.themes.Soft()) as demo:
        gr.Markdown("""
        # synacor-vm: 16-bit Word Virtual Machine

        Runs program images of little-endian 16-bit words: 32768 words of
        memory, eight registers and an unbounded stack.
        """)

        with gr.Row():
            with gr.Column(scale=2):
                gr.Markdown("### Program")

                example_dropdown = gr.Dropdown(
                    choices=list(EXAMPLE_PROGRAMS.keys()),
                    value="Hello world",
                    label="Example Image"
                )
                upload = gr.File(
                    label="Or upload an image (.bin)",
                    file_types=[".bin"],
                    type="filepath"
                )
                input_text = gr.Textbox(
                    label="Input (read by IN)",
                    lines=4,
                    placeholder="Text fed to the program..."
                )
                max_cycles = gr.Slider(
                    minimum=1000,
                    maximum=10000000,
                    value=1000000,
                    step=1000,
                    label="Max Cycles"
                )

                run_button = gr.Button("Run", variant="primary")

            with gr.Column(scale=3):
                program_output = gr.Textbox(
                    label="Program Output",
                    lines=15,
                    interactive=False
                )
                with gr.Row():
                    summary_output = gr.Textbox(
                        label="Summary",
                        lines=10,
                        interactive=False
                    )
                    registers_output = gr.Textbox(
                        label="Final Registers",
                        lines=10,
                        interactive=False
                    )

        with gr.Accordion("ISA Reference", open=False):
            gr.Markdown("""
            | Op | Instruction | Effect |
            |----|-------------|--------|
            | 0 | `halt` | stop |
            | 1 | `set a b` | a <- b |
            | 2 | `push a` | push a |
            | 3 | `pop a` | a <- pop (empty stack halts) |
            | 4 | `eq a b c` | a <- b == c |
            | 5 | `gt a b c` | a <- b > c |
            | 6 | `jmp a` | pc <- a |
            | 7 | `jt a b` | if a != 0: pc <- b |
            | 8 | `jf a b` | if a == 0: pc <- b |
            | 9 | `add a b c` | a <- (b + c) % 32768 |
            | 10 | `mult a b c` | a <- (b * c) % 32768 |
            | 11 | `mod a b c` | a <- b % c |
            | 12 | `and a b c` | a <- b & c |
            | 13 | `or a b c` | a <- b \\| c |
            | 14 | `not a b` | a <- ~b & 0x7fff |
            | 15 | `rmem a b` | a <- mem[b] |
            | 16 | `wmem a b` | mem[a] <- b |
            | 17 | `call a` | push pc; pc <- a |
            | 18 | `ret` | pc <- pop (empty stack halts) |
            | 19 | `out a` | write byte a |
            | 20 | `in a` | a <- read byte |
            | 21 | `noop` | nothing |

            **Operands**: 0..32767 literal, 32768..32775 registers R0-R7
            """)

        run_button.click(
            fn=run_program,
            inputs=[example_dropdown, upload, input_text, max_cycles],
            outputs=[program_output, summary_output, registers_output]
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
