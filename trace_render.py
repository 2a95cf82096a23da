#!/usr/bin/env python3
"""
Render cipher results and their traces as plain text or JSON.

The engines only produce data; everything printed to the terminal is built
here.
"""

import dataclasses
import json
from typing import Callable, Dict, List, Sequence

from chacha20_cipher import ARXResult
from cipher_trace import CipherResult, to_binary, xor_bits
from rc4_cipher import StatePermutationResult, replay_swaps
from vigenere_cipher import (
    ALPHABET,
    HISTORY,
    KNOWN_ATTACKS,
    RECOMMENDATIONS,
    STRENGTHS,
    WEAKNESSES,
    PolyalphabeticResult,
    table_lookup,
    tabula_recta,
)

WIDTH = 70

# Longer state arrays are shortened to this many entries in the step-by-step view
STATE_PREVIEW = 256


def separator(char: str = "=") -> str:
    return char * WIDTH


def header(title: str) -> List[str]:
    return [separator(), f"  {title}", separator()]


def printable(value: int) -> str:
    """Character for a byte value, '.' when it is not printable ASCII."""
    return chr(value) if 32 <= value < 127 else "."


def format_state(state: Sequence[int], max_items: int = 0) -> str:
    """List-style rendering of a state array, optionally shortened."""
    if max_items and len(state) > max_items:
        head = ", ".join(str(v) for v in state[:max_items])
        return f"[{head}, ... ({len(state)} entries)]"
    return "[" + ", ".join(str(v) for v in state) + "]"


def format_matrix(words: Sequence[int]) -> List[str]:
    """4x4 word matrix in hex, one row per line."""
    return ["[" + ", ".join(f"{w:08x}" for w in words[row * 4:row * 4 + 4]) + "]" for row in range(4)]


def format_xor_table(left: int, right: int, width: int = 8) -> List[str]:
    """Binary representation and bit-by-bit XOR of a plaintext/keystream pair."""
    result = left ^ right
    lines = [
        f"  {'Type':<11} {'Decimal':>7}  {'Char':<4} Binary",
        f"  {'Plaintext':<11} {left:>7}  {printable(left)!r:<4} {to_binary(left, width)}",
        f"  {'Keystream':<11} {right:>7}  {'-':<4} {to_binary(right, width)}",
        f"  {'-' * 11} {'-' * 7}  {'-' * 4} {'-' * width}",
        f"  {'Ciphertext':<11} {result:>7}  {printable(result)!r:<4} {to_binary(result, width)}",
        "  Bit-by-bit XOR:",
    ]
    for row in xor_bits(left, right, width):
        lines.append(f"    bit {row['bit']:>2}: {row['left']} XOR {row['right']} = {row['result']}")
    return lines


# ===== RC4 =====

def _render_rc4(result: StatePermutationResult, detailed: bool) -> List[str]:
    n = result.state_size
    width = max(8, max(result.keystream + result.ciphertext + [0]).bit_length())
    initial = result.steps("setup")[0].values["initial_state"]
    scheduled = result.steps("ksa_result")[0].values["state"]
    lines = header("RC4 ENCRYPTION ALGORITHM - STEP BY STEP")
    lines += [
        f"Plaintext:        {result.plaintext.decode('utf-8', errors='replace')!r}",
        f"Plaintext bytes:  {list(result.plaintext)}",
        f"Key:              {result.key.decode('utf-8', errors='replace')!r}",
        f"Key bytes:        {list(result.key)}",
        f"State array size: {n}",
        "",
    ]

    if detailed:
        lines += header("KEY-SCHEDULING ALGORITHM (KSA)")
        before = format_state(initial, STATE_PREVIEW)
        lines.append(f"Initial S = {before}")
        lines.append("j = 0")
        for step, state in replay_swaps(initial, result.steps("ksa")):
            v = step.values
            after = format_state(state, STATE_PREVIEW)
            lines += [
                separator("-"),
                f"{step.label} (i = {v['i']})",
                f"  j = (j + S[i] + K[i % {len(result.key)}]) % {n}",
                f"  j = ({v['j_before']} + {v['s_i']} + {v['key_byte']}) % {n} = {v['sum']} % {n} = {v['j']}",
                f"  Swap S[{v['i']}] <-> S[{v['j']}] ({v['s_i']} <-> {v['s_j']})",
                f"    Before: S = {before}",
                f"    After:  S = {after}",
            ]
            before = after
        lines.append("")

    lines.append(f"KSA result S = {format_state(scheduled, STATE_PREVIEW)}")
    lines.append("")

    if detailed:
        lines += header("PSEUDO-RANDOM GENERATION ALGORITHM (PRGA)")
        before = format_state(scheduled, STATE_PREVIEW)
        for step, state in replay_swaps(scheduled, result.steps("prga")):
            v = step.values
            after = format_state(state, STATE_PREVIEW)
            lines += [
                separator("-"),
                f"{step.label}: {printable(v['plaintext_byte'])!r} ({v['plaintext_byte']})",
                f"  i = (i + 1) % {n} = ({v['i_before']} + 1) % {n} = {v['i']}",
                f"  j = (j + S[i]) % {n} = ({v['j_before']} + S[{v['i']}]) % {n} = {v['j']}",
                f"  Swap S[{v['i']}] <-> S[{v['j']}]",
                f"    Before: S = {before}",
                f"    After:  S = {after}",
                f"  t = (S[{v['i']}] + S[{v['j']}]) % {n} = ({v['s_i']} + {v['s_j']}) % {n} = {v['t']}",
                f"  Keystream byte = S[{v['t']}] = {v['keystream_byte']}",
                f"  {v['plaintext_byte']} XOR {v['keystream_byte']} = {v['ciphertext_byte']}",
            ]
            lines += format_xor_table(v['plaintext_byte'], v['keystream_byte'], width)
            before = after
        lines.append("")

    lines += header("COMPLETE RESULTS")
    lines.append(f"  {'Step':<5} {'Input':<12} {'Keystream':>9}  {'Output':<12} Operation")
    for index, (p, k, c) in enumerate(zip(result.plaintext, result.keystream, result.ciphertext)):
        shown_in = f"{printable(p)!r} ({p})"
        shown_out = f"{printable(c)!r} ({c})"
        lines.append(f"  {index + 1:<5} {shown_in:<12} {k:>9}  {shown_out:<12} {p} ^ {k} = {c}")
    lines += [
        "",
        f"Keystream:  {format_state(result.keystream)}",
        f"Ciphertext: {format_state(result.ciphertext)}",
    ]
    if result.state_size <= 256:
        lines.append(f"Ciphertext (hex): {result.ciphertext_bytes().hex()}")
    lines.append(f"Decryption check: {'PASSED' if result.verified else 'FAILED'}")
    return lines


# ===== ChaCha20 =====

def _render_chacha(result: ARXResult, detailed: bool) -> List[str]:
    lines = header("CHACHA20 ENCRYPT ALGORITHM - STEP BY STEP")
    lines += [
        f"Key:      {result.key!r} (padded to 32B)",
        f"Nonce:    {result.nonce.hex()} (padded to 12B)",
        f"Counter:  {result.counter} ({result.counter:08x})",
        "Constant: \"expand 32-byte k\" = 61707865 3320646e 79622d32 6b206574",
        "",
        "Initial state:",
    ]
    lines += format_matrix(result.initial_state)
    lines += [
        "  Row 0: Constants ('expand 32-byte k')",
        "  Rows 1-2: Key (256 bits)",
        "  Row 3: Counter + Nonce (96 bits)",
        "",
    ]

    if detailed:
        lines += header("THE QUARTER ROUNDS")
        for step in result.steps("round"):
            v = step.values
            inputs = " ".join(f"{w:08x}" for w in v["inputs"])
            outputs = " ".join(f"{w:08x}" for w in v["outputs"])
            lines.append(f"Round {v['round']:>2} {v['kind']:<8} QR{tuple(v['indices'])}: {inputs} -> {outputs}")
        lines.append("")

    lines.append("State after 20 rounds:")
    lines += format_matrix(result.final_state)
    lines.append("")
    block_step = result.steps("keystream_block")[0]
    lines.append("Final keystream block (state + initial):")
    lines += format_matrix(block_step.values["state"])
    lines += ["", f"Keystream block (64 bytes): {result.keystream_block.hex()}", ""]

    if detailed:
        lines += header("ENCRYPTION")
        for step in result.steps("xor"):
            v = step.values
            lines.append(f"Index {v['index']:>3}: {printable(v['plaintext_byte'])!r} ({v['plaintext_byte']:02x}) "
                         f"XOR {v['keystream_byte']:02x} = {v['ciphertext_byte']:02x}")
        lines.append("")

    lines += header("COMPLETE RESULTS")
    lines += [
        f"Plaintext:  {result.plaintext.hex()}",
        f"Keystream:  {result.keystream.hex()}",
        f"Ciphertext: {result.ciphertext.hex()}",
    ]
    if result.blocks_reused:
        lines.append("Note: plaintext is longer than 64 bytes, the single keystream block was reused.")
    return lines


# ===== Vigenère =====

def _render_vigenere(result: PolyalphabeticResult, detailed: bool) -> List[str]:
    decrypting = result.mode == "decrypt"
    lines = header("VIGENÈRE CIPHER - POLYALPHABETIC SUBSTITUTION")
    lines += [
        f"Mode:           {result.mode}",
        f"Key:            {result.trace[0].values['key']!r}",
        f"Processed key:  {result.cleaned_key!r}",
        f"Preserve non-letters: {'yes' if result.preserve_non_letters else 'no'}",
        "",
    ]
    if not result.ok:
        lines.append(f"Error: {result.error.message}")
        lines.append(f"Output (unchanged): {result.output_text!r}")
        return lines

    if detailed:
        first = next((s.values for s in result.steps("character") if s.values["is_letter"]), None)
        if first is not None:
            lookup = table_lookup(first["char"], first["key_char"], result.mode)
            lines += header("TABLE LOOKUP GUIDE")
            lines += [
                f"Example: {'decrypting' if decrypting else 'encrypting'} "
                f"{lookup['input_letter']!r} with key {lookup['row_letter']!r}",
                f"  Row {lookup['row_letter']} of the tabula recta: {lookup['row_text']}",
                f"  Column {ALPHABET[lookup['column']]} (index {lookup['column']})",
                f"  Result: {lookup['result_letter']!r}",
                "",
            ]

        alignment = result.steps("key_alignment")[0].values
        lines += header("STEP-BY-STEP PROCESS")
        lines += [
            f"{'Cipher' if decrypting else 'Input':<8}: {alignment['text']}",
            f"{'Key':<8}: {alignment['key']}",
            "",
        ]
        sign = "-" if decrypting else "+"
        for step in result.steps("character"):
            v = step.values
            if not v["is_letter"]:
                lines.append(f"  {v['char']!r}: non-letter, {'copied' if v['action'] == 'copy' else 'dropped'}")
                continue
            formula = f"({v['plain_index']} {sign} {v['key_index']}{' + 26' if decrypting else ''}) % 26"
            lines.append(f"  {v['char']!r} + key {v['key_char']!r}: {formula} = {v['result_index']} "
                         f"-> {v['result_char']!r}")
        lines.append("")

    analysis = result.key_analysis
    lines += header("FINAL RESULTS")
    lines += [
        f"{'Original Ciphertext' if decrypting else 'Original Plaintext'}: {result.input_text!r}",
        f"{'Decrypted Plaintext' if decrypting else 'Encrypted Ciphertext'}: {result.output_text!r}",
        "",
        f"Key length: {analysis['key_length']} letters, text letters: {analysis['text_letters']}",
        f"Strength: {analysis['rating']}",
        f"Advice: {analysis['advice']}",
    ]
    if detailed:
        lines.append("")
        lines += render_cryptanalysis()
    return lines


def render_cryptanalysis() -> List[str]:
    """History, strengths, weaknesses and known attacks on the Vigenère cipher."""
    lines = header("CRYPTANALYSIS INSIGHTS")
    for title, items in (("Historical significance", HISTORY), ("Strengths", STRENGTHS),
                         ("Weaknesses", WEAKNESSES)):
        lines.append(f"{title}:")
        lines += [f"  - {item}" for item in items]
        lines.append("")

    attack_width = max(len(attack) for attack, _, _ in KNOWN_ATTACKS)
    description_width = max(len(description) for _, description, _ in KNOWN_ATTACKS)
    lines.append("Known attack methods:")
    lines.append(f"  {'Attack Method':<{attack_width}}  {'Description':<{description_width}}  Effectiveness")
    lines.append(f"  {'-' * attack_width}  {'-' * description_width}  {'-' * 13}")
    for attack, description, effectiveness in KNOWN_ATTACKS:
        lines.append(f"  {attack:<{attack_width}}  {description:<{description_width}}  {effectiveness}")
    lines.append("")

    lines.append("Modern recommendations:")
    lines += [f"  - {item}" for item in RECOMMENDATIONS]
    return lines


_RENDERERS: Dict[type, Callable[[CipherResult, bool], List[str]]] = {
    StatePermutationResult: _render_rc4,
    ARXResult: _render_chacha,
    PolyalphabeticResult: _render_vigenere,
}


def render_text(result: CipherResult, detailed: bool = True) -> List[str]:
    """
    Render a result as lines of plain text.

    Args:
        result: Any engine result
        detailed: Include every traced step, not only setup and summary

    Returns:
        Lines ready to print
    """
    if result.error is not None and type(result) is CipherResult:
        return [f"Error ({result.error.kind}): {result.error.message}"]
    return _RENDERERS[type(result)](result, detailed)


def render_tabula_recta(highlight_row: int = -1, highlight_column: int = -1) -> List[str]:
    """The 26x26 square with optional row/column highlighting in brackets."""
    lines = ["    " + " ".join(ALPHABET), "    " + "-" * (len(ALPHABET) * 2 - 1)]
    for r, row in enumerate(tabula_recta()):
        cells = []
        for c, letter in enumerate(row):
            if r == highlight_row and c == highlight_column:
                cells.append(f"[{letter}]")
            else:
                cells.append(letter)
        marker = ">" if r == highlight_row else " "
        lines.append(f"{marker}{ALPHABET[r]} | " + " ".join(cells))
    return lines


def _json_default(value):
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).hex()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def render_json(result: CipherResult, indent: int = 2) -> str:
    """JSON document of the result, bytes shown as hex."""
    data = dataclasses.asdict(result)
    data["ok"] = result.ok
    return json.dumps(data, indent=indent, default=_json_default, ensure_ascii=False)
