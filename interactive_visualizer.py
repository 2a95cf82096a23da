#!/usr/bin/env python3
"""
Interactive cipher visualizer - step-by-step RC4, ChaCha20 and Vigenère

Without arguments an interactive menu is shown. With --cipher a single run is
made from command line flags:

  interactive_visualizer.py --cipher rc4 --plaintext ATTACK --key KEY --state-size 8
  interactive_visualizer.py --cipher chacha20 --plaintext hello --key secret --nonce 42
  interactive_visualizer.py --cipher vigenere --plaintext "Attack at Dawn" --key LEMON

Exit codes: 0=OK, 2=usage/error.
"""

import argparse
import logging
import sys
from typing import Dict, Optional, Tuple

from chacha20_cipher import ARXResult, ARXStreamCipher, chacha_block
from cipher_stats import (
    key_sensitivity_test,
    plot_histogram,
    plot_state_evolution,
    run_statistical_tests,
)
from cipher_trace import CipherEngine, CipherRequest, CipherResult, fit_length
from rc4_cipher import DEFAULT_STATE_SIZE, StatePermutationCipher, StatePermutationResult
from rc4_cipher import keystream as rc4_keystream
from show_tabula_recta import print_tabula_recta
from trace_render import render_json, render_text
from vigenere_cipher import ALPHABET, DECRYPT, ENCRYPT, PolyalphabeticCipher, PolyalphabeticResult

logger = logging.getLogger(__name__)

ENGINES: Dict[str, type] = {
    "rc4": StatePermutationCipher,
    "chacha20": ARXStreamCipher,
    "vigenere": PolyalphabeticCipher,
}

MENU = [
    ("1", "rc4", "RC4", "Stream cipher encryption"),
    ("2", "chacha20", "ChaCha20", "Modern stream cipher"),
    ("3", "vigenere", "Vigenère", "Classic polyalphabetic cipher"),
    ("4", "table", "Tabula recta", "Show the Vigenère square"),
    ("5", "exit", "Exit", "Exit the program"),
]


def print_separator():
    """Print a visual separator."""
    print("=" * 70)


def print_header():
    """Print program header."""
    print_separator()
    print("       ENCRYPTION ALGORITHM VISUALIZER")
    print("       Step-by-step RC4, ChaCha20 and Vigenère")
    print_separator()
    print()


def print_menu():
    print("Available algorithms:")
    print()
    for number, _, title, description in MENU:
        print(f"   {number}) {title:<14} {description}")
    print()


def select_cipher() -> str:
    """Read a menu choice; returns the cipher name, 'table', 'exit' or '' if invalid."""
    choice = input("   Select option: ").strip().lower()
    for number, name, _, _ in MENU:
        if choice in (number, name):
            return name
    return ""


def get_common_inputs() -> Tuple[str, str]:
    """Get plaintext and key from user."""
    plaintext = input("   Please input Plaintext: ").strip()
    key = input("   Please input Key: ").strip()
    return plaintext, key


def get_state_size() -> str:
    """Get RC4 state array size (validated by the engine)."""
    value = input(f"   Please input State Array Size (e.g., 4, {DEFAULT_STATE_SIZE}): ").strip()
    return value or str(DEFAULT_STATE_SIZE)


def get_nonce() -> str:
    """Get optional ChaCha20 nonce."""
    return input("   Please input Nonce (optional, default 0): ").strip()


def get_vigenere_options() -> Tuple[str, bool]:
    """Get Vigenère mode and punctuation handling."""
    mode = input("   Would you like to encrypt or decrypt? (e/d) [default: e]: ").strip().lower()
    if mode in ("", "e"):
        mode = ENCRYPT
    elif mode == "d":
        mode = DECRYPT
    else:
        print("   ⚠ Invalid mode selected. Defaulting to encryption.")
        mode = ENCRYPT
    preserve = input("   Preserve spaces and punctuation? (y/n) [default: y]: ").strip().lower()
    return mode, preserve in ("", "y")


def collect_options(cipher: str) -> dict:
    """Prompt for the options specific to one cipher."""
    if cipher == "rc4":
        return {"state_size": get_state_size()}
    if cipher == "chacha20":
        return {"nonce": get_nonce()}
    mode, preserve = get_vigenere_options()
    return {"mode": mode, "preserve_non_letters": preserve}


def execute(cipher: str, plaintext: str, key: str, options: dict) -> CipherResult:
    """Run one engine on text input, reporting errors as part of the result."""
    engine: CipherEngine = ENGINES[cipher]()
    return engine.execute(CipherRequest.from_text(plaintext, key, **options))


def show_result(result: CipherResult, detailed: bool = True, as_json: bool = False):
    if as_json:
        print(render_json(result))
        return
    for line in render_text(result, detailed):
        print(line)


def show_statistics(result: CipherResult):
    """Print entropy, frequency, correlation and key sensitivity for a stream cipher run."""
    if isinstance(result, StatePermutationResult):
        n = result.state_size
        stats = run_statistical_tests(result.plaintext, result.ciphertext, result.keystream, symbols=n)
        sensitivity = key_sensitivity_test(
            lambda k: rc4_keystream(k, n, len(result.plaintext)), result.key,
            width=max(8, (n - 1).bit_length()))
    elif isinstance(result, ARXResult):
        stats = run_statistical_tests(result.plaintext, result.ciphertext, result.keystream)
        sensitivity = key_sensitivity_test(
            lambda k: chacha_block(fit_length(k, 32), result.nonce, result.counter), result.key)
    else:
        print("Statistics are available for the stream ciphers (RC4, ChaCha20).")
        return

    print()
    print_separator()
    print("STATISTICAL TESTS")
    print_separator()
    print(f"Shannon entropy (plain):     {stats['plaintext_entropy']:.4f} bits/symbol")
    print(f"Shannon entropy (keystream): {stats['keystream_entropy']:.4f} bits/symbol")
    print(f"Shannon entropy (cipher):    {stats['ciphertext_entropy']:.4f} bits/symbol")
    print(f"Chi-square (keystream):      {stats['keystream_frequency']['chi_square']:.2f}")
    print(f"Correlation (plain<->cipher): {stats['correlation']:.4f}")
    print(f"Key sensitivity:             {sensitivity['mean_flip_percentage']:.2f}% of keystream "
          f"bits change on a single key bit flip ({sensitivity['num_tests']} flips)")
    print_separator()


def save_plot(result: CipherResult, path: str):
    """Write the plot that fits the result to path."""
    if isinstance(result, StatePermutationResult):
        plot_state_evolution(result.trace, output=path)
    elif isinstance(result, ARXResult):
        plot_histogram(result.keystream_block, "ChaCha20 Keystream Block Histogram", output=path)
    elif isinstance(result, PolyalphabeticResult):
        letters = [ALPHABET.index(ch.upper()) for ch in result.output_text if ch.upper() in ALPHABET]
        plot_histogram(letters, "Output Letter Frequencies", symbols=len(ALPHABET), output=path)
    print(f"Plot saved to {path}")


def wait_for_enter(message: str = "Press Enter to return to main menu..."):
    input(f"👉 {message}")


def run_interactive() -> int:
    """Main interactive program."""
    while True:
        print_header()
        print_menu()
        choice = select_cipher()

        if choice == "exit":
            print()
            print("✓ Thank you for using the Encryption Algorithm Visualizer!")
            print()
            return 0
        if choice == "table":
            print()
            print_tabula_recta()
            wait_for_enter()
            continue
        if not choice:
            print()
            print("✗ Invalid choice! Please select a valid option.")
            print("💡 Hint: Choose 1, 2, 3, 4 or 5")
            wait_for_enter("Press Enter to try again...")
            continue

        print()
        print_separator()
        print(f"═══ {ENGINES[choice].name} ═══")
        print_separator()
        plaintext, key = get_common_inputs()
        if not plaintext or not key:
            print()
            print("✗ Error: Plaintext and key cannot be empty!")
            print("💡 Both fields are required for encryption.")
            wait_for_enter("Press Enter to continue...")
            continue

        options = collect_options(choice)
        print()
        print("⏳ Processing...")
        print()
        result = execute(choice, plaintext, key, options)
        if result.error is not None and type(result) is CipherResult:
            print(f"✗ Error ({result.error.kind}): {result.error.message}")
            wait_for_enter("Press Enter to continue...")
            continue

        show_result(result)
        print()
        print_separator()
        print("✓ Encryption process complete!" if result.ok else f"⚠ {result.error.message}")
        print_separator()
        wait_for_enter()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Visualize RC4, ChaCha20 and Vigenère step by step.")
    parser.add_argument("--cipher", choices=sorted(ENGINES), help="Run once non-interactively")
    parser.add_argument("--plaintext", help="Text to encrypt (or decrypt for Vigenère)")
    parser.add_argument("--key", help="Key text")
    parser.add_argument("--state-size", default=str(DEFAULT_STATE_SIZE),
                        help=f"RC4 state array size (default {DEFAULT_STATE_SIZE})")
    parser.add_argument("--nonce", default="", help="ChaCha20 nonce text (zero-padded to 12 bytes)")
    parser.add_argument("--mode", default=ENCRYPT, help="Vigenère mode: encrypt/e or decrypt/d")
    parser.add_argument("--drop-non-letters", action="store_true",
                        help="Vigenère: drop spaces and punctuation instead of copying them")
    parser.add_argument("--json", action="store_true", help="Print the result and trace as JSON")
    parser.add_argument("--summary", action="store_true", help="Only print setup and results")
    parser.add_argument("--stats", action="store_true", help="Print keystream statistics")
    parser.add_argument("--plot", metavar="PATH", help="Save a plot of the run to PATH")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def options_from_args(args: argparse.Namespace) -> dict:
    if args.cipher == "rc4":
        return {"state_size": args.state_size}
    if args.cipher == "chacha20":
        return {"nonce": args.nonce}
    return {"mode": args.mode, "preserve_non_letters": not args.drop_non_letters}


def run_once(args: argparse.Namespace) -> int:
    """Single non-interactive run from parsed arguments."""
    result = execute(args.cipher, args.plaintext or "", args.key or "", options_from_args(args))
    if not result.ok:
        print(f"Error ({result.error.kind}): {result.error.message}", file=sys.stderr)
        if type(result) is CipherResult:
            return 2
    show_result(result, detailed=not args.summary, as_json=args.json)
    if args.stats:
        show_statistics(result)
    if args.plot:
        save_plot(result, args.plot)
    return 0 if result.ok else 2


def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.cipher:
        return run_once(args)
    return run_interactive()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\n\n⚠ Program interrupted by user")
        sys.exit(0)
