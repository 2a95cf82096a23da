#!/usr/bin/env python3
"""
Display the Vigenère Tabula Recta

This script displays the complete 26x26 Vigenère square. Each row is the
alphabet shifted one position further than the row above: the key letter
selects the row, the plaintext letter the column, and the intersection is
the ciphertext letter.
"""

import sys

from trace_render import render_tabula_recta, separator
from vigenere_cipher import ALPHABET, table_lookup, tabula_recta


def print_tabula_recta(highlight_row: int = -1, highlight_column: int = -1):
    """Print the square, optionally marking one cell."""
    print(separator())
    print("VIGENÈRE TABULA RECTA (26x26)")
    print(separator())
    for line in render_tabula_recta(highlight_row, highlight_column):
        print(line)
    print(separator())


def print_detailed_rows():
    """Print each row with the Caesar shift it represents."""
    print(separator())
    print("Format: row letter, shift, row alphabet")
    print(separator())
    for shift, row in enumerate(tabula_recta()):
        print(f"{ALPHABET[shift]}  shift {shift:2d}  {row}")
    print(separator())
    print(f"Total rows: {len(ALPHABET)}")


def print_lookup(plain_char: str, key_char: str):
    """Walk through a single encryption lookup."""
    lookup = table_lookup(plain_char, key_char)
    print(f"STEP 1: Find the plaintext letter {lookup['input_letter']!r} in the top row "
          f"(column {lookup['column']})")
    print(f"STEP 2: Find the key letter {lookup['row_letter']!r} in the left column "
          f"(row {lookup['row']})")
    print(f"STEP 3: The intersection is {lookup['result_letter']!r}")
    print()
    print_tabula_recta(lookup["row"], lookup["column"])


def main(argv=None) -> int:
    args = sys.argv[1:] if argv is None else argv

    if args and args[0] == '--detailed':
        print_detailed_rows()
    elif len(args) == 3 and args[0] == '--lookup':
        plain_char, key_char = args[1], args[2]
        if not (len(plain_char) == 1 and len(key_char) == 1
                and plain_char.upper() in ALPHABET and key_char.upper() in ALPHABET):
            print("Lookup needs two letters, e.g. --lookup A L")
            return 2
        print_lookup(plain_char, key_char)
    else:
        print_tabula_recta()
        print("\nUse --detailed flag to list every row with its shift")
        print("Use --lookup PLAIN KEY to walk through one lookup")
        print(f"Example: {sys.argv[0]} --lookup A L")
    return 0


if __name__ == "__main__":
    sys.exit(main())
