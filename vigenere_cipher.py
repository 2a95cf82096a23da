#!/usr/bin/env python3
"""
Vigenère polyalphabetic cipher with a per-character trace.

Also builds the teaching material around it: the tabula recta, a lookup guide
for one letter pair, the key alignment under the text and a key strength
rating.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from cipher_trace import (
    CipherEngine,
    CipherIssue,
    CipherResult,
    InvalidKey,
    InvalidParameter,
    TextOrBytes,
    TraceStep,
    as_text,
    require_input,
)

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"

ENCRYPT = "encrypt"
DECRYPT = "decrypt"

_MODE_ALIASES = {"": ENCRYPT, "e": ENCRYPT, ENCRYPT: ENCRYPT, "d": DECRYPT, DECRYPT: DECRYPT}

# (exclusive upper bound on key length, rating, advice)
KEY_STRENGTH_LEVELS = [
    (4, "VERY WEAK", "Use a longer key (at least 12 characters) for better security."),
    (8, "WEAK", "Consider using a longer key (12+ characters) for improved security."),
    (12, "MODERATE", "Good length! For maximum security, use 15+ character random keys."),
    (20, "STRONG", "Excellent key length! Random keys of this length are quite secure."),
]
STRONGEST_LEVEL = ("VERY STRONG", "Outstanding! When key length equals plaintext, it becomes a One-Time Pad.")

# ===== Cryptanalysis notes =====

HISTORY = [
    "Invented in the 1550s, popularized by Blaise de Vigenère",
    "Nicknamed 'le chiffre indéchiffrable' (the indecipherable cipher)",
    "Remained unbroken for over 300 years",
    "Finally cracked by Charles Babbage and Friedrich Kasiski in the 19th century",
]

STRENGTHS = [
    "Resists simple frequency analysis (unlike the Caesar cipher)",
    "The same letter can be encrypted differently each time it appears",
    "Simple to apply with pen and paper",
    "No special equipment needed",
]

WEAKNESSES = [
    "Kasiski examination finds the key length",
    "The Friedman test estimates the key length statistically",
    "Short keys are particularly weak",
    "The repeating key leaves patterns to analyze",
    "Not secure against modern computational attacks",
]

# (attack, description, effectiveness)
KNOWN_ATTACKS = [
    ("Kasiski Examination", "Finds repeated sequences to deduce key length", "High for short keys"),
    ("Friedman Test", "Uses Index of Coincidence to estimate key length", "High for any key"),
    ("Frequency Analysis", "After finding key length, analyze each Caesar shift", "High once key length known"),
    ("Brute Force", "Try all possible keys", "Low for long keys"),
    ("Known Plaintext", "If part of plaintext is known, key can be derived", "Very High"),
]

RECOMMENDATIONS = [
    "For actual security, use modern algorithms (AES, ChaCha20)",
    "Vigenère is great for learning cryptography concepts",
    "Never use Vigenère for real-world sensitive data",
    "If you must use it, use truly random keys as long as the message",
]


@dataclass
class PolyalphabeticResult(CipherResult):
    mode: str = ENCRYPT
    preserve_non_letters: bool = True
    input_text: str = ""
    cleaned_key: str = ""
    output_text: str = ""
    key_analysis: Dict[str, Any] = field(default_factory=dict)


def is_letter(ch: str) -> bool:
    """True for the 26 ASCII letters, either case."""
    return len(ch) == 1 and ch.isascii() and ch.isalpha()


def clean_key(key: str) -> str:
    """Keep only letters of the key, uppercased, in their original order."""
    return "".join(ch.upper() for ch in key if is_letter(ch))


def parse_mode(mode: str) -> str:
    """Map 'e'/'encrypt'/'' and 'd'/'decrypt' to a mode name."""
    normalized = (mode or "").strip().lower()
    if normalized not in _MODE_ALIASES:
        raise InvalidParameter(f"Mode must be 'encrypt' or 'decrypt', got {mode!r}")
    return _MODE_ALIASES[normalized]


def shift_position(plain_pos: int, key_pos: int, mode: str) -> int:
    if mode == ENCRYPT:
        return (plain_pos + key_pos) % len(ALPHABET)
    return (plain_pos - key_pos + len(ALPHABET)) % len(ALPHABET)


# ===== Teaching material =====

def tabula_recta() -> List[str]:
    """The 26x26 Vigenère square: row r is the alphabet shifted left by r."""
    return [ALPHABET[r:] + ALPHABET[:r] for r in range(len(ALPHABET))]


def table_lookup(plain_char: str, key_char: str, mode: str = ENCRYPT) -> Dict[str, Any]:
    """
    Locate one letter pair in the tabula recta.

    For encryption the key letter selects the row and the plaintext letter the
    column; the intersection is the ciphertext letter. For decryption the
    ciphertext letter is searched in the key row and the column header is the
    answer.
    """
    mode = parse_mode(mode)
    plain_pos = ALPHABET.index(plain_char.upper())
    key_pos = ALPHABET.index(key_char.upper())
    result_pos = shift_position(plain_pos, key_pos, mode)
    return {
        "row": key_pos,
        "row_letter": ALPHABET[key_pos],
        "row_text": tabula_recta()[key_pos],
        "column": plain_pos if mode == ENCRYPT else result_pos,
        "input_letter": ALPHABET[plain_pos],
        "result_letter": ALPHABET[result_pos],
        "mode": mode,
    }


def key_alignment(text: str, key: str, preserve_non_letters: bool = True) -> Dict[str, str]:
    """
    Line the repeated key up under the letters of text.

    Returns:
        {'text': uppercased text, 'key': repeated key} of equal visual length
    """
    cleaned = clean_key(key)
    if not cleaned:
        raise InvalidKey("Key must contain at least one letter!")
    shown_text = []
    repeated = []
    cursor = 0
    for ch in text:
        if is_letter(ch):
            shown_text.append(ch.upper())
            repeated.append(cleaned[cursor % len(cleaned)])
            cursor += 1
        elif preserve_non_letters:
            shown_text.append(ch)
            repeated.append(" ")
    return {"text": "".join(shown_text), "key": "".join(repeated)}


def analyze_key_strength(cleaned_key: str, text: str) -> Dict[str, Any]:
    """Rate the key by length, with the advice shown after a run."""
    key_length = len(cleaned_key)
    rating, advice = STRONGEST_LEVEL
    for bound, level, level_advice in KEY_STRENGTH_LEVELS:
        if key_length < bound:
            rating, advice = level, level_advice
            break
    return {
        "key_length": key_length,
        "text_letters": sum(1 for ch in text if is_letter(ch)),
        "rating": rating,
        "advice": advice,
    }


# ===== Engine =====

class PolyalphabeticCipher(CipherEngine):
    """Vigenère cipher over A-Z with case and punctuation handling."""

    name = "Vigenère Cipher"

    def run(self, plaintext: TextOrBytes, key: TextOrBytes, mode: str = ENCRYPT,
            preserve_non_letters: bool = True, **options) -> PolyalphabeticResult:
        """
        Encrypt or decrypt text, one traced step per input character.

        A key without letters is reported as an InvalidKey issue on the result
        and the text is returned unchanged.

        Raises:
            EmptyInput: if plaintext or key is empty
            InvalidParameter: if mode is not encrypt or decrypt
        """
        require_input(plaintext, key)
        mode = parse_mode(mode)
        text = as_text(plaintext)
        key_text = as_text(key)
        cleaned = clean_key(key_text)

        result = PolyalphabeticResult(
            name=self.name,
            mode=mode,
            preserve_non_letters=preserve_non_letters,
            input_text=text,
            cleaned_key=cleaned,
        )
        result.trace.append(TraceStep("setup", "Setup", {
            "alphabet": ALPHABET,
            "key": key_text,
            "cleaned_key": cleaned,
            "mode": mode,
            "preserve_non_letters": preserve_non_letters,
        }))

        if not cleaned:
            logger.warning("Key %r has no letters; text left unchanged", key_text)
            result.error = CipherIssue(InvalidKey.kind, "Key must contain at least one letter!")
            result.output_text = text
            return result

        result.trace.append(TraceStep("key_alignment", "Key repetition pattern",
                                      key_alignment(text, cleaned, preserve_non_letters)))

        output = []
        cursor = 0
        for position, ch in enumerate(text):
            if not is_letter(ch):
                if preserve_non_letters:
                    output.append(ch)
                result.trace.append(TraceStep("character", f"Character {position + 1}", {
                    "position": position,
                    "char": ch,
                    "is_letter": False,
                    "action": "copy" if preserve_non_letters else "drop",
                    "key_cursor": cursor,
                }))
                continue

            plain_pos = ALPHABET.index(ch.upper())
            key_char = cleaned[cursor % len(cleaned)]
            key_pos = ALPHABET.index(key_char)
            result_pos = shift_position(plain_pos, key_pos, mode)
            out = ALPHABET[result_pos]
            if ch.islower():
                out = out.lower()
            output.append(out)

            result.trace.append(TraceStep("character", f"Character {position + 1}", {
                "position": position,
                "char": ch,
                "is_letter": True,
                "action": "shift",
                "key_cursor": cursor,
                "plain_index": plain_pos,
                "key_char": key_char,
                "key_index": key_pos,
                "result_index": result_pos,
                "result_char": out,
            }))
            cursor += 1

        result.output_text = "".join(output)
        result.key_analysis = analyze_key_strength(cleaned, text)
        result.trace.append(TraceStep("result", "Final results", {
            "input": text,
            "output": result.output_text,
            "key_analysis": result.key_analysis,
        }))
        logger.debug("Vigenère %s: %d letters shifted", mode, cursor)
        return result
