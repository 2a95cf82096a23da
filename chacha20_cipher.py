#!/usr/bin/env python3
"""
ChaCha20 block function, traced quarter round by quarter round.

A single 64-byte keystream block is produced (counter 1 by default) and used
to XOR the plaintext. Plaintext longer than 64 bytes reuses the same block:
this tool visualizes one block function call, it does not implement the
multi-block stream.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from cipher_trace import (
    MASK_32,
    CipherEngine,
    CipherResult,
    TextOrBytes,
    TraceStep,
    as_bytes,
    fit_length,
    parse_word32,
    require_input,
    rotate_left32,
)

logger = logging.getLogger(__name__)

KEY_SIZE = 32
NONCE_SIZE = 12
BLOCK_SIZE = 64
DEFAULT_COUNTER = 1
NUM_DOUBLE_ROUNDS = 10

# "expand 32-byte k"
CONSTANTS = (0x61707865, 0x3320646E, 0x79622D32, 0x6B206574)

COLUMN_ROUND = ((0, 4, 8, 12), (1, 5, 9, 13), (2, 6, 10, 14), (3, 7, 11, 15))
DIAGONAL_ROUND = ((0, 5, 10, 15), (1, 6, 11, 12), (2, 7, 8, 13), (3, 4, 9, 14))


@dataclass
class ARXResult(CipherResult):
    key: bytes = b""
    nonce: bytes = b""
    counter: int = DEFAULT_COUNTER
    initial_state: List[int] = field(default_factory=list)
    final_state: List[int] = field(default_factory=list)
    keystream_block: bytes = b""
    keystream: bytes = b""
    plaintext: bytes = b""
    ciphertext: bytes = b""
    blocks_reused: bool = False


# ===== ARX primitives =====

def quarter_round_steps(a: int, b: int, c: int, d: int) -> List[Tuple[str, int, int, int, int]]:
    """
    The 12 ARX operations of one quarter round.

    Returns:
        List of (operation, a, b, c, d) with the words after each operation
    """
    steps = []
    a = (a + b) & MASK_32
    steps.append(("a += b", a, b, c, d))
    d ^= a
    steps.append(("d ^= a", a, b, c, d))
    d = rotate_left32(d, 16)
    steps.append(("d <<<= 16", a, b, c, d))
    c = (c + d) & MASK_32
    steps.append(("c += d", a, b, c, d))
    b ^= c
    steps.append(("b ^= c", a, b, c, d))
    b = rotate_left32(b, 12)
    steps.append(("b <<<= 12", a, b, c, d))
    a = (a + b) & MASK_32
    steps.append(("a += b", a, b, c, d))
    d ^= a
    steps.append(("d ^= a", a, b, c, d))
    d = rotate_left32(d, 8)
    steps.append(("d <<<= 8", a, b, c, d))
    c = (c + d) & MASK_32
    steps.append(("c += d", a, b, c, d))
    b ^= c
    steps.append(("b ^= c", a, b, c, d))
    b = rotate_left32(b, 7)
    steps.append(("b <<<= 7", a, b, c, d))
    return steps


def quarter_round_words(a: int, b: int, c: int, d: int) -> Tuple[int, int, int, int]:
    """Apply one quarter round to four words and return the new words."""
    _, a, b, c, d = quarter_round_steps(a, b, c, d)[-1]
    return a, b, c, d


def quarter_round(x: List[int], a: int, b: int, c: int, d: int) -> None:
    """Apply a quarter round in place to the words of x at indices a, b, c, d."""
    x[a], x[b], x[c], x[d] = quarter_round_words(x[a], x[b], x[c], x[d])


# ===== State =====

def initial_state(key: bytes, nonce: bytes, counter: int = DEFAULT_COUNTER) -> np.ndarray:
    """
    Build the 4x4 initial state matrix.

    Args:
        key: Exactly 32 key bytes
        nonce: Exactly 12 nonce bytes
        counter: 32-bit block counter

    Returns:
        16 uint32 words: constants, key, counter, nonce
    """
    if len(key) != KEY_SIZE or len(nonce) != NONCE_SIZE:
        raise ValueError(f"Key must be {KEY_SIZE} bytes and nonce {NONCE_SIZE} bytes")
    if not 0 <= counter <= MASK_32:
        raise ValueError(f"Counter must fit in 32 bits, got {counter}")
    key_words = np.frombuffer(key, dtype="<u4")
    nonce_words = np.frombuffer(nonce, dtype="<u4")
    return np.concatenate([
        np.array(CONSTANTS, dtype=np.uint32),
        key_words.astype(np.uint32),
        np.array([counter], dtype=np.uint32),
        nonce_words.astype(np.uint32),
    ])


def serialize(words: np.ndarray) -> bytes:
    """Serialize 32-bit words little-endian."""
    return words.astype("<u4").tobytes()


def run_rounds(state: np.ndarray, trace: Optional[List[TraceStep]] = None) -> np.ndarray:
    """
    Run the 20 rounds (10 column/diagonal double rounds) on a copy of state.

    Returns:
        The working state after the last round
    """
    x = [int(w) for w in state]
    for double_round in range(NUM_DOUBLE_ROUNDS):
        for kind, groups in (("column", COLUMN_ROUND), ("diagonal", DIAGONAL_ROUND)):
            round_number = double_round * 2 + (1 if kind == "column" else 2)
            for group in groups:
                inputs = [x[i] for i in group]
                quarter_round(x, *group)
                if trace is not None:
                    trace.append(TraceStep("round", f"Round {round_number} ({kind}) QR{group}", {
                        "round": round_number,
                        "kind": kind,
                        "indices": list(group),
                        "inputs": inputs,
                        "outputs": [x[i] for i in group],
                    }))
            if trace is not None:
                trace.append(TraceStep("round_state", f"State after round {round_number}", {
                    "round": round_number,
                    "state": list(x),
                }))
    return np.array(x, dtype=np.uint32)


def chacha_block(key: bytes, nonce: bytes, counter: int = DEFAULT_COUNTER) -> bytes:
    """Compute one 64-byte keystream block."""
    initial = initial_state(key, nonce, counter)
    return serialize(run_rounds(initial) + initial)


# ===== Engine =====

class ARXStreamCipher(CipherEngine):
    """ChaCha20 single-block visualization."""

    name = "ChaCha20"

    def run(self, plaintext: TextOrBytes, key: TextOrBytes, nonce: Optional[TextOrBytes] = None,
            counter: int = DEFAULT_COUNTER, **options) -> ARXResult:
        """
        Encrypt plaintext with one keystream block and record every round.

        Args:
            plaintext: Text or bytes to encrypt
            key: Text or bytes, zero-padded (or truncated) to 32 bytes
            nonce: Optional text or bytes, zero-padded (or truncated) to 12 bytes
            counter: Block counter placed in word 12 (int or decimal string, 0 to 2^32 - 1)

        Returns:
            ARXResult with keystream block, used keystream, ciphertext and trace

        Raises:
            EmptyInput: if plaintext or key is empty
            InvalidParameter: if counter is not an unsigned 32-bit number
        """
        require_input(plaintext, key)
        counter = parse_word32(counter, "Block counter")
        plaintext = as_bytes(plaintext)
        raw_key = as_bytes(key)
        raw_nonce = as_bytes(nonce) if nonce else b""
        if len(raw_key) > KEY_SIZE:
            logger.warning("Key is %d bytes, only the first %d are used", len(raw_key), KEY_SIZE)
        if len(raw_nonce) > NONCE_SIZE:
            logger.warning("Nonce is %d bytes, only the first %d are used", len(raw_nonce), NONCE_SIZE)
        key = fit_length(raw_key, KEY_SIZE)
        nonce = fit_length(raw_nonce, NONCE_SIZE)

        trace = [TraceStep("setup", "Setup & constants", {
            "key": key.hex(),
            "nonce": nonce.hex(),
            "counter": counter,
            "constants": list(CONSTANTS),
            "constant_text": "expand 32-byte k",
        })]

        initial = initial_state(key, nonce, counter)
        trace.append(TraceStep("initial_state", "Initial state matrix", {"state": initial.tolist()}))

        logger.debug("ChaCha20: running %d rounds", NUM_DOUBLE_ROUNDS * 2)
        working = run_rounds(initial, trace)
        trace.append(TraceStep("final_state", "State after 20 rounds", {"state": working.tolist()}))

        # uint32 array addition wraps modulo 2^32
        final = working + initial
        block = serialize(final)
        trace.append(TraceStep("keystream_block", "Keystream block (state + initial)", {
            "state": final.tolist(),
            "block": block.hex(),
        }))

        blocks_reused = len(plaintext) > BLOCK_SIZE
        if blocks_reused:
            logger.warning("Plaintext is %d bytes; the single %d-byte keystream block is reused",
                           len(plaintext), BLOCK_SIZE)
        block_arr = np.frombuffer(block, dtype=np.uint8)
        used = np.resize(block_arr, len(plaintext))
        cipher_arr = np.frombuffer(plaintext, dtype=np.uint8) ^ used

        for index, (p, k, c) in enumerate(zip(plaintext, used.tolist(), cipher_arr.tolist())):
            trace.append(TraceStep("xor", f"Index {index}", {
                "index": index,
                "block_offset": index % BLOCK_SIZE,
                "plaintext_byte": p,
                "keystream_byte": k,
                "ciphertext_byte": c,
            }))

        return ARXResult(
            name=self.name,
            trace=trace,
            key=key,
            nonce=nonce,
            counter=counter,
            initial_state=initial.tolist(),
            final_state=working.tolist(),
            keystream_block=block,
            keystream=used.tobytes(),
            plaintext=plaintext,
            ciphertext=cipher_arr.tobytes(),
            blocks_reused=blocks_reused,
        )
