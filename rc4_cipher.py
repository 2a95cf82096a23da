#!/usr/bin/env python3
"""
RC4 stream cipher with a configurable state array size, traced step by step.

The state array size N is a parameter so the key schedule can be followed by
hand on tiny arrays (N=4, N=8). With N=256 the keystream is standard RC4.
Educational only - not secure.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from cipher_trace import (
    CipherEngine,
    CipherResult,
    TextOrBytes,
    TraceStep,
    as_bytes,
    parse_positive_int,
    require_input,
)

logger = logging.getLogger(__name__)

DEFAULT_STATE_SIZE = 256


@dataclass
class StatePermutationResult(CipherResult):
    state_size: int = 0
    plaintext: bytes = b""
    key: bytes = b""
    final_state: List[int] = field(default_factory=list)
    keystream: List[int] = field(default_factory=list)
    ciphertext: List[int] = field(default_factory=list)
    decrypted: List[int] = field(default_factory=list)
    verified: bool = False

    def ciphertext_bytes(self) -> bytes:
        """Ciphertext as bytes; only possible when every value fits in a byte."""
        if any(v > 0xFF for v in self.ciphertext):
            raise ValueError(f"Ciphertext values exceed one byte for state size {self.state_size}")
        return bytes(self.ciphertext)


def ksa(key: bytes, state_size: int, trace: Optional[List[TraceStep]] = None) -> np.ndarray:
    """
    Key-Scheduling Algorithm: scramble the identity permutation with the key.

    Each traced iteration records the swap (indices and the two values), not
    the whole state; use replay_swaps to rebuild the state after each step.

    Args:
        key: Raw key bytes, cycled over the state array
        state_size: Number of entries N in the state array
        trace: Optional list receiving one TraceStep per iteration

    Returns:
        The scrambled state array S (a permutation of 0..N-1)
    """
    S = np.arange(state_size, dtype=np.int64)
    key_len = len(key)
    j = 0

    for i in range(state_size):
        j_before = j
        s_i = int(S[i])
        key_index = i % key_len
        key_byte = key[key_index]
        j = (j + s_i + key_byte) % state_size
        s_j = int(S[j])
        S[i], S[j] = S[j], S[i]

        if trace is not None:
            trace.append(TraceStep("ksa", f"KSA iteration {i + 1}", {
                "i": i,
                "j_before": j_before,
                "s_i": s_i,
                "s_j": s_j,
                "key_index": key_index,
                "key_byte": key_byte,
                "sum": j_before + s_i + key_byte,
                "j": j,
            }))

    return S


def prga(S: np.ndarray, plaintext: bytes,
         trace: Optional[List[TraceStep]] = None) -> Tuple[List[int], List[int]]:
    """
    Pseudo-Random Generation Algorithm: derive keystream and XOR the plaintext.

    S is mutated in place. s_i and s_j in the trace are the values after the
    swap.

    Returns:
        (keystream, ciphertext) as lists of ints, one entry per plaintext byte
    """
    state_size = len(S)
    keystream = []
    ciphertext = []
    i = 0
    j = 0

    for index, plain_byte in enumerate(plaintext):
        i_before, j_before = i, j

        i = (i + 1) % state_size
        j = (j + int(S[i])) % state_size
        S[i], S[j] = S[j], S[i]

        s_i, s_j = int(S[i]), int(S[j])
        t = (s_i + s_j) % state_size
        k = int(S[t])
        c = plain_byte ^ k
        keystream.append(k)
        ciphertext.append(c)

        if trace is not None:
            trace.append(TraceStep("prga", f"Encrypt byte {index + 1}", {
                "index": index,
                "plaintext_byte": plain_byte,
                "i_before": i_before,
                "j_before": j_before,
                "i": i,
                "j": j,
                "s_i": s_i,
                "s_j": s_j,
                "t": t,
                "keystream_byte": k,
                "ciphertext_byte": c,
            }))

    return keystream, ciphertext


def replay_swaps(initial: Sequence[int], steps: Iterable[TraceStep]) -> Iterator[Tuple[TraceStep, List[int]]]:
    """
    Rebuild the state array after each traced KSA or PRGA step.

    The same list is yielded every time and updated in place, so copy it to
    keep a snapshot.
    """
    S = list(initial)
    for step in steps:
        i, j = step.values["i"], step.values["j"]
        S[i], S[j] = S[j], S[i]
        yield step, S


def keystream(key: TextOrBytes, state_size: int, length: int) -> List[int]:
    """Regenerate the first length keystream values from scratch."""
    S = ksa(as_bytes(key), state_size)
    stream, _ = prga(S, bytes(length))
    return stream


class StatePermutationCipher(CipherEngine):
    """RC4 with a user-chosen state array size."""

    name = "RC4"

    def run(self, plaintext: TextOrBytes, key: TextOrBytes,
            state_size=DEFAULT_STATE_SIZE, **options) -> StatePermutationResult:
        """
        Encrypt plaintext and record the full KSA and PRGA trace.

        Args:
            plaintext: Text or bytes to encrypt
            key: Text or bytes used as the key schedule input
            state_size: Size N of the state array (int or decimal string)

        Returns:
            StatePermutationResult with keystream, ciphertext and trace

        Raises:
            EmptyInput: if plaintext or key is empty
            InvalidParameter: if state_size is not a positive number
        """
        require_input(plaintext, key)
        state_size = parse_positive_int(state_size, "State array size")
        plaintext = as_bytes(plaintext)
        key = as_bytes(key)

        trace = [TraceStep("setup", "Setup", {
            "state_size": state_size,
            "plaintext_bytes": list(plaintext),
            "key_bytes": list(key),
            "initial_state": list(range(state_size)),
        })]

        logger.debug("RC4 KSA: N=%d, key length=%d", state_size, len(key))
        S = ksa(key, state_size, trace)
        trace.append(TraceStep("ksa_result", "KSA result", {"state": S.tolist()}))

        logger.debug("RC4 PRGA: %d plaintext bytes", len(plaintext))
        stream, ciphertext = prga(S, plaintext, trace)

        decrypted = [c ^ k for c, k in zip(ciphertext, stream)]
        verified = decrypted == list(plaintext)
        if not verified:
            logger.error("RC4 decryption check failed for state size %d", state_size)

        trace.append(TraceStep("result", "Complete results", {
            "keystream": stream,
            "ciphertext": ciphertext,
            "decrypted": decrypted,
            "verified": verified,
        }))

        return StatePermutationResult(
            name=self.name,
            trace=trace,
            state_size=state_size,
            plaintext=plaintext,
            key=key,
            final_state=S.tolist(),
            keystream=stream,
            ciphertext=ciphertext,
            decrypted=decrypted,
            verified=verified,
        )
