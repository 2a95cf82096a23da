#!/usr/bin/env python3
"""
Statistical lenses for keystreams and ciphertexts.

- Shannon entropy, frequency and chi-square, correlation
- Key sensitivity of a keystream generator (bit flips in the key)
- Histograms, bit distribution and RC4 state evolution plots (matplotlib)
"""

from typing import Callable, List, Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from cipher_trace import TraceStep
from rc4_cipher import replay_swaps


def _as_array(data) -> np.ndarray:
    if isinstance(data, (bytes, bytearray)):
        return np.frombuffer(bytes(data), dtype=np.uint8).astype(np.int64)
    return np.asarray(list(data), dtype=np.int64)


def shannon_entropy(data) -> float:
    """
    Calculate Shannon entropy of data.

    Args:
        data: Bytes or a sequence of ints

    Returns:
        Entropy in bits per symbol
    """
    values = _as_array(data)
    if len(values) == 0:
        return 0.0

    _, counts = np.unique(values, return_counts=True)
    probabilities = counts / len(values)
    return float(-np.sum(probabilities * np.log2(probabilities)))


def frequency_test(data, symbols: int = 256) -> dict:
    """
    Perform frequency test on data.

    Args:
        data: Bytes or a sequence of ints in [0, symbols)
        symbols: Size of the symbol space (256 for bytes, N for RC4 with state size N)

    Returns:
        Dictionary with frequency statistics
    """
    values = _as_array(data)
    if len(values) == 0:
        return {'mean': 0, 'std': 0, 'min': 0, 'max': 0, 'chi_square': 0}

    frequency = np.bincount(values, minlength=symbols)
    expected = len(values) / symbols
    return {
        'mean': float(np.mean(frequency)),
        'std': float(np.std(frequency)),
        'min': int(np.min(frequency)),
        'max': int(np.max(frequency)),
        'chi_square': float(np.sum((frequency - expected) ** 2 / expected)),
    }


def correlation_test(data1, data2) -> float:
    """
    Calculate correlation between two data sequences.

    Returns:
        Pearson correlation coefficient, 0.0 when undefined
    """
    arr1 = _as_array(data1).astype(np.float64)
    arr2 = _as_array(data2).astype(np.float64)
    if len(arr1) != len(arr2) or len(arr1) < 2:
        return 0.0
    if np.std(arr1) == 0 or np.std(arr2) == 0:
        return 0.0

    correlation = np.corrcoef(arr1, arr2)[0, 1]
    return float(correlation) if not np.isnan(correlation) else 0.0


def _bit_count(values: np.ndarray) -> int:
    return sum(bin(int(v)).count("1") for v in values)


def key_sensitivity_test(keystream_fn: Callable[[bytes], Sequence[int]], key: bytes,
                         width: int = 8) -> dict:
    """
    Flip every bit of the key and measure how much of the keystream changes.

    Args:
        keystream_fn: Maps a key to its keystream (same length for every key)
        key: Reference key
        width: Bits per keystream value

    Returns:
        Dictionary with the mean/min/max percentage of changed keystream bits
    """
    reference = _as_array(keystream_fn(key))
    total_bits = len(reference) * width
    percentages = []

    for bit_position in range(len(key) * 8):
        flipped = bytearray(key)
        flipped[bit_position // 8] ^= 1 << (bit_position % 8)
        stream = _as_array(keystream_fn(bytes(flipped)))
        changed = _bit_count(reference ^ stream)
        percentages.append(changed / total_bits * 100 if total_bits else 0.0)

    return {
        'mean_flip_percentage': float(np.mean(percentages)),
        'min_flip_percentage': float(np.min(percentages)),
        'max_flip_percentage': float(np.max(percentages)),
        'num_tests': len(percentages),
    }


def run_statistical_tests(plaintext, ciphertext, keystream, symbols: int = 256) -> dict:
    """
    Run the statistics shown after a stream cipher run.

    Returns:
        Dictionary with entropy, frequency and correlation results
    """
    return {
        'plaintext_entropy': shannon_entropy(plaintext),
        'keystream_entropy': shannon_entropy(keystream),
        'ciphertext_entropy': shannon_entropy(ciphertext),
        'keystream_frequency': frequency_test(keystream, symbols),
        'correlation': correlation_test(plaintext, ciphertext),
    }


# ===== Plots =====

def _finish(output: Optional[str]):
    plt.tight_layout()
    if output:
        plt.savefig(output)
        plt.close()
    else:
        plt.show()


def plot_histogram(data, title="Byte Histogram", symbols: int = 256, output: Optional[str] = None):
    values = _as_array(data)
    hist = np.bincount(values, minlength=symbols)
    plt.figure(figsize=(10, 4))
    plt.bar(range(len(hist)), hist, color='steelblue', width=1)
    plt.title(title)
    plt.xlabel('Value')
    plt.ylabel('Frequency')
    _finish(output)


def plot_bit_distribution(data, title="Bit Distribution", output: Optional[str] = None):
    bits = np.unpackbits(_as_array(data).astype(np.uint8))
    plt.figure(figsize=(8, 2))
    plt.hist(bits, bins=[-0.5, 0.5, 1.5], rwidth=0.8, color='green')
    plt.xticks([0, 1])
    plt.title(title)
    plt.xlabel('Bit value')
    plt.ylabel('Count')
    _finish(output)


def plot_state_evolution(trace: List[TraceStep], title="RC4 State During KSA",
                         output: Optional[str] = None, max_rows: int = 512):
    """Heatmap of the state array after KSA iterations (one row each, at most max_rows)."""
    ksa_steps = [step for step in trace if step.phase == "ksa"]
    if not ksa_steps:
        raise ValueError("Trace has no KSA steps to plot")
    initial = next(step.values["initial_state"] for step in trace if step.phase == "setup")
    stride = -(-len(ksa_steps) // max_rows)
    rows = [list(state) for n, (_, state) in enumerate(replay_swaps(initial, ksa_steps))
            if n % stride == stride - 1]
    plt.figure(figsize=(10, 6))
    plt.imshow(np.array(rows), aspect='auto', cmap='viridis', interpolation='nearest')
    plt.colorbar(label='S[x]')
    plt.title(title)
    plt.xlabel('Position x')
    plt.ylabel(f'KSA iteration / {stride}' if stride > 1 else 'KSA iteration')
    _finish(output)
