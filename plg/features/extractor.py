from __future__ import annotations

from collections import Counter
from math import log2
from typing import Dict, Optional

import numpy as np

from plg.features.config import to_vector


def _shannon_entropy(text: str, total: int) -> float:
    ent = 0.0
    for c in Counter(text).values():
        p = c / total
        ent -= p * log2(p)
    return float(ent)


def _is_letter_or_digit(ch: str) -> bool:
    return ch.isalpha() or ch.isdecimal()


def _label_count(name: str) -> int:
    return len(name.split("."))


def extract(domain: str, host: Optional[str] = None) -> Dict[str, float]:
    """Numeric features of a registrable domain, keyed by FEATURE_NAMES.

    ``host`` is the full hostname the domain was cut from; it only feeds the
    sub-domain label count. Without it the domain itself is used (count 1).
    """
    d = domain or ""
    L = max(len(d), 1)

    digits = sum(ch.isdecimal() for ch in d)
    non_alnum = sum(not _is_letter_or_digit(ch) for ch in d)
    label_length = len(d.rsplit(".", 1)[0]) if "." in d else L

    h = host or d
    sub_labels = max(_label_count(h) - _label_count(d), 0) + 1

    feats: Dict[str, float] = {
        "length": float(L),
        "non_alnum_count": float(non_alnum),
        "hyphen_count": float(d.count("-")),
        "digit_count": float(digits),
        "digit_ratio": digits / L,
        "label_length": float(label_length),
        "subdomain_label_count": float(sub_labels),
        "entropy": _shannon_entropy(d, L),
    }
    return feats


def features(domain: str, host: Optional[str] = None) -> np.ndarray:
    """float32[8] feature vector in FEATURE_NAMES order."""
    return np.asarray(to_vector(extract(domain, host)), dtype=np.float32)
