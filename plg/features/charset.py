import numpy as np

from plg.features.config import ASCII_FIRST, ASCII_LAST, MAX_LEN, PAD, SPECIAL_OFFSET, UNK

# Character-level vocabulary for registrable domains.
# Printable ASCII only; anything else maps to UNK. No case folding.

stoi = {chr(c): c - ASCII_FIRST + SPECIAL_OFFSET for c in range(ASCII_FIRST, ASCII_LAST + 1)}
itos = {i: c for c, i in stoi.items()}


def encode(d: str, max_len: int = MAX_LEN) -> np.ndarray:
    """Convert a domain into fixed-length int32 token ids.

    ex) encode("ab", max_len=4) -> [67, 68, 0, 0]
    ex) encode("aé", max_len=3) -> [67, 1, 0]
    """
    ids = np.full(max_len, PAD, dtype=np.int32)
    for i, ch in enumerate((d or "")[:max_len]):
        ids[i] = stoi.get(ch, UNK)
    return ids


def decode(ids) -> str:
    """ex) decode([67, 68, 1, 0, 0]) -> "ab?"
    """
    return "".join(itos.get(int(i), "?") for i in ids if int(i) != PAD)
