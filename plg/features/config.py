from typing import List

FEATURE_VERSION = "v2.1"

# Order matters: scaler statistics and the model's numeric input use it.
FEATURE_NAMES: List[str] = [
    "length",
    "non_alnum_count",
    "hyphen_count",
    "digit_count",
    "digit_ratio",
    "label_length",
    "subdomain_label_count",
    "entropy",
]
NUM_FEATURES = len(FEATURE_NAMES)

# Character vocabulary: PAD, UNK, then printable ASCII 32..126
PAD, UNK = 0, 1
ASCII_FIRST, ASCII_LAST = 32, 126
SPECIAL_OFFSET = 2
VOCAB_SIZE = SPECIAL_OFFSET + (ASCII_LAST - ASCII_FIRST + 1)
MAX_LEN = 200

DEFAULT_SCHEME = "https"

BLOOM_CAPACITY = 200_000
BLOOM_ERROR_RATE = 0.01

BAD_FEED_FILE = "bad_domains.txt"
ALLOW_LIST_FILE = "allowlist.txt"
SCALER_FILE = "scaler.json"
THRESHOLD_FILE = "threshold.json"
MODEL_FILE = "url_cnn.onnx"

PROBE_URL = "https://fantasticfilms.ru"


def to_vector(feats: dict):
    return [feats.get(name, 0.0) for name in FEATURE_NAMES]
