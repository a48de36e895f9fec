"""
Scoring-model adapter.

The engine only sees ``ScoringOracle.score(sequence, features)``. The ONNX
adapter figures out which declared input takes the character ids and which
takes the scaled features, once, when the model is loaded: input order is
not stable across exports of the same network.
"""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, List, NamedTuple, Optional, Protocol, Sequence, Union

import numpy as np
import onnxruntime as ort

from plg.errors import InitError
from plg.features.config import MAX_LEN, NUM_FEATURES

log = logging.getLogger("PLG_ORACLE")

__all__ = ["ScoringOracle", "InputBinding", "bind_inputs", "OnnxOracle"]

SEQUENCE_SHAPE = [1, MAX_LEN]
NUMERIC_SHAPE = [1, NUM_FEATURES]

INT_TYPES = {
    "tensor(int32)": np.int32,
    "tensor(int64)": np.int64,
}
FLOAT_TYPES = {
    "tensor(float)": np.float32,
    "tensor(float16)": np.float16,
    "tensor(double)": np.float64,
}


class ScoringOracle(Protocol):
    def score(self, sequence: np.ndarray, features: np.ndarray) -> float:
        ...


class InputBinding(NamedTuple):
    sequence_index: int
    numeric_index: int
    sequence_name: str
    numeric_name: str
    sequence_dtype: Any
    numeric_dtype: Any


def _shape(arg) -> Optional[List[int]]:
    try:
        return [int(s) for s in arg.shape]
    except (TypeError, ValueError):
        # symbolic / unknown dims
        return None


def bind_inputs(inputs: Sequence[Any]) -> InputBinding:
    """
    Resolve the two input roles from declared (name, type, shape) descriptors.
    int[1,200] -> character sequence, float[1,8] -> numeric features.
    Raises InitError unless each role matches exactly one input.
    """
    if len(inputs) != 2:
        raise InitError(f"model must declare exactly 2 inputs, found {len(inputs)}")

    seq, num = [], []
    for i, arg in enumerate(inputs):
        shape = _shape(arg)
        if arg.type in INT_TYPES and shape == SEQUENCE_SHAPE:
            seq.append(i)
        elif arg.type in FLOAT_TYPES and shape == NUMERIC_SHAPE:
            num.append(i)

    described = ", ".join(f"{i}:{a.name} {a.type} {list(a.shape)}" for i, a in enumerate(inputs))
    if len(seq) != 1:
        raise InitError(f"character-sequence input int{SEQUENCE_SHAPE} not uniquely found ({described})")
    if len(num) != 1:
        raise InitError(f"numeric-feature input float{NUMERIC_SHAPE} not uniquely found ({described})")

    s, n = inputs[seq[0]], inputs[num[0]]
    return InputBinding(
        sequence_index=seq[0],
        numeric_index=num[0],
        sequence_name=s.name,
        numeric_name=n.name,
        sequence_dtype=INT_TYPES[s.type],
        numeric_dtype=FLOAT_TYPES[n.type],
    )


class OnnxOracle:
    """
    ScoringOracle over an onnxruntime session (or anything exposing
    get_inputs / get_outputs / run). Calls are serialised with a lock.
    """

    def __init__(self, session):
        self._session = session
        self.binding = bind_inputs(session.get_inputs())
        outputs = session.get_outputs()
        if not outputs:
            raise InitError("model declares no outputs")
        self.output_name: str = outputs[0].name
        self._lock = threading.Lock()
        log.info(
            "Input binding: sequence=#%d (%s) numeric=#%d (%s) output=%s",
            self.binding.sequence_index,
            self.binding.sequence_name,
            self.binding.numeric_index,
            self.binding.numeric_name,
            self.output_name,
        )

    @classmethod
    def load(cls, path: Union[str, Path], intra_op_threads: int = 2) -> "OnnxOracle":
        opts = ort.SessionOptions()
        opts.intra_op_num_threads = intra_op_threads
        try:
            session = ort.InferenceSession(str(path), sess_options=opts, providers=["CPUExecutionProvider"])
        except Exception as e:
            raise InitError(f"cannot load model {path}: {e}") from e
        return cls(session)

    def score(self, sequence: np.ndarray, features: np.ndarray) -> float:
        b = self.binding
        feeds = {
            b.sequence_name: np.asarray(sequence, dtype=b.sequence_dtype).reshape(SEQUENCE_SHAPE),
            b.numeric_name: np.asarray(features, dtype=b.numeric_dtype).reshape(NUMERIC_SHAPE),
        }
        with self._lock:
            out = self._session.run([self.output_name], feeds)
        return float(np.asarray(out[0]).reshape(-1)[0])
