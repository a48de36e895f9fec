"""
URL verdict engine: allow-list -> model score -> Bloom feed cascade.
"""
from __future__ import annotations

import json
import logging
import math
import pickle
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

import numpy as np

from plg.errors import ClassificationError, InitError
from plg.features.charset import encode
from plg.features.config import (
    ALLOW_LIST_FILE,
    BAD_FEED_FILE,
    FEATURE_VERSION,
    MODEL_FILE,
    PROBE_URL,
    SCALER_FILE,
    THRESHOLD_FILE,
)
from plg.features.extractor import extract, features
from plg.lists.domains import AllowList, BloomPrefilter, read_domain_lines
from plg.models.oracle import OnnxOracle, ScoringOracle
from plg.models.scaler import StandardScaler, load_scaler
from plg.utils.url import split_host

log = logging.getLogger("PLG_ENGINE")

__all__ = ["Label", "Reason", "Verdict", "Engine", "initialize", "load_engine", "load_threshold"]

PathLike = Union[str, Path]


class Label(str, Enum):
    BENIGN = "benign"
    MALICIOUS = "malicious"


class Reason(str, Enum):
    ALLOW_LISTED = "allow_listed"
    BLOOM_FEED_CONFIRMED = "bloom_feed_confirmed"
    BLOOM_FEED_FALSE_POSITIVE = "bloom_feed_false_positive"
    MODEL_SCORE = "model_score"


@dataclass(frozen=True)
class Verdict:
    label: Label
    reason: Reason
    score: Optional[float] = None
    domain: str = ""

    @property
    def malicious(self) -> bool:
        return self.label is Label.MALICIOUS

    def __str__(self) -> str:
        if self.reason is Reason.ALLOW_LISTED:
            return "Benign (allow-list)"
        p = f"p={self.score:.3f}"
        if self.reason is Reason.BLOOM_FEED_FALSE_POSITIVE:
            return f"Benign (bloom FP, {p})"
        if self.reason is Reason.BLOOM_FEED_CONFIRMED:
            return f"Malicious (feed, {p})"
        return f"{'Malicious' if self.malicious else 'Benign'} ({p})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "label": self.label.value,
            "reason": self.reason.value,
            "score": self.score,
            "malicious": self.malicious,
            "summary": str(self),
        }


@dataclass(frozen=True)
class Engine:
    """
    Loaded artifacts plus the decision cascade. Immutable; share one instance
    across threads. The oracle serialises its own calls.
    """

    allow_list: AllowList
    prefilter: BloomPrefilter
    scaler: StandardScaler
    threshold: float
    oracle: ScoringOracle

    def _inputs(self, host: Optional[str], domain: str):
        return encode(domain), self.scaler.transform(features(domain, host))

    def _score(self, host: Optional[str], domain: str) -> float:
        sequence, scaled = self._inputs(host, domain)
        try:
            p = float(self.oracle.score(sequence, scaled))
        except Exception as e:
            log.error("Oracle failed for %s: %s", domain, e)
            raise ClassificationError(f"scoring failed for {domain!r}: {e}") from e
        if not math.isfinite(p):
            raise ClassificationError(f"oracle returned non-finite score {p} for {domain!r}")
        return p

    def score(self, url: str) -> float:
        """Raw model probability for ``url``; no list lookups."""
        host, domain = split_host(url)
        return self._score(host, domain)

    def classify(self, url: str) -> Verdict:
        if not isinstance(url, str):
            raise ValueError("url must be a string")
        host, domain = split_host(url)

        if self.allow_list.contains(domain):
            verdict = Verdict(Label.BENIGN, Reason.ALLOW_LISTED, None, domain)
            log.debug("%s -> %s", domain, verdict)
            return verdict

        # The feed is only a candidate signal; the score always runs
        p = self._score(host, domain)
        malicious = p >= self.threshold

        if self.prefilter.might_contain(domain):
            if malicious:
                verdict = Verdict(Label.MALICIOUS, Reason.BLOOM_FEED_CONFIRMED, p, domain)
            else:
                verdict = Verdict(Label.BENIGN, Reason.BLOOM_FEED_FALSE_POSITIVE, p, domain)
        else:
            label = Label.MALICIOUS if malicious else Label.BENIGN
            verdict = Verdict(label, Reason.MODEL_SCORE, p, domain)

        log.debug("%s -> %s", domain, verdict)
        return verdict

    def explain(self, url: str) -> Dict[str, Any]:
        """Everything the cascade looks at for ``url``."""
        host, domain = split_host(url)
        sequence, scaled = self._inputs(host, domain)
        return {
            "url": url,
            "host": host,
            "domain": domain,
            "feature_version": FEATURE_VERSION,
            "features": extract(domain, host),
            "scaled": [float(x) for x in scaled],
            "char_ids": sequence[:50].tolist(),
            "allow_listed": self.allow_list.contains(domain),
            "in_feed": self.prefilter.might_contain(domain),
            "score": self._score(host, domain),
            "threshold": self.threshold,
            "verdict": self.classify(url).to_dict(),
        }


def load_threshold(source: Union[PathLike, Dict[str, Any], float]) -> float:
    if isinstance(source, (str, Path)):
        source = json.loads(Path(source).read_text(encoding="utf-8"))
    if isinstance(source, dict):
        source = source["threshold"]
    if isinstance(source, bool):
        raise ValueError("threshold must be a number")
    thr = float(source)
    if not (0.0 <= thr <= 1.0):
        raise ValueError(f"threshold {thr} outside [0, 1]")
    return thr


def _domains(source: Union[PathLike, Iterable[str]]) -> Iterable[str]:
    if isinstance(source, (str, Path)):
        return read_domain_lines(source)
    return list(source)


def initialize(
    bad_feed: Union[PathLike, Iterable[str]],
    allow_list: Union[PathLike, Iterable[str]],
    scaler: Union[PathLike, Dict[str, Any], StandardScaler],
    threshold: Union[PathLike, Dict[str, Any], float],
    oracle: Union[PathLike, ScoringOracle],
) -> Engine:
    """
    Build a ready Engine. Each argument is either a path to the artifact or
    the already-loaded value. Any missing or malformed artifact raises
    InitError; there is no partially initialised engine.
    """
    try:
        prefilter = BloomPrefilter.build(_domains(bad_feed))
        allow = AllowList(_domains(allow_list))
        if isinstance(scaler, StandardScaler):
            sc = scaler
        elif isinstance(scaler, dict):
            sc = StandardScaler.from_dict(scaler)
        else:
            sc = load_scaler(scaler)
        thr = load_threshold(threshold)
    except (OSError, ValueError, KeyError, TypeError, EOFError, pickle.UnpicklingError) as e:
        raise InitError(f"artifact load failed: {e}") from e

    if isinstance(oracle, (str, Path)):
        if not Path(oracle).is_file():
            raise InitError(f"model file not found: {oracle}")
        oracle = OnnxOracle.load(oracle)

    engine = Engine(allow_list=allow, prefilter=prefilter, scaler=sc, threshold=thr, oracle=oracle)
    log.info(
        "Engine ready: allow-list=%d feed=%d threshold=%.4f feature_version=%s",
        len(allow),
        len(prefilter),
        thr,
        FEATURE_VERSION,
    )
    if log.isEnabledFor(logging.DEBUG):
        _self_check(engine)
    return engine


def _self_check(engine: Engine) -> None:
    try:
        info = engine.explain(PROBE_URL)
    except ClassificationError as e:
        raise InitError(f"self-check failed on {PROBE_URL}: {e}") from e
    log.debug("features : %s", info["features"])
    log.debug("scaled   : %s", np.round(info["scaled"], 6).tolist())
    log.debug("char ids : %s", info["char_ids"])
    log.debug("model p  : %.6f", info["score"])


def load_engine(artifact_dir: PathLike) -> Engine:
    """Engine from an artifact directory using the default file names."""
    root = Path(artifact_dir)
    scaler_path = root / SCALER_FILE
    if not scaler_path.exists():
        for alt in ("scaler.joblib", "scaler.pkl"):
            if (root / alt).exists():
                scaler_path = root / alt
                break
    return initialize(
        bad_feed=root / BAD_FEED_FILE,
        allow_list=root / ALLOW_LIST_FILE,
        scaler=scaler_path,
        threshold=root / THRESHOLD_FILE,
        oracle=root / MODEL_FILE,
    )
