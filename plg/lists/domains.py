from __future__ import annotations

import logging
from pathlib import Path
from typing import FrozenSet, Iterable, List, Union

from pybloom_live import BloomFilter

from plg.features.config import BLOOM_CAPACITY, BLOOM_ERROR_RATE

log = logging.getLogger("PLG_LISTS")

__all__ = ["read_domain_lines", "clean_domains", "AllowList", "BloomPrefilter"]


def clean_domains(lines: Iterable[str]) -> List[str]:
    out: List[str] = []
    for line in lines:
        d = line.strip().lower()
        if not d or d.startswith("#"):
            continue
        out.append(d)
    return out


def read_domain_lines(path: Union[str, Path]) -> List[str]:
    """Newline-delimited domain list; blank lines and '#' comments skipped."""
    path = Path(path)
    with path.open("r", encoding="utf-8") as f:
        domains = clean_domains(f)
    log.info("%s: %d domain(s)", path.name, len(domains))
    return domains


class AllowList:
    """Exact-match set of trusted registrable domains."""

    def __init__(self, domains: Iterable[str]):
        self._domains: FrozenSet[str] = frozenset(clean_domains(domains))

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "AllowList":
        return cls(read_domain_lines(path))

    def contains(self, domain: str) -> bool:
        return domain in self._domains

    __contains__ = contains

    def __len__(self) -> int:
        return len(self._domains)


class BloomPrefilter:
    """
    Probabilistic membership over the known-bad feed.

    might_contain() == False is definitive; True only means "probably in the
    feed" and has to be confirmed by the model score.
    """

    def __init__(self, bloom: BloomFilter, size: int):
        self._bloom = bloom
        self._size = size

    @classmethod
    def build(
        cls,
        domains: Iterable[str],
        capacity: int = BLOOM_CAPACITY,
        error_rate: float = BLOOM_ERROR_RATE,
    ) -> "BloomPrefilter":
        unique = set(clean_domains(domains))
        # pybloom refuses inserts past capacity
        bloom = BloomFilter(capacity=max(capacity, len(unique), 1), error_rate=error_rate)
        for d in unique:
            bloom.add(d)
        return cls(bloom, len(unique))

    @classmethod
    def from_file(cls, path: Union[str, Path], **kwargs) -> "BloomPrefilter":
        return cls.build(read_domain_lines(path), **kwargs)

    def might_contain(self, domain: str) -> bool:
        return domain in self._bloom

    __contains__ = might_contain

    def __len__(self) -> int:
        return self._size

    @property
    def capacity(self) -> int:
        return self._bloom.capacity

    @property
    def error_rate(self) -> float:
        return self._bloom.error_rate
