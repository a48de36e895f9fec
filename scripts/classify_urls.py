#!/usr/bin/env python
from __future__ import annotations

import argparse
import csv
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

# Proje içi yardımcılar
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from plg.errors import ClassificationError, InitError  # noqa: E402
from plg.models.infer import Engine, load_engine  # noqa: E402

log = logging.getLogger("PLG_CLI")

RESULT_COLUMNS = ["url", "domain", "label", "reason", "score", "malicious", "summary", "error"]


def read_urls(path: Path) -> List[str]:
    """CSV with a 'url' column, otherwise plain text with one URL per line."""
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path, dtype=str, keep_default_na=False)
        if "url" not in df.columns:
            raise ValueError(f"Beklenen 'url' kolonu yok: {path}")
        urls = df["url"]
    else:
        urls = pd.read_csv(path, header=None, names=["url"], dtype=str, keep_default_na=False, sep="\t", quoting=csv.QUOTE_NONE)["url"]
    urls = urls.astype(str).str.strip()
    return urls[urls.str.len() > 0].tolist()


def classify_all(engine: Engine, urls: List[str]) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for url in urls:
        row: Dict[str, Any] = {"url": url}
        try:
            row.update(engine.classify(url).to_dict())
        except ClassificationError as e:
            log.error("%s: %s", url, e)
            row["error"] = str(e)
        rows.append(row)
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def summarize(df: pd.DataFrame) -> Dict[str, Any]:
    return {
        "total": int(len(df)),
        "malicious": int((df["malicious"] == True).sum()),  # noqa: E712
        "errors": int(df["error"].notna().sum()),
        "by_reason": {k: int(v) for k, v in df["reason"].value_counts().to_dict().items()},
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser("Page Load Guard batch classify")
    p.add_argument("urls", nargs="*", help="URLs to classify")
    p.add_argument("--artifacts", type=str, default=os.getenv("PLG_ARTIFACT_DIR", str(ROOT / "models")))
    p.add_argument("--input", type=str, default=None, help=".csv with a 'url' column or a .txt list")
    p.add_argument("--output", type=str, default=None, help="CSV path; JSON lines to stdout when omitted")
    p.add_argument("--log_level", type=str, default=os.getenv("PLG_LOG_LEVEL", "INFO"))
    return p.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    a = parse_args(argv)
    logging.basicConfig(
        level=a.log_level.upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )

    urls = list(a.urls)
    if a.input:
        urls += read_urls(Path(a.input))
    if not urls:
        log.error("URL verilmedi (positional veya --input).")
        return 1

    try:
        engine = load_engine(a.artifacts)
    except InitError as e:
        log.error("Engine başlatılamadı: %s", e)
        return 2

    df = classify_all(engine, urls)

    if a.output:
        out = Path(a.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(out, index=False, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        log.info("Yazıldı → %s", out)
    else:
        for rec in df.to_dict(orient="records"):
            clean = {k: (None if isinstance(v, float) and pd.isna(v) else v) for k, v in rec.items()}
            print(json.dumps(clean, ensure_ascii=False))

    log.info("Özet: %s", json.dumps(summarize(df), ensure_ascii=False))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
