import json

import pytest

from fakes import StubOracle
from plg.models.infer import initialize
from plg.models.scaler import StandardScaler


@pytest.fixture
def make_engine():
    def _make(p=0.5, threshold=0.5, allow=("trusted.example",), feed=("bad-feed-domain.test",)):
        stub = StubOracle(p)
        engine = initialize(
            bad_feed=list(feed),
            allow_list=list(allow),
            scaler=StandardScaler.identity(),
            threshold=threshold,
            oracle=stub,
        )
        return engine, stub

    return _make


@pytest.fixture
def artifact_dir(tmp_path):
    d = tmp_path / "artifacts"
    d.mkdir()
    (d / "bad_domains.txt").write_text("# feed\nbad-feed-domain.test\nEVIL.example\n\n", encoding="utf-8")
    (d / "allowlist.txt").write_text("trusted.example\n", encoding="utf-8")
    (d / "scaler.json").write_text(json.dumps({"mean": [0.0] * 8, "scale": [1.0] * 8}), encoding="utf-8")
    (d / "threshold.json").write_text(json.dumps({"threshold": 0.5}), encoding="utf-8")
    (d / "url_cnn.onnx").write_bytes(b"not-a-real-model")
    return d
