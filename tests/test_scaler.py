import json

import joblib
import numpy as np
import pytest
from sklearn.preprocessing import StandardScaler as SkStandardScaler

from plg.models.scaler import StandardScaler, load_scaler


def test_identity_scaler():
    x = np.array([12, 2, 1, 1, 1 / 12, 8, 3, 3.2], dtype=np.float32)
    out = StandardScaler.identity().transform(x)
    assert out.dtype == np.float32
    np.testing.assert_array_equal(out, x)


def test_transform_is_affine():
    sc = StandardScaler(mean=[1.0] * 8, scale=[2.0] * 8)
    np.testing.assert_allclose(sc.transform([3.0] * 8), [1.0] * 8)
    np.testing.assert_allclose(sc.transform([-1.0] * 8), [-1.0] * 8)


def test_no_clamping():
    sc = StandardScaler(mean=[0.0] * 8, scale=[0.001] * 8)
    assert sc.transform([1000.0] * 8)[0] == pytest.approx(1e6, rel=1e-5)


def test_zero_scale_rejected_at_load():
    scale = [1.0] * 8
    scale[3] = 0.0
    with pytest.raises(ValueError, match="zero"):
        StandardScaler(mean=[0.0] * 8, scale=scale)


@pytest.mark.parametrize("mean,scale", [([0.0] * 7, [1.0] * 8), ([0.0] * 8, [1.0] * 9)])
def test_wrong_length_rejected(mean, scale):
    with pytest.raises(ValueError):
        StandardScaler(mean=mean, scale=scale)


def test_non_finite_rejected():
    with pytest.raises(ValueError):
        StandardScaler(mean=[float("nan")] + [0.0] * 7, scale=[1.0] * 8)


def test_params_read_only():
    sc = StandardScaler.identity()
    with pytest.raises(ValueError):
        sc.mean[0] = 5.0


def test_wrong_feature_count_at_transform():
    with pytest.raises(ValueError):
        StandardScaler.identity().transform([1.0] * 7)


def test_load_json(tmp_path):
    p = tmp_path / "scaler.json"
    p.write_text(json.dumps({"mean": list(range(8)), "scale": [2.0] * 8}), encoding="utf-8")
    sc = load_scaler(p)
    assert sc.to_dict()["mean"] == [float(i) for i in range(8)]


def test_load_json_missing_key(tmp_path):
    p = tmp_path / "scaler.json"
    p.write_text(json.dumps({"mean": [0.0] * 8}), encoding="utf-8")
    with pytest.raises(KeyError):
        load_scaler(p)


def test_load_fitted_sklearn_scaler(tmp_path):
    rng = np.random.default_rng(0)
    X = rng.normal(loc=5.0, scale=3.0, size=(200, 8))
    fitted = SkStandardScaler().fit(X)
    p = tmp_path / "scaler.joblib"
    joblib.dump(fitted, p)

    sc = load_scaler(p)
    np.testing.assert_allclose(sc.transform(X[0]), fitted.transform(X[:1])[0], rtol=1e-5, atol=1e-5)


def test_unfitted_joblib_object_rejected(tmp_path):
    p = tmp_path / "scaler.pkl"
    joblib.dump({"mean": [0.0] * 8}, p)
    with pytest.raises(ValueError):
        load_scaler(p)
