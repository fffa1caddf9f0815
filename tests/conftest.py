import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
SRC_PATH = ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

pl = pytest.importorskip("polars", reason="polars is required for strokelab tests")
np = pytest.importorskip("numpy", reason="numpy is required for strokelab tests")

from strokelab.io import coerce_binary_columns  # noqa: E402

WORK_TYPES = ["Private", "Self-employed", "Govt_job", "children", "Never_worked"]
SMOKING = ["never smoked", "formerly smoked", "smokes"]


def make_stroke_frame(n: int = 600, seed: int = 0) -> pl.DataFrame:
    """Stroke-shaped frame as the loader returns it: binary flags categorical, absences null."""
    rng = np.random.default_rng(seed)
    age = np.round(rng.uniform(0.5, 82.0, n), 1)
    upper = rng.random(n) < 0.25
    glucose = np.where(upper, rng.normal(210.0, 25.0, n), rng.normal(92.0, 14.0, n))
    glucose = np.round(np.clip(glucose, 55.0, 280.0), 2)
    bmi = np.round(rng.normal(28.0, 6.5, n), 1).tolist()
    for i in rng.choice(n, size=n // 25, replace=False):
        bmi[int(i)] = None
    smoking = [SMOKING[int(k)] for k in rng.integers(0, len(SMOKING), n)]
    for i in rng.choice(n, size=n // 5, replace=False):
        smoking[int(i)] = None
    risk = 0.02 + 0.25 * (age > 60) + 0.1 * upper
    stroke = (rng.random(n) < risk).astype(int)
    df = pl.DataFrame(
        {
            "id": list(range(1, n + 1)),
            "gender": ["Male" if g else "Female" for g in rng.random(n) < 0.45],
            "age": age.tolist(),
            "hypertension": (rng.random(n) < 0.1 + 0.2 * (age > 55)).astype(int).tolist(),
            "heart_disease": (rng.random(n) < 0.05 + 0.1 * (age > 60)).astype(int).tolist(),
            "ever_married": ["Yes" if m else "No" for m in age > rng.uniform(18, 40, n)],
            "work_type": [WORK_TYPES[int(k)] for k in rng.integers(0, len(WORK_TYPES), n)],
            "Residence_type": ["Urban" if u else "Rural" for u in rng.random(n) < 0.5],
            "avg_glucose_level": glucose.tolist(),
            "bmi": bmi,
            "smoking_status": smoking,
            "stroke": stroke.tolist(),
        },
        schema_overrides={"bmi": pl.Float64, "smoking_status": pl.Utf8},
    )
    return coerce_binary_columns(df)


@pytest.fixture()
def stroke_df() -> pl.DataFrame:
    return make_stroke_frame()


@pytest.fixture()
def stroke_csv(tmp_path: Path) -> Path:
    df = make_stroke_frame(n=300, seed=3)
    text = df.with_columns(
        pl.col("bmi").cast(pl.Utf8).fill_null("N/A"),
        pl.col("smoking_status").fill_null("Unknown"),
        *[pl.col(c).cast(pl.Utf8) for c in ("hypertension", "heart_disease", "stroke")],
    )
    path = tmp_path / "healthcare-dataset-stroke-data.csv"
    text.write_csv(path)
    return path
