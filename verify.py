"""End-to-end verification script for data2states.

Run after `pip install -e .`:
    python verify.py
"""

import json
import subprocess
import sys
import tempfile
from pathlib import Path

import numpy as np

# ── 1. Imports ───────────────────────────────────────────────────────────────
print("1. Importing data2states …", end=" ")
from data2states import StateConverter, __version__
print(f"OK  (v{__version__})")

# ── 2. Synthetic trial raster ────────────────────────────────────────────────
print("2. Building synthetic raster …", end=" ")
rng = np.random.default_rng(42)
n_time, n_trials = 5, 200
stimulus = rng.integers(1, 3, size=(n_time, n_trials))
raster = np.empty((4, n_time, n_trials))
raster[0] = stimulus
raster[1] = rng.normal(size=(n_time, n_trials)) + 2 * stimulus
raster[2] = np.where(stimulus == 1, rng.poisson(3, stimulus.shape), rng.poisson(30, stimulus.shape))
raster[3] = rng.uniform(0, 100, size=(n_time, n_trials))
methods = [
    (0, "identity", None),
    (1, "max-mutual-information", [0, 2, 2]),
    (2, "poisson-mixture", [2, "default", []]),
    (3, "equal-count", [4]),
]
print(f"OK  (shape {raster.shape})")

# ── 3. Conversion ────────────────────────────────────────────────────────────
print("3. Converting to states …", end=" ")
converter = StateConverter()
result = converter.convert(raster, methods)
states = result.states
print("OK")

assert states.shape == raster.shape, "shape changed"
assert np.array_equal(states[0], raster[0]), "identity slice changed"
agreement = np.mean(states[2] == stimulus)
print(f"   Poisson states agree with stimulus on {agreement:.1%} of trials")
counts = np.bincount(states[3, 0].astype(int))[1:]
print(f"   Equal-count bin sizes at time bin 0: {counts.tolist()}")

# ── 4. CLI end-to-end ────────────────────────────────────────────────────────
print("4. Running CLI (data2states convert) …")
with tempfile.TemporaryDirectory() as tmp:
    tmp = Path(tmp)
    np.save(tmp / "raster.npy", raster)
    (tmp / "methods.json").write_text(json.dumps([list(m) for m in methods]), encoding="utf-8")
    proc = subprocess.run(
        [sys.executable, "-m", "data2states.cli", "convert",
         "--data", str(tmp / "raster.npy"),
         "--methods", str(tmp / "methods.json"),
         "--output", str(tmp / "states.npy"),
         "--results", str(tmp / "results.csv")],
        capture_output=True, text=True,
    )
    if proc.returncode != 0:
        print(f"   CLI FAILED (exit {proc.returncode}):")
        print(f"   stdout: {proc.stdout.strip()}")
        print(f"   stderr: {proc.stderr.strip()}")
    else:
        print(f"   {proc.stdout.strip()}")
        cli_states = np.load(tmp / "states.npy")
        if np.array_equal(cli_states, states):
            print("   CLI states match the library call ✓")
        else:
            print("   WARNING — CLI states differ from the library call")

# ── 5. Method result summary ─────────────────────────────────────────────────
print("\n── Method results ───────────────────────────────────")
df = converter.to_dataframe(result)
for row, group in df.groupby("row"):
    method = result.methods[row]
    print(f"  row {row}: {method.kind.name:16s} {len(group):3d} edge values")

print("\nVerification complete.")
