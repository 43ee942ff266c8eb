"""積層梁の単調曲げ: モーメント-曲率曲線.

矩形断面（幅 0.1, 深さ 0.2, 10 層）の 1 要素に z 軸周りの回転増分を与え、
各増分の断面モーメントと降伏層数を表示する。

モデル条件:
  - E = 2e5, G = 8e4, σ_y = 200, 線形硬化 k = 1e3
  - 要素長さ L = 1、曲率増分 Δκ = 0.001 × 50 ステップ

弾性限界モーメント M_y = σ_y·I / (d/2)、全塑性モーメント M_p = σ_y·w·d²/4 と比較する。

Usage:
    python examples/run_moment_curvature.py
"""

from __future__ import annotations

import numpy as np

from layerbeam.elements.beam_layered import LayeredBeam, LayeredBeamConfig
from layerbeam.materials.beam_elastic import ElasticModuli
from layerbeam.sections.beam import SectionProperties

WIDTH = 0.1
DEPTH = 0.2
N_LAYERS = 10
E_MAT = 2.0e5
G_MAT = 8.0e4
SIGMA_Y = 200.0
K_HARD = 1.0e3
LENGTH = 1.0
DKAPPA = 0.001
N_STEPS = 50


def main() -> None:
    config = LayeredBeamConfig(
        width=WIDTH,
        depth=DEPTH,
        n_layers=N_LAYERS,
        y_orientation=np.array([0.0, 1.0, 0.0]),
        yield_stress=SIGMA_Y,
        hardening_constant=K_HARD,
    )
    beam = LayeredBeam(
        config,
        SectionProperties.rectangle(WIDTH, DEPTH),
        ElasticModuli(E_MAT, shear_modulus=G_MAT),
    )
    state = beam.initial_state(np.array([[0.0, 0.0, 0.0], [LENGTH, 0.0, 0.0]]))
    disp = np.zeros((2, 3))
    rot = np.array([[0.0, 0.0, 0.0], [0.0, 0.0, DKAPPA * LENGTH]])

    I_exact = WIDTH * DEPTH**3 / 12.0
    M_y = SIGMA_Y * I_exact / (0.5 * DEPTH)
    M_p = SIGMA_Y * WIDTH * DEPTH**2 / 4.0

    print(f"M_y = {M_y:.4e}, M_p = {M_p:.4e}")
    print(f"{'step':>4}  {'kappa':>8}  {'M':>11}  {'M/M_p':>7}  {'yielded':>7}")
    for step in range(1, N_STEPS + 1):
        result = beam.compute(state, disp, rot)
        state = result.state
        sec = state.sections[0]
        n_yielded = int(np.count_nonzero(sec.plastic_strain))
        print(
            f"{step:4d}  {step * DKAPPA:8.4f}  {sec.moment:11.4e}  "
            f"{sec.moment / M_p:7.4f}  {n_yielded:3d}/{N_LAYERS}"
        )

    print(f"effective stiffness = {result.effective_stiffness[0]:.4e}")


if __name__ == "__main__":
    main()
