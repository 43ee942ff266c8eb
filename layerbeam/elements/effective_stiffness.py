"""陽解法の安定時間増分推定用の擬似剛性.

弾性波速に比例する量と要素寸法から、積分点ごとのスカラー擬似剛性を求める:

  c1 = √E,  c2 = √G
  es = 2 / (c2·√(A_avg / Iz_avg))
  k_eff = max(max(c1, c2), L / es)

弾性係数の前係数 p(t, x) が与えられた場合は k_eff·√p とする。
応力・剛性計算には影響しない。
"""

from __future__ import annotations

import math
from collections.abc import Callable

import numpy as np

from layerbeam.core.errors import ConfigurationError
from layerbeam.sections.beam import AveragedSection

ElasticityPrefactor = Callable[[float, np.ndarray], float]


def effective_stiffness(
    E: float,
    G: float,
    sec: AveragedSection,
    length: float,
    prefactor: ElasticityPrefactor | None = None,
    time: float = 0.0,
    point: np.ndarray | None = None,
) -> float:
    """1積分点の擬似剛性を返す.

    Args:
        E: ヤング率
        G: せん断弾性率
        sec: 平均断面特性
        length: 初期要素長さ
        prefactor: 弾性係数の前係数 p(time, point)（None = 1）
        time: 現在時刻
        point: (3,) 積分点の座標

    Returns:
        擬似剛性
    """
    c1 = math.sqrt(E)
    c2 = math.sqrt(G)
    es = 2.0 / (c2 * math.sqrt(sec.A / sec.Iz))
    k_eff = max(max(c1, c2), length / es)

    if prefactor is not None:
        p = float(prefactor(time, point if point is not None else np.zeros(3)))
        if p < 0.0:
            raise ConfigurationError(f"弾性係数の前係数は非負: {p}")
        k_eff *= math.sqrt(p)
    return k_eff
