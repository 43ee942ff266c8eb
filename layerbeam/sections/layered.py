"""積層（レイヤー）断面.

断面を深さ方向に n_layers 枚の等厚スラブに分割し、各層の中心オフセットと
厚さを保持する。各層は独立な1次元弾塑性材料点として扱われる。

層のオフセット（中点則）:
  t   = depth / n_layers
  z_i = -depth/2 + (i + 1/2)·t,   i = 0, ..., n_layers-1

断面力（層積分）:
  N = Σ σ_i·w·t
  M = Σ σ_i·w·z_i·t
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from layerbeam.core.errors import ConfigurationError


@dataclass(frozen=True)
class LayeredSection:
    """積層断面.

    Attributes:
        width: 幅
        depth: 深さ（層の積層方向の寸法）
        n_layers: 層数
    """

    width: float
    depth: float
    n_layers: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.depth <= 0:
            raise ConfigurationError(
                f"width, depth は正値: width={self.width}, depth={self.depth}"
            )
        if self.n_layers < 1:
            raise ConfigurationError(f"層数は1以上: {self.n_layers}")
        if not math.isclose(self.thickness * self.n_layers, self.depth, rel_tol=1e-12):
            raise ConfigurationError("層厚 × 層数が深さと一致しません")

    @property
    def thickness(self) -> float:
        """層厚."""
        return self.depth / self.n_layers

    @property
    def offsets(self) -> np.ndarray:
        """(n_layers,) 各層中心の中立軸からのオフセット（負側から昇順）."""
        t = self.thickness
        return -0.5 * self.depth + (np.arange(self.n_layers) + 0.5) * t

    @property
    def second_moment(self) -> float:
        """層近似の断面二次モーメント Σ w·z_i²·t."""
        return float(np.sum(self.width * self.offsets**2 * self.thickness))

    @property
    def exact_second_moment(self) -> float:
        """矩形断面の厳密な断面二次モーメント w·d³/12."""
        return self.width * self.depth**3 / 12.0
