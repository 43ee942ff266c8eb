"""層 return mapping 用の等方硬化則.

硬化応力 H(Δεp) は降伏条件
  f = |σ_trial| - H - σ_y
の降伏面拡大量であり、Newton 更新 Δεp ← Δεp + R / (E + H') の H' を与える。

  - LinearHardening:   H = h_old + k·Δεp,              H' = k
  - FunctionHardening: H = f(|εp_old| + Δεp) - σ_y,     H' = f'(|εp_old|)

FunctionHardening の勾配は前ステップの累積塑性ひずみで評価し、反復中は更新しない
（割線的な線形化。収束は一次になるが、各反復のコストが一定）。
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from scipy.interpolate import make_interp_spline

from layerbeam.core.errors import ConfigurationError
from layerbeam.core.state import LayerState


@dataclass(frozen=True)
class LinearHardening:
    """線形硬化（一定勾配）.

    Attributes:
        constant: 硬化勾配 k (>= 0)
    """

    constant: float = 0.0

    def __post_init__(self) -> None:
        if self.constant < 0.0:
            raise ConfigurationError(f"硬化勾配は非負: {self.constant}")

    def hardening(self, plastic_increment: float, layer_old: LayerState) -> float:
        """H = h_old + k·Δεp."""
        return layer_old.hardening_variable + self.constant * plastic_increment

    def slope(self, plastic_increment: float, layer_old: LayerState) -> float:
        """H' = k."""
        return self.constant


@dataclass(frozen=True)
class FunctionHardening:
    """関数ベースの硬化則.

    function は累積塑性ひずみ → 工学応力（降伏応力を含む流動応力）。

    Attributes:
        function: 流動応力 f(εp)
        derivative: 流動応力の勾配 f'(εp)
        yield_stress: 初期降伏応力 σ_y
    """

    function: Callable[[float], float]
    derivative: Callable[[float], float]
    yield_stress: float

    def __post_init__(self) -> None:
        if self.yield_stress <= 0.0:
            raise ConfigurationError(f"降伏応力は正値: {self.yield_stress}")

    def hardening(self, plastic_increment: float, layer_old: LayerState) -> float:
        """H = f(|εp_old| + Δεp) - σ_y."""
        strain_old = abs(layer_old.plastic_strain)
        return float(self.function(strain_old + plastic_increment)) - self.yield_stress

    def slope(self, plastic_increment: float, layer_old: LayerState) -> float:
        """H' = f'(|εp_old|)（反復中は固定）."""
        return float(self.derivative(abs(layer_old.plastic_strain)))

    @classmethod
    def from_table(
        cls,
        plastic_strains: Sequence[float],
        stresses: Sequence[float],
        yield_stress: float | None = None,
    ) -> FunctionHardening:
        """流動応力-塑性ひずみの表データから区分線形の硬化則を生成する.

        表の最終点を超える領域では流動応力を最終値で一定とする（完全塑性）。

        Args:
            plastic_strains: 塑性ひずみ（狭義単調増加）
            stresses: 各点の流動応力
            yield_stress: 初期降伏応力（None の場合 stresses[0]）
        """
        eps = np.asarray(plastic_strains, dtype=float)
        sig = np.asarray(stresses, dtype=float)
        if eps.ndim != 1 or eps.shape != sig.shape:
            raise ConfigurationError(
                f"表データの形状が不一致: eps={eps.shape}, sigma={sig.shape}"
            )
        if len(eps) < 2:
            raise ConfigurationError("表データは最低2点必要")
        if np.any(np.diff(eps) <= 0.0):
            raise ConfigurationError(f"塑性ひずみは狭義単調増加: {eps.tolist()}")

        spline = make_interp_spline(eps, sig, k=1)
        dspline = spline.derivative()
        eps_first = float(eps[0])
        eps_last = float(eps[-1])

        def function(strain: float) -> float:
            return float(spline(min(max(strain, eps_first), eps_last)))

        def derivative(strain: float) -> float:
            if strain >= eps_last:
                return 0.0
            return float(dspline(max(strain, eps_first)))

        sy = float(sig[0]) if yield_stress is None else yield_stress
        return cls(function=function, derivative=derivative, yield_stress=sy)
