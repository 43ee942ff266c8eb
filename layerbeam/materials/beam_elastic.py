"""梁要素用の弾性係数."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from layerbeam.core.errors import ConfigurationError


@dataclass(frozen=True)
class ElasticModuli:
    """梁の弾性係数.

    Args:
        youngs_modulus: ヤング率 E（軸剛性）
        shear_modulus: せん断弾性率 G（None の場合 E / (2(1+ν))）
        poisson_ratio: ポアソン比（G の計算用）
        flexural_modulus: 層 return mapping に用いる曲げ弾性係数（None の場合 E）
    """

    youngs_modulus: float
    shear_modulus: float | None = None
    poisson_ratio: float = 0.3
    flexural_modulus: float | None = None

    def __post_init__(self) -> None:
        if self.youngs_modulus <= 0:
            raise ConfigurationError(f"ヤング率 E は正値でなければなりません: {self.youngs_modulus}")
        if self.shear_modulus is not None and self.shear_modulus <= 0:
            raise ConfigurationError(f"せん断弾性率 G は正値: {self.shear_modulus}")
        if self.flexural_modulus is not None and self.flexural_modulus <= 0:
            raise ConfigurationError(f"曲げ弾性係数は正値: {self.flexural_modulus}")

    @property
    def E(self) -> float:
        """ヤング率."""
        return self.youngs_modulus

    @property
    def G(self) -> float:
        """せん断弾性率."""
        if self.shear_modulus is not None:
            return self.shear_modulus
        return self.youngs_modulus / (2.0 * (1.0 + self.poisson_ratio))

    @property
    def flexural(self) -> float:
        """曲げ弾性係数."""
        if self.flexural_modulus is not None:
            return self.flexural_modulus
        return self.youngs_modulus

    def stiffness_vector(self) -> np.ndarray:
        """材料剛性ベクトル [E, G] を返す."""
        return np.array([self.E, self.G])
