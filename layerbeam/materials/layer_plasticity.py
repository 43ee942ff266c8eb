"""積層梁の層ごとの1次元弾塑性 return mapping.

各層は中立軸からのオフセット z を持つ独立な1次元材料点として扱う。
曲率増分 Δκ に対して:

  試行応力:   σ_trial = σ_old + E·Δκ·z
  降伏判定:   f = |σ_trial| - h_old - σ_y
  塑性修正:   R(Δεp) = |σ_trial| - H(Δεp) - σ_y - E·Δεp = 0 を Newton 法で解く
              Δεp ← Δεp + R / (E + H')
  収束判定:   |R| <= atol  または  |R / (|σ_trial| - E·Δεp)| <= rtol
  状態更新:   εp = εp_old + sign(σ_trial)·Δεp
              σ = σ_old + (Δκ·z - sign(σ_trial)·Δεp)·E

反復上限を超えた場合、または軟化勾配が E + H' <= 0 に達した場合は
ConvergenceError を値として PlasticCorrection に格納し、呼び出し側（断面積分器）が送出する。

参考文献:
  - Simo & Hughes (1998) "Computational Inelasticity", Ch.1-2
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from layerbeam.core.constitutive import HardeningLawProtocol
from layerbeam.core.errors import ConfigurationError, ConvergenceError
from layerbeam.core.results import LayerUpdate, PlasticCorrection
from layerbeam.core.state import LayerState


@dataclass(frozen=True)
class ConvergenceCriteria:
    """局所 Newton 反復の収束判定パラメータ.

    相対残差の参照値 |σ_trial| - E·Δεp は層応力の大きさであり、
    reference_floor 以下の場合は相対判定を行わず絶対判定のみで判定する。

    Attributes:
        absolute_tolerance: 絶対残差の許容値
        relative_tolerance: 相対残差の許容値
        max_iterations: 最大反復回数
        reference_floor: 相対判定を有効にする参照値の下限
    """

    absolute_tolerance: float = 1e-10
    relative_tolerance: float = 1e-8
    max_iterations: int = 1000
    reference_floor: float = 1e-12

    def __post_init__(self) -> None:
        if self.absolute_tolerance <= 0.0:
            raise ConfigurationError(f"absolute_tolerance は正値: {self.absolute_tolerance}")
        if self.relative_tolerance <= 0.0:
            raise ConfigurationError(f"relative_tolerance は正値: {self.relative_tolerance}")
        if self.max_iterations < 1:
            raise ConfigurationError(f"max_iterations は1以上: {self.max_iterations}")
        if self.reference_floor < 0.0:
            raise ConfigurationError(f"reference_floor は非負: {self.reference_floor}")

    def is_converged(self, residual: float, reference: float) -> bool:
        """残差が許容値を満たすかどうか."""
        if abs(residual) <= self.absolute_tolerance:
            return True
        if abs(reference) <= self.reference_floor:
            return False
        return abs(residual / reference) <= self.relative_tolerance


class LayerPlasticity:
    """層の1次元弾塑性構成則.

    Args:
        modulus: 曲げ弾性係数（層の応力更新に用いるヤング率）
        yield_stress: 初期降伏応力
        hardening: 硬化則（HardeningLawProtocol 適合）
        criteria: 収束判定パラメータ（None = デフォルト）
    """

    def __init__(
        self,
        modulus: float,
        yield_stress: float,
        hardening: HardeningLawProtocol,
        criteria: ConvergenceCriteria | None = None,
    ) -> None:
        if modulus <= 0.0:
            raise ConfigurationError(f"弾性係数は正値: {modulus}")
        if yield_stress <= 0.0:
            raise ConfigurationError(f"降伏応力は正値: {yield_stress}")
        law_yield = getattr(hardening, "yield_stress", None)
        if law_yield is not None and not math.isclose(law_yield, yield_stress):
            raise ConfigurationError(
                f"硬化則の初期降伏応力 {law_yield} が yield_stress={yield_stress} と不一致"
            )
        self.modulus = modulus
        self.yield_stress = yield_stress
        self.hardening = hardening
        self.criteria = criteria if criteria is not None else ConvergenceCriteria()

    def yield_function(self, trial_stress: float, layer_old: LayerState) -> float:
        """f = |σ_trial| - h_old - σ_y."""
        return abs(trial_stress) - layer_old.hardening_variable - self.yield_stress

    def solve_plastic_increment(
        self,
        trial_stress: float,
        layer_old: LayerState,
    ) -> PlasticCorrection:
        """降伏条件を満たす塑性ひずみ増分 Δεp を Newton 法で求める.

        Args:
            trial_stress: 弾性試行応力
            layer_old: 前ステップの層状態（変更されない）

        Returns:
            PlasticCorrection: 収束時は Δεp (>= 0) と硬化応力、
                非収束時は failure に ConvergenceError を格納
        """
        E = self.modulus
        sigma_y = self.yield_stress
        law = self.hardening
        crit = self.criteria
        abs_trial = abs(trial_stress)

        dg = 0.0
        iterations = 0
        while True:
            H = law.hardening(dg, layer_old)
            residual = abs_trial - H - sigma_y - E * dg
            reference = abs_trial - E * dg
            if crit.is_converged(residual, reference):
                return PlasticCorrection(
                    plastic_increment=dg,
                    hardening=H,
                    slope=law.slope(dg, layer_old),
                    iterations=iterations,
                    residual=residual,
                )
            H_prime = law.slope(dg, layer_old)
            if E + H_prime <= 0.0:
                return PlasticCorrection(
                    plastic_increment=dg,
                    hardening=H,
                    slope=H_prime,
                    iterations=iterations,
                    residual=residual,
                    failure=ConvergenceError(
                        f"軟化勾配 H'={H_prime:.3e} が -E 以下のため塑性修正を解けない",
                        iterations=iterations,
                        residual=residual,
                    ),
                )
            if iterations >= crit.max_iterations:
                return PlasticCorrection(
                    plastic_increment=dg,
                    hardening=H,
                    slope=H_prime,
                    iterations=iterations,
                    residual=residual,
                    failure=ConvergenceError(
                        f"塑性 return mapping が {iterations} 回で収束しない "
                        f"(residual={residual:.3e})",
                        iterations=iterations,
                        residual=residual,
                    ),
                )
            dg += residual / (E + H_prime)
            iterations += 1

    def update_layer(
        self,
        curvature_increment: float,
        z_offset: float,
        layer_old: LayerState,
    ) -> LayerUpdate:
        """1層の応力・塑性ひずみ・硬化変数を更新する.

        Args:
            curvature_increment: 曲率増分 Δκ
            z_offset: 層中心の中立軸からのオフセット
            layer_old: 前ステップの層状態（変更されない）

        Returns:
            LayerUpdate: 非収束時は state_new = None、correction.failure に例外値
        """
        E = self.modulus
        strain_increment = curvature_increment * z_offset
        trial_stress = layer_old.direct_stress + E * strain_increment

        if self.yield_function(trial_stress, layer_old) <= 0.0:
            return LayerUpdate(
                state_new=LayerState(
                    direct_stress=trial_stress,
                    plastic_strain=layer_old.plastic_strain,
                    hardening_variable=layer_old.hardening_variable,
                ),
                trial_stress=trial_stress,
                elastic_strain_increment=strain_increment,
                tangent=E,
            )

        correction = self.solve_plastic_increment(trial_stress, layer_old)
        if not correction.converged:
            return LayerUpdate(
                state_new=None,
                trial_stress=trial_stress,
                elastic_strain_increment=strain_increment,
                tangent=E,
                correction=correction,
            )

        signed_increment = math.copysign(correction.plastic_increment, trial_stress)
        elastic_increment = strain_increment - signed_increment
        H_prime = correction.slope
        if E + H_prime > 0.0:
            D_ep = E * H_prime / (E + H_prime)
        else:
            D_ep = 0.0

        return LayerUpdate(
            state_new=LayerState(
                direct_stress=layer_old.direct_stress + elastic_increment * E,
                plastic_strain=layer_old.plastic_strain + signed_increment,
                hardening_variable=correction.hardening,
            ),
            trial_stress=trial_stress,
            elastic_strain_increment=elastic_increment,
            tangent=D_ep,
            correction=correction,
        )
