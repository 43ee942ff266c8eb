"""積層断面積分モジュール.

LayeredSection と LayerPlasticity を統合し、曲率増分から断面力と
断面 consistent tangent を計算する。

層ひずみ増分:
  Δε_i = Δκ·z_i

断面力（中点則）:
  N = Σ σ_i·w·t
  M = Σ σ_i·w·z_i·t

断面 consistent tangent:
  dM/dκ = Σ D_ep_i·w·z_i²·t
"""

from __future__ import annotations

from dataclasses import dataclass

from layerbeam.core.errors import ConfigurationError
from layerbeam.core.results import SectionIntegrationResult
from layerbeam.core.state import LayeredSectionState, LayerState
from layerbeam.materials.layer_plasticity import LayerPlasticity
from layerbeam.sections.layered import LayeredSection


@dataclass
class LayerIntegrator:
    """積層断面積分器.

    Attributes:
        section: 積層断面
        material: 層の1次元弾塑性構成則
        verbose: 塑性化した層と断面モーメントを表示する
    """

    section: LayeredSection
    material: LayerPlasticity
    verbose: bool = False

    def integrate(
        self,
        curvature_increment: float,
        state_old: LayeredSectionState,
    ) -> SectionIntegrationResult:
        """曲率増分から層応力を更新し、断面力を積分する.

        Args:
            curvature_increment: 曲率増分 Δκ
            state_old: 前ステップの積層断面状態（変更されない）

        Returns:
            SectionIntegrationResult: (moment, axial_force, tangent, state_new, n_yielded)

        Raises:
            ConvergenceError: いずれかの層で局所 Newton 反復が収束しない場合
        """
        sec = self.section
        if state_old.n_layers != sec.n_layers:
            raise ConfigurationError(
                f"層状態の数が層数と不一致: {state_old.n_layers} != {sec.n_layers}"
            )

        w = sec.width
        t = sec.thickness
        moment = 0.0
        axial_force = 0.0
        tangent = 0.0
        n_yielded = 0
        layers_new: list[LayerState] = []

        for i, z_i in enumerate(sec.offsets):
            update = self.material.update_layer(curvature_increment, z_i, state_old.layers[i])
            correction = update.correction
            if correction is not None and correction.failure is not None:
                raise correction.failure.with_layer(i)
            assert update.state_new is not None

            if update.yielded:
                n_yielded += 1
                if self.verbose:
                    print(
                        f"  layer {i}: z={z_i:+.4e}, trial={update.trial_stress:+.4e}, "
                        f"dep={correction.plastic_increment:.4e}, it={correction.iterations}"
                    )

            sigma_i = update.state_new.direct_stress
            layers_new.append(update.state_new)

            axial_force += sigma_i * w * t
            moment += sigma_i * w * z_i * t
            tangent += update.tangent * w * z_i * z_i * t

        if self.verbose:
            print(f"  moment = {moment:.6e} ({n_yielded}/{sec.n_layers} layers yielded)")

        state_new = LayeredSectionState(
            layers=layers_new,
            moment=moment,
            axial_force=axial_force,
            curvature_increment=curvature_increment,
        )
        return SectionIntegrationResult(
            moment=moment,
            axial_force=axial_force,
            tangent=tangent,
            state_new=state_new,
            n_yielded=n_yielded,
        )
