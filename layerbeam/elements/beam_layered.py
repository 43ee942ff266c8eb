"""積層弾塑性 Timoshenko 梁要素.

1ステップ・1要素の構成計算:

  1. 座標系の更新（FixedRotationFrame / UpdatedRotationFrame）
  2. 節点増分 → 断面積分ひずみ増分・曲率増分（StrainKinematics）
  3. 層ごとの return mapping と断面積分（LayerIntegrator）
  4. 擬似剛性（effective_stiffness）
  5. 接線剛性ブロック（ヤコビアン計算時のみ）

各節点の自由度: 変位 n_displacements 成分 + 回転 n_rotations 成分（1〜3、同数）。
3成分未満の場合は 3 成分にゼロ埋めして計算する。

積分点は要素軸方向の Gauss-Legendre 点。勾配・平均回転は要素内で一定のため
全積分点のひずみ増分は等しく、積分点ごとに異なるのは層状態の履歴と
弾性係数前係数の評価位置のみである。

前ステップ状態は変更せず、結果は常に新しい LayeredBeamState として返す。
"""

from __future__ import annotations

import math
import warnings
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np

from layerbeam.core.constitutive import HardeningLawProtocol, RotationFrameProtocol
from layerbeam.core.errors import ConfigurationError
from layerbeam.core.results import LayeredBeamResult, StrainIncrement
from layerbeam.core.state import (
    ElementFrameState,
    LayeredBeamState,
    LayeredSectionState,
    StrainState,
)
from layerbeam.elements.effective_stiffness import ElasticityPrefactor, effective_stiffness
from layerbeam.elements.frame import (
    PERPENDICULAR_TOLERANCE,
    FixedRotationFrame,
    beam_length_and_axis,
    build_local_frame,
)
from layerbeam.elements.kinematics import Eigenstrain, StrainKinematics, as_vector3
from layerbeam.elements.stiffness import assemble_stiffness_blocks
from layerbeam.materials.beam_elastic import ElasticModuli
from layerbeam.materials.hardening import LinearHardening
from layerbeam.materials.layer_plasticity import ConvergenceCriteria, LayerPlasticity
from layerbeam.sections.beam import SectionProperties
from layerbeam.sections.layer_integrator import LayerIntegrator
from layerbeam.sections.layered import LayeredSection


def gauss_points(n: int) -> tuple[np.ndarray, np.ndarray]:
    """[0,1]区間上の Gauss-Legendre 積分点と重みを返す."""
    if n < 1:
        raise ConfigurationError(f"積分点数は1以上: {n}")
    xi, w = np.polynomial.legendre.leggauss(n)
    return 0.5 * (xi + 1.0), 0.5 * w


@dataclass
class LayeredBeamConfig:
    """積層梁要素の設定.

    Attributes:
        width: 断面幅
        depth: 断面深さ（層の積層方向）
        n_layers: 層数
        y_orientation: 局所 y 軸の方向ベクトル（梁軸に直交）
        yield_stress: 初期降伏応力
        hardening: 硬化則（None の場合 LinearHardening(hardening_constant)）
        hardening_constant: 線形硬化勾配
        large_strain: 大ひずみの2次項を含めるかどうか
        convergence: 局所 Newton 反復の収束判定
        eigenstrain_names: 除去する固有ひずみの名前
        elasticity_prefactor: 擬似剛性の前係数 p(time, point)
        n_displacements: 節点あたりの変位成分数
        n_rotations: 節点あたりの回転成分数
        rotation_frame: 座標系の更新則
        n_quadrature_points: 要素軸方向の積分点数
        verbose: 塑性化した層と断面モーメントを表示する
    """

    width: float
    depth: float
    n_layers: int
    y_orientation: np.ndarray
    yield_stress: float
    hardening: HardeningLawProtocol | None = None
    hardening_constant: float = 0.0
    large_strain: bool = False
    convergence: ConvergenceCriteria = field(default_factory=ConvergenceCriteria)
    eigenstrain_names: Sequence[str] = ()
    elasticity_prefactor: ElasticityPrefactor | None = None
    n_displacements: int = 3
    n_rotations: int = 3
    rotation_frame: RotationFrameProtocol = field(default_factory=FixedRotationFrame)
    n_quadrature_points: int = 1
    verbose: bool = False

    def __post_init__(self) -> None:
        self.y_orientation = as_vector3(self.y_orientation, "y_orientation")
        self.eigenstrain_names = tuple(self.eigenstrain_names)

        if self.n_displacements != self.n_rotations:
            raise ConfigurationError(
                f"変位と回転の成分数が不一致: "
                f"n_displacements={self.n_displacements}, n_rotations={self.n_rotations}"
            )
        if not 1 <= self.n_displacements <= 3:
            raise ConfigurationError(f"節点あたりの成分数は 1〜3: {self.n_displacements}")
        if self.yield_stress <= 0.0:
            raise ConfigurationError(f"降伏応力は正値: {self.yield_stress}")
        if self.hardening_constant < 0.0:
            raise ConfigurationError(f"硬化勾配は非負: {self.hardening_constant}")
        if self.n_quadrature_points < 1:
            raise ConfigurationError(f"積分点数は1以上: {self.n_quadrature_points}")

        # 層分割の検証
        self.layered_section()

        law_yield = getattr(self.hardening, "yield_stress", None)
        if law_yield is not None and not math.isclose(law_yield, self.yield_stress):
            raise ConfigurationError(
                f"硬化則の初期降伏応力 {law_yield} が yield_stress={self.yield_stress} と不一致"
            )

        if self.hardening is not None and self.hardening_constant != 0.0:
            warnings.warn(
                "hardening と hardening_constant の両方が指定されたため、"
                "hardening_constant は無視されます。",
                UserWarning,
                stacklevel=2,
            )

    def layered_section(self) -> LayeredSection:
        """積層断面を返す."""
        return LayeredSection(width=self.width, depth=self.depth, n_layers=self.n_layers)

    def hardening_law(self) -> HardeningLawProtocol:
        """使用する硬化則を返す."""
        if self.hardening is not None:
            return self.hardening
        return LinearHardening(self.hardening_constant)


class LayeredBeam:
    """積層弾塑性 Timoshenko 梁要素.

    Args:
        config: 要素設定
        section: 節点ごとの断面特性
        moduli: 弾性係数

    Raises:
        ConfigurationError: 大ひずみと非零の断面一次モーメントを併用した場合など
    """

    def __init__(
        self,
        config: LayeredBeamConfig,
        section: SectionProperties,
        moduli: ElasticModuli,
    ) -> None:
        self.config = config
        self.section = section
        self.moduli = moduli
        self.kinematics = StrainKinematics(
            section,
            large_strain=config.large_strain,
            eigenstrain_names=config.eigenstrain_names,
        )
        material = LayerPlasticity(
            modulus=moduli.flexural,
            yield_stress=config.yield_stress,
            hardening=config.hardening_law(),
            criteria=config.convergence,
        )
        self.integrator = LayerIntegrator(
            section=config.layered_section(),
            material=material,
            verbose=config.verbose,
        )
        self.quadrature_points, _ = gauss_points(config.n_quadrature_points)

    def initial_state(self, coords: np.ndarray) -> LayeredBeamState:
        """未変形配置からゼロ初期状態を生成する.

        Args:
            coords: (2, 3) 未変形の節点座標

        Returns:
            LayeredBeamState

        Raises:
            ConfigurationError: 要素長さがゼロ、または y_orientation が梁軸に直交しない場合
        """
        coords = np.asarray(coords, dtype=float)
        length, e_x = beam_length_and_axis(coords)
        R0 = build_local_frame(e_x, self.config.y_orientation, PERPENDICULAR_TOLERANCE)
        n_qp = self.config.n_quadrature_points
        n_layers = self.config.n_layers
        return LayeredBeamState(
            frame=ElementFrameState(
                original_length=length,
                initial_rotation=R0,
                total_rotation=R0.copy(),
                reference_coords=coords.copy(),
            ),
            strains=[StrainState() for _ in range(n_qp)],
            sections=[LayeredSectionState.create(n_layers) for _ in range(n_qp)],
        )

    def quadrature_positions(self, frame: ElementFrameState) -> np.ndarray:
        """(n_qp, 3) 未変形配置における積分点の座標."""
        x0, x1 = frame.reference_coords
        return np.array([x0 + s * (x1 - x0) for s in self.quadrature_points])

    def _nodal_pair(
        self,
        increments: Sequence[Sequence[float]] | np.ndarray,
        name: str,
    ) -> tuple[np.ndarray, np.ndarray]:
        """節点0, 1 の増分を検証し、3成分に揃える."""
        arr = np.asarray(increments, dtype=float)
        n = self.config.n_displacements
        if arr.shape != (2, n):
            raise ConfigurationError(f"{name} の形状は (2, {n}) が必要。実際: {arr.shape}")
        return as_vector3(arr[0], name), as_vector3(arr[1], name)

    def compute(
        self,
        state_old: LayeredBeamState,
        displacement_increments: Sequence[Sequence[float]] | np.ndarray,
        rotation_increments: Sequence[Sequence[float]] | np.ndarray,
        eigenstrains: Mapping[str, Eigenstrain] | None = None,
        time: float = 0.0,
        compute_jacobian: bool = True,
    ) -> LayeredBeamResult:
        """1ステップの構成計算を行う.

        Args:
            state_old: 前ステップの要素状態（変更されない）
            displacement_increments: (2, n_displacements) 節点変位増分（全体座標系）
            rotation_increments: (2, n_rotations) 節点回転増分（全体座標系）
            eigenstrains: 名前 → 固有ひずみ
            time: 現在時刻（弾性係数前係数の評価用）
            compute_jacobian: 接線剛性ブロックを計算するかどうか

        Returns:
            LayeredBeamResult

        Raises:
            ConvergenceError: いずれかの層で局所 Newton 反復が収束しない場合
        """
        cfg = self.config
        if state_old.n_quadrature_points != cfg.n_quadrature_points:
            raise ConfigurationError(
                f"状態の積分点数が不一致: {state_old.n_quadrature_points} "
                f"!= {cfg.n_quadrature_points}"
            )
        disp_inc = self._nodal_pair(displacement_increments, "displacement_increments")
        rot_inc = self._nodal_pair(rotation_increments, "rotation_increments")

        frame_old = state_old.frame
        L = frame_old.original_length
        R = cfg.rotation_frame.current_rotation(
            frame_old.initial_rotation, frame_old.total_rotation, rot_inc
        )
        frame_new = ElementFrameState(
            original_length=L,
            initial_rotation=frame_old.initial_rotation.copy(),
            total_rotation=R,
            reference_coords=frame_old.reference_coords.copy(),
        )

        E = self.moduli.E
        G = self.moduli.G
        sec = self.section.averaged()
        positions = self.quadrature_positions(frame_old)

        strains: list[StrainState] = []
        sections: list[LayeredSectionState] = []
        increments: list[StrainIncrement] = []
        k_eff = np.zeros(cfg.n_quadrature_points)

        for qp in range(cfg.n_quadrature_points):
            if cfg.verbose:
                print(f"qp {qp}: x={positions[qp]}")
            strain = self.kinematics.compute(
                L, R, disp_inc, rot_inc, state_old.strains[qp], eigenstrains
            )
            result = self.integrator.integrate(strain.curvature_increment, state_old.sections[qp])

            increments.append(strain)
            strains.append(strain.total)
            sections.append(result.state_new)
            k_eff[qp] = effective_stiffness(
                E, G, sec, L, cfg.elasticity_prefactor, time, positions[qp]
            )

        stiffness = None
        if compute_jacobian:
            stiffness = assemble_stiffness_blocks(
                E, G, sec, L, R, increments[0] if cfg.large_strain else None
            )

        return LayeredBeamResult(
            state=LayeredBeamState(frame=frame_new, strains=strains, sections=sections),
            strain_increments=increments,
            stiffness=stiffness,
            effective_stiffness=k_eff,
        )
