"""メソッド戻り値の型定義.

各モジュールの公開メソッドが返すデータ構造を NamedTuple で統一的に定義する。
名前付きフィールドアクセスとタプルアンパッキングの両方が使え、不変である。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple

import numpy as np

if TYPE_CHECKING:
    from layerbeam.core.errors import ConvergenceError
    from layerbeam.core.state import (
        LayerState,
        LayeredBeamState,
        LayeredSectionState,
        StrainState,
    )


class PlasticCorrection(NamedTuple):
    """局所 Newton 反復（塑性修正）の結果.

    収束した塑性ひずみ増分、または ConvergenceError 値のいずれかを運ぶ。
    例外を送出するかどうかは呼び出し側が決める。

    Attributes:
        plastic_increment: 塑性ひずみ増分の大きさ Δεp (>= 0, 符号なし)
        hardening: Δεp における硬化応力 H(Δεp)
        slope: Δεp における硬化勾配 H'
        iterations: Newton 反復回数
        residual: 最終残差
        failure: 非収束時の ConvergenceError（収束時 None）
    """

    plastic_increment: float
    hardening: float
    slope: float
    iterations: int
    residual: float
    failure: ConvergenceError | None = None

    @property
    def converged(self) -> bool:
        """収束したかどうか."""
        return self.failure is None


class LayerUpdate(NamedTuple):
    """1層の return mapping 結果.

    Attributes:
        state_new: 更新後の層状態（非収束時は None）
        trial_stress: 弾性試行応力
        elastic_strain_increment: 弾性ひずみ増分
        tangent: 層の consistent tangent D_ep
        correction: 塑性修正の結果（弾性ステップでは None）
    """

    state_new: LayerState | None
    trial_stress: float
    elastic_strain_increment: float
    tangent: float
    correction: PlasticCorrection | None = None

    @property
    def yielded(self) -> bool:
        """塑性修正が行われたかどうか."""
        return self.correction is not None


class SectionIntegrationResult(NamedTuple):
    """積層断面積分の結果.

    Attributes:
        moment: 曲げモーメント M = Σ σ_i·w·z_i·t
        axial_force: 軸力 N = Σ σ_i·w·t
        tangent: 断面 consistent tangent dM/dκ = Σ D_ep_i·w·z_i²·t
        state_new: 更新後の積層断面状態
        n_yielded: 今ステップで塑性修正された層数
    """

    moment: float
    axial_force: float
    tangent: float
    state_new: LayeredSectionState
    n_yielded: int


class StrainIncrement(NamedTuple):
    """1積分点のひずみ増分計算結果.

    Attributes:
        grad_disp: (3,) 局所座標系の変位勾配増分
        grad_rot: (3,) 局所座標系の回転勾配増分
        avg_rot: (3,) 局所座標系の平均回転増分
        mech_disp_strain_increment: (3,) 機械的変位ひずみ増分（固有ひずみ除去後、局所）
        mech_rot_strain_increment: (3,) 機械的回転ひずみ増分（固有ひずみ除去後、局所）
        total: 更新後の全ひずみ（全体座標系）
        curvature_increment: 曲率増分（grad_rot の z 成分）
    """

    grad_disp: np.ndarray
    grad_rot: np.ndarray
    avg_rot: np.ndarray
    mech_disp_strain_increment: np.ndarray
    mech_rot_strain_increment: np.ndarray
    total: StrainState
    curvature_increment: float


class StiffnessBlocks(NamedTuple):
    """接線剛性の 3x3 ブロック（全体座標系）.

    Attributes:
        K11: 節点0変位 ↔ 節点0変位
        K21: 節点0変位 ↔ 節点0回転
        K21_cross: 節点0変位 ↔ 節点1回転
        K22: 節点0回転 ↔ 節点0回転
        K22_cross: 節点0回転 ↔ 節点1回転
    """

    K11: np.ndarray
    K21: np.ndarray
    K21_cross: np.ndarray
    K22: np.ndarray
    K22_cross: np.ndarray


class LayeredBeamResult(NamedTuple):
    """積層梁 1要素 1ステップの計算結果.

    Attributes:
        state: 更新後の要素状態（次ステップの「前ステップ状態」）
        strain_increments: 積分点ごとのひずみ増分
        stiffness: 接線剛性ブロック（ヤコビアン計算時以外は None）
        effective_stiffness: (n_qp,) 臨界時間増分推定用の擬似剛性
    """

    state: LayeredBeamState
    strain_increments: list[StrainIncrement]
    stiffness: StiffnessBlocks | None
    effective_stiffness: np.ndarray

    @property
    def moments(self) -> np.ndarray:
        """(n_qp,) 積分点ごとの曲げモーメント."""
        return np.array([s.moment for s in self.state.sections])
