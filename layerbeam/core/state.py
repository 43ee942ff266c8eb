"""状態変数（履歴変数）の管理.

積層梁の各層・各積分点・各要素の状態を保持する。
前ステップの状態は計算中に変更されず、計算結果は常に新しいインスタンスとして返す。
要素間・積分点間で可変状態を共有しない。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


@dataclass
class LayerState:
    """1層の状態変数.

    Attributes:
        direct_stress: 層の直応力
        plastic_strain: 塑性ひずみ（符号付き）
        hardening_variable: 硬化変数（降伏面の拡大量）
    """

    direct_stress: float = 0.0
    plastic_strain: float = 0.0
    hardening_variable: float = 0.0


@dataclass
class LayeredSectionState:
    """1積分点の積層断面状態.

    Attributes:
        layers: 各層の状態（層インデックス順、z の小さい側から）
        moment: 断面曲げモーメント（応力合力）
        axial_force: 断面軸力
        curvature_increment: 直近ステップの曲率増分（局所回転勾配の z 成分）
    """

    layers: list[LayerState] = field(default_factory=list)
    moment: float = 0.0
    axial_force: float = 0.0
    curvature_increment: float = 0.0

    @classmethod
    def create(cls, n_layers: int) -> LayeredSectionState:
        """指定層数のゼロ初期状態を生成する."""
        return cls(layers=[LayerState() for _ in range(n_layers)])

    @property
    def n_layers(self) -> int:
        """層数."""
        return len(self.layers)

    @property
    def direct_stress(self) -> np.ndarray:
        """(n_layers,) 直応力."""
        return np.array([s.direct_stress for s in self.layers])

    @property
    def plastic_strain(self) -> np.ndarray:
        """(n_layers,) 塑性ひずみ."""
        return np.array([s.plastic_strain for s in self.layers])

    @property
    def hardening_variable(self) -> np.ndarray:
        """(n_layers,) 硬化変数."""
        return np.array([s.hardening_variable for s in self.layers])


@dataclass
class ElementFrameState:
    """要素の座標系状態.

    Attributes:
        original_length: 初期（未変形）要素長さ
        initial_rotation: (3, 3) 全体→初期局所配置の回転テンソル（行 = 局所軸）
        total_rotation: (3, 3) 全体→現配置局所の回転テンソル
        reference_coords: (2, 3) 未変形の節点座標
    """

    original_length: float
    initial_rotation: np.ndarray
    total_rotation: np.ndarray
    reference_coords: np.ndarray


@dataclass
class StrainState:
    """断面積分された全ひずみ（全体座標系）.

    Attributes:
        total_disp_strain: (3,) 全変位ひずみ
        total_rot_strain: (3,) 全回転ひずみ
    """

    total_disp_strain: np.ndarray = field(default_factory=lambda: np.zeros(3))
    total_rot_strain: np.ndarray = field(default_factory=lambda: np.zeros(3))


@dataclass
class LayeredBeamState:
    """積層梁 1要素の状態（全積分点分）.

    Attributes:
        frame: 座標系状態
        strains: 積分点ごとの全ひずみ
        sections: 積分点ごとの積層断面状態
    """

    frame: ElementFrameState
    strains: list[StrainState] = field(default_factory=list)
    sections: list[LayeredSectionState] = field(default_factory=list)

    @property
    def n_quadrature_points(self) -> int:
        """積分点数."""
        return len(self.sections)
