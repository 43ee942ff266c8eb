"""梁の断面特性（節点ごと）.

テーパー梁に対応するため、断面積・断面一次モーメント・断面二次モーメントを
要素の両端節点ごとに保持する。剛性計算には両端の平均値を用いる。

記号の規約:
  A:  断面積
  Ay: ∫ y dA （y方向の断面一次モーメント）
  Az: ∫ z dA （z方向の断面一次モーメント）
  Iy: ∫ y² dA
  Iz: ∫ z² dA
  Ix: ∫ (y² + z²) dA （ねじり/極二次モーメント、未指定時 Iy + Iz）

Ay, Az が非零の断面はせん断中心が図心からずれた非対称断面であり、
大ひずみ計算とは併用できない。
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from layerbeam.core.errors import ConfigurationError


def _node_pair(name: str, value: float | Sequence[float]) -> tuple[float, float]:
    """スカラーまたは2要素の値を節点ペアに正規化する."""
    if isinstance(value, (int, float)):
        return (float(value), float(value))
    pair = tuple(float(v) for v in value)
    if len(pair) != 2:
        raise ConfigurationError(f"{name} は両端節点の2値が必要: {pair}")
    return pair  # type: ignore[return-value]


@dataclass(frozen=True)
class AveragedSection:
    """両端節点で平均化した断面特性."""

    A: float
    Ay: float
    Az: float
    Iy: float
    Iz: float
    Ix: float


@dataclass(frozen=True)
class SectionProperties:
    """梁の節点ごとの断面特性.

    各値はスカラー（一様断面）または (節点0, 節点1) の2値で与える。

    Attributes:
        area: 断面積
        first_moment_y: Ay = ∫ y dA
        first_moment_z: Az = ∫ z dA
        second_moment_y: Iy = ∫ y² dA
        second_moment_z: Iz = ∫ z² dA
        polar_moment: Ix（None の場合 Iy + Iz）
    """

    area: tuple[float, float]
    second_moment_y: tuple[float, float]
    second_moment_z: tuple[float, float]
    first_moment_y: tuple[float, float] = (0.0, 0.0)
    first_moment_z: tuple[float, float] = (0.0, 0.0)
    polar_moment: tuple[float, float] | None = None

    def __post_init__(self) -> None:
        for name in (
            "area",
            "second_moment_y",
            "second_moment_z",
            "first_moment_y",
            "first_moment_z",
        ):
            object.__setattr__(self, name, _node_pair(name, getattr(self, name)))
        if self.polar_moment is not None:
            object.__setattr__(self, "polar_moment", _node_pair("polar_moment", self.polar_moment))

        if min(self.area) <= 0.0:
            raise ConfigurationError(f"断面積は正値でなければなりません: {self.area}")
        if min(self.second_moment_y) <= 0.0:
            raise ConfigurationError(f"断面二次モーメント Iy は正値: {self.second_moment_y}")
        if min(self.second_moment_z) <= 0.0:
            raise ConfigurationError(f"断面二次モーメント Iz は正値: {self.second_moment_z}")
        if self.polar_moment is not None and min(self.polar_moment) <= 0.0:
            raise ConfigurationError(f"極二次モーメント Ix は正値: {self.polar_moment}")

    @property
    def has_first_moments(self) -> bool:
        """断面一次モーメントが非零（非対称断面）かどうか."""
        return any(v != 0.0 for v in self.first_moment_y + self.first_moment_z)

    def averaged(self) -> AveragedSection:
        """両端節点の平均断面特性を返す."""
        A = 0.5 * (self.area[0] + self.area[1])
        Iy = 0.5 * (self.second_moment_y[0] + self.second_moment_y[1])
        Iz = 0.5 * (self.second_moment_z[0] + self.second_moment_z[1])
        if self.polar_moment is None:
            Ix = Iy + Iz
        else:
            Ix = 0.5 * (self.polar_moment[0] + self.polar_moment[1])
        return AveragedSection(
            A=A,
            Ay=0.5 * (self.first_moment_y[0] + self.first_moment_y[1]),
            Az=0.5 * (self.first_moment_z[0] + self.first_moment_z[1]),
            Iy=Iy,
            Iz=Iz,
            Ix=Ix,
        )

    @classmethod
    def rectangle(cls, width: float, depth: float) -> SectionProperties:
        """一様な矩形断面を生成する.

        depth は局所 y 方向（曲率 κ_z により直ひずみが変化する方向）、
        width は局所 z 方向の寸法とする。

        Args:
            width: 幅
            depth: 深さ（せい）

        Returns:
            SectionProperties インスタンス
        """
        if width <= 0 or depth <= 0:
            raise ConfigurationError(f"width, depth は正値: width={width}, depth={depth}")
        return cls(
            area=width * depth,
            second_moment_y=width * depth**3 / 12.0,
            second_moment_z=depth * width**3 / 12.0,
        )
