"""梁の断面積分ひずみ増分（変位ひずみ・回転ひずみ）.

節点変位・回転の増分（全体座標系）から、局所座標系の勾配と平均回転を求め、
断面一次・二次モーメントで断面積分したひずみ増分を計算する。

局所座標系での梁内の任意点の変位:
  u_1 = u_n1 - θ_3·y + θ_2·z
  u_2 = u_n2 - θ_1·z
  u_3 = u_n3 + θ_1·y

微小ひずみ:
  e_11 = u_n1,1 - θ_3,1·y + θ_2,1·z
  e_12 = -θ_3 + u_n2,1 - θ_1,1·z
  e_13 =  θ_2 + u_n3,1 + θ_1,1·y

変位ひずみ  = ∫ (e_11, e_12, e_13) dA
回転ひずみ  = ∫ (e_13·y - e_12·z, e_11·z, -e_11·y) dA
（積モーメント Iyz はゼロと仮定）

大ひずみ指定時は勾配・平均回転の2次項を加える。大ひずみ計算は
断面一次モーメントが非零の非対称断面と併用できない。
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import numpy as np

from layerbeam.core.errors import ConfigurationError
from layerbeam.core.results import StrainIncrement
from layerbeam.core.state import StrainState
from layerbeam.sections.beam import AveragedSection, SectionProperties


@dataclass(frozen=True)
class Eigenstrain:
    """固有ひずみ（全体座標系）の現ステップ値と前ステップ値.

    Attributes:
        disp: (3,) 現ステップの変位固有ひずみ
        rot: (3,) 現ステップの回転固有ひずみ
        disp_old: (3,) 前ステップの変位固有ひずみ
        rot_old: (3,) 前ステップの回転固有ひずみ
    """

    disp: np.ndarray
    rot: np.ndarray
    disp_old: np.ndarray
    rot_old: np.ndarray

    def disp_increment(self) -> np.ndarray:
        """変位固有ひずみ増分."""
        return as_vector3(self.disp, "disp") - as_vector3(self.disp_old, "disp_old")

    def rot_increment(self) -> np.ndarray:
        """回転固有ひずみ増分."""
        return as_vector3(self.rot, "rot") - as_vector3(self.rot_old, "rot_old")


def as_vector3(values: Sequence[float] | np.ndarray, name: str = "vector") -> np.ndarray:
    """1〜3成分のベクトルを3成分にゼロ埋めする."""
    v = np.asarray(values, dtype=float).ravel()
    if v.size > 3:
        raise ConfigurationError(f"{name} は3成分以下: size={v.size}")
    if v.size == 3:
        return v.copy()
    out = np.zeros(3, dtype=float)
    out[: v.size] = v
    return out


def local_gradients(
    length: float,
    rotation: np.ndarray,
    disp_increments: tuple[np.ndarray, np.ndarray],
    rot_increments: tuple[np.ndarray, np.ndarray],
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """局所座標系の変位勾配・回転勾配・平均回転を返す.

    Args:
        length: 初期要素長さ
        rotation: (3, 3) 現ステップの回転テンソル
        disp_increments: 節点0, 1 の変位増分（全体座標系）
        rot_increments: 節点0, 1 の回転増分（全体座標系）

    Returns:
        (grad_disp, grad_rot, avg_rot): 各 (3,)
    """
    disp0 = as_vector3(disp_increments[0], "disp0")
    disp1 = as_vector3(disp_increments[1], "disp1")
    rot0 = as_vector3(rot_increments[0], "rot0")
    rot1 = as_vector3(rot_increments[1], "rot1")

    grad_disp = rotation @ ((disp1 - disp0) / length)
    grad_rot = rotation @ ((rot1 - rot0) / length)
    avg_rot = rotation @ (0.5 * (rot0 + rot1))
    return grad_disp, grad_rot, avg_rot


def small_strain_increments(
    gd: np.ndarray,
    gr: np.ndarray,
    ar: np.ndarray,
    sec: AveragedSection,
) -> tuple[np.ndarray, np.ndarray]:
    """微小ひずみの変位ひずみ・回転ひずみ増分（局所）を返す."""
    A, Ay, Az, Iy, Iz, Ix = sec.A, sec.Ay, sec.Az, sec.Iy, sec.Iz, sec.Ix

    disp = np.array(
        [
            gd[0] * A - gr[2] * Ay + gr[1] * Az,
            -ar[2] * A + gd[1] * A - gr[0] * Az,
            ar[1] * A + gd[2] * A + gr[0] * Ay,
        ]
    )
    rot = np.array(
        [
            ar[1] * Ay + gd[2] * Ay + gr[0] * Ix + ar[2] * Az - gd[1] * Az,
            gd[0] * Az + gr[1] * Iz,
            -gd[0] * Ay + gr[2] * Iy,
        ]
    )
    return disp, rot


def large_strain_corrections(
    gd: np.ndarray,
    gr: np.ndarray,
    ar: np.ndarray,
    sec: AveragedSection,
) -> tuple[np.ndarray, np.ndarray]:
    """大ひずみの2次補正項（局所）を返す.

    Ay = Az = 0 を前提とする。
    """
    A, Iy, Iz, Ix = sec.A, sec.Iy, sec.Iz, sec.Ix

    disp = np.array(
        [
            0.5 * (float(gd @ gd) * A + gr[2] ** 2 * Iy + gr[1] ** 2 * Iz + gr[0] ** 2 * Ix),
            (-ar[2] * gd[0] + ar[0] * gd[2]) * A,
            (ar[1] * gd[0] - ar[0] * gd[1]) * A,
        ]
    )
    rot = np.array(
        [
            -ar[1] * gr[2] * Iy + ar[2] * gr[1] * Iz,
            (gd[0] * gr[1] - gd[1] * gr[0]) * Iz,
            -(gd[2] * gr[0] - gd[0] * gr[2]) * Iy,
        ]
    )
    return disp, rot


class StrainKinematics:
    """節点増分から断面積分ひずみ増分を計算する.

    Args:
        section: 節点ごとの断面特性
        large_strain: 大ひずみの2次項を含めるかどうか
        eigenstrain_names: 除去する固有ひずみの名前

    Raises:
        ConfigurationError: 大ひずみと非零の断面一次モーメントを併用した場合
    """

    def __init__(
        self,
        section: SectionProperties,
        large_strain: bool = False,
        eigenstrain_names: Sequence[str] = (),
    ) -> None:
        if large_strain and section.has_first_moments:
            raise ConfigurationError(
                "大ひずみ計算は断面一次モーメント（Ay, Az）が非零の非対称断面に未対応です。"
            )
        self.section = section
        self.large_strain = large_strain
        self.eigenstrain_names = tuple(eigenstrain_names)

    def compute(
        self,
        length: float,
        rotation: np.ndarray,
        disp_increments: tuple[np.ndarray, np.ndarray],
        rot_increments: tuple[np.ndarray, np.ndarray],
        strain_old: StrainState,
        eigenstrains: Mapping[str, Eigenstrain] | None = None,
    ) -> StrainIncrement:
        """1積分点のひずみ増分を計算する.

        全ひずみ（全体座標系）は固有ひずみ除去前の増分で更新する。

        Args:
            length: 初期要素長さ
            rotation: (3, 3) 現ステップの回転テンソル
            disp_increments: 節点0, 1 の変位増分（全体座標系）
            rot_increments: 節点0, 1 の回転増分（全体座標系）
            strain_old: 前ステップの全ひずみ（変更されない）
            eigenstrains: 名前 → 固有ひずみ

        Returns:
            StrainIncrement
        """
        sec = self.section.averaged()
        gd, gr, ar = local_gradients(length, rotation, disp_increments, rot_increments)

        disp, rot = small_strain_increments(gd, gr, ar, sec)
        if self.large_strain:
            disp_large, rot_large = large_strain_corrections(gd, gr, ar, sec)
            disp = disp + disp_large
            rot = rot + rot_large

        total = StrainState(
            total_disp_strain=rotation.T @ disp + strain_old.total_disp_strain,
            total_rot_strain=rotation.T @ rot + strain_old.total_rot_strain,
        )

        eigenstrains = eigenstrains if eigenstrains is not None else {}
        for name in self.eigenstrain_names:
            if name not in eigenstrains:
                raise ConfigurationError(f"固有ひずみ '{name}' が供給されていません。")
            eig = eigenstrains[name]
            disp = disp - rotation @ eig.disp_increment() * sec.A
            rot = rot - rotation @ eig.rot_increment()

        return StrainIncrement(
            grad_disp=gd,
            grad_rot=gr,
            avg_rot=ar,
            mech_disp_strain_increment=disp,
            mech_rot_strain_increment=rot,
            total=total,
            curvature_increment=float(gr[2]),
        )
