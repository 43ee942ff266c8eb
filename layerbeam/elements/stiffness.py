"""積層梁の接線剛性ブロック.

要素の接線剛性を節点 DOF グループ間の 3x3 ブロックで表す:

  K = | K11  K12 |     K11: 節点0変位 ↔ 節点0変位
      | K21  K22 |     K21: 節点0変位 ↔ 節点0回転（せん断連成）
                       K21_cross = -K21: 節点0変位 ↔ 節点1回転
                       K22: 節点0回転 ↔ 節点0回転
                       K22_cross: 節点0回転 ↔ 節点1回転

局所座標系（微小ひずみ）:
  K11 = diag(EA/L, GA/L, GA/L)
  K21[2,1] = GA/2,  K21[1,2] = -GA/2
  K22 = diag(GIx/L, EIz/L + GAL/4, EIy/L + GAL/4)
  K22_cross = -K22 + diag(0, 2·GAL/4, 2·GAL/4)

大ひずみ指定時は、変位勾配・回転勾配・平均回転の2次/3次の幾何剛性項を加える:
  k1: σ_xx·d(ε_xx) からの寄与
  k2, k3, k4: τ_xy·d(γ_xy), τ_xz·d(γ_xz) からの寄与

全ブロックは K_global = Rᵀ @ K_local @ R で全体座標系に変換する。
"""

from __future__ import annotations

import numpy as np

from layerbeam.core.results import StiffnessBlocks, StrainIncrement
from layerbeam.sections.beam import AveragedSection


def small_strain_blocks_local(
    E: float,
    G: float,
    sec: AveragedSection,
    L: float,
) -> StiffnessBlocks:
    """微小ひずみの剛性ブロック（局所座標系）を返す.

    Args:
        E: ヤング率
        G: せん断弾性率
        sec: 平均断面特性
        L: 初期要素長さ
    """
    A, Iy, Iz, Ix = sec.A, sec.Iy, sec.Iz, sec.Ix

    K11 = np.zeros((3, 3), dtype=float)
    K11[0, 0] = E * A / L
    K11[1, 1] = G * A / L
    K11[2, 2] = G * A / L

    K21 = np.zeros((3, 3), dtype=float)
    K21[2, 1] = G * A * 0.5
    K21[1, 2] = -G * A * 0.5

    K22 = np.zeros((3, 3), dtype=float)
    K22[0, 0] = G * Ix / L
    K22[1, 1] = E * Iz / L + G * A * L / 4.0
    K22[2, 2] = E * Iy / L + G * A * L / 4.0

    K22_cross = -K22
    K22_cross[1, 1] += 2.0 * G * A * L / 4.0
    K22_cross[2, 2] += 2.0 * G * A * L / 4.0

    return StiffnessBlocks(K11=K11, K21=K21, K21_cross=-K21, K22=K22, K22_cross=K22_cross)


def _symmetrize_lower(k: np.ndarray) -> np.ndarray:
    """下三角成分を上三角に写す."""
    k[0, 1] = k[1, 0]
    k[0, 2] = k[2, 0]
    k[1, 2] = k[2, 1]
    return k


def large_strain_corrections_local(
    gd: np.ndarray,
    gr: np.ndarray,
    ar: np.ndarray,
    sec: AveragedSection,
    L: float,
) -> StiffnessBlocks:
    """大ひずみの幾何剛性補正（局所座標系）を返す.

    Args:
        gd: (3,) 局所変位勾配増分
        gr: (3,) 局所回転勾配増分
        ar: (3,) 局所平均回転増分
        sec: 平均断面特性
        L: 初期要素長さ

    Returns:
        各ブロックに加える補正（局所座標系）
    """
    Iy, Iz, Ix = sec.Iy, sec.Iz, sec.Ix
    c1 = 1.0 / 4.0 / L**2
    third = 1.0 / 3.0
    sixth = 1.0 / 6.0

    # --- k1: σ_xx·d(ε_xx) ---
    k1_11 = np.zeros((3, 3), dtype=float)
    k1_11[0, 0] = (
        gd[0] ** 2
        + 1.5 * gr[2] ** 2 * Iy
        + 1.5 * gr[1] ** 2 * Iz
        + 0.5 * gd[1] ** 2
        + 0.5 * gd[2] ** 2
        + 0.5 * gr[0] ** 2 * Ix
    )
    k1_11[1, 0] = 0.5 * gd[0] * gd[1] - third * gr[0] * gr[1] * Iz
    k1_11[2, 0] = 0.5 * gd[0] * gd[2] - third * gr[0] * gr[2] * Iy
    k1_11[1, 1] = (
        gd[1] ** 2
        + 1.5 * gr[0] ** 2 * Iz
        + 0.5 * gd[0] ** 2
        + 0.5 * gd[2] ** 2
        + 0.5 * gr[2] ** 2 * Iy
        + 0.5 * gr[1] ** 2 * Iz
        + 0.5 * gr[0] ** 2 * Iy
    )
    k1_11[2, 1] = 0.5 * gd[1] * gd[2]
    k1_11[2, 2] = (
        gd[2] ** 2
        + 1.5 * gr[0] ** 2 * Iy
        + 0.5 * gd[0] ** 2
        + 0.5 * gd[1] ** 2
        + 0.5 * gr[0] ** 2 * Iz
        + 0.5 * gr[2] ** 2 * Iy
        + 0.5 * gr[2] ** 2 * Iz
    )
    k1_11 = c1 * _symmetrize_lower(k1_11)

    k1_21 = np.zeros((3, 3), dtype=float)
    k1_21[0, 0] = (
        0.5 * gd[0] * gr[0] * Ix
        - third * gd[1] * gr[1] * Iz
        - third * gd[2] * gr[2] * Iy
    )
    k1_21[1, 0] = 1.5 * gd[0] * gr[1] * Iz - third * gd[1] * gr[0] * Iz
    k1_21[2, 0] = 1.5 * gd[0] * gr[2] * Iy - third * gd[2] * gr[0] * Iy
    k1_21[1, 1] = 0.5 * gd[1] * gr[1] * Iz - third * gd[0] * gr[0] * Iz
    k1_21[2, 1] = 0.5 * gd[1] * gr[2] * Iy
    k1_21[2, 2] = 0.5 * gd[2] * gr[2] * Iy - third * gd[0] * gr[0] * Iy
    k1_21 = c1 * _symmetrize_lower(k1_21)

    k1_22 = np.zeros((3, 3), dtype=float)
    k1_22[0, 0] = (
        gr[0] ** 2 * Ix**2
        + 1.5 * gd[1] ** 2 * Iz
        + 1.5 * gd[2] ** 2 * Iy
        + 0.5 * gd[0] ** 2 * Ix
        + 0.5 * gd[2] ** 2 * Iz
        + 0.5 * gd[1] ** 2 * Iy
        + 0.5 * gr[2] ** 2 * Iy * Ix
        + 0.5 * gr[1] ** 2 * Iz * Ix
    )
    k1_22[1, 0] = 0.5 * gr[0] * gr[1] * Iz * Ix - third * gd[0] * gd[1] * Iz
    k1_22[2, 0] = 0.5 * gr[0] * gr[2] * Iy * Ix - third * gd[0] * gd[2] * Iy
    k1_22[1, 1] = (
        gr[1] ** 2 * Iz**2
        + 1.5 * gd[0] ** 2 * Iz
        + 1.5 * gr[2] ** 2 * Iy * Iz
        + 0.5 * gd[1] ** 2 * Iz
        + 0.5 * gd[2] ** 2 * Iz
        + 0.5 * gr[0] ** 2 * Iz * Ix
    )
    k1_22[2, 1] = 1.5 * gr[1] * gr[2] * Iy * Iz
    k1_22[2, 2] = (
        gr[2] ** 2 * Iy**2
        + 1.5 * gd[0] ** 2 * Iy
        + 1.5 * gr[1] ** 2 * Iy * Iz
        + 0.5 * gd[1] ** 2 * Iy
        + 0.5 * gd[2] ** 2 * Iy
        + 0.5 * gr[0] ** 2 * Iz * Ix
    )
    k1_22 = c1 * _symmetrize_lower(k1_22)

    # --- k2: 平均回転によるせん断寄与（節点1は節点0の符号反転） ---
    k2_11 = np.zeros((3, 3), dtype=float)
    k2_11[0, 0] = 0.25 * ar[2] ** 2 + 0.25 * ar[1] ** 2
    k2_11[1, 0] = -sixth * ar[0] * ar[1]
    k2_11[2, 0] = -sixth * ar[0] * ar[2]
    k2_11[1, 1] = 0.25 * ar[0] ** 2
    k2_11[2, 2] = 0.25 * ar[0] ** 2
    k2_11 = c1 * _symmetrize_lower(k2_11)

    k2_22 = np.zeros((3, 3), dtype=float)
    k2_22[0, 0] = 0.25 * ar[0] ** 2 * Ix
    k2_22[1, 0] = sixth * ar[0] * ar[1] * Iz
    k2_22[2, 0] = sixth * ar[0] * ar[2] * Iy
    k2_22[1, 1] = 0.25 * ar[2] ** 2 * Iz + 0.25 * ar[1] ** 2 * Iz
    k2_22[2, 2] = 0.25 * ar[2] ** 2 * Iy + 0.25 * ar[1] ** 2 * Iy
    k2_22 = c1 * _symmetrize_lower(k2_22)

    # --- k3, k4: 勾配 × 平均回転のせん断寄与（節点0, 1 で同符号） ---
    k3_22 = np.zeros((3, 3), dtype=float)
    k3_22[0, 0] = 0.25 * gd[2] ** 2 + 0.25 * gr[0] * Ix + 0.25 * gd[1] ** 2
    k3_22[1, 0] = -sixth * gd[0] * gd[1] + sixth * gr[0] * gr[1] * Iz
    k3_22[2, 0] = -sixth * gd[0] * gd[2] + sixth * gr[0] * gr[2] * Iy
    k3_22[1, 1] = 0.25 * gd[0] ** 2 + 0.25 * gr[2] * Iy + 0.25 * gr[1] * Iz
    k3_22[2, 2] = 0.25 * gd[0] ** 2 + 0.25 * gr[2] * Iy + 0.25 * gr[1] * Iz
    k3_22 = _symmetrize_lower(k3_22) / 16.0

    k3_21 = np.zeros((3, 3), dtype=float)
    k3_21[0, 0] = -sixth * (gd[2] * ar[2] + gd[1] * ar[1])
    k3_21[1, 0] = 0.25 * gd[0] * ar[1] - sixth * gd[1] * ar[0]
    k3_21[2, 0] = 0.25 * gd[0] * ar[2] - sixth * gd[2] * ar[0]
    k3_21[0, 1] = 0.25 * gd[1] * ar[0] - sixth * gd[0] * ar[1]
    k3_21[1, 1] = -sixth * gd[0] * ar[0]
    k3_21[0, 2] = 0.25 * gd[2] * ar[0] - sixth * gd[0] * ar[2]
    k3_21[2, 2] = -sixth * gd[0] * ar[0]
    k3_21 *= 1.0 / 8.0 / L

    k4_22 = np.zeros((3, 3), dtype=float)
    k4_22[0, 0] = (
        0.25 * gr[0] * ar[0] * Ix
        + sixth * gr[2] * ar[2] * Iy
        + sixth * gr[1] * ar[1] * Iz
    )
    k4_22[1, 0] = sixth * gr[1] * ar[0] * Iz
    k4_22[2, 0] = sixth * gr[2] * ar[0] * Iy
    k4_22[0, 1] = sixth * gr[0] * ar[1] * Iz
    k4_22[1, 1] = 0.25 * gr[1] * ar[1] * Iz + sixth * gr[0] * ar[0] * Iz
    k4_22[2, 1] = 0.25 * gr[1] * ar[2] * Iz
    k4_22[0, 2] = sixth * gr[0] * ar[2] * Iy
    k4_22[1, 2] = 0.25 * gr[2] * ar[1] * Iy
    k4_22[2, 2] = 0.25 * gr[2] * ar[2] * Iy + sixth * gr[0] * ar[0] * Iy
    k3_22 += 1.0 / 8.0 / L * (k4_22 + k4_22.T)

    return StiffnessBlocks(
        K11=k1_11 + k2_11,
        K21=k1_21 + k3_21,
        K21_cross=-k1_21 + k3_21,
        K22=k1_22 + k2_22 + k3_22,
        K22_cross=-k1_22 - k2_22 + k3_22,
    )


def rotate_blocks(blocks: StiffnessBlocks, R: np.ndarray) -> StiffnessBlocks:
    """全ブロックを Rᵀ @ K @ R で全体座標系に変換する."""
    return StiffnessBlocks(*(R.T @ k @ R for k in blocks))


def assemble_stiffness_blocks(
    E: float,
    G: float,
    sec: AveragedSection,
    L: float,
    R: np.ndarray,
    strain: StrainIncrement | None = None,
) -> StiffnessBlocks:
    """全体座標系の接線剛性ブロックを返す.

    Args:
        E: ヤング率
        G: せん断弾性率
        sec: 平均断面特性
        L: 初期要素長さ
        R: (3, 3) 現ステップの回転テンソル
        strain: 大ひずみ補正に用いるひずみ増分（None = 微小ひずみ）

    Returns:
        StiffnessBlocks（全体座標系）
    """
    local = small_strain_blocks_local(E, G, sec, L)
    if strain is not None:
        large = large_strain_corrections_local(
            strain.grad_disp, strain.grad_rot, strain.avg_rot, sec, L
        )
        local = StiffnessBlocks(*(k + dk for k, dk in zip(local, large)))
    return rotate_blocks(local, R)
