"""梁要素の局所座標系.

局所座標系:
  - x軸: 節点0→節点1 方向（梁軸）
  - y軸: ユーザー指定の y_orientation（梁軸に直交していること）
  - z軸: x × y（右手系）

回転テンソル R の行ベクトルが局所 x, y, z 軸を全体座標系で表したもの。
  v_local = R @ v_global
  K_global = Rᵀ @ K_local @ R

座標系の更新則:
  - FixedRotationFrame:   微小回転。常に初期局所配置を返す。
  - UpdatedRotationFrame: 有限回転。両端節点の平均回転増分 Δθ_avg による
                          増分回転 Q を用いて R_t = R_{t-1} @ Qᵀ と更新する。
"""

from __future__ import annotations

import numpy as np

from layerbeam.core.errors import ConfigurationError
from layerbeam.math.rotation import rotation_matrix_from_rotvec

PERPENDICULAR_TOLERANCE = 1e-4


def beam_length_and_axis(coords: np.ndarray) -> tuple[float, np.ndarray]:
    """梁要素の初期長さと軸方向単位ベクトルを計算する.

    Args:
        coords: (2, 3) 未変形の節点座標 [[x0,y0,z0],[x1,y1,z1]]

    Returns:
        L: 要素長さ
        e_x: 単位方向ベクトル（節点0→節点1）
    """
    coords = np.asarray(coords, dtype=float)
    if coords.shape != (2, 3):
        raise ConfigurationError(f"coords は (2, 3) が必要。実際: {coords.shape}")
    dx = coords[1] - coords[0]
    length = float(np.linalg.norm(dx))
    if length < 1e-15:
        raise ConfigurationError("要素長さがほぼゼロです。2節点が同一座標です。")
    return length, dx / length


def build_local_frame(
    e_x: np.ndarray,
    y_orientation: np.ndarray,
    tol: float = PERPENDICULAR_TOLERANCE,
) -> np.ndarray:
    """初期局所配置の回転テンソル R (3x3) を構築する.

    y_orientation は梁軸に直交していなければならない（|x̂·ŷ| <= tol）。
    許容範囲内の非直交成分は除去し、R を正規直交にする。

    Args:
        e_x: 梁軸方向の単位ベクトル
        y_orientation: 局所 y 軸の方向ベクトル（正規化不要）
        tol: 直交性の許容値

    Returns:
        R: (3, 3) 全体→局所の回転テンソル

    Raises:
        ConfigurationError: y_orientation がゼロ、または梁軸に直交しない場合
    """
    y_vec = np.asarray(y_orientation, dtype=float)
    norm_y = float(np.linalg.norm(y_vec))
    if norm_y < 1e-15:
        raise ConfigurationError("y_orientation のノルムがほぼゼロです。")
    y_vec = y_vec / norm_y

    dot = float(e_x @ y_vec)
    if abs(dot) > tol:
        raise ConfigurationError(
            f"y_orientation は梁軸に直交していなければなりません。x·y={dot:.3e}"
        )

    e_y = y_vec - dot * e_x
    e_y /= np.linalg.norm(e_y)
    e_z = np.cross(e_x, e_y)

    R = np.zeros((3, 3), dtype=float)
    R[0, :] = e_x
    R[1, :] = e_y
    R[2, :] = e_z
    return R


class FixedRotationFrame:
    """微小回転の座標系（RotationFrameProtocol 適合）."""

    def current_rotation(
        self,
        initial_rotation: np.ndarray,
        previous_rotation: np.ndarray,
        rotation_increments: tuple[np.ndarray, np.ndarray],
    ) -> np.ndarray:
        """初期局所配置をそのまま返す."""
        return initial_rotation.copy()


class UpdatedRotationFrame:
    """有限回転の座標系（RotationFrameProtocol 適合）.

    要素の剛体回転を両端節点の平均回転増分で近似する。
    """

    def current_rotation(
        self,
        initial_rotation: np.ndarray,
        previous_rotation: np.ndarray,
        rotation_increments: tuple[np.ndarray, np.ndarray],
    ) -> np.ndarray:
        """R_t = R_{t-1} @ Q(Δθ_avg)ᵀ を返す."""
        rot0, rot1 = rotation_increments
        avg_rot = 0.5 * (np.asarray(rot0, dtype=float) + np.asarray(rot1, dtype=float))
        Q = rotation_matrix_from_rotvec(avg_rot)
        return previous_rotation @ Q.T
