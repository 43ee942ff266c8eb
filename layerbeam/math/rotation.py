"""回転ベクトル・四元数・回転行列の変換.

有限回転の座標系更新に使用する。

規約:
  q = [w, x, y, z] = w + x·i + y·j + z·k
  回転軸 n、回転角 θ のとき q = [cos(θ/2), sin(θ/2)·n]
"""

from __future__ import annotations

import numpy as np


def quat_from_rotvec(rotvec: np.ndarray) -> np.ndarray:
    """回転ベクトルから単位四元数を生成する（指数写像）.

    |θ| → 0 ではテイラー展開 sin(θ/2)/θ ≈ 1/2 - θ²/48 を用いる。

    Args:
        rotvec: (3,) 回転ベクトル（方向 = 回転軸、大きさ = 回転角）

    Returns:
        q: (4,) 単位四元数
    """
    rotvec = np.asarray(rotvec, dtype=float)
    angle = float(np.linalg.norm(rotvec))
    if angle < 1e-8:
        coeff = 0.5 - angle * angle / 48.0
        q = np.concatenate(([1.0 - angle * angle / 8.0], coeff * rotvec))
        return q / np.linalg.norm(q)
    half = 0.5 * angle
    return np.concatenate(([np.cos(half)], (np.sin(half) / angle) * rotvec))


def quat_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """単位四元数を 3x3 回転行列に変換する.

    Args:
        q: (4,) 単位四元数

    Returns:
        R: (3, 3) 回転行列（v' = R·v）
    """
    w, x, y, z = q
    return np.array(
        [
            [1.0 - 2.0 * (y * y + z * z), 2.0 * (x * y - w * z), 2.0 * (x * z + w * y)],
            [2.0 * (x * y + w * z), 1.0 - 2.0 * (x * x + z * z), 2.0 * (y * z - w * x)],
            [2.0 * (x * z - w * y), 2.0 * (y * z + w * x), 1.0 - 2.0 * (x * x + y * y)],
        ]
    )


def rotation_matrix_from_rotvec(rotvec: np.ndarray) -> np.ndarray:
    """回転ベクトルから回転行列を返す."""
    return quat_to_rotation_matrix(quat_from_rotvec(rotvec))


def is_orthonormal(R: np.ndarray, atol: float = 1e-12) -> bool:
    """R·Rᵀ = I かどうか."""
    return bool(np.allclose(R @ R.T, np.eye(R.shape[0]), atol=atol))
