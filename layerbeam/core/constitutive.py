"""積層梁の戦略インタフェース定義.

Protocol 定義:
  HardeningLawProtocol: 硬化応力 H(Δεp) とその勾配 H' を返す硬化則。
  RotationFrameProtocol: 全体→局所の回転テンソルを各ステップで返す座標系。

いずれも設定時に一度選択され、以降は同じ契約で呼び出される。
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from layerbeam.core.state import LayerState


@runtime_checkable
class HardeningLawProtocol(Protocol):
    """硬化則の共通インタフェース.

    return mapping の残差
      R(Δεp) = |σ_trial| - H(Δεp) - σ_y - E·Δεp
    の H と、Newton 更新の分母 E + H' を与える。

    適合クラス例:
      - LinearHardening     H = h_old + k·Δεp
      - FunctionHardening   H = f(|εp_old| + Δεp) - σ_y
    """

    def hardening(self, plastic_increment: float, layer_old: LayerState) -> float:
        """硬化応力 H(Δεp) を返す.

        Args:
            plastic_increment: 塑性ひずみ増分の大きさ Δεp (>= 0)
            layer_old: 前ステップの層状態（変更されない）
        """
        ...

    def slope(self, plastic_increment: float, layer_old: LayerState) -> float:
        """硬化勾配 H'(Δεp) を返す."""
        ...


@runtime_checkable
class RotationFrameProtocol(Protocol):
    """要素座標系の回転テンソルを返すインタフェース.

    適合クラス例:
      - FixedRotationFrame    微小回転: 常に初期局所配置を返す
      - UpdatedRotationFrame  有限回転: 平均回転増分で逐次更新
    """

    def current_rotation(
        self,
        initial_rotation: np.ndarray,
        previous_rotation: np.ndarray,
        rotation_increments: tuple[np.ndarray, np.ndarray],
    ) -> np.ndarray:
        """現ステップの回転テンソル (3, 3) を返す.

        Args:
            initial_rotation: (3, 3) 初期局所配置
            previous_rotation: (3, 3) 前ステップの回転テンソル
            rotation_increments: 両端節点の回転増分（全体座標系）
        """
        ...
