"""積層梁構成計算の例外型.

ConfigurationError: セットアップ時に検出される致命的な設定エラー。
ConvergenceError: 層ごとの局所 Newton 反復が上限回数内に収束しなかった。
                  呼び出し側（全体ソルバー）が荷重増分を縮小して再試行できる。
"""

from __future__ import annotations


class ConfigurationError(ValueError):
    """設定値の不整合（DOF数不一致、大ひずみ+非対称断面、非直交の方向ベクトル等）."""


class ConvergenceError(RuntimeError):
    """層 return mapping の局所 Newton 反復が収束しなかった.

    Attributes:
        layer: 層インデックス（不明な場合 None）
        iterations: 実施した反復回数
        residual: 最終残差
    """

    def __init__(
        self,
        message: str,
        *,
        layer: int | None = None,
        iterations: int = 0,
        residual: float = float("nan"),
    ) -> None:
        super().__init__(message)
        self.layer = layer
        self.iterations = iterations
        self.residual = residual

    def with_layer(self, layer: int) -> ConvergenceError:
        """層インデックスを付与したコピーを返す."""
        return ConvergenceError(
            f"層 {layer}: {self.args[0]}",
            layer=layer,
            iterations=self.iterations,
            residual=self.residual,
        )
