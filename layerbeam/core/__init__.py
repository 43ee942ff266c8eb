"""layerbeam.core - 戦略インタフェース・状態・戻り値型・例外の定義.

Protocol:
  HardeningLawProtocol: 硬化則（linear / function-based）
  RotationFrameProtocol: 要素座標系（fixed / updated）
"""

from layerbeam.core.constitutive import HardeningLawProtocol, RotationFrameProtocol
from layerbeam.core.errors import ConfigurationError, ConvergenceError
from layerbeam.core.results import (
    LayeredBeamResult,
    LayerUpdate,
    PlasticCorrection,
    SectionIntegrationResult,
    StiffnessBlocks,
    StrainIncrement,
)
from layerbeam.core.state import (
    ElementFrameState,
    LayeredBeamState,
    LayeredSectionState,
    LayerState,
    StrainState,
)

__all__ = [
    "HardeningLawProtocol",
    "RotationFrameProtocol",
    "ConfigurationError",
    "ConvergenceError",
    "LayerState",
    "LayeredSectionState",
    "ElementFrameState",
    "StrainState",
    "LayeredBeamState",
    "PlasticCorrection",
    "LayerUpdate",
    "SectionIntegrationResult",
    "StrainIncrement",
    "StiffnessBlocks",
    "LayeredBeamResult",
]
