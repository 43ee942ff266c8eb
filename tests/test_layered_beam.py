"""積層弾塑性梁要素のテスト.

検証項目:
  1. 設定の拒否（DOF 数不一致、大ひずみ + 非対称断面、非直交方向ベクトル）
  2. 無負荷での冪等性
  3. 弾性載荷で K22 曲げ成分 = E·I/L、塑性ひずみゼロ
  4. 具体例（幅 0.1, 深さ 0.2, 10 層, E=2e5, σ_y=200, k=1e3）
  5. 単調載荷 50 増分
  6. 有限回転座標系、固有ひずみ、擬似剛性の前係数
  7. 非収束の伝播
"""

from __future__ import annotations

import math
import warnings

import numpy as np
import pytest

from layerbeam.core.errors import ConfigurationError, ConvergenceError
from layerbeam.elements.beam_layered import LayeredBeam, LayeredBeamConfig, gauss_points
from layerbeam.elements.frame import UpdatedRotationFrame
from layerbeam.elements.kinematics import Eigenstrain
from layerbeam.materials.beam_elastic import ElasticModuli
from layerbeam.materials.hardening import FunctionHardening, LinearHardening
from layerbeam.materials.layer_plasticity import ConvergenceCriteria
from layerbeam.math.rotation import is_orthonormal
from layerbeam.sections.beam import SectionProperties

WIDTH = 0.1
DEPTH = 0.2
N_LAYERS = 10
E_MAT = 2.0e5
G_MAT = 8.0e4
SIGMA_Y = 200.0
K_HARD = 1.0e3
LENGTH = 1.0
COORDS = np.array([[0.0, 0.0, 0.0], [LENGTH, 0.0, 0.0]])
Y_ORIENT = np.array([0.0, 1.0, 0.0])
ZERO_PAIR = np.zeros((2, 3))


def _config(**kwargs) -> LayeredBeamConfig:
    params = dict(
        width=WIDTH,
        depth=DEPTH,
        n_layers=N_LAYERS,
        y_orientation=Y_ORIENT,
        yield_stress=SIGMA_Y,
        hardening_constant=K_HARD,
    )
    params.update(kwargs)
    return LayeredBeamConfig(**params)


def _beam(section: SectionProperties | None = None, **kwargs) -> LayeredBeam:
    return LayeredBeam(
        _config(**kwargs),
        section if section is not None else SectionProperties.rectangle(WIDTH, DEPTH),
        ElasticModuli(E_MAT, shear_modulus=G_MAT),
    )


def _bending(kappa: float) -> np.ndarray:
    """節点1に z 軸周りの回転 κ·L を与える回転増分."""
    return np.array([[0.0, 0.0, 0.0], [0.0, 0.0, kappa * LENGTH]])


def _layered_elastic_moment(kappa: float) -> float:
    t = DEPTH / N_LAYERS
    z = -0.5 * DEPTH + (np.arange(N_LAYERS) + 0.5) * t
    return float(E_MAT * kappa * np.sum(WIDTH * z**2 * t))


class TestConfigurationRejection:
    """設定時の検証."""

    def test_dof_count_mismatch(self):
        """変位と回転の成分数が異なる."""
        with pytest.raises(ConfigurationError):
            _config(n_displacements=3, n_rotations=2)

    def test_large_strain_with_first_moment(self):
        """大ひずみ + 非零の断面一次モーメント."""
        section = SectionProperties(
            area=WIDTH * DEPTH,
            second_moment_y=WIDTH * DEPTH**3 / 12.0,
            second_moment_z=DEPTH * WIDTH**3 / 12.0,
            first_moment_y=1e-4,
        )
        with pytest.raises(ConfigurationError):
            _beam(section, large_strain=True)

    def test_non_perpendicular_orientation(self):
        """梁軸に平行に近い y_orientation."""
        beam = _beam(y_orientation=[1.0, 0.5, 0.0])
        with pytest.raises(ConfigurationError):
            beam.initial_state(COORDS)

    def test_invalid_layering(self):
        """層数ゼロ."""
        with pytest.raises(ConfigurationError):
            _config(n_layers=0)

    def test_configuration_error_is_value_error(self):
        """ConfigurationError は ValueError."""
        with pytest.raises(ValueError):
            _config(yield_stress=-1.0)

    def test_hardening_and_constant_warns(self):
        """硬化則と硬化勾配の両指定は警告し、硬化則を使う."""
        law = FunctionHardening(
            function=lambda e: SIGMA_Y + 500.0 * e,
            derivative=lambda e: 500.0,
            yield_stress=SIGMA_Y,
        )
        with pytest.warns(UserWarning):
            cfg = _config(hardening=law, hardening_constant=K_HARD)
        assert cfg.hardening_law() is law

    def test_hardening_yield_stress_mismatch(self):
        """硬化則の初期降伏応力が yield_stress と異なる設定は拒否."""
        law = FunctionHardening.from_table([0.0, 1.0], [300.0, 300.0])
        with pytest.raises(ConfigurationError):
            _config(hardening=law, hardening_constant=0.0)

    def test_hardening_yield_stress_match(self):
        """一致する流動応力曲線は受け付け、外層は σ_y で降伏する."""
        law = FunctionHardening.from_table([0.0, 1.0], [SIGMA_Y, SIGMA_Y])
        beam = _beam(hardening=law, hardening_constant=0.0)
        state = beam.initial_state(COORDS)
        sec = beam.compute(state, ZERO_PAIR, _bending(0.015)).state.sections[0]
        assert abs(sec.direct_stress[0]) == pytest.approx(SIGMA_Y)
        assert sec.plastic_strain[0] != 0.0

    def test_constant_only_no_warning(self):
        """硬化勾配のみは警告なしで LinearHardening."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            cfg = _config()
        assert cfg.hardening_law() == LinearHardening(K_HARD)

    def test_increment_shape_checked(self):
        """設定と異なる形状の増分."""
        beam = _beam()
        state = beam.initial_state(COORDS)
        with pytest.raises(ConfigurationError):
            beam.compute(state, np.zeros((2, 2)), np.zeros((2, 2)))


class TestInitialState:
    """初期状態."""

    def test_frame(self):
        """初期長さと正規直交の回転テンソル."""
        state = _beam().initial_state(COORDS)
        assert state.frame.original_length == pytest.approx(LENGTH)
        np.testing.assert_allclose(state.frame.initial_rotation, np.eye(3))
        np.testing.assert_allclose(state.frame.total_rotation, np.eye(3))

    def test_zero_layers(self):
        """全層ゼロ状態."""
        state = _beam(n_quadrature_points=2).initial_state(COORDS)
        assert state.n_quadrature_points == 2
        for sec in state.sections:
            assert sec.n_layers == N_LAYERS
            assert np.all(sec.direct_stress == 0.0)


class TestIdempotence:
    """無負荷での冪等性."""

    def test_zero_increment_from_zero_state(self):
        """ゼロ増分でゼロ状態のまま."""
        beam = _beam()
        state = beam.initial_state(COORDS)
        result = beam.compute(state, ZERO_PAIR, ZERO_PAIR)
        sec = result.state.sections[0]
        assert np.all(sec.direct_stress == 0.0)
        assert np.all(sec.plastic_strain == 0.0)
        assert sec.moment == 0.0

    def test_zero_increment_after_yield(self):
        """降伏後のゼロ増分で応力・塑性ひずみ・モーメントは不変."""
        beam = _beam()
        loaded = beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.015)).state
        again = beam.compute(loaded, ZERO_PAIR, ZERO_PAIR).state
        np.testing.assert_allclose(
            again.sections[0].direct_stress, loaded.sections[0].direct_stress
        )
        np.testing.assert_allclose(
            again.sections[0].plastic_strain, loaded.sections[0].plastic_strain
        )
        assert again.sections[0].moment == pytest.approx(loaded.sections[0].moment)


class TestElasticLoading:
    """弾性載荷."""

    def test_bending_stiffness_is_EI_over_L(self):
        """K22 の曲げ成分はせん断項を除いて E·I/L."""
        beam = _beam()
        result = beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.001))
        K = result.stiffness
        A = WIDTH * DEPTH
        shear = G_MAT * A * LENGTH / 4.0
        Iy = WIDTH * DEPTH**3 / 12.0
        Iz = DEPTH * WIDTH**3 / 12.0
        assert K.K22[2, 2] - shear == pytest.approx(E_MAT * Iy / LENGTH)
        assert K.K22[1, 1] - shear == pytest.approx(E_MAT * Iz / LENGTH)
        assert np.all(result.state.sections[0].plastic_strain == 0.0)

    def test_no_jacobian(self):
        """compute_jacobian=False では剛性ブロックを計算しない."""
        beam = _beam()
        result = beam.compute(
            beam.initial_state(COORDS), ZERO_PAIR, _bending(0.001), compute_jacobian=False
        )
        assert result.stiffness is None
        assert result.moments[0] > 0.0


class TestConcreteScenario:
    """具体例: 幅 0.1, 深さ 0.2, 10 層, E=2e5, G=8e4, σ_y=200, k=1e3."""

    def test_curvature_001_stays_elastic(self):
        """κ = 0.01 では最外層の試行応力 2e5·0.01·0.09 = 180 < 200 で全層弾性."""
        beam = _beam()
        result = beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.01))
        sec = result.state.sections[0]
        assert np.all(sec.plastic_strain == 0.0)
        assert np.max(np.abs(sec.direct_stress)) == pytest.approx(180.0)
        assert sec.moment == pytest.approx(_layered_elastic_moment(0.01), rel=1e-10)

    def test_outer_layers_yield_center_elastic(self):
        """κ = 0.015 で外側の層が降伏、中央層は弾性、モーメントは弾性予測より小さい."""
        kappa = 0.015
        beam = _beam()
        result = beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(kappa))
        sec = result.state.sections[0]
        ep = sec.plastic_strain

        assert np.all(ep[[0, 1, 8, 9]] != 0.0)
        assert np.all(ep[2:8] == 0.0)
        assert np.all(np.abs(sec.direct_stress[[0, 9]]) > SIGMA_Y)
        assert np.all(np.abs(sec.direct_stress[3:7]) < SIGMA_Y)
        assert 0.0 < sec.moment < _layered_elastic_moment(kappa)
        assert result.strain_increments[0].curvature_increment == pytest.approx(kappa)

    def test_old_state_not_mutated(self):
        """前ステップ状態は変更されない."""
        beam = _beam()
        state = beam.initial_state(COORDS)
        beam.compute(state, ZERO_PAIR, _bending(0.015))
        assert np.all(state.sections[0].direct_stress == 0.0)
        assert state.sections[0].moment == 0.0
        np.testing.assert_array_equal(state.strains[0].total_rot_strain, np.zeros(3))


class TestMonotonicLoading:
    """単調載荷."""

    N_STEPS = 50

    @pytest.mark.parametrize("slope", [0.0, 1.0e3, 1.0e4])
    def test_fifty_increments(self, slope):
        """50 増分で収束し、モーメントは単調増加、全ひずみが累積."""
        beam = _beam(hardening_constant=slope, yield_stress=250.0)
        state = beam.initial_state(COORDS)
        dk = 0.001
        moments = []
        for _ in range(self.N_STEPS):
            result = beam.compute(state, ZERO_PAIR, _bending(dk))
            state = result.state
            moments.append(state.sections[0].moment)

        assert np.all(np.diff(moments) > 0.0)
        assert np.all(state.sections[0].plastic_strain[[0, -1]] != 0.0)
        Iy = WIDTH * DEPTH**3 / 12.0
        assert state.strains[0].total_rot_strain[2] == pytest.approx(
            self.N_STEPS * dk * Iy, rel=1e-10
        )


class TestFiniteRotationFrame:
    """有限回転座標系."""

    def test_total_rotation_updated(self):
        """total_rotation は更新され、initial_rotation は不変."""
        beam = _beam(rotation_frame=UpdatedRotationFrame())
        state = beam.initial_state(COORDS)
        rot = np.array([[0.0, 0.0, 0.1], [0.0, 0.0, 0.1]])
        result = beam.compute(state, ZERO_PAIR, rot)
        frame = result.state.frame
        np.testing.assert_allclose(frame.initial_rotation, np.eye(3))
        assert not np.allclose(frame.total_rotation, np.eye(3))
        assert is_orthonormal(frame.total_rotation)


class TestEigenstrains:
    """固有ひずみ."""

    def test_missing_eigenstrain(self):
        """設定された固有ひずみが未供給."""
        beam = _beam(eigenstrain_names=["thermal"])
        with pytest.raises(ConfigurationError):
            beam.compute(beam.initial_state(COORDS), ZERO_PAIR, ZERO_PAIR)

    def test_thermal_axial_strain_removed(self):
        """熱ひずみと等しい軸伸びは機械的ひずみゼロ."""
        beam = _beam(eigenstrain_names=["thermal"])
        eig = Eigenstrain(
            disp=np.array([1e-3, 0.0, 0.0]),
            rot=np.zeros(3),
            disp_old=np.zeros(3),
            rot_old=np.zeros(3),
        )
        disp = np.array([[0.0, 0.0, 0.0], [1e-3 * LENGTH, 0.0, 0.0]])
        result = beam.compute(
            beam.initial_state(COORDS), disp, ZERO_PAIR, eigenstrains={"thermal": eig}
        )
        inc = result.strain_increments[0]
        np.testing.assert_allclose(inc.mech_disp_strain_increment, np.zeros(3), atol=1e-18)
        assert inc.total.total_disp_strain[0] == pytest.approx(1e-3 * WIDTH * DEPTH)


class TestEffectiveStiffness:
    """擬似剛性."""

    def test_per_quadrature_point_with_prefactor(self):
        """前係数は積分点位置と時刻で評価される."""
        seen = []

        def prefactor(t, x):
            seen.append((t, float(x[0])))
            return 1.0 + x[0]

        beam = _beam(n_quadrature_points=2, elasticity_prefactor=prefactor)
        result = beam.compute(beam.initial_state(COORDS), ZERO_PAIR, ZERO_PAIR, time=2.0)
        pts, _ = gauss_points(2)
        assert result.effective_stiffness.shape == (2,)
        assert [s[1] for s in seen] == pytest.approx(list(pts * LENGTH))
        assert all(s[0] == 2.0 for s in seen)
        ratio = result.effective_stiffness[1] / result.effective_stiffness[0]
        assert ratio == pytest.approx(math.sqrt((1.0 + pts[1]) / (1.0 + pts[0])))


class TestConvergenceFailure:
    """非収束の伝播."""

    def test_raises_convergence_error(self):
        """局所 Newton の非収束は ConvergenceError として呼び出し側に届く."""
        law = FunctionHardening(
            function=lambda e: SIGMA_Y + 1.0e6 * e * e,
            derivative=lambda e: 2.0e6 * e,
            yield_stress=SIGMA_Y,
        )
        beam = _beam(
            hardening=law, hardening_constant=0.0, convergence=ConvergenceCriteria(max_iterations=1)
        )
        with pytest.raises(ConvergenceError) as exc_info:
            beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.03))
        assert exc_info.value.layer is not None


class TestVerbose:
    """進捗表示."""

    def test_verbose_prints(self, capsys):
        """verbose=True で積分点と降伏層を表示."""
        beam = _beam(verbose=True)
        beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.015))
        out = capsys.readouterr().out
        assert "qp 0" in out
        assert "layer 0" in out

    def test_silent_by_default(self, capsys):
        """デフォルトでは何も表示しない."""
        beam = _beam()
        beam.compute(beam.initial_state(COORDS), ZERO_PAIR, _bending(0.015))
        assert capsys.readouterr().out == ""
