"""断面積分ひずみ増分のテスト.

検証項目:
  1. 局所勾配・平均回転の計算（座標変換込み）
  2. 軸・曲げ・せん断の微小ひずみ増分
  3. 断面一次モーメントによる連成
  4. 全ひずみの累積（固有ひずみ除去前の増分で更新）
  5. 固有ひずみの除去と未供給の検出
  6. 大ひずみの2次項と非対称断面との併用拒否
  7. 3成分未満の DOF のゼロ埋め
"""

from __future__ import annotations

import numpy as np
import pytest

from layerbeam.core.errors import ConfigurationError
from layerbeam.core.state import StrainState
from layerbeam.elements.kinematics import (
    Eigenstrain,
    StrainKinematics,
    as_vector3,
    large_strain_corrections,
    local_gradients,
)
from layerbeam.math.rotation import rotation_matrix_from_rotvec
from layerbeam.sections.beam import AveragedSection, SectionProperties

L = 2.0
WIDTH = 0.1
DEPTH = 0.2
ZERO = np.zeros(3)


def _section() -> SectionProperties:
    return SectionProperties.rectangle(WIDTH, DEPTH)


class TestLocalGradients:
    """局所勾配."""

    def test_identity_frame(self):
        """R = I で差分/L と平均."""
        gd, gr, ar = local_gradients(
            L,
            np.eye(3),
            (np.array([0.0, 0.0, 0.0]), np.array([0.2, 0.4, 0.0])),
            (np.array([0.0, 0.0, 0.1]), np.array([0.0, 0.0, 0.3])),
        )
        np.testing.assert_allclose(gd, [0.1, 0.2, 0.0])
        np.testing.assert_allclose(gr, [0.0, 0.0, 0.1])
        np.testing.assert_allclose(ar, [0.0, 0.0, 0.2])

    def test_rotated_frame(self):
        """局所量 = R @ 全体量."""
        R = rotation_matrix_from_rotvec(np.array([0.3, -0.1, 0.7]))
        d1 = np.array([0.1, -0.2, 0.3])
        r1 = np.array([0.02, 0.01, -0.04])
        gd, gr, ar = local_gradients(L, R, (ZERO, d1), (ZERO, r1))
        np.testing.assert_allclose(gd, R @ d1 / L)
        np.testing.assert_allclose(gr, R @ r1 / L)
        np.testing.assert_allclose(ar, R @ r1 / 2.0)


class TestSmallStrain:
    """微小ひずみ増分."""

    def test_pure_axial(self):
        """軸方向変位のみ: 変位ひずみ x 成分 = A·Δu/L."""
        sec = _section()
        kin = StrainKinematics(sec)
        inc = kin.compute(
            L, np.eye(3), (ZERO, np.array([0.01, 0.0, 0.0])), (ZERO, ZERO), StrainState()
        )
        A = sec.averaged().A
        np.testing.assert_allclose(inc.mech_disp_strain_increment, [A * 0.005, 0.0, 0.0])
        np.testing.assert_allclose(inc.mech_rot_strain_increment, ZERO, atol=1e-20)
        assert inc.curvature_increment == 0.0

    def test_pure_bending(self):
        """z 軸周りの回転勾配: 曲率増分 = gr_z、回転ひずみ z 成分 = Iy·κ."""
        sec = _section()
        kappa = 0.01
        kin = StrainKinematics(sec)
        inc = kin.compute(
            L, np.eye(3), (ZERO, ZERO), (ZERO, np.array([0.0, 0.0, kappa * L])), StrainState()
        )
        avg = sec.averaged()
        assert inc.curvature_increment == pytest.approx(kappa)
        assert inc.mech_rot_strain_increment[2] == pytest.approx(avg.Iy * kappa)
        # 平均回転によるせん断ひずみ
        assert inc.mech_disp_strain_increment[1] == pytest.approx(-avg.A * kappa * L / 2.0)

    def test_first_moment_coupling(self):
        """Ay ≠ 0 で曲げが軸ひずみに連成."""
        sec = SectionProperties(
            area=0.02, second_moment_y=6e-5, second_moment_z=2e-5, first_moment_y=1e-4
        )
        kin = StrainKinematics(sec)
        inc = kin.compute(
            L, np.eye(3), (ZERO, ZERO), (ZERO, np.array([0.0, 0.0, 0.02])), StrainState()
        )
        assert inc.mech_disp_strain_increment[0] == pytest.approx(-0.01 * 1e-4)

    def test_totals_accumulate_in_global_frame(self):
        """全ひずみ = 前ステップ + Rᵀ @ 増分."""
        R = rotation_matrix_from_rotvec(np.array([0.0, 0.0, np.pi / 2]))
        kin = StrainKinematics(_section())
        old = StrainState(
            total_disp_strain=np.array([1.0, 2.0, 3.0]),
            total_rot_strain=np.array([0.1, 0.2, 0.3]),
        )
        inc = kin.compute(L, R, (ZERO, np.array([0.0, 0.01, 0.0])), (ZERO, ZERO), old)
        np.testing.assert_allclose(
            inc.total.total_disp_strain,
            old.total_disp_strain + R.T @ inc.mech_disp_strain_increment,
        )
        np.testing.assert_allclose(old.total_disp_strain, [1.0, 2.0, 3.0])

    def test_zero_increment(self):
        """増分ゼロでひずみ増分ゼロ、全ひずみ不変."""
        kin = StrainKinematics(_section())
        old = StrainState(total_disp_strain=np.array([1.0, 0.0, 0.0]))
        inc = kin.compute(L, np.eye(3), (ZERO, ZERO), (ZERO, ZERO), old)
        np.testing.assert_array_equal(inc.mech_disp_strain_increment, ZERO)
        np.testing.assert_array_equal(inc.total.total_disp_strain, [1.0, 0.0, 0.0])


class TestEigenstrain:
    """固有ひずみの除去."""

    def test_thermal_expansion_removed(self):
        """熱膨張と等しい軸ひずみは機械的ひずみゼロ、全ひずみは残る."""
        sec = _section()
        kin = StrainKinematics(sec, eigenstrain_names=["thermal"])
        eig = Eigenstrain(
            disp=np.array([0.005, 0.0, 0.0]), rot=ZERO, disp_old=ZERO, rot_old=ZERO
        )
        inc = kin.compute(
            L,
            np.eye(3),
            (ZERO, np.array([0.01, 0.0, 0.0])),
            (ZERO, ZERO),
            StrainState(),
            {"thermal": eig},
        )
        A = sec.averaged().A
        np.testing.assert_allclose(inc.mech_disp_strain_increment, ZERO, atol=1e-18)
        assert inc.total.total_disp_strain[0] == pytest.approx(A * 0.005)

    def test_rotational_eigenstrain_increment(self):
        """回転固有ひずみは現在値 - 前ステップ値を差し引く."""
        kin = StrainKinematics(_section(), eigenstrain_names=["curl"])
        eig = Eigenstrain(
            disp=ZERO,
            rot=np.array([0.0, 0.0, 3e-6]),
            disp_old=ZERO,
            rot_old=np.array([0.0, 0.0, 1e-6]),
        )
        inc = kin.compute(L, np.eye(3), (ZERO, ZERO), (ZERO, ZERO), StrainState(), {"curl": eig})
        np.testing.assert_allclose(inc.mech_rot_strain_increment, [0.0, 0.0, -2e-6])

    def test_missing_eigenstrain_rejected(self):
        """設定された固有ひずみが供給されない場合."""
        kin = StrainKinematics(_section(), eigenstrain_names=["thermal"])
        with pytest.raises(ConfigurationError):
            kin.compute(L, np.eye(3), (ZERO, ZERO), (ZERO, ZERO), StrainState(), {})


class TestLargeStrain:
    """大ひずみの2次項."""

    def test_axial_quadratic_term(self):
        """軸勾配 g に対して 0.5·g²·A が加わる."""
        sec = _section()
        A = sec.averaged().A
        g = 0.05
        d1 = np.array([g * L, 0.0, 0.0])
        small = StrainKinematics(sec).compute(L, np.eye(3), (ZERO, d1), (ZERO, ZERO), StrainState())
        large = StrainKinematics(sec, large_strain=True).compute(
            L, np.eye(3), (ZERO, d1), (ZERO, ZERO), StrainState()
        )
        diff = large.mech_disp_strain_increment - small.mech_disp_strain_increment
        np.testing.assert_allclose(diff, [0.5 * g * g * A, 0.0, 0.0], atol=1e-18)

    def test_hand_computed_terms(self):
        """全2次項の手計算値（A=2, Iy=3, Iz=5, Ix=8）."""
        sec = AveragedSection(A=2.0, Ay=0.0, Az=0.0, Iy=3.0, Iz=5.0, Ix=8.0)
        gd = np.array([0.1, 0.2, 0.4])
        gr = np.array([0.01, 0.04, 0.03])
        ar = np.array([0.01, 0.05, 0.03])
        disp, rot = large_strain_corrections(gd, gr, ar, sec)
        # 0.5·(0.21·2 + 0.03²·3 + 0.04²·5 + 0.01²·8), (ar × gd)·A
        np.testing.assert_allclose(disp, [0.21575, 0.002, 0.006], rtol=1e-12, atol=1e-15)
        # -ar1·gr2·Iy + ar2·gr1·Iz, (gd0·gr1 - gd1·gr0)·Iz, (gd0·gr2 - gd2·gr0)·Iy
        np.testing.assert_allclose(rot, [0.0015, 0.01, -0.003], rtol=1e-12, atol=1e-15)

    def test_shear_and_rotation_terms_from_nodes(self):
        """軸勾配 g と回転勾配 (0, r1, r2) の連成項が節点増分から得られる."""
        section = _section()
        sec = section.averaged()
        g, r1, r2 = 0.02, 0.03, -0.01
        d1 = np.array([g * L, 0.0, 0.0])
        rot1 = np.array([0.0, r1 * L, r2 * L])
        small = StrainKinematics(section).compute(
            L, np.eye(3), (ZERO, d1), (ZERO, rot1), StrainState()
        )
        large = StrainKinematics(section, large_strain=True).compute(
            L, np.eye(3), (ZERO, d1), (ZERO, rot1), StrainState()
        )
        # 平均回転 ar = (0, r1·L/2, r2·L/2)
        expected_disp = [
            0.5 * (g * g * sec.A + r2 * r2 * sec.Iy + r1 * r1 * sec.Iz),
            -0.5 * r2 * L * g * sec.A,
            0.5 * r1 * L * g * sec.A,
        ]
        expected_rot = [
            0.5 * L * r1 * r2 * (sec.Iz - sec.Iy),
            g * r1 * sec.Iz,
            g * r2 * sec.Iy,
        ]
        np.testing.assert_allclose(
            large.mech_disp_strain_increment - small.mech_disp_strain_increment,
            expected_disp,
            rtol=1e-10,
            atol=1e-18,
        )
        np.testing.assert_allclose(
            large.mech_rot_strain_increment - small.mech_rot_strain_increment,
            expected_rot,
            rtol=1e-10,
            atol=1e-18,
        )

    def test_first_moment_rejected(self):
        """大ひずみと非零の断面一次モーメントは併用不可."""
        sec = SectionProperties(
            area=0.02, second_moment_y=6e-5, second_moment_z=2e-5, first_moment_z=(0.0, 1e-4)
        )
        with pytest.raises(ConfigurationError):
            StrainKinematics(sec, large_strain=True)


class TestVectorPadding:
    """DOF ベクトルのゼロ埋め."""

    def test_pad_two_components(self):
        """2成分 → 3成分."""
        np.testing.assert_array_equal(as_vector3([1.0, 2.0]), [1.0, 2.0, 0.0])

    def test_too_many_components(self):
        """4成分は不可."""
        with pytest.raises(ConfigurationError):
            as_vector3([1.0, 2.0, 3.0, 4.0])
