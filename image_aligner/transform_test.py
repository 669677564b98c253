import math
import os
import unittest
from unittest import mock

import numpy as np

from .transform import (
    TransformSeeds,
    TransformType,
    apply_matrix,
    compose_inverse,
    initial_parameters,
    jacobian,
    matrix_to_params,
    params_to_matrix,
    zoom_parameters,
)

SAMPLE_PARAMS = {
    2: [3.0, -2.0],
    3: [3.0, -2.0, 0.1],
    4: [3.0, -2.0, 0.05, 0.02],
    6: [3.0, -2.0, 0.05, 0.01, -0.02, 0.03],
    8: [0.05, 0.01, 3.0, -0.02, 0.03, -2.0, 1e-4, -2e-4],
}


class ParamsToMatrixTest(unittest.TestCase):
    def test_translation(self) -> None:
        m = params_to_matrix([3.5, -1.25], 2)
        np.testing.assert_array_equal(
            m, [[1.0, 0.0, 3.5], [0.0, 1.0, -1.25], [0.0, 0.0, 1.0]]
        )

    def test_euclidean(self) -> None:
        theta = 0.3
        m = params_to_matrix([1.0, 2.0, theta], 3)
        c, s = math.cos(theta), math.sin(theta)
        np.testing.assert_allclose(m, [[c, -s, 1.0], [s, c, 2.0], [0.0, 0.0, 1.0]])

    def test_similarity(self) -> None:
        m = params_to_matrix([1.0, 2.0, 0.1, 0.2], 4)
        np.testing.assert_allclose(m, [[1.1, -0.2, 1.0], [0.2, 1.1, 2.0], [0.0, 0.0, 1.0]])

    def test_affinity(self) -> None:
        m = params_to_matrix([1.0, 2.0, 0.1, 0.2, 0.3, 0.4], 6)
        np.testing.assert_allclose(m, [[1.1, 0.2, 1.0], [0.3, 1.4, 2.0], [0.0, 0.0, 1.0]])

    def test_homography(self) -> None:
        m = params_to_matrix([0.1, 0.2, 3.0, 0.4, 0.5, 6.0, 0.7, 0.8], 8)
        np.testing.assert_allclose(m, [[1.1, 0.2, 3.0], [0.4, 1.5, 6.0], [0.7, 0.8, 1.0]])

    def test_zero_parameters_give_identity(self) -> None:
        for t in TransformType:
            np.testing.assert_array_equal(params_to_matrix(np.zeros(t.nparams), t.nparams), np.eye(3))

    def test_deterministic(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            np.testing.assert_array_equal(
                params_to_matrix(p, nparams), params_to_matrix(list(p), nparams)
            )

    def test_invalid_nparams(self) -> None:
        with self.assertRaises(ValueError):
            params_to_matrix(np.zeros(5), 5)


class MatrixToParamsTest(unittest.TestCase):
    def test_inverse_of_params_to_matrix(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            with self.subTest(nparams=nparams):
                np.testing.assert_allclose(
                    matrix_to_params(params_to_matrix(p, nparams), nparams), p, atol=1e-12
                )

    def test_homography_is_normalized(self) -> None:
        p = SAMPLE_PARAMS[8]
        m = 2.0 * params_to_matrix(p, 8)
        np.testing.assert_allclose(matrix_to_params(m, 8), p, atol=1e-12)


class InitialParametersTest(unittest.TestCase):
    def setUp(self) -> None:
        self.seeds = TransformSeeds(
            P0=1.0, P1=2.0, P2=3.0, P3=4.0, P4=5.0, P5=6.0, P6=7.0, P7=8.0
        )

    def test_positional_assignment(self) -> None:
        for t in TransformType:
            with self.subTest(model=t.name):
                p = initial_parameters(t.nparams, self.seeds)
                np.testing.assert_array_equal(p, np.arange(1.0, t.nparams + 1))

    def test_defaults_are_zero(self) -> None:
        with mock.patch.dict(os.environ, {}, clear=True):
            np.testing.assert_array_equal(initial_parameters(8), np.zeros(8))

    def test_seeds_from_environment(self) -> None:
        with mock.patch.dict(os.environ, {"P0": "1.5", "P1": "-2", "P7": "0.25"}, clear=True):
            seeds = TransformSeeds()
        self.assertEqual(seeds.as_tuple(), (1.5, -2.0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.25))
        np.testing.assert_array_equal(initial_parameters(2, seeds), [1.5, -2.0])

    def test_non_numeric_seed_counts_as_zero(self) -> None:
        with mock.patch.dict(os.environ, {"P0": "abc", "P1": "2.5"}, clear=True):
            seeds = TransformSeeds()
        np.testing.assert_array_equal(initial_parameters(2, seeds), [0.0, 2.5])

    def test_invalid_nparams(self) -> None:
        with self.assertRaises(ValueError):
            initial_parameters(5, self.seeds)


class CompositionTest(unittest.TestCase):
    def test_compose_with_zero_update(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            with self.subTest(nparams=nparams):
                np.testing.assert_allclose(
                    compose_inverse(p, np.zeros(nparams), nparams), p, atol=1e-12
                )

    def test_compose_with_itself_gives_identity(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            with self.subTest(nparams=nparams):
                np.testing.assert_allclose(
                    compose_inverse(p, p, nparams), np.zeros(nparams), atol=1e-12
                )

    def test_translations_subtract(self) -> None:
        np.testing.assert_allclose(compose_inverse([3.0, 1.0], [1.0, 2.0], 2), [2.0, -1.0])


class ZoomParametersTest(unittest.TestCase):
    def test_translation_scales(self) -> None:
        np.testing.assert_allclose(zoom_parameters([4.0, -2.0], 2, 0.5), [2.0, -1.0])

    def test_zoom_round_trip(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            with self.subTest(nparams=nparams):
                zoomed = zoom_parameters(p, nparams, 0.25)
                np.testing.assert_allclose(zoom_parameters(zoomed, nparams, 4.0), p, atol=1e-12)

    def test_zoomed_transform_maps_zoomed_points(self) -> None:
        for nparams, p in SAMPLE_PARAMS.items():
            with self.subTest(nparams=nparams):
                x, y = np.array([10.0, 40.0]), np.array([20.0, 5.0])
                xp, yp = apply_matrix(params_to_matrix(p, nparams), x, y)
                zoomed = params_to_matrix(zoom_parameters(p, nparams, 0.5), nparams)
                xz, yz = apply_matrix(zoomed, 0.5 * x, 0.5 * y)
                np.testing.assert_allclose(xz, 0.5 * xp)
                np.testing.assert_allclose(yz, 0.5 * yp)


class JacobianTest(unittest.TestCase):
    def test_matches_finite_differences(self) -> None:
        x, y = np.array([3.0, 17.0, 40.0]), np.array([5.0, 11.0, 2.0])
        eps = 1e-8
        for t in TransformType:
            with self.subTest(model=t.name):
                jac = jacobian(t.nparams, x, y)
                self.assertEqual(jac.shape, (3, 2, t.nparams))
                for k in range(t.nparams):
                    dp = np.zeros(t.nparams)
                    dp[k] = eps
                    xp, yp = apply_matrix(params_to_matrix(dp, t.nparams), x, y)
                    np.testing.assert_allclose((xp - x) / eps, jac[:, 0, k], rtol=1e-5, atol=1e-4)
                    np.testing.assert_allclose((yp - y) / eps, jac[:, 1, k], rtol=1e-5, atol=1e-4)
