import pathlib
import tempfile
import unittest

from .output import OutputMode
from .parameters import AlignmentParameters
from .testutil import PARAMETERS_FIXTURE_FILE


def make_params(**kwargs) -> AlignmentParameters:
    return AlignmentParameters(image1="a.png", image2="b.png", **kwargs)


class ParametersTest(unittest.TestCase):
    def test_defaults(self) -> None:
        params = make_params()
        self.assertEqual(params.outfile, "transform.mat")
        self.assertEqual(params.output_mode, OutputMode.PARAMETERS)
        self.assertEqual(params.nscales, 0)
        self.assertEqual(params.zfactor, 0.5)
        self.assertEqual(params.tol, 0.001)
        self.assertEqual(params.nparams, 8)
        self.assertEqual(params.robust, 3)
        self.assertEqual(params.robust_lambda, 0.0)
        self.assertEqual(params.first_scale, 0)
        self.assertTrue(params.use_grayscale)
        self.assertEqual(params.delta, 5)
        self.assertTrue(params.nan_if_outside)
        self.assertEqual(params.gradient, 3)
        self.assertFalse(params.laplacian)
        self.assertFalse(params.verbose)

    def test_valid_values_are_kept(self) -> None:
        params = make_params(
            output=2, zfactor=0.75, tol=0.0, nparams=4, robust=0, robust_lambda=2.5,
            delta=0, graymethod=0, nanifoutside=0, gradient=5, nscales=-1,
        )
        self.assertEqual(params.output_mode, OutputMode.IMAGE)
        self.assertEqual(params.zfactor, 0.75)
        self.assertEqual(params.tol, 0.0)
        self.assertEqual(params.nparams, 4)
        self.assertEqual(params.robust, 0)
        self.assertEqual(params.robust_lambda, 2.5)
        self.assertEqual(params.delta, 0)
        self.assertFalse(params.use_grayscale)
        self.assertFalse(params.nan_if_outside)
        self.assertEqual(params.gradient, 5)
        self.assertEqual(params.nscales, -1)

    def test_invalid_nparams_replaced_by_default(self) -> None:
        for nparams in (0, 1, 5, 7, 9):
            with self.subTest(nparams=nparams):
                self.assertEqual(make_params(nparams=nparams).nparams, 8)

    def test_invalid_values_replaced_by_defaults(self) -> None:
        params = make_params(
            output=3, zfactor=1.0, tol=-1.0, robust=5, robust_lambda=-2.0,
            delta=-1, graymethod=2, nanifoutside=-1, gradient=6,
        )
        self.assertEqual(params.output, 0)
        self.assertEqual(params.zfactor, 0.5)
        self.assertEqual(params.tol, 0.001)
        self.assertEqual(params.robust, 3)
        self.assertEqual(params.robust_lambda, 0.0)
        self.assertEqual(params.delta, 5)
        self.assertEqual(params.graymethod, 1)
        self.assertEqual(params.nanifoutside, 1)
        self.assertEqual(params.gradient, 3)

    def test_substitutions_are_recorded(self) -> None:
        params = make_params(zfactor=3.0, nparams=5, delta=2)
        self.assertEqual(
            params.substitutions,
            [
                "Invalid zfactor=3.0, using default 0.5",
                "Invalid nparams=5, using default 8",
            ],
        )
        self.assertEqual(make_params().substitutions, [])

    def test_zoom_factor_bounds_are_exclusive(self) -> None:
        for zfactor in (0.0, 1.0, -0.3, 2.0):
            with self.subTest(zfactor=zfactor):
                self.assertEqual(make_params(zfactor=zfactor).zfactor, 0.5)

    def test_assignment_is_validated(self) -> None:
        params = make_params()
        params.nparams = 5
        self.assertEqual(params.nparams, 8)
        params.nparams = 2
        self.assertEqual(params.nparams, 2)

    def test_parsing(self) -> None:
        params = AlignmentParameters.from_json_file(str(PARAMETERS_FIXTURE_FILE))
        self.assertEqual(params.image1, "first.png")
        self.assertEqual(params.image2, "second.png:second_mask.png")
        self.assertEqual(params.output_mode, OutputMode.MATRIX)
        self.assertEqual(params.nparams, 6)

    def test_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            path = pathlib.Path(d) / "params.json"
            params = AlignmentParameters.from_json_file(str(PARAMETERS_FIXTURE_FILE))
            params.to_json_file(str(path))
            contents = path.read_text()

        with open(PARAMETERS_FIXTURE_FILE) as f:
            fixture_contents = f.read()

        self.assertEqual(contents, fixture_contents)

    def test_summary(self) -> None:
        summary = make_params(nparams=2).summary(nscales=3)
        self.assertIn("scales=3", summary)
        self.assertIn("transform type=2", summary)
