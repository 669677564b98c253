import logging
import os
import pathlib
import tempfile
import unittest

import numpy as np

from .aligner_cli import main
from .output import read_matrix, read_parameters
from .testutil import random_test_image, smooth_test_image, write_test_image


class AlignerCliTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.dir = pathlib.Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_parameters_output(self) -> None:
        image1 = write_test_image(self.dir / "a.tif", smooth_test_image(96, 96))
        image2 = write_test_image(self.dir / "b.tif", smooth_test_image(96, 96, shift=(1.0, -2.0)))
        outfile = self.dir / "out.txt"
        main([str(image1), str(image2), "--outfile", str(outfile), "--nparams", "2"])
        np.testing.assert_allclose(read_parameters(outfile), [1.0, -2.0], atol=0.05)

    def test_matrix_output(self) -> None:
        image = write_test_image(self.dir / "a.tif", smooth_test_image(64, 64))
        outfile = self.dir / "out.txt"
        main([str(image), str(image), "--outfile", str(outfile), "--output", "1", "--nparams", "6"])
        np.testing.assert_allclose(read_matrix(outfile), np.eye(3), atol=1e-6)

    def test_out_of_range_values_do_not_fail(self) -> None:
        image = write_test_image(self.dir / "a.tif", smooth_test_image(64, 64))
        outfile = self.dir / "out.txt"
        main([
            str(image), str(image), "--outfile", str(outfile),
            "--nparams", "5", "--zfactor", "3", "--robust", "9", "--output", "7",
        ])
        self.assertEqual(len(read_parameters(outfile)), 8)

    def test_verbose_run_quiets_image_decoder_logs(self) -> None:
        pil_logger = logging.getLogger("PIL")
        self.addCleanup(pil_logger.setLevel, pil_logger.level)
        image = write_test_image(self.dir / "a.png", random_test_image(64, 64, 1))
        outfile = self.dir / "out.txt"
        main([str(image), str(image), "--outfile", str(outfile), "--nparams", "2", "--verbose=true"])
        self.assertEqual(pil_logger.level, logging.INFO)
        self.assertEqual(len(read_parameters(outfile)), 2)

    def test_size_mismatch_exits_with_failure(self) -> None:
        image1 = write_test_image(self.dir / "a.png", random_test_image(64, 64, 3))
        image2 = write_test_image(self.dir / "b.png", random_test_image(32, 32, 3))
        outfile = self.dir / "out.txt"
        with self.assertRaises(SystemExit) as cm:
            main([str(image1), str(image2), "--outfile", str(outfile)])
        self.assertNotEqual(cm.exception.code, 0)
        self.assertFalse(os.path.exists(outfile))

    def test_unreadable_image_exits_with_failure(self) -> None:
        image1 = write_test_image(self.dir / "a.png", random_test_image(64, 64, 1))
        outfile = self.dir / "out.txt"
        with self.assertRaises(SystemExit) as cm:
            main([str(image1), str(self.dir / "missing.png"), "--outfile", str(outfile)])
        self.assertEqual(cm.exception.code, 1)
        self.assertFalse(os.path.exists(outfile))
