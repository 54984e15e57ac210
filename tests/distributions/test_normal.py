import math
import unittest
import numpy as np
from cpmcmc.core.distributions import Normal1D

class TestNormal1D(unittest.TestCase):

    def setUp(self):
        self.mu = 15.0
        self.sigma = 5.0
        # fix RNG for reproducibility
        self.dist = Normal1D(mu=self.mu,
                             sigma=self.sigma,
                             rng=np.random.default_rng(123))

    def test_sample_shape(self):
        # single sample → shape (1,1)
        x1 = self.dist.sample(1)
        self.assertIsInstance(x1, np.ndarray)
        self.assertEqual(x1.shape, (1, 1))

        # multiple samples → shape (n,1)
        x10 = self.dist.sample(10)
        self.assertEqual(x10.shape, (10, 1))

    def test_density_log_density_shapes(self):
        scalar = 0.0
        arr1d = np.linspace(-1, 1, 5)         # shape (5,)
        arr2d = arr1d.reshape(5,1)            # shape (5,1)

        for fn in (self.dist.density, self.dist.log_density):
            self.assertEqual(fn(scalar).shape, (1,1))
            self.assertEqual(fn(arr1d).shape, (5,1))
            self.assertEqual(fn(arr2d).shape, (5,1))

    def test_log_density_keeps_normalizing_constant(self):
        x = 12.3
        expected = -0.5 * math.log(2 * math.pi) - math.log(self.sigma) - 0.5 * ((x - self.mu) / self.sigma) ** 2
        np.testing.assert_allclose(self.dist.log_density(x)[0, 0], expected, rtol=1e-12)

    def test_log_density_consistency(self):
        x = np.array([10.0, 15.0, 20.0])
        pdf = self.dist.density(x).ravel()
        logpdf = self.dist.log_density(x).ravel()
        np.testing.assert_allclose(logpdf, np.log(pdf), rtol=1e-7)

    def test_rejects_nonpositive_sigma(self):
        with self.assertRaises(ValueError):
            Normal1D(mu=0.0, sigma=0.0)
        with self.assertRaises(ValueError):
            Normal1D(mu=0.0, sigma=-1.0)

    def test_bad_value_shape_raises(self):
        with self.assertRaises(ValueError):
            self.dist.log_density(np.zeros((3, 2)))

if __name__ == "__main__":
    unittest.main()
