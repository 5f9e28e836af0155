import unittest

import numpy as np

from src.tapenet.infrastructure._tensor import Tensor
from src.tapenet.infrastructure.utils.weight_initializer import (
    WeightInitializer,
    random_tensor,
)


class TestWeightInitializerRegistry(unittest.TestCase):
    def tearDown(self) -> None:
        WeightInitializer.INITIALIZERS.pop("test_constant", None)

    def test_builtin_policies_are_registered(self):
        names = WeightInitializer.available()
        self.assertIn("uniform", names)
        self.assertIn("truncated_normal", names)
        self.assertEqual(list(names), sorted(names))

    def test_unknown_policy_raises_value_error(self):
        with self.assertRaises(ValueError) as cm:
            WeightInitializer("gaussian_unbounded")
        self.assertIn("uniform", str(cm.exception))

    def test_register_and_dispatch_custom_policy(self):
        @WeightInitializer.register_initializer("test_constant")
        def constant(tensor, *, mu, std, rng=None):
            tensor.load_from(np.full(tensor.size, mu))
            return tensor

        self.assertIs(WeightInitializer.get("test_constant"), constant)
        t = WeightInitializer("test_constant")(Tensor(2, 2), mu=0.25, std=0.0)
        np.testing.assert_array_equal(t.values, [0.25] * 4)

    def test_duplicate_registration_requires_overwrite(self):
        @WeightInitializer.register_initializer("test_constant")
        def first(tensor, **kwargs):
            return tensor

        with self.assertRaises(ValueError):

            @WeightInitializer.register_initializer("test_constant")
            def second(tensor, **kwargs):
                return tensor

        @WeightInitializer.register_initializer("test_constant", overwrite=True)
        def third(tensor, **kwargs):
            return tensor

        self.assertIs(WeightInitializer.get("test_constant"), third)

    def test_empty_name_rejected(self):
        with self.assertRaises(ValueError):
            WeightInitializer.register_initializer("")


class TestBoundedPolicies(unittest.TestCase):
    def test_uniform_stays_within_half_width(self):
        t = random_tensor(200, 50, 0.5, 0.1, rng=np.random.default_rng(0))
        self.assertEqual(t.shape, (200, 50))
        self.assertGreaterEqual(float(t.values.min()), 0.4)
        self.assertLessEqual(float(t.values.max()), 0.6)
        self.assertAlmostEqual(float(t.values.mean()), 0.5, delta=5e-3)
        self.assertTrue(np.all(t.gradient == 0.0))

    def test_truncated_normal_stays_within_two_deviations(self):
        t = random_tensor(
            200, 50, -0.2, 0.05, policy="truncated_normal", rng=np.random.default_rng(0)
        )
        self.assertGreaterEqual(float(t.values.min()), -0.3 - 1e-12)
        self.assertLessEqual(float(t.values.max()), -0.1 + 1e-12)
        self.assertAlmostEqual(float(t.values.mean()), -0.2, delta=5e-3)
        self.assertTrue(np.all(t.gradient == 0.0))

    def test_same_seed_same_values(self):
        a = random_tensor(4, 3, 0.0, 0.08, rng=np.random.default_rng(7))
        b = random_tensor(4, 3, 0.0, 0.08, rng=np.random.default_rng(7))
        np.testing.assert_array_equal(a.values, b.values)

    def test_global_random_state_is_used_without_rng(self):
        np.random.seed(3)
        a = random_tensor(3, 3, 0.0, 1.0)
        np.random.seed(3)
        b = random_tensor(3, 3, 0.0, 1.0)
        np.testing.assert_array_equal(a.values, b.values)

    def test_zero_spread_is_constant(self):
        for policy in ("uniform", "truncated_normal"):
            t = random_tensor(2, 2, 0.3, 0.0, policy=policy)
            np.testing.assert_allclose(t.values, [0.3] * 4)

    def test_negative_spread_rejected(self):
        with self.assertRaises(ValueError):
            random_tensor(2, 2, 0.0, -0.1)


if __name__ == "__main__":
    unittest.main()
