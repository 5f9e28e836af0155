import unittest

import numpy as np

from src.tapenet.domain._errors import (
    PrecedingForwardPassRequiredError,
    ShapeError,
    TrainabilityDisabledError,
)
from src.tapenet.infrastructure.models._factories import create_dnn


def _payload(rows, cols, values):
    return {"rows": rows, "cols": cols, "values": [float(v) for v in values]}


def _constant_output_model(bias=0.5, *, clamp=0.1, deadband=0.25, alpha=0.5):
    """1-1-1 network whose output is exactly `bias` (all weights zero)."""
    weights = {
        "hidden": {
            "weights": [_payload(1, 1, [0.0])],
            "biases": [_payload(1, 1, [0.0])],
        },
        "decoder": {"weight": _payload(1, 1, [0.0]), "bias": _payload(1, 1, [bias])},
    }
    return create_dnn(
        {
            "architecture": {"input_size": 1, "hidden_units": [1], "output_size": 1},
            "training": {"alpha": alpha, "loss_clamp": clamp, "loss_deadband": deadband},
            "weights": weights,
        }
    )


def _small_model(seed=0, **training):
    return create_dnn(
        {
            "architecture": {"input_size": 2, "hidden_units": [3], "output_size": 2},
            "training": training,
            "seed": seed,
        }
    )


class TestErrorInjection(unittest.TestCase):
    def test_error_exactly_at_deadband_injects_nothing(self):
        model = _constant_output_model()
        model.forward([1.0])
        out = model.last_output
        model.backward([0.25])  # diff == 0.25 == deadband
        self.assertEqual(out.gradient[0], 0.0)
        self.assertEqual(model.topology.decoder_bias.get(0), 0.5)

    def test_error_above_deadband_is_clamped_with_sign(self):
        model = _constant_output_model()
        model.forward([1.0])
        out = model.last_output
        model.backward([-0.75])  # diff = +1.25
        self.assertAlmostEqual(out.gradient[0], 0.1)
        self.assertAlmostEqual(model.topology.decoder_bias.get(0), 0.5 - 0.5 * 0.1)

        model.forward([1.0])
        out = model.last_output
        model.backward([1.75])  # diff = 0.45 - 1.75 = -1.3
        self.assertAlmostEqual(out.gradient[0], -0.1)
        self.assertAlmostEqual(model.topology.decoder_bias.get(0), 0.45 + 0.05)

    def test_error_within_clamp_is_written_unchanged(self):
        model = _constant_output_model(clamp=10.0, deadband=0.0)
        model.forward([1.0])
        out = model.last_output
        model.backward([0.2])
        self.assertAlmostEqual(out.gradient[0], 0.3)

    def test_alpha_override(self):
        model = _constant_output_model(clamp=1.0, deadband=0.0, alpha=0.5)
        model.forward([1.0])
        model.backward([0.0], alpha=0.1)
        self.assertAlmostEqual(model.topology.decoder_bias.get(0), 0.5 - 0.1 * 0.5)


class TestTrainingStepProtocol(unittest.TestCase):
    def test_backward_without_forward(self):
        model = _small_model()
        with self.assertRaises(PrecedingForwardPassRequiredError):
            model.backward([0.0, 0.0])

    def test_backward_while_not_trainable(self):
        model = _small_model()
        model.set_trainability(False)
        model.forward([0.1, 0.2])
        self.assertEqual(len(model.tape), 0)
        with self.assertRaises(TrainabilityDisabledError):
            model.backward([0.0, 0.0])

    def test_trainability_checked_before_forward_pass(self):
        model = _small_model()
        model.set_trainability(False)
        with self.assertRaises(TrainabilityDisabledError):
            model.backward([0.0, 0.0])

    def test_second_backward_needs_a_new_forward_pass(self):
        model = _small_model()
        model.forward([0.1, 0.2])
        model.backward([1.0, -1.0])
        self.assertIsNone(model.last_output)
        with self.assertRaises(PrecedingForwardPassRequiredError):
            model.backward([1.0, -1.0])

    def test_step_updates_every_parameter_and_clears_state(self):
        model = _small_model(alpha=0.1)
        before = [p.values.copy() for p in model.parameters()]
        model.forward([0.5, -0.5])
        self.assertGreater(len(model.tape), 0)
        model.backward([1.0, -1.0])

        self.assertEqual(len(model.tape), 0)
        for p, old in zip(model.parameters(), before):
            self.assertTrue(np.all(p.gradient == 0.0))
            self.assertFalse(np.array_equal(p.values, old), msg=f"{p} was not updated")

    def test_bad_target_mutates_nothing(self):
        model = _small_model()
        before = [p.values.copy() for p in model.parameters()]
        model.forward([0.5, -0.5])
        recorded = len(model.tape)
        out = model.last_output

        with self.assertRaises(ShapeError):
            model.backward([1.0])

        self.assertEqual(len(model.tape), recorded)
        self.assertIs(model.last_output, out)
        self.assertTrue(np.all(out.gradient == 0.0))
        for p, old in zip(model.parameters(), before):
            np.testing.assert_array_equal(p.values, old)
            self.assertTrue(np.all(p.gradient == 0.0))

    def test_non_positive_alpha_rejected_before_mutation(self):
        model = _small_model()
        before = [p.values.copy() for p in model.parameters()]
        model.forward([0.5, -0.5])
        with self.assertRaises(ValueError):
            model.backward([1.0, 1.0], alpha=0.0)
        for p, old in zip(model.parameters(), before):
            np.testing.assert_array_equal(p.values, old)

    def test_wrong_input_length(self):
        model = _small_model()
        with self.assertRaises(ShapeError):
            model.forward([1.0, 2.0, 3.0])

    def test_set_trainability_discards_pending_pass(self):
        model = _small_model()
        model.forward([0.1, 0.2])
        model.set_trainability(True)
        self.assertEqual(len(model.tape), 0)
        self.assertTrue(model.is_trainable())
        with self.assertRaises(PrecedingForwardPassRequiredError):
            model.backward([0.0, 0.0])


class TestLossEvaluation(unittest.TestCase):
    def test_squared_loss_is_square_of_summed_error(self):
        model = _small_model(seed=3)
        x, y = [0.3, -0.1], [0.5, -0.2]
        out = model.predict(x)
        expected = float(np.sum(out - np.asarray(y))) ** 2
        self.assertAlmostEqual(model.get_squared_loss_for(x, y), expected, places=12)
        self.assertAlmostEqual(
            model.squared_error(x, y), float(np.sum((out - np.asarray(y)) ** 2)), places=12
        )

    def test_loss_evaluation_restores_trainability_and_records_nothing(self):
        model = _small_model()
        model.get_squared_loss_for([0.3, -0.1], [0.5, -0.2])
        self.assertTrue(model.is_trainable())
        self.assertEqual(len(model.tape), 0)

        model.set_trainability(False)
        model.get_squared_loss_for([0.3, -0.1], [0.5, -0.2])
        self.assertFalse(model.is_trainable())

    def test_loss_evaluation_does_not_change_parameters(self):
        model = _small_model()
        before = [p.values.copy() for p in model.parameters()]
        model.squared_error([0.3, -0.1], [5.0, -5.0])
        for p, old in zip(model.parameters(), before):
            np.testing.assert_array_equal(p.values, old)


if __name__ == "__main__":
    unittest.main()
