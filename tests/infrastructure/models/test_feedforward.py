import unittest

import numpy as np

from src.tapenet.domain._errors import ShapeError
from src.tapenet.infrastructure._config import Architecture, FreshSpec
from src.tapenet.infrastructure.models._factories import create_dnn, create_relu_dnn
from src.tapenet.infrastructure.models._feedforward import FeedForwardTopology
from src.tapenet.infrastructure.models._trainable import TrainableModel


def _options(hidden=(3,), inputs=2, outputs=1, seed=0, **training):
    return {
        "architecture": {
            "input_size": inputs,
            "hidden_units": list(hidden),
            "output_size": outputs,
        },
        "training": training,
        "seed": seed,
    }


def _manual_forward(topology, x, act):
    h = np.asarray(x, dtype=np.float64).reshape(-1, 1)
    for w, b in zip(topology.hidden_weights, topology.hidden_biases):
        h = act(w.to_numpy() @ h + b.to_numpy())
    return (topology.decoder_weight.to_numpy() @ h + topology.decoder_bias.to_numpy()).reshape(-1)


class TestFeedForwardConstruction(unittest.TestCase):
    def test_parameter_shapes_follow_architecture(self):
        model = create_dnn(_options(hidden=(4, 3), inputs=5, outputs=2))
        topo = model.topology
        self.assertEqual([w.shape for w in topo.hidden_weights], [(4, 5), (3, 4)])
        self.assertEqual([b.shape for b in topo.hidden_biases], [(4, 1), (3, 1)])
        self.assertEqual(topo.decoder_weight.shape, (2, 3))
        self.assertEqual(topo.decoder_bias.shape, (2, 1))
        self.assertEqual(len(model.parameters()), 6)

    def test_biases_start_at_zero_and_weights_within_spread(self):
        model = create_dnn(_options(hidden=(8,), inputs=6, outputs=3))
        topo = model.topology
        for b in topo.hidden_biases + [topo.decoder_bias]:
            self.assertTrue(np.all(b.values == 0.0))
        for w in topo.hidden_weights + [topo.decoder_weight]:
            self.assertTrue(np.all(np.abs(w.values) <= FeedForwardTopology.DEFAULT_STD + 1e-12))

    def test_seed_makes_initialization_reproducible(self):
        a = create_dnn(_options(seed=11))
        b = create_dnn(_options(seed=11))
        for pa, pb in zip(a.parameters(), b.parameters()):
            np.testing.assert_array_equal(pa.values, pb.values)

    def test_custom_mu_and_std(self):
        spec = FreshSpec(
            architecture=Architecture(input_size=3, hidden_units=(5,), output_size=1),
            mu=1.0,
            std=0.5,
            seed=2,
        )
        model = create_dnn(spec)
        w = model.topology.hidden_weights[0].values
        self.assertTrue(np.all(w >= 0.5 - 1e-12))
        self.assertTrue(np.all(w <= 1.5 + 1e-12))

    def test_unknown_activation(self):
        with self.assertRaises(ValueError):
            TrainableModel(_options(), FeedForwardTopology, activation="sigmoid")

    def test_unknown_initializer_policy(self):
        opts = _options()
        opts["initializer"] = "does_not_exist"
        with self.assertRaises(ValueError):
            create_dnn(opts)


class TestFeedForwardForward(unittest.TestCase):
    def test_tanh_forward_matches_numpy(self):
        model = create_dnn(_options(hidden=(4, 3), inputs=3, outputs=2, seed=5))
        x = [0.2, -0.4, 0.9]
        out = model.predict(x)
        np.testing.assert_allclose(out, _manual_forward(model.topology, x, np.tanh), atol=1e-12)

    def test_relu_forward_matches_numpy(self):
        model = create_relu_dnn(_options(hidden=(4,), inputs=3, outputs=2, seed=5))
        x = [0.2, -0.4, 0.9]
        out = model.predict(x)
        expected = _manual_forward(model.topology, x, lambda z: np.maximum(z, 0.0))
        np.testing.assert_allclose(out, expected, atol=1e-12)

    def test_hidden_state_lists_each_layer(self):
        model = create_dnn(_options(hidden=(4, 3), inputs=2, outputs=1))
        state = model.forward([0.1, 0.2])
        self.assertEqual([h.shape for h in state.hidden_activation_state], [(4, 1), (3, 1)])
        self.assertEqual(state.output.shape, (1,))

    def test_previous_state_is_ignored(self):
        model = create_dnn(_options())
        first = model.forward([0.1, 0.2])
        again = model.predict([0.1, 0.2], first.hidden_activation_state)
        np.testing.assert_array_equal(first.output, again)

    def test_repeated_predict_records_nothing(self):
        model = create_dnn(_options())
        for _ in range(1000):
            model.predict([0.1, 0.2])
        self.assertEqual(len(model.tape), 0)
        self.assertTrue(model.is_trainable())

    def test_predict_keeps_pending_forward_pass(self):
        model = create_dnn(_options(alpha=0.1))
        model.forward([0.1, 0.2])
        recorded = len(model.tape)
        model.predict([0.4, 0.4])
        self.assertEqual(len(model.tape), recorded)
        model.backward([1.0])
        self.assertEqual(len(model.tape), 0)

    def test_input_length_checked(self):
        model = create_dnn(_options())
        with self.assertRaises(ShapeError):
            model.forward([0.1])


class TestFeedForwardTraining(unittest.TestCase):
    def test_single_sample_converges(self):
        model = create_dnn(_options(hidden=(3,), inputs=2, outputs=1, seed=0, alpha=0.1))
        x, y = [0.3, -0.7], [0.5]
        losses = []
        for _ in range(300):
            model.forward(x)
            model.backward(y)
            losses.append(model.get_squared_loss_for(x, y))

        for before, after in zip(losses[5:], losses[6:]):
            self.assertLessEqual(after, before + 1e-15)
        self.assertLess(losses[-1], 1e-8)

    def test_learns_a_small_mapping(self):
        opts = _options(hidden=(8,), inputs=2, outputs=1, seed=1, alpha=0.05)
        opts["std"] = 0.5
        model = create_dnn(opts)
        x = [[0.0, 0.0], [0.0, 1.0], [1.0, 0.0], [1.0, 1.0]]
        y = [[0.1], [0.4], [0.4], [0.7]]
        model.fit(x, y, epochs=1000, rng=np.random.default_rng(0))
        final = sum(model.squared_error(a, b) for a, b in zip(x, y))
        self.assertLess(final, 0.02)

    def test_train_on_sample_reports_pre_update_error(self):
        model = create_dnn(_options(seed=4))
        x, y = [0.3, 0.1], [0.8]
        expected = model.squared_error(x, y)
        loss, hidden = model.train_on_sample(x, y)
        self.assertAlmostEqual(loss, expected, places=12)
        self.assertEqual(len(hidden), 1)
        self.assertLess(model.squared_error(x, y), expected)


if __name__ == "__main__":
    unittest.main()
