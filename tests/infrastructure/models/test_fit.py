import io
import unittest
from contextlib import redirect_stdout

import numpy as np

from src.tapenet.domain._errors import TrainabilityDisabledError
from src.tapenet.infrastructure.models._factories import create_dnn
from src.tapenet.infrastructure.models._history import History


def _model(seed=0):
    return create_dnn(
        {
            "architecture": {"input_size": 1, "hidden_units": [4], "output_size": 1},
            "training": {"alpha": 0.05},
            "seed": seed,
        }
    )


X = [[0.0], [0.5], [1.0]]
Y = [[0.2], [0.4], [0.6]]


class TestHistory(unittest.TestCase):
    def test_append_and_last(self):
        h = History()
        h.append_epoch(0, {"loss": 2})
        h.append_epoch(1, {"loss": 1.5})
        self.assertEqual(len(h), 2)
        self.assertEqual(h.epoch, [0, 1])
        self.assertEqual(h.history["loss"], [2.0, 1.5])
        self.assertIsInstance(h.history["loss"][0], float)
        self.assertEqual(h.last(), {"loss": 1.5})

    def test_last_of_empty_history(self):
        self.assertEqual(History().last(), {})

    def test_extend_renumbers_epochs(self):
        a, b = History(), History()
        a.append_epoch(0, {"loss": 3.0})
        b.append_epoch(0, {"loss": 2.0})
        b.append_epoch(1, {"loss": 1.0})
        a.extend(b)
        self.assertEqual(a.epoch, [0, 1, 2])
        self.assertEqual(a.history["loss"], [3.0, 2.0, 1.0])


class TestFit(unittest.TestCase):
    def test_history_has_one_entry_per_epoch(self):
        hist = _model().fit(X, Y, epochs=5)
        self.assertEqual(len(hist), 5)
        self.assertEqual(hist.epoch, [0, 1, 2, 3, 4])
        self.assertEqual(len(hist.history["loss"]), 5)

    def test_loss_decreases(self):
        hist = _model().fit(X, Y, epochs=50, rng=np.random.default_rng(0))
        self.assertLess(hist.history["loss"][-1], hist.history["loss"][0])

    def test_same_seed_and_rng_reproduce_run(self):
        a = _model(seed=2).fit(X, Y, epochs=3, rng=np.random.default_rng(9))
        b = _model(seed=2).fit(X, Y, epochs=3, rng=np.random.default_rng(9))
        self.assertEqual(a.history["loss"], b.history["loss"])

    def test_leaves_no_pending_pass(self):
        model = _model()
        model.fit(X, Y, epochs=2)
        self.assertEqual(len(model.tape), 0)
        self.assertIsNone(model.last_output)

    def test_verbose_prints_epoch_summary(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            _model().fit(X, Y, epochs=2, verbose=1)
        lines = buf.getvalue().strip().splitlines()
        self.assertEqual(len(lines), 2)
        self.assertTrue(lines[0].startswith("Epoch 1/2 - loss: "))

    def test_silent_by_default(self):
        buf = io.StringIO()
        with redirect_stdout(buf):
            _model().fit(X, Y, epochs=2)
        self.assertEqual(buf.getvalue(), "")

    def test_logs_each_epoch(self):
        with self.assertLogs("src.tapenet.infrastructure.models._trainable", level="INFO") as cm:
            _model().fit(X, Y, epochs=3)
        self.assertEqual(len(cm.output), 3)
        self.assertIn("epoch 3/3", cm.output[-1])

    def test_invalid_arguments(self):
        model = _model()
        with self.assertRaises(ValueError):
            model.fit(X, Y[:2])
        with self.assertRaises(ValueError):
            model.fit([], [])
        with self.assertRaises(ValueError):
            model.fit(X, Y, epochs=0)

    def test_requires_trainability(self):
        model = _model()
        model.set_trainability(False)
        with self.assertRaises(TrainabilityDisabledError):
            model.fit(X, Y)


if __name__ == "__main__":
    unittest.main()
