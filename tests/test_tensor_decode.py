import struct
import unittest

import numpy as np

from yolo_detect.errors import ShapeError
from yolo_detect.tensor import OutputTensorView, decode, decode_arrays

from tests.helpers import make_output


class TestOutputTensorView(unittest.TestCase):
    def test_candidate_count_matches_length(self) -> None:
        for num_classes, num_candidates in [(1, 1), (2, 7), (80, 8400)]:
            flat = np.zeros((4 + num_classes) * num_candidates, dtype=np.float32)
            view = OutputTensorView(flat, num_classes)
            self.assertEqual(view.num_candidates, num_candidates)
            self.assertEqual(len(list(decode(flat, num_classes))), num_candidates)

    def test_not_divisible_raises_shape_error(self) -> None:
        flat = np.zeros(6 * 2 + 1, dtype=np.float32)
        with self.assertRaises(ShapeError):
            OutputTensorView(flat, 2)
        with self.assertRaises(ShapeError):
            decode(flat, 2)

    def test_shape_error_is_value_error(self) -> None:
        with self.assertRaises(ValueError):
            OutputTensorView([0.0] * 5, 2)

    def test_plane_major_accessors(self) -> None:
        out = make_output(
            boxes=[(0.1, 0.2, 0.3, 0.4), (0.5, 0.6, 0.7, 0.8)],
            scores=[(0.9, 0.05), (0.2, 0.6)],
        )
        view = OutputTensorView(out, 2)
        self.assertEqual(view.num_candidates, 2)
        self.assertAlmostEqual(view.cx(1), 0.5, places=6)
        self.assertAlmostEqual(view.cy(1), 0.6, places=6)
        self.assertAlmostEqual(view.w(0), 0.3, places=6)
        self.assertAlmostEqual(view.h(0), 0.4, places=6)
        self.assertAlmostEqual(view.score(1, 1), 0.6, places=6)
        self.assertEqual(view.boxes().shape, (2, 4))
        self.assertEqual(view.class_scores().shape, (2, 2))

    def test_accessors_bounds_checked(self) -> None:
        view = OutputTensorView(np.zeros(12, dtype=np.float32), 2)
        with self.assertRaises(IndexError):
            view.cx(2)
        with self.assertRaises(IndexError):
            view.score(2, 0)
        with self.assertRaises(IndexError):
            view.plane(6)

    def test_from_little_endian_bytes(self) -> None:
        values = [0.5, 0.5, 1.0, 1.0, 0.9]
        data = struct.pack("<5f", *values)
        view = OutputTensorView.from_bytes(data, 1)
        self.assertEqual(view.num_candidates, 1)
        self.assertAlmostEqual(view.score(0, 0), 0.9, places=6)

    def test_misaligned_bytes_rejected(self) -> None:
        with self.assertRaises(ShapeError):
            OutputTensorView(b"\x00" * 7, 1)

    def test_invalid_num_classes(self) -> None:
        with self.assertRaises(ValueError):
            OutputTensorView(np.zeros(8, dtype=np.float32), 0)


class TestDecode(unittest.TestCase):
    def test_best_class_and_order(self) -> None:
        out = make_output(
            boxes=[(0.5, 0.5, 0.2, 0.2), (0.3, 0.3, 0.1, 0.1), (0.7, 0.7, 0.1, 0.1)],
            scores=[(0.1, 0.8, 0.3), (0.6, 0.2, 0.1), (0.1, 0.2, 0.4)],
        )
        cands = list(decode(out, 3))
        self.assertEqual([c.index for c in cands], [0, 1, 2])
        self.assertEqual([c.class_id for c in cands], [1, 0, 2])
        self.assertAlmostEqual(cands[0].score, 0.8, places=6)
        self.assertAlmostEqual(cands[1].cx, 0.3, places=6)

    def test_tie_goes_to_first_class(self) -> None:
        out = make_output(boxes=[(0.5, 0.5, 0.1, 0.1)], scores=[(0.2, 0.7, 0.7)])
        (cand,) = decode(out, 3)
        self.assertEqual(cand.class_id, 1)

    def test_decode_arrays_matches_lazy_decode(self) -> None:
        rng = np.random.default_rng(3)
        flat = rng.random((4 + 5) * 40).astype(np.float32)
        view = OutputTensorView(flat, 5)
        boxes, class_ids, scores = decode_arrays(view)
        cands = list(decode(view, 5))
        self.assertTrue(np.array_equal(class_ids, [c.class_id for c in cands]))
        self.assertTrue(np.allclose(scores, [c.score for c in cands]))
        self.assertTrue(np.allclose(boxes[:, 0], [c.cx for c in cands]))

    def test_empty_tensor_decodes_to_nothing(self) -> None:
        self.assertEqual(list(decode(np.zeros((0,), dtype=np.float32), 80)), [])

    def test_view_class_count_mismatch(self) -> None:
        view = OutputTensorView(np.zeros(12, dtype=np.float32), 2)
        with self.assertRaises(ShapeError):
            decode(view, 3)

    def test_nan_score_does_not_hide_valid_class(self) -> None:
        out = make_output(
            boxes=[(0.5, 0.5, 0.2, 0.2), (0.3, 0.3, 0.1, 0.1)],
            scores=[(float("nan"), 0.9), (float("nan"), float("nan"))],
        )
        first, second = decode(out, 2)
        self.assertEqual(first.class_id, 1)
        self.assertAlmostEqual(first.score, 0.9, places=6)
        self.assertEqual(second.score, float("-inf"))


if __name__ == "__main__":
    unittest.main()
