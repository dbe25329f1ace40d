import unittest

import numpy as np

from yolo_detect.class_names import ClassNameResolver
from yolo_detect.postprocess import YoloPostConfig, YoloPostprocessor, filter_candidates, to_pixel_box
from yolo_detect.types import Candidate

from tests.helpers import make_output


def _cand(index, score, box=(0.5, 0.5, 0.2, 0.2), class_id=0):
    cx, cy, w, h = box
    return Candidate(index=index, cx=cx, cy=cy, w=w, h=h, class_id=class_id, score=score)


class TestFilterCandidates(unittest.TestCase):
    def test_pixel_box_transform(self) -> None:
        box = to_pixel_box(_cand(0, 0.9), (640, 640))
        self.assertAlmostEqual(box.left, 256.0, places=6)
        self.assertAlmostEqual(box.top, 256.0, places=6)
        self.assertAlmostEqual(box.width, 128.0, places=6)
        self.assertAlmostEqual(box.height, 128.0, places=6)

    def test_pixel_box_uses_width_and_height_separately(self) -> None:
        box = to_pixel_box(_cand(0, 0.9, box=(0.5, 0.25, 0.5, 0.5)), (200, 100))
        self.assertAlmostEqual(box.left, 50.0)
        self.assertAlmostEqual(box.top, 0.0)
        self.assertAlmostEqual(box.width, 100.0)
        self.assertAlmostEqual(box.height, 50.0)

    def test_boxes_are_not_clamped(self) -> None:
        box = to_pixel_box(_cand(0, 0.9, box=(0.05, 0.95, 0.2, 0.2)), (100, 100))
        self.assertLess(box.left, 0.0)
        self.assertGreater(box.bottom, 100.0)

    def test_threshold_is_strict(self) -> None:
        cands = [_cand(0, 0.5), _cand(1, 0.50001), _cand(2, 0.2), _cand(3, 1.0)]
        kept = list(filter_candidates(cands, 0.5, (640, 480)))
        self.assertEqual([d.index for d in kept], [1, 3])

    def test_every_kept_score_exceeds_threshold(self) -> None:
        rng = np.random.default_rng(7)
        cands = [_cand(i, float(s)) for i, s in enumerate(rng.random(200))]
        for t in (0.0, 0.25, 0.5, 0.9, 1.0):
            kept = list(filter_candidates(cands, t, (10, 10)))
            self.assertTrue(all(d.confidence > t for d in kept))
            self.assertEqual(len(kept), sum(1 for c in cands if c.score > t))


class TestYoloPostprocessor(unittest.TestCase):
    def test_two_candidate_scenario(self) -> None:
        out = make_output(
            boxes=[(0.5, 0.5, 1.0, 1.0), (0.5, 0.5, 0.98, 0.98)],
            scores=[(0.9, 0.0), (0.0, 0.3)],
        )
        post = YoloPostprocessor(YoloPostConfig(num_classes=2), ClassNameResolver(["a", "b"]))
        dets = post.process(out, (640, 640), conf_threshold=0.5, iou_threshold=0.5)
        self.assertEqual(len(dets), 1)
        self.assertEqual(dets[0].class_id, 0)
        self.assertAlmostEqual(dets[0].confidence, 0.9, places=6)
        self.assertEqual(dets[0].class_name, "a")

    def test_overlapping_boxes_suppressed_across_classes(self) -> None:
        out = make_output(
            boxes=[(0.5, 0.5, 0.4, 0.4), (0.51, 0.5, 0.4, 0.4), (0.1, 0.1, 0.1, 0.1)],
            scores=[(0.7, 0.1), (0.1, 0.8), (0.6, 0.0)],
        )
        post = YoloPostprocessor(YoloPostConfig(num_classes=2))
        dets = post.process(out, (100, 100))
        self.assertEqual([d.index for d in dets], [1, 2])
        self.assertEqual(dets[0].class_name, "bicycle")
        self.assertEqual(dets[1].class_name, "person")

    def test_no_detections_is_empty_list(self) -> None:
        out = make_output(boxes=[(0.5, 0.5, 0.1, 0.1)], scores=[(0.1, 0.2)])
        post = YoloPostprocessor(YoloPostConfig(num_classes=2))
        self.assertEqual(post.process(out, (10, 10)), [])

    def test_unknown_class_gets_no_name(self) -> None:
        out = make_output(boxes=[(0.5, 0.5, 0.1, 0.1)], scores=[(0.1, 0.9)])
        post = YoloPostprocessor(YoloPostConfig(num_classes=2), ClassNameResolver(["only"]))
        (det,) = post.process(out, (10, 10))
        self.assertEqual(det.class_id, 1)
        self.assertIsNone(det.class_name)

    def test_max_detections_caps_output(self) -> None:
        boxes = [(0.05 + 0.1 * i, 0.5, 0.05, 0.05) for i in range(8)]
        scores = [(0.6 + 0.04 * i,) for i in range(8)]
        post = YoloPostprocessor(YoloPostConfig(num_classes=1, max_detections=3))
        dets = post.process(make_output(boxes, scores), (100, 100))
        self.assertEqual([d.index for d in dets], [7, 6, 5])

    def test_without_nms_sorted_by_score(self) -> None:
        out = make_output(
            boxes=[(0.5, 0.5, 0.4, 0.4), (0.5, 0.5, 0.4, 0.4)],
            scores=[(0.6,), (0.8,)],
        )
        post = YoloPostprocessor(YoloPostConfig(num_classes=1, apply_nms=False))
        dets = post.process(out, (100, 100))
        self.assertEqual([d.index for d in dets], [1, 0])


if __name__ == "__main__":
    unittest.main()
