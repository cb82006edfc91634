from __future__ import annotations

from abc import ABC, abstractmethod

import cv2
import numpy as np
import pytesseract
from pytesseract import Output as _TessOutput

from .config import OCR_MAX_WIDTH, OCR_MIN_WIDTH, OCR_MIN_CONF, OCR_PSM, OCR_LANG
from .errors import ExtractionFailure
from .log import dbg2
from .models import RecognizedText, Region


class TextRecognizer(ABC):
    """
    OCR engine boundary.

    recognize() returns the literal lines found inside region, in reading
    order, and raises ExtractionFailure when that one region cannot be read.
    Any other exception means the engine itself is broken.
    """

    @abstractmethod
    def recognize(self, image, region: Region) -> list[RecognizedText]:
        raise NotImplementedError


def crop_region(image, region: Region):
    if image is None or getattr(image, "size", 0) == 0:
        raise ExtractionFailure("empty image")
    h, w = image.shape[:2]
    x0, y0 = max(0, region.left), max(0, region.top)
    x1, y1 = min(w, region.right), min(h, region.bottom)
    if x1 <= x0 or y1 <= y0:
        raise ExtractionFailure(f"region {region.as_tuple()} outside image {w}x{h}")
    return image[y0:y1, x0:x1]


def _prep_roi_for_ocr(roi, min_w=OCR_MIN_WIDTH, max_w=OCR_MAX_WIDTH):
    """Grayscale, rescale into [min_w, max_w], returns (gray, scale)."""
    if roi.dtype != np.uint8:
        roi = np.clip(roi, 0, 255).astype(np.uint8)
    if roi.ndim == 3:
        gray = cv2.cvtColor(roi, cv2.COLOR_BGR2GRAY)
    else:
        gray = roi
    h, w = gray.shape[:2]
    scale = 1.0
    if max_w and w > max_w:
        scale = max_w / float(w)
        gray = cv2.resize(gray, (max(1, int(w * scale)), max(1, int(h * scale))), interpolation=cv2.INTER_AREA)
    elif min_w and w < min_w:
        scale = min_w / float(w)
        gray = cv2.resize(gray, (max(1, int(w * scale)), max(1, int(h * scale))), interpolation=cv2.INTER_CUBIC)
    return gray, scale


class TesseractRecognizer(TextRecognizer):
    """pytesseract-backed recognizer; one RecognizedText per tesseract line."""

    def __init__(self, psm=OCR_PSM, lang=OCR_LANG, min_conf=OCR_MIN_CONF):
        self.psm = psm
        self.lang = lang
        self.min_conf = float(min_conf)

    def recognize(self, image, region):
        roi = crop_region(image, region)
        gray, scale = _prep_roi_for_ocr(roi)
        config = f"--psm {self.psm} --oem 3"
        # TesseractNotFoundError is not caught: a missing engine fails the whole run
        try:
            data = pytesseract.image_to_data(gray, lang=self.lang, output_type=_TessOutput.DICT, config=config)
        except (pytesseract.TesseractError, RuntimeError) as e:
            raise ExtractionFailure(f"tesseract failed: {e}") from e
        lines = self._group_lines(data, scale, region)
        dbg2("OCR", f"region={region.as_tuple()} lines={len(lines)}")
        return lines

    def _group_lines(self, data, scale, region):
        # tesseract numbers lines within (block, paragraph); words share that key
        lines = {}
        order = []
        n = len(data.get("text", []))
        for i in range(n):
            txt = (data["text"][i] or "").strip()
            if not txt:
                continue
            try:
                conf = float(data["conf"][i])
            except (TypeError, ValueError):
                conf = -1.0
            if conf < self.min_conf:
                continue
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            if key not in lines:
                lines[key] = {"words": [], "confs": [], "box": None}
                order.append(key)
            x, y = data["left"][i], data["top"][i]
            bw, bh = data["width"][i], data["height"][i]
            box = (x, y, x + bw, y + bh)
            ent = lines[key]
            ent["words"].append(txt)
            ent["confs"].append(conf / 100.0)
            if ent["box"] is None:
                ent["box"] = box
            else:
                b = ent["box"]
                ent["box"] = (min(b[0], box[0]), min(b[1], box[1]), max(b[2], box[2]), max(b[3], box[3]))

        out = []
        for key in order:
            ent = lines[key]
            b = ent["box"]
            bbox = (
                region.left + int(b[0] / scale),
                region.top + int(b[1] / scale),
                region.left + int(b[2] / scale),
                region.top + int(b[3] / scale),
            )
            conf = sum(ent["confs"]) / len(ent["confs"])
            out.append(RecognizedText(" ".join(ent["words"]), bbox, max(0.0, min(1.0, conf))))
        return out
