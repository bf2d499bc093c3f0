"""Audio capture, segmentation and normalization helpers."""
