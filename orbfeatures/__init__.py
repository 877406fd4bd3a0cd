"""ORB keypoint extraction, rotated BRIEF descriptors and matching helpers for greyscale images."""

__version__ = "0.1.0"