"""
Grayscale preprocessing for the detector and the energy scorers.

Responsibility:
    Convert a raw frame (numpy array) into a float64 luminance buffer
    and rescale such buffers for the detector.

Non-goals:
    - No frame acquisition or I/O.
    - No filtering beyond the luminance conversion.

Hard-coded:
    - Colour frames are BGR (OpenCV channel order).
    - Luminance weights are the YUV ones: 0.299 R + 0.587 G + 0.114 B.
"""

import numpy as np

LUMA_RED = 0.299
LUMA_GREEN = 0.587
LUMA_BLUE = 0.114


def rgb_to_luminance(r: float, g: float, b: float) -> float:
    """Return the YUV-weighted grayscale value of one RGB pixel."""
    return (r * LUMA_RED) + (g * LUMA_GREEN) + (b * LUMA_BLUE)


def to_grayscale(frame: np.ndarray) -> np.ndarray:
    """Convert a frame into a 2D float64 luminance buffer.

    Args:
        frame: Either a 2D grayscale array (H, W), a single-channel
               array (H, W, 1) or a BGR array (H, W, 3).

    Returns:
        A float64 array of shape (H, W).

    Raises:
        TypeError: If frame is not a numpy ndarray.
        ValueError: If the frame layout is not supported.
    """
    if not isinstance(frame, np.ndarray):
        raise TypeError(
            f"Expected frame to be a numpy ndarray, got {type(frame).__name__}."
        )

    if frame.ndim == 2:
        return frame.astype(np.float64)

    if frame.ndim == 3 and frame.shape[2] == 1:
        return frame[:, :, 0].astype(np.float64)

    if frame.ndim == 3 and frame.shape[2] == 3:
        pixels = frame.astype(np.float64)
        return rgb_to_luminance(pixels[:, :, 2], pixels[:, :, 1], pixels[:, :, 0])

    raise ValueError(
        f"Expected a grayscale (H, W) or BGR (H, W, 3) frame, "
        f"got shape {frame.shape}."
    )


def rescale_nearest(gray: np.ndarray, scale: float) -> np.ndarray:
    """Nearest-neighbour rescale of a 2D buffer.

    The output is floor(W * scale) x floor(H * scale); each output pixel
    takes the value of source pixel (floor(x / scale), floor(y / scale)).
    """
    if scale == 1.0:
        return gray

    height, width = gray.shape
    new_width = int(width * scale)
    new_height = int(height * scale)

    src_x = np.minimum((np.arange(new_width) / scale).astype(np.int64), width - 1)
    src_y = np.minimum((np.arange(new_height) / scale).astype(np.int64), height - 1)
    return gray[np.ix_(src_y, src_x)]
