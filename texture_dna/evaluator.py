"""
texture_dna/evaluator.py - Sampling textures on pixel grids and rendering images
"""
import logging
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from .textures import Texture

logger = logging.getLogger(__name__)


class Evaluator:
    """Handles evaluation and rendering of texture trees"""

    def __init__(self, chunk_size: int = 1 << 14):
        self.chunk_size = chunk_size

    def create_coordinate_grid(self, size: Tuple[int, int], z: float = 0.0) -> np.ndarray:
        """Points at pixel corners of the unit square, shape (height, width, 3)"""
        height, width = size
        x = np.arange(width) / width
        y = np.arange(height) / height
        X, Y = np.meshgrid(x, y)
        return np.stack([X, Y, np.full_like(X, z)], axis=-1)

    def sample(self, texture: Texture, size: Tuple[int, int] = (256, 256),
               z: float = 0.0) -> np.ndarray:
        """Evaluate texture on a grid, shape (height, width, 3)"""
        grid = self.create_coordinate_grid(size, z)
        flat = grid.reshape(-1, 3)
        # Evaluate in chunks to bound temporary array sizes.
        values = np.concatenate([
            texture.at(flat[i:i + self.chunk_size])
            for i in range(0, len(flat), self.chunk_size)
        ])
        if not np.all(np.isfinite(values)):
            logger.warning("Texture produced non-finite values; replacing them with 0")
            values = np.nan_to_num(values, nan=0.0, posinf=0.0, neginf=0.0)
        return values.reshape(grid.shape)

    def to_rgb(self, values: np.ndarray) -> np.ndarray:
        """Map component values in [-1, 1] to 8-bit channels"""
        return (np.clip(values * 0.5 + 0.5, 0.0, 1.0) * 255.0).astype(np.uint8)

    def render_image(self, texture: Texture, size: Tuple[int, int] = (256, 256),
                     z: float = 0.0, filename: Optional[str] = None) -> Image.Image:
        """Render a texture as an RGB image"""
        img = Image.fromarray(self.to_rgb(self.sample(texture, size, z)), 'RGB')
        if filename:
            img.save(filename)
            logger.debug("Saved %dx%d render to %s", size[1], size[0], filename)
        return img

    def create_animation_frames(self, texture: Texture, num_frames: int = 30,
                                size: Tuple[int, int] = (128, 128),
                                z_range: Tuple[float, float] = (0.0, 1.0)) -> List[Image.Image]:
        """Frames moving through the texture along Z"""
        return [self.render_image(texture, size, z)
                for z in np.linspace(z_range[0], z_range[1], num_frames, endpoint=False)]
