"""
Image preparation for the vision model: downscale, flatten and re-encode.
"""

import io
from typing import Tuple

from PIL import Image, ImageOps

MAX_DIMENSION = 1024
JPEG_QUALITY = 85
BACKGROUND_COLOR = (255, 255, 255)


class ImageProcessorService:
    """Pillow operations used when staging images"""

    def __init__(self,
                 max_dimension: int = MAX_DIMENSION,
                 quality: int = JPEG_QUALITY):
        self.max_dimension = max_dimension
        self.quality = quality

    def load_image_from_bytes(self, content: bytes) -> Image.Image:
        """Load image from bytes, applying EXIF orientation"""
        image = Image.open(io.BytesIO(content))
        image.load()
        return ImageOps.exif_transpose(image)

    def fit_dimensions(self, width: int, height: int) -> Tuple[int, int]:
        """Size that fits inside max_dimension on both sides, never upscaled"""
        longest = max(width, height)
        if longest <= self.max_dimension:
            return width, height
        scale = self.max_dimension / longest
        return max(1, round(width * scale)), max(1, round(height * scale))

    def resize_image(self, image: Image.Image) -> Image.Image:
        """Downscale preserving aspect ratio"""
        target = self.fit_dimensions(*image.size)
        if target == image.size:
            return image
        return image.resize(target, Image.Resampling.LANCZOS)

    def flatten(self, image: Image.Image) -> Image.Image:
        """Composite any transparency onto white and return an RGB image"""
        if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
            rgba = image.convert("RGBA")
            background = Image.new("RGB", rgba.size, BACKGROUND_COLOR)
            background.paste(rgba, mask=rgba.split()[3])
            return background
        if image.mode != "RGB":
            return image.convert("RGB")
        return image

    def encode_jpeg(self, image: Image.Image) -> bytes:
        """Encode as optimized progressive JPEG"""
        buffer = io.BytesIO()
        image.save(
            buffer,
            format="JPEG",
            quality=self.quality,
            optimize=True,
            progressive=True
        )
        return buffer.getvalue()

    def prepare_for_inference(self, content: bytes) -> bytes:
        """Full pipeline: decode, downscale, flatten, encode"""
        image = self.load_image_from_bytes(content)
        image = self.resize_image(image)
        image = self.flatten(image)
        return self.encode_jpeg(image)
