"""Stateless image filters applied to finished screenshots."""

from typing import Tuple

from PIL import Image, ImageFilter, ImageOps

from .region import Region
from .screenshot import Screenshot

Color = Tuple[int, int, int, int]


class ImageProcessor:
    """Each filter returns a new Screenshot; the input is left untouched."""

    @staticmethod
    def crop(screenshot: Screenshot, region: Region) -> Screenshot:
        """Crop to region. The caller validates bounds first."""
        return screenshot.with_image(screenshot.image.crop(region.box))

    @staticmethod
    def add_border(
        screenshot: Screenshot, width: int, color: Color = (0, 0, 0, 255)
    ) -> Screenshot:
        image = screenshot.image.convert("RGBA")
        return screenshot.with_image(ImageOps.expand(image, border=width, fill=color))

    @staticmethod
    def add_shadow(screenshot: Screenshot, offset: int) -> Screenshot:
        """Pad with a soft drop shadow offset down-right by `offset` pixels."""
        image = screenshot.image.convert("RGBA")
        width = image.width + offset * 2
        height = image.height + offset * 2

        shadow = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        if offset > 0:
            shade = Image.new("RGBA", image.size, (0, 0, 0, 96))
            shadow.paste(shade, (offset + offset // 2, offset + offset // 2))
            shadow = shadow.filter(ImageFilter.GaussianBlur(offset / 2))

        shadow.alpha_composite(image, (offset, offset))
        return screenshot.with_image(shadow)

    @staticmethod
    def resize(screenshot: Screenshot, width: int, height: int) -> Screenshot:
        if width <= 0 or height <= 0:
            raise ValueError(f"Resize target must be positive, got {width}x{height}")
        resized = screenshot.image.resize((width, height), Image.Resampling.LANCZOS)
        return screenshot.with_image(resized)

    @staticmethod
    def blur(screenshot: Screenshot, sigma: float) -> Screenshot:
        return screenshot.with_image(screenshot.image.filter(ImageFilter.GaussianBlur(sigma)))
