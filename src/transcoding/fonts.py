"""Font provisioning for burn-in and live overlay rendering.

Styled scripts only name a font family; the bytes are supplied separately to
whichever engine renders the script. A font is either the user's own file or
the bundled default.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from src.transcoding.errors import FontProvisioningError

logger = logging.getLogger(__name__)

FONT_FILE_EXTENSIONS = (".ttf", ".otf", ".woff", ".woff2")


@dataclass(frozen=True)
class FontAsset:
    """A font file made available under a logical family name.

    Either ``data`` or ``path`` holds the bytes; a path is read lazily so the
    overlay can treat the read as a suspension point.
    """

    name: str
    file_name: str
    data: bytes | None = None
    path: Path | None = None

    @classmethod
    def from_file(
        cls,
        path: Path,
        name: str | None = None,
        allowed_extensions: tuple[str, ...] = FONT_FILE_EXTENSIONS,
    ) -> "FontAsset":
        """Create a font from a user-supplied file.

        The logical name defaults to the file stem.

        Raises
        ------
            FontProvisioningError: If the file is missing or not a font file

        """
        if path.suffix.lower() not in allowed_extensions:
            raise FontProvisioningError(
                f"Unsupported font file {path.name}; expected one of "
                f"{', '.join(allowed_extensions)}"
            )
        if not path.is_file():
            raise FontProvisioningError(f"Font file not found: {path}")
        return cls(name=name or path.stem, file_name=path.name, path=path)

    async def read_bytes(self) -> bytes:
        """Return the font bytes, reading the file off the event loop if needed."""
        if self.data is not None:
            return self.data
        if self.path is None:
            raise FontProvisioningError(f"Font {self.name} has no data")
        try:
            return await asyncio.to_thread(self.path.read_bytes)
        except OSError as e:
            raise FontProvisioningError(f"Could not read font {self.path}: {e}") from e


def default_font(default_font_path: Path) -> FontAsset | None:
    """Return the bundled default font, or None when it is not installed."""
    if not default_font_path.is_file():
        logger.warning(
            f"Bundled default font not found at {default_font_path}; "
            "the renderer will fall back to system fonts"
        )
        return None
    return FontAsset(
        name=default_font_path.stem,
        file_name=default_font_path.name,
        path=default_font_path,
    )
