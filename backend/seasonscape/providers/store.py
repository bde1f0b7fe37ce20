"""Write-once local storage for generated images."""

from __future__ import annotations

import logging
from pathlib import Path

from seasonscape.utils.naming import unique_filename

logger = logging.getLogger(__name__)


class LocalImageStore:
    """Saves image bytes under `root` and hands back `{url_prefix}/{filename}`.

    Files are opened in exclusive-create mode, so an existing file is never
    overwritten; a name collision retries with a fresh random suffix.
    """

    _MAX_NAME_ATTEMPTS = 5

    def __init__(self, root: str | Path, url_prefix: str = "/generated") -> None:
        self.root = Path(root)
        self.url_prefix = url_prefix.rstrip("/")

    def save(self, data: bytes, subject: str, variant: str, ext: str = "png") -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        for _ in range(self._MAX_NAME_ATTEMPTS):
            filename = unique_filename(subject, variant, ext)
            try:
                with open(self.root / filename, "xb") as fh:
                    fh.write(data)
            except FileExistsError:
                continue
            logger.info("Stored %s (%d bytes)", filename, len(data))
            return f"{self.url_prefix}/{filename}"
        raise FileExistsError(f"Could not find a free filename for {subject}-{variant}")

    def path_for(self, reference: str) -> Path:
        name = reference.rsplit("/", 1)[-1]
        if not name or name in (".", ".."):
            raise FileNotFoundError(f"Invalid image reference: {reference!r}")
        return self.root / name

    def load(self, reference: str) -> bytes:
        return self.path_for(reference).read_bytes()
