"""Read-only sprite asset store."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol


class AssetNotFoundError(LookupError):
    """Sprite asset missing or outside the store root."""


class SpriteStore(Protocol):
    def load(self, asset_ref: str) -> bytes: ...


class FileSpriteStore:
    """Sprites on local disk, addressed by path relative to `root`.

    Refs may be URL-style ("/plant-sprites/x.png"); the leading slash is ignored.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def resolve(self, asset_ref: str) -> Path:
        candidate = (self.root / asset_ref.lstrip("/")).resolve()
        if not candidate.is_relative_to(self.root):
            raise AssetNotFoundError(f"Sprite ref escapes store root: {asset_ref}")
        return candidate

    def load(self, asset_ref: str) -> bytes:
        path = self.resolve(asset_ref)
        try:
            return path.read_bytes()
        except OSError as e:
            raise AssetNotFoundError(f"Sprite not readable: {asset_ref}") from e


class MemorySpriteStore:
    """Dict-backed store for previews and tests."""

    def __init__(self, assets: dict[str, bytes] | None = None) -> None:
        self.assets = dict(assets or {})

    def load(self, asset_ref: str) -> bytes:
        try:
            return self.assets[asset_ref]
        except KeyError:
            raise AssetNotFoundError(f"Sprite not found: {asset_ref}") from None
