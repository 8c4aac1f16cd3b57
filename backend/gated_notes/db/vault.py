"""
File-backed persistence adapter for the note vault.

Paths handed to the adapter are vault-relative POSIX strings (the same form
card ``chapter`` fields use). Blocking filesystem calls run in a worker thread
so the review loop only ever awaits them.
"""
from __future__ import annotations

import asyncio
import os
import tempfile
from pathlib import Path

_vault: VaultAdapter | None = None


class VaultPathError(ValueError):
    """Raised for paths that resolve outside the vault root."""


class VaultAdapter:
    def __init__(self, root: Path) -> None:
        self.root = root

    def resolve(self, path: str) -> Path:
        """Map a vault path to a filesystem path, refusing to leave the vault."""
        root = self.root.resolve()
        target = (root / path).resolve()
        if target != root and root not in target.parents:
            raise VaultPathError(f"Path escapes the vault: {path}")
        return target

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).exists)

    async def is_dir(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_dir)

    async def read(self, path: str) -> bytes:
        return await asyncio.to_thread(self.resolve(path).read_bytes)

    async def write(self, path: str, data: bytes) -> None:
        """Replace the whole file at ``path`` with ``data``."""
        await asyncio.to_thread(_replace_file, self.resolve(path), data)

    async def find(self, filename: str) -> list[str]:
        """Vault paths of every file named ``filename``, sorted."""

        def _scan() -> list[str]:
            root = self.root.resolve()
            if not root.is_dir():
                return []
            return sorted(
                p.relative_to(root).as_posix()
                for p in root.rglob(filename)
                if p.is_file()
            )

        return await asyncio.to_thread(_scan)


def _replace_file(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}.")
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def init_vault(vault_dir: Path) -> VaultAdapter:
    global _vault
    vault_dir.mkdir(parents=True, exist_ok=True)
    _vault = VaultAdapter(vault_dir)
    return _vault


def get_vault() -> VaultAdapter:
    assert _vault is not None, "Vault not initialized"
    return _vault
