from pathlib import Path

from gated_notes.db.vault import init_vault


async def init_storage(vault_dir: Path) -> None:
    init_vault(vault_dir)
