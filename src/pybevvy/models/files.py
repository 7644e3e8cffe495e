"""File listing entries from ``/files``."""

from __future__ import annotations

from urllib.parse import quote

from pybevvy._constants import DELETABLE_FILES, ENDPOINT_FILES
from pybevvy.models._base import BevvyBaseModel, LenientInt


def build_file_path(name: str) -> str:
    """Return the retrieval/deletion path for *name*, one encoded segment per ``/``."""
    segments = str(name).split("/")
    return f"{ENDPOINT_FILES}/" + "/".join(quote(segment, safe="!~*'()") for segment in segments)


class FileEntry(BevvyBaseModel):
    name: str
    storage: str = ""
    size: LenientInt = None

    @property
    def path(self) -> str:
        return build_file_path(self.name)

    @property
    def deletable(self) -> bool:
        """Only a few log files on internal flash may be removed."""
        return self.storage == "flash" and self.name in DELETABLE_FILES
