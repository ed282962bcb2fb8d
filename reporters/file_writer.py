"""
goal: writes each snapshot as a pretty-printed JSON document to a fixed path. the file is replaced
atomically (temp file next to it, then os.replace) so readers never see a half-written document.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

from agent.snapshot import Snapshot


class JsonFileReporter:
    name = "file"

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def deliver(self, snapshot: Snapshot) -> None:
        text = json.dumps(snapshot.to_document(), indent=2)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")  # same directory so os.replace stays atomic
        try:
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError:
            # don't leave the temp file around if the rename (or write) failed
            tmp.unlink(missing_ok=True)
            raise

    def close(self) -> None:
        pass
