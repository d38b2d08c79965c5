"""Static asset copying for Folio.

Copies the ``css/``, ``js/`` and ``images/`` directories of the project
verbatim into matching subdirectories of the output directory.
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from pathlib import Path

logger = logging.getLogger(__name__)


class AssetPipeline:
    """Copies static asset directories into the output directory.

    Attributes:
        asset_dirs: Source asset directories; missing ones are skipped.
        output_dir: Directory the site is written to.
    """

    def __init__(self, asset_dirs: Iterable[Path], output_dir: Path):
        self.asset_dirs = list(asset_dirs)
        self.output_dir = output_dir

    def run(self) -> list[Path]:
        """Copy every existing asset directory.

        Returns:
            Paths of the copied files in the output directory.
        """
        copied: list[Path] = []
        for source in self.asset_dirs:
            if not source.is_dir():
                continue
            target = self.output_dir / source.name
            for item in sorted(source.rglob("*")):
                if item.is_dir():
                    continue
                dest = target / item.relative_to(source)
                dest.parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(item, dest)
                copied.append(dest)
            logger.debug("Copied %s into %s", source, target)
        return copied
