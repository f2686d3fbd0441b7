"""Bundle delivery.

The pipeline hands a finished bundle directory to a ``BundleTransport``.
Only a local-directory transport ships here; remote transfer belongs to the
surrounding operational tooling.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class BundleTransport(Protocol):
    """Protocol for delivering an exported bundle."""

    def deliver(self, bundle_dir: Path) -> str:
        """Deliver a bundle.

        Args:
            bundle_dir: Directory holding the CSV files and summary.

        Returns:
            Human-readable location of the delivered bundle.
        """
        ...


class LocalDirectoryTransport:
    """Copies the bundle into ``destination/<bundle name>``."""

    def __init__(self, destination: str | Path) -> None:
        self.destination = Path(destination)

    def deliver(self, bundle_dir: Path) -> str:
        bundle_dir = Path(bundle_dir)
        target = self.destination / bundle_dir.name
        self.destination.mkdir(parents=True, exist_ok=True)
        shutil.copytree(bundle_dir, target, dirs_exist_ok=True)
        logger.info("Delivered bundle %s to %s", bundle_dir, target)
        return str(target)
