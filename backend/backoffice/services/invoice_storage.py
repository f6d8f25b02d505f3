"""Invoice image references stored on purchases."""
import logging
from pathlib import Path
from typing import Optional, Union

from backoffice.core.config import settings

logger = logging.getLogger(__name__)


class InvoiceStorage:
    """
    Resolves stored invoice paths under a root directory and removes them.

    Uploading is the caller's job; purchases only keep the returned path.
    """

    def __init__(self, root: Union[str, Path, None] = None):
        self.root = Path(root or settings.INVOICE_STORAGE_DIR)

    def resolve(self, stored_path: str) -> Optional[Path]:
        candidate = (self.root / stored_path).resolve()
        root = self.root.resolve()
        if candidate != root and root not in candidate.parents:
            return None
        return candidate

    def delete(self, stored_path: Optional[str]) -> bool:
        """Best-effort removal; a missing file or OS error is logged, never raised."""
        if not stored_path:
            return False
        path = self.resolve(stored_path)
        if path is None:
            logger.warning("Refusing to delete invoice outside storage root: %s", stored_path)
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Invoice file already gone: %s", stored_path)
            return False
        except OSError as exc:
            logger.warning("Unable to delete invoice file %s: %s", stored_path, exc)
            return False
        logger.info("Deleted invoice file %s", stored_path)
        return True


invoice_storage = InvoiceStorage()
