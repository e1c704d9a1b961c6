from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select

from alterations.domain.shared.exceptions import DatabaseError
from alterations.infrastructure.database.models import QRScanLog

from .base import BaseRepository


class ScanLogRepository(BaseRepository[QRScanLog]):
    """Append-only QR scan audit trail."""

    @property
    def entity_class(self) -> type[QRScanLog]:
        return QRScanLog

    def search(
        self,
        qr_code: str | None = None,
        part_id: int | None = None,
        scanned_by: int | None = None,
        limit: int = 50,
    ) -> list[QRScanLog]:
        """Matching scans, newest first."""
        try:
            statement = select(QRScanLog)
            if qr_code is not None:
                statement = statement.where(QRScanLog.qr_code == qr_code)
            if part_id is not None:
                statement = statement.where(QRScanLog.part_id == part_id)
            if scanned_by is not None:
                statement = statement.where(QRScanLog.scanned_by == scanned_by)
            statement = statement.order_by(
                col(QRScanLog.timestamp).desc(), col(QRScanLog.id).desc()
            ).limit(limit)
            return list(self.session.exec(statement).all())
        except SQLAlchemyError as e:
            raise DatabaseError(f"Database error during search: {str(e)}") from e
