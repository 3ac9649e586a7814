"""
Utilidades para manejo de fechas y horas.
"""
from datetime import datetime, timezone
from typing import Optional


class DateTimeUtils:
    """Clase de utilidades para operaciones con fechas y horas."""

    @staticmethod
    def from_epoch(epoch_seconds: Optional[int]) -> Optional[datetime]:
        """
        Convierte segundos epoch (formato del ledger) a datetime UTC aware.

        Args:
            epoch_seconds: Timestamp en segundos o None

        Returns:
            Optional[datetime]: datetime en UTC, o None si no hay valor
        """
        if epoch_seconds is None:
            return None
        return datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc)
