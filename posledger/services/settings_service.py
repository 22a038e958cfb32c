"""Settings service - global business settings (exchange rate)."""
import logging
from decimal import Decimal, InvalidOperation

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from posledger.constants import DEFAULT_EXCHANGE_RATE
from posledger.exceptions import ValidationError
from posledger.models import AppSettings
from posledger.services.concurrency import run_in_transaction

logger = logging.getLogger(__name__)

SETTINGS_ID = 1


class SettingsService:
    """Reads and writes the single settings row."""

    def __init__(self, session: Session, default_exchange_rate=DEFAULT_EXCHANGE_RATE):
        self.session = session
        self.default_exchange_rate = Decimal(str(default_exchange_rate))

    def get(self) -> AppSettings:
        """Return the settings row, creating it with defaults on first read."""
        settings = self.session.get(AppSettings, SETTINGS_ID)
        if settings is not None:
            return settings

        try:
            return run_in_transaction(self.session, self._create_default)
        except IntegrityError:
            # Race condition: another process created it simultaneously
            return self.session.get(AppSettings, SETTINGS_ID)

    def save(self, exchange_rate) -> AppSettings:
        try:
            rate = Decimal(str(exchange_rate).strip().replace(',', '.'))
        except (InvalidOperation, ValueError):
            raise ValidationError('Tasa de cambio inválida')
        if not rate.is_finite() or rate <= 0:
            raise ValidationError('La tasa de cambio debe ser mayor a 0')

        def _op():
            settings = self.session.get(AppSettings, SETTINGS_ID)
            if settings is None:
                settings = self._create_default()
            settings.exchange_rate = rate
            self.session.flush()
            return settings

        settings = run_in_transaction(self.session, _op)
        logger.info(f"Exchange rate set to {rate}")
        return settings

    def _create_default(self) -> AppSettings:
        settings = AppSettings(id=SETTINGS_ID, exchange_rate=self.default_exchange_rate)
        self.session.add(settings)
        self.session.flush()
        return settings
